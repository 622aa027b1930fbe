"""Users and products: create, read, and stock updates (which drive restock notifications)."""
import logging
from decimal import Decimal
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from stocknotify.db.session import get_db
from stocknotify.services import catalog_service
from stocknotify.services.notifier import trigger_restock

router = APIRouter()
logger = logging.getLogger(__name__)


class CreateUserRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    email: str = Field(..., min_length=3, max_length=256)
    role: str = Field(default="user", pattern="^(admin|user)$")


class CreateProductRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=256)
    description: str | None = None
    price: Decimal = Field(default=Decimal("0"), ge=0)
    initial_stock: int = Field(default=0, ge=0)


class UpdateStockRequest(BaseModel):
    stock: int


def _user_dict(row) -> dict[str, Any]:
    return {
        "id": row.id,
        "name": row.name,
        "email": row.email,
        "role": row.role,
        "created_at": row.created_at.isoformat() if row.created_at else None,
    }


def _product_dict(row, stock: int) -> dict[str, Any]:
    return {
        "id": row.id,
        "name": row.name,
        "description": row.description,
        "price": str(row.price) if row.price is not None else None,
        "stock": stock,
    }


@router.post("/users")
def create_user(body: CreateUserRequest, db: Session = Depends(get_db)) -> dict[str, Any]:
    row = catalog_service.create_user(db, body.name, body.email, body.role)
    return _user_dict(row)


@router.get("/users/{user_id}")
def get_user(user_id: int, db: Session = Depends(get_db)) -> dict[str, Any]:
    return _user_dict(catalog_service.require_user(db, user_id))


@router.post("/products")
def create_product(body: CreateProductRequest, db: Session = Depends(get_db)) -> dict[str, Any]:
    row = catalog_service.create_product(db, body.name, body.description, body.price, body.initial_stock)
    return _product_dict(row, body.initial_stock)


@router.get("/products/{product_id}")
def get_product(product_id: int, db: Session = Depends(get_db)) -> dict[str, Any]:
    row = catalog_service.require_product(db, product_id)
    return _product_dict(row, catalog_service.get_stock(db, product_id))


@router.put("/products/{product_id}/stock")
def update_stock(product_id: int, body: UpdateStockRequest, db: Session = Depends(get_db)) -> dict[str, Any]:
    """
    Set the stock level. Going from 0 to a positive stock notifies pending subscribers;
    going to 0 re-arms them for the next restock.
    """
    result = trigger_restock(db, product_id, body.stock)
    return {"ok": True, **result.as_dict()}
