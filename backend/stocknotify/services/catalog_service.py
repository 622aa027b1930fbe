"""
Users and products: just what the notification core needs (create, look up, require, read stock).
"""
import logging
from decimal import Decimal

from sqlalchemy.orm import Session

from stocknotify.core.errors import InvalidArgument, NotFound, require_positive_id
from stocknotify.models.inventory import Inventory
from stocknotify.models.product import Product
from stocknotify.models.user import User

logger = logging.getLogger(__name__)

USER_ROLES = ("admin", "user")


def create_user(db: Session, name: str, email: str, role: str = "user") -> User:
    name = (name or "").strip()
    email = (email or "").strip().lower()
    if not name or not email:
        raise InvalidArgument("name and email are required")
    if role not in USER_ROLES:
        raise InvalidArgument(f"role must be one of {USER_ROLES}")
    row = User(name=name, email=email, role=role)
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("Created user %s", row.id)
    return row


def get_user(db: Session, user_id: int) -> User | None:
    return db.query(User).filter(User.id == user_id).first()


def require_user(db: Session, user_id: int) -> User:
    require_positive_id(user_id, "user_id")
    row = get_user(db, user_id)
    if row is None:
        raise NotFound("user", user_id)
    return row


def create_product(
    db: Session,
    name: str,
    description: str | None = None,
    price: Decimal | float = 0,
    initial_stock: int = 0,
) -> Product:
    """Create a product and its inventory row. Negative initial stock is rejected."""
    name = (name or "").strip()
    if not name:
        raise InvalidArgument("name is required")
    if initial_stock is None or initial_stock < 0:
        raise InvalidArgument("initial stock can not be negative")
    row = Product(name=name, description=description, price=Decimal(str(price or 0)))
    db.add(row)
    db.flush()
    db.add(Inventory(product_id=row.id, stock=initial_stock))
    db.commit()
    db.refresh(row)
    logger.info("Created product %s with stock %s", row.id, initial_stock)
    return row


def get_product(db: Session, product_id: int) -> Product | None:
    return db.query(Product).filter(Product.id == product_id).first()


def require_product(db: Session, product_id: int) -> Product:
    require_positive_id(product_id, "product_id")
    row = get_product(db, product_id)
    if row is None:
        raise NotFound("product", product_id)
    return row


def get_stock(db: Session, product_id: int) -> int:
    """Current stock; a product without an inventory row counts as 0."""
    row = db.query(Inventory).filter(Inventory.product_id == product_id).first()
    return row.stock if row else 0
