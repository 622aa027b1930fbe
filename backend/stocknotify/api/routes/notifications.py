"""
Restock notification API: subscriptions, delivery logs, retries and channel preferences.

Service errors (NotFound, InvalidArgument) are mapped to HTTP by the handler in main.py.
"""
import logging
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from stocknotify.core.constants import LOG_LIST_LIMIT
from stocknotify.db.session import get_db
from stocknotify.services import delivery_log_service, preference_service, retry_service, subscription_service

router = APIRouter()
logger = logging.getLogger(__name__)


# --- Subscriptions ---


class SubscribeRequest(BaseModel):
    user_id: int = Field(..., description="Subscriber")
    product_id: int = Field(..., description="Product to watch for restock")


@router.post("/notifications/subscribe")
def subscribe(body: SubscribeRequest, db: Session = Depends(get_db)) -> dict[str, Any]:
    """
    Subscribe a user to a product's restock notification.
    Idempotent: subscribing again re-arms the existing subscription (is_sent=false).
    """
    row = subscription_service.subscribe(db, body.user_id, body.product_id)
    return {"ok": True, "subscription": subscription_service.subscription_to_dict(row)}


@router.delete("/notifications/{subscription_id}")
def unsubscribe(subscription_id: int, db: Session = Depends(get_db)) -> dict[str, Any]:
    removed = subscription_service.unsubscribe(db, subscription_id)
    return {"ok": True, "id": subscription_id, "removed": removed}


@router.get("/notifications/user/{user_id}")
def list_user_subscriptions(user_id: int, db: Session = Depends(get_db)) -> dict[str, Any]:
    rows = subscription_service.list_for_user(db, user_id)
    return {"subscriptions": [subscription_service.subscription_to_dict(r) for r in rows], "count": len(rows)}


@router.get("/notifications/product/{product_id}")
def list_product_subscribers(product_id: int, db: Session = Depends(get_db)) -> dict[str, Any]:
    rows = subscription_service.list_for_product(db, product_id)
    return {"subscriptions": [subscription_service.subscription_to_dict(r) for r in rows], "count": len(rows)}


# --- Delivery logs ---


@router.get("/notifications/logs/user/{user_id}")
def list_user_logs(
    user_id: int,
    db: Session = Depends(get_db),
    status: str | None = Query(None, description="pending | sent | failed | retried"),
    limit: int = Query(80, ge=1, le=LOG_LIST_LIMIT),
) -> dict[str, Any]:
    """Delivery history for a user, newest first."""
    rows = delivery_log_service.list_for_user(db, user_id, status=status, limit=limit)
    return {"logs": [delivery_log_service.log_to_dict(r) for r in rows], "count": len(rows)}


@router.get("/notifications/logs/status/failed")
def list_failed_logs(
    db: Session = Depends(get_db),
    limit: int = Query(LOG_LIST_LIMIT, ge=1, le=LOG_LIST_LIMIT),
) -> dict[str, Any]:
    """Failed deliveries that can still be retried, oldest first."""
    rows = retry_service.list_retryable(db, limit=limit)
    return {"logs": [delivery_log_service.log_to_dict(r) for r in rows], "count": len(rows)}


@router.post("/notifications/logs/retry-all")
def retry_all_failed(db: Session = Depends(get_db)) -> dict[str, Any]:
    """Retry every retryable delivery once (operator action)."""
    counts = retry_service.retry_all(db)
    return {"ok": True, **counts}


@router.post("/notifications/logs/{log_id}/retry")
def retry_failed(log_id: int, db: Session = Depends(get_db)) -> dict[str, Any]:
    ok = retry_service.retry(db, log_id)
    entry = delivery_log_service.get_entry(db, log_id)
    return {"ok": ok, "id": log_id, "log": delivery_log_service.log_to_dict(entry) if entry else None}


# --- Preferences ---


class PreferencesRequest(BaseModel):
    email_enabled: bool
    push_enabled: bool
    sms_enabled: bool
    in_app_enabled: bool


@router.get("/notifications/preferences/{user_id}")
def get_preferences(user_id: int, db: Session = Depends(get_db)) -> dict[str, Any]:
    """Channel preferences; defaults are created on first access."""
    return preference_service.preferences_to_dict(preference_service.get_preferences(db, user_id))


@router.put("/notifications/preferences/{user_id}")
def update_preferences(user_id: int, body: PreferencesRequest, db: Session = Depends(get_db)) -> dict[str, Any]:
    row = preference_service.update_preferences(
        db,
        user_id,
        email=body.email_enabled,
        push=body.push_enabled,
        sms=body.sms_enabled,
        in_app=body.in_app_enabled,
    )
    return preference_service.preferences_to_dict(row)
