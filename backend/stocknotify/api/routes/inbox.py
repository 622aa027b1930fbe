"""
In-app notifications (what the in-app channel delivered): list, mark one read, mark all read.
"""
import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from stocknotify.db.session import get_db
from stocknotify.models.in_app_notification import InAppNotification

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/inbox/{user_id}")
def list_inbox(
    user_id: int,
    db: Session = Depends(get_db),
    limit: int = Query(80, ge=1, le=200),
    unread_only: bool = Query(False),
) -> dict[str, Any]:
    """
    List in-app notifications for the user, newest first.
    Use unread_only=true to only return unread (e.g. for badge count).
    """
    q = db.query(InAppNotification).filter(InAppNotification.user_id == user_id)
    if unread_only:
        q = q.filter(InAppNotification.read_at.is_(None))
    rows = q.order_by(InAppNotification.created_at.desc(), InAppNotification.id.desc()).limit(limit).all()
    unread_count = (
        db.query(InAppNotification)
        .filter(InAppNotification.user_id == user_id, InAppNotification.read_at.is_(None))
        .count()
    )
    return {
        "notifications": [
            {
                "id": r.id,
                "product_id": r.product_id,
                "message": r.message,
                "read": r.read_at is not None,
                "read_at": r.read_at.isoformat() if r.read_at else None,
                "created_at": r.created_at.isoformat() if r.created_at else None,
            }
            for r in rows
        ],
        "unread_count": unread_count,
    }


@router.patch("/inbox/{user_id}/{notification_id}/read")
def mark_read(user_id: int, notification_id: int, db: Session = Depends(get_db)) -> dict[str, Any]:
    """Mark a single in-app notification as read."""
    row = (
        db.query(InAppNotification)
        .filter(InAppNotification.id == notification_id, InAppNotification.user_id == user_id)
        .first()
    )
    if not row:
        return {"ok": False, "error": "not_found"}
    if row.read_at is None:
        row.read_at = datetime.now(timezone.utc)
        db.commit()
    return {"ok": True, "id": notification_id, "read_at": row.read_at.isoformat()}


@router.post("/inbox/{user_id}/mark-all-read")
def mark_all_read(user_id: int, db: Session = Depends(get_db)) -> dict[str, Any]:
    now = datetime.now(timezone.utc)
    updated = (
        db.query(InAppNotification)
        .filter(InAppNotification.user_id == user_id, InAppNotification.read_at.is_(None))
        .update({InAppNotification.read_at: now}, synchronize_session=False)
    )
    db.commit()
    return {"ok": True, "user_id": user_id, "marked_count": updated}
