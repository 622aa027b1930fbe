"""
Delivery log: one row per send attempt, updated in place by retries.

Transitions:
  pending -> sent | failed
  failed  -> retried | failed   (claim_retry_attempt bumps retry_count first)
A failed row with retry_count == max_retries is terminal and no longer listed as retryable.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy import update
from sqlalchemy.orm import Session

from stocknotify.config import settings
from stocknotify.core.constants import (
    DELIVERY_STATUSES,
    LOG_LIST_LIMIT,
    STATUS_FAILED,
    STATUS_PENDING,
    STATUS_RETRIED,
    STATUS_SENT,
)
from stocknotify.core.errors import InvalidArgument
from stocknotify.models.delivery_log import DeliveryLog
from stocknotify.models.subscription import Subscription

logger = logging.getLogger(__name__)


def create_entry(
    db: Session,
    subscription: Subscription,
    message: str,
    max_retries: int | None = None,
) -> DeliveryLog:
    """Insert a pending entry for one attempt on this subscription and commit it."""
    row = DeliveryLog(
        subscription_id=subscription.id,
        user_id=subscription.user_id,
        product_id=subscription.product_id,
        channel_type=subscription.channel_type,
        message=message,
        status=STATUS_PENDING,
        retry_count=0,
        max_retries=settings.notify_max_retries if max_retries is None else max_retries,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def _set_status(db: Session, entry: DeliveryLog, status: str, error_message: str | None = None) -> None:
    now = datetime.now(timezone.utc)
    entry.status = status
    entry.updated_at = now
    if status in (STATUS_SENT, STATUS_RETRIED):
        entry.sent_at = now
        entry.error_message = None
    elif error_message is not None:
        entry.error_message = error_message
    db.commit()


def mark_sent(db: Session, entry: DeliveryLog) -> None:
    _set_status(db, entry, STATUS_SENT)


def mark_retried(db: Session, entry: DeliveryLog) -> None:
    _set_status(db, entry, STATUS_RETRIED)


def mark_failed(db: Session, entry: DeliveryLog, reason: str) -> None:
    _set_status(db, entry, STATUS_FAILED, reason or "Failed to send notification")


def claim_retry_attempt(db: Session, log_id: int) -> DeliveryLog | None:
    """
    Count one retry attempt: retry_count += 1 only while the entry is failed and under its
    bound. Committed before the caller sends, so a crash mid-retry still consumes the attempt.
    Returns the refreshed entry, or None if it is missing, recovered or exhausted.
    """
    result = db.execute(
        update(DeliveryLog)
        .where(
            DeliveryLog.id == log_id,
            DeliveryLog.status == STATUS_FAILED,
            DeliveryLog.retry_count < DeliveryLog.max_retries,
        )
        .values(retry_count=DeliveryLog.retry_count + 1, updated_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    db.commit()
    if (result.rowcount or 0) != 1:
        return None
    entry = get_entry(db, log_id)
    if entry is not None:
        db.refresh(entry)
    return entry


def get_entry(db: Session, log_id: int) -> DeliveryLog | None:
    return db.query(DeliveryLog).filter(DeliveryLog.id == log_id).first()


def list_retryable(db: Session, limit: int | None = None) -> list[DeliveryLog]:
    """Failed entries still under max_retries, oldest first."""
    q = (
        db.query(DeliveryLog)
        .filter(DeliveryLog.status == STATUS_FAILED, DeliveryLog.retry_count < DeliveryLog.max_retries)
        .order_by(DeliveryLog.created_at.asc(), DeliveryLog.id.asc())
    )
    if limit:
        q = q.limit(limit)
    return q.all()


def list_for_user(db: Session, user_id: int, status: str | None = None, limit: int = LOG_LIST_LIMIT) -> list[DeliveryLog]:
    """A user's delivery history, newest first; optionally one status only."""
    q = db.query(DeliveryLog).filter(DeliveryLog.user_id == user_id)
    if status:
        if status not in DELIVERY_STATUSES:
            raise InvalidArgument(f"status must be one of {DELIVERY_STATUSES}")
        q = q.filter(DeliveryLog.status == status)
    return q.order_by(DeliveryLog.created_at.desc(), DeliveryLog.id.desc()).limit(limit).all()


def log_to_dict(row: DeliveryLog) -> dict:
    return {
        "id": row.id,
        "subscription_id": row.subscription_id,
        "user_id": row.user_id,
        "product_id": row.product_id,
        "channel_type": row.channel_type,
        "message": row.message,
        "status": row.status,
        "retry_count": row.retry_count,
        "max_retries": row.max_retries,
        "error_message": row.error_message,
        "sent_at": row.sent_at.isoformat() if row.sent_at else None,
        "created_at": row.created_at.isoformat() if row.created_at else None,
        "updated_at": row.updated_at.isoformat() if row.updated_at else None,
    }
