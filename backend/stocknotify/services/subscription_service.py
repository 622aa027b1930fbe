"""
Subscription registry: who wants to hear about which product's restock.

Every state change is a single UPDATE/DELETE statement so concurrent callers cannot
both win: mark_sent only matches rows still is_sent = false.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stocknotify.core.constants import RESTOCK_CHANNEL_TYPE
from stocknotify.core.errors import require_positive_id
from stocknotify.models.subscription import Subscription
from stocknotify.services.catalog_service import require_product, require_user

logger = logging.getLogger(__name__)


def _find(db: Session, user_id: int, product_id: int, channel_type: str) -> Subscription | None:
    return (
        db.query(Subscription)
        .filter(
            Subscription.user_id == user_id,
            Subscription.product_id == product_id,
            Subscription.channel_type == channel_type,
        )
        .first()
    )


def _reset(db: Session, user_id: int, product_id: int, channel_type: str) -> Subscription | None:
    db.execute(
        update(Subscription)
        .where(
            Subscription.user_id == user_id,
            Subscription.product_id == product_id,
            Subscription.channel_type == channel_type,
        )
        .values(is_sent=False, updated_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    db.commit()
    row = _find(db, user_id, product_id, channel_type)
    if row is not None:
        db.refresh(row)
    return row


def subscribe(
    db: Session,
    user_id: int,
    product_id: int,
    channel_type: str = RESTOCK_CHANNEL_TYPE,
) -> Subscription:
    """
    Subscribe a user to a product's restock. Idempotent: an existing (user, product, type)
    row is reset to is_sent = false and returned instead of inserting a duplicate.
    Raises NotFound for an unknown user or product.
    """
    require_user(db, user_id)
    require_product(db, product_id)
    if _find(db, user_id, product_id, channel_type) is not None:
        return _reset(db, user_id, product_id, channel_type)
    row = Subscription(user_id=user_id, product_id=product_id, channel_type=channel_type, is_sent=False)
    db.add(row)
    try:
        db.commit()
    except IntegrityError:
        # Lost the insert race to a concurrent subscribe; fall back to the reset path
        db.rollback()
        row = _reset(db, user_id, product_id, channel_type)
        if row is None:
            raise
        return row
    db.refresh(row)
    logger.info("User %s subscribed to product %s", user_id, product_id)
    return row


def unsubscribe(db: Session, subscription_id: int) -> bool:
    """Delete a subscription. Returns whether a row was removed (missing is not an error)."""
    require_positive_id(subscription_id, "subscription_id")
    result = db.execute(
        delete(Subscription)
        .where(Subscription.id == subscription_id)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    removed = (result.rowcount or 0) > 0
    if removed:
        logger.info("Subscription %s removed", subscription_id)
    return removed


def get_subscription(db: Session, subscription_id: int) -> Subscription | None:
    return db.query(Subscription).filter(Subscription.id == subscription_id).first()


def list_for_user(db: Session, user_id: int) -> list[Subscription]:
    """All subscriptions of a user, newest first."""
    return (
        db.query(Subscription)
        .filter(Subscription.user_id == user_id)
        .order_by(Subscription.created_at.desc(), Subscription.id.desc())
        .all()
    )


def list_for_product(db: Session, product_id: int) -> list[Subscription]:
    """All subscribers of a product, newest first."""
    return (
        db.query(Subscription)
        .filter(Subscription.product_id == product_id)
        .order_by(Subscription.created_at.desc(), Subscription.id.desc())
        .all()
    )


def pending_for_product(db: Session, product_id: int) -> list[Subscription]:
    """Subscribers not yet notified since the last restock, oldest first."""
    return (
        db.query(Subscription)
        .filter(Subscription.product_id == product_id, Subscription.is_sent.is_(False))
        .order_by(Subscription.created_at.asc(), Subscription.id.asc())
        .all()
    )


def is_user_subscribed(db: Session, user_id: int, product_id: int) -> bool:
    """True when a subscription exists, whatever its delivery state."""
    return (
        db.query(Subscription.id)
        .filter(Subscription.user_id == user_id, Subscription.product_id == product_id)
        .first()
        is not None
    )


def mark_sent(db: Session, subscription_id: int, sent_at: datetime | None = None) -> bool:
    """
    Flip is_sent false -> true. Returns False when the row is missing or already sent,
    so at most one caller wins per restock cycle. Does not commit.
    """
    now = sent_at or datetime.now(timezone.utc)
    result = db.execute(
        update(Subscription)
        .where(Subscription.id == subscription_id, Subscription.is_sent.is_(False))
        .values(is_sent=True, sent_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    return (result.rowcount or 0) == 1


def reset_for_product(db: Session, product_id: int) -> int:
    """Stock-out path: make every subscriber of the product eligible for the next restock. Does not commit."""
    result = db.execute(
        update(Subscription)
        .where(Subscription.product_id == product_id, Subscription.is_sent.is_(True))
        .values(is_sent=False, updated_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


def subscription_to_dict(row: Subscription) -> dict:
    return {
        "id": row.id,
        "user_id": row.user_id,
        "product_id": row.product_id,
        "channel_type": row.channel_type,
        "is_sent": row.is_sent,
        "created_at": row.created_at.isoformat() if row.created_at else None,
        "updated_at": row.updated_at.isoformat() if row.updated_at else None,
        "sent_at": row.sent_at.isoformat() if row.sent_at else None,
    }
