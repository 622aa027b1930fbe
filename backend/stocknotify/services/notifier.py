"""
Restock notifier: detect the 0 -> positive stock edge and notify pending subscribers.

trigger_restock is called on every stock change. The stock row is locked, then the write itself
decides the edge:
UPDATE inventory SET stock = :new WHERE product_id = :p AND stock = 0 matches only when the
product was out of stock, so repeated updates while stock stays positive never fire twice.
Stock-out (new stock 0) re-arms every subscriber for the next restock.

send_one never raises for delivery problems: the outcome goes to the delivery log and the
caller only sees True/False, so one failing subscriber cannot abort a fan-out.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import update
from sqlalchemy.orm import Session

from stocknotify.config import settings
from stocknotify.core.errors import InvalidArgument, require_positive_id
from stocknotify.models.delivery_log import DeliveryLog
from stocknotify.models.inventory import Inventory
from stocknotify.services import delivery_log_service, subscription_service
from stocknotify.services.catalog_service import require_product
from stocknotify.services.channels import ChannelSender, Delivery, get_channel_sender
from stocknotify.services.preference_service import get_preferences

logger = logging.getLogger(__name__)


@dataclass
class RestockResult:
    product_id: int
    previous_stock: int
    new_stock: int
    fired: bool = False
    attempted: int = 0
    sent: int = 0
    failed: int = 0
    reset: int = 0

    def as_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "previous_stock": self.previous_stock,
            "new_stock": self.new_stock,
            "restock_fired": self.fired,
            "attempted": self.attempted,
            "sent": self.sent,
            "failed": self.failed,
            "subscriptions_reset": self.reset,
        }


def _lock_inventory(db: Session, product_id: int) -> Inventory | None:
    """SELECT ... FOR UPDATE: other stock writers for this product wait until we commit."""
    return (
        db.query(Inventory)
        .filter(Inventory.product_id == product_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def _write_stock(db: Session, product_id: int, new_stock: int) -> tuple[int, bool]:
    """
    Store new_stock and report (previous_stock, restocked). restocked is True only when this
    call moved the product from 0 to a positive stock. Does not commit.

    The row lock keeps a concurrent stock-out from landing between the edge check and the
    write; the WHERE stock = 0 guard still decides the edge where the backend has no row locks.
    """
    now = datetime.now(timezone.utc)
    row = _lock_inventory(db, product_id)
    if row is None:
        db.add(Inventory(product_id=product_id, stock=new_stock))
        db.flush()
        return 0, new_stock > 0
    previous = row.stock
    if new_stock > 0:
        result = db.execute(
            update(Inventory)
            .where(Inventory.product_id == product_id, Inventory.stock == 0)
            .values(stock=new_stock, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if (result.rowcount or 0) == 1:
            return 0, True
    db.execute(
        update(Inventory)
        .where(Inventory.product_id == product_id)
        .values(stock=new_stock, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    return previous, False


def trigger_restock(
    db: Session,
    product_id: int,
    new_stock: int,
    sender: ChannelSender | None = None,
    message: str | None = None,
) -> RestockResult:
    """
    Record a stock change and, on a restock edge, send to every subscriber not yet notified.
    Raises InvalidArgument / NotFound before anything is written.
    """
    require_positive_id(product_id, "product_id")
    if new_stock is None or new_stock < 0:
        raise InvalidArgument("stock can not be negative")
    require_product(db, product_id)

    previous, restocked = _write_stock(db, product_id, new_stock)
    result = RestockResult(product_id=product_id, previous_stock=previous, new_stock=new_stock, fired=restocked)
    if new_stock == 0:
        result.reset = subscription_service.reset_for_product(db, product_id)
    db.commit()

    if new_stock == 0:
        logger.info("Product %s out of stock; %s subscriptions re-armed", product_id, result.reset)
        return result
    if not restocked:
        logger.debug("Product %s stock %s -> %s: no restock edge", product_id, previous, new_stock)
        return result

    pending = subscription_service.pending_for_product(db, product_id)
    if not pending:
        logger.info("No pending subscribers for product %s", product_id)
        return result
    logger.info("Sending restock notifications to %s subscribers of product %s", len(pending), product_id)
    text = message or settings.restock_message
    sub_ids = [s.id for s in pending]
    for sub_id in sub_ids:
        result.attempted += 1
        if send_one(db, sub_id, text, sender):
            result.sent += 1
        else:
            result.failed += 1
    logger.info(
        "Restock product %s: %s sent, %s failed of %s", product_id, result.sent, result.failed, result.attempted
    )
    return result


def send_one(
    db: Session,
    subscription_id: int,
    message: str,
    sender: ChannelSender | None = None,
    *,
    log_entry: DeliveryLog | None = None,
) -> bool:
    """
    Deliver one notification for a subscription and record it on the delivery log.

    With log_entry (retry path) the existing entry is transitioned instead of creating one,
    and a success marks it 'retried'. Returns True only if this call flipped the
    subscription to is_sent = true.
    """
    sub = subscription_service.get_subscription(db, subscription_id)
    if sub is None:
        logger.warning("Subscription %s not found", subscription_id)
        return False
    if sub.is_sent:
        logger.debug("Subscription %s already notified; skipping", subscription_id)
        return False

    user_id, product_id = sub.user_id, sub.product_id
    pref = get_preferences(db, user_id)
    entry = log_entry or delivery_log_service.create_entry(db, sub, message)
    delivery = Delivery.from_preference(user_id, product_id, message, pref)
    sender = sender or get_channel_sender()

    reason = None
    try:
        ok = bool(sender.send(db, delivery))
    except Exception as e:  # noqa: BLE001 - delivery failures are recorded, not raised
        ok = False
        reason = str(e) or e.__class__.__name__
    if not ok:
        # Drop anything a channel staged (in-app rows) before recording the failure
        db.rollback()
        delivery_log_service.mark_failed(db, entry, reason or "Channel sender reported failure")
        logger.warning(
            "Failed to send notification %s to user %s (log %s): %s",
            subscription_id, user_id, entry.id, entry.error_message,
        )
        return False

    won = subscription_service.mark_sent(db, subscription_id)
    if log_entry is not None:
        delivery_log_service.mark_retried(db, entry)
    else:
        delivery_log_service.mark_sent(db, entry)
    if not won:
        logger.info("Subscription %s was marked sent by a concurrent attempt (log %s)", subscription_id, entry.id)
        return False
    logger.info("Notification sent to user %s for product %s", user_id, product_id)
    return True
