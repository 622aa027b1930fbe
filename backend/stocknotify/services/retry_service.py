"""
Retry coordinator: re-send failed deliveries, oldest first, up to each entry's max_retries.

Runs on demand (API, operator script) or from the optional scheduler job; it owns no timer.
"""
import logging

from sqlalchemy.orm import Session

from stocknotify.core.constants import RETRY_SWEEP_LIMIT
from stocknotify.core.errors import require_positive_id
from stocknotify.models.delivery_log import DeliveryLog
from stocknotify.services import delivery_log_service
from stocknotify.services.channels import ChannelSender
from stocknotify.services.notifier import send_one

logger = logging.getLogger(__name__)


def list_retryable(db: Session, limit: int | None = None) -> list[DeliveryLog]:
    """Failed entries with retry_count < max_retries, earliest failure first."""
    return delivery_log_service.list_retryable(db, limit=limit)


def retry(db: Session, log_id: int, sender: ChannelSender | None = None) -> bool:
    """
    Retry one failed entry. The attempt is counted (and committed) before sending.
    Returns False if the entry is missing, already recovered or out of retries, or if
    the re-send fails; the entry then stays 'failed'.
    Raises InvalidArgument for a non-positive log_id.
    """
    require_positive_id(log_id, "log_id")
    entry = delivery_log_service.claim_retry_attempt(db, log_id)
    if entry is None:
        logger.warning("Failed notification %s not found or not retryable", log_id)
        return False
    ok = send_one(db, entry.subscription_id, entry.message, sender, log_entry=entry)
    if ok:
        logger.info("Notification log %s retried successfully (attempt %s)", log_id, entry.retry_count)
    else:
        logger.warning(
            "Retry %s/%s failed for notification log %s", entry.retry_count, entry.max_retries, log_id
        )
    return ok


def retry_all(db: Session, sender: ChannelSender | None = None, limit: int | None = RETRY_SWEEP_LIMIT) -> dict:
    """Retry every currently retryable entry once. Returns counts."""
    ids = [e.id for e in list_retryable(db, limit=limit)]
    succeeded = 0
    for log_id in ids:
        if retry(db, log_id, sender):
            succeeded += 1
    if ids:
        logger.info("Retry sweep: %s/%s failed deliveries recovered", succeeded, len(ids))
    return {"attempted": len(ids), "succeeded": succeeded, "failed": len(ids) - succeeded}
