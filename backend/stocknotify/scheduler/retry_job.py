"""Runs every RETRY_INTERVAL_SECONDS when RETRY_JOB_ENABLED: re-send failed deliveries still under max_retries."""
import logging

from stocknotify.db.session import SessionLocal
from stocknotify.services.retry_service import retry_all

logger = logging.getLogger(__name__)


def run_retry_failed_deliveries_job() -> None:
    db = SessionLocal()
    try:
        counts = retry_all(db)
        if counts["attempted"]:
            logger.info(
                "Retry job: %s attempted, %s recovered, %s still failing",
                counts["attempted"], counts["succeeded"], counts["failed"],
            )
    except Exception as e:
        logger.exception("Retry job failed: %s", e)
        db.rollback()
    finally:
        db.close()
