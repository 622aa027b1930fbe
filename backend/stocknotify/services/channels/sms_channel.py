"""SMS channel. No SMS provider is wired in yet: the message is logged and counted as delivered."""
from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from stocknotify.services.channels.base import Delivery

logger = logging.getLogger(__name__)


class SmsChannel:
    name = "sms"

    def deliver(self, db: Session, delivery: Delivery) -> bool:
        logger.info("[sms] user=%s product=%s: %s", delivery.user_id, delivery.product_id, delivery.message)
        return True
