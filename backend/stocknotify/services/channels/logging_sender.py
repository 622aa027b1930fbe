"""Sender that only logs what would be delivered on each channel. Default when no transport is configured."""
from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from stocknotify.core.constants import ALL_CHANNELS
from stocknotify.services.channels.base import Delivery

logger = logging.getLogger(__name__)


class LoggingChannelSender:
    def __init__(self, logger_: logging.Logger | None = None) -> None:
        self._logger = logger_ or logger

    def send(self, db: Session, delivery: Delivery) -> bool:
        flags = ", ".join(
            f"{c}={'on' if getattr(delivery, f'{c}_enabled') else 'off'}" for c in ALL_CHANNELS
        )
        self._logger.info(
            "[notification] user=%s product=%s message=%r channels: %s",
            delivery.user_id,
            delivery.product_id,
            delivery.message,
            flags,
        )
        return True
