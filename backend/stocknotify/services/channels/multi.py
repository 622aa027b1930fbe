"""
Sender that fans one delivery out to every channel the user switched on.

Succeeds only when every enabled channel succeeds; otherwise raises DeliveryFailure naming
the failed channels. A channel that raises does not stop the others from being attempted.
"""
from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy.orm import Session

from stocknotify.core.errors import DeliveryFailure
from stocknotify.services.channels.base import Channel, Delivery

logger = logging.getLogger(__name__)


class MultiChannelSender:
    def __init__(self, channels: Iterable[Channel]) -> None:
        self._channels = {c.name: c for c in channels}

    def send(self, db: Session, delivery: Delivery) -> bool:
        failures: list[str] = []
        for name in delivery.channels:
            channel = self._channels.get(name)
            if channel is None:
                failures.append(f"{name}: no transport configured")
                continue
            try:
                if not channel.deliver(db, delivery):
                    failures.append(f"{name}: not delivered")
            except Exception as e:  # noqa: BLE001 - one channel must not stop the others
                logger.warning("Channel %s failed for user %s: %s", name, delivery.user_id, e)
                failures.append(f"{name}: {e}")
        if failures:
            raise DeliveryFailure("; ".join(failures))
        return True
