"""
Channel sender interface.

A sender gets one Delivery (who, what, which channels are switched on) and reports
True on success. Returning False or raising both count as a failed attempt; the
exception text becomes the delivery log's error_message.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from sqlalchemy.orm import Session

from stocknotify.core.constants import ALL_CHANNELS
from stocknotify.models.notification_preference import NotificationPreference


@dataclass(frozen=True)
class Delivery:
    user_id: int
    product_id: int
    message: str
    email_enabled: bool = True
    push_enabled: bool = False
    sms_enabled: bool = False
    in_app_enabled: bool = True

    @classmethod
    def from_preference(cls, user_id: int, product_id: int, message: str, pref: NotificationPreference) -> "Delivery":
        return cls(
            user_id=user_id,
            product_id=product_id,
            message=message,
            email_enabled=bool(pref.email_enabled),
            push_enabled=bool(pref.push_enabled),
            sms_enabled=bool(pref.sms_enabled),
            in_app_enabled=bool(pref.in_app_enabled),
        )

    @property
    def channels(self) -> list[str]:
        return [c for c in ALL_CHANNELS if getattr(self, f"{c}_enabled")]


class ChannelSender(Protocol):
    def send(self, db: Session, delivery: Delivery) -> bool:  # pragma: no cover - Protocol
        ...


class Channel(Protocol):
    """One transport (email, push, sms, in-app) used by MultiChannelSender."""

    name: str

    def deliver(self, db: Session, delivery: Delivery) -> bool:  # pragma: no cover - Protocol
        ...
