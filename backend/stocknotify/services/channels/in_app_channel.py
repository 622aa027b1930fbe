"""In-app channel: stores the message as an unread in-app notification for the user."""
from __future__ import annotations

from sqlalchemy.orm import Session

from stocknotify.models.in_app_notification import InAppNotification
from stocknotify.services.channels.base import Delivery


class InAppChannel:
    name = "in_app"

    def deliver(self, db: Session, delivery: Delivery) -> bool:
        # No commit: send_one commits on success and rolls back on failure
        db.add(InAppNotification(user_id=delivery.user_id, product_id=delivery.product_id, message=delivery.message))
        db.flush()
        return True
