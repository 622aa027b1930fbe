from stocknotify.models.delivery_log import DeliveryLog
from stocknotify.models.in_app_notification import InAppNotification
from stocknotify.models.inventory import Inventory
from stocknotify.models.notification_preference import NotificationPreference
from stocknotify.models.product import Product
from stocknotify.models.push_token import PushToken
from stocknotify.models.subscription import Subscription
from stocknotify.models.user import User

__all__ = [
    "DeliveryLog",
    "InAppNotification",
    "Inventory",
    "NotificationPreference",
    "Product",
    "PushToken",
    "Subscription",
    "User",
]
