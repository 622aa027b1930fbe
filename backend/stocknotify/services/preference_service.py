"""
Notification preferences: one row per user with four channel toggles.

get_preferences creates the default row on first access. update_preferences is an upsert
for existing users (unknown user -> NotFound); the unique user_id keeps it to one row.
"""
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stocknotify.core.constants import ALL_CHANNELS, DEFAULT_PREFERENCES
from stocknotify.core.errors import require_positive_id
from stocknotify.models.notification_preference import NotificationPreference
from stocknotify.services.catalog_service import require_user

logger = logging.getLogger(__name__)


def _find(db: Session, user_id: int) -> NotificationPreference | None:
    return db.query(NotificationPreference).filter(NotificationPreference.user_id == user_id).first()


def get_preferences(db: Session, user_id: int) -> NotificationPreference:
    """Return the user's preferences, persisting the defaults if none exist yet."""
    require_positive_id(user_id, "user_id")
    row = _find(db, user_id)
    if row is not None:
        return row
    row = NotificationPreference(user_id=user_id, **DEFAULT_PREFERENCES)
    db.add(row)
    try:
        db.commit()
    except IntegrityError:
        # Another request created it first
        db.rollback()
        row = _find(db, user_id)
        if row is None:
            raise
        return row
    db.refresh(row)
    logger.info("Created default notification preferences for user %s", user_id)
    return row


def update_preferences(
    db: Session,
    user_id: int,
    *,
    email: bool,
    push: bool,
    sms: bool,
    in_app: bool,
) -> NotificationPreference:
    """Replace all four channel flags for an existing user."""
    require_user(db, user_id)
    row = get_preferences(db, user_id)
    row.email_enabled = bool(email)
    row.push_enabled = bool(push)
    row.sms_enabled = bool(sms)
    row.in_app_enabled = bool(in_app)
    db.commit()
    db.refresh(row)
    return row


def enabled_channels(pref: NotificationPreference) -> list[str]:
    """Channel names switched on, in ALL_CHANNELS order."""
    return [c for c in ALL_CHANNELS if getattr(pref, f"{c}_enabled")]


def preferences_to_dict(pref: NotificationPreference) -> dict:
    return {
        "id": pref.id,
        "user_id": pref.user_id,
        "email_enabled": pref.email_enabled,
        "push_enabled": pref.push_enabled,
        "sms_enabled": pref.sms_enabled,
        "in_app_enabled": pref.in_app_enabled,
        "created_at": pref.created_at.isoformat() if pref.created_at else None,
        "updated_at": pref.updated_at.isoformat() if pref.updated_at else None,
    }
