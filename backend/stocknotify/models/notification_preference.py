"""Per-user channel toggles. Exactly one row per user; defaults email + in-app on, push + sms off."""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, false, true
from sqlalchemy.sql import func

from stocknotify.db.base import Base


class NotificationPreference(Base):
    __tablename__ = "notification_preferences"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    email_enabled = Column(Boolean, nullable=False, default=True, server_default=true())
    push_enabled = Column(Boolean, nullable=False, default=False, server_default=false())
    sms_enabled = Column(Boolean, nullable=False, default=False, server_default=false())
    in_app_enabled = Column(Boolean, nullable=False, default=True, server_default=true())
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
