"""In-app notification: what the in-app channel delivers. read_at NULL = unread."""
from sqlalchemy import Column, DateTime, Integer, Text
from sqlalchemy.sql import func

from stocknotify.db.base import Base


class InAppNotification(Base):
    __tablename__ = "in_app_notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    product_id = Column(Integer, nullable=False)
    message = Column(Text, nullable=False)
    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
