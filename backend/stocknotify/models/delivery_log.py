"""One row per delivery attempt of a subscription.

status: pending -> sent | failed; failed -> retried | failed (retry_count += 1).
A failed row is retryable while retry_count < max_retries. Retries update this row; they never add one.
subscription_id is kept (no FK) so the log survives an unsubscribe.
"""
from sqlalchemy import CheckConstraint, Column, DateTime, Index, Integer, String, Text
from sqlalchemy.sql import func

from stocknotify.db.base import Base


class DeliveryLog(Base):
    __tablename__ = "delivery_logs"
    __table_args__ = (
        CheckConstraint("retry_count <= max_retries", name="ck_delivery_logs_retry_bound"),
        Index("ix_delivery_logs_status_created", "status", "created_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    subscription_id = Column(Integer, nullable=False, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    product_id = Column(Integer, nullable=False, index=True)
    channel_type = Column(String(32), nullable=False, server_default="restocked")
    message = Column(Text, nullable=False)
    status = Column(String(16), nullable=False, server_default="pending")  # pending | sent | failed | retried
    retry_count = Column(Integer, nullable=False, default=0, server_default="0")
    max_retries = Column(Integer, nullable=False, default=3, server_default="3")
    error_message = Column(Text, nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
