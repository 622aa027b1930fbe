"""User interest in a product's restock.

One row per (user_id, product_id, channel_type). is_sent stays False until a send succeeds;
subscribing again resets it. The stock-out path resets it for the whole product.
"""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, false
from sqlalchemy.sql import func

from stocknotify.db.base import Base


class Subscription(Base):
    __tablename__ = "product_subscriptions"
    __table_args__ = (
        UniqueConstraint("user_id", "product_id", "channel_type", name="uq_product_subscriptions_user_product_type"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    channel_type = Column(String(32), nullable=False, server_default="restocked")
    is_sent = Column(Boolean, nullable=False, default=False, server_default=false())
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    sent_at = Column(DateTime(timezone=True), nullable=True)
