"""Registered user: owner of subscriptions, preferences and push tokens."""
from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.sql import func

from stocknotify.db.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(128), nullable=False)
    email = Column(String(256), nullable=False, unique=True, index=True)
    role = Column(String(16), nullable=False, server_default="user")  # 'admin' | 'user'
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
