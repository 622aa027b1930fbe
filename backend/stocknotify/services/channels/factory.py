"""
Channel sender factory.

settings.channel_sender picks the implementation:
- 'logging': LoggingChannelSender (log only; default)
- 'multi': MultiChannelSender over email, push, sms and in-app
The instance is created on first use and shared afterwards.
"""
from __future__ import annotations

from typing import Optional

from stocknotify.config import settings
from stocknotify.services.channels.base import ChannelSender
from stocknotify.services.channels.email_channel import EmailChannel
from stocknotify.services.channels.in_app_channel import InAppChannel
from stocknotify.services.channels.logging_sender import LoggingChannelSender
from stocknotify.services.channels.multi import MultiChannelSender
from stocknotify.services.channels.push_channel import PushChannel
from stocknotify.services.channels.sms_channel import SmsChannel

_channel_sender: Optional[ChannelSender] = None


def build_channel_sender(kind: str) -> ChannelSender:
    if kind == "multi":
        return MultiChannelSender([EmailChannel(), PushChannel(), SmsChannel(), InAppChannel()])
    return LoggingChannelSender()


def get_channel_sender() -> ChannelSender:
    global _channel_sender
    if _channel_sender is None:
        _channel_sender = build_channel_sender(settings.channel_sender)
    return _channel_sender


def set_channel_sender(sender: Optional[ChannelSender]) -> None:
    """Swap the shared sender (None resets to settings on next use)."""
    global _channel_sender
    _channel_sender = sender
