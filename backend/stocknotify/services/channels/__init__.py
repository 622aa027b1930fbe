from stocknotify.services.channels.base import Channel, ChannelSender, Delivery
from stocknotify.services.channels.factory import build_channel_sender, get_channel_sender, set_channel_sender
from stocknotify.services.channels.logging_sender import LoggingChannelSender
from stocknotify.services.channels.multi import MultiChannelSender

__all__ = [
    "Channel",
    "ChannelSender",
    "Delivery",
    "LoggingChannelSender",
    "MultiChannelSender",
    "build_channel_sender",
    "get_channel_sender",
    "set_channel_sender",
]
