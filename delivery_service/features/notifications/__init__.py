"""Notifications feature package: persisted inbox plus channel routing."""

from .models import Notification, NotificationCategory, Recipient
from .schemas import ChannelPreferences, parse_payload

__all__ = [
    "ChannelPreferences",
    "Notification",
    "NotificationCategory",
    "Recipient",
    "parse_payload",
]
