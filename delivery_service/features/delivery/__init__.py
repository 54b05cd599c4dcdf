"""Tracked delivery feature package."""

from .models import DeliveryStatus, EmailTemplate, TrackedMessage, TrackingEvent, TrackingEventKind

__all__ = [
    "DeliveryStatus",
    "EmailTemplate",
    "TrackedMessage",
    "TrackingEvent",
    "TrackingEventKind",
]
