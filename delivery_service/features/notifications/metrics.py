"""Prometheus metrics for notification routing."""

from __future__ import annotations

from prometheus_client import Counter

notification_created_total = Counter(
    "notification_created_total",
    "Notifications persisted by the router",
    labelnames=["category"],
)
"""
Counter for notification creation.

Labels:
    category: NotificationCategory value

Example:
    notification_created_total.labels(category="CLAIM_PAYOUT").inc()
"""

notification_channel_attempt_total = Counter(
    "notification_channel_attempt_total",
    "Channel delivery attempts made while routing notifications",
    labelnames=["channel", "outcome"],
)
"""
Labels:
    channel: email, sms
    outcome: success, failure, error
"""


__all__ = ["notification_channel_attempt_total", "notification_created_total"]
