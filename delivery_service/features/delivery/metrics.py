"""Prometheus metrics for tracked delivery.

Usage:
    from delivery_service.features.delivery.metrics import delivery_email_sent_total

    delivery_email_sent_total.labels(category="PAYMENT_DUE", outcome="success").inc()
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram

# =============================================================================
# Provider Sends
# =============================================================================

delivery_email_sent_total = Counter(
    "delivery_email_sent_total",
    "Tracked email send attempts",
    labelnames=["category", "outcome"],
)
"""
Counter for tracked email sends (first attempts and retries).

Labels:
    category: NotificationCategory value
    outcome: success, failure
"""

delivery_sms_sent_total = Counter(
    "delivery_sms_sent_total",
    "SMS send attempts",
    labelnames=["outcome"],
)
"""
Labels:
    outcome: success, failure, invalid_phone
"""

delivery_provider_duration_seconds = Histogram(
    "delivery_provider_duration_seconds",
    "Time spent in provider calls",
    labelnames=["channel"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)
"""
Histogram of provider call latency.

Labels:
    channel: email, sms
"""

# =============================================================================
# Webhooks
# =============================================================================

delivery_webhook_events_total = Counter(
    "delivery_webhook_events_total",
    "Provider webhook events processed",
    labelnames=["event_type", "outcome"],
)
"""
Labels:
    event_type: email.delivered, email.opened, ...
    outcome: applied, duplicate, stale, unmatched, ignored
"""

delivery_webhook_unmatched_total = Counter(
    "delivery_webhook_unmatched_total",
    "Webhook events whose provider message id matched no tracked message",
    labelnames=["event_type"],
)

# =============================================================================
# Retries / Bulk
# =============================================================================

delivery_retry_processed_total = Counter(
    "delivery_retry_processed_total",
    "Messages processed by retry passes",
    labelnames=["outcome"],
)
"""
Labels:
    outcome: sent, failed, dead_lettered, skipped, error
"""

delivery_dead_lettered_total = Counter(
    "delivery_dead_lettered_total",
    "Messages moved to DEAD_LETTERED after exhausting retries",
)

delivery_bulk_batches_total = Counter(
    "delivery_bulk_batches_total",
    "Bulk send batches dispatched",
)


__all__ = [
    "delivery_bulk_batches_total",
    "delivery_dead_lettered_total",
    "delivery_email_sent_total",
    "delivery_provider_duration_seconds",
    "delivery_retry_processed_total",
    "delivery_sms_sent_total",
    "delivery_webhook_events_total",
    "delivery_webhook_unmatched_total",
]
