"""Pydantic schemas for the notifications feature.

Covers three things:
    - channel preferences stored on a Recipient
    - the category payload union validated at the router boundary
    - request/response models for the HTTP API
"""

from __future__ import annotations

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from delivery_service.core.exceptions import ValidationException
from delivery_service.features.notifications.models import NotificationCategory

# ============================================================================
# Channel preferences
# ============================================================================


class EmailPreferences(BaseModel):
    """Email channel switches."""

    model_config = ConfigDict(extra="ignore")

    enabled: bool = True
    policy_updates: bool = True
    claim_updates: bool = True
    payment_reminders: bool = True
    payment_confirmations: bool = True
    marketing_emails: bool = False


class SmsPreferences(BaseModel):
    """SMS channel switches. Opt-in: everything defaults to off."""

    model_config = ConfigDict(extra="ignore")

    enabled: bool = False
    urgent_claim_updates: bool = False
    payment_reminders: bool = False
    policy_expirations: bool = False


# Category -> preference flag. None means the category always qualifies.
_EMAIL_FLAGS: dict[NotificationCategory, str | None] = {
    NotificationCategory.POLICY_CREATED: "policy_updates",
    NotificationCategory.POLICY_RENEWAL: "policy_updates",
    NotificationCategory.POLICY_EXPIRING: "policy_updates",
    NotificationCategory.CLAIM_SUBMITTED: "claim_updates",
    NotificationCategory.CLAIM_STATUS_UPDATE: "claim_updates",
    NotificationCategory.CLAIM_PAYOUT: "claim_updates",
    NotificationCategory.PAYMENT_DUE: "payment_reminders",
    NotificationCategory.PAYMENT_FAILED: "payment_reminders",
    NotificationCategory.PAYMENT_CONFIRMED: "payment_confirmations",
    NotificationCategory.WELCOME: None,
    NotificationCategory.GENERAL: None,
}

# Categories absent here never go out by SMS.
_SMS_FLAGS: dict[NotificationCategory, str] = {
    NotificationCategory.CLAIM_SUBMITTED: "urgent_claim_updates",
    NotificationCategory.CLAIM_STATUS_UPDATE: "urgent_claim_updates",
    NotificationCategory.CLAIM_PAYOUT: "urgent_claim_updates",
    NotificationCategory.PAYMENT_DUE: "payment_reminders",
    NotificationCategory.PAYMENT_FAILED: "payment_reminders",
    NotificationCategory.POLICY_EXPIRING: "policy_expirations",
    NotificationCategory.POLICY_RENEWAL: "policy_expirations",
}


class ChannelPreferences(BaseModel):
    """Per-recipient channel preferences.

    Built from the JSON document on ``Recipient.preferences``; missing
    sections or keys fall back to the defaults above.
    """

    model_config = ConfigDict(extra="ignore")

    email: EmailPreferences = Field(default_factory=EmailPreferences)
    sms: SmsPreferences = Field(default_factory=SmsPreferences)

    @classmethod
    def from_document(cls, document: dict[str, Any] | None) -> ChannelPreferences:
        return cls.model_validate(document or {})

    def wants_email(self, category: NotificationCategory) -> bool:
        """Whether ``category`` qualifies for the email channel.

        Unmapped categories (WELCOME, GENERAL) always qualify, even with
        email disabled.
        """
        flag = _EMAIL_FLAGS.get(category)
        if flag is None:
            return True
        return self.email.enabled and bool(getattr(self.email, flag))

    def wants_sms(self, category: NotificationCategory) -> bool:
        """Whether ``category`` qualifies for SMS (phone presence not checked)."""
        flag = _SMS_FLAGS.get(category)
        if flag is None or not self.sms.enabled:
            return False
        return bool(getattr(self.sms, flag))


# ============================================================================
# Category payloads
# ============================================================================


class _PayloadBase(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class PolicyCreatedPayload(_PayloadBase):
    kind: Literal["POLICY_CREATED"] = "POLICY_CREATED"
    policy_number: str = Field(..., min_length=1)
    policy_type: str = Field(..., min_length=1)
    effective_date: date | None = None


class PolicyRenewalPayload(_PayloadBase):
    kind: Literal["POLICY_RENEWAL"] = "POLICY_RENEWAL"
    policy_number: str = Field(..., min_length=1)
    renewal_date: date


class PolicyExpiringPayload(_PayloadBase):
    kind: Literal["POLICY_EXPIRING"] = "POLICY_EXPIRING"
    policy_number: str = Field(..., min_length=1)
    expiration_date: date


class ClaimSubmittedPayload(_PayloadBase):
    kind: Literal["CLAIM_SUBMITTED"] = "CLAIM_SUBMITTED"
    claim_number: str = Field(..., min_length=1)
    policy_number: str | None = None


class ClaimStatusUpdatePayload(_PayloadBase):
    kind: Literal["CLAIM_STATUS_UPDATE"] = "CLAIM_STATUS_UPDATE"
    claim_number: str = Field(..., min_length=1)
    status: str = Field(..., min_length=1)
    notes: str | None = None


class ClaimPayoutPayload(_PayloadBase):
    kind: Literal["CLAIM_PAYOUT"] = "CLAIM_PAYOUT"
    claim_number: str = Field(..., min_length=1)
    amount: Decimal = Field(..., ge=0)


class PaymentDuePayload(_PayloadBase):
    kind: Literal["PAYMENT_DUE"] = "PAYMENT_DUE"
    policy_number: str = Field(..., min_length=1)
    amount: Decimal = Field(..., ge=0)
    due_date: date


class PaymentConfirmedPayload(_PayloadBase):
    kind: Literal["PAYMENT_CONFIRMED"] = "PAYMENT_CONFIRMED"
    policy_number: str | None = None
    amount: Decimal = Field(..., ge=0)
    reference: str | None = None


class PaymentFailedPayload(_PayloadBase):
    kind: Literal["PAYMENT_FAILED"] = "PAYMENT_FAILED"
    policy_number: str | None = None
    amount: Decimal = Field(..., ge=0)
    reason: str | None = None


class WelcomePayload(_PayloadBase):
    kind: Literal["WELCOME"] = "WELCOME"
    login_url: str | None = None


class GeneralPayload(_PayloadBase):
    kind: Literal["GENERAL"] = "GENERAL"
    data: dict[str, Any] = Field(default_factory=dict)


NotificationPayload = Annotated[
    PolicyCreatedPayload
    | PolicyRenewalPayload
    | PolicyExpiringPayload
    | ClaimSubmittedPayload
    | ClaimStatusUpdatePayload
    | ClaimPayoutPayload
    | PaymentDuePayload
    | PaymentConfirmedPayload
    | PaymentFailedPayload
    | WelcomePayload
    | GeneralPayload,
    Field(discriminator="kind"),
]

_payload_adapter: TypeAdapter[NotificationPayload] = TypeAdapter(NotificationPayload)


def parse_payload(category: NotificationCategory, raw: dict[str, Any] | None) -> NotificationPayload:
    """Validate ``raw`` as the payload variant for ``category``.

    ``kind`` is injected from the category when the caller omits it.

    Raises:
        ValidationException: If ``kind`` disagrees with the category or
            the payload does not match the variant's fields.
    """
    data = dict(raw or {})
    kind = data.setdefault("kind", category.value)
    if kind != category.value:
        raise ValidationException(
            detail=f"Payload kind {kind!r} does not match category {category.value}",
            type="payload-kind-mismatch",
            extra={"category": category.value, "kind": kind},
        )

    try:
        return _payload_adapter.validate_python(data)
    except ValidationError as e:
        raise ValidationException(
            detail=f"Invalid payload for category {category.value}",
            type="invalid-payload",
            extra={"errors": json.loads(e.json(include_url=False))},
        ) from e


def payload_variables(payload: NotificationPayload) -> dict[str, Any]:
    """Flatten a payload into JSON-safe template variables."""
    variables = payload.model_dump(mode="json", exclude_none=True)
    if isinstance(payload, GeneralPayload):
        variables.update(payload.data)
    return variables


# ============================================================================
# API schemas
# ============================================================================


class NotificationCreate(BaseModel):
    """Payload for emitting a notification."""

    user_id: str = Field(..., min_length=1, max_length=64, description="Recipient user id")
    category: NotificationCategory
    title: str = Field(..., min_length=1, max_length=500)
    message: str = Field(..., min_length=1)
    payload: dict[str, Any] = Field(
        default_factory=dict,
        description="Category payload; 'kind' is optional and must equal the category",
    )


class NotificationResponse(BaseModel):
    """Notification as returned from the API."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: str
    category: NotificationCategory
    title: str
    message: str
    payload: dict[str, Any]
    email_attempted: bool
    sms_attempted: bool
    read: bool
    read_at: datetime | None = None
    created_at: datetime


class NotificationListResponse(BaseModel):
    """One page of a user's inbox."""

    items: list[NotificationResponse]
    total: int
    limit: int
    offset: int
    has_more: bool
    unread_count: int


class UnreadCountResponse(BaseModel):
    user_id: str
    unread_count: int


class MarkAllReadResponse(BaseModel):
    user_id: str
    updated: int


__all__ = [
    "ChannelPreferences",
    "ClaimPayoutPayload",
    "ClaimStatusUpdatePayload",
    "ClaimSubmittedPayload",
    "EmailPreferences",
    "GeneralPayload",
    "MarkAllReadResponse",
    "NotificationCreate",
    "NotificationListResponse",
    "NotificationPayload",
    "NotificationResponse",
    "PaymentConfirmedPayload",
    "PaymentDuePayload",
    "PaymentFailedPayload",
    "PolicyCreatedPayload",
    "PolicyExpiringPayload",
    "PolicyRenewalPayload",
    "SmsPreferences",
    "UnreadCountResponse",
    "WelcomePayload",
    "parse_payload",
    "payload_variables",
]
