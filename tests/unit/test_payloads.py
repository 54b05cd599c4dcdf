"""Unit tests for the category payload union and channel preferences."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from delivery_service.core.exceptions import ValidationException
from delivery_service.features.notifications.models import NotificationCategory as C
from delivery_service.features.notifications.schemas import (
    ChannelPreferences,
    ClaimPayoutPayload,
    GeneralPayload,
    PaymentDuePayload,
    parse_payload,
    payload_variables,
)


class TestParsePayload:
    """Tests for tagged-union validation at the router boundary."""

    def test_kind_injected_from_category(self) -> None:
        """Test that an omitted kind is taken from the category."""
        payload = parse_payload(
            C.PAYMENT_DUE,
            {"policy_number": "HO-1", "amount": "125.50", "due_date": "2026-04-01"},
        )
        assert isinstance(payload, PaymentDuePayload)
        assert payload.amount == Decimal("125.50")
        assert payload.due_date == date(2026, 4, 1)

    def test_explicit_matching_kind(self) -> None:
        """Test that a matching explicit kind is accepted."""
        payload = parse_payload(C.CLAIM_PAYOUT, {"kind": "CLAIM_PAYOUT", "claim_number": "CLM-9", "amount": 10})
        assert isinstance(payload, ClaimPayoutPayload)

    def test_kind_mismatch(self) -> None:
        """Test that a kind that disagrees with the category is rejected."""
        with pytest.raises(ValidationException) as exc_info:
            parse_payload(C.CLAIM_PAYOUT, {"kind": "PAYMENT_DUE"})
        assert exc_info.value.type == "payload-kind-mismatch"

    def test_missing_field(self) -> None:
        """Test that required fields are enforced per variant."""
        with pytest.raises(ValidationException) as exc_info:
            parse_payload(C.CLAIM_STATUS_UPDATE, {"claim_number": "CLM-1"})
        assert exc_info.value.type == "invalid-payload"
        locs = [tuple(err["loc"]) for err in exc_info.value.extra["errors"]]
        assert any("status" in loc for loc in locs)

    def test_negative_amount(self) -> None:
        """Test that amounts must be non-negative."""
        with pytest.raises(ValidationException):
            parse_payload(C.PAYMENT_CONFIRMED, {"amount": "-1"})

    def test_unknown_field_forbidden(self) -> None:
        """Test that variants reject unexpected fields."""
        with pytest.raises(ValidationException):
            parse_payload(C.WELCOME, {"login_url": "https://x", "surprise": True})

    def test_empty_payload_for_optional_variants(self) -> None:
        """Test that WELCOME and GENERAL accept an empty payload."""
        assert parse_payload(C.WELCOME, None).kind == "WELCOME"
        assert isinstance(parse_payload(C.GENERAL, {}), GeneralPayload)


class TestPayloadVariables:
    """Tests for flattening payloads into template variables."""

    def test_json_safe_and_without_nones(self) -> None:
        """Test that values are JSON-safe and None fields are dropped."""
        payload = parse_payload(C.PAYMENT_DUE, {"policy_number": "HO-1", "amount": "99.00", "due_date": "2026-04-01"})
        variables = payload_variables(payload)
        assert variables["due_date"] == "2026-04-01"
        assert variables["amount"] == "99.00"

        claim = parse_payload(C.CLAIM_SUBMITTED, {"claim_number": "CLM-1"})
        assert "policy_number" not in payload_variables(claim)

    def test_general_data_merged(self) -> None:
        """Test that GENERAL data keys become top-level variables."""
        payload = parse_payload(C.GENERAL, {"data": {"agent": "Sam"}})
        assert payload_variables(payload)["agent"] == "Sam"


class TestChannelPreferences:
    """Tests for per-category channel qualification."""

    def test_defaults(self) -> None:
        """Test that email is on for transactional categories and SMS is opt-in."""
        prefs = ChannelPreferences.from_document(None)
        assert prefs.wants_email(C.CLAIM_SUBMITTED)
        assert prefs.wants_email(C.WELCOME)
        assert not prefs.wants_sms(C.CLAIM_SUBMITTED)

    def test_email_flag_off(self) -> None:
        """Test that a category flag disables only its categories."""
        prefs = ChannelPreferences.from_document({"email": {"claim_updates": False}})
        assert not prefs.wants_email(C.CLAIM_STATUS_UPDATE)
        assert prefs.wants_email(C.PAYMENT_DUE)

    def test_email_disabled_keeps_welcome_and_general(self) -> None:
        """Test that email.enabled=false blocks flagged categories but not WELCOME or GENERAL."""
        prefs = ChannelPreferences.from_document({"email": {"enabled": False}})
        assert prefs.wants_email(C.WELCOME)
        assert prefs.wants_email(C.GENERAL)
        flagged = [category for category in C if category not in (C.WELCOME, C.GENERAL)]
        assert not any(prefs.wants_email(category) for category in flagged)

    def test_sms_requires_enabled_and_flag(self) -> None:
        """Test that SMS needs both the master switch and the category flag."""
        flag_only = ChannelPreferences.from_document({"sms": {"urgent_claim_updates": True}})
        assert not flag_only.wants_sms(C.CLAIM_STATUS_UPDATE)

        enabled = ChannelPreferences.from_document({"sms": {"enabled": True, "urgent_claim_updates": True}})
        assert enabled.wants_sms(C.CLAIM_STATUS_UPDATE)
        assert not enabled.wants_sms(C.PAYMENT_DUE)

    def test_sms_never_for_unmapped_categories(self) -> None:
        """Test that categories without an SMS flag never qualify."""
        prefs = ChannelPreferences.from_document(
            {
                "sms": {
                    "enabled": True,
                    "urgent_claim_updates": True,
                    "payment_reminders": True,
                    "policy_expirations": True,
                }
            }
        )
        assert not prefs.wants_sms(C.WELCOME)
        assert not prefs.wants_sms(C.PAYMENT_CONFIRMED)
        assert not prefs.wants_sms(C.GENERAL)

    def test_unknown_keys_ignored(self) -> None:
        """Test that extra keys in the stored document are tolerated."""
        prefs = ChannelPreferences.from_document({"push": {"enabled": True}, "email": {"legacy": 1}})
        assert prefs.email.enabled
