"""Unit tests for settings validation and environment loading."""

from __future__ import annotations

from pydantic import ValidationError
import pytest

from delivery_service.core.settings import (
    EmailSettings,
    SmsSettings,
    get_delivery_settings,
    get_email_settings,
)


@pytest.fixture(autouse=True)
def _isolate_provider_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("EMAIL_API_KEY", "SMS_ACCOUNT_SID", "SMS_AUTH_TOKEN", "SMS_FROM_NUMBER"):
        monkeypatch.delenv(name, raising=False)


class TestEmailSettings:
    """Tests for EmailSettings."""

    def test_resend_requires_api_key(self) -> None:
        """Test that selecting resend without a key fails validation."""
        with pytest.raises(ValidationError, match="EMAIL_API_KEY"):
            EmailSettings(provider="resend")

    def test_resend_with_key(self) -> None:
        """Test a valid resend configuration keeps the key secret."""
        settings = EmailSettings(provider="resend", api_key="re_test")
        assert settings.api_key is not None
        assert settings.api_key.get_secret_value() == "re_test"
        assert "re_test" not in repr(settings)

    def test_default_sender(self) -> None:
        """Test sender formatting with and without a display name."""
        assert EmailSettings(from_address="a@example.com", from_name="Claims").default_sender == (
            "Claims <a@example.com>"
        )
        assert EmailSettings(from_address="a@example.com", from_name=None).default_sender == "a@example.com"

    def test_loaded_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that EMAIL_* variables feed the cached loader."""
        monkeypatch.setenv("EMAIL_FROM_ADDRESS", "claims@example.com")
        assert get_email_settings().from_address == "claims@example.com"


class TestSmsSettings:
    """Tests for SmsSettings."""

    def test_twilio_requires_credentials(self) -> None:
        """Test that twilio needs SID, token and sender number."""
        with pytest.raises(ValidationError, match="SMS_ACCOUNT_SID"):
            SmsSettings(provider="twilio", account_sid="AC123")

    def test_twilio_complete(self) -> None:
        settings = SmsSettings(
            provider="twilio", account_sid="AC123", auth_token="tok", from_number="+15550001111"
        )
        assert settings.provider == "twilio"

    def test_from_number_must_be_e164(self) -> None:
        """Test the sender number pattern."""
        with pytest.raises(ValidationError):
            SmsSettings(from_number="555-000-1111")


class TestDeliverySettings:
    """Tests for DeliverySettings loading."""

    def test_defaults(self) -> None:
        settings = get_delivery_settings()
        assert settings.max_retries == 3
        assert settings.bulk_batch_size == 50

    def test_environment_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test DELIVERY_* overrides, including the secret."""
        monkeypatch.setenv("DELIVERY_MAX_RETRIES", "5")
        monkeypatch.setenv("DELIVERY_CRON_SECRET", "s3cret")

        settings = get_delivery_settings()

        assert settings.max_retries == 5
        assert settings.cron_secret is not None
        assert settings.cron_secret.get_secret_value() == "s3cret"

    def test_bounds_enforced(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that out-of-range values fail at load time."""
        monkeypatch.setenv("DELIVERY_BULK_BATCH_SIZE", "500")
        with pytest.raises(ValidationError):
            get_delivery_settings()
