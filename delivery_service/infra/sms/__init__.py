"""Outbound SMS infrastructure."""

from delivery_service.infra.sms.phone import PhoneNumberError, normalize_phone
from delivery_service.infra.sms.providers import (
    BaseSmsProvider,
    ConsoleSmsProvider,
    SmsProvider,
    TwilioProvider,
    build_sms_provider,
)

__all__ = [
    "BaseSmsProvider",
    "ConsoleSmsProvider",
    "PhoneNumberError",
    "SmsProvider",
    "TwilioProvider",
    "build_sms_provider",
    "normalize_phone",
]
