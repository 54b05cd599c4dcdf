"""SMS providers."""

from .base import BaseSmsProvider, SmsProvider
from .console import ConsoleSmsProvider
from .factory import build_sms_provider
from .twilio import TwilioProvider

__all__ = [
    "BaseSmsProvider",
    "ConsoleSmsProvider",
    "SmsProvider",
    "TwilioProvider",
    "build_sms_provider",
]
