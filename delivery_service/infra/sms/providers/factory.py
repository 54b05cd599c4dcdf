"""Build the configured SMS provider."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .console import ConsoleSmsProvider
from .twilio import TwilioProvider

if TYPE_CHECKING:
    import httpx

    from delivery_service.core.settings.sms import SmsSettings

    from .base import BaseSmsProvider

logger = logging.getLogger(__name__)


def build_sms_provider(
    settings: SmsSettings,
    client: httpx.AsyncClient | None = None,
) -> BaseSmsProvider:
    """Instantiate the provider selected by ``SMS_PROVIDER``."""
    if settings.provider == "twilio":
        assert settings.account_sid and settings.auth_token and settings.from_number
        provider: BaseSmsProvider = TwilioProvider(
            account_sid=settings.account_sid,
            auth_token=settings.auth_token.get_secret_value(),
            from_number=settings.from_number,
            base_url=settings.api_base_url,
            timeout=settings.timeout,
            client=client,
        )
    else:
        provider = ConsoleSmsProvider()

    logger.info("SMS provider selected", extra={"provider": provider.provider_name})
    return provider


__all__ = ["build_sms_provider"]
