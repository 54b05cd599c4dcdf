"""Build the configured email provider."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .console import ConsoleEmailProvider
from .resend import ResendProvider

if TYPE_CHECKING:
    import httpx

    from delivery_service.core.settings.email import EmailSettings

    from .base import BaseEmailProvider

logger = logging.getLogger(__name__)


def build_email_provider(
    settings: EmailSettings,
    client: httpx.AsyncClient | None = None,
) -> BaseEmailProvider:
    """Instantiate the provider selected by ``EMAIL_PROVIDER``.

    Args:
        settings: Email settings.
        client: Shared httpx client owned by the application lifespan.

    Returns:
        Ready-to-use provider.
    """
    if settings.provider == "resend":
        assert settings.api_key is not None  # enforced by EmailSettings validator
        provider: BaseEmailProvider = ResendProvider(
            api_key=settings.api_key.get_secret_value(),
            default_sender=settings.default_sender,
            base_url=settings.api_base_url,
            timeout=settings.timeout,
            client=client,
        )
    else:
        provider = ConsoleEmailProvider(settings.default_sender)

    logger.info("Email provider selected", extra={"provider": provider.provider_name})
    return provider


__all__ = ["build_email_provider"]
