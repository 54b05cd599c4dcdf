"""Outbound email infrastructure."""

from delivery_service.infra.email.providers import (
    BaseEmailProvider,
    ConsoleEmailProvider,
    EmailProvider,
    ResendProvider,
    build_email_provider,
)
from delivery_service.infra.email.schemas import EmailMessage

__all__ = [
    "BaseEmailProvider",
    "ConsoleEmailProvider",
    "EmailMessage",
    "EmailProvider",
    "ResendProvider",
    "build_email_provider",
]
