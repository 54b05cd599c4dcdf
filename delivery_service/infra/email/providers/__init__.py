"""Email providers."""

from .base import BaseEmailProvider, EmailProvider
from .console import ConsoleEmailProvider
from .factory import build_email_provider
from .resend import ResendProvider

__all__ = [
    "BaseEmailProvider",
    "ConsoleEmailProvider",
    "EmailProvider",
    "ResendProvider",
    "build_email_provider",
]
