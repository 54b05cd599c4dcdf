"""Modular Pydantic Settings v2 configuration.

One frozen settings model per concern, each read from environment
variables with its own prefix (APP_, DB_, EMAIL_, SMS_, DELIVERY_, LOG_)
and an optional .env file. Import via the cached loaders:

    from delivery_service.core.settings import get_delivery_settings

    settings = get_delivery_settings()
    print(settings.max_retries)
"""

from __future__ import annotations

from .app import AppSettings
from .database import DatabaseSettings
from .delivery import DeliverySettings
from .email import EmailSettings
from .loader import (
    clear_settings_cache,
    get_app_settings,
    get_db_settings,
    get_delivery_settings,
    get_email_settings,
    get_logging_settings,
    get_sms_settings,
)
from .logs import LoggingSettings
from .sms import SmsSettings

__all__ = [
    "AppSettings",
    "DatabaseSettings",
    "DeliverySettings",
    "EmailSettings",
    "LoggingSettings",
    "SmsSettings",
    "clear_settings_cache",
    "get_app_settings",
    "get_db_settings",
    "get_delivery_settings",
    "get_email_settings",
    "get_logging_settings",
    "get_sms_settings",
]
