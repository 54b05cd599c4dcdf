"""Bearer-secret authorization for cron-style trigger endpoints."""

from __future__ import annotations

import logging
import secrets
from typing import Annotated

from fastapi import Depends, Header

from delivery_service.core.dependencies.pipeline import PipelineDep
from delivery_service.core.exceptions import UnauthorizedException

logger = logging.getLogger(__name__)


async def verify_cron_secret(
    pipeline: PipelineDep,
    authorization: Annotated[str | None, Header()] = None,
) -> None:
    """Require ``Authorization: Bearer <DELIVERY_CRON_SECRET>`` when a secret is set.

    Raises:
        UnauthorizedException: Secret configured and the header is missing or wrong.
    """
    secret = pipeline.settings.cron_secret
    if secret is None:
        return

    expected = f"Bearer {secret.get_secret_value()}"
    if authorization is None or not secrets.compare_digest(authorization.encode(), expected.encode()):
        logger.warning("Rejected trigger request with invalid cron secret")
        raise UnauthorizedException(detail="Invalid or missing cron secret", type="invalid-cron-secret")


CronAuthorized = Depends(verify_cron_secret)

__all__ = ["CronAuthorized", "verify_cron_secret"]
