"""FastAPI dependencies for route handlers.

Usage:
    from delivery_service.core.dependencies import PipelineDep, verify_cron_secret

    @router.post("/retry", dependencies=[Depends(verify_cron_secret)])
    async def run_retry(pipeline: PipelineDep): ...
"""

from delivery_service.core.dependencies.auth import CronAuthorized, verify_cron_secret
from delivery_service.core.dependencies.pipeline import PipelineDep, get_pipeline

__all__ = ["CronAuthorized", "PipelineDep", "get_pipeline", "verify_cron_secret"]
