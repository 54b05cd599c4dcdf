"""Pipeline dependency for FastAPI route handlers.

The pipeline is built in the application lifespan and stored on
``app.state.pipeline``; tests swap in their own by assigning the same
attribute.

Usage:
    from delivery_service.core.dependencies import PipelineDep

    @router.get("/failed")
    async def list_failed(pipeline: PipelineDep):
        return await pipeline.analytics.failed_messages()
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from delivery_service.features.pipeline import DeliveryPipeline


def get_pipeline(request: Request) -> DeliveryPipeline:
    """Return the pipeline attached to the running application.

    Raises:
        RuntimeError: If the lifespan has not built a pipeline.
    """
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        msg = "Delivery pipeline is not initialized"
        raise RuntimeError(msg)
    return pipeline


PipelineDep = Annotated[DeliveryPipeline, Depends(get_pipeline)]
"""Pipeline dependency alias.

Example:
    @router.post("/retry")
    async def run_retry(pipeline: PipelineDep): ...
"""

__all__ = ["PipelineDep", "get_pipeline"]
