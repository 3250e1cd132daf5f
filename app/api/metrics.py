from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from app.observability.metrics import MetricsRegistry
from app.services.dependencies import get_metrics


router = APIRouter(tags=["metrics"])


@router.get("/metrics", include_in_schema=False)
async def metrics(registry: MetricsRegistry = Depends(get_metrics)) -> Response:
    # render() raises InternalError, which the app maps to a 500.
    return Response(content=registry.render(), media_type=registry.content_type)
