"""Scrape endpoint for the realtime counters and gauges."""

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from app.monitoring.registry import CONTENT_TYPE, registry


router = APIRouter(tags=["metrics"])


@router.get("/metrics", response_class=PlainTextResponse)
def export_metrics() -> PlainTextResponse:
    return PlainTextResponse(registry.render(), media_type=CONTENT_TYPE)
