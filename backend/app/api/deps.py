"""Common dependencies for API routes."""

from __future__ import annotations

from fastapi import HTTPException, Request, WebSocket, status

from chatline.realtime import RealtimeService


def _service_from_state(state) -> RealtimeService | None:
    service = getattr(state, "realtime", None)
    if isinstance(service, RealtimeService) and service.started:
        return service
    return None


def get_realtime(request: Request) -> RealtimeService:
    """Return the process realtime service for HTTP handlers."""

    service = _service_from_state(request.app.state)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Realtime service is not running",
        )
    return service


def get_realtime_for_websocket(websocket: WebSocket) -> RealtimeService | None:
    return _service_from_state(websocket.app.state)
