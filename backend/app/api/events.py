"""Push application events to connected users and group rooms.

Delivery is best effort: offline users and empty rooms are not an error and
simply report ``delivered == 0``. Callers are responsible for checking that
the recipients are allowed to see the event.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from app.api.deps import get_realtime
from app.schemas import EventDelivery, EventPublish
from chatline.realtime import RealtimeService

router = APIRouter(prefix="/events", tags=["events"])


@router.post(
    "/users/{user_id}",
    response_model=EventDelivery,
    status_code=status.HTTP_202_ACCEPTED,
)
def publish_to_user(
    user_id: str,
    body: EventPublish,
    realtime: RealtimeService = Depends(get_realtime),
) -> EventDelivery:
    delivered = realtime.emit(user_id, body.event, body.payload)
    return EventDelivery(event=body.event, delivered=int(delivered))


@router.post(
    "/rooms/{group_id}",
    response_model=EventDelivery,
    status_code=status.HTTP_202_ACCEPTED,
)
def publish_to_room(
    group_id: str,
    body: EventPublish,
    realtime: RealtimeService = Depends(get_realtime),
) -> EventDelivery:
    delivered = realtime.emit_to_room(group_id, body.event, body.payload)
    return EventDelivery(event=body.event, delivered=delivered)
