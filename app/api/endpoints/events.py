from fastapi import APIRouter, HTTPException

from app.models.events import ChangeEvent
from app.services.events import event_dispatcher

router = APIRouter(prefix="/events", tags=["events"])


@router.post("/", status_code=202)
async def publish_event(event: ChangeEvent) -> dict[str, str]:
    """Accept a change notification from the group or assessment service."""
    if not event_dispatcher.publish(event):
        raise HTTPException(status_code=503, detail="Event queue is full, retry later.")
    return {"status": "accepted", "kind": event.kind}
