from fastapi import APIRouter, Header, HTTPException, status

from models.events import TrackEventsRequest, TrackEventsResponse
from services.events import build_event_rows
from auth.security import ApiClient
from api.depends import CLIENT_AUTH

# Import the Celery task
from celery_tasks.event_tasks import insert_events_to_db
import logging

logger = logging.getLogger(__name__)

events_router = APIRouter(tags=["events"])


# POST /track-events
@events_router.post("/track-events", response_model=TrackEventsResponse)
def track_events_route(
    request: TrackEventsRequest,
    client: ApiClient = CLIENT_AUTH,
    cf_ipcountry: str | None = Header(default=None),
):
    """
    Record a batch of SDK analytics events.
    The batch goes straight to a celery worker; this returns as soon as it is queued.
    """
    if not request.events:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid events array")

    rows = build_event_rows(client, request.events, cf_ipcountry)

    # .delay() is non-blocking
    task = insert_events_to_db.delay(rows)
    logger.debug("insert_events_to_db task: %s (%d events)", task.id, len(rows))

    return TrackEventsResponse(success=True, inserted=len(rows), task_id=task.id)
