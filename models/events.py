from pydantic import BaseModel, Field
from typing import Any

class TrackedEvent(BaseModel):
    """One SDK analytics event."""
    event: str = Field(..., description="Event name (e.g., 'screen_viewed', 'flow_completed').")
    user_id: str
    session_id: str | None = None
    timestamp: int | None = Field(default=None, description="Milliseconds since epoch; server time when omitted.")
    properties: dict[str, Any] | None = Field(default_factory=dict, description="Flexible JSON for extra context.")

class TrackEventsRequest(BaseModel):
    """Schema for POST /track-events."""
    events: list[TrackedEvent] | None = None

class TrackEventsResponse(BaseModel):
    success: bool
    inserted: int
    task_id: str | None = None
