from datetime import datetime, timezone
from typing import Any
from models.events import TrackedEvent
from auth.security import ApiClient

UNKNOWN_COUNTRY = "Unknown"

# Properties lifted into their own columns so analytics can filter on them
PROMOTED_PROPERTIES = ("flow_id", "experiment_id", "variant_id", "screen_id")


def event_timestamp(milliseconds: int | None) -> str:
    if milliseconds:
        return datetime.fromtimestamp(milliseconds / 1000, tz=timezone.utc).isoformat()
    return datetime.now(timezone.utc).isoformat()


def build_event_rows(client: ApiClient, events: list[TrackedEvent], country: str | None) -> list[dict[str, Any]]:
    """Turn SDK events into JSON-serializable analytics_events rows for the Celery worker."""
    rows = []
    for event in events:
        properties = dict(event.properties or {})
        row = {
            "organization_id": client.organization_id,
            "project_id": client.project_id,
            "event_name": event.event,
            "user_id": event.user_id,
            "session_id": event.session_id,
            "properties": {**properties, "country": country or UNKNOWN_COUNTRY},
            "timestamp": event_timestamp(event.timestamp),
        }
        for key in PROMOTED_PROPERTIES:
            row[key] = properties.get(key) or None
        rows.append(row)
    return rows
