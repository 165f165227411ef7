from fastapi import APIRouter, HTTPException, status
from sqlalchemy.orm import Session

from models.experiments import AssignmentRequest, AssignmentResponse
from services import assignment
from services.cache import CacheClient
from auth.security import ApiClient
from api.depends import CLIENT_AUTH, DB_DEPENDENCY, CACHE_CLIENT

import logging

logger = logging.getLogger(__name__)

assignment_router = APIRouter(tags=["assignment"])


# POST /assign-variant (The Idempotent Logic)
@assignment_router.post("/assign-variant", response_model=AssignmentResponse)
def assign_variant_route(
    request: AssignmentRequest,
    client: ApiClient = CLIENT_AUTH,
    db: Session = DB_DEPENDENCY,
    cache: CacheClient = CACHE_CLIENT
):
    """Return the caller's sticky variant, assigning one on first contact."""
    if not request.experiment_id or not request.user_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing experiment_id or user_id")

    return assignment.get_or_create_assignment(db, cache, client, request.experiment_id, request.user_id)
