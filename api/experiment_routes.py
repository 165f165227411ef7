from fastapi import APIRouter, Response, status
from sqlalchemy.orm import Session

from models.experiments import ExperimentCreate, ExperimentResponse, ExperimentStatusUpdate
from services import experiments
from services.cache import CacheClient
from auth.security import ApiClient
from api.depends import CLIENT_AUTH, DB_DEPENDENCY, CACHE_CLIENT

import logging

logger = logging.getLogger(__name__)

experiment_router = APIRouter(
    prefix="/experiments",
    tags=["experiments"],
)


# POST /experiments
@experiment_router.post(
    "",
    response_model=ExperimentResponse,
    status_code=status.HTTP_201_CREATED
)
def create_experiment_route(
    experiment_data: ExperimentCreate,
    client: ApiClient = CLIENT_AUTH,
    db: Session = DB_DEPENDENCY
):
    """Create a draft experiment, copying each variant's screens from its flow."""
    return experiments.create_new_experiment(db, client, experiment_data)


# GET /experiments/{experiment_id}
@experiment_router.get("/{experiment_id}", response_model=ExperimentResponse)
def get_experiment_route(
    experiment_id: str,
    client: ApiClient = CLIENT_AUTH,
    db: Session = DB_DEPENDENCY
):
    return experiments.get_experiment_or_404(db, client, experiment_id)


# PATCH /experiments/{experiment_id}/status
@experiment_router.patch("/{experiment_id}/status", response_model=ExperimentResponse)
def update_experiment_status_route(
    experiment_id: str,
    update: ExperimentStatusUpdate,
    client: ApiClient = CLIENT_AUTH,
    db: Session = DB_DEPENDENCY
):
    """Start, pause or complete an experiment. Existing assignments keep being served."""
    return experiments.update_experiment_status(db, client, experiment_id, update.status)


# DELETE /experiments/{experiment_id}
@experiment_router.delete("/{experiment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_experiment_route(
    experiment_id: str,
    client: ApiClient = CLIENT_AUTH,
    db: Session = DB_DEPENDENCY,
    cache: CacheClient = CACHE_CLIENT
):
    experiments.delete_experiment(db, cache, client, experiment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
