from sqlalchemy.orm import Session
from data.database import Experiment, OnboardingConfig, VariantAssignment
from models.experiments import ExperimentCreate
from auth.security import ApiClient
from services.cache import CacheClient
from datetime import datetime, timezone
from fastapi import HTTPException, status
import copy
import logging
import uuid

logger = logging.getLogger(__name__)


def get_experiment_or_404(db: Session, client: ApiClient, experiment_id: str) -> Experiment:
    experiment = db.query(Experiment).filter(
        Experiment.id == experiment_id,
        Experiment.organization_id == client.organization_id,
    ).one_or_none()
    if not experiment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Experiment not found")
    return experiment


# --- Experiment Creation ---
def create_new_experiment(db: Session, client: ApiClient, experiment_data: ExperimentCreate) -> Experiment:
    """
    Creates a draft experiment. Each variant gets a copy of its flow's screens,
    so later edits to the flow do not change what the experiment serves.
    """
    variants = []
    for v in experiment_data.variants:
        flow = db.query(OnboardingConfig).filter(
            OnboardingConfig.id == v.config_id,
            OnboardingConfig.organization_id == client.organization_id,
        ).one_or_none()
        if not flow:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Flow {v.config_id} not found")

        variants.append({
            "variant_id": v.variant_id or uuid.uuid4().hex[:12],
            "name": v.name or flow.name,
            "weight": v.weight,
            "config_id": flow.id,
            "screens": copy.deepcopy((flow.config or {}).get("screens") or []),
        })

    db_experiment = Experiment(
        organization_id=client.organization_id,
        project_id=experiment_data.project_id or client.project_id,
        name=experiment_data.name,
        status="draft",
        traffic_allocation=experiment_data.traffic_allocation,
        variants=variants,
        primary_metric=experiment_data.primary_metric,
        secondary_metrics=experiment_data.secondary_metrics,
    )
    db.add(db_experiment)
    db.commit()
    db.refresh(db_experiment)
    logger.info("create new experiment %s success with experiment id: %s", experiment_data.name, db_experiment.id)

    return db_experiment


def update_experiment_status(db: Session, client: ApiClient, experiment_id: str, new_status: str) -> Experiment:
    """draft -> active <-> paused -> completed. Completed is terminal."""
    experiment = get_experiment_or_404(db, client, experiment_id)

    if experiment.status == new_status:
        return experiment

    if experiment.status == "completed":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Completed experiments cannot change status")

    now = datetime.now(timezone.utc)
    if new_status == "active" and experiment.start_date is None:
        experiment.start_date = now
    if new_status == "completed":
        experiment.end_date = now

    logger.info("experiment %s status %s -> %s", experiment.id, experiment.status, new_status)
    experiment.status = new_status
    db.commit()
    db.refresh(experiment)
    return experiment


def delete_experiment(db: Session, cache: CacheClient, client: ApiClient, experiment_id: str):
    experiment = get_experiment_or_404(db, client, experiment_id)

    user_ids = [row.user_id for row in db.query(VariantAssignment.user_id).filter(VariantAssignment.experiment_id == experiment.id)]
    db.delete(experiment)
    db.commit()
    cache.delete_assignments(experiment_id, user_ids)

    logger.info("deleted experiment %s and %d assignments", experiment_id, len(user_ids))
