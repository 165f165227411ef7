from sqlalchemy.orm import Session
from data.database import Experiment, OnboardingConfig
from models.flow_config import ConfigResponse, ActiveExperiment
from auth.security import ApiClient
import logging

logger = logging.getLogger(__name__)

DEFAULT_VERSION = "1.0.0"


def get_published_config(db: Session, client: ApiClient) -> ConfigResponse:
    """
    Latest published flow for the caller's environment plus the active experiments.
    Project keys only see their project's flows and experiments.
    """
    config_query = db.query(OnboardingConfig).filter(
        OnboardingConfig.organization_id == client.organization_id,
        OnboardingConfig.environment == client.environment,
        OnboardingConfig.is_published.is_(True),
    )
    experiments_query = db.query(Experiment).filter(
        Experiment.organization_id == client.organization_id,
        Experiment.status == "active",
    )

    if client.project_id:
        config_query = config_query.filter(OnboardingConfig.project_id == client.project_id)
        experiments_query = experiments_query.filter(Experiment.project_id == client.project_id)

    published = config_query.order_by(OnboardingConfig.created_at.desc()).first()
    experiments = experiments_query.all()

    if published is None:
        logger.info("no published config for organization %s (%s)", client.organization_id, client.environment)

    return ConfigResponse(
        config=published.config if published else {"version": DEFAULT_VERSION, "screens": []},
        version=published.version if published else DEFAULT_VERSION,
        config_id=published.id if published else None,
        experiments=[ActiveExperiment.model_validate(e) for e in experiments],
        organization_id=client.organization_id,
        project_id=client.project_id,
    )
