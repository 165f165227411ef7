from fastapi import APIRouter
from sqlalchemy.orm import Session

from models.flow_config import ConfigResponse
from services import flow_config
from auth.security import ApiClient
from api.depends import CLIENT_AUTH, DB_DEPENDENCY

config_router = APIRouter(tags=["config"])


# GET /config
@config_router.get("/config", response_model=ConfigResponse)
def get_config_route(
    client: ApiClient = CLIENT_AUTH,
    db: Session = DB_DEPENDENCY
):
    """Published onboarding flow for the key's environment, plus active experiments."""
    return flow_config.get_published_config(db, client)
