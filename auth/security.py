from dataclasses import dataclass, asdict
from fastapi.security import APIKeyHeader
from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session
from config import config
from data.database import get_db, Organization, Project
from services.cache import get_cache_client, CacheClient

import logging

logger = logging.getLogger(__name__)

# The mobile SDK sends its key in this header on every request
api_key_header = APIKeyHeader(name="x-api-key", auto_error=False)


@dataclass
class ApiClient:
    """The caller an API key resolves to."""
    organization_id: str
    project_id: str | None = None
    environment: str = "test"

    def to_dict(self):
        return asdict(self)


def key_environment(api_key: str) -> tuple[str, str | None]:
    """
    Map a key prefix to (environment, key column).
    A None column means the key predates the test/live split and is matched
    against the legacy organizations.api_key column.
    """
    if api_key.startswith(config.test_key_prefix):
        return "test", "test_api_key"
    if api_key.startswith(config.live_key_prefix):
        return "production", "production_api_key"
    return "test", None


def resolve_api_key(db: Session, api_key: str) -> ApiClient | None:
    environment, key_field = key_environment(api_key)

    if key_field is None:
        organization = db.query(Organization).filter(Organization.api_key == api_key).first()
        return ApiClient(organization_id=organization.id, environment=environment) if organization else None

    # Project keys first, then organization-wide keys
    project = db.query(Project).filter(getattr(Project, key_field) == api_key).first()
    if project:
        return ApiClient(organization_id=project.organization_id, project_id=project.id, environment=environment)

    organization = db.query(Organization).filter(getattr(Organization, key_field) == api_key).first()
    if organization:
        return ApiClient(organization_id=organization.id, environment=environment)

    return None


def get_current_client(
    api_key: str | None = Depends(api_key_header),
    db: Session = Depends(get_db),
    cache: CacheClient = Depends(get_cache_client),
) -> ApiClient:
    """Validates the x-api-key header for every secured endpoint."""
    if not api_key:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing API key")

    cached = cache.get_client(api_key)
    if cached is not None:
        client = ApiClient(**cached)
    else:
        client = resolve_api_key(db, api_key)
        if client is not None:
            cache.set_client(api_key, client.to_dict())

    # Wrong key and right key for the wrong environment look the same to the caller
    if client is None:
        logger.info("rejected request with an unknown API key")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")

    return client
