from pydantic import BaseModel, Field
from typing import Any

class ActiveExperiment(BaseModel):
    id: str
    name: str
    variants: list[Any] = Field(default_factory=list)

    class Config:
        from_attributes = True

class ConfigResponse(BaseModel):
    """Schema returned by GET /config: the published flow plus active experiments."""
    config: dict[str, Any]
    version: str
    config_id: str | None = None
    experiments: list[ActiveExperiment] = Field(default_factory=list)
    organization_id: str
    project_id: str | None = None
