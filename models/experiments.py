from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Any, Literal
from datetime import datetime

ExperimentStatus = Literal["draft", "active", "paused", "completed"]

# --- Pydantic Models for Requests/Responses ---

class VariantCreate(BaseModel):
    """A variant built from an existing flow; its screens are copied when the experiment is created."""
    variant_id: str | None = Field(default=None, description="Stable id; generated when omitted.")
    name: str | None = None
    weight: float = Field(..., ge=0, le=100, description="Traffic percentage (e.g., 50.0).")
    config_id: str = Field(..., description="Onboarding config whose screens this variant serves.")

class ExperimentCreate(BaseModel):
    """Schema for creating a new experiment via POST /experiments."""
    name: str = Field(..., min_length=1)
    project_id: str | None = None
    variants: list[VariantCreate]
    primary_metric: str | None = None
    secondary_metrics: list[str] = Field(default_factory=list)
    traffic_allocation: float = Field(default=100, ge=0, le=100)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value

    @model_validator(mode="after")
    def check_variants(self):
        if len(self.variants) < 2:
            raise ValueError("an experiment needs at least 2 variants")

        total = sum(v.weight for v in self.variants)
        if abs(total - 100) > 1e-6:
            raise ValueError(f"variant weights must sum to 100, got {total:g}")

        ids = [v.variant_id for v in self.variants if v.variant_id]
        if len(ids) != len(set(ids)):
            raise ValueError("variant_id values must be unique")
        return self

class ExperimentStatusUpdate(BaseModel):
    status: ExperimentStatus

class VariantResponse(BaseModel):
    variant_id: str
    name: str | None = None
    weight: float
    config_id: str | None = None
    screens: list[Any] = Field(default_factory=list)

class ExperimentResponse(BaseModel):
    """Schema for experiment reads and writes."""
    id: str
    organization_id: str
    project_id: str | None = None
    name: str
    status: ExperimentStatus
    traffic_allocation: float
    variants: list[VariantResponse]
    primary_metric: str | None = None
    secondary_metrics: list[str] = Field(default_factory=list)
    start_date: datetime | None = None
    end_date: datetime | None = None
    created_at: datetime

    class Config:
        from_attributes = True

class AssignmentRequest(BaseModel):
    """Body of POST /assign-variant. Fields are optional here so the route can answer 400 itself."""
    experiment_id: str | None = None
    user_id: str | None = None

class VariantConfig(BaseModel):
    screens: list[Any] = Field(default_factory=list)

class AssignmentResponse(BaseModel):
    """Schema returned by POST /assign-variant."""
    variant_id: str
    variant_config: VariantConfig
    cached: bool
