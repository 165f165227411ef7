from pydantic import BaseModel, Field
from typing import Any, Literal

class Asset(BaseModel):
    """A named embeddable resource referenced from element props as "asset:<name>"."""
    name: str
    type: Literal["image", "video", "lottie"] = "image"
    data: str

class RenderRequest(BaseModel):
    """
    Schema for POST /screens/render.

    ``elements`` is raw JSON. Malformed elements render as inline error nodes
    instead of failing the request.
    ``taps`` are element ids tapped in order before the final render.
    """
    elements: list[Any] = Field(default_factory=list)
    assets: list[Asset] = Field(default_factory=list)
    variables: dict[str, Any] = Field(default_factory=dict)
    hidden_elements: list[str] = Field(default_factory=list)
    taps: list[str] = Field(default_factory=list)
    background_color: str = "#FFFFFF"
    include_html: bool = False

class IntentResponse(BaseModel):
    type: str
    element_id: str | None = None
    destination: str | None = None

class SelectionResponse(BaseModel):
    toggled_ids: list[str]
    group_selections: dict[str, str]

class RenderResponse(BaseModel):
    view: dict[str, Any]
    html: str | None = None
    variables: dict[str, Any]
    selection: SelectionResponse
    intents: list[IntentResponse]
    ignored_taps: list[str] = Field(default_factory=list)
