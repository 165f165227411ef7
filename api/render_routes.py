from fastapi import APIRouter

from models.elements import RenderRequest, RenderResponse
from services.renderer import RenderSession
from api.depends import CLIENT_AUTH

import logging

logger = logging.getLogger(__name__)

render_router = APIRouter(
    prefix="/screens",
    tags=["screens"],
    dependencies=[CLIENT_AUTH],
)


# POST /screens/render
@render_router.post("/render", response_model=RenderResponse)
def render_screen_route(request: RenderRequest):
    """
    Preview a screen document. Taps are replayed in order against a fresh
    session, then the final state is rendered.
    """
    session = RenderSession(
        request.elements,
        assets=[asset.model_dump() for asset in request.assets],
        variables=dict(request.variables),
        hidden_elements=request.hidden_elements,
        background_color=request.background_color,
    )

    ignored_taps = [element_id for element_id in request.taps if not session.tap(element_id)]
    if ignored_taps:
        logger.debug("ignored taps on %s", ignored_taps)

    view = session.render()
    return RenderResponse(
        view=view.to_dict(),
        html=view.to_html() if request.include_html else None,
        variables=session.variables,
        selection=session.selection.to_dict(),
        intents=[intent.to_dict() for intent in session.intents],
        ignored_taps=ignored_taps,
    )
