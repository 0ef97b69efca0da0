from fastapi import APIRouter, Depends

from shadebot.logging_config import get_logger
from shadebot.routers.deps import get_dispatcher
from shadebot.schemas.message import MessageRequest, MessageResponse
from shadebot.services.dispatcher import FlowDispatcher
from shadebot.services.outcome import Image, outcome_text, outcome_type

logger = get_logger("message_router")

router = APIRouter()


@router.post("/message", response_model=MessageResponse)
def handle_message(request: MessageRequest, dispatcher: FlowDispatcher = Depends(get_dispatcher)):
    """Run the dispatch chain for an inbound message and return the single outcome."""
    outcome = dispatcher.dispatch(request.user_id, request.content, campaign_ref=request.campaign_ref)
    record = dispatcher.services.store.load(request.user_id)

    return MessageResponse(
        type=outcome_type(outcome),
        content=outcome_text(outcome),
        image_url=outcome.image_url if isinstance(outcome, Image) else None,
        state=record.state,
        intent=record.last_intent,
    )
