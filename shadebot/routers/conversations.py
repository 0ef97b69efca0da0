"""Support endpoints for human agents: take over, release and reset conversations."""

from fastapi import APIRouter, Depends, HTTPException

from shadebot.logging_config import get_logger
from shadebot.routers.deps import get_dispatcher
from shadebot.schemas.message import ConversationStateResponse
from shadebot.services.dispatcher import FlowDispatcher
from shadebot.services.escalation_service import agent_take_over, release_to_bot

logger = get_logger("conversations_router")

router = APIRouter(prefix="/conversations", tags=["conversations"])


@router.post("/{user_id}/takeover", response_model=ConversationStateResponse)
def take_over(user_id: str, dispatcher: FlowDispatcher = Depends(get_dispatcher)):
    result = agent_take_over(dispatcher.services.store, user_id, dispatcher.clock())
    if not result.ok:
        if result.error_code == "invalid_transition":
            raise HTTPException(status_code=409, detail=result.error)
        raise HTTPException(status_code=503, detail=result.error)
    return ConversationStateResponse(success=True, user_id=user_id, state=result.value.state)


@router.post("/{user_id}/release", response_model=ConversationStateResponse)
def release(user_id: str, dispatcher: FlowDispatcher = Depends(get_dispatcher)):
    result = release_to_bot(dispatcher.services.store, user_id)
    if not result.ok:
        if result.error_code == "invalid_transition":
            raise HTTPException(status_code=409, detail=result.error)
        raise HTTPException(status_code=503, detail=result.error)
    return ConversationStateResponse(success=True, user_id=user_id, state=result.value.state)


@router.delete("/{user_id}", response_model=ConversationStateResponse)
def reset(user_id: str, dispatcher: FlowDispatcher = Depends(get_dispatcher)):
    removed = dispatcher.services.store.reset(user_id)
    if not removed:
        raise HTTPException(status_code=404, detail="Conversation not found")
    logger.info("Conversation reset via API", extra={"context": {"user_id": user_id}})
    return ConversationStateResponse(success=True, user_id=user_id, message="Conversation reset")
