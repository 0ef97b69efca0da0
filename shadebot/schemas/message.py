from typing import Optional

from pydantic import BaseModel, Field


class MessageRequest(BaseModel):
    user_id: str = Field(min_length=1)
    content: str
    campaign_ref: Optional[str] = None


class MessageResponse(BaseModel):
    type: str  # silent, text, image
    content: Optional[str] = None
    image_url: Optional[str] = None
    state: str
    intent: Optional[str] = None


class ConversationStateResponse(BaseModel):
    success: bool
    user_id: str
    state: Optional[str] = None
    message: Optional[str] = None
