from shadebot.schemas.conversation import ConversationRecord, ProductSpec
from shadebot.schemas.message import ConversationStateResponse, MessageRequest, MessageResponse

__all__ = [
    "ConversationRecord",
    "ProductSpec",
    "MessageRequest",
    "MessageResponse",
    "ConversationStateResponse",
]
