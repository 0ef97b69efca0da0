from enum import Enum

from pydantic import BaseModel, Field


class HandlerType(str, Enum):
    PATTERN = "pattern"
    FLOW = "flow"
    HUMAN_HANDOFF = "human_handoff"
    AI_GENERATE = "ai_generate"


class IntentDefinition(BaseModel):
    key: str
    description: str
    keywords: list[str] = Field(default_factory=list)
    priority: int = 5
    handler_type: HandlerType = HandlerType.PATTERN
