from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class ProductSpec(BaseModel):
    """Cumulative product configuration collected across turns."""

    product_type: Optional[str] = None  # rollo, confeccionada, ground_cover, monofilamento, borde
    size: Optional[str] = None
    width: Optional[float] = None
    height: Optional[float] = None
    length: Optional[float] = None
    percentage: Optional[int] = None
    color: Optional[str] = None
    quantity: Optional[int] = None
    customer_name: Optional[str] = None
    updated_at: Optional[datetime] = None


class ConversationRecord(BaseModel):
    user_id: str
    state: str = "new"
    last_intent: Optional[str] = None
    greeted: bool = False
    last_greeted_at: Optional[datetime] = None
    clarification_count: int = 0
    unknown_count: int = 0
    oversized_repeat_count: int = 0
    last_unavailable_size: Optional[str] = None
    requested_size: Optional[str] = None
    suggested_sizes: list[str] = Field(default_factory=list)
    product_specs: ProductSpec = Field(default_factory=ProductSpec)
    customer_type: Optional[str] = None
    campaign_ref: Optional[str] = None
    persona_name: Optional[str] = None
    handoff_requested: bool = False
    handoff_reason: Optional[str] = None
    handoff_at: Optional[datetime] = None
    last_bot_response: Optional[str] = None
    agent_took_over_at: Optional[datetime] = None
    last_message_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @field_validator(
        "last_greeted_at",
        "handoff_at",
        "agent_took_over_at",
        "last_message_at",
        "created_at",
        mode="after",
    )
    @classmethod
    def ensure_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # SQLite hands back naive datetimes
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @field_validator("product_specs", mode="before")
    @classmethod
    def default_specs(cls, value):
        return value if value is not None else ProductSpec()

    @field_validator("suggested_sizes", mode="before")
    @classmethod
    def default_sizes(cls, value):
        return value if value is not None else []
