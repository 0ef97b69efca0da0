from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, Text

from shadebot.database import Base


class Conversation(Base):
    __tablename__ = "conversations"

    user_id = Column(String(128), primary_key=True)
    state = Column(Text, nullable=False, default="new")  # new, active, closed, needs_human, human_active
    last_intent = Column(Text)
    greeted = Column(Boolean, nullable=False, default=False)
    last_greeted_at = Column(DateTime(timezone=True))
    clarification_count = Column(Integer, nullable=False, default=0)
    unknown_count = Column(Integer, nullable=False, default=0)
    oversized_repeat_count = Column(Integer, nullable=False, default=0)
    last_unavailable_size = Column(Text)
    requested_size = Column(Text)
    suggested_sizes = Column(JSON, nullable=False, default=list)
    product_specs = Column(JSON, nullable=False, default=dict)
    customer_type = Column(Text)
    campaign_ref = Column(Text)
    persona_name = Column(Text)
    handoff_requested = Column(Boolean, nullable=False, default=False)
    handoff_reason = Column(Text)
    handoff_at = Column(DateTime(timezone=True))
    last_bot_response = Column(Text)
    agent_took_over_at = Column(DateTime(timezone=True))
    last_message_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True))
