"""Top-level dispatch: one inbound message in, exactly one Outcome out."""

import random
import time
from datetime import datetime
from typing import Callable, Optional

from shadebot.config import Settings
from shadebot.logging_config import get_logger
from shadebot.services.conversation_service import utcnow
from shadebot.services.escalation_service import HandoffReason, escalate_to_human, is_repeated_response
from shadebot.services.handlers import Handler, default_handlers
from shadebot.services.handlers.fallback import APOLOGY_REPLY
from shadebot.services.normalizer import normalize_message
from shadebot.services.outcome import Outcome, Silent, Text, outcome_type
from shadebot.services.state_machine import ConversationState, activate, is_bot_active
from shadebot.services.turn import BotServices, TurnContext

logger = get_logger("dispatcher")


class FlowDispatcher:
    def __init__(
        self,
        services: BotServices,
        handlers: Optional[list[Handler]] = None,
        clock: Optional[Callable[[], datetime]] = None,
        rng: Optional[random.Random] = None,
    ):
        self.services = services
        self.handlers = handlers if handlers is not None else default_handlers()
        self.clock = clock or utcnow
        self.rng = rng or random.Random()

    @property
    def settings(self) -> Settings:
        return self.services.settings

    def _start_turn(self, user_id: str, raw_message: str, campaign_ref: Optional[str]) -> TurnContext:
        now = self.clock()
        record = self.services.store.load(user_id)
        ctx = TurnContext(
            user_id=user_id,
            message=normalize_message(raw_message),
            raw_message=raw_message,
            record=record,
            persona_name=record.persona_name or "",
            now=now,
            services=self.services,
        )

        session_updates = {}
        if not record.persona_name:
            # picked once per conversation and kept on the record
            ctx.persona_name = self.rng.choice(self.settings.persona_name_list())
            session_updates["persona_name"] = ctx.persona_name
        if campaign_ref and campaign_ref != record.campaign_ref:
            session_updates["campaign_ref"] = campaign_ref
            if is_bot_active(ctx.state) or ctx.state == ConversationState.CLOSED:
                session_updates["last_intent"] = "campaign_entry"
        if session_updates:
            ctx.save(**session_updates)
        return ctx

    def _run_chain(self, ctx: TurnContext) -> tuple[Outcome, str]:
        for handler in self.handlers:
            outcome = handler.try_handle(ctx)
            if outcome is not None:
                return outcome, handler.name
        logger.warning("No handler produced an outcome", extra={"context": {"user_id": ctx.user_id}})
        return Text(APOLOGY_REPLY), "none"

    def _finish(self, ctx: TurnContext, outcome: Outcome) -> Outcome:
        if isinstance(outcome, Silent):
            return outcome

        if is_bot_active(ctx.state) and is_repeated_response(ctx.record, outcome):
            ctx.log.warning("Identical bot response repeated, escalating")
            outcome = escalate_to_human(ctx, HandoffReason.REPEATED_RESPONSE)
            if isinstance(outcome, Silent):
                return outcome

        updates = {"last_bot_response": outcome.content}
        if ctx.record.clarification_count and not ctx.clarified:
            # only consecutive unclear turns count towards a handoff
            updates["clarification_count"] = 0
        if ctx.state == ConversationState.NEW:
            updates["state"] = activate(ctx.state)
        ctx.save(**updates)
        return outcome

    def dispatch(self, user_id: str, raw_message: str, campaign_ref: Optional[str] = None) -> Outcome:
        """Run the handler chain for one inbound message.

        Never raises: any failure inside the chain becomes the generic apology.
        """
        started = time.monotonic()
        if not raw_message or not raw_message.strip():
            return Silent(reason="empty_message")

        handler_name = "error"
        try:
            ctx = self._start_turn(user_id, raw_message, campaign_ref)
            outcome, handler_name = self._run_chain(ctx)
            outcome = self._finish(ctx, outcome)
        except Exception as exc:
            logger.error(
                "Dispatch failed, sending apology",
                extra={"context": {"user_id": user_id, "error": str(exc)}},
                exc_info=True,
            )
            return Text(APOLOGY_REPLY)

        logger.info(
            "Message dispatched",
            extra={
                "context": {
                    "user_id": user_id,
                    "handler": handler_name,
                    "intent": ctx.intent,
                    "outcome": outcome_type(outcome),
                    "state": ctx.record.state,
                    "elapsed_ms": round((time.monotonic() - started) * 1000, 2),
                }
            },
        )
        return outcome


def build_default_services(settings: Optional[Settings] = None, store=None) -> BotServices:
    """Wire the production collaborators from settings."""
    from shadebot.database import SessionLocal
    from shadebot.services.catalog_service import StaticCatalogSource
    from shadebot.services.completion_service import CompletionService
    from shadebot.services.conversation_service import SqlConversationStore
    from shadebot.services.flows import default_registry
    from shadebot.services.intent_service import load_intent_definitions
    from shadebot.services.llm import OpenAIProvider

    from shadebot.config import settings as default_settings

    settings = settings or default_settings
    provider = OpenAIProvider(api_key=settings.openai_api_key, default_model=settings.openai_model)
    return BotServices(
        store=store or SqlConversationStore(SessionLocal),
        catalog=StaticCatalogSource.from_path(settings.catalog_path),
        completion=CompletionService(provider, model=settings.openai_model),
        intents=list(load_intent_definitions(settings.intents_path)),
        flows=default_registry(),
        settings=settings,
    )
