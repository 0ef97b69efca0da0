"""When the bot must stay quiet and when it hands the conversation to a human."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from shadebot.config import Settings
from shadebot.logging_config import get_logger
from shadebot.schemas.conversation import ConversationRecord
from shadebot.services.business_hours import auto_escalation_threshold, is_business_hours, next_opening
from shadebot.services.completion_service import EdgeCaseVerdict
from shadebot.services.conversation_service import ConversationStore
from shadebot.services.outcome import Image, Outcome, Silent, Text
from shadebot.services.result import Result
from shadebot.services.spec_service import get_specs_summary
from shadebot.services.state_machine import (
    ConversationState,
    InvalidTransitionError,
    agent_take_over as take_over_state,
    escalate,
    parse_state,
    release,
)
from shadebot.services.turn import TurnContext

logger = get_logger("escalation_service")


class HandoffReason(str, Enum):
    EXPLICIT_REQUEST = "explicit_request"
    FRUSTRATED = "frustrated"
    COMPLEX_QUESTION = "complex_question"
    UNINTELLIGIBLE = "unintelligible"
    REPEATED_OVERSIZED = "repeated_oversized_request"
    REPEATED_RESPONSE = "repeated_response"
    AUTO_ESCALATION = "auto_escalation"


HANDOFF_MESSAGES = {
    HandoffReason.EXPLICIT_REQUEST: "Claro, te comunico con un asesor de ventas. En breve te contacta por este medio 🙌",
    HandoffReason.FRUSTRATED: (
        "Lamento mucho la confusión 🙏 Le paso tu conversación a un asesor para que te atienda personalmente."
    ),
    HandoffReason.COMPLEX_QUESTION: (
        "Tu pregunta necesita a un especialista. Ya le pasé tu caso a un asesor y te responde en breve."
    ),
    HandoffReason.UNINTELLIGIBLE: (
        "Disculpa, no logro entender tu mensaje. Te comunico con un asesor para ayudarte mejor."
    ),
    HandoffReason.REPEATED_OVERSIZED: (
        "Veo que necesitas la medida {size} m. Esa medida requiere una cotización especial; "
        "un asesor te contactará para armar tu pedido."
    ),
    HandoffReason.REPEATED_RESPONSE: (
        "Parece que no te estoy dando la respuesta que buscas. Te paso con un asesor para que te ayude."
    ),
    HandoffReason.AUTO_ESCALATION: (
        "Quiero asegurarme de ayudarte bien, así que le paso tu conversación a un asesor."
    ),
}

AFTER_HOURS_NOTE = (
    "Nuestro horario de atención es de lunes a viernes de {start}:00 a {end}:00. "
    "Un asesor te responde {opening} 🕘"
)

CLARIFICATION_PROMPT = (
    "Disculpa, no entendí bien tu mensaje 😅 ¿Me lo puedes escribir de otra forma? "
    "Por ejemplo: \"¿cuánto cuesta la de 4x6?\""
)


class GateDecision(str, Enum):
    PASS = "pass"
    SILENT = "silent"
    RESUME = "resume"


def is_takeover_stale(record: ConversationRecord, now: datetime, staleness_hours: float) -> bool:
    """True once the human takeover is older than the staleness window."""
    if record.agent_took_over_at is None:
        return False
    return now - record.agent_took_over_at >= timedelta(hours=staleness_hours)


def check_gate(record: ConversationRecord, now: datetime, staleness_hours: float) -> GateDecision:
    state = parse_state(record.state)
    if state == ConversationState.NEEDS_HUMAN:
        return GateDecision.SILENT
    if state == ConversationState.HUMAN_ACTIVE:
        if is_takeover_stale(record, now, staleness_hours):
            return GateDecision.RESUME
        return GateDecision.SILENT
    return GateDecision.PASS


def handoff_message(
    reason: HandoffReason,
    record: ConversationRecord,
    size: Optional[str] = None,
    now: Optional[datetime] = None,
    settings: Optional[Settings] = None,
) -> str:
    """Reason-specific handoff copy, with the opening time when advisors are offline."""
    text = HANDOFF_MESSAGES[reason].format(size=size or record.requested_size or "")
    if now is not None and settings is not None and not is_business_hours(now, settings):
        text += "\n\n" + AFTER_HOURS_NOTE.format(
            start=settings.business_hours_start,
            end=settings.business_hours_end,
            opening=next_opening(now, settings),
        )
    summary = get_specs_summary(record.product_specs)
    if summary:
        text += f"\n\nResumen de lo que me compartiste:\n{summary}"
    return text


def escalate_to_human(ctx: TurnContext, reason: HandoffReason, size: Optional[str] = None) -> Outcome:
    """Move the conversation to needs_human and return the handoff notice."""
    try:
        new_state = escalate(ctx.state)
    except InvalidTransitionError as exc:
        ctx.log.warning("Escalation skipped", context={"reason": reason.value, "error": str(exc)})
        return Silent(reason="already_escalated")

    text = handoff_message(reason, ctx.record, size=size, now=ctx.now, settings=ctx.settings)
    ctx.save(
        state=new_state,
        handoff_requested=True,
        handoff_reason=reason.value,
        handoff_at=ctx.now,
        clarification_count=0,
        unknown_count=0,
        last_intent=f"handoff_{reason.value}",
    )
    ctx.log.info("Conversation escalated", context={"reason": reason.value})
    return Text(text)


def handle_edge_case(ctx: TurnContext, verdict: EdgeCaseVerdict) -> Optional[Outcome]:
    """Clarify once for unintelligible input, escalate on the second or on specialist questions.

    Verdicts at or below the confidence threshold are ignored.
    """
    threshold = ctx.settings.edge_case_confidence_threshold
    if verdict.is_normal or verdict.confidence <= threshold:
        return None

    if verdict.is_complex:
        return escalate_to_human(ctx, HandoffReason.COMPLEX_QUESTION)

    if ctx.record.clarification_count < ctx.settings.max_clarifications:
        ctx.save(
            clarification_count=ctx.record.clarification_count + 1,
            last_intent="clarification_requested",
        )
        ctx.clarified = True
        return Text(CLARIFICATION_PROMPT)
    return escalate_to_human(ctx, HandoffReason.UNINTELLIGIBLE)


@dataclass
class OversizedCheck:
    count: int
    should_escalate: bool


def track_oversized_request(record: ConversationRecord, size_key: str, limit: int) -> OversizedCheck:
    """Count consecutive requests for the same unavailable size."""
    repeated = record.last_unavailable_size == size_key and record.last_intent == "measures_oversized"
    count = record.oversized_repeat_count + 1 if repeated else 1
    return OversizedCheck(count=count, should_escalate=count >= limit)


def is_repeated_response(record: ConversationRecord, outcome: Outcome) -> bool:
    if not isinstance(outcome, (Text, Image)):
        return False
    return bool(record.last_bot_response) and record.last_bot_response == outcome.content


def should_auto_escalate(record: ConversationRecord, now: datetime, settings: Settings) -> bool:
    return record.unknown_count >= auto_escalation_threshold(now, settings)


def agent_take_over(store: ConversationStore, user_id: str, now: datetime) -> Result[ConversationRecord]:
    """A human agent starts answering; the bot stays silent until release or staleness."""
    record = store.load(user_id)
    try:
        new_state = take_over_state(parse_state(record.state))
    except InvalidTransitionError as exc:
        if parse_state(record.state) != ConversationState.HUMAN_ACTIVE:
            return Result.failure(str(exc), code="invalid_transition")
        new_state = ConversationState.HUMAN_ACTIVE
    logger.info("Agent took over", extra={"context": {"user_id": user_id}})
    return store.save(user_id, {"state": new_state, "agent_took_over_at": now})


def release_to_bot(store: ConversationStore, user_id: str) -> Result[ConversationRecord]:
    """Explicit external release: the only way out of needs_human."""
    record = store.load(user_id)
    try:
        new_state = release(parse_state(record.state))
    except InvalidTransitionError as exc:
        return Result.failure(str(exc), code="invalid_transition")
    logger.info("Conversation released to bot", extra={"context": {"user_id": user_id}})
    return store.save(
        user_id,
        {
            "state": new_state,
            "handoff_requested": False,
            "handoff_reason": None,
            "agent_took_over_at": None,
            "clarification_count": 0,
            "unknown_count": 0,
            "oversized_repeat_count": 0,
            "last_bot_response": None,
        },
    )


def resume_after_stale_takeover(ctx: TurnContext) -> None:
    ctx.save(state=release(ctx.state), agent_took_over_at=None, handoff_requested=False)
    ctx.log.info("Stale human takeover, bot resumed")
