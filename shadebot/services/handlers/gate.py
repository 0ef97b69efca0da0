from typing import Optional

from shadebot.services.escalation_service import GateDecision, check_gate, resume_after_stale_takeover
from shadebot.services.handlers.base import Handler
from shadebot.services.intent_service import (
    has_continuation,
    is_acknowledgement_message,
    is_opt_out_message,
    is_thanks_message,
)
from shadebot.services.outcome import Outcome, Silent
from shadebot.services.spec_service import extract_specs, merge_specs
from shadebot.services.state_machine import ConversationState, activate
from shadebot.services.turn import TurnContext


class EscalationGateHandler(Handler):
    """needs_human and fresh human_active conversations get nothing from the bot."""

    name = "escalation_gate"

    def try_handle(self, ctx: TurnContext) -> Optional[Outcome]:
        decision = check_gate(ctx.record, ctx.now, ctx.settings.human_takeover_staleness_hours)
        if decision == GateDecision.SILENT:
            ctx.log.info("Bot silenced", context={"state": ctx.state.value})
            return Silent(reason=ctx.state.value)
        if decision == GateDecision.RESUME:
            resume_after_stale_takeover(ctx)
        return None


class ClosedConversationHandler(Handler):
    """After a farewell, bare replies are opt-out silence; anything substantive reopens."""

    name = "closed_conversation"

    def try_handle(self, ctx: TurnContext) -> Optional[Outcome]:
        if ctx.state != ConversationState.CLOSED:
            return None
        if is_opt_out_message(ctx.message) or is_acknowledgement_message(ctx.raw_message):
            return Silent(reason="opt_out")
        if is_thanks_message(ctx.message) and not has_continuation(ctx.message):
            return Silent(reason="opt_out")
        ctx.save(state=activate(ctx.state))
        ctx.log.info("Closed conversation reopened")
        return None


class SpecCaptureHandler(Handler):
    """Merges whatever product attributes the message carries, then passes."""

    name = "spec_capture"

    def try_handle(self, ctx: TurnContext) -> Optional[Outcome]:
        found = extract_specs(ctx.message, raw_message=ctx.raw_message, last_intent=ctx.record.last_intent)
        if not found:
            return None
        merged = merge_specs(ctx.record.product_specs, found, ctx.now)
        if merged != ctx.record.product_specs:
            ctx.save(product_specs=merged)
            ctx.specs_changed = True
        return None
