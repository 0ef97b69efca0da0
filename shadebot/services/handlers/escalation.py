from typing import Optional

from shadebot.services.escalation_service import HandoffReason, escalate_to_human
from shadebot.services.handlers.base import Handler
from shadebot.services.intent_service import is_frustration_message, is_human_request_message
from shadebot.services.outcome import Outcome
from shadebot.services.turn import TurnContext


class ExplicitHandoffHandler(Handler):
    name = "explicit_handoff"

    def try_handle(self, ctx: TurnContext) -> Optional[Outcome]:
        if not is_human_request_message(ctx.message):
            return None
        return escalate_to_human(ctx, HandoffReason.EXPLICIT_REQUEST)


class FrustrationHandler(Handler):
    name = "frustration"

    def try_handle(self, ctx: TurnContext) -> Optional[Outcome]:
        if not is_frustration_message(ctx.message):
            return None
        return escalate_to_human(ctx, HandoffReason.FRUSTRATED)
