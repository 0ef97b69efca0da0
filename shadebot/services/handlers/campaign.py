from typing import Optional

from shadebot.services.handlers.base import Handler
from shadebot.services.outcome import Outcome
from shadebot.services.turn import TurnContext


class CampaignFlowHandler(Handler):
    """Runs the flow registered for the conversation's campaign, if any."""

    name = "campaign_flow"

    def try_handle(self, ctx: TurnContext) -> Optional[Outcome]:
        ref = ctx.record.campaign_ref
        if not ref:
            return None
        flow = ctx.services.flows.get(ref)
        if flow is None:
            return None
        outcome = flow.handle(ctx)
        if outcome is not None:
            ctx.intent = f"campaign:{ref}"
        return outcome
