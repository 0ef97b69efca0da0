"""Static registry of campaign-specific conversation flows, keyed by campaign reference."""

from abc import ABC, abstractmethod
from typing import Iterable, Optional

from shadebot.logging_config import get_logger
from shadebot.services.outcome import Outcome
from shadebot.services.turn import TurnContext

logger = get_logger("flows")


class CampaignFlow(ABC):
    ref: str = ""
    initial_message: str = ""

    @abstractmethod
    def handle(self, ctx: TurnContext) -> Optional[Outcome]:
        """Answer inside the campaign, or None to let the general chain continue."""


class FlowRegistry:
    def __init__(self, flows: Iterable[CampaignFlow] = ()):
        self._flows: dict[str, CampaignFlow] = {}
        for flow in flows:
            self.register(flow)

    def register(self, flow: CampaignFlow) -> None:
        if not flow.ref:
            raise ValueError(f"{type(flow).__name__} has no campaign ref")
        self._flows[flow.ref] = flow

    def get(self, ref: Optional[str]) -> Optional[CampaignFlow]:
        if not ref:
            return None
        flow = self._flows.get(ref)
        if flow is None:
            logger.info("No flow registered for campaign", extra={"context": {"campaign_ref": ref}})
        return flow

    def refs(self) -> list[str]:
        return sorted(self._flows)


def default_registry() -> FlowRegistry:
    from shadebot.services.flows.confeccionada import ConfeccionadaGeneralFlow
    from shadebot.services.flows.malla_beige import MallaBeigeFlow

    return FlowRegistry([MallaBeigeFlow(), ConfeccionadaGeneralFlow()])
