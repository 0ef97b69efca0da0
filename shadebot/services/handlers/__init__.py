from shadebot.services.handlers.base import Handler
from shadebot.services.handlers.campaign import CampaignFlowHandler
from shadebot.services.handlers.conversation import (
    AcknowledgementHandler,
    FarewellHandler,
    GreetingHandler,
    PurchaseDeferralHandler,
)
from shadebot.services.handlers.escalation import ExplicitHandoffHandler, FrustrationHandler
from shadebot.services.handlers.fallback import GenerativeFallbackHandler
from shadebot.services.handlers.gate import ClosedConversationHandler, EscalationGateHandler, SpecCaptureHandler
from shadebot.services.handlers.intent import IntentResolverHandler
from shadebot.services.handlers.products import (
    CatalogOverviewHandler,
    CrossSellHandler,
    FamilyHandler,
    GenericMeasuresHandler,
    ProductSearchHandler,
    RollQueryHandler,
    SizeRequestHandler,
    SlotFollowUpHandler,
)


def default_handlers() -> list[Handler]:
    """The dispatch chain. Order is priority: the first outcome wins."""
    return [
        EscalationGateHandler(),
        ClosedConversationHandler(),
        SpecCaptureHandler(),
        ExplicitHandoffHandler(),
        FrustrationHandler(),
        AcknowledgementHandler(),
        GreetingHandler(),
        FarewellHandler(),
        PurchaseDeferralHandler(),
        CampaignFlowHandler(),
        SlotFollowUpHandler(),
        IntentResolverHandler(),
        CatalogOverviewHandler(),
        RollQueryHandler(),
        GenericMeasuresHandler(),
        CrossSellHandler(),
        FamilyHandler(),
        ProductSearchHandler(),
        SizeRequestHandler(),
        GenerativeFallbackHandler(),
    ]


__all__ = ["Handler", "default_handlers"]
