"""Two-tier intent resolution and routing of trusted intents to answers."""

from typing import Callable, Optional

from shadebot.services.escalation_service import HandoffReason, escalate_to_human, handle_edge_case
from shadebot.services.extraction import parse_dimensions
from shadebot.services.handlers.base import Handler
from shadebot.services.handlers.conversation import FAREWELL_REPLY, greeting_reply
from shadebot.services.handlers.products import (
    answer_catalog_overview,
    answer_family,
    answer_generic_measures,
    answer_measure_guidance,
    answer_product_search,
    answer_roll_query,
    answer_size_request,
)
from shadebot.services.handlers.service_info import (
    answer_buying_intent,
    answer_colors,
    answer_details,
    answer_installation,
    answer_location,
    answer_material,
    answer_payment,
    answer_shipping,
    answer_stock,
)
from shadebot.services.intent_service import has_continuation, needs_edge_case_check, quick_classify, run_probabilistic_tier
from shadebot.services.outcome import Outcome, Text
from shadebot.services.state_machine import activate, close
from shadebot.services.turn import TurnContext

Route = Callable[[TurnContext], Optional[Outcome]]


def _greeting(ctx: TurnContext) -> Outcome:
    ctx.save(state=activate(ctx.state), greeted=True, last_greeted_at=ctx.now, last_intent="greeting")
    return Text(greeting_reply(ctx.persona_name))


def _thanks(ctx: TurnContext) -> Optional[Outcome]:
    if has_continuation(ctx.message):
        return None
    ctx.save(state=close(ctx.state), last_intent="thanks")
    return Text(FAREWELL_REPLY)


def _measures_specific(ctx: TurnContext) -> Optional[Outcome]:
    dims = parse_dimensions(ctx.message)
    if dims is None:
        return None
    if 100 in (dims.width, dims.height):
        return answer_roll_query(ctx)
    return answer_size_request(ctx, dims)


def _product_search(ctx: TurnContext) -> Optional[Outcome]:
    return answer_roll_query(ctx) or answer_product_search(ctx)


INTENT_ROUTES: dict[str, Route] = {
    "greeting": _greeting,
    "thanks": _thanks,
    "catalog_overview": answer_catalog_overview,
    "product_search": _product_search,
    "family_inquiry": answer_family,
    "measures_generic": answer_generic_measures,
    "measures_specific": _measures_specific,
    "measures_guidance": answer_measure_guidance,
    "installation": answer_installation,
    "shipping": answer_shipping,
    "location": answer_location,
    "colors": answer_colors,
    "material_specs": answer_material,
    "details_request": answer_details,
    "buying_intent": answer_buying_intent,
    "payment_methods": answer_payment,
    "stock_availability": answer_stock,
    "human_request": lambda ctx: escalate_to_human(ctx, HandoffReason.EXPLICIT_REQUEST),
    "complex_question": lambda ctx: escalate_to_human(ctx, HandoffReason.COMPLEX_QUESTION),
}


def route_intent(ctx: TurnContext, intent: str) -> Optional[Outcome]:
    route = INTENT_ROUTES.get(intent)
    if route is None:
        return None
    outcome = route(ctx)
    if outcome is not None:
        ctx.intent = intent
    return outcome


class IntentResolverHandler(Handler):
    """Fast deterministic labels first, then the completion service behind a confidence gate."""

    name = "intent_resolver"

    def try_handle(self, ctx: TurnContext) -> Optional[Outcome]:
        fast_intent = quick_classify(ctx.message)
        if fast_intent is not None:
            outcome = route_intent(ctx, fast_intent)
            if outcome is not None:
                ctx.log.info("Fast intent routed", context={"intent": fast_intent})
                return outcome

        services = ctx.services
        result = run_probabilistic_tier(
            services.completion,
            ctx.raw_message,
            {"last_intent": ctx.record.last_intent, "campaign_ref": ctx.record.campaign_ref},
            services.intents,
            check_edge_case=needs_edge_case_check(ctx.message),
        )

        edge_outcome = handle_edge_case(ctx, result.edge_case)
        if edge_outcome is not None:
            return edge_outcome

        classification = result.classification
        if classification.confidence < ctx.settings.classification_confidence_threshold:
            ctx.log.info(
                "Classification below threshold",
                context={"intent": classification.intent, "confidence": classification.confidence},
            )
            return None
        return route_intent(ctx, classification.intent)
