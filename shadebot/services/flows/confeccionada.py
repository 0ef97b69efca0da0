import re
from typing import Optional

from shadebot.services.extraction import parse_dimensions
from shadebot.services.flows.registry import CampaignFlow
from shadebot.services.handlers.products import answer_generic_measures, answer_size_request
from shadebot.services.outcome import Outcome, Text
from shadebot.services.state_machine import activate
from shadebot.services.turn import TurnContext

_PRICE = re.compile(r"\b(precio|precios|cu[aá]nto|vale|costo|cuesta|medidas)\b")


class ConfeccionadaGeneralFlow(CampaignFlow):
    """Ad campaign for made-to-size panels: quotes sizes straight from the catalog."""

    ref = "confeccionada_general"
    initial_message = (
        "¡Hola! 👋 Nuestra malla sombra confeccionada viene lista para instalar, con refuerzo y ojillos.\n"
        "Dime la medida que necesitas (por ejemplo 4x6) y te paso el precio."
    )

    def handle(self, ctx: TurnContext) -> Optional[Outcome]:
        dims = parse_dimensions(ctx.message)
        if dims is not None and 100 not in (dims.width, dims.height):
            return answer_size_request(ctx, dims)

        if ctx.record.last_intent in (None, "campaign_entry"):
            ctx.save(state=activate(ctx.state), last_intent="confeccionada_intro")
            return Text(self.initial_message)

        if _PRICE.search(ctx.message):
            return answer_generic_measures(ctx)
        return None
