import re
from typing import Optional

from shadebot.services.flows.registry import CampaignFlow
from shadebot.services.outcome import Outcome, Text
from shadebot.services.state_machine import activate
from shadebot.services.turn import TurnContext

_PRICE = re.compile(r"\b(precio|cu[aá]nto|vale|costo|cuesta)\b")
_SIZES = re.compile(r"\b(medidas|dimensiones|tama[ñn]os?)\b")
_USAGE = re.compile(r"\b(invernadero|jard[ií]n|estacionamiento|patio|sombra)\b")


class MallaBeigeFlow(CampaignFlow):
    ref = "malla_beige"
    initial_message = (
        "¡Hola! 🌿 Gracias por tu interés en nuestra *malla sombra beige confeccionada* al 90%.\n"
        "¿Quieres ver precios o medidas disponibles?"
    )

    def _reply(self, ctx: TurnContext, intent: str, text: str) -> Outcome:
        ctx.save(state=activate(ctx.state), last_intent=intent)
        return Text(text)

    def handle(self, ctx: TurnContext) -> Optional[Outcome]:
        if ctx.record.last_intent in (None, "campaign_entry"):
            return self._reply(ctx, "malla_beige_intro", self.initial_message)

        if _PRICE.search(ctx.message):
            return self._reply(
                ctx,
                "malla_beige_price",
                "La *malla sombra beige confeccionada* tiene precio desde $450 según la medida 🌿\n"
                "¿Quieres que te envíe las medidas disponibles?",
            )
        if _SIZES.search(ctx.message):
            sizes = [s for s in ctx.services.catalog.get_sizes() if s.size_str in ("3x4", "4x6", "5x5", "6x8")]
            lines = "\n".join(f"• {s.size_str} m" for s in sizes) or "• 3x4 m\n• 4x6 m"
            return self._reply(
                ctx,
                "malla_beige_sizes",
                f"Estas son nuestras medidas más pedidas en beige:\n{lines}\n\n"
                "¿Te ayudo a elegir la adecuada para tu proyecto?",
            )
        if _USAGE.search(ctx.message):
            return self._reply(
                ctx,
                "malla_beige_usage",
                "Perfecto 🌞 la *malla sombra beige 90%* es ideal para invernaderos, jardines y estacionamientos.\n"
                "¿Deseas una cotización o ver medidas?",
            )
        return None
