import re
from typing import Optional

from shadebot.services.escalation_service import HandoffReason, escalate_to_human, should_auto_escalate
from shadebot.services.handlers.base import Handler
from shadebot.services.outcome import Outcome, Text
from shadebot.services.spec_service import get_specs_summary
from shadebot.services.state_machine import activate
from shadebot.services.turn import TurnContext

APOLOGY_REPLY = "Lo siento, tuve un problema para responderte 🙏 ¿Me lo puedes repetir en un momento?"
NOT_UNDERSTOOD_MARKER = "MENSAJE_NO_ENTENDIDO"
NOT_UNDERSTOOD_REPLY = (
    "Disculpa, no estoy segura de haber entendido 😅 ¿Me das más detalle? "
    "Por ejemplo, la medida que necesitas o si buscas rollo o malla confeccionada."
)

SYSTEM_PROMPT = """Eres {persona}, asesora de ventas de una tienda de malla sombra en México.
Respondes en español, breve y amable, con máximo un emoji.

Información del negocio:
- Malla sombra confeccionada con ojillos, medidas de {smallest} a {largest} m.
- Rollos de 100 m en anchos de 4.20 m y 2.10 m, del 35% al 90% de sombra.
- Envíos a todo México por paquetería. No hacemos instalación.

{specs}
Si no entiendes el mensaje o no tiene relación con el negocio responde exactamente: {marker}
No inventes precios que no estén en esta información."""

_LEADING_GREETING = re.compile(r"^\s*¡?\s*(hola|buen[oa]s?\s+(d[ií]as|tardes|noches))[^.!?\n]*[.!?]?\s*", re.IGNORECASE)


def strip_leading_greeting(text: str) -> str:
    stripped = _LEADING_GREETING.sub("", text, count=1).strip()
    return stripped or text


class GenerativeFallbackHandler(Handler):
    """Last link: free text from the completion service with the persona prompt.

    Receives the original message, not the corrected one. Repeated non-answers
    escalate.
    """

    name = "generative_fallback"

    def _system_prompt(self, ctx: TurnContext) -> str:
        sizes = ctx.services.catalog.get_sizes()
        summary = get_specs_summary(ctx.record.product_specs)
        return SYSTEM_PROMPT.format(
            persona=ctx.persona_name,
            smallest=sizes[0].size_str if sizes else "2x2",
            largest=sizes[-1].size_str if sizes else "7x10",
            specs=f"Lo que el cliente ya compartió:\n{summary}\n" if summary else "",
            marker=NOT_UNDERSTOOD_MARKER,
        )

    def try_handle(self, ctx: TurnContext) -> Optional[Outcome]:
        messages = [
            {"role": "system", "content": self._system_prompt(ctx)},
            {"role": "user", "content": ctx.raw_message},
        ]
        result = ctx.services.completion.generate(messages)
        if result.ok and NOT_UNDERSTOOD_MARKER not in result.value:
            text = result.value
            if ctx.record.greeted:
                text = strip_leading_greeting(text)
            ctx.save(state=activate(ctx.state), last_intent="ai_fallback", unknown_count=0)
            return Text(text)

        if not result.ok:
            # an outage is not the customer being unclear
            ctx.log.warning("Generative fallback failed", context={"error_code": result.error_code})
            ctx.save(state=activate(ctx.state), last_intent="ai_fallback_failed")
            return Text(APOLOGY_REPLY)

        ctx.save(state=activate(ctx.state), unknown_count=ctx.record.unknown_count + 1, last_intent="unknown")
        if should_auto_escalate(ctx.record, ctx.now, ctx.settings):
            return escalate_to_human(ctx, HandoffReason.AUTO_ESCALATION)
        return Text(NOT_UNDERSTOOD_REPLY)
