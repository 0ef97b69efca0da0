from datetime import timedelta
from typing import Optional

from shadebot.services.handlers.base import Handler
from shadebot.services.intent_service import (
    greeting_has_payload,
    is_acknowledgement_message,
    is_farewell_message,
    is_greeting_message,
    is_purchase_deferral,
)
from shadebot.services.outcome import Outcome, Silent, Text
from shadebot.services.state_machine import activate, close
from shadebot.services.turn import TurnContext

ACKNOWLEDGEMENT_REPLY = "¡Perfecto! 😊 ¿Te ayudo con algo más? Puedo darte precios, medidas o info de envío."
REGREETING_REPLY = "¡Hola de nuevo! 😊 ¿En qué más te puedo ayudar?"
FAREWELL_REPLY = "¡Gracias a ti! 🌿 Cualquier cosa aquí estamos para ayudarte."
DEFERRAL_REPLY = (
    "Claro, tómate tu tiempo 😊 Cuando lo decidas aquí estoy para ayudarte con tu pedido."
)


def greeting_reply(persona_name: str) -> str:
    return (
        f"¡Hola! 👋 Soy {persona_name}, asesora de malla sombra.\n"
        "Manejamos malla sombra confeccionada lista para instalar y rollos de 100 m.\n"
        "¿Qué medida estás buscando?"
    )


class AcknowledgementHandler(Handler):
    name = "acknowledgement"

    def try_handle(self, ctx: TurnContext) -> Optional[Outcome]:
        if not is_acknowledgement_message(ctx.raw_message):
            return None
        if ctx.record.last_intent == "acknowledgement":
            return Silent(reason="repeated_acknowledgement")
        ctx.save(last_intent="acknowledgement")
        return Text(ACKNOWLEDGEMENT_REPLY)


class GreetingHandler(Handler):
    """Greets once per window. A greeting that carries a request is left to later handlers."""

    name = "greeting"

    def try_handle(self, ctx: TurnContext) -> Optional[Outcome]:
        if not is_greeting_message(ctx.message):
            return None

        if greeting_has_payload(ctx.message):
            if not ctx.record.greeted:
                ctx.save(greeted=True, last_greeted_at=ctx.now)
            return None

        if ctx.record.last_intent == "campaign_entry" and ctx.services.flows.get(ctx.record.campaign_ref):
            # the campaign flow opens with its own introduction
            ctx.save(greeted=True, last_greeted_at=ctx.now)
            return None

        window = timedelta(hours=ctx.settings.regreet_window_hours)
        recently_greeted = (
            ctx.record.greeted
            and ctx.record.last_greeted_at is not None
            and ctx.now - ctx.record.last_greeted_at < window
        )
        ctx.save(
            state=activate(ctx.state),
            greeted=True,
            last_greeted_at=ctx.now,
            last_intent="greeting",
        )
        if recently_greeted:
            return Text(REGREETING_REPLY)
        return Text(greeting_reply(ctx.persona_name))


class FarewellHandler(Handler):
    """Thanks or goodbye with nothing else attached closes the conversation."""

    name = "farewell"

    def try_handle(self, ctx: TurnContext) -> Optional[Outcome]:
        if not is_farewell_message(ctx.message):
            return None
        ctx.save(state=close(ctx.state), last_intent="thanks")
        ctx.log.info("Conversation closed by farewell")
        return Text(FAREWELL_REPLY)


class PurchaseDeferralHandler(Handler):
    name = "purchase_deferral"

    def try_handle(self, ctx: TurnContext) -> Optional[Outcome]:
        if not is_purchase_deferral(ctx.message):
            return None
        ctx.save(last_intent="purchase_deferred", state=activate(ctx.state))
        return Text(DEFERRAL_REPLY)
