"""Fixed answers about the business: shipping, payment, installation and so on."""

from typing import Optional

from shadebot.services.extraction import parse_dimensions
from shadebot.services.handlers.products import answer_product_search, answer_size_request, ask_for_missing_spec
from shadebot.services.outcome import Outcome, Text
from shadebot.services.spec_service import get_specs_summary
from shadebot.services.state_machine import activate
from shadebot.services.turn import TurnContext

INSTALLATION_REPLY = (
    "Nosotros no hacemos instalación 🔧 pero la malla confeccionada viene reforzada con ojillos "
    "cada 50 cm, lista para colgar con cuerda o cable tensor."
)
SHIPPING_REPLY = (
    "¡Sí! Enviamos a todo México por paquetería 📦 El envío tarda de 3 a 5 días hábiles y "
    "te compartimos tu número de guía."
)
LOCATION_REPLY = (
    "Nuestra bodega está en Querétaro, Qro. 📍 Vendemos principalmente en línea con envío a todo el país."
)
PAYMENT_REPLY = (
    "Puedes pagar con tarjeta de crédito o débito, transferencia o en efectivo en tiendas de conveniencia 💳"
)
MATERIAL_REPLY = (
    "Es malla raschel de polietileno de alta densidad con protección UV ☀️ "
    "Resiste lluvia y viento y dura de 5 a 7 años a la intemperie."
)
STOCK_REPLY = "Sí, tenemos existencia de todas nuestras medidas estándar ✅"


def _reply(ctx: TurnContext, intent: str, text: str) -> Outcome:
    ctx.save(state=activate(ctx.state), last_intent=intent, unknown_count=0)
    return Text(text)


def answer_installation(ctx: TurnContext) -> Outcome:
    return _reply(ctx, "installation", INSTALLATION_REPLY)


def answer_shipping(ctx: TurnContext) -> Outcome:
    return _reply(ctx, "shipping", SHIPPING_REPLY)


def answer_location(ctx: TurnContext) -> Outcome:
    return _reply(ctx, "location", LOCATION_REPLY)


def answer_payment(ctx: TurnContext) -> Outcome:
    return _reply(ctx, "payment_methods", PAYMENT_REPLY)


def answer_material(ctx: TurnContext) -> Outcome:
    return _reply(ctx, "material_specs", MATERIAL_REPLY)


def answer_colors(ctx: TurnContext) -> Outcome:
    colors = ctx.services.catalog.get_colors() or ["negro", "verde", "beige"]
    listed = ", ".join(colors[:-1]) + f" y {colors[-1]}" if len(colors) > 1 else colors[0]
    return _reply(ctx, "colors", f"Manejamos malla sombra en {listed} 🎨 ¿Cuál te gusta para tu proyecto?")


def answer_stock(ctx: TurnContext) -> Outcome:
    text = STOCK_REPLY
    if ctx.record.requested_size:
        text += f" ¿Quieres que te aparte la de {ctx.record.requested_size} m?"
    return _reply(ctx, "stock_availability", text)


def answer_details(ctx: TurnContext) -> Optional[Outcome]:
    outcome = answer_product_search(ctx)
    if outcome is not None:
        return outcome
    product_type = ctx.record.product_specs.product_type
    if product_type:
        return answer_product_search(ctx, query=product_type)
    return None


def answer_buying_intent(ctx: TurnContext) -> Outcome:
    """Move a buyer towards checkout, asking only for what is still missing."""
    dims = parse_dimensions(ctx.message)
    if dims is not None and 100 not in (dims.width, dims.height):
        return answer_size_request(ctx, dims)

    asked = ask_for_missing_spec(ctx)
    if asked is not None:
        return asked

    summary = get_specs_summary(ctx.record.product_specs)
    ctx.save(state=activate(ctx.state), last_intent="buying_intent", unknown_count=0)
    return Text(
        f"¡Excelente elección! 🙌\n{summary}\n\n"
        f"Puedes completar tu compra aquí: {ctx.settings.store_url}\n"
        "Si prefieres, un asesor te ayuda con el pedido."
    )
