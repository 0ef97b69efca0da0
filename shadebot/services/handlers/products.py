"""Product answers: sizes, rolls, families and catalog search."""

import re
from typing import Optional

from shadebot.services.dimension_service import (
    MatchKind,
    build_multi_size_response,
    build_size_response,
    format_price,
    resolve_dimensions,
)
from shadebot.services.escalation_service import HandoffReason, escalate_to_human, track_oversized_request
from shadebot.services.extraction import Dimensions, extract_all_dimensions, has_dimension_pattern, parse_dimensions
from shadebot.services.extraction.product_type import EDGING, GROUND_COVER, MONOFILAMENT, PANEL, ROLL
from shadebot.services.handlers.base import Handler
from shadebot.services.intent_service import is_catalog_overview, is_generic_measures_query
from shadebot.services.outcome import Image, Outcome, Text
from shadebot.services.spec_service import get_missing_specs, get_specs_summary
from shadebot.services.state_machine import activate
from shadebot.services.turn import TurnContext

PRODUCT_TYPE_FAMILY = {
    ROLL: "malla_sombra",
    PANEL: "malla_sombra",
    GROUND_COVER: "antimaleza",
    MONOFILAMENT: "monofilamento",
    EDGING: "borde",
}

POPULAR_SIZES = ("3x4", "4x4", "4x6", "5x5", "6x6")

ROLL_DIMENSIONS_REPLY = (
    "Los rollos de malla sombra vienen en 100 metros de largo 📏\n\n"
    "Anchos disponibles:\n"
    "• 4.20m x 100m (420 m² por rollo)\n"
    "• 2.10m x 100m (210 m² por rollo)\n\n"
    "¿Te interesa cotizar algún rollo?"
)

MEASURE_GUIDANCE_REPLY = (
    "Con una medida aproximada me basta 😊 Dime el largo y el ancho del área (por ejemplo 4x6) "
    "o con qué se compara, como un carro o una cochera, y te calculo la medida que te conviene."
)

MISSING_SPEC_QUESTIONS = {
    "product_type": "¿Buscas malla confeccionada (lista para instalar) o rollo de 100 m?",
    "size": "¿Qué medida necesitas? Por ejemplo 4x6.",
    "width": "¿Qué ancho de rollo prefieres: 4.20 m o 2.10 m?",
    "percentage": "¿Qué porcentaje de sombra buscas? Manejamos del 35% al 90%.",
}

MISSING_SPEC_REASK = "Para preparar tu cotización solo me falta este dato 🙏\n{question}"

AWAITING_INTENTS = {
    "width": "roll_awaiting_width",
    "percentage": "awaiting_percentage",
    "size": "awaiting_size",
    "product_type": "awaiting_product_type",
}

_ROLL_DIMENSION_PATTERNS = (
    re.compile(r"\bcu[aá]ntos?\s+(metros?)\s+(tra[ey]|tiene|mide|viene)"),
    re.compile(r"\b(metros?)\s+(tra[ey]|tiene|mide|viene)\s+(cada|el|un|los)?\s*rol+[oy]"),
    re.compile(r"\bcu[aá]nto\s+(mide|tra[ey]|viene)\s+(el|cada|un)?\s*rol+[oy]"),
    re.compile(r"\b(medida|dimensi[oó]n|tama[ñn]o)\s+(del?|cada)?\s*rol+[oy]"),
    re.compile(r"\brol+[oy]s?\s+(de\s+)?cu[aá]ntos?\s+metros?"),
)
_ROLL_MENTION = re.compile(r"\brol+[oy]s?\b|\b(4\.?20?|2\.?10?)\s*(?:[x×*]|por)\s*100\b")
_PRODUCT_QUESTION = re.compile(
    r"\b(qu[eé]|tienen|manejan|venden|precio|costo|informaci[oó]n|medidas?|tama[ñn]os?|disponible|cu[aá]nto)\b"
)


def in_roll_context(ctx: TurnContext) -> bool:
    """True when rolls were the topic before this message, even if it carried a panel size."""
    if ROLL in (ctx.prior_product_type, ctx.record.product_specs.product_type):
        return True
    return (ctx.record.last_intent or "").startswith("roll")


def answer_size_request(ctx: TurnContext, dims: Dimensions) -> Outcome:
    """Resolve one requested size against the catalog and track repeated oversized asks."""
    verdict = resolve_dimensions(dims, ctx.services.catalog.get_sizes(), ctx.settings.dimension_tolerance)

    if verdict.kind == MatchKind.OVERSIZED:
        check = track_oversized_request(ctx.record, dims.key, ctx.settings.oversized_repeat_limit)
        if check.should_escalate:
            outcome = escalate_to_human(ctx, HandoffReason.REPEATED_OVERSIZED, size=dims.size_str)
            ctx.save(oversized_repeat_count=0, last_unavailable_size=None)
            return outcome
        ctx.save(
            state=activate(ctx.state),
            oversized_repeat_count=check.count,
            last_unavailable_size=dims.key,
            requested_size=dims.size_str,
            suggested_sizes=[],
            last_intent="measures_oversized",
            unknown_count=0,
        )
        text = build_size_response(verdict, roll_context=in_roll_context(ctx))
        if check.count > 1:
            text = f"Como te comentaba: {text}"
        ctx.log.info("Oversized size requested", context={"size": dims.key, "repeat": check.count})
        return Text(text)

    suggested = [verdict.match.size_str] if verdict.match else [s.size_str for s in verdict.alternatives]
    ctx.save(
        state=activate(ctx.state),
        oversized_repeat_count=0,
        last_unavailable_size=None,
        requested_size=dims.size_str,
        suggested_sizes=suggested,
        last_intent=f"measures_{verdict.kind.value}",
        unknown_count=0,
    )
    text = build_size_response(verdict)
    if verdict.kind == MatchKind.EXACT and verdict.match.image_url:
        return Image(text, verdict.match.image_url)
    return Text(text)


def answer_generic_measures(ctx: TurnContext) -> Outcome:
    sizes = ctx.services.catalog.get_sizes()
    if not sizes:
        return Text(MISSING_SPEC_QUESTIONS["size"])
    popular = [s for s in sizes if s.size_str in POPULAR_SIZES] or sizes[:5]
    lines = "\n".join(f"• {s.size_str} m → {format_price(s.price)}" for s in popular)
    ctx.save(state=activate(ctx.state), last_intent="measures_generic", unknown_count=0)
    return Text(
        f"Tenemos malla confeccionada desde {sizes[0].size_str} m ({format_price(sizes[0].price)}) "
        f"hasta {sizes[-1].size_str} m ({format_price(sizes[-1].price)}).\n"
        f"Las más pedidas:\n{lines}\n¿Qué medida necesitas?"
    )


def answer_measure_guidance(ctx: TurnContext) -> Outcome:
    dims = parse_dimensions(ctx.message)
    if dims is not None:
        return answer_size_request(ctx, dims)
    ctx.save(state=activate(ctx.state), last_intent="measures_guidance")
    return Text(MEASURE_GUIDANCE_REPLY)


def ask_for_missing_spec(ctx: TurnContext) -> Optional[Outcome]:
    """Ask for the next missing slot; a second unanswered ask goes to a human."""
    missing = get_missing_specs(ctx.record.product_specs)
    if not missing:
        return None
    field = missing[0]
    awaiting = AWAITING_INTENTS[field]
    question = MISSING_SPEC_QUESTIONS[field]
    if ctx.record.last_intent == awaiting and not ctx.specs_changed:
        if ctx.record.clarification_count >= ctx.settings.max_clarifications:
            return escalate_to_human(ctx, HandoffReason.AUTO_ESCALATION)
        ctx.save(clarification_count=ctx.record.clarification_count + 1)
        ctx.clarified = True
        question = MISSING_SPEC_REASK.format(question=question)
    ctx.save(state=activate(ctx.state), last_intent=awaiting)
    return Text(question)


def answer_roll_query(ctx: TurnContext) -> Optional[Outcome]:
    if any(p.search(ctx.message) for p in _ROLL_DIMENSION_PATTERNS):
        ctx.save(state=activate(ctx.state), last_intent="roll_dimension_query", unknown_count=0)
        return Text(ROLL_DIMENSIONS_REPLY)
    if not _ROLL_MENTION.search(ctx.message):
        return None

    specs = ctx.record.product_specs
    if specs.product_type != ROLL:
        specs = specs.model_copy(update={"product_type": ROLL})
        ctx.save(product_specs=specs)
    asked = ask_for_missing_spec(ctx)
    if asked is not None:
        return asked
    return quote_ready(ctx)


def quote_ready(ctx: TurnContext) -> Outcome:
    summary = get_specs_summary(ctx.record.product_specs)
    ctx.save(state=activate(ctx.state), last_intent="quote_ready", clarification_count=0)
    return Text(
        f"¡Listo! Esto es lo que tengo de tu pedido:\n{summary}\n\n"
        "¿Quieres que un asesor te envíe la cotización final?"
    )


def answer_catalog_overview(ctx: TurnContext) -> Outcome:
    families = ctx.services.catalog.get_families()
    lines = "\n".join(f"• {f.name}: {f.description}" for f in families)
    ctx.save(state=activate(ctx.state), last_intent="catalog_overview", unknown_count=0)
    return Text(f"Estos son nuestros productos 🌿\n{lines}\n\n¿Cuál te interesa?")


def answer_family(ctx: TurnContext) -> Optional[Outcome]:
    family = ctx.services.catalog.find_family(ctx.message)
    if family is None:
        return None
    uses = ", ".join(family.uses) if family.uses else "uso residencial y agrícola"
    price = f" Precios {family.price_range}." if family.price_range else ""
    ctx.save(state=activate(ctx.state), last_intent="family_inquiry", unknown_count=0)
    return Text(f"{family.name}: {family.description}\nIdeal para {uses}.{price}\n¿Qué medida necesitas?")


def answer_product_search(ctx: TurnContext, query: Optional[str] = None) -> Optional[Outcome]:
    product = ctx.services.catalog.search_product(query or ctx.message)
    if product is None:
        return None
    price = f"\nPrecio {product.price_range}." if product.price_range else ""
    text = f"{product.name}: {product.description}{price}\n¿Te gustaría cotizar?"
    ctx.save(state=activate(ctx.state), last_intent="product_search", unknown_count=0)
    if product.image_url:
        return Image(text, product.image_url)
    return Text(text)


class CatalogOverviewHandler(Handler):
    name = "catalog_overview"

    def try_handle(self, ctx: TurnContext) -> Optional[Outcome]:
        if not is_catalog_overview(ctx.message):
            return None
        return answer_catalog_overview(ctx)


class GenericMeasuresHandler(Handler):
    """A sizes or prices question without a concrete size gets the popular price list."""

    name = "generic_measures"

    def try_handle(self, ctx: TurnContext) -> Optional[Outcome]:
        if has_dimension_pattern(ctx.message) or not is_generic_measures_query(ctx.message):
            return None
        return answer_generic_measures(ctx)


class RollQueryHandler(Handler):
    name = "roll_query"

    def try_handle(self, ctx: TurnContext) -> Optional[Outcome]:
        return answer_roll_query(ctx)


class CrossSellHandler(Handler):
    """Customer asks about a different family than the one being quoted."""

    name = "cross_sell"

    def try_handle(self, ctx: TurnContext) -> Optional[Outcome]:
        current = PRODUCT_TYPE_FAMILY.get(ctx.record.product_specs.product_type)
        if current is None or has_dimension_pattern(ctx.message):
            return None
        if not _PRODUCT_QUESTION.search(ctx.message):
            return None
        family = ctx.services.catalog.find_family(ctx.message)
        if family is None or family.key == current:
            return None
        ctx.save(last_intent="cross_sell", unknown_count=0)
        ctx.log.info("Cross-sell detected", context={"family": family.key, "current": current})
        return Text(f"¡Claro! También manejamos {family.name.lower()}: {family.description}\n¿Te interesa cotizarla?")


class FamilyHandler(Handler):
    name = "family"

    def try_handle(self, ctx: TurnContext) -> Optional[Outcome]:
        if has_dimension_pattern(ctx.message):
            return None
        return answer_family(ctx)


class ProductSearchHandler(Handler):
    name = "product_search"

    def try_handle(self, ctx: TurnContext) -> Optional[Outcome]:
        if has_dimension_pattern(ctx.message):
            return None
        return answer_product_search(ctx)


class SizeRequestHandler(Handler):
    """One or several explicit sizes (or a reference object) in the message."""

    name = "size_request"

    def try_handle(self, ctx: TurnContext) -> Optional[Outcome]:
        all_sizes = [d for d in extract_all_dimensions(ctx.message) if 100 not in (d.width, d.height)]
        if len(all_sizes) > 1:
            sizes = ctx.services.catalog.get_sizes()
            verdicts = [resolve_dimensions(d, sizes, ctx.settings.dimension_tolerance) for d in all_sizes]
            ctx.save(
                state=activate(ctx.state),
                last_intent="multiple_sizes",
                suggested_sizes=[v.match.size_str for v in verdicts if v.match],
                unknown_count=0,
            )
            return Text(build_multi_size_response(verdicts))

        dims = parse_dimensions(ctx.message)
        if dims is None or 100 in (dims.width, dims.height):
            return None
        return answer_size_request(ctx, dims)


class SlotFollowUpHandler(Handler):
    """Continues a slot-filling exchange the bot started with a question."""

    name = "slot_follow_up"

    def try_handle(self, ctx: TurnContext) -> Optional[Outcome]:
        if ctx.record.last_intent not in AWAITING_INTENTS.values():
            return None
        if not ctx.specs_changed:
            return None
        if ctx.record.product_specs.product_type == PANEL and ctx.record.product_specs.size:
            dims = parse_dimensions(ctx.message)
            if dims is not None:
                return answer_size_request(ctx, dims)
        asked = ask_for_missing_spec(ctx)
        if asked is not None:
            return asked
        return quote_ready(ctx)
