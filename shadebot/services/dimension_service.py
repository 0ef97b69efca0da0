"""Reconcile a requested width x height with the fixed size catalog."""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from shadebot.services.catalog_service import CatalogSize
from shadebot.services.extraction.dimensions import Dimensions, format_meters

DEFAULT_TOLERANCE = 0.2
MAX_ALTERNATIVES = 3


class MatchKind(str, Enum):
    EXACT = "exact"
    CONTAINING = "containing"
    FRACTIONAL = "fractional"
    OVERSIZED = "oversized"


@dataclass
class DimensionVerdict:
    kind: MatchKind
    requested: Dimensions
    match: Optional[CatalogSize] = None
    alternatives: list[CatalogSize] = field(default_factory=list)
    largest: Optional[CatalogSize] = None


def _same_size(size: CatalogSize, width: float, height: float, tolerance: float) -> bool:
    straight = abs(size.width - width) <= tolerance and abs(size.height - height) <= tolerance
    rotated = abs(size.width - height) <= tolerance and abs(size.height - width) <= tolerance
    return straight or rotated


def find_exact(dims: Dimensions, sizes: list[CatalogSize], tolerance: float = DEFAULT_TOLERANCE) -> Optional[CatalogSize]:
    for size in sizes:
        if _same_size(size, dims.width, dims.height, tolerance):
            return size
    return None


def find_containing(dims: Dimensions, sizes: list[CatalogSize]) -> Optional[CatalogSize]:
    """Smallest entry that fully covers the request; ties go to the cheaper one."""
    covering = [size for size in sizes if dims.fits_within(size.width, size.height)]
    if not covering:
        return None
    return min(covering, key=lambda s: (s.area, s.price))


def whole_meter_alternatives(
    dims: Dimensions,
    sizes: list[CatalogSize],
    tolerance: float = DEFAULT_TOLERANCE,
) -> list[CatalogSize]:
    """Catalog entries for the whole-meter roundings of a fractional request."""
    widths = {math.floor(dims.width), math.ceil(dims.width)}
    heights = {math.floor(dims.height), math.ceil(dims.height)}
    found: dict[str, CatalogSize] = {}
    for width in widths:
        for height in heights:
            if width <= 0 or height <= 0:
                continue
            size = find_exact(Dimensions(width, height), sizes, tolerance=0.0)
            if size is not None:
                found[size.size_str] = size
    containing = find_containing(dims, sizes)
    if containing is not None:
        found[containing.size_str] = containing
    return sorted(found.values(), key=lambda s: (s.area, s.price))[:MAX_ALTERNATIVES]


def resolve_dimensions(
    dims: Dimensions,
    sizes: list[CatalogSize],
    tolerance: float = DEFAULT_TOLERANCE,
) -> DimensionVerdict:
    """Classify a request as exact, containing, fractional or oversized.

    Oversized means no single catalog entry can cover the request.
    """
    ordered = sorted(sizes, key=lambda s: (s.area, s.price))
    largest = ordered[-1] if ordered else None

    exact = find_exact(dims, ordered, tolerance)
    if exact is not None:
        return DimensionVerdict(MatchKind.EXACT, dims, match=exact, largest=largest)

    if dims.is_fractional:
        alternatives = whole_meter_alternatives(dims, ordered, tolerance)
        if alternatives:
            return DimensionVerdict(MatchKind.FRACTIONAL, dims, alternatives=alternatives, largest=largest)

    containing = find_containing(dims, ordered)
    if containing is not None:
        return DimensionVerdict(MatchKind.CONTAINING, dims, match=containing, largest=largest)

    return DimensionVerdict(MatchKind.OVERSIZED, dims, largest=largest)


def format_price(price: float) -> str:
    if float(price).is_integer():
        return f"${int(price):,}"
    return f"${price:,.2f}"


def _size_line(size: CatalogSize) -> str:
    return f"• {size.size_str} m → {format_price(size.price)}"


def build_size_response(verdict: DimensionVerdict, roll_context: bool = False) -> str:
    """Customer-facing answer for a verdict.

    Rolls are only suggested for oversized requests when the conversation is
    already about rolls.
    """
    requested = verdict.requested.size_str
    prefix = ""
    if verdict.requested.is_estimated and verdict.requested.reference:
        prefix = f"Para {verdict.requested.reference} calculamos aproximadamente {requested} m. "

    if verdict.kind == MatchKind.EXACT:
        size = verdict.match
        return (
            f"{prefix}¡Sí tenemos la medida {size.size_str} m! 🌿\n"
            f"Precio: {format_price(size.price)}, ya confeccionada con ojillos.\n"
            "¿Quieres que te pase el enlace para comprarla?"
        )

    if verdict.kind == MatchKind.CONTAINING:
        size = verdict.match
        return (
            f"{prefix}No manejamos {requested} m exacta, pero la medida que la cubre es "
            f"{size.size_str} m por {format_price(size.price)}.\n"
            "¿Te funciona esa medida?"
        )

    if verdict.kind == MatchKind.FRACTIONAL:
        options = "\n".join(_size_line(size) for size in verdict.alternatives)
        return (
            f"{prefix}Nuestras mallas confeccionadas se venden en metros enteros, así que {requested} m "
            f"no está disponible tal cual. Las opciones más cercanas son:\n{options}\n"
            "¿Cuál te conviene?"
        )

    largest = verdict.largest.size_str if verdict.largest else None
    text = f"{prefix}La medida {requested} m supera nuestras medidas estándar"
    if largest:
        text += f" (la más grande es {largest} m)"
    text += (
        ". Se puede fabricar sobre medida o cubrir uniendo varias piezas estándar; "
        "un asesor te prepara la cotización."
    )
    if roll_context:
        text += (
            f"\nComo estás viendo rollos, también puedes cubrirla con un rollo de "
            f"{format_meters(4.2)} x 100 m y cortarlo a tu medida."
        )
    return text


def build_multi_size_response(verdicts: list[DimensionVerdict]) -> str:
    lines = []
    for verdict in verdicts:
        requested = verdict.requested.size_str
        if verdict.kind == MatchKind.EXACT:
            lines.append(f"• {verdict.match.size_str} m → {format_price(verdict.match.price)}")
        elif verdict.kind == MatchKind.CONTAINING:
            lines.append(
                f"• {requested} m → te cubre la {verdict.match.size_str} m por {format_price(verdict.match.price)}"
            )
        elif verdict.kind == MatchKind.FRACTIONAL:
            nearest = verdict.alternatives[0]
            lines.append(
                f"• {requested} m → la más cercana es {nearest.size_str} m por {format_price(nearest.price)}"
            )
        else:
            lines.append(f"• {requested} m → requiere fabricación sobre medida")
    return "Te paso los precios de cada medida:\n" + "\n".join(lines) + "\n¿Quieres que te aparte alguna?"
