"""Slot filling for product configuration: extract, merge, and report what is still missing."""

import re
from datetime import datetime
from typing import Any, Optional

from shadebot.logging_config import get_logger
from shadebot.schemas.conversation import ProductSpec
from shadebot.services.extraction import (
    extract_all_dimensions,
    extract_color,
    extract_customer_name,
    extract_percentage,
    extract_product_type,
    extract_quantity,
    format_meters,
    parse_dimensions,
    parse_roll_width,
)
from shadebot.services.extraction.dimensions import ROLL_LENGTH
from shadebot.services.extraction.product_type import GROUND_COVER, MONOFILAMENT, PANEL, ROLL

logger = get_logger("spec_service")

SPEC_FIELDS = tuple(name for name in ProductSpec.model_fields if name != "updated_at")

# Slots that must be known before a quote can be prepared, per product type.
REQUIRED_SPECS = {
    ROLL: ("width", "percentage"),
    PANEL: ("size",),
    GROUND_COVER: ("width",),
    MONOFILAMENT: ("width", "percentage"),
}

SPEC_LABELS = {
    "product_type": "Producto",
    "size": "Medida",
    "width": "Ancho",
    "percentage": "Porcentaje de sombra",
    "color": "Color",
    "quantity": "Cantidad",
    "customer_name": "Cliente",
}

PRODUCT_LABELS = {
    ROLL: "Rollo de malla sombra",
    PANEL: "Malla sombra confeccionada",
    GROUND_COVER: "Malla antimaleza",
    MONOFILAMENT: "Malla monofilamento",
    "borde": "Cinta para borde",
}

_ROLL_WIDTH_CHOICE = (
    (4.2, re.compile(r"\b(primer[oa]|la\s+de\s+4|4\.?[12]0?|de\s+4)\b")),
    (2.1, re.compile(r"\b(segund[oa]|la\s+de\s+2|2\.?[12]0?|de\s+2)\b")),
)

_MULTI_ITEM_PATTERNS = (
    re.compile(r"\b(el\s+)?primer[oa]\b.*\b(el\s+)?segund[oa]\b"),
    re.compile(r"\buno\s+de\b.*\botro\s+de\b"),
    re.compile(r"\buna\s+de\b.*\botra\s+de\b"),
    re.compile(r"(\d{2,3})\s*%?\s*(y|,)\s*(de\s+)?(\d{2,3})\s*%"),
    re.compile(r"\b(dos|2)\s+(rol+[oy]s?|mallas?)\b.*\b(diferente|distint)"),
)


def _chosen_roll_width(message: str) -> Optional[float]:
    for width, pattern in _ROLL_WIDTH_CHOICE:
        if pattern.search(message):
            return width
    return None


def extract_specs(message: str, raw_message: Optional[str] = None, last_intent: Optional[str] = None) -> dict[str, Any]:
    """Run every slot parser over the normalized message and return a sparse spec.

    Parsers are independent; only non-null findings are returned so the result
    can be merged without clearing known fields.
    """
    specs: dict[str, Any] = {}
    if not message:
        return specs

    roll_width = parse_roll_width(message)
    if roll_width is None and last_intent == "roll_awaiting_width":
        # "la de 4" answers the width question, it is not a 4x4 panel
        roll_width = _chosen_roll_width(message)

    if roll_width is not None:
        specs.update(
            product_type=ROLL,
            width=roll_width,
            length=ROLL_LENGTH,
            size=f"{format_meters(roll_width)}x{format_meters(ROLL_LENGTH)}",
        )
    else:
        dims = parse_dimensions(message, allow_reference=False)
        if dims is not None:
            specs.update(width=dims.width, height=dims.height, size=dims.size_str, product_type=PANEL)

    explicit_type = extract_product_type(message)
    if explicit_type and explicit_type != specs.get("product_type"):
        # a keyword beats the panel default but never contradicts a roll size
        if specs.get("product_type") != ROLL:
            if explicit_type == ROLL:
                for field in ("width", "height", "size"):
                    specs.pop(field, None)
            specs["product_type"] = explicit_type

    for field, value in (
        ("percentage", extract_percentage(message)),
        ("color", extract_color(message)),
        ("quantity", extract_quantity(message)),
        ("customer_name", extract_customer_name(raw_message if raw_message is not None else message)),
    ):
        if value is not None:
            specs[field] = value

    return specs


def merge_specs(existing: Optional[ProductSpec], new_specs: dict[str, Any], now: datetime) -> ProductSpec:
    """Monotonic merge: new non-null values win, absent or null values never clear.

    updated_at only moves when a value actually changes, which keeps the merge
    idempotent.
    """
    base = existing.model_dump() if existing is not None else ProductSpec().model_dump()
    changed = False
    for field in SPEC_FIELDS:
        value = new_specs.get(field)
        if value is None:
            continue
        if base.get(field) != value:
            base[field] = value
            changed = True
    if changed:
        base["updated_at"] = now
    return ProductSpec.model_validate(base)


def get_missing_specs(spec: Optional[ProductSpec]) -> list[str]:
    """Required slots not yet known. Quantity and color are always optional."""
    if spec is None or not spec.product_type:
        return ["product_type"]
    required = REQUIRED_SPECS.get(spec.product_type, ())
    return [field for field in required if getattr(spec, field) is None]


def get_specs_summary(spec: Optional[ProductSpec]) -> str:
    if spec is None:
        return ""
    lines = []
    for field, label in SPEC_LABELS.items():
        value = getattr(spec, field)
        if value is None:
            continue
        if field == "product_type":
            value = PRODUCT_LABELS.get(value, value)
        elif field == "percentage":
            value = f"{value}%"
        elif field == "size":
            value = f"{value} m"
        elif field == "width":
            value = f"{format_meters(value)} m"
        lines.append(f"• {label}: {value}")
    return "\n".join(lines)


def is_multi_item_order(message: str) -> bool:
    if not message:
        return False
    if any(pattern.search(message) for pattern in _MULTI_ITEM_PATTERNS):
        return True
    return len(extract_all_dimensions(message)) > 1


def extract_multiple_items(message: str) -> list[dict[str, Any]]:
    """Split a multi-item order into one sparse spec per size mentioned."""
    items = []
    percentages = [int(p) for p in re.findall(r"(\d{2,3})\s*(?:%|por\s*ciento)", message or "")]
    for index, dims in enumerate(extract_all_dimensions(message)):
        item: dict[str, Any] = {"width": dims.width, "height": dims.height, "size": dims.size_str}
        if dims.height == ROLL_LENGTH or dims.width == ROLL_LENGTH:
            width = dims.height if dims.width == ROLL_LENGTH else dims.width
            item = {"product_type": ROLL, "width": width, "length": ROLL_LENGTH, "size": dims.size_str}
        else:
            item["product_type"] = PANEL
        if index < len(percentages):
            item["percentage"] = percentages[index]
        items.append(item)
    if items:
        logger.info("Multi-item order parsed", extra={"context": {"items": len(items)}})
    return items
