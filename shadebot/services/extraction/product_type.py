import re
from typing import Optional

ROLL = "rollo"
PANEL = "confeccionada"
GROUND_COVER = "ground_cover"
MONOFILAMENT = "monofilamento"
EDGING = "borde"

PRODUCT_TYPES = (ROLL, PANEL, GROUND_COVER, MONOFILAMENT, EDGING)

_KEYWORDS = (
    (GROUND_COVER, re.compile(r"\b(antimaleza|anti\s*maleza|ground\s*cover|groundcover)\b")),
    (MONOFILAMENT, re.compile(r"\b(monofilamento|raschel)\b")),
    (EDGING, re.compile(r"\b(borde|bordes|cinta\s+para\s+borde|ribete)\b")),
    (ROLL, re.compile(r"\b(rol+[oy]s?|rollo\s+entero|rollo\s+completo)\b")),
    (PANEL, re.compile(r"\b(confeccionad[oa]s?|con\s+ojillos|ya\s+hecha|lista\s+para\s+instalar)\b")),
)


def extract_product_type(text: str) -> Optional[str]:
    if not text:
        return None
    for product_type, pattern in _KEYWORDS:
        if pattern.search(text):
            return product_type
    return None
