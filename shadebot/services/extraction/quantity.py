import re
from typing import Optional

_NOT_A_SIZE = r"(?!\s*(?:[x×*.,]\s*\d|por\s+\d|%|metros?\b))"

_QUANTITY_PATTERNS = (
    re.compile(rf"\b(\d+){_NOT_A_SIZE}\s*(?:rol+[oy]s?|unidades?|piezas?|mallas?|lonas?)\b"),
    re.compile(rf"\b(?:quiero|necesito|ocupo|son|dame|serían|serian)\s+(\d+)\b{_NOT_A_SIZE}"),
    re.compile(rf"\b(?:por\s+lo\s+menos|m[ií]nimo)\s+(\d+)\b{_NOT_A_SIZE}"),
)


def extract_quantity(text: str) -> Optional[int]:
    """Number of pieces requested. Numbers that belong to a size are ignored."""
    if not text:
        return None
    for pattern in _QUANTITY_PATTERNS:
        match = pattern.search(text)
        if match:
            value = int(match.group(1))
            if value > 0:
                return value
    return None
