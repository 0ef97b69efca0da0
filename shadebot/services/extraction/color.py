import re
from typing import Optional

COLOR_SYNONYMS = {
    "negro": "negro",
    "negra": "negro",
    "verde": "verde",
    "beige": "beige",
    "bex": "beige",
    "beis": "beige",
    "blanco": "blanco",
    "blanca": "blanco",
    "azul": "azul",
    "gris": "gris",
    "rojo": "rojo",
    "roja": "rojo",
}

_COLOR = re.compile(r"\b(" + "|".join(COLOR_SYNONYMS) + r")s?\b")


def extract_color(text: str) -> Optional[str]:
    """Canonical color name; feminine and plural forms collapse to one value."""
    if not text:
        return None
    match = _COLOR.search(text.lower())
    if not match:
        return None
    return COLOR_SYNONYMS[match.group(1)]
