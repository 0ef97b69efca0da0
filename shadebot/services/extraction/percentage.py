import re
from typing import Optional

LIGHT_SHADE = 35
HEAVY_SHADE = 90

_NUMERIC = re.compile(r"(?:al\s+)?(\d{2,3})\s*(?:%|por\s*ciento)")
_LIGHT = re.compile(
    r"\b(menos\s*sombra|menor\s*sombra|poca\s*sombra|m[aá]s\s*delgad[oa]|delgad[oa])\b"
)
_HEAVY = re.compile(
    r"\b(m[aá]s\s*sombra|mayor\s*sombra|mucha\s*sombra|m[aá]s\s*grues[oa]|grues[oa]|m[aá]s\s*dens[oa]|dens[oa])\b"
)


def extract_percentage(text: str) -> Optional[int]:
    """Shade density from "80%", "90 por ciento" or a qualitative phrase."""
    if not text:
        return None
    match = _NUMERIC.search(text)
    if match:
        value = int(match.group(1))
        if 10 <= value <= 100:
            return value
    if _LIGHT.search(text):
        return LIGHT_SHADE
    if _HEAVY.search(text):
        return HEAVY_SHADE
    return None
