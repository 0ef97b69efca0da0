import re
from typing import Optional

# Runs on the raw message: the heuristic depends on capitalization.
_NAME_AFTER_PREPOSITION = re.compile(
    r"\b(?:nombre\s+de|a\s+nombre\s+de|para|cliente|me\s+llamo|soy)\s+"
    r"([A-ZÁÉÍÓÚÑ][a-záéíóúñ]+(?:\s+[A-ZÁÉÍÓÚÑ][a-záéíóúñ]+)?)"
)

_NOT_NAMES = {"Malla", "Rollo", "Sombra", "Beige", "Negro", "Verde", "Mi", "El", "La", "Un", "Una"}


def extract_customer_name(text: str) -> Optional[str]:
    if not text:
        return None
    match = _NAME_AFTER_PREPOSITION.search(text)
    if not match:
        return None
    name = match.group(1).strip()
    if name.split()[0] in _NOT_NAMES:
        return None
    return name
