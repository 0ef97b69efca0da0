"""Deterministic message cleanup applied before any analysis."""

import re

# Texting shorthand and frequent misspellings of domain nouns. No value may
# appear as a key, otherwise correction stops being idempotent.
TYPO_MAP = {
    "k": "que",
    "q": "que",
    "c": "se",
    "x": "por",
    "d": "de",
    "xq": "porque",
    "xk": "porque",
    "tb": "también",
    "tmb": "también",
    "yega": "llega",
    "yegan": "llegan",
    "yegue": "llegue",
    "yego": "llegó",
    "presio": "precio",
    "presión": "precio",
    "presion": "precio",
    "precion": "precio",
    "precío": "precio",
    "royo": "rollo",
    "rolo": "rollo",
    "roio": "rollo",
    "maya": "malla",
    "maia": "malla",
    "sonbra": "sombra",
    "zombra": "sombra",
    "cuanto": "cuánto",
    "quanto": "cuánto",
    "tamano": "tamaño",
    "tamanio": "tamaño",
    "disponivel": "disponible",
    "disponivle": "disponible",
    "envio": "envío",
    "emvio": "envío",
    "enbio": "envío",
    "mts": "metros",
    "mt": "metros",
    "mtrs": "metros",
    "m": "metros",
}

# Shorthand that means "by" when written between two numbers.
DIMENSION_SEPARATORS = frozenset({"k", "x"})

_TYPO_PATTERN = re.compile(
    r"\b(" + "|".join(re.escape(key) for key in sorted(TYPO_MAP, key=len, reverse=True)) + r")\b",
    re.IGNORECASE,
)


def _match_case(original: str, replacement: str) -> str:
    if original.isupper():
        return replacement.upper()
    if original[0].isupper():
        return replacement[0].upper() + replacement[1:]
    return replacement


def _between_numbers(match: re.Match) -> bool:
    before = match.string[: match.start()].rstrip()
    after = match.string[match.end() :].lstrip()
    return before[-1:].isdigit() and after[:1].isdigit()


def correct_typos(message: str) -> str:
    """Rewrite known shorthand tokens, keeping each token's capitalization pattern."""
    if not message:
        return message or ""

    def _replace(match: re.Match) -> str:
        token = match.group(0)
        if token.lower() in DIMENSION_SEPARATORS and _between_numbers(match):
            # "4 k 4" is a size, not "4 que 4"
            return "por"
        return _match_case(token, TYPO_MAP[token.lower()])

    return _TYPO_PATTERN.sub(_replace, message)


def normalize_message(message: str) -> str:
    """Correct typos, lowercase and collapse whitespace.

    The result feeds every pattern matcher and parser. The raw message is kept
    separately for the generative fallback because correction is lossy.
    """
    if not message:
        return ""
    corrected = correct_typos(message)
    return re.sub(r"\s+", " ", corrected).strip().lower()


def normalize_for_matching(text: str) -> str:
    """Normalize text for matching short phrases (casefold + trim punctuation)."""
    if not text:
        return ""

    normalized = text.strip().casefold()
    normalized = re.sub(r"\s+", " ", normalized)
    # "ok!" -> "ok", "¿gracias?" -> "gracias"
    normalized = re.sub(r"^[^\w]+|[^\w]+$", "", normalized)
    return normalized
