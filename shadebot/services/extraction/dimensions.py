"""Free-form size expressions: "4x6", "3 por 4", "8 metros de largo x 5 de ancho", "tres y medio por dos"."""

import re
from dataclasses import dataclass
from typing import Optional

from shadebot.services.extraction.numbers import convert_number_words
from shadebot.services.extraction.references import estimate_from_reference

ROLL_LENGTH = 100.0
ROLL_WIDTHS = (4.2, 2.1)

_NUM = r"(\d+(?:\.\d+)?)"
_SEP = r"\s*[x×*]\s*"

_BY_SYMBOL = re.compile(rf"{_NUM}{_SEP}{_NUM}")
_DE_PAIR = re.compile(rf"(?:\bde\.?|\bmedida)\s+{_NUM}\s+{_NUM}\b")
_BY_WORD = re.compile(rf"{_NUM}\s+por\s+{_NUM}")
_METERS_BY = re.compile(
    rf"{_NUM}\s+metros?\s+(?:de\s+)?(?:ancho\s+|largo\s+)?(?:por|x)\s+{_NUM}(?:\s*metros?)?"
)
_WIDTH_BY_LENGTH = re.compile(rf"{_NUM}\s+(?:de\s+)?ancho\s+(?:por|x)\s+{_NUM}\s+(?:de\s+)?largo")
_LABELLED = re.compile(
    rf"{_NUM}\s*(?:metros?)?\s+de\s+(largo|ancho)\s*(?:[x×*]|por)\s*{_NUM}\s*(?:metros?)?\s*(?:de\s+)?(largo|ancho)?"
)
_FORMAL = re.compile(rf"(largo|ancho)\s+{_NUM}\s+(ancho|largo)\s+{_NUM}")
_SQUARE = re.compile(rf"\b(?:de|una\s+de|uno\s+de)\s+{_NUM}\s*(?:metros?\b|\?|$)")
_ROLL = re.compile(rf"{_NUM}(?:{_SEP}|\s+por\s+)100\b|\b100(?:{_SEP}|\s+por\s+){_NUM}")


@dataclass(frozen=True)
class Dimensions:
    width: float
    height: float
    is_estimated: bool = False
    reference: Optional[str] = None

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def is_fractional(self) -> bool:
        return not (float(self.width).is_integer() and float(self.height).is_integer())

    @property
    def size_str(self) -> str:
        return f"{format_meters(self.width)}x{format_meters(self.height)}"

    @property
    def key(self) -> str:
        """Orientation-insensitive identity, used to recognise repeated requests."""
        low, high = sorted((self.width, self.height))
        return f"{format_meters(low)}x{format_meters(high)}"

    def fits_within(self, width: float, height: float) -> bool:
        low, high = sorted((self.width, self.height))
        other_low, other_high = sorted((width, height))
        return low <= other_low and high <= other_high


def format_meters(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}".rstrip("0").rstrip(".")


def _prepare(text: str) -> str:
    prepared = convert_number_words(text)
    prepared = prepared.replace(",", ".") if re.search(r"\d,\d", prepared) else prepared
    # "7 .70" -> "7.70"
    prepared = re.sub(r"(\d)\s+(\.\d+)", r"\1\2", prepared)
    # "2 00 x 3" / "2:00 x 3" -> "2.00 x 3"
    prepared = re.sub(r"(\d+)[\s:](\d{2})(?=\s*[x×*]|\s+por\s|\s*$)", r"\1.\2", prepared)
    prepared = re.sub(r"([x×*]\s*)(\d+)[\s:](\d{2})(?=\s|$)", r"\1\2.\3", prepared)
    # "3 más" is a frequent autocorrect of "3m"
    prepared = re.sub(r"(\d+(?:\.\d+)?)\s*m[aá]s\b", r"\1m", prepared)
    prepared = re.sub(r"(\d+(?:\.\d+)?)\s*(?:m|mts?|mtrs)\b", r"\1", prepared)
    # "4k4", written without spaces so it never reaches the typo map
    prepared = re.sub(r"(\d+(?:\.\d+)?)\s*k\s*(\d+(?:\.\d+)?)", r"\1 x \2", prepared)
    return prepared


def _labelled(first_label: str, first: float, second: float) -> tuple[float, float]:
    """Map a labelled pair onto (width, height) where width is the "ancho" value."""
    if first_label == "ancho":
        return first, second
    return second, first


def parse_dimensions(text: str, allow_reference: bool = True) -> Optional[Dimensions]:
    """Parse the first width x height expression in text.

    Falls back to a reference object estimate ("para mi cochera") when no
    numbers are present, and to an N x N square for "de N metros".
    """
    if not text:
        return None

    prepared = _prepare(text.lower())

    match = _FORMAL.search(prepared)
    if match:
        width, height = _labelled(match.group(1), float(match.group(2)), float(match.group(4)))
        return Dimensions(width, height)

    match = _LABELLED.search(prepared)
    if match:
        width, height = _labelled(match.group(2), float(match.group(1)), float(match.group(3)))
        return Dimensions(width, height)

    for pattern in (_BY_SYMBOL, _DE_PAIR, _BY_WORD, _METERS_BY, _WIDTH_BY_LENGTH):
        match = pattern.search(prepared)
        if match:
            return Dimensions(float(match.group(1)), float(match.group(2)))

    if allow_reference:
        reference = estimate_from_reference(text)
        if reference:
            return Dimensions(reference.width, reference.height, is_estimated=True, reference=reference.description)

    match = _SQUARE.search(prepared)
    if match:
        side = float(match.group(1))
        if 2 <= side <= 10:
            return Dimensions(side, side)

    return None


def extract_all_dimensions(text: str) -> list[Dimensions]:
    """Every distinct explicit size in text, deduplicated across orientations."""
    if not text:
        return []
    prepared = _prepare(text.lower())
    found: list[Dimensions] = []
    seen: set[str] = set()
    for pattern in (_BY_SYMBOL, _BY_WORD):
        for match in pattern.finditer(prepared):
            dims = Dimensions(float(match.group(1)), float(match.group(2)))
            if dims.key not in seen:
                seen.add(dims.key)
                found.append(dims)
    return found


def has_dimension_pattern(text: str) -> bool:
    """Cheap check for an unambiguous numeric size in the message."""
    if not text:
        return False
    prepared = _prepare(text.lower())
    return any(p.search(prepared) for p in (_BY_SYMBOL, _BY_WORD, _FORMAL, _LABELLED))


def parse_roll_width(text: str) -> Optional[float]:
    """Standard roll width for an "N x 100" expression, or None."""
    if not text:
        return None
    match = _ROLL.search(_prepare(text.lower()))
    if not match:
        return None
    raw = float(match.group(1) or match.group(2))
    if 3 <= raw < 5:
        return ROLL_WIDTHS[0]
    if 1 <= raw < 3:
        return ROLL_WIDTHS[1]
    return None
