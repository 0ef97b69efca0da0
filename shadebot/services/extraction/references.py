"""Comparison objects customers use instead of measurements."""

import re
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ReferenceObject:
    pattern: re.Pattern
    width: float
    height: float
    description: str


# Order matters: "dos carros" must win over "carro".
REFERENCE_OBJECTS = (
    ReferenceObject(re.compile(r"\b(dos|2)\s+(carros|autos|coches|veh[ií]culos)\b"), 4, 5, "dos carros"),
    ReferenceObject(re.compile(r"\b(camioneta|pickup|pick\s*up|troca)\b"), 2, 5.5, "una camioneta"),
    ReferenceObject(re.compile(r"\b(carro|auto|coche|veh[ií]culo)\b"), 2, 5, "un carro"),
    ReferenceObject(re.compile(r"\b(cochera|garage|garaje|estacionamiento)\b"), 3, 6, "una cochera"),
    ReferenceObject(re.compile(r"\bpatio\s+(peque[ñn]o|chico|chiquito)\b"), 3, 3, "un patio pequeño"),
    ReferenceObject(re.compile(r"\bpatio\s+(mediano|regular)\b"), 4, 4, "un patio mediano"),
    ReferenceObject(re.compile(r"\bpatio\s+(grande|amplio)\b"), 5, 5, "un patio grande"),
    ReferenceObject(re.compile(r"\bterraza\b"), 3, 4, "una terraza"),
)

_SIZE_CONTEXT = re.compile(
    r"\b(tama[ñn]o|medida|para\s+(un|una|mi|el|la|dos|2)|cubrir|tapar|techar|como\s+(un|una|de))\b"
)


def estimate_from_reference(text: str) -> Optional[ReferenceObject]:
    """Return the reference object described in text, if any.

    The object must appear alongside sizing language ("para mi cochera",
    "del tamaño de un carro") so that a passing mention does not become a size.
    """
    if not text:
        return None
    lowered = text.lower()
    if not _SIZE_CONTEXT.search(lowered):
        return None
    for reference in REFERENCE_OBJECTS:
        if reference.pattern.search(lowered):
            return reference
    return None
