from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class Silent:
    """Deliberately send nothing. Not the same as a handler declining."""

    reason: Optional[str] = None


@dataclass(frozen=True)
class Text:
    content: str


@dataclass(frozen=True)
class Image:
    content: str
    image_url: str


Outcome = Union[Silent, Text, Image]


def outcome_text(outcome: Outcome) -> Optional[str]:
    if isinstance(outcome, (Text, Image)):
        return outcome.content
    return None


def outcome_type(outcome: Outcome) -> str:
    if isinstance(outcome, Silent):
        return "silent"
    if isinstance(outcome, Image):
        return "image"
    return "text"
