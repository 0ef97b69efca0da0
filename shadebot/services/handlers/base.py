from abc import ABC, abstractmethod
from typing import Optional

from shadebot.services.outcome import Outcome
from shadebot.services.turn import TurnContext


class Handler(ABC):
    """One link of the dispatch chain.

    try_handle returns an Outcome to finish the turn, or None to let the next
    handler try. Silent is an outcome, not a pass.
    """

    name = "handler"

    @abstractmethod
    def try_handle(self, ctx: TurnContext) -> Optional[Outcome]:
        pass

    def __repr__(self) -> str:
        return f"<{type(self).__name__}>"
