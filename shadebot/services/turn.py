"""Per-message context handed to every handler in the dispatch chain."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

from shadebot.config import Settings
from shadebot.logging_config import ConversationLogger, conversation_logger
from shadebot.schemas.conversation import ConversationRecord
from shadebot.schemas.intent import IntentDefinition
from shadebot.services.catalog_service import CatalogSource
from shadebot.services.completion_service import CompletionService
from shadebot.services.conversation_service import ConversationStore, _validate_updates
from shadebot.services.state_machine import ConversationState, parse_state

if TYPE_CHECKING:
    from shadebot.services.flows.registry import FlowRegistry


@dataclass
class BotServices:
    store: ConversationStore
    catalog: CatalogSource
    completion: CompletionService
    intents: list[IntentDefinition]
    flows: "FlowRegistry"
    settings: Settings


@dataclass
class TurnContext:
    user_id: str
    message: str
    raw_message: str
    record: ConversationRecord
    persona_name: str
    now: datetime
    services: BotServices
    intent: Optional[str] = None
    specs_changed: bool = False
    clarified: bool = False
    log: ConversationLogger = field(init=False)
    prior_product_type: Optional[str] = field(init=False)

    def __post_init__(self):
        self.log = conversation_logger("dispatch", self.user_id)
        # product being discussed before this message rewrites the specs
        self.prior_product_type = self.record.product_specs.product_type

    @property
    def state(self) -> ConversationState:
        return parse_state(self.record.state)

    @property
    def settings(self) -> Settings:
        return self.services.settings

    def save(self, **updates: Any) -> ConversationRecord:
        """Persist a partial update and keep the in-memory record in step.

        A store failure is logged and the turn continues on the locally merged
        record.
        """
        result = self.services.store.save(self.user_id, updates)
        if result.ok:
            self.record = result.value
        else:
            self.log.warning(
                "Store write failed, continuing with in-memory record",
                context={"error_code": result.error_code, "fields": sorted(updates)},
            )
            self.record = self.record.model_validate({**self.record.model_dump(), **_validate_updates(updates)})
        return self.record
