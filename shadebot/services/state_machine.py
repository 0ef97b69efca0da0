from enum import Enum


class ConversationState(str, Enum):
    NEW = "new"
    ACTIVE = "active"
    CLOSED = "closed"
    NEEDS_HUMAN = "needs_human"
    HUMAN_ACTIVE = "human_active"


BOT_ACTIVE_STATES = frozenset({ConversationState.NEW, ConversationState.ACTIVE})
SILENCED_STATES = frozenset({ConversationState.NEEDS_HUMAN, ConversationState.HUMAN_ACTIVE})

VALID_TRANSITIONS = {
    ConversationState.NEW: [
        ConversationState.ACTIVE,
        ConversationState.CLOSED,
        ConversationState.NEEDS_HUMAN,
        ConversationState.HUMAN_ACTIVE,
    ],
    ConversationState.ACTIVE: [
        ConversationState.CLOSED,
        ConversationState.NEEDS_HUMAN,
        ConversationState.HUMAN_ACTIVE,
    ],
    ConversationState.CLOSED: [
        ConversationState.ACTIVE,
        ConversationState.NEEDS_HUMAN,
        ConversationState.HUMAN_ACTIVE,
    ],
    ConversationState.NEEDS_HUMAN: [ConversationState.HUMAN_ACTIVE, ConversationState.ACTIVE],
    ConversationState.HUMAN_ACTIVE: [ConversationState.ACTIVE],
}


class InvalidTransitionError(Exception):
    def __init__(self, from_state: ConversationState, to_state: ConversationState):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(f"Invalid transition: {from_state.value} -> {to_state.value}")


def parse_state(value) -> ConversationState:
    """Coerce a stored value to a state; unknown values are treated as active."""
    if isinstance(value, ConversationState):
        return value
    try:
        return ConversationState(value)
    except ValueError:
        return ConversationState.ACTIVE


def is_bot_active(state: ConversationState) -> bool:
    return parse_state(state) in BOT_ACTIVE_STATES


def is_silenced(state: ConversationState) -> bool:
    return parse_state(state) in SILENCED_STATES


def can_transition(from_state: ConversationState, to_state: ConversationState) -> bool:
    """Check if transition is valid."""
    allowed = VALID_TRANSITIONS.get(from_state, [])
    return to_state in allowed


def transition(from_state: ConversationState, to_state: ConversationState) -> ConversationState:
    """Perform state transition. Raises InvalidTransitionError if not allowed."""
    if not can_transition(from_state, to_state):
        raise InvalidTransitionError(from_state, to_state)
    return to_state


def activate(current_state: ConversationState) -> ConversationState:
    """Bot keeps (or takes back) the conversation after a substantive message."""
    if current_state == ConversationState.ACTIVE:
        return current_state
    if current_state in SILENCED_STATES:
        raise InvalidTransitionError(current_state, ConversationState.ACTIVE)
    return transition(current_state, ConversationState.ACTIVE)


def escalate(current_state: ConversationState) -> ConversationState:
    """Hand the conversation to a human; the bot goes quiet."""
    return transition(current_state, ConversationState.NEEDS_HUMAN)


def close(current_state: ConversationState) -> ConversationState:
    """Customer said goodbye."""
    return transition(current_state, ConversationState.CLOSED)


def agent_take_over(current_state: ConversationState) -> ConversationState:
    """A human agent starts replying."""
    return transition(current_state, ConversationState.HUMAN_ACTIVE)


def release(current_state: ConversationState) -> ConversationState:
    """External release of a human-held conversation back to the bot."""
    if current_state not in SILENCED_STATES:
        raise InvalidTransitionError(current_state, ConversationState.ACTIVE)
    return transition(current_state, ConversationState.ACTIVE)
