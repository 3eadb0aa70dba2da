"""Vote state machine — pure transition table shared by the ledger and the client.

States per (review, voter): NO_VOTE → UPVOTED ⇄ DOWNVOTED, and either voted
state can return to NO_VOTE through the explicit intent 0. Resubmitting the
value already recorded is a no-op.
"""

import enum
from dataclasses import dataclass

VALID_INTENTS = (-1, 0, 1)


class VoteState(int, enum.Enum):
    DOWNVOTED = -1
    NO_VOTE = 0
    UPVOTED = 1


@dataclass(frozen=True)
class VoteOutcome:
    state: VoteState
    up_delta: int
    down_delta: int

    @property
    def changed(self) -> bool:
        return self.up_delta != 0 or self.down_delta != 0


def _counts(state: VoteState) -> tuple[int, int]:
    return (1 if state is VoteState.UPVOTED else 0, 1 if state is VoteState.DOWNVOTED else 0)


def is_valid_intent(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value in VALID_INTENTS


def transition(current: int | VoteState, intent: int) -> VoteOutcome:
    """Apply a vote intent to the recorded state.

    Both counter deltas of a polarity switch are returned together so callers
    apply them in one step.
    """
    if not is_valid_intent(intent):
        raise ValueError(f"Vote intent must be one of {VALID_INTENTS}, got {intent!r}")
    current_state = VoteState(current)
    target = VoteState(intent)
    if target is current_state:
        return VoteOutcome(current_state, 0, 0)

    old_up, old_down = _counts(current_state)
    new_up, new_down = _counts(target)
    return VoteOutcome(target, new_up - old_up, new_down - old_down)
