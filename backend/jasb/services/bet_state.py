"""Bet lifecycle state machine."""

from enum import Enum
from typing import Optional, assert_never

from jasb.errors import InvalidStateError
from jasb.models import Bet, BetProgress


class Transition(str, Enum):
    LOCK = "lock"
    UNLOCK = "unlock"
    COMPLETE = "complete"
    REVERT_COMPLETE = "revert complete"
    CANCEL = "cancel"
    REVERT_CANCEL = "revert cancel"


def next_progress(
    current: BetProgress,
    transition: Transition,
    cancelled_from: Optional[BetProgress] = None,
) -> BetProgress:
    """Progress after ``transition``, or ``InvalidStateError`` if it is illegal."""
    match transition, current:
        case Transition.LOCK, BetProgress.VOTING:
            return BetProgress.LOCKED
        case Transition.UNLOCK, BetProgress.LOCKED:
            return BetProgress.VOTING
        case Transition.COMPLETE, BetProgress.LOCKED:
            return BetProgress.COMPLETE
        case Transition.REVERT_COMPLETE, BetProgress.COMPLETE:
            return BetProgress.LOCKED
        case Transition.CANCEL, BetProgress.VOTING | BetProgress.LOCKED:
            return BetProgress.CANCELLED
        case Transition.REVERT_CANCEL, BetProgress.CANCELLED:
            # Rows cancelled without a recorded origin stay closed to stakes
            return cancelled_from or BetProgress.LOCKED
        case _:
            raise InvalidStateError(
                f"Can't {transition.value} a bet that is {current.value.lower()}."
            )


def accepts_stakes(progress: BetProgress) -> bool:
    match progress:
        case BetProgress.VOTING:
            return True
        case BetProgress.LOCKED | BetProgress.COMPLETE | BetProgress.CANCELLED:
            return False
        case _:
            assert_never(progress)


def accepts_option_edits(progress: BetProgress) -> bool:
    match progress:
        case BetProgress.VOTING:
            return True
        case BetProgress.LOCKED | BetProgress.COMPLETE | BetProgress.CANCELLED:
            return False
        case _:
            assert_never(progress)


STAKEABLE = [p for p in BetProgress if accepts_stakes(p)]


def require_stakes_open(bet: Bet) -> None:
    if not accepts_stakes(bet.progress):
        raise InvalidStateError(
            f"Bet {bet.slug} is {bet.progress.value.lower()}, stakes can't change."
        )


def require_option_edits(bet: Bet) -> None:
    if not accepts_option_edits(bet.progress):
        raise InvalidStateError(
            f"Bet {bet.slug} is {bet.progress.value.lower()}, options can't change."
        )
