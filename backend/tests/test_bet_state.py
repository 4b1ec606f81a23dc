"""
Bet lifecycle state machine.

Test cases:
- Every legal transition and its target
- Every other combination is rejected as a conflict
- revert cancel restores the recorded progress
- Only voting bets accept stakes and option edits
"""

import pytest

from jasb.errors import ConflictError, InvalidStateError
from jasb.models import BetProgress
from jasb.services.bet_state import (
    STAKEABLE,
    Transition,
    accepts_option_edits,
    accepts_stakes,
    next_progress,
)

LEGAL = {
    (Transition.LOCK, BetProgress.VOTING): BetProgress.LOCKED,
    (Transition.UNLOCK, BetProgress.LOCKED): BetProgress.VOTING,
    (Transition.COMPLETE, BetProgress.LOCKED): BetProgress.COMPLETE,
    (Transition.REVERT_COMPLETE, BetProgress.COMPLETE): BetProgress.LOCKED,
    (Transition.CANCEL, BetProgress.VOTING): BetProgress.CANCELLED,
    (Transition.CANCEL, BetProgress.LOCKED): BetProgress.CANCELLED,
}


@pytest.mark.parametrize("transition,current", list(LEGAL))
def test_legal_transitions(transition, current):
    assert next_progress(current, transition) == LEGAL[(transition, current)]


@pytest.mark.parametrize(
    "transition,current",
    [
        (transition, current)
        for transition in Transition
        for current in BetProgress
        if (transition, current) not in LEGAL
        and not (transition == Transition.REVERT_CANCEL and current == BetProgress.CANCELLED)
    ],
)
def test_illegal_transitions(transition, current):
    with pytest.raises(InvalidStateError) as excinfo:
        next_progress(current, transition)
    assert isinstance(excinfo.value, ConflictError)
    assert not excinfo.value.retryable


def test_complete_requires_locked():
    with pytest.raises(InvalidStateError):
        next_progress(BetProgress.VOTING, Transition.COMPLETE)


def test_cancelled_bet_only_reverts():
    for transition in Transition:
        if transition == Transition.REVERT_CANCEL:
            continue
        with pytest.raises(InvalidStateError):
            next_progress(BetProgress.CANCELLED, transition)


def test_revert_cancel_restores_prior_progress():
    assert (
        next_progress(BetProgress.CANCELLED, Transition.REVERT_CANCEL, BetProgress.VOTING)
        == BetProgress.VOTING
    )
    assert (
        next_progress(BetProgress.CANCELLED, Transition.REVERT_CANCEL, BetProgress.LOCKED)
        == BetProgress.LOCKED
    )
    # Nothing recorded: stay closed to stakes
    assert next_progress(BetProgress.CANCELLED, Transition.REVERT_CANCEL) == BetProgress.LOCKED


def test_only_voting_accepts_changes():
    assert STAKEABLE == [BetProgress.VOTING]
    for progress in BetProgress:
        assert accepts_stakes(progress) == (progress == BetProgress.VOTING)
        assert accepts_option_edits(progress) == (progress == BetProgress.VOTING)


def test_active_progress():
    assert BetProgress.VOTING.is_active
    assert BetProgress.LOCKED.is_active
    assert not BetProgress.COMPLETE.is_active
    assert not BetProgress.CANCELLED.is_active
