"""
Re-entrancy guard and atomic scope for state-mutating entry points.
"""
import logging
from contextlib import contextmanager
from typing import Iterable

from wrapped_lp.errors import ReentrancyDetected
from wrapped_lp.gateways.base import Checkpointable

logger = logging.getLogger(__name__)


class ReentrancyGuard:
    """Rejects nested entry into the guarded surface."""

    def __init__(self) -> None:
        self._entered = False

    @property
    def entered(self) -> bool:
        return self._entered

    @contextmanager
    def enter(self, operation: str):
        if self._entered:
            logger.warning(f"Re-entrant call to {operation} rejected")
            raise ReentrancyDetected(f"Re-entrant call to {operation}")
        self._entered = True
        try:
            yield
        finally:
            self._entered = False


@contextmanager
def atomic(participants: Iterable[Checkpointable]):
    """
    Apply-or-abort scope.

    Checkpoints every participant on entry; if the body raises, every
    participant is restored before the exception propagates.
    """
    participants = list(participants)
    states = [participant.checkpoint() for participant in participants]
    try:
        yield
    except Exception:
        for participant, state in zip(participants, states):
            participant.restore(state)
        raise
