"""
Pytest configuration and shared fixtures.
"""

import pytest

from async_event_command import EventAlreadyExistsError, InMemoryEventStore


def make_conflict(version=1):
    """Build the conflict error an event store raises on a taken version."""
    return EventAlreadyExistsError("COUNTERS", "counter-1", version)


class ScriptedHandler:
    """
    Handler that replays a script of outcomes, one per call.

    Exceptions in the script are raised, anything else is returned.
    """

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    async def __call__(self, input, event_stores):
        self.calls.append((input, event_stores))
        outcome = self.outcomes[min(len(self.calls), len(self.outcomes)) - 1]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class RecordingObserver:
    """Conflict observer remembering every call."""

    def __init__(self, error=None):
        self.error = error
        self.calls = []

    async def __call__(self, conflict, attempt):
        self.calls.append((conflict, attempt))
        if self.error is not None:
            raise self.error


@pytest.fixture
def counters_store():
    """Empty in-memory event store."""
    return InMemoryEventStore("COUNTERS")


@pytest.fixture
def conflict():
    """Factory for conflict errors."""
    return make_conflict


@pytest.fixture
def scripted_handler():
    """Factory for scripted handlers."""
    return ScriptedHandler


@pytest.fixture
def recording_observer():
    """Factory for recording conflict observers."""
    return RecordingObserver
