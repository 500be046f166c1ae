"""
Event stores that command handlers append to.

An event store reports a concurrent write by raising
``EventAlreadyExistsError`` when the pushed version is already taken.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .exceptions import EventAlreadyExistsError


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class EventDetail:
    """An event of an aggregate, identified by its version."""

    aggregate_id: str
    version: int
    type: str
    payload: Any = None
    metadata: Any = None
    timestamp: str = field(default_factory=_now_iso)

    def __post_init__(self) -> None:
        if isinstance(self.version, bool) or not isinstance(self.version, int):
            raise TypeError(f"version must be an integer, got {self.version!r}")
        if self.version < 1:
            raise ValueError(f"version must be positive, got {self.version}")


class EventStore(ABC):
    """Base class for event stores."""

    def __init__(self, event_store_id: str):
        self.event_store_id = event_store_id

    @abstractmethod
    async def push_event(self, event: EventDetail) -> EventDetail:
        """
        Append an event to its aggregate.

        Raises:
            EventAlreadyExistsError: If the aggregate already has this version.
        """
        pass

    @abstractmethod
    async def get_events(
        self,
        aggregate_id: str,
        min_version: Optional[int] = None,
        max_version: Optional[int] = None,
    ) -> List[EventDetail]:
        """Get the events of an aggregate in version order."""
        pass

    async def get_last_version(self, aggregate_id: str) -> int:
        """Version of the latest event of an aggregate, 0 if it has none."""
        events = await self.get_events(aggregate_id)
        return events[-1].version if events else 0

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(event_store_id={self.event_store_id!r})"


class InMemoryEventStore(EventStore):
    """In-memory event store for development and testing."""

    def __init__(self, event_store_id: str):
        super().__init__(event_store_id)
        self._events: Dict[str, Dict[int, EventDetail]] = {}
        self._lock = asyncio.Lock()

    async def push_event(self, event: EventDetail) -> EventDetail:
        async with self._lock:
            aggregate = self._events.setdefault(event.aggregate_id, {})

            if event.version in aggregate:
                raise EventAlreadyExistsError(
                    self.event_store_id, event.aggregate_id, event.version
                )

            aggregate[event.version] = event
            return event

    async def get_events(
        self,
        aggregate_id: str,
        min_version: Optional[int] = None,
        max_version: Optional[int] = None,
    ) -> List[EventDetail]:
        async with self._lock:
            aggregate = self._events.get(aggregate_id, {})

            return [
                aggregate[version]
                for version in sorted(aggregate)
                if (min_version is None or version >= min_version)
                and (max_version is None or version <= max_version)
            ]
