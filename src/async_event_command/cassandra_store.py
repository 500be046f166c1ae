"""
Cassandra-backed event store.

Events are appended with a lightweight transaction so that two writers
racing for the same aggregate version cannot both succeed: the loser gets
an ``EventAlreadyExistsError``, which drives the command retry loop.
"""

import json
import logging
from typing import Any, List, Optional, TYPE_CHECKING

from cassandra import ConsistencyLevel
from cassandra.query import SimpleStatement

from .constants import DEFAULT_EVENTS_TABLE
from .event_store import EventDetail, EventStore
from .exceptions import EventAlreadyExistsError
from .result import AsyncResultHandler

if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = logging.getLogger(__name__)


def _column(row: Any, name: str) -> Any:
    if isinstance(row, dict):
        return row[name]
    return getattr(row, name)


def _was_applied(row: Any) -> bool:
    """Read the ``[applied]`` column of a lightweight transaction result."""
    if isinstance(row, dict):
        return bool(row.get("[applied]", True))
    return bool(row[0])


def _dump(value: Any) -> Optional[str]:
    return None if value is None else json.dumps(value)


def _load(value: Optional[str]) -> Any:
    return None if value is None else json.loads(value)


class CassandraEventStore(EventStore):
    """
    Event store persisting events in a Cassandra table.

    Events are partitioned by (event_store_id, aggregate_id) and clustered
    by version, so several event stores can share one table.
    """

    def __init__(
        self, event_store_id: str, session: "Session", table: str = DEFAULT_EVENTS_TABLE
    ):
        """
        Initialize the event store.

        Args:
            event_store_id: Identifier of the event store.
            session: Connected Cassandra driver session.
            table: Table holding the events, optionally keyspace-qualified.

        Raises:
            ValueError: If the table name is invalid.
        """
        # Table names are interpolated into CQL
        if not table or not all(c.isalnum() or c in "_." for c in table):
            raise ValueError(
                f"Invalid table name: '{table}'. "
                "Table names must contain only alphanumeric characters, underscores and dots."
            )

        super().__init__(event_store_id)
        self._session = session
        self._table = table

        self._insert = SimpleStatement(
            f"INSERT INTO {table} "
            "(event_store_id, aggregate_id, version, type, timestamp, payload, metadata) "
            "VALUES (%s, %s, %s, %s, %s, %s, %s) IF NOT EXISTS",
            serial_consistency_level=ConsistencyLevel.SERIAL,
        )

    async def _execute(self, query: Any, parameters: Any = None) -> List[Any]:
        response_future = self._session.execute_async(query, parameters)
        return await AsyncResultHandler(response_future).get_result()

    async def create_table(self) -> None:
        """Create the events table if it does not exist."""
        await self._execute(
            f"""
            CREATE TABLE IF NOT EXISTS {self._table} (
                event_store_id text,
                aggregate_id text,
                version int,
                type text,
                timestamp text,
                payload text,
                metadata text,
                PRIMARY KEY ((event_store_id, aggregate_id), version)
            ) WITH CLUSTERING ORDER BY (version ASC)
            """
        )

    async def push_event(self, event: EventDetail) -> EventDetail:
        rows = await self._execute(
            self._insert,
            (
                self.event_store_id,
                event.aggregate_id,
                event.version,
                event.type,
                event.timestamp,
                _dump(event.payload),
                _dump(event.metadata),
            ),
        )

        if rows and not _was_applied(rows[0]):
            logger.debug(
                f"Version {event.version} of aggregate {event.aggregate_id} "
                f"already exists in {self.event_store_id}"
            )
            raise EventAlreadyExistsError(self.event_store_id, event.aggregate_id, event.version)

        return event

    async def get_events(
        self,
        aggregate_id: str,
        min_version: Optional[int] = None,
        max_version: Optional[int] = None,
    ) -> List[EventDetail]:
        query = (
            "SELECT aggregate_id, version, type, timestamp, payload, metadata "
            f"FROM {self._table} WHERE event_store_id = %s AND aggregate_id = %s"
        )
        parameters: List[Any] = [self.event_store_id, aggregate_id]

        if min_version is not None:
            query += " AND version >= %s"
            parameters.append(min_version)
        if max_version is not None:
            query += " AND version <= %s"
            parameters.append(max_version)

        rows = await self._execute(query, parameters)

        return [
            EventDetail(
                aggregate_id=_column(row, "aggregate_id"),
                version=_column(row, "version"),
                type=_column(row, "type"),
                timestamp=_column(row, "timestamp"),
                payload=_load(_column(row, "payload")),
                metadata=_load(_column(row, "metadata")),
            )
            for row in rows
        ]
