"""
Async result handling for Cassandra statements.
"""

import asyncio
import threading
from typing import Any, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from cassandra.cluster import ResponseFuture


class AsyncResultHandler:
    """
    Handles asynchronous results from Cassandra statements.

    This class wraps ResponseFuture callbacks in an asyncio Future,
    fetching every page before resolving with the collected rows.
    """

    def __init__(self, response_future: "ResponseFuture"):
        self.response_future = response_future
        self.rows: List[Any] = []
        try:
            self._loop: Optional[asyncio.AbstractEventLoop] = asyncio.get_running_loop()
        except RuntimeError:
            # If no event loop is running, we'll create the future when needed
            self._loop = None
        self._future: Optional["asyncio.Future[List[Any]]"] = (
            self._loop.create_future() if self._loop else None
        )
        # Driver callbacks run on driver threads
        self._lock = threading.Lock()

        self.response_future.add_callbacks(callback=self._handle_page, errback=self._handle_error)

    def _handle_page(self, rows: List[Any]) -> None:
        """Handle successful page retrieval."""
        with self._lock:
            if rows is not None:
                self.rows.extend(list(rows))

            if self.response_future.has_more_pages:
                self.response_future.start_fetching_next_page()
            elif self._loop and self._future:
                self._loop.call_soon_threadsafe(self._set_result, list(self.rows))

    def _handle_error(self, exc: Exception) -> None:
        """Handle statement execution error."""
        if self._loop and self._future:
            self._loop.call_soon_threadsafe(self._set_exception, exc)

    def _set_result(self, rows: List[Any]) -> None:
        if self._future is not None and not self._future.done():
            self._future.set_result(rows)

    def _set_exception(self, exc: Exception) -> None:
        if self._future is not None and not self._future.done():
            self._future.set_exception(exc)

    async def get_result(self) -> List[Any]:
        """
        Wait for the statement to complete and return its rows.

        Returns:
            All rows from every page of the result.
        """
        if not self._loop or not self._future:
            self._loop = asyncio.get_running_loop()
            self._future = self._loop.create_future()

        return await self._future
