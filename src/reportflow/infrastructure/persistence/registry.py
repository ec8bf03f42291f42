"""In-process registry of live report tables.

Maps normalized table names to TableHandles. The registry is a derived
view of the schema store: it is rebuilt on startup and updated by the
schema service after each committed schema change. Mutations for a given
name are serialized through a per-name asyncio lock.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable

from reportflow.core.errors import ModelNotFoundError
from reportflow.core.logging import get_logger
from reportflow.domain.entities import TableHandle, normalize_name

logger = get_logger(__name__)


class Registry:
    """Table name to TableHandle mapping owned by the application context.

    Lookups accept a table name as the author typed it ("Annual Report")
    as well as its normalized form ("annual_report").
    """

    def __init__(self) -> None:
        self._handles: dict[str, TableHandle] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    def __contains__(self, table_name: str) -> bool:
        return normalize_name(table_name) in self._handles

    def __len__(self) -> int:
        return len(self._handles)

    def names(self) -> list[str]:
        return sorted(self._handles)

    def handles(self) -> list[TableHandle]:
        return [self._handles[name] for name in self.names()]

    def resolve(self, table_name: str) -> TableHandle:
        """Resolve a table name to its live handle.

        Raises:
            ModelNotFoundError: If the table is not registered.
        """
        normalized = normalize_name(table_name)
        handle = self._handles.get(normalized)
        if handle is None:
            raise ModelNotFoundError(
                f"Table '{normalized}' not found", details={"table_name": normalized}
            )
        return handle

    def register(self, handle: TableHandle) -> None:
        """Register or replace the handle for its table name."""
        self._handles[handle.table_name] = handle
        logger.debug("Table registered", table_name=handle.table_name, schema_id=handle.schema_id)

    def deregister(self, table_name: str) -> TableHandle | None:
        """Remove a table from the registry, returning its handle if present."""
        handle = self._handles.pop(table_name, None)
        if handle is not None:
            logger.debug("Table deregistered", table_name=table_name)
        return handle

    def clear(self) -> None:
        self._handles.clear()

    @property
    def lock_count(self) -> int:
        """Number of table names whose lock is held or awaited."""
        return len(self._locks)

    def _checkout(self, table_name: str) -> asyncio.Lock:
        # No await between lookup and insert, so this is atomic on the loop
        lock = self._locks.get(table_name)
        if lock is None:
            lock = self._locks[table_name] = asyncio.Lock()
        self._lock_users[table_name] = self._lock_users.get(table_name, 0) + 1
        return lock

    def _checkin(self, table_name: str) -> None:
        users = self._lock_users[table_name] - 1
        if users:
            self._lock_users[table_name] = users
            return
        # Nobody holds or waits for the lock any more
        del self._lock_users[table_name]
        del self._locks[table_name]

    @asynccontextmanager
    async def lock(self, table_name: str) -> AsyncIterator[None]:
        """Serialize registry mutations for one table name."""
        async with self.lock_many([table_name]):
            yield

    @asynccontextmanager
    async def lock_many(self, table_names: Iterable[str]) -> AsyncIterator[None]:
        """Acquire the locks of several names in sorted order."""
        names = sorted(set(table_names))
        locks = [self._checkout(name) for name in names]
        acquired: list[asyncio.Lock] = []
        try:
            for lock in locks:
                await lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
            for name in names:
                self._checkin(name)
