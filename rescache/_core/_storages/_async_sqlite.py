from __future__ import annotations

import logging
import sqlite3
import time
import uuid
from contextlib import asynccontextmanager
from dataclasses import replace
from pathlib import Path
from typing import AsyncIterator, List, Optional, Sequence, Set, Tuple, Union

import anyio
import anysqlite

from rescache._core._storages._async_base import AsyncBaseStorage
from rescache._core._storages._packing import pack, unpack
from rescache._core.models import Entry, EntryMeta, Request, Response
from rescache._exceptions import GenerationNotFound, StorageUnavailable
from rescache._utils import ensure_cache_dict, make_async_iterator

logger = logging.getLogger("rescache.storages")


class AsyncSqliteStorage(AsyncBaseStorage):
    """
    Storage backed by a SQLite database.

    Every operation runs under a single lock, so multi-statement changes
    such as deleting a generation are never observed half-done.
    """

    def __init__(
        self,
        *,
        connection: Optional[anysqlite.Connection] = None,
        database_path: Union[str, Path] = "rescache.db",
    ) -> None:
        self.connection = connection
        self.database_path: Path = database_path if isinstance(database_path, Path) else Path(database_path)
        self._initialized = False
        self._lock = anyio.Lock()

    async def _ensure_connection(self) -> anysqlite.Connection:
        """Ensure connection is established and database is initialized."""
        if self.connection is None:
            # Create cache directory and resolve full path on first connection
            parent = self.database_path.parent if self.database_path.parent != Path(".") else None
            full_path = ensure_cache_dict(parent) / self.database_path.name
            self.connection = await anysqlite.connect(str(full_path))
        if not self._initialized:
            await self._initialize_database()
            self._initialized = True
        return self.connection

    async def _initialize_database(self) -> None:
        """Initialize the database schema."""
        assert self.connection is not None
        cursor = await self.connection.cursor()

        await cursor.execute("""
            CREATE TABLE IF NOT EXISTS generations (
                name TEXT PRIMARY KEY,
                created_at REAL NOT NULL
            )
        """)

        # One row per cached response, the body is kept next to the packed metadata
        await cursor.execute("""
            CREATE TABLE IF NOT EXISTS entries (
                generation TEXT NOT NULL,
                cache_key TEXT NOT NULL,
                data BLOB NOT NULL,
                body BLOB NOT NULL,
                created_at REAL NOT NULL,
                PRIMARY KEY (generation, cache_key)
            )
        """)

        await self.connection.commit()

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[anysqlite.Cursor]:
        async with self._lock:
            try:
                connection = await self._ensure_connection()
                cursor = await connection.cursor()
                yield cursor
                await connection.commit()
            except sqlite3.Error as exc:
                logger.debug(f"SQLite operation failed: {exc}")
                if self.connection is not None:
                    await self.connection.rollback()
                raise StorageUnavailable(str(exc)) from exc

    async def open_generation(self, name: str) -> bool:
        async with self._transaction() as cursor:
            if await self._generation_exists(name, cursor):
                return False
            await cursor.execute(
                "INSERT INTO generations (name, created_at) VALUES (?, ?)",
                (name, time.time()),
            )
            return True

    async def list_generations(self) -> Set[str]:
        async with self._transaction() as cursor:
            await cursor.execute("SELECT name FROM generations")
            return {row[0] for row in await cursor.fetchall()}

    async def delete_generation(self, name: str) -> bool:
        async with self._transaction() as cursor:
            if not await self._generation_exists(name, cursor):
                return False
            await cursor.execute("DELETE FROM entries WHERE generation = ?", (name,))
            await cursor.execute("DELETE FROM generations WHERE name = ?", (name,))
            return True

    async def put_entries(
        self,
        generation: str,
        items: Sequence[Tuple[str, Request, Response]],
    ) -> List[Entry]:
        prepared: List[Tuple[Entry, bytes]] = []
        for key, request, response in items:
            body = await response.aread()
            entry = Entry(
                id=uuid.uuid4(),
                generation=generation,
                request=request,
                response=response,
                meta=EntryMeta(created_at=time.time()),
                cache_key=key,
            )
            prepared.append((entry, body))

        # One transaction for the whole batch, a failing row rolls back the others
        async with self._transaction() as cursor:
            if not await self._generation_exists(generation, cursor):
                raise GenerationNotFound(generation)

            for entry, body in prepared:
                await cursor.execute(
                    "INSERT OR REPLACE INTO entries (generation, cache_key, data, body, created_at) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (generation, entry.cache_key, pack(entry), body, entry.meta.created_at),
                )

        return [
            replace(
                entry,
                request=replace(entry.request, stream=make_async_iterator([])),
                response=replace(entry.response, stream=make_async_iterator([body])),
            )
            for entry, body in prepared
        ]

    async def get_entry(self, generation: str, key: str) -> Optional[Entry]:
        async with self._transaction() as cursor:
            await cursor.execute(
                "SELECT data, body FROM entries WHERE generation = ? AND cache_key = ?",
                (generation, key),
            )
            row = await cursor.fetchone()

        if row is None:
            return None

        entry = unpack(row[0])
        if entry is None:
            return None
        return replace(
            entry,
            response=replace(entry.response, stream=make_async_iterator([row[1]])),
        )

    async def list_keys(self, generation: str) -> Set[str]:
        async with self._transaction() as cursor:
            await cursor.execute("SELECT cache_key FROM entries WHERE generation = ?", (generation,))
            return {row[0] for row in await cursor.fetchall()}

    async def _generation_exists(self, name: str, cursor: anysqlite.Cursor) -> bool:
        await cursor.execute("SELECT 1 FROM generations WHERE name = ? LIMIT 1", (name,))
        return await cursor.fetchone() is not None

    async def close(self) -> None:
        if self.connection is not None:
            await self.connection.close()
            self.connection = None
            self._initialized = False
