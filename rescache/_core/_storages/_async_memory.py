from __future__ import annotations

import time
import typing as tp
import uuid
from dataclasses import replace

import anyio

from rescache._core._storages._async_base import AsyncBaseStorage
from rescache._core.models import Entry, EntryMeta, Request, Response
from rescache._exceptions import GenerationNotFound
from rescache._utils import make_async_iterator


class AsyncInMemoryStorage(AsyncBaseStorage):
    """
    Storage that keeps every generation in process memory.

    Entries live only as long as the storage object, which makes it the
    natural choice for tests and short-lived processes.
    """

    def __init__(self) -> None:
        self._generations: tp.Dict[str, tp.Dict[str, tp.Tuple[Entry, bytes]]] = {}
        self._lock = anyio.Lock()

    async def open_generation(self, name: str) -> bool:
        async with self._lock:
            if name in self._generations:
                return False
            self._generations[name] = {}
            return True

    async def list_generations(self) -> tp.Set[str]:
        async with self._lock:
            return set(self._generations)

    async def delete_generation(self, name: str) -> bool:
        async with self._lock:
            return self._generations.pop(name, None) is not None

    async def put_entries(
        self,
        generation: str,
        items: tp.Sequence[tp.Tuple[str, Request, Response]],
    ) -> tp.List[Entry]:
        prepared: tp.List[tp.Tuple[Entry, bytes]] = []
        for key, request, response in items:
            body = await response.aread()
            entry = Entry(
                id=uuid.uuid4(),
                generation=generation,
                request=replace(request, stream=make_async_iterator([])),
                response=replace(response, stream=make_async_iterator([]), metadata=dict(response.metadata)),
                meta=EntryMeta(created_at=time.time()),
                cache_key=key,
            )
            prepared.append((entry, body))

        async with self._lock:
            if generation not in self._generations:
                raise GenerationNotFound(generation)
            entries = self._generations[generation]
            for entry, body in prepared:
                entries[entry.cache_key] = (entry, body)
        return [self._with_body(entry, body) for entry, body in prepared]

    async def get_entry(self, generation: str, key: str) -> tp.Optional[Entry]:
        async with self._lock:
            stored = self._generations.get(generation, {}).get(key)
        if stored is None:
            return None
        entry, body = stored
        return self._with_body(entry, body)

    async def list_keys(self, generation: str) -> tp.Set[str]:
        async with self._lock:
            return set(self._generations.get(generation, {}))

    def _with_body(self, entry: Entry, body: bytes) -> Entry:
        return replace(
            entry,
            response=replace(
                entry.response,
                headers=entry.response.headers.copy(),
                stream=make_async_iterator([body]),
                metadata=dict(entry.response.metadata),
            ),
        )
