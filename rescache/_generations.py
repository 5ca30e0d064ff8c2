from __future__ import annotations

import logging
import typing as tp

from rescache._core._storages._async_base import AsyncBaseStorage
from rescache._core.models import Entry, Request, Response, ResponseMetadata
from rescache._exceptions import GenerationNotFound

logger = logging.getLogger("rescache.generations")


def generation_name(scheme: str, version: tp.Union[str, int]) -> str:
    """
    Build the name of a generation from the application scheme and version.

    Changing the version is what retires every older generation on the
    next activation.

    Example:
        >>> generation_name("smart-home", 3)
        'smart-home-v3'
    """
    return f"{scheme}-v{version}"


class Generation:
    """
    A named, versioned store of cached responses.
    """

    def __init__(self, name: str, storage: AsyncBaseStorage) -> None:
        self.name = name
        self.storage = storage

    async def get_entry(self, request: Request) -> tp.Optional[Entry]:
        return await self.storage.get_entry(self.name, request.signature)

    async def get(self, request: Request) -> tp.Optional[Response]:
        entry = await self.get_entry(request)
        if entry is None:
            return None

        response_meta = ResponseMetadata(
            rescache_from_cache=True,
            rescache_generation=self.name,
            rescache_created_at=entry.meta.created_at,
        )
        entry.response.metadata = {**entry.response.metadata, **response_meta}
        return entry.response

    async def put(self, request: Request, response: Response) -> Entry:
        return await self.storage.put_entry(self.name, request.signature, request, response)

    async def put_many(self, items: tp.Sequence[tp.Tuple[Request, Response]]) -> tp.List[Entry]:
        """
        Store every response in one storage operation, so either all of them land or none does.
        """
        return await self.storage.put_entries(
            self.name, [(request.signature, request, response) for request, response in items]
        )

    async def keys(self) -> tp.Set[str]:
        return await self.storage.list_keys(self.name)

    def __repr__(self) -> str:
        return f"Generation(name={self.name!r})"


class GenerationManager:
    def __init__(self, storage: AsyncBaseStorage) -> None:
        self.storage = storage
        self._generations: tp.Dict[str, Generation] = {}

    async def create_generation(self, name: str) -> Generation:
        created = await self.storage.open_generation(name)
        if created:
            logger.debug(f"Created generation {name}")
        generation = self._generations.get(name)
        if generation is None:
            generation = self._generations[name] = Generation(name, self.storage)
        return generation

    async def list_generations(self) -> tp.Set[str]:
        return await self.storage.list_generations()

    async def delete_generation(self, name: str, raise_if_missing: bool = False) -> bool:
        deleted = await self.storage.delete_generation(name)
        self._generations.pop(name, None)
        if not deleted:
            if raise_if_missing:
                raise GenerationNotFound(name)
            return False

        logger.debug(f"Deleted generation {name}")
        return True

    async def sweep(self, keep: str) -> tp.List[str]:
        """
        Delete every generation except `keep`.

        Returns:
            Names of the deleted generations, sorted.
        """
        stale = sorted(name for name in await self.list_generations() if name != keep)
        await self._delete_all(stale)
        return stale

    async def clear(self) -> tp.List[str]:
        """
        Delete every generation.

        Returns:
            Names of the deleted generations, sorted.
        """
        names = sorted(await self.list_generations())
        await self._delete_all(names)
        return names

    async def _delete_all(self, names: tp.Sequence[str]) -> None:
        for name in names:
            await self.delete_generation(name)
