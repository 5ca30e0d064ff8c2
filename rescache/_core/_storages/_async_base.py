from __future__ import annotations

import abc
import typing as tp
from abc import ABC

from rescache._core.models import Entry, Request, Response


class AsyncBaseStorage(ABC):
    """
    Key-value blob store partitioned into named generations.

    Implementations must make `delete_generation` atomic from the point of
    view of readers: a reader sees either every entry of the generation or
    none of them. Backend failures are raised as `StorageUnavailable`.
    """

    @abc.abstractmethod
    async def open_generation(self, name: str) -> bool:
        """
        Create the generation if it does not exist yet.

        Args:
            name: Name of the generation.

        Returns:
            True if the generation was created, False if it already existed.
        """
        raise NotImplementedError()

    @abc.abstractmethod
    async def list_generations(self) -> tp.Set[str]:
        """
        Return the names of every stored generation.
        """
        raise NotImplementedError()

    @abc.abstractmethod
    async def delete_generation(self, name: str) -> bool:
        """
        Remove the generation together with all of its entries.

        Args:
            name: Name of the generation.

        Returns:
            True if the generation existed and was deleted, False otherwise.
        """
        raise NotImplementedError()

    async def put_entry(self, generation: str, key: str, request: Request, response: Response) -> Entry:
        """
        Store the response under the given key, replacing any previous entry.

        Args:
            generation: Name of an existing generation.
            key: Request signature the entry is stored under.
            request: The request the response answers.
            response: The response to store.

        Returns:
            The stored entry, with a fresh stream over the stored body.
        """
        entries = await self.put_entries(generation, [(key, request, response)])
        return entries[0]

    @abc.abstractmethod
    async def put_entries(
        self,
        generation: str,
        items: tp.Sequence[tp.Tuple[str, Request, Response]],
    ) -> tp.List[Entry]:
        """
        Store several responses at once, each replacing any previous entry under its key.

        Every response body is read completely before anything is written, and
        either all of the entries are stored or none of them is.

        Args:
            generation: Name of an existing generation.
            items: `(key, request, response)` triples.

        Returns:
            The stored entries in the order of `items`.
        """
        raise NotImplementedError()

    @abc.abstractmethod
    async def get_entry(self, generation: str, key: str) -> tp.Optional[Entry]:
        """
        Retrieve the entry stored under the key, or None when there is none.
        """
        raise NotImplementedError()

    @abc.abstractmethod
    async def list_keys(self, generation: str) -> tp.Set[str]:
        """
        Return the keys of every entry in the generation.
        """
        raise NotImplementedError()

    async def close(self) -> None:
        pass
