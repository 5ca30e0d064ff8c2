from __future__ import annotations

import logging
import typing as tp
from dataclasses import dataclass, field

import anyio

from rescache._core.models import Request, Response
from rescache._exceptions import SeedIncomplete, Unreachable
from rescache._generations import Generation
from rescache._utils import resolve_url, unique

logger = logging.getLogger("rescache.seeder")


@dataclass
class SeedResult:
    generation: str
    """Name of the seeded generation."""

    stored: tp.List[str] = field(default_factory=list)
    """URLs written into the generation, in manifest order."""


class InstallationSeeder:
    """
    Fills a generation with the core asset manifest.

    Seeding is all-or-nothing: every resource is fetched first, and the
    generation is written only when all of them succeeded.

    Args:
        request_sender: Callable that sends requests to the network.
        base_url: URL the manifest paths are resolved against.
    """

    def __init__(
        self,
        request_sender: tp.Callable[[Request], tp.Awaitable[Response]],
        base_url: str = "",
    ) -> None:
        self.send_request = request_sender
        self.base_url = base_url

    async def seed(self, generation: Generation, manifest: tp.Sequence[str]) -> SeedResult:
        urls = unique(resolve_url(self.base_url, path) if self.base_url else path for path in manifest)
        fetched: tp.Dict[str, Response] = {}
        failed: tp.Set[str] = set()

        logger.debug(f"Seeding generation {generation.name} with {len(urls)} resources")
        async with anyio.create_task_group() as tg:
            for url in urls:
                tg.start_soon(self._fetch, url, fetched, failed)

        if failed:
            raise SeedIncomplete(generation.name, [url for url in urls if url in failed])

        await generation.put_many([(Request(method="GET", url=url), fetched[url]) for url in urls])

        logger.debug(f"Generation {generation.name} seeded")
        return SeedResult(generation=generation.name, stored=urls)

    async def _fetch(self, url: str, fetched: tp.Dict[str, Response], failed: tp.Set[str]) -> None:
        try:
            response = await self.send_request(Request(method="GET", url=url))
            await response.aread()
        except Unreachable:
            logger.warning(f"Could not fetch core asset {url}")
            failed.add(url)
            return
        except Exception:
            logger.warning(f"Fetching core asset {url} failed", exc_info=True)
            failed.add(url)
            return

        if not response.is_success:
            logger.warning(f"Core asset {url} answered with status {response.status_code}")
            failed.add(url)
            return

        fetched[url] = response
