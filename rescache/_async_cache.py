from __future__ import annotations

import logging
import types
import typing as tp
from dataclasses import dataclass, field

import anyio
from anyio.abc import TaskGroup
from typing_extensions import Self, assert_never

from rescache._core._lifecycle import (
    Activating,
    AnyLifecycleState,
    Installed,
    Installing,
    Serving,
    Uninstalled,
)
from rescache._core._storages._async_base import AsyncBaseStorage
from rescache._core._storages._async_sqlite import AsyncSqliteStorage
from rescache._core.models import Request, Response, ResponseMetadata
from rescache._exceptions import InvalidTransition, Unreachable
from rescache._generations import Generation, GenerationManager, generation_name
from rescache._policies import AnyPolicy, CacheFirst, NetworkFirst, PolicyRouter
from rescache._seeder import InstallationSeeder, SeedResult

logger = logging.getLogger("rescache.proxy")

DEFAULT_CORE_ASSETS = ("/", "/index.html", "/manifest.json")


@dataclass
class ProxyOptions:
    """
    Configuration of a cache proxy.

    Attributes:
    ----------
    scheme : str
        Prefix shared by every generation of the application.

    version : str
        Version token embedded in the generation name. Bumping it is the
        only way to retire the previous generations on the next activation.

        Examples:
        --------
        >>> ProxyOptions(scheme="smart-home", version="3").generation_name
        'smart-home-v3'

    core_assets : tuple[str, ...]
        Resources that must be present in a generation right after
        installation. Should always contain the root document and the
        application manifest.

    base_url : str
        URL the core asset paths are resolved against. When empty, the
        paths are used as they are.
    """

    scheme: str = "rescache"
    """Prefix shared by every generation of the application."""

    version: str = "1"
    """Version token of the current generation."""

    core_assets: tp.Sequence[str] = DEFAULT_CORE_ASSETS
    """Ordered core asset manifest."""

    base_url: str = ""
    """URL the core asset paths are resolved against."""

    router: PolicyRouter = field(default_factory=PolicyRouter)
    """Chooses the caching policy of every request."""

    cacheable_methods: tp.Sequence[str] = ("GET",)
    """Methods handled by the caching policies, other requests go straight to the network."""

    def __post_init__(self) -> None:
        self.cacheable_methods = tuple(method.upper() for method in self.cacheable_methods)

    @property
    def generation_name(self) -> str:
        return generation_name(self.scheme, self.version)


@dataclass
class ActivationResult:
    generation: str
    """Name of the generation that now serves requests."""

    deleted: tp.List[str] = field(default_factory=list)
    """Names of the stale generations that were removed."""


class AsyncCacheProxy:
    """
    An offline resource cache sitting between a client and the network.

    This class is independent of any specific HTTP library and works only with internal models.
    It delegates request execution to a user-provided callable, which must raise `Unreachable`
    when the network cannot deliver a response.

    The proxy owns a task group for cache writes that must not delay responses, so it has
    to be used as an async context manager. Leaving the context waits for pending writes.

    Args:
        request_sender: Callable that sends requests to the network and returns responses.
        storage: Storage backend for generations. Defaults to AsyncSqliteStorage.
        options: Proxy configuration. Defaults to ProxyOptions().
    """

    def __init__(
        self,
        request_sender: tp.Callable[[Request], tp.Awaitable[Response]],
        storage: AsyncBaseStorage | None = None,
        options: ProxyOptions | None = None,
    ) -> None:
        self.send_request = request_sender
        self.storage = storage if storage is not None else AsyncSqliteStorage()
        self.options = options if options is not None else ProxyOptions()
        self.generations = GenerationManager(self.storage)
        self.seeder = InstallationSeeder(request_sender, base_url=self.options.base_url)
        self.state: AnyLifecycleState = Uninstalled(generation=self.options.generation_name)
        self._installed: Generation | None = None
        self._task_group: TaskGroup | None = None

    async def __aenter__(self) -> Self:
        task_group = anyio.create_task_group()
        await task_group.__aenter__()
        self._task_group = task_group
        return self

    async def __aexit__(
        self,
        exc_type: tp.Optional[tp.Type[BaseException]] = None,
        exc_value: tp.Optional[BaseException] = None,
        traceback: tp.Optional[types.TracebackType] = None,
    ) -> None:
        task_group, self._task_group = self._task_group, None
        if task_group is not None:
            # Pending writes run to completion.
            await task_group.__aexit__(None, None, None)

    @property
    def current_generation(self) -> Generation | None:
        """The generation serving requests, None until activation completes."""
        if isinstance(self.state, Serving):
            return self._installed
        return None

    async def install(self) -> SeedResult:
        """
        Create the generation of this proxy and seed it with the core assets.

        Raises:
            SeedIncomplete: A core asset could not be fetched. The proxy goes back to Uninstalled.
            InvalidTransition: The proxy is not Uninstalled.
        """
        if not isinstance(self.state, Uninstalled):
            raise InvalidTransition(f"Cannot install a proxy in state {self.state.__class__.__name__}")

        installing: Installing = self.state.next()
        self.state = installing
        logger.debug(f"Installing generation {installing.generation}")

        try:
            generation = await self.generations.create_generation(installing.generation)
            result = await self.seeder.seed(generation, self.options.core_assets)
        except Exception:
            logger.debug(f"Installation of generation {installing.generation} failed")
            self.state = installing.next(seeded=False)
            raise

        self._installed = generation
        self.state = installing.next(seeded=True)
        logger.debug(f"Generation {installing.generation} installed")
        return result

    async def activate(self) -> ActivationResult:
        """
        Delete every generation except the installed one and start serving from it.

        Raises:
            InvalidTransition: The proxy is not Installed.
        """
        if not isinstance(self.state, Installed):
            raise InvalidTransition(f"Cannot activate a proxy in state {self.state.__class__.__name__}")

        installed = self.state
        activating: Activating = installed.next()
        self.state = activating
        logger.debug(f"Activating generation {activating.generation}")

        try:
            deleted = await self.generations.sweep(keep=activating.generation)
        except Exception:
            self.state = installed
            raise

        for name in deleted:
            logger.debug(f"Deleted stale generation {name}")

        self.state = activating.next()
        logger.debug(f"Serving requests from generation {activating.generation}")
        return ActivationResult(generation=activating.generation, deleted=deleted)

    async def start(self) -> ActivationResult:
        """
        Install and activate right away, without waiting for older proxies to go idle.
        """
        await self.install()
        return await self.activate()

    async def uninstall(self) -> tp.List[str]:
        """
        Delete every generation and stop serving.

        Returns:
            Names of the deleted generations.
        """
        if isinstance(self.state, (Installing, Activating)):
            raise InvalidTransition(f"Cannot uninstall a proxy in state {self.state.__class__.__name__}")

        deleted = await self.generations.clear()
        self._installed = None
        self.state = Uninstalled(generation=self.options.generation_name)
        logger.debug(f"Uninstalled, deleted generations: {deleted}")
        return deleted

    async def handle_request(
        self,
        request: Request,
        request_sender: tp.Optional[tp.Callable[[Request], tp.Awaitable[Response]]] = None,
    ) -> Response:
        """
        Answer the request from the network, the current generation, or both.

        Args:
            request: The intercepted request.
            request_sender: Sends this request to the network instead of the
                sender the proxy was created with. Lets several transports share
                one proxy while each keeps its own route to the network.
        """
        send_request = request_sender if request_sender is not None else self.send_request

        if not isinstance(self.state, Serving):
            logger.debug("Proxy is not serving, sending request to the network")
            return await send_request(request)

        if request.method.upper() not in self.options.cacheable_methods:
            logger.debug(f"Method {request.method} is not cacheable, sending request to the network")
            return await send_request(request)

        if self._task_group is None:
            raise RuntimeError("AsyncCacheProxy must be used as an async context manager to serve requests")

        generation = self._installed
        assert generation is not None

        policy = self.options.router.classify(request)
        logger.debug(f"Handling request with {policy.name}")

        if isinstance(policy, NetworkFirst):
            return await self._handle_network_first(request, policy, generation, send_request)
        elif isinstance(policy, CacheFirst):
            return await self._handle_cache_first(request, policy, generation, send_request)
        else:
            assert_never(policy)

    async def _handle_network_first(
        self,
        request: Request,
        policy: NetworkFirst,
        generation: Generation,
        send_request: tp.Callable[[Request], tp.Awaitable[Response]],
    ) -> Response:
        try:
            response = await send_request(request)
        except Unreachable:
            logger.debug("Network is unreachable, falling back to the cache")
            cached = await generation.get(request)
            if cached is None:
                logger.debug("No cached response for the request")
                raise
            logger.debug("Serving cached response")
            return self._with_metadata(cached, policy, generation, from_cache=True)

        return await self._maybe_write_back(request, response, policy, generation)

    async def _handle_cache_first(
        self,
        request: Request,
        policy: CacheFirst,
        generation: Generation,
        send_request: tp.Callable[[Request], tp.Awaitable[Response]],
    ) -> Response:
        cached = await generation.get(request)
        if cached is not None:
            logger.debug("Serving cached response")
            return self._with_metadata(cached, policy, generation, from_cache=True)

        logger.debug("Cache miss, sending request to the network")
        response = await send_request(request)
        return await self._maybe_write_back(request, response, policy, generation)

    async def _maybe_write_back(
        self, request: Request, response: Response, policy: AnyPolicy, generation: Generation
    ) -> Response:
        response = self._with_metadata(response, policy, generation, from_cache=False)
        if policy.write_back:
            copy = await response.aclone()
            assert self._task_group is not None
            self._task_group.start_soon(self._write_back, request, copy, generation)
        return response

    async def _write_back(self, request: Request, response: Response, generation: Generation) -> None:
        try:
            await generation.put(request, response)
        except Exception:
            logger.warning(f"Could not store response for {request.url} in {generation.name}", exc_info=True)
            return
        logger.debug(f"Stored response for {request.url} in {generation.name}")

    def _with_metadata(
        self, response: Response, policy: AnyPolicy, generation: Generation, from_cache: bool
    ) -> Response:
        response_meta = ResponseMetadata(
            rescache_from_cache=from_cache,
            rescache_policy=policy.name,
            rescache_generation=generation.name,
        )
        response.metadata = {**response.metadata, **response_meta}
        return response
