from __future__ import annotations

import ssl
import types
import typing as t
from typing import (
    AsyncIterable,
    AsyncIterator,
    Union,
    cast,
    overload,
)

import httpx
from httpx import RequestNotRead
from typing_extensions import Self

from rescache._async_cache import AsyncCacheProxy, ProxyOptions
from rescache._core._headers import Headers
from rescache._core._storages._async_base import AsyncBaseStorage
from rescache._core.models import Request, RequestMetadata, RequestMode, Response
from rescache._exceptions import Unreachable
from rescache._utils import filter_mapping, make_async_iterator

REQUEST_MODES = ("navigate", "same-origin", "no-cors", "cors")
HOP_BY_HOP_HEADERS = ("transfer-encoding",)


@overload
def _internal_to_httpx(
    value: Request,
) -> httpx.Request: ...
@overload
def _internal_to_httpx(
    value: Response,
) -> httpx.Response: ...
def _internal_to_httpx(
    value: Union[Request, Response],
) -> Union[httpx.Request, httpx.Response]:
    """
    Convert internal Request/Response to httpx.Request/httpx.Response.
    """
    if isinstance(value, Request):
        return httpx.Request(
            method=value.method,
            url=value.url,
            headers=dict(value.headers),
            stream=_IteratorStream(value.stream),
            extensions=dict(value.metadata),
        )
    elif isinstance(value, Response):
        return httpx.Response(
            status_code=value.status_code,
            headers=dict(value.headers),
            stream=_IteratorStream(value._aiter_stream()),
            extensions=dict(value.metadata),
        )


@overload
def _httpx_to_internal(
    value: httpx.Request,
) -> Request: ...
@overload
def _httpx_to_internal(
    value: httpx.Response,
) -> Response: ...
def _httpx_to_internal(
    value: Union[httpx.Request, httpx.Response],
) -> Union[Request, Response]:
    """
    Convert httpx.Request/httpx.Response to internal Request/Response.
    """
    headers = Headers(filter_mapping(value.headers, HOP_BY_HOP_HEADERS))
    if isinstance(value, httpx.Request):
        metadata = RequestMetadata()
        if "rescache_navigate" in value.extensions:
            metadata["rescache_navigate"] = bool(value.extensions["rescache_navigate"])

        fetch_mode = value.headers.get("sec-fetch-mode", "cors").lower()
        mode = cast(RequestMode, fetch_mode if fetch_mode in REQUEST_MODES else "cors")

        try:
            stream = make_async_iterator([value.content])
        except RequestNotRead:
            stream = cast(AsyncIterator[bytes], value.stream)

        return Request(
            method=value.method,
            url=str(value.url),
            headers=headers,
            stream=stream,
            mode=mode,
            metadata=metadata,
        )
    elif isinstance(value, httpx.Response):
        if "content-encoding" in value.headers:
            # The body was decoded while reading, so the stored copy
            # must not claim an encoding and must advertise the decoded size.
            headers = Headers(
                {
                    **filter_mapping(headers, ["content-encoding"]),
                    "content-length": str(len(value.content)),
                }
            )

        return Response(
            status_code=value.status_code,
            headers=headers,
            stream=make_async_iterator([value.content]),
            metadata={},
        )


class _IteratorStream(httpx.SyncByteStream, httpx.AsyncByteStream):
    def __init__(self, iterator: AsyncIterator[bytes]) -> None:
        self.iterator = iterator

    async def __aiter__(self) -> AsyncIterator[bytes]:
        assert isinstance(self.iterator, (AsyncIterator, AsyncIterable))
        async for chunk in self.iterator:
            yield chunk


class AsyncCacheTransport(httpx.AsyncBaseTransport):
    """
    httpx transport that routes every request through an `AsyncCacheProxy`.

    Entering the transport (directly or through `AsyncCacheClient`) installs and
    activates the proxy generation unless `autostart` is False.

    A transport created with `proxy=` reuses a proxy owned by another transport:
    it sends requests through its own `next_transport` but leaves installing,
    activating and closing the proxy and its storage to the owner. In that case
    `storage`, `options` and `autostart` are ignored.

    Transports that own a proxy must be exited in the reverse order they were
    entered. `AsyncCacheClient` takes care of that for its mounts.
    """

    def __init__(
        self,
        next_transport: httpx.AsyncBaseTransport,
        storage: AsyncBaseStorage | None = None,
        options: ProxyOptions | None = None,
        autostart: bool = True,
        proxy: AsyncCacheProxy | None = None,
    ) -> None:
        self.next_transport = next_transport
        self.autostart = autostart
        self._owns_proxy = proxy is None
        self._cache_proxy: AsyncCacheProxy = (
            proxy
            if proxy is not None
            else AsyncCacheProxy(
                request_sender=self.request_sender,
                storage=storage,
                options=options,
            )
        )
        self.storage = self._cache_proxy.storage

    @property
    def proxy(self) -> AsyncCacheProxy:
        return self._cache_proxy

    async def __aenter__(self) -> Self:
        await self.next_transport.__aenter__()
        if not self._owns_proxy:
            return self

        await self._cache_proxy.__aenter__()
        if self.autostart:
            try:
                await self._cache_proxy.start()
            except BaseException:
                await self._cache_proxy.__aexit__()
                raise
        return self

    async def __aexit__(
        self,
        exc_type: t.Optional[t.Type[BaseException]] = None,
        exc_value: t.Optional[BaseException] = None,
        traceback: t.Optional[types.TracebackType] = None,
    ) -> None:
        if self._owns_proxy:
            await self._cache_proxy.__aexit__(exc_type, exc_value, traceback)
        await self.aclose()

    async def handle_async_request(
        self,
        request: httpx.Request,
    ) -> httpx.Response:
        internal_request = _httpx_to_internal(request)
        try:
            internal_response = await self._cache_proxy.handle_request(
                internal_request, request_sender=self.request_sender
            )
        except Unreachable as exc:
            if isinstance(exc.__cause__, httpx.TransportError):
                raise exc.__cause__
            raise httpx.ConnectError(str(exc), request=request) from exc
        return _internal_to_httpx(internal_response)

    async def aclose(self) -> None:
        await self.next_transport.aclose()
        if self._owns_proxy:
            await self.storage.close()

    async def request_sender(self, request: Request) -> Response:
        httpx_request = _internal_to_httpx(request)
        try:
            httpx_response = await self.next_transport.handle_async_request(httpx_request)
            await httpx_response.aread()
        except httpx.TransportError as exc:
            raise Unreachable(f"Could not reach {request.url}", url=request.url) from exc
        return _httpx_to_internal(httpx_response)


class AsyncCacheClient(httpx.AsyncClient):
    """
    `httpx.AsyncClient` whose requests go through an `AsyncCacheTransport`.

    Accepts `storage` and `options` on top of the usual client arguments. Mounts
    created for HTTP proxies share the proxy of the main transport.
    """

    def __init__(self, *args: t.Any, **kwargs: t.Any) -> None:
        self.storage: AsyncBaseStorage | None = kwargs.pop("storage", None)
        self.options: ProxyOptions | None = kwargs.pop("options", None)
        if self.options is None and kwargs.get("base_url"):
            self.options = ProxyOptions(base_url=str(kwargs["base_url"]))
        super().__init__(*args, **kwargs)

    async def __aexit__(
        self,
        exc_type: t.Optional[t.Type[BaseException]] = None,
        exc_value: t.Optional[BaseException] = None,
        traceback: t.Optional[types.TracebackType] = None,
    ) -> None:
        # httpx enters the main transport first and the mounts after it, but also
        # exits the main transport first. Every cache proxy holds a task group, so
        # the mounts are exited here, innermost first, before httpx exits the rest.
        mounts, self._mounts = self._mounts, {}
        try:
            for mount in reversed(list(mounts.values())):
                if mount is not None:
                    await mount.__aexit__(exc_type, exc_value, traceback)
            await super().__aexit__(exc_type, exc_value, traceback)
        finally:
            self._mounts = mounts

    def _init_transport(
        self,
        verify: ssl.SSLContext | str | bool = True,
        cert: t.Union[str, t.Tuple[str, str], t.Tuple[str, str, str], None] = None,
        trust_env: bool = True,
        http1: bool = True,
        http2: bool = False,
        limits: httpx.Limits = httpx.Limits(max_connections=100, max_keepalive_connections=20),
        transport: httpx.AsyncBaseTransport | None = None,
        **kwargs: t.Any,
    ) -> httpx.AsyncBaseTransport:
        if transport is not None:
            return transport

        return AsyncCacheTransport(
            next_transport=httpx.AsyncHTTPTransport(
                verify=verify,
                cert=cert,
                trust_env=trust_env,
                http1=http1,
                http2=http2,
                limits=limits,
            ),
            storage=self.storage,
            options=self.options,
        )

    def _init_proxy_transport(
        self,
        proxy: httpx.Proxy,
        verify: ssl.SSLContext | str | bool = True,
        cert: t.Union[str, t.Tuple[str, str], t.Tuple[str, str, str], None] = None,
        trust_env: bool = True,
        http1: bool = True,
        http2: bool = False,
        limits: httpx.Limits = httpx.Limits(max_connections=100, max_keepalive_connections=20),
        **kwargs: t.Any,
    ) -> httpx.AsyncBaseTransport:
        next_transport = httpx.AsyncHTTPTransport(
            verify=verify,
            cert=cert,
            trust_env=trust_env,
            http1=http1,
            http2=http2,
            limits=limits,
            proxy=proxy,
        )
        # httpx builds the main transport before the proxy mounts
        if isinstance(self._transport, AsyncCacheTransport):
            return AsyncCacheTransport(next_transport=next_transport, proxy=self._transport.proxy)
        return next_transport
