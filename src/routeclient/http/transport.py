"""Transport facade: the only part of routeclient that touches the network.

Derived endpoints talk to a :class:`Transport`, an asynchronous object with
two operations:

* :meth:`Transport.perform_request` -- send a request and return the
  response when its status is accepted.
* :meth:`Transport.perform_request_no_body` -- the same, for endpoints whose
  result is ``None``.

Both raise :class:`~routeclient.exceptions.UnsuccessfulStatusError` for a
status outside the accepted set and
:class:`~routeclient.exceptions.ConnectionError_` when the request never
completes.

:class:`HttpxTransport` is the shipped implementation, built on
:class:`httpx.AsyncClient`.
"""

from __future__ import annotations

from typing import Any, Callable, Collection, Optional, Protocol, runtime_checkable

import httpx

from routeclient.exceptions import ConfigError, ConnectionError_, UnsuccessfulStatusError
from routeclient.models import BaseUrl, ClientConfig, parse_base_url
from routeclient.output import get_output
from routeclient.request import Req


@runtime_checkable
class Transport(Protocol):
    """What derived endpoints require from the layer below them."""

    async def perform_request(
        self,
        method: str,
        req: Req,
        accept_status: Callable[[int], bool],
        base_url: Optional[BaseUrl],
    ) -> httpx.Response: ...

    async def perform_request_no_body(
        self,
        method: str,
        req: Req,
        accepted: Collection[int],
        base_url: Optional[BaseUrl],
    ) -> None: ...


class HttpxTransport:
    """:class:`Transport` backed by :class:`httpx.AsyncClient`.

    Used as an async context manager, one pooled client serves every request
    made inside the block. Outside a block each request opens and closes its
    own short-lived client, so a transport created implicitly by
    :func:`routeclient.client` never leaks connections.

    Args:
        config: Timeout, SSL and redirect settings plus the default base URL
            used when an endpoint was derived without one.
        client: A pre-built :class:`httpx.AsyncClient` (e.g. one wrapping
            :class:`httpx.MockTransport`). The caller keeps ownership; it is
            never closed here.

    Example::

        async with HttpxTransport(resolve_config()) as transport:
            books = client(api, "https://books.example.com", transport=transport)
            found = await books[0](author="Le Guin")
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._config = config or ClientConfig()
        self._client = client
        self._owns_client = False
        self._default_base_url: Optional[BaseUrl] = (
            parse_base_url(self._config.base_url) if self._config.base_url else None
        )

    @property
    def config(self) -> ClientConfig:
        return self._config

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> HttpxTransport:
        if self._client is None:
            self._client = self._new_client()
            self._owns_client = True
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the pooled client if this transport opened it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
            self._owns_client = False

    # ------------------------------------------------------------------ #
    # Transport protocol
    # ------------------------------------------------------------------ #

    async def perform_request(
        self,
        method: str,
        req: Req,
        accept_status: Callable[[int], bool],
        base_url: Optional[BaseUrl],
    ) -> httpx.Response:
        """Send *req* and return the response if *accept_status* accepts it.

        Raises:
            ConfigError: If neither *base_url* nor the configuration names a
                base URL.
            ConnectionError_: On network, protocol or timeout errors.
            UnsuccessfulStatusError: If the status is rejected.
        """
        url = req.url(self._resolve_base_url(base_url))
        headers = list(req.headers)
        content: Optional[bytes] = None
        if req.body is not None:
            content, content_type = req.body
            if req.header("Content-Type") is None:
                headers.append(("Content-Type", content_type))

        output = get_output()
        output.debug(f"{method} {url}")

        response = await self._send(method, url, headers, content)
        output.debug(f"{method} {url} -> {response.status_code}")

        if not accept_status(response.status_code):
            raise UnsuccessfulStatusError(
                response.status_code,
                response.content,
                list(response.headers.multi_items()),
            )
        return response

    async def perform_request_no_body(
        self,
        method: str,
        req: Req,
        accepted: Collection[int],
        base_url: Optional[BaseUrl],
    ) -> None:
        """Send *req*, requiring a status in *accepted*; the body is ignored."""
        await self.perform_request(method, req, lambda status: status in accepted, base_url)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _new_client(self) -> httpx.AsyncClient:
        request = self._config.request
        return httpx.AsyncClient(
            timeout=request.timeout,
            verify=request.verify_ssl,
            follow_redirects=request.follow_redirects,
        )

    def _resolve_base_url(self, base_url: Optional[BaseUrl]) -> BaseUrl:
        if base_url is not None:
            return base_url
        if self._default_base_url is None:
            raise ConfigError(
                "No base URL: pass one to client() or set ROUTECLIENT_BASE_URL"
            )
        return self._default_base_url

    async def _send(
        self,
        method: str,
        url: str,
        headers: list[tuple[str, str]],
        content: Optional[bytes],
    ) -> httpx.Response:
        kwargs: dict[str, Any] = {"headers": headers}
        if content is not None:
            kwargs["content"] = content
        try:
            if self._client is not None:
                return await self._client.request(method, url, **kwargs)
            async with self._new_client() as client:
                return await client.request(method, url, **kwargs)
        except httpx.TransportError as exc:
            raise ConnectionError_(f"{method} {url} failed: {exc}") from exc
