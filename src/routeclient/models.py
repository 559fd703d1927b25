"""Canonical Pydantic models shared across routeclient modules.

The models fall into three groups:

**Addressing** -- :class:`Scheme`, :class:`BaseUrl` and :func:`parse_base_url`
describe the origin every derived request is sent to.

**Results** -- :class:`HTTPMethod`, :class:`ResultShape`, :class:`Headers` and
:class:`RawResponse` describe what a derived endpoint returns.

**Configuration** -- :class:`RequestConfig` and :class:`ClientConfig` hold the
settings resolved by :func:`routeclient.config.resolve_config`.
"""

from __future__ import annotations

import enum
from typing import Any, Optional
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field

from routeclient.exceptions import InvalidBaseUrlError


# --- Addressing ---


class Scheme(str, enum.Enum):
    """URL schemes a :class:`BaseUrl` may use."""

    HTTP = "http"
    HTTPS = "https"


_DEFAULT_PORTS: dict[Scheme, int] = {Scheme.HTTP: 80, Scheme.HTTPS: 443}


class BaseUrl(BaseModel):
    """Scheme, host, port and path prefix of the server a client talks to.

    ``path`` is either empty or starts with ``/`` and never ends with one, so
    that request paths can be appended verbatim.

    Example::

        >>> str(BaseUrl(scheme=Scheme.HTTPS, host="api.example.com", port=443, path="/v1"))
        'https://api.example.com/v1'
    """

    model_config = ConfigDict(frozen=True)

    scheme: Scheme = Scheme.HTTP
    host: str
    port: int = 80
    path: str = ""

    def __str__(self) -> str:
        port = "" if _DEFAULT_PORTS[self.scheme] == self.port else f":{self.port}"
        return f"{self.scheme.value}://{self.host}{port}{self.path}"


def parse_base_url(text: str) -> BaseUrl:
    """Parse *text* into a :class:`BaseUrl`.

    Accepts ``host``, ``host:port`` and ``scheme://host[:port][/path]``.
    A missing scheme defaults to ``http``; a missing port defaults to the
    scheme's well-known port. A trailing slash is dropped.

    Args:
        text: The URL to parse.

    Returns:
        The parsed :class:`BaseUrl`.

    Raises:
        InvalidBaseUrlError: For unsupported schemes, credentials, query
            strings, fragments, empty hosts or invalid ports.

    Example::

        >>> parse_base_url("localhost:8080")
        BaseUrl(scheme=<Scheme.HTTP: 'http'>, host='localhost', port=8080, path='')
    """
    stripped = text.strip()
    if "://" not in stripped:
        stripped = f"http://{stripped}"
    stripped = stripped.rstrip("/")

    parts = urlsplit(stripped)
    try:
        scheme = Scheme(parts.scheme.lower())
    except ValueError:
        raise InvalidBaseUrlError(f"Unsupported scheme in base URL: {text!r}") from None

    if parts.username or parts.password or parts.query or parts.fragment:
        raise InvalidBaseUrlError(f"Base URL must not carry credentials, query or fragment: {text!r}")
    if not parts.hostname:
        raise InvalidBaseUrlError(f"Base URL has no host: {text!r}")

    try:
        port = parts.port
    except ValueError as exc:
        raise InvalidBaseUrlError(f"Invalid port in base URL {text!r}: {exc}") from exc

    return BaseUrl(
        scheme=scheme,
        host=parts.hostname,
        port=port if port is not None else _DEFAULT_PORTS[scheme],
        path=parts.path,
    )


# --- Results ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods a :class:`~routeclient.api.Verb` may declare."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


class ResultShape(str, enum.Enum):
    """How a verb's response is turned into a return value.

    * ``UNIT`` -- no body expected, the endpoint returns ``None``.
    * ``VALUE`` -- the body is decoded into the declared type.
    * ``VALUE_WITH_HEADERS`` -- as ``VALUE``, plus declared response headers,
      returned together as :class:`Headers`.
    """

    UNIT = "unit"
    VALUE = "value"
    VALUE_WITH_HEADERS = "value_with_headers"


class Headers(BaseModel):
    """Decoded body plus the declared response headers.

    ``headers`` maps each declared header name to its parsed value, or to
    ``None`` when the server did not send it.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    response: Any = None
    headers: dict[str, Any] = Field(default_factory=dict)


class RawResponse(BaseModel):
    """Undecoded response returned by :class:`~routeclient.api.Raw` endpoints."""

    status_code: int
    content: bytes = b""
    media_type: str = "application/octet-stream"
    headers: list[tuple[str, str]] = Field(default_factory=list)


# --- Configuration ---


class RequestConfig(BaseModel):
    """HTTP settings applied by :class:`~routeclient.http.HttpxTransport`."""

    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    follow_redirects: bool = Field(default=True, description="Follow HTTP redirects")


class ClientConfig(BaseModel):
    """Effective configuration after precedence resolution.

    See Also:
        :func:`~routeclient.config.resolve_config` for the precedence chain.
    """

    base_url: Optional[str] = Field(
        default=None, description="Default base URL when none is passed to client()"
    )
    request: RequestConfig = Field(default_factory=RequestConfig)
