"""Textual rendering of request values and parsing of response headers.

Captures, query values and request header values are turned into text by
:func:`to_url_piece`, a :func:`functools.singledispatch` function. Support for
additional types is added by registering an implementation::

    from routeclient.rendering import to_url_piece

    @to_url_piece.register
    def _(value: Isbn) -> str:
        return value.digits

Response headers declared through :class:`~routeclient.api.ResponseHeaders`
are parsed back by :func:`build_response_headers` using pydantic
:class:`~pydantic.TypeAdapter` validation.
"""

from __future__ import annotations

import datetime
import enum
import functools
import uuid
from decimal import Decimal
from typing import Any, Iterable, Mapping

from pydantic import BaseModel, TypeAdapter, ValidationError

from routeclient.exceptions import DecodeFailureError


@functools.singledispatch
def to_url_piece(value: Any) -> str:
    """Render *value* as the text used in paths, query strings and headers.

    Unregistered types fall back to ``str(value)``.
    """
    return str(value)


@to_url_piece.register
def _(value: str) -> str:
    return value


@to_url_piece.register
def _(value: bool) -> str:
    return "true" if value else "false"


@to_url_piece.register(int)
@to_url_piece.register(float)
@to_url_piece.register(Decimal)
def _(value: Any) -> str:
    return str(value)


@to_url_piece.register
def _(value: enum.Enum) -> str:
    return to_url_piece(value.value)


@to_url_piece.register(datetime.date)
@to_url_piece.register(datetime.datetime)
@to_url_piece.register(datetime.time)
def _(value: Any) -> str:
    return value.isoformat()


@to_url_piece.register
def _(value: uuid.UUID) -> str:
    return str(value)


@to_url_piece.register
def _(value: bytes) -> str:
    return value.decode("utf-8")


@to_url_piece.register
def _(value: BaseModel) -> str:
    return value.model_dump_json()


@functools.lru_cache(maxsize=256)
def type_adapter(tp: Any) -> TypeAdapter:
    """Return a cached :class:`~pydantic.TypeAdapter` for *tp*."""
    return TypeAdapter(tp)


def parse_header_value(text: str, tp: Any) -> Any:
    """Parse a response header value into *tp*.

    ``str`` (and ``Any``) headers are returned unchanged; everything else goes
    through pydantic's lax-mode validation, so ``"42"`` becomes ``42`` for an
    ``int`` header.

    Raises:
        pydantic.ValidationError: If the text is not a valid *tp*.
    """
    if tp is str or tp is Any:
        return text
    return type_adapter(tp).validate_python(text)


def build_response_headers(
    declared: Mapping[str, Any],
    response_headers: Iterable[tuple[str, str]],
) -> dict[str, Any]:
    """Extract and parse the *declared* headers from a response.

    Header names are matched case-insensitively; when a header repeats, the
    first occurrence is used.

    Args:
        declared: Header name -> expected type, in declaration order.
        response_headers: ``(name, value)`` pairs as received.

    Returns:
        Declared name -> parsed value, or ``None`` for headers the response
        did not carry.

    Raises:
        DecodeFailureError: If a present header cannot be parsed.
    """
    received: dict[str, str] = {}
    for name, value in response_headers:
        received.setdefault(name.lower(), value)

    result: dict[str, Any] = {}
    for name, tp in declared.items():
        text = received.get(name.lower())
        if text is None:
            result[name] = None
            continue
        try:
            result[name] = parse_header_value(text, tp)
        except ValidationError as exc:
            raise DecodeFailureError(f"header:{name}", text.encode("utf-8"), exc) from exc
    return result
