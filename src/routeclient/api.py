"""The combinator catalog: immutable building blocks of an API description.

An API description is a tree of frozen Pydantic nodes. Each node class has a
fixed :class:`NodeKind` tag, and :func:`routeclient.derivation.engine.derive`
interprets the tree by dispatching on that tag.

Nodes compose with two operators:

* ``a / b`` -- *b* continues the route below *a* (``:>`` in route notation).
  A plain string on either side becomes a :class:`Path` segment.
* ``a | b`` -- two independent endpoints sharing the prefix built so far.
  ``a | b | c`` nests to the right, so the derived client unpacks as
  ``fa, (fb, fc)``.

Example::

    from routeclient.api import capture, get, post, query_param, req_body

    books = (
        "books" / query_param("author") / get(["application/json"], list[Book])
        | "books" / capture("isbn") / get(["application/json"], Book)
        | "books" / req_body(["application/json"], Book) / post(["application/json"], Book)
    )

Every route must end in exactly one :class:`Verb` or :class:`Raw`; attaching
anything below a leaf or below an :class:`Alternative` raises
:class:`~routeclient.exceptions.UnsupportedCombinatorError`.
"""

from __future__ import annotations

import enum
from typing import Any, ClassVar, Iterable, Iterator, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from routeclient.exceptions import UnsupportedCombinatorError
from routeclient.models import HTTPMethod, ResultShape


class NodeKind(str, enum.Enum):
    """Closed set of node kinds understood by the derivation engine."""

    PATH = "path"
    CAPTURE = "capture"
    HEADER = "header"
    QUERY_PARAM = "query_param"
    QUERY_PARAMS = "query_params"
    QUERY_FLAG = "query_flag"
    REQ_BODY = "req_body"
    VERB = "verb"
    ALTERNATIVE = "alternative"
    RAW = "raw"


MediaTypes = Union[str, Iterable[str]]


def _media_tuple(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        return (value,)
    return tuple(value)


class Node(BaseModel):
    """Base class of every API description node."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: ClassVar[NodeKind]

    def then(self, other: Node) -> Node:
        """Return a copy of this tree with *other* attached below it."""
        raise UnsupportedCombinatorError(f"Cannot attach {describe(other)} below {describe(self)}")

    def __truediv__(self, other: Any) -> Node:
        if isinstance(other, str):
            other = path(other)
        if not isinstance(other, Node):
            return NotImplemented
        return self.then(other)

    def __rtruediv__(self, other: Any) -> Node:
        if not isinstance(other, str):
            return NotImplemented
        return path(other).then(self)

    def __or__(self, other: Any) -> Node:
        if not isinstance(other, Node):
            return NotImplemented
        return Alternative(left=self, right=other)


class _Prefix(Node):
    """A node with exactly one continuation."""

    sub: Optional[Node] = None

    def then(self, other: Node) -> Node:
        new_sub = other if self.sub is None else self.sub.then(other)
        return self.model_copy(update={"sub": new_sub})


class Path(_Prefix):
    """A literal path segment. Introduces no parameter."""

    kind: ClassVar[NodeKind] = NodeKind.PATH

    segment: str


class Capture(_Prefix):
    """A path segment supplied by the caller as a value of ``type``."""

    kind: ClassVar[NodeKind] = NodeKind.CAPTURE

    name: str
    type: Any = str


class Header(_Prefix):
    """An optional request header; ``None`` leaves the request unchanged."""

    kind: ClassVar[NodeKind] = NodeKind.HEADER

    name: str
    type: Any = str


class QueryParam(_Prefix):
    """An optional query parameter; ``None`` adds no query entry at all."""

    kind: ClassVar[NodeKind] = NodeKind.QUERY_PARAM

    name: str
    type: Any = str


class QueryParams(_Prefix):
    """A repeated query parameter, one entry per element in order."""

    kind: ClassVar[NodeKind] = NodeKind.QUERY_PARAMS

    name: str
    type: Any = str


class QueryFlag(_Prefix):
    """A value-less query flag, present only when the argument is true."""

    kind: ClassVar[NodeKind] = NodeKind.QUERY_FLAG

    name: str


class ReqBody(_Prefix):
    """A request body encoded with the first declared media type that has an encoder."""

    kind: ClassVar[NodeKind] = NodeKind.REQ_BODY

    media_types: tuple[str, ...]
    type: Any = Field(default=Any)

    @field_validator("media_types", mode="before")
    @classmethod
    def _coerce_media(cls, value: Any) -> tuple[str, ...]:
        return _media_tuple(value)


class ResponseHeaders(BaseModel):
    """Result descriptor: a decoded body plus declared response headers.

    Used as ``Verb.result``; the endpoint then returns
    :class:`~routeclient.models.Headers`.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    body: Any
    headers: tuple[tuple[str, Any], ...] = ()

    @field_validator("headers", mode="before")
    @classmethod
    def _coerce_headers(cls, value: Any) -> Any:
        if isinstance(value, Mapping):
            return tuple(value.items())
        return value

    @property
    def declared(self) -> dict[str, Any]:
        """Header name -> type, in declaration order."""
        return dict(self.headers)


class Verb(Node):
    """Leaf fixing the HTTP method and the response contract.

    Attributes:
        method: Upper-case HTTP method.
        media_types: Acceptable response media types, in preference order.
        result: ``None`` for no body, :class:`ResponseHeaders` for a body plus
            headers, any other type for a decoded body.
        status_codes: Overrides the per-method accepted status set.
    """

    kind: ClassVar[NodeKind] = NodeKind.VERB

    method: str
    media_types: tuple[str, ...] = ()
    result: Any = None
    status_codes: Optional[frozenset[int]] = None

    @field_validator("media_types", mode="before")
    @classmethod
    def _coerce_media(cls, value: Any) -> tuple[str, ...]:
        return _media_tuple(value)

    @field_validator("method", mode="before")
    @classmethod
    def _upper_method(cls, value: Any) -> str:
        if isinstance(value, HTTPMethod):
            return value.value
        return str(value).upper()

    @property
    def result_shape(self) -> ResultShape:
        """Which decoding strategy :attr:`result` selects."""
        if self.result is None or self.result is type(None):
            return ResultShape.UNIT
        if isinstance(self.result, ResponseHeaders):
            return ResultShape.VALUE_WITH_HEADERS
        return ResultShape.VALUE

    @property
    def body_type(self) -> Any:
        """The type the response body decodes into (``None`` for unit results)."""
        if isinstance(self.result, ResponseHeaders):
            return self.result.body
        return self.result


class Alternative(Node):
    """Two independent routes sharing the prefix above this node."""

    kind: ClassVar[NodeKind] = NodeKind.ALTERNATIVE

    left: Node
    right: Node

    def __or__(self, other: Any) -> Node:
        if not isinstance(other, Node):
            return NotImplemented
        return Alternative(left=self.left, right=self.right | other)


class Raw(Node):
    """Escape hatch leaf: the caller picks the method and any status is accepted."""

    kind: ClassVar[NodeKind] = NodeKind.RAW


# ---------------------------------------------------------------------------
# Constructors
# ---------------------------------------------------------------------------


def path(segments: str) -> Node:
    """Literal path segments; ``"api/v1"`` becomes two :class:`Path` nodes."""
    parts = [p for p in segments.split("/") if p]
    if not parts:
        raise UnsupportedCombinatorError(f"Empty path segment: {segments!r}")
    node: Node = Path(segment=parts[0])
    for part in parts[1:]:
        node = node.then(Path(segment=part))
    return node


def capture(name: str, type: Any = str) -> Capture:
    return Capture(name=name, type=type)


def header(name: str, type: Any = str) -> Header:
    return Header(name=name, type=type)


def query_param(name: str, type: Any = str) -> QueryParam:
    return QueryParam(name=name, type=type)


def query_params(name: str, type: Any = str) -> QueryParams:
    return QueryParams(name=name, type=type)


def query_flag(name: str) -> QueryFlag:
    return QueryFlag(name=name)


def req_body(media_types: MediaTypes, type: Any = Any) -> ReqBody:
    return ReqBody(media_types=media_types, type=type)


def response_headers(body: Any, headers: Mapping[str, Any]) -> ResponseHeaders:
    """Declare a result carrying *body* plus the named, typed response *headers*."""
    return ResponseHeaders(body=body, headers=headers)


def verb(
    method: Union[str, HTTPMethod],
    media_types: MediaTypes = (),
    result: Any = None,
    status_codes: Optional[Iterable[int]] = None,
) -> Verb:
    return Verb(
        method=method,
        media_types=media_types,
        result=result,
        status_codes=frozenset(status_codes) if status_codes is not None else None,
    )


def get(media_types: MediaTypes = (), result: Any = None, **kwargs: Any) -> Verb:
    return verb(HTTPMethod.GET, media_types, result, **kwargs)


def post(media_types: MediaTypes = (), result: Any = None, **kwargs: Any) -> Verb:
    return verb(HTTPMethod.POST, media_types, result, **kwargs)


def put(media_types: MediaTypes = (), result: Any = None, **kwargs: Any) -> Verb:
    return verb(HTTPMethod.PUT, media_types, result, **kwargs)


def patch(media_types: MediaTypes = (), result: Any = None, **kwargs: Any) -> Verb:
    return verb(HTTPMethod.PATCH, media_types, result, **kwargs)


def delete(media_types: MediaTypes = (), result: Any = None, **kwargs: Any) -> Verb:
    return verb(HTTPMethod.DELETE, media_types, result, **kwargs)


def raw() -> Raw:
    return Raw()


# ---------------------------------------------------------------------------
# Inspection helpers
# ---------------------------------------------------------------------------


def type_name(tp: Any) -> str:
    """Short display name for a declared type."""
    if tp is None or tp is type(None):
        return "None"
    if tp is Any:
        return "Any"
    if isinstance(tp, type):
        return tp.__name__
    return str(tp).replace("typing.", "")


def describe(node: Node) -> str:
    """One-line description of a single node (children omitted)."""
    kind = node.kind
    if kind == NodeKind.PATH:
        return f"Path({node.segment!r})"
    if kind in (NodeKind.CAPTURE, NodeKind.HEADER, NodeKind.QUERY_PARAM, NodeKind.QUERY_PARAMS):
        return f"{type(node).__name__}({node.name!r}, {type_name(node.type)})"
    if kind == NodeKind.QUERY_FLAG:
        return f"QueryFlag({node.name!r})"
    if kind == NodeKind.REQ_BODY:
        return f"ReqBody({list(node.media_types)}, {type_name(node.type)})"
    if kind == NodeKind.VERB:
        return f"Verb({node.method}, {list(node.media_types)}, {node.result_shape.value})"
    if kind == NodeKind.ALTERNATIVE:
        return "Alternative"
    return "Raw"


def iter_routes(node: Node) -> Iterator[list[Node]]:
    """Yield every root-to-leaf route as a list of nodes (alternatives flattened)."""
    if node.kind == NodeKind.ALTERNATIVE:
        yield from iter_routes(node.left)
        yield from iter_routes(node.right)
    elif isinstance(node, _Prefix):
        if node.sub is None:
            yield [node]
            return
        for rest in iter_routes(node.sub):
            yield [node, *rest]
    else:
        yield [node]


def validate(node: Node) -> None:
    """Check that every route ends in exactly one leaf.

    Raises:
        UnsupportedCombinatorError: For a route that stops before reaching a
            :class:`Verb` or :class:`Raw`.
    """
    for route in iter_routes(node):
        last = route[-1]
        if last.kind not in (NodeKind.VERB, NodeKind.RAW):
            trail = " / ".join(describe(n) for n in route)
            raise UnsupportedCombinatorError(f"Route does not end in an endpoint: {trail}")
