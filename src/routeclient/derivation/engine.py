"""Turn an API description into a tree of callable endpoints.

:func:`client` is the entry point. It walks the description once, dispatching
on each node's :class:`~routeclient.api.NodeKind`, and returns:

* an :class:`Endpoint` for a route ending in a ``Verb`` or ``Raw`` leaf;
* a ``(left, right)`` tuple for an ``Alternative``, recursively.

While walking, every node appends to a :class:`RequestPlan`: literal path
segments and argument-driven changes become ordered *steps*, and every
argument-introducing node contributes a :class:`~routeclient.derivation.params.Param`.
Plans are immutable, so the two sides of an alternative start from the same
prefix and never see each other's additions. Calling an endpoint binds the
arguments, replays the steps against a fresh :class:`~routeclient.request.Req`
and hands the result to the endpoint's
:class:`~routeclient.derivation.policy.DecodingPolicy`.

Example::

    from routeclient import client

    list_books, (get_book, add_book) = client(books_api, "https://books.example.com")
    book = await get_book("978-0441013593")
"""

from __future__ import annotations

import functools
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Mapping, Optional, Union

from routeclient.api import Node, NodeKind, describe, validate
from routeclient.config import resolve_config
from routeclient.derivation.params import Param, build_signature, param_for_node
from routeclient.derivation.policy import DecodingPolicy, decoding_policy, raw_result
from routeclient.exceptions import UnsupportedCombinatorError
from routeclient.http.transport import HttpxTransport, Transport
from routeclient.media import Codec, CodecRegistry, default_registry
from routeclient.models import BaseUrl, Headers, RawResponse, ResultShape, parse_base_url
from routeclient.output import get_output
from routeclient.rendering import to_url_piece
from routeclient.request import Req

# A step rewrites the request given the value of its parameter (``None``
# for steps that take no argument).
StepFn = Callable[[Req, Any], Req]
Step = tuple[Optional[str], StepFn]


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------


def _append_segment(segment: str, req: Req, _value: Any) -> Req:
    return req.append_to_path(segment)


def _append_capture(req: Req, value: Any) -> Req:
    return req.append_to_path(to_url_piece(value))


def _set_header(name: str, req: Req, value: Any) -> Req:
    if value is None:
        return req
    return req.add_header(name, to_url_piece(value))


def _add_query(name: str, req: Req, value: Any) -> Req:
    if value is None:
        return req
    return req.append_to_query(name, to_url_piece(value))


def _add_query_list(name: str, req: Req, values: Any) -> Req:
    if values is None:
        return req
    if isinstance(values, (str, bytes)):
        raise TypeError(f"{name!r} takes a sequence of values, not a single {type(values).__name__}")
    for value in values:
        req = req.append_to_query(name, to_url_piece(value))
    return req


def _add_flag(name: str, req: Req, enabled: Any) -> Req:
    if not enabled:
        return req
    return req.append_to_query(name, None)


def _set_body(codec: Codec, tp: Any, req: Req, value: Any) -> Req:
    return req.set_body(codec.encode(value, tp), codec.content_type)


def _ignore(req: Req, _value: Any) -> Req:
    return req


# ---------------------------------------------------------------------------
# Plan and context
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RequestPlan:
    """Persistent record of everything a route contributes to a request.

    Attributes:
        seed: The request the steps start from.
        params: Endpoint parameters in root-to-leaf order.
        steps: ``(parameter name or None, step)`` pairs in route order.
        template: Path template segments, ``{name}`` for captures.
    """

    seed: Req = field(default_factory=Req)
    params: tuple[Param, ...] = ()
    steps: tuple[Step, ...] = ()
    template: tuple[str, ...] = ()

    @property
    def param_names(self) -> list[str]:
        return [p.name for p in self.params]

    @property
    def path_template(self) -> str:
        return "".join(f"/{segment}" for segment in self.template) or "/"

    def with_step(self, step: StepFn, template: Optional[str] = None) -> RequestPlan:
        return RequestPlan(
            seed=self.seed,
            params=self.params,
            steps=(*self.steps, (None, step)),
            template=self.template if template is None else (*self.template, template),
        )

    def with_param(self, param: Param, step: StepFn, template: Optional[str] = None) -> RequestPlan:
        return RequestPlan(
            seed=self.seed,
            params=(*self.params, param),
            steps=(*self.steps, (param.name, step)),
            template=self.template if template is None else (*self.template, template),
        )

    def build(self, arguments: Mapping[str, Any]) -> Req:
        """Replay every step against :attr:`seed` with the bound *arguments*."""
        req = self.seed
        for name, step in self.steps:
            req = step(req, None if name is None else arguments[name])
        return req


class _DefaultTransport:
    """Creates an :class:`HttpxTransport` from resolved config on first use."""

    def __init__(self) -> None:
        self._transport: Optional[Transport] = None

    def __call__(self) -> Transport:
        if self._transport is None:
            self._transport = HttpxTransport(resolve_config())
        return self._transport


@dataclass(frozen=True)
class DerivationContext:
    """Settings shared by every endpoint derived from one :func:`client` call."""

    base_url: Optional[BaseUrl]
    registry: CodecRegistry
    transport: Callable[[], Transport]


# ---------------------------------------------------------------------------
# Endpoint
# ---------------------------------------------------------------------------


class Endpoint:
    """An async callable for one route of the API.

    The call signature is derived from the route (see
    :mod:`routeclient.derivation.params`) and exposed as ``__signature__``,
    so :func:`inspect.signature` reports it.

    Attributes:
        method: Upper-case HTTP method, or ``None`` for raw endpoints where
            the caller supplies it.
        path_template: e.g. ``/books/{isbn}``.
        result_shape: ``None`` for raw endpoints.
        params: The derived parameters, in order.
    """

    def __init__(
        self,
        plan: RequestPlan,
        ctx: DerivationContext,
        policy: Optional[DecodingPolicy] = None,
        method_param: Optional[Param] = None,
        return_annotation: Any = None,
    ) -> None:
        if (policy is None) == (method_param is None):
            raise UnsupportedCombinatorError(
                "An endpoint needs exactly one of a decoding policy or a method parameter"
            )
        self._plan = plan
        self._ctx = ctx
        self._policy = policy
        self._method_param = method_param
        self.params: tuple[Param, ...] = plan.params
        self.method: Optional[str] = policy.method if policy is not None else None
        self.result_shape: Optional[ResultShape] = policy.shape if policy is not None else None
        self.path_template = plan.path_template
        self.__signature__ = build_signature(self.params, return_annotation)
        self.__name__ = f"{(self.method or 'raw').lower()}_{_slug(plan.template)}"
        self.__doc__ = f"{self.method or '<method>'} {self.path_template}"

    @property
    def is_raw(self) -> bool:
        return self._method_param is not None

    @property
    def policy(self) -> Optional[DecodingPolicy]:
        return self._policy

    def __repr__(self) -> str:
        return f"<Endpoint {self.method or '*'} {self.path_template}>"

    def build_request(self, *args: Any, **kwargs: Any) -> Req:
        """Bind the arguments and return the request that would be sent.

        Raises:
            TypeError: If the arguments do not match the signature.
        """
        bound = self.__signature__.bind(*args, **kwargs)
        bound.apply_defaults()
        return self._plan.build(bound.arguments)

    async def __call__(self, *args: Any, **kwargs: Any) -> Any:
        bound = self.__signature__.bind(*args, **kwargs)
        bound.apply_defaults()
        req = self._plan.build(bound.arguments)
        transport = self._ctx.transport()

        if self._method_param is not None:
            method = to_url_piece(bound.arguments[self._method_param.name]).upper()
            response = await transport.perform_request(
                method, req.finalize(method), _accept_any, self._ctx.base_url
            )
            return raw_result(response)

        return await self._policy.execute(transport, req, self._ctx.base_url)


def _accept_any(status_code: int) -> bool:
    return True


def _slug(template: tuple[str, ...]) -> str:
    parts = [segment.strip("{}").replace("-", "_") for segment in template]
    return "_".join(parts) or "root"


# ---------------------------------------------------------------------------
# Derivation
# ---------------------------------------------------------------------------


ClientTree = Union[Endpoint, tuple]


def _continue(node: Node, plan: RequestPlan, ctx: DerivationContext) -> ClientTree:
    if node.sub is None:
        raise UnsupportedCombinatorError(f"Route ends at {describe(node)} without an endpoint")
    return derive(node.sub, plan, ctx)


def _return_annotation(node: Node) -> Any:
    shape = node.result_shape
    if shape == ResultShape.UNIT:
        return None
    if shape == ResultShape.VALUE_WITH_HEADERS:
        return Headers
    return node.body_type


def derive(node: Node, plan: RequestPlan, ctx: DerivationContext) -> ClientTree:
    """Derive the client value for *node* given the *plan* accumulated above it.

    Raises:
        EncodingUnavailableError: If a request body declares no media type
            with a registered encoder.
        UnsupportedCombinatorError: For unknown node kinds, dangling routes
            or verbs without default success statuses.
    """
    kind = node.kind

    if kind == NodeKind.PATH:
        step = functools.partial(_append_segment, node.segment)
        return _continue(node, plan.with_step(step, template=node.segment), ctx)

    if kind == NodeKind.CAPTURE:
        param = param_for_node(node, plan.param_names)
        return _continue(node, plan.with_param(param, _append_capture, template=f"{{{node.name}}}"), ctx)

    if kind == NodeKind.HEADER:
        param = param_for_node(node, plan.param_names)
        return _continue(node, plan.with_param(param, functools.partial(_set_header, node.name)), ctx)

    if kind == NodeKind.QUERY_PARAM:
        param = param_for_node(node, plan.param_names)
        return _continue(node, plan.with_param(param, functools.partial(_add_query, node.name)), ctx)

    if kind == NodeKind.QUERY_PARAMS:
        param = param_for_node(node, plan.param_names)
        return _continue(node, plan.with_param(param, functools.partial(_add_query_list, node.name)), ctx)

    if kind == NodeKind.QUERY_FLAG:
        param = param_for_node(node, plan.param_names)
        return _continue(node, plan.with_param(param, functools.partial(_add_flag, node.name)), ctx)

    if kind == NodeKind.REQ_BODY:
        codec = ctx.registry.select_encoder(node.media_types)
        param = param_for_node(node, plan.param_names)
        step = functools.partial(_set_body, codec, node.type)
        return _continue(node, plan.with_param(param, step), ctx)

    if kind == NodeKind.VERB:
        shape = node.result_shape
        decoders = () if shape == ResultShape.UNIT else ctx.registry.select_decoders(node.media_types)
        declared_headers = node.result.declared if shape == ResultShape.VALUE_WITH_HEADERS else None
        policy = decoding_policy(
            node.method,
            shape,
            node.status_codes,
            body_type=node.body_type,
            media_types=node.media_types,
            decoders=tuple(decoders),
            declared_headers=declared_headers,
        )
        return Endpoint(plan, ctx, policy=policy, return_annotation=_return_annotation(node))

    if kind == NodeKind.ALTERNATIVE:
        return (derive(node.left, plan, ctx), derive(node.right, plan, ctx))

    if kind == NodeKind.RAW:
        param = param_for_node(node, plan.param_names)
        return Endpoint(
            plan.with_param(param, _ignore),
            ctx,
            method_param=param,
            return_annotation=RawResponse,
        )

    raise UnsupportedCombinatorError(f"Unsupported node kind: {kind!r}")


def client(
    api: Node,
    base_url: Union[BaseUrl, str, None] = None,
    *,
    registry: Optional[CodecRegistry] = None,
    transport: Optional[Transport] = None,
    seed: Optional[Req] = None,
) -> ClientTree:
    """Derive the client for *api*.

    Args:
        api: The API description.
        base_url: Where requests go. A string is parsed with
            :func:`~routeclient.models.parse_base_url`; ``None`` defers to
            the transport's configured base URL.
        registry: Codecs available for bodies (default:
            :func:`~routeclient.media.default_registry`).
        transport: Sends the requests. When omitted, an
            :class:`~routeclient.http.transport.HttpxTransport` is built
            from :func:`~routeclient.config.resolve_config` on the first
            call.
        seed: Request every call starts from (e.g. to add a header to all
            endpoints).

    Returns:
        An :class:`Endpoint`, or nested ``(left, right)`` tuples of them
        mirroring the description's alternatives.

    Raises:
        UnsupportedCombinatorError: For a malformed description.
        EncodingUnavailableError: For a request body no codec can encode.
        InvalidBaseUrlError: For an unparsable *base_url* string.
    """
    validate(api)
    if isinstance(base_url, str):
        base_url = parse_base_url(base_url)

    provider: Callable[[], Transport]
    if transport is None:
        provider = _DefaultTransport()
    else:
        provider = functools.partial(_given, transport)

    ctx = DerivationContext(
        base_url=base_url,
        registry=registry if registry is not None else default_registry(),
        transport=provider,
    )
    tree = derive(api, RequestPlan(seed=seed if seed is not None else Req()), ctx)
    get_output().debug(f"Derived {sum(1 for _ in iter_endpoints(tree))} endpoint(s)")
    return tree


def _given(transport: Transport) -> Transport:
    return transport


def iter_endpoints(tree: ClientTree) -> Iterator[Endpoint]:
    """Yield the endpoints of a client tree in description order."""
    if isinstance(tree, Endpoint):
        yield tree
        return
    for branch in tree:
        yield from iter_endpoints(branch)
