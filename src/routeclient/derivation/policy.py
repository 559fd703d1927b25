"""Response decoding policy: which statuses succeed and how a body is decoded.

The accepted status set depends on the HTTP method and on the verb's result
shape:

=========  ======  ==========  ==================
Method     Unit    Value       Value + headers
=========  ======  ==========  ==================
GET        204     200, 203    200, 203, 204
POST       204     200, 201    200, 201
PUT        204     200, 201    200, 201
PATCH      204     200, 201    200, 201, 204
DELETE     204     200, 202    200, 202
=========  ======  ==========  ==================

A verb's explicit ``status_codes`` replace the table entry. Unit results
accept 204 for every method; other methods must spell out their codes for
value results.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Mapping, Optional

from routeclient.exceptions import (
    DecodeFailureError,
    InvalidContentTypeHeaderError,
    UnsupportedCombinatorError,
)
from routeclient.media import OCTET_STREAM, Codec, MediaType, parse_media_type
from routeclient.models import BaseUrl, Headers, RawResponse, ResultShape
from routeclient.output import get_output
from routeclient.rendering import build_response_headers
from routeclient.request import Req

if TYPE_CHECKING:
    import httpx

    from routeclient.http.transport import Transport


_UNIT_STATUSES = frozenset({204})

_VALUE_STATUSES: dict[str, dict[ResultShape, frozenset[int]]] = {
    "GET": {
        ResultShape.VALUE: frozenset({200, 203}),
        ResultShape.VALUE_WITH_HEADERS: frozenset({200, 203, 204}),
    },
    "POST": {
        ResultShape.VALUE: frozenset({200, 201}),
        ResultShape.VALUE_WITH_HEADERS: frozenset({200, 201}),
    },
    "PUT": {
        ResultShape.VALUE: frozenset({200, 201}),
        ResultShape.VALUE_WITH_HEADERS: frozenset({200, 201}),
    },
    "PATCH": {
        ResultShape.VALUE: frozenset({200, 201}),
        ResultShape.VALUE_WITH_HEADERS: frozenset({200, 201, 204}),
    },
    "DELETE": {
        ResultShape.VALUE: frozenset({200, 202}),
        ResultShape.VALUE_WITH_HEADERS: frozenset({200, 202}),
    },
}


def accepted_statuses(
    method: str,
    shape: ResultShape,
    status_codes: Optional[frozenset[int]] = None,
) -> frozenset[int]:
    """Return the status codes treated as success for *method* and *shape*.

    Raises:
        UnsupportedCombinatorError: For a value result on a method outside
            the table when no explicit *status_codes* are given.
    """
    if status_codes is not None:
        return frozenset(status_codes)
    if shape == ResultShape.UNIT:
        return _UNIT_STATUSES
    by_shape = _VALUE_STATUSES.get(method.upper())
    if by_shape is None:
        raise UnsupportedCombinatorError(
            f"No default success statuses for {method.upper()} returning a value; "
            "declare status_codes on the verb"
        )
    return by_shape[shape]


@dataclass(frozen=True)
class DecodingPolicy:
    """How one endpoint turns a response into its return value.

    Attributes:
        method: Upper-case HTTP method sent.
        shape: The verb's result shape.
        accepted: Status codes treated as success.
        body_type: Declared body type (``None`` for unit results).
        decoders: ``(declared media type, codec)`` pairs in declared order.
        declared_headers: Response header name -> type, for header results.
    """

    method: str
    shape: ResultShape
    accepted: frozenset[int]
    body_type: Any = None
    declared_media_types: tuple[str, ...] = ()
    decoders: tuple[tuple[MediaType, Codec], ...] = ()
    declared_headers: dict[str, Any] = field(default_factory=dict)

    def accepts(self, status_code: int) -> bool:
        return status_code in self.accepted

    @property
    def accept_header(self) -> Optional[str]:
        """Value of the ``Accept`` request header, or ``None`` for unit results."""
        if self.shape == ResultShape.UNIT or not self.decoders:
            return None
        return ", ".join(str(media_type) for media_type, _ in self.decoders)

    async def execute(self, transport: Transport, req: Req, base_url: Optional[BaseUrl]) -> Any:
        """Send *req* through *transport* and produce the endpoint's result.

        Raises:
            UnsuccessfulStatusError: If the status is not in :attr:`accepted`.
            ConnectionError_: If the transport fails.
            InvalidContentTypeHeaderError: If the response ``Content-Type``
                is malformed.
            DecodeFailureError: If no declared media type matches the response
                or decoding fails.
        """
        req = req.finalize(self.method)

        if self.shape == ResultShape.UNIT:
            await transport.perform_request_no_body(self.method, req, self.accepted, base_url)
            return None

        accept = self.accept_header
        if accept is not None and req.header("Accept") is None:
            req = req.add_header("Accept", accept)

        response = await transport.perform_request(self.method, req, self.accepts, base_url)
        value = self.decode(response.content, response.headers.get("content-type"))

        if self.shape == ResultShape.VALUE_WITH_HEADERS:
            headers = build_response_headers(self.declared_headers, response.headers.multi_items())
            return Headers(response=value, headers=headers)
        return value

    def decode(self, content: bytes, content_type: Optional[str]) -> Any:
        """Decode a response body with the first matching declared codec.

        A missing ``Content-Type`` is treated as ``application/octet-stream``.
        """
        if not self.decoders:
            raise DecodeFailureError(
                ", ".join(self.declared_media_types) or "<none>",
                content,
                "no declared response media type has a registered decoder",
            )

        try:
            received = parse_media_type(content_type or OCTET_STREAM)
        except InvalidContentTypeHeaderError as exc:
            raise InvalidContentTypeHeaderError(exc.header_value, content) from exc
        for declared, codec in self.decoders:
            if not declared.matches(received):
                continue
            get_output().debug(f"Decoding {received.essence} response as {declared.essence}")
            try:
                return codec.decode(content, self.body_type)
            except Exception as exc:
                raise DecodeFailureError(declared.essence, content, exc) from exc

        offered = ", ".join(declared.essence for declared, _ in self.decoders)
        raise DecodeFailureError(
            received.essence,
            content,
            f"response media type is not one of: {offered}",
        )


def decoding_policy(
    method: str,
    shape: ResultShape,
    status_codes: Optional[frozenset[int]] = None,
    *,
    body_type: Any = None,
    media_types: tuple[str, ...] = (),
    decoders: tuple[tuple[MediaType, Codec], ...] = (),
    declared_headers: Optional[Mapping[str, Any]] = None,
) -> DecodingPolicy:
    """Build the :class:`DecodingPolicy` for one verb."""
    return DecodingPolicy(
        method=method.upper(),
        shape=shape,
        accepted=accepted_statuses(method, shape, status_codes),
        body_type=body_type,
        declared_media_types=tuple(media_types),
        decoders=tuple(decoders),
        declared_headers=dict(declared_headers or {}),
    )


def raw_result(response: httpx.Response) -> RawResponse:
    """Wrap an undecoded response for :class:`~routeclient.api.Raw` endpoints."""
    return RawResponse(
        status_code=response.status_code,
        content=response.content,
        media_type=response.headers.get("content-type", OCTET_STREAM),
        headers=list(response.headers.multi_items()),
    )
