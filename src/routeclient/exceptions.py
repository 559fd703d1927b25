"""Exception hierarchy for routeclient.

All exceptions inherit from :class:`RouteClientError`, which carries an
``exit_code`` attribute mapped to a constant from
:mod:`routeclient.exit_codes`. Library callers catch :class:`ClientError`
around a derived endpoint call; the CLI in :func:`routeclient.app.main`
catches ``RouteClientError`` and exits with the appropriate code.

Subclass hierarchy::

    RouteClientError (exit 1)
    +-- ClientError                        (exit 1)
    |   +-- ConnectionError_               (exit 6)
    |   +-- UnsuccessfulStatusError        (exit 4)
    |   +-- DecodeFailureError             (exit 5)
    |   +-- InvalidContentTypeHeaderError  (exit 5)
    |   +-- EncodingUnavailableError       (exit 7)
    +-- UnsupportedCombinatorError         (exit 3)
    +-- DescriptionParseError              (exit 3)
    +-- InvalidBaseUrlError                (exit 2)
    +-- InvalidUsageError                  (exit 2)
    +-- ConfigError                        (exit 1)
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

from routeclient.exit_codes import (
    EXIT_CONNECTION_ERROR,
    EXIT_DECODE_FAILURE,
    EXIT_DESCRIPTION_ERROR,
    EXIT_ENCODING_UNAVAILABLE,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_UNSUCCESSFUL_STATUS,
)


class RouteClientError(Exception):
    """Base exception for all routeclient errors.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


# --- Runtime errors of derived endpoints ---


class ClientError(RouteClientError):
    """Unified base for every failure a derived endpoint call can produce.

    Catching ``ClientError`` covers the five runtime kinds; the concrete
    subclass tells them apart.
    """


class ConnectionError_(ClientError):
    """Raised on network-level failures (timeout, DNS resolution, refused, TLS).

    The original transport exception is chained as ``__cause__``. Named with
    a trailing underscore to avoid shadowing the built-in ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class UnsuccessfulStatusError(ClientError):
    """Raised when a response arrives with a status outside the accepted set.

    Attributes:
        status_code: The HTTP status the server answered with.
        body: Raw response body.
        headers: Response headers as ``(name, value)`` pairs.
    """

    exit_code = EXIT_UNSUCCESSFUL_STATUS

    def __init__(
        self,
        status_code: int,
        body: bytes = b"",
        headers: Optional[Sequence[tuple[str, str]]] = None,
    ):
        self.status_code = status_code
        self.body = body
        self.headers = list(headers or [])
        super().__init__(f"HTTP {status_code}: status not accepted by this endpoint")


class DecodeFailureError(ClientError):
    """Raised when an accepted response cannot be decoded.

    Covers both a codec rejecting the body and the absence of any declared
    response media type with a registered decoder.

    Attributes:
        media_type: The media type the decode was attempted for (or the
            response media type when nothing matched).
        raw_body: The undecoded response body.
        underlying: The codec's exception, or a description of the mismatch.
    """

    exit_code = EXIT_DECODE_FAILURE

    def __init__(self, media_type: str, raw_body: bytes = b"", underlying: Any = None):
        self.media_type = media_type
        self.raw_body = raw_body
        self.underlying = underlying
        super().__init__(f"Could not decode {media_type} response: {underlying}")


class InvalidContentTypeHeaderError(ClientError):
    """Raised when the response ``Content-Type`` header cannot be parsed."""

    exit_code = EXIT_DECODE_FAILURE

    def __init__(self, header_value: str, raw_body: bytes = b""):
        self.header_value = header_value
        self.raw_body = raw_body
        super().__init__(f"Invalid Content-Type header: {header_value!r}")


class EncodingUnavailableError(ClientError):
    """Raised when none of a request body's media types has a registered encoder.

    Detected while the client is being derived, so no request is ever sent.
    """

    exit_code = EXIT_ENCODING_UNAVAILABLE

    def __init__(self, media_types: Sequence[str]):
        self.media_types = tuple(media_types)
        listed = ", ".join(self.media_types) or "<none>"
        super().__init__(f"No encoder registered for any of: {listed}")


# --- Construction-time and ambient errors ---


class UnsupportedCombinatorError(RouteClientError):
    """Raised for API descriptions that cannot be turned into a client."""

    exit_code = EXIT_DESCRIPTION_ERROR


class DescriptionParseError(RouteClientError):
    """Raised when a description file cannot be read or does not describe a valid API."""

    exit_code = EXIT_DESCRIPTION_ERROR


class InvalidBaseUrlError(RouteClientError):
    """Raised when a base URL string cannot be parsed."""

    exit_code = EXIT_INVALID_USAGE


class InvalidUsageError(RouteClientError):
    """Raised for invalid CLI arguments or missing required parameters."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(RouteClientError):
    """Raised for configuration problems (invalid project file, bad env values)."""

    exit_code = EXIT_GENERIC_FAILURE
