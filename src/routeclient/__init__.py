"""routeclient -- derive typed async HTTP clients from declarative API descriptions.

An API is described once as a tree of combinators (path literals, captures,
headers, query parameters, request bodies, verbs and alternatives), and
:func:`client` turns it into one async callable per endpoint::

    from routeclient import capture, client, get, query_param

    api = (
        "books" / query_param("author") / get("application/json", list[Book])
        | "books" / capture("isbn") / get("application/json", Book)
    )
    list_books, get_book = client(api, "https://books.example.com")
    book = await get_book("978-0441013593")

Modules:
    api: The combinator catalog.
    derivation: Client derivation, parameter lists and response decoding.
    media: Media types and the codec registry.
    http: The transport contract and its httpx implementation.
    description: JSON/YAML description files.
    app: Typer CLI entry point.
"""

__version__ = "0.1.0"

from routeclient.api import (  # noqa: E402
    Alternative,
    Capture,
    Header,
    Node,
    NodeKind,
    Path,
    QueryFlag,
    QueryParam,
    QueryParams,
    Raw,
    ReqBody,
    ResponseHeaders,
    Verb,
    capture,
    delete,
    get,
    header,
    patch,
    path,
    post,
    put,
    query_flag,
    query_param,
    query_params,
    raw,
    req_body,
    response_headers,
    verb,
)
from routeclient.derivation import Endpoint, client  # noqa: E402
from routeclient.exceptions import (  # noqa: E402
    ClientError,
    ConnectionError_,
    DecodeFailureError,
    EncodingUnavailableError,
    InvalidContentTypeHeaderError,
    RouteClientError,
    UnsuccessfulStatusError,
    UnsupportedCombinatorError,
)
from routeclient.media import Codec, CodecRegistry, default_registry  # noqa: E402
from routeclient.models import BaseUrl, Headers, RawResponse, parse_base_url  # noqa: E402
from routeclient.rendering import to_url_piece  # noqa: E402

__all__ = [
    "Alternative",
    "BaseUrl",
    "Capture",
    "ClientError",
    "Codec",
    "CodecRegistry",
    "ConnectionError_",
    "DecodeFailureError",
    "EncodingUnavailableError",
    "Endpoint",
    "Header",
    "Headers",
    "InvalidContentTypeHeaderError",
    "Node",
    "NodeKind",
    "Path",
    "QueryFlag",
    "QueryParam",
    "QueryParams",
    "Raw",
    "RawResponse",
    "ReqBody",
    "ResponseHeaders",
    "RouteClientError",
    "UnsuccessfulStatusError",
    "UnsupportedCombinatorError",
    "Verb",
    "capture",
    "client",
    "default_registry",
    "delete",
    "get",
    "header",
    "parse_base_url",
    "patch",
    "path",
    "post",
    "put",
    "query_flag",
    "query_param",
    "query_params",
    "raw",
    "req_body",
    "response_headers",
    "to_url_piece",
    "verb",
]
