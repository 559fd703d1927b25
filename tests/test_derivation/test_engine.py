"""End-to-end tests for routeclient.derivation.engine.

Every test derives a client from a description and drives it against an
:class:`httpx.MockTransport`, so the assertions are about the requests that
actually reach the wire and the values that come back.
"""

from __future__ import annotations

import asyncio
import inspect
import json
from typing import Optional, Sequence

import httpx
import pytest
from pydantic import BaseModel

from routeclient.api import (
    capture,
    delete,
    get,
    header,
    post,
    query_flag,
    query_param,
    query_params,
    raw,
    req_body,
    response_headers,
    verb,
)
from routeclient.derivation import Endpoint, RequestPlan, client, iter_endpoints
from routeclient.exceptions import (
    DecodeFailureError,
    EncodingUnavailableError,
    UnsuccessfulStatusError,
    UnsupportedCombinatorError,
)
from routeclient.media import Codec, CodecRegistry
from routeclient.models import Headers, RawResponse, ResultShape
from routeclient.request import Req

BASE_URL = "http://api.test"


class Book(BaseModel):
    isbn: str
    title: str


DUNE = Book(isbn="978-0441013593", title="Dune")

BOOKS_API = (
    "books" / query_param("author") / query_params("tag") / query_flag("all")
    / get("application/json", list[Book])
    | "books" / capture("isbn") / header("If-None-Match") / get("application/json", Book)
    | "books" / req_body("application/json", Book) / post("application/json", Book)
    | "books" / capture("isbn") / delete()
)


def _json(status: int, payload: object, **headers: str) -> httpx.Response:
    return httpx.Response(
        status,
        content=json.dumps(payload).encode(),
        headers={"Content-Type": "application/json", **headers},
    )


def _books_handler(request: httpx.Request) -> httpx.Response:
    if request.method == "GET" and request.url.path.endswith("/books"):
        return _json(200, [DUNE.model_dump()])
    if request.method == "GET":
        return _json(200, DUNE.model_dump())
    if request.method == "POST":
        return _json(201, json.loads(request.content))
    return httpx.Response(204)


# ------------------------------------------------------------------ #
# Client shape
# ------------------------------------------------------------------ #


class TestClientShape:
    def test_alternatives_nest_right(self, serve) -> None:
        transport, _ = serve(_books_handler)
        list_books, (get_book, (add_book, delete_book)) = client(BOOKS_API, transport=transport)
        assert [e.method for e in (list_books, get_book, add_book, delete_book)] == [
            "GET",
            "GET",
            "POST",
            "DELETE",
        ]

    def test_iter_endpoints(self, serve) -> None:
        transport, _ = serve(_books_handler)
        endpoints = list(iter_endpoints(client(BOOKS_API, transport=transport)))
        assert [repr(e) for e in endpoints] == [
            "<Endpoint GET /books>",
            "<Endpoint GET /books/{isbn}>",
            "<Endpoint POST /books>",
            "<Endpoint DELETE /books/{isbn}>",
        ]

    def test_single_route_is_an_endpoint(self, serve) -> None:
        transport, _ = serve(_books_handler)
        assert isinstance(client("ping" / get("text/plain", str), transport=transport), Endpoint)

    def test_signatures(self, serve) -> None:
        transport, _ = serve(_books_handler)
        list_books, (get_book, (add_book, delete_book)) = client(BOOKS_API, transport=transport)

        sig = inspect.signature(list_books)
        assert list(sig.parameters) == ["author", "tag", "all"]
        assert sig.parameters["author"].annotation == Optional[str]
        assert sig.parameters["tag"].annotation == Sequence[str]
        assert sig.parameters["all"].default is False
        assert sig.return_annotation == list[Book]

        assert list(inspect.signature(get_book).parameters) == ["isbn", "if_none_match"]
        assert inspect.signature(add_book).parameters["body"].annotation is Book
        assert inspect.signature(delete_book).return_annotation is None

    def test_metadata(self, serve) -> None:
        transport, _ = serve(_books_handler)
        _, (get_book, _) = client(BOOKS_API, transport=transport)
        assert get_book.__name__ == "get_books_isbn"
        assert get_book.__doc__ == "GET /books/{isbn}"
        assert get_book.result_shape == ResultShape.VALUE
        assert not get_book.is_raw

    def test_repeated_capture_names(self, serve) -> None:
        transport, _ = serve(_books_handler)
        endpoint = client("a" / capture("id") / "b" / capture("id") / get("application/json", dict), transport=transport)
        assert [p.name for p in endpoint.params] == ["id", "id_2"]
        assert endpoint.path_template == "/a/{id}/b/{id}"

    def test_dangling_route_rejected(self, serve) -> None:
        transport, _ = serve(_books_handler)
        with pytest.raises(UnsupportedCombinatorError):
            client("books" / capture("isbn") | "x" / get(), transport=transport)

    def test_encoding_unavailable_at_derivation(self, serve) -> None:
        transport, recorder = serve(_books_handler)
        api = "books" / req_body(["application/xml"], Book) / post("application/json", Book)
        with pytest.raises(EncodingUnavailableError):
            client(api, transport=transport)
        assert recorder.requests == []

    def test_unparseable_body_media_type_is_unavailable(self, serve) -> None:
        transport, recorder = serve(_books_handler)
        api = "books" / req_body(["json", "text/plain"], str) / post()
        with pytest.raises(EncodingUnavailableError):
            client(api, transport=transport, registry=CodecRegistry([]))
        assert recorder.requests == []

    @pytest.mark.anyio
    async def test_unparseable_response_media_type_fails_at_call(self, serve) -> None:
        transport, _ = serve(_books_handler)
        endpoint = client("books" / get(["json"], str), transport=transport)
        with pytest.raises(DecodeFailureError, match="no declared response media type"):
            await endpoint()

    def test_value_verb_without_default_statuses(self, serve) -> None:
        transport, _ = serve(_books_handler)
        with pytest.raises(UnsupportedCombinatorError):
            client("x" / verb("OPTIONS", "application/json", dict), transport=transport)


# ------------------------------------------------------------------ #
# Requests on the wire
# ------------------------------------------------------------------ #


class TestRequests:
    @pytest.mark.anyio
    async def test_list_without_optional_arguments(self, serve) -> None:
        transport, recorder = serve(_books_handler)
        list_books, _ = client(BOOKS_API, transport=transport)
        result = await list_books()
        assert result == [DUNE]
        assert str(recorder.last.url) == f"{BASE_URL}/books"
        assert recorder.last.headers["accept"] == "application/json"

    @pytest.mark.anyio
    async def test_query_arguments(self, serve) -> None:
        transport, recorder = serve(_books_handler)
        list_books, _ = client(BOOKS_API, transport=transport)
        await list_books(author="Le Guin", tag=["b", "a"], all=True)
        params = recorder.last.url.params
        assert params["author"] == "Le Guin"
        assert params.get_list("tag") == ["b", "a"]
        assert recorder.last.url.query.endswith(b"&all")

    @pytest.mark.anyio
    async def test_query_params_rejects_single_string(self, serve) -> None:
        transport, recorder = serve(_books_handler)
        list_books, _ = client(BOOKS_API, transport=transport)
        with pytest.raises(TypeError):
            await list_books(tag="fiction")
        assert recorder.requests == []

    @pytest.mark.anyio
    async def test_capture_is_escaped(self, serve) -> None:
        transport, recorder = serve(_books_handler)
        _, (get_book, _) = client(BOOKS_API, transport=transport)
        await get_book("a b/c")
        assert recorder.last.url.raw_path == b"/books/a%20b%2Fc"

    @pytest.mark.anyio
    async def test_optional_header(self, serve) -> None:
        transport, recorder = serve(_books_handler)
        _, (get_book, _) = client(BOOKS_API, transport=transport)
        await get_book(DUNE.isbn)
        assert "if-none-match" not in recorder.last.headers
        await get_book(DUNE.isbn, if_none_match='"v1"')
        assert recorder.last.headers["if-none-match"] == '"v1"'

    @pytest.mark.anyio
    async def test_header_overwrites_seed(self, serve) -> None:
        transport, recorder = serve(_books_handler)
        seed = Req().add_header("X-Trace", "seed")
        endpoint = client(header("X-Trace") / "ping" / get("application/json", dict), transport=transport, seed=seed)
        await endpoint()
        assert recorder.last.headers["x-trace"] == "seed"
        await endpoint("call")
        assert recorder.last.headers.get_list("x-trace") == ["call"]

    @pytest.mark.anyio
    async def test_later_header_combinator_wins(self, serve) -> None:
        transport, recorder = serve(_books_handler)
        endpoint = client(
            header("X-H") / "books" / header("X-H") / get("application/json", list[Book]),
            transport=transport,
        )
        assert [p.name for p in endpoint.params] == ["x_h", "x_h_2"]
        await endpoint("first", "second")
        assert recorder.last.headers.get_list("x-h") == ["second"]

    @pytest.mark.anyio
    async def test_body(self, serve) -> None:
        transport, recorder = serve(_books_handler)
        _, (_, (add_book, _)) = client(BOOKS_API, transport=transport)
        created = await add_book(DUNE)
        assert created == DUNE
        assert recorder.last.method == "POST"
        assert recorder.last.headers["content-type"] == "application/json"
        assert json.loads(recorder.last.content) == DUNE.model_dump()

    @pytest.mark.anyio
    async def test_body_uses_first_encodable_media_type(self, serve) -> None:
        transport, recorder = serve(lambda request: httpx.Response(204))
        endpoint = client(
            "notes" / req_body(["application/xml", "text/plain", "application/json"], str) / post(),
            transport=transport,
        )
        await endpoint("remember the milk")
        assert recorder.last.headers["content-type"] == "text/plain;charset=utf-8"
        assert recorder.last.content == b"remember the milk"

    @pytest.mark.anyio
    async def test_custom_registry(self, serve) -> None:
        xml = Codec(
            "application/xml",
            encode=lambda value, tp: f"<title>{value}</title>".encode(),
            decode=lambda raw, tp: raw.decode()[7:-8],
        )
        transport, recorder = serve(
            lambda request: httpx.Response(200, content=request.content, headers={"Content-Type": "application/xml"})
        )
        endpoint = client(
            "echo" / req_body("application/xml", str) / post("application/xml", str),
            transport=transport,
            registry=CodecRegistry([xml]),
        )
        assert await endpoint("Dune") == "Dune"
        assert recorder.last.content == b"<title>Dune</title>"
        assert recorder.last.headers["accept"] == "application/xml"

    @pytest.mark.anyio
    async def test_base_url_argument_wins(self, serve) -> None:
        transport, recorder = serve(_books_handler)
        list_books, _ = client(BOOKS_API, "https://other.test/v2", transport=transport)
        await list_books()
        assert str(recorder.last.url) == "https://other.test/v2/books"

    def test_build_request(self, serve) -> None:
        transport, _ = serve(_books_handler)
        list_books, _ = client(BOOKS_API, transport=transport)
        req = list_books.build_request("Herbert", ["sf"])
        assert req.path == ("books",)
        assert req.query == (("author", "Herbert"), ("tag", "sf"))
        assert req.method is None

    def test_build_request_rejects_unknown_argument(self, serve) -> None:
        transport, _ = serve(_books_handler)
        list_books, _ = client(BOOKS_API, transport=transport)
        with pytest.raises(TypeError):
            list_books.build_request(publisher="Ace")


# ------------------------------------------------------------------ #
# Isolation
# ------------------------------------------------------------------ #


class TestIsolation:
    @pytest.mark.anyio
    async def test_shared_prefix_branches(self, serve) -> None:
        transport, recorder = serve(_books_handler)
        api = "books" / header("X-Trace") / (
            get("application/json", list[Book])
            | query_flag("dry-run") / req_body("application/json", Book) / post("application/json", Book)
        )
        list_books, add_book = client(api, transport=transport)

        assert list(inspect.signature(list_books).parameters) == ["x_trace"]
        assert list(inspect.signature(add_book).parameters) == ["x_trace", "dry_run", "body"]

        await add_book("t1", True, DUNE)
        await list_books("t2")
        assert recorder.last.url.query == b""
        assert recorder.last.content == b""
        assert recorder.last.headers["x-trace"] == "t2"

    @pytest.mark.anyio
    async def test_concurrent_calls(self, serve) -> None:
        transport, recorder = serve(_books_handler)
        _, (get_book, _) = client(BOOKS_API, transport=transport)
        await asyncio.gather(*(get_book(str(n)) for n in range(5)))
        assert sorted(r.url.path for r in recorder.requests) == [f"/books/{n}" for n in range(5)]

    def test_plan_is_persistent(self) -> None:
        plan = RequestPlan()
        extended = plan.with_step(lambda req, _: req.append_to_path("x"), template="x")
        assert plan.steps == ()
        assert plan.path_template == "/"
        assert extended.path_template == "/x"
        assert extended.build({}).path == ("x",)


# ------------------------------------------------------------------ #
# Responses
# ------------------------------------------------------------------ #


class TestResponses:
    @pytest.mark.anyio
    async def test_unit_delete(self, serve) -> None:
        transport, recorder = serve(_books_handler)
        *_, delete_book = iter_endpoints(client(BOOKS_API, transport=transport))
        assert await delete_book(DUNE.isbn) is None
        assert recorder.last.method == "DELETE"

    @pytest.mark.anyio
    async def test_unit_delete_rejects_200(self, serve) -> None:
        transport, _ = serve(lambda request: httpx.Response(200, text="deleted"))
        *_, delete_book = iter_endpoints(client(BOOKS_API, transport=transport))
        with pytest.raises(UnsuccessfulStatusError) as excinfo:
            await delete_book(DUNE.isbn)
        assert excinfo.value.status_code == 200
        assert excinfo.value.body == b"deleted"

    @pytest.mark.anyio
    async def test_rejected_status_carries_headers(self, serve) -> None:
        transport, _ = serve(lambda request: _json(404, {"message": "no such book"}, **{"X-Request-Id": "r1"}))
        _, (get_book, _) = client(BOOKS_API, transport=transport)
        with pytest.raises(UnsuccessfulStatusError) as excinfo:
            await get_book("missing")
        assert excinfo.value.status_code == 404
        assert ("x-request-id", "r1") in excinfo.value.headers

    @pytest.mark.anyio
    async def test_get_204_is_rejected_for_plain_value(self, serve) -> None:
        transport, _ = serve(lambda request: httpx.Response(204))
        list_books, _ = client(BOOKS_API, transport=transport)
        with pytest.raises(UnsuccessfulStatusError):
            await list_books()

    @pytest.mark.anyio
    async def test_response_headers(self, serve) -> None:
        transport, _ = serve(lambda request: _json(200, [DUNE.model_dump()], **{"X-Total-Count": "1"}))
        endpoint = client(
            "books" / get("application/json", response_headers(list[Book], {"X-Total-Count": int, "Link": str})),
            transport=transport,
        )
        result = await endpoint()
        assert isinstance(result, Headers)
        assert result.response == [DUNE]
        assert result.headers == {"X-Total-Count": 1, "Link": None}
        assert inspect.signature(endpoint).return_annotation is Headers

    @pytest.mark.anyio
    async def test_unparseable_response_header(self, serve) -> None:
        transport, _ = serve(lambda request: _json(200, [], **{"X-Total-Count": "lots"}))
        endpoint = client(
            "books" / get("application/json", response_headers(list, {"X-Total-Count": int})),
            transport=transport,
        )
        with pytest.raises(DecodeFailureError):
            await endpoint()

    @pytest.mark.anyio
    async def test_media_preference_follows_declaration(self, serve) -> None:
        responses = iter([
            httpx.Response(200, text="plain", headers={"Content-Type": "text/plain"}),
            _json(200, "json"),
        ])
        transport, recorder = serve(lambda request: next(responses))
        endpoint = client("greeting" / get(["text/plain", "application/json"], str), transport=transport)
        assert await endpoint() == "plain"
        assert await endpoint() == "json"
        assert recorder.last.headers["accept"] == "text/plain, application/json"

    @pytest.mark.anyio
    async def test_undeclared_response_type(self, serve) -> None:
        transport, _ = serve(lambda request: httpx.Response(200, text="<x/>", headers={"Content-Type": "application/xml"}))
        list_books, _ = client(BOOKS_API, transport=transport)
        with pytest.raises(DecodeFailureError):
            await list_books()

    @pytest.mark.anyio
    async def test_invalid_body(self, serve) -> None:
        transport, _ = serve(lambda request: _json(200, [{"isbn": 1}]))
        list_books, _ = client(BOOKS_API, transport=transport)
        with pytest.raises(DecodeFailureError) as excinfo:
            await list_books()
        assert excinfo.value.raw_body == b'[{"isbn": 1}]'


# ------------------------------------------------------------------ #
# Raw endpoints
# ------------------------------------------------------------------ #


class TestRaw:
    @pytest.mark.anyio
    async def test_any_status_returned_undecoded(self, serve) -> None:
        transport, recorder = serve(lambda request: httpx.Response(418, text="teapot"))
        endpoint = client("brew" / capture("pot") / raw(), transport=transport)
        assert endpoint.is_raw
        assert endpoint.method is None
        assert list(inspect.signature(endpoint).parameters) == ["pot", "method"]

        result = await endpoint("kettle", "patch")
        assert isinstance(result, RawResponse)
        assert result.status_code == 418
        assert result.content == b"teapot"
        assert recorder.last.method == "PATCH"
        assert recorder.last.url.path == "/brew/kettle"

    def test_endpoint_without_policy_or_method_rejected(self) -> None:
        with pytest.raises(UnsupportedCombinatorError, match="exactly one"):
            Endpoint(RequestPlan(), None)

    def test_endpoint_with_policy_and_method_rejected(self, serve) -> None:
        transport, _ = serve(_books_handler)
        raw_endpoint = client("brew" / raw(), transport=transport)
        get_endpoint = client("brew" / get("application/json", dict), transport=transport)
        with pytest.raises(UnsupportedCombinatorError, match="exactly one"):
            Endpoint(
                RequestPlan(),
                None,
                policy=get_endpoint.policy,
                method_param=raw_endpoint.params[-1],
            )
