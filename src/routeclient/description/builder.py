"""Build an API description from a parsed JSON/YAML document.

Every node is a mapping with exactly one key naming its kind; a bare string
is shorthand for ``{"path": ...}``::

    alt:
      - chain:
          - books
          - query_param: {name: author}
          - get: {media_types: [application/json], result: json}
      - chain:
          - books
          - capture: {name: isbn}
          - get:
              media_types: [application/json]
              result: json
              headers: {X-Total-Count: integer}
      - chain:
          - books
          - req_body: {media_types: [application/json], type: json}
          - post: {media_types: [application/json], result: json}

``chain`` composes with ``/`` and ``alt`` with ``|``. A top-level ``api`` key
may wrap the root node.

Type names: ``string``, ``integer``, ``number``, ``boolean``, ``binary``,
``json`` (any JSON value) and ``unit`` (no body).
"""

from __future__ import annotations

from typing import Any, Callable

from pydantic import ValidationError

from routeclient import api
from routeclient.exceptions import DescriptionParseError, UnsupportedCombinatorError

TYPE_NAMES: dict[str, Any] = {
    "string": str,
    "integer": int,
    "number": float,
    "boolean": bool,
    "binary": bytes,
    "json": Any,
    "unit": None,
}

_VERBS = ("get", "post", "put", "patch", "delete")


def build_api(document: dict[str, Any]) -> api.Node:
    """Turn a loaded description document into an API description.

    Raises:
        DescriptionParseError: For unknown node kinds, bad fields or a tree
            that cannot form a client.
    """
    root = document.get("api", document) if len(document) == 1 else document
    node = _build(root, "api")
    try:
        api.validate(node)
    except UnsupportedCombinatorError as exc:
        raise DescriptionParseError(str(exc)) from exc
    return node


def _build(raw: Any, where: str) -> api.Node:
    if isinstance(raw, str):
        return _guard(where, api.path, raw)
    if not isinstance(raw, dict) or len(raw) != 1:
        raise DescriptionParseError(f"{where}: expected a mapping with exactly one node kind")

    kind, spec = next(iter(raw.items()))
    where = f"{where}.{kind}"

    if kind == "chain":
        items = _list(spec, where)
        if not items:
            raise DescriptionParseError(f"{where}: chain must not be empty")
        node = _build(items[0], f"{where}[0]")
        for idx, item in enumerate(items[1:], start=1):
            node = _guard(where, node.then, _build(item, f"{where}[{idx}]"))
        return node

    if kind == "alt":
        items = _list(spec, where)
        if len(items) < 2:
            raise DescriptionParseError(f"{where}: alt needs at least two routes")
        node = _build(items[0], f"{where}[0]")
        for idx, item in enumerate(items[1:], start=1):
            node = node | _build(item, f"{where}[{idx}]")
        return node

    if kind == "path":
        return _guard(where, api.path, str(spec))

    if kind in ("capture", "header", "query_param", "query_params"):
        fields = _named(spec, where)
        factory = getattr(api, kind)
        return _guard(where, factory, fields["name"], _type(fields.get("type", "string"), where))

    if kind == "query_flag":
        return _guard(where, api.query_flag, _named(spec, where)["name"])

    if kind == "req_body":
        fields = _mapping(spec, where)
        return _guard(
            where,
            api.req_body,
            fields.get("media_types", ["application/json"]),
            _type(fields.get("type", "json"), where),
        )

    if kind in _VERBS or kind == "verb":
        fields = _mapping(spec, where)
        method = fields.get("method") if kind == "verb" else kind
        if not method:
            raise DescriptionParseError(f"{where}: verb requires a method")
        result = _type(fields.get("result", "unit"), where)
        if "headers" in fields:
            headers = {
                name: _type(tp, f"{where}.headers")
                for name, tp in _mapping(fields["headers"], f"{where}.headers").items()
            }
            result = api.response_headers(result, headers)
        return _guard(
            where,
            api.verb,
            method,
            fields.get("media_types", []),
            result,
            fields.get("status_codes"),
        )

    if kind == "raw":
        return api.raw()

    raise DescriptionParseError(f"{where}: unknown node kind {kind!r}")


def _guard(where: str, factory: Callable[..., Any], *args: Any) -> Any:
    try:
        return factory(*args)
    except (ValidationError, UnsupportedCombinatorError, TypeError) as exc:
        raise DescriptionParseError(f"{where}: {exc}") from exc


def _type(name: Any, where: str) -> Any:
    if not isinstance(name, str) or name not in TYPE_NAMES:
        known = ", ".join(TYPE_NAMES)
        raise DescriptionParseError(f"{where}: unknown type {name!r} (expected one of: {known})")
    return TYPE_NAMES[name]


def _list(spec: Any, where: str) -> list[Any]:
    if not isinstance(spec, list):
        raise DescriptionParseError(f"{where}: expected a list")
    return spec


def _mapping(spec: Any, where: str) -> dict[str, Any]:
    if spec is None:
        return {}
    if not isinstance(spec, dict):
        raise DescriptionParseError(f"{where}: expected a mapping")
    return spec


def _named(spec: Any, where: str) -> dict[str, Any]:
    if isinstance(spec, str):
        return {"name": spec}
    fields = _mapping(spec, where)
    if not isinstance(fields.get("name"), str):
        raise DescriptionParseError(f"{where}: 'name' is required")
    return fields
