"""``routeclient call`` -- invoke one endpoint of a description from the shell.

Arguments are passed as ``--arg name=value`` (repeat ``--arg`` for every
parameter, and once per element for repeated query parameters) and the
request body as ``--body`` JSON or ``--body @file.json``. Text values are
coerced to the parameter's declared type with pydantic before the call.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, List, Optional

import typer
from pydantic import ValidationError

from routeclient.api import NodeKind
from routeclient.commands.inspect import load_endpoints
from routeclient.config import resolve_config
from routeclient.derivation.engine import Endpoint
from routeclient.derivation.params import Param
from routeclient.exceptions import InvalidUsageError, RouteClientError, UnsuccessfulStatusError
from routeclient.http.response import describe_failure, display_result
from routeclient.http.transport import HttpxTransport
from routeclient.output import debug, error
from routeclient.rendering import type_adapter

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def select_endpoint(endpoints: list[Endpoint], selector: str) -> Endpoint:
    """Pick an endpoint by index or by ``METHOD /path/template``.

    Raises:
        InvalidUsageError: If nothing matches.
    """
    if selector.isdigit():
        idx = int(selector)
        if idx < len(endpoints):
            return endpoints[idx]
        raise InvalidUsageError(f"Endpoint index {idx} out of range (0-{len(endpoints) - 1})")

    method, _, template = selector.strip().partition(" ")
    for endpoint in endpoints:
        if (endpoint.method or "*") == method.upper() and endpoint.path_template == template.strip():
            return endpoint
    raise InvalidUsageError(
        f"No endpoint matches {selector!r}. Run 'routeclient inspect' to list endpoints."
    )


def coerce_value(param: Param, text: str) -> Any:
    """Convert one ``--arg`` text value to what *param* expects.

    Raises:
        InvalidUsageError: If the text is not a valid value.
    """
    if param.kind == NodeKind.QUERY_FLAG:
        lowered = text.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        raise InvalidUsageError(f"{param.name}: expected a boolean, got {text!r}")

    tp = param.value_type
    if tp is str or tp is Any:
        return text
    if tp is bytes:
        return text.encode("utf-8")
    try:
        return type_adapter(tp).validate_python(text)
    except ValidationError as exc:
        raise InvalidUsageError(f"{param.name}: invalid value {text!r}: {exc}") from exc


def parse_arguments(endpoint: Endpoint, args: list[str], body: Optional[str]) -> dict[str, Any]:
    """Map ``name=value`` pairs and the body onto *endpoint*'s parameters.

    A parameter can be named by its Python name or by the name used in the
    description (``bookId`` or ``book_id``).

    Raises:
        InvalidUsageError: For unknown names, bad values or missing required
            parameters.
    """
    by_name: dict[str, Param] = {}
    for param in endpoint.params:
        by_name.setdefault(param.original_name, param)
        by_name[param.name] = param

    values: dict[str, Any] = {}
    for item in args:
        name, sep, text = item.partition("=")
        param = by_name.get(name)
        if param is None or param.kind == NodeKind.REQ_BODY:
            raise InvalidUsageError(f"Unknown parameter {name!r} for {endpoint!r}")
        if not sep:
            if param.kind != NodeKind.QUERY_FLAG:
                raise InvalidUsageError(f"Expected name=value, got {item!r}")
            text = "true"
        value = coerce_value(param, text)
        if param.kind == NodeKind.QUERY_PARAMS:
            values.setdefault(param.name, []).append(value)
        else:
            values[param.name] = value

    body_param = next((p for p in endpoint.params if p.kind == NodeKind.REQ_BODY), None)
    if body is not None:
        if body_param is None:
            raise InvalidUsageError(f"{endpoint!r} does not take a request body")
        values[body_param.name] = _parse_body(_resolve_body(body), body_param)

    # Optional parameters ahead of a required one have no signature default.
    for param in endpoint.params:
        if param.name not in values and not param.required:
            values[param.name] = param.default

    try:
        endpoint.__signature__.bind(**values)
    except TypeError as exc:
        raise InvalidUsageError(f"{endpoint!r}: {exc}") from exc
    return values


def _resolve_body(raw: str) -> str:
    """Return *raw*, or the contents of the file it names with a leading ``@``."""
    if not raw.startswith("@"):
        return raw
    file_path = Path(raw[1:])
    if not file_path.is_file():
        raise InvalidUsageError(f"Body file not found: {file_path}")
    return file_path.read_text(encoding="utf-8")


def _parse_body(text: str, param: Param) -> Any:
    tp = param.value_type
    if tp is str:
        return text
    if tp is bytes:
        return text.encode("utf-8")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidUsageError(f"--body is not valid JSON: {exc}") from exc
    if tp is Any:
        return data
    try:
        return type_adapter(tp).validate_python(data)
    except ValidationError as exc:
        raise InvalidUsageError(f"--body does not match the declared type: {exc}") from exc


async def _invoke(endpoint: Endpoint, transport: HttpxTransport, values: dict[str, Any]) -> Any:
    async with transport:
        return await endpoint(**values)


def call_command(
    source: str = typer.Argument(..., help="Description file (JSON/YAML), URL, or '-' for stdin."),
    endpoint: str = typer.Argument(..., help="Endpoint index or 'METHOD /path/template'."),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", "-u", help="Server base URL (overrides ROUTECLIENT_BASE_URL)."
    ),
    arg: Optional[List[str]] = typer.Option(
        None, "--arg", "-a", help="Parameter as name=value. Repeatable."
    ),
    body: Optional[str] = typer.Option(
        None, "--body", "-b", help="Request body as JSON string, or @filename to read from file."
    ),
) -> None:
    """Call one endpoint and print its decoded result.

    Example::

        routeclient call books.yaml 0 --base-url https://books.example.com -a author=Tolkien
        routeclient call books.yaml "POST /books" -b @book.json
    """
    try:
        config = resolve_config(cli_base_url=base_url)
        transport = HttpxTransport(config)
        endpoints = load_endpoints(source, transport=transport)
        target = select_endpoint(endpoints, endpoint)
        values = parse_arguments(target, list(arg or []), body)
        debug(f"Calling {target!r} with {sorted(values)}")
        result = asyncio.run(_invoke(target, transport, values))
    except UnsuccessfulStatusError as exc:
        error(describe_failure(exc))
        raise typer.Exit(code=exc.exit_code) from None
    except RouteClientError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    display_result(result)
