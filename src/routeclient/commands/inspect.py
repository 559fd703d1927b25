"""``routeclient inspect`` -- list the endpoints a description derives.

Loads a description file, derives the client exactly as the library would
(without sending anything) and prints one row per endpoint: its index, HTTP
method, path template, parameters and result shape. The index and the
``METHOD /template`` pair are what ``routeclient call`` accepts.
"""

from __future__ import annotations

from typing import Optional

import typer

from routeclient.api import type_name
from routeclient.derivation.engine import Endpoint, client, iter_endpoints
from routeclient.derivation.params import Param
from routeclient.description import read_api
from routeclient.exceptions import RouteClientError
from routeclient.http.transport import Transport
from routeclient.output import debug, error, get_output


def load_endpoints(source: str, transport: Optional[Transport] = None) -> list[Endpoint]:
    """Read the description at *source* and return its endpoints in order.

    Raises:
        DescriptionParseError: If the description cannot be loaded.
        EncodingUnavailableError: If a request body cannot be encoded.
    """
    api = read_api(source)
    endpoints = list(iter_endpoints(client(api, transport=transport)))
    debug(f"{source}: {len(endpoints)} endpoint(s)")
    return endpoints


def format_param(param: Param) -> str:
    """Compact parameter summary, e.g. ``isbn: str`` or ``author?: str``."""
    marker = "" if param.required else "?"
    return f"{param.name}{marker}: {type_name(param.value_type)}"


def inspect_command(
    source: str = typer.Argument(..., help="Description file (JSON/YAML), URL, or '-' for stdin."),
) -> None:
    """List the endpoints derived from an API description.

    Example::

        routeclient inspect books.yaml
        routeclient --json inspect books.yaml
    """
    try:
        endpoints = load_endpoints(source)
    except RouteClientError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    headers = ["#", "Method", "Path", "Parameters", "Result"]
    rows: list[list[str]] = []
    for idx, endpoint in enumerate(endpoints):
        rows.append([
            str(idx),
            endpoint.method or "*",
            endpoint.path_template,
            ", ".join(format_param(p) for p in endpoint.params) or "-",
            endpoint.result_shape.value if endpoint.result_shape else "raw",
        ])

    get_output().print_table(headers, rows, title=f"{source} -- Endpoints ({len(rows)})")
