"""Display bridge between endpoint results and the output system.

The CLI's ``call`` command hands whatever an endpoint returned to
:func:`display_result`, which writes a status line to stderr and the data to
stdout through :mod:`routeclient.output`. Failures are summarised by
:func:`describe_failure`.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic_core import to_jsonable_python

from routeclient.exceptions import UnsuccessfulStatusError
from routeclient.models import Headers, RawResponse
from routeclient.output import get_output


def display_result(result: Any) -> None:
    """Print an endpoint result using the global output manager.

    * ``None`` -- a status line only.
    * :class:`~routeclient.models.RawResponse` -- status line, then the body.
    * :class:`~routeclient.models.Headers` -- ``{"response": ..., "headers": ...}``.
    * anything else -- the decoded value.
    """
    output = get_output()

    if result is None:
        output.info("Request succeeded (no content)")
        return

    if isinstance(result, RawResponse):
        output.info(f"HTTP {result.status_code}")
        data = extract_body_data(result.content, result.media_type)
        if data is not None:
            output.format_response(data, result.media_type)
        return

    if isinstance(result, Headers):
        data = {
            "response": to_jsonable_python(result.response, fallback=str),
            "headers": to_jsonable_python(result.headers, fallback=str),
        }
        output.format_response(data)
        return

    output.format_response(to_jsonable_python(result, fallback=str))


def extract_body_data(content: bytes, media_type: str) -> Any:
    """Best-effort view of an undecoded body.

    Parses JSON when possible and otherwise returns the text. Returns
    ``None`` for an empty body.
    """
    if not content:
        return None
    text = content.decode("utf-8", errors="replace")
    if "json" in media_type:
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            pass
    return text


def describe_failure(exc: UnsuccessfulStatusError) -> str:
    """One-line summary of a rejected response, e.g. ``HTTP 404: Book not found``.

    Looks for the usual ``message`` / ``error`` / ``detail`` keys in a JSON
    body, falling back to the first 200 characters of text.
    """
    prefix = f"HTTP {exc.status_code}"
    if not exc.body:
        return prefix

    text = exc.body.decode("utf-8", errors="replace")
    try:
        detail = json.loads(text)
    except json.JSONDecodeError:
        return f"{prefix}: {text[:200]}"

    if isinstance(detail, dict):
        msg = detail.get("message") or detail.get("error") or detail.get("detail") or ""
    else:
        msg = str(detail)
    return f"{prefix}: {msg}" if msg else prefix
