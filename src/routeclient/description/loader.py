"""Read API description documents from a URL, a local file or stdin.

Both JSON and YAML are accepted. The format is guessed from the file
extension or response ``Content-Type`` and otherwise detected from the
content (JSON first, since every JSON document is also YAML).

The result is the raw mapping; :func:`~routeclient.description.builder.build_api`
turns it into an API description.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import httpx
import yaml

from routeclient.exceptions import DescriptionParseError
from routeclient.output import get_output


def load_description(source: str) -> dict[str, Any]:
    """Load a description document from a URL, file path, or ``-`` for stdin.

    Raises:
        DescriptionParseError: If the source cannot be read or parsed.
    """
    get_output().debug(f"Loading API description from {source}")
    if source == "-":
        return _load_from_stdin()
    if source.startswith(("http://", "https://")):
        return _load_from_url(source)
    return _load_from_file(source)


def _load_from_stdin() -> dict[str, Any]:
    try:
        content = sys.stdin.read()
    except OSError as exc:
        raise DescriptionParseError(f"Failed to read from stdin: {exc}") from exc

    if not content.strip():
        raise DescriptionParseError("No input received from stdin")
    return _parse_content(content)


def _load_from_url(url: str) -> dict[str, Any]:
    try:
        response = httpx.get(url, timeout=30.0, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise DescriptionParseError(
            f"HTTP {exc.response.status_code} fetching description from {url}"
        ) from exc
    except httpx.RequestError as exc:
        raise DescriptionParseError(f"Failed to fetch description from {url}: {exc}") from exc

    content_type = response.headers.get("content-type", "")
    hint = ""
    if "json" in content_type:
        hint = "json"
    elif "yaml" in content_type or "yml" in content_type:
        hint = "yaml"
    return _parse_content(response.text, hint=hint)


def _load_from_file(path: str) -> dict[str, Any]:
    file_path = Path(path)
    if not file_path.is_file():
        raise DescriptionParseError(f"Description file not found: {path}")

    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise DescriptionParseError(f"Failed to read description file {path}: {exc}") from exc

    if not content.strip():
        raise DescriptionParseError(f"Description file is empty: {path}")

    suffix = file_path.suffix.lower()
    hint = ""
    if suffix == ".json":
        hint = "json"
    elif suffix in (".yaml", ".yml"):
        hint = "yaml"
    return _parse_content(content, hint=hint)


def _parse_content(content: str, hint: str = "") -> dict[str, Any]:
    """Parse *content* as JSON or YAML and require a mapping at the top.

    Args:
        content: The raw document.
        hint: ``"json"``, ``"yaml"`` or empty to detect.
    """
    json_error: Exception | None = None

    if hint != "yaml":
        try:
            return _require_mapping(json.loads(content))
        except json.JSONDecodeError as exc:
            if hint == "json":
                raise DescriptionParseError(f"Invalid JSON: {exc}") from exc
            json_error = exc

    try:
        return _require_mapping(yaml.safe_load(content))
    except yaml.YAMLError as exc:
        msg = "Failed to parse description as JSON or YAML"
        if json_error:
            msg += f"\n  JSON error: {json_error}"
        msg += f"\n  YAML error: {exc}"
        raise DescriptionParseError(msg) from exc


def _require_mapping(document: Any) -> dict[str, Any]:
    if not isinstance(document, dict):
        got = type(document).__name__ if document is not None else "empty document"
        raise DescriptionParseError(f"Description must be a JSON/YAML object (got {got})")
    return document
