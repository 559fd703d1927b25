"""Configuration resolution for derived clients and the CLI.

Precedence (high to low):

1. Explicit arguments (``client(api, base_url=...)``, ``--base-url``).
2. Environment variables ``ROUTECLIENT_BASE_URL``, ``ROUTECLIENT_TIMEOUT``
   and ``ROUTECLIENT_VERIFY_SSL``.
3. The project file ``./routeclient.json``.
4. Defaults from :class:`~routeclient.models.ClientConfig`.

The project file mirrors the model::

    {
        "base_url": "https://books.example.com/v1",
        "request": {"timeout": 10, "verify_ssl": true}
    }

routeclient never writes configuration; it only reads it.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from routeclient.exceptions import ConfigError
from routeclient.models import ClientConfig

_PROJECT_CONFIG_FILENAME = "routeclient.json"

ENV_BASE_URL = "ROUTECLIENT_BASE_URL"
ENV_TIMEOUT = "ROUTECLIENT_TIMEOUT"
ENV_VERIFY_SSL = "ROUTECLIENT_VERIFY_SSL"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


# --- Project-local config ---


def load_project_config(directory: Optional[Path] = None) -> Optional[dict[str, Any]]:
    """Load ``routeclient.json`` from *directory* (default: the working directory).

    Returns:
        The parsed JSON object, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file is not a JSON object.
    """
    path = (directory or Path.cwd()) / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project config at {path}: expected a JSON object")
    return data


# --- Environment ---


def _env_overrides() -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    request: dict[str, Any] = {}

    base_url = os.environ.get(ENV_BASE_URL)
    if base_url:
        overrides["base_url"] = base_url

    timeout = os.environ.get(ENV_TIMEOUT)
    if timeout:
        try:
            request["timeout"] = float(timeout)
        except ValueError:
            raise ConfigError(f"{ENV_TIMEOUT} must be a number, got {timeout!r}") from None

    verify = os.environ.get(ENV_VERIFY_SSL)
    if verify:
        lowered = verify.strip().lower()
        if lowered in _TRUE:
            request["verify_ssl"] = True
        elif lowered in _FALSE:
            request["verify_ssl"] = False
        else:
            raise ConfigError(f"{ENV_VERIFY_SSL} must be a boolean, got {verify!r}")

    if request:
        overrides["request"] = request
    return overrides


# --- Precedence resolution ---


def resolve_config(
    cli_base_url: Optional[str] = None,
    project_dir: Optional[Path] = None,
) -> ClientConfig:
    """Merge explicit arguments, environment and project file into a :class:`ClientConfig`.

    Args:
        cli_base_url: Base URL given explicitly; wins over everything else.
        project_dir: Where to look for ``routeclient.json`` (for tests).

    Raises:
        ConfigError: For an unreadable project file or invalid values.
    """
    merged: dict[str, Any] = {}

    project = load_project_config(project_dir)
    if project is not None:
        merged.update({k: v for k, v in project.items() if k != "request"})
        request = project.get("request") or {}
        if not isinstance(request, dict):
            raise ConfigError("Invalid project config: 'request' must be an object")
        merged["request"] = dict(request)

    env = _env_overrides()
    if "base_url" in env:
        merged["base_url"] = env["base_url"]
    if "request" in env:
        merged["request"] = {**merged.get("request", {}), **env["request"]}

    if cli_base_url is not None:
        merged["base_url"] = cli_base_url

    try:
        return ClientConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
