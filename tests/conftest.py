"""Shared test fixtures for routeclient.

Provides output-state management, config isolation, an anyio backend for
async tests, and factories for transports backed by
:class:`httpx.MockTransport` so that no test touches the network.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import httpx
import pytest

from routeclient.http.transport import HttpxTransport
from routeclient.models import ClientConfig
from routeclient.output import OutputFormat, OutputManager, reset_output, set_output

BASE_URL = "http://api.test"

Handler = Callable[[httpx.Request], httpx.Response]


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches sys.stdout/sys.stderr at creation time; once
    CliRunner restores the real streams those references are stale.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Async backend
# ---------------------------------------------------------------------------


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Clear ROUTECLIENT_* variables and run the test inside *tmp_path*."""
    for var in ["ROUTECLIENT_BASE_URL", "ROUTECLIENT_TIMEOUT", "ROUTECLIENT_VERIFY_SSL"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True, no_color=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def json_output() -> OutputManager:
    output = OutputManager(format=OutputFormat.JSON, no_color=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# Mock transports
# ---------------------------------------------------------------------------


class Recorder:
    """Answers every request with *handler* and keeps the requests seen."""

    def __init__(self, handler: Handler) -> None:
        self.handler = handler
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def serve() -> Callable[[Handler], tuple[HttpxTransport, Recorder]]:
    """Factory: ``transport, recorder = serve(handler)``.

    The transport's configured base URL is :data:`BASE_URL`.
    """

    def _serve(handler: Handler) -> tuple[HttpxTransport, Recorder]:
        recorder = Recorder(handler)
        client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
        return HttpxTransport(ClientConfig(base_url=BASE_URL), client=client), recorder

    return _serve


@pytest.fixture
def cli_runner():
    from typer.testing import CliRunner

    return CliRunner()
