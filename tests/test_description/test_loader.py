"""Tests for routeclient.description.loader."""

from __future__ import annotations

import io
import json
import textwrap
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest

from routeclient.description.loader import (
    _load_from_url,
    _parse_content,
    load_description,
)
from routeclient.exceptions import DescriptionParseError

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"


# ---------------------------------------------------------------------------
# load_description dispatch
# ---------------------------------------------------------------------------


class TestLoadDescription:
    def test_loads_json_file(self) -> None:
        result = load_description(str(FIXTURES_DIR / "ping.json"))
        assert result["chain"][0] == "ping"

    def test_loads_yaml_file(self) -> None:
        result = load_description(str(FIXTURES_DIR / "books.yaml"))
        assert len(result["api"]["alt"]) == 5

    def test_yaml_without_extension(self, tmp_path: Path) -> None:
        source = tmp_path / "api"
        source.write_text("chain: [ping, {get: {}}]\n", encoding="utf-8")
        assert load_description(str(source)) == {"chain": ["ping", {"get": {}}]}

    def test_file_not_found(self, tmp_path: Path) -> None:
        with pytest.raises(DescriptionParseError, match="not found"):
            load_description(str(tmp_path / "missing.yaml"))

    def test_empty_file(self, tmp_path: Path) -> None:
        source = tmp_path / "empty.json"
        source.write_text("  \n", encoding="utf-8")
        with pytest.raises(DescriptionParseError, match="empty"):
            load_description(str(source))

    def test_invalid_json_file(self, tmp_path: Path) -> None:
        source = tmp_path / "bad.json"
        source.write_text("{chain: [", encoding="utf-8")
        with pytest.raises(DescriptionParseError, match="Invalid JSON"):
            load_description(str(source))

    def test_stdin(self) -> None:
        with patch("routeclient.description.loader.sys") as mock_sys:
            mock_sys.stdin = io.StringIO('{"get": {}}')
            assert load_description("-") == {"get": {}}

    def test_empty_stdin(self) -> None:
        with patch("routeclient.description.loader.sys") as mock_sys:
            mock_sys.stdin = io.StringIO("   ")
            with pytest.raises(DescriptionParseError, match="No input"):
                load_description("-")

    def test_dispatches_urls(self) -> None:
        with patch("routeclient.description.loader._load_from_url", return_value={"raw": {}}) as loader:
            assert load_description("https://example.com/api.yaml") == {"raw": {}}
        loader.assert_called_once_with("https://example.com/api.yaml")


# ---------------------------------------------------------------------------
# URLs
# ---------------------------------------------------------------------------


class TestLoadFromUrl:
    def test_json(self) -> None:
        mock_response = httpx.Response(
            status_code=200,
            json={"get": {}},
            request=httpx.Request("GET", "https://example.com/api.json"),
        )
        with patch("routeclient.description.loader.httpx.get", return_value=mock_response):
            assert _load_from_url("https://example.com/api.json") == {"get": {}}

    def test_yaml(self) -> None:
        body = textwrap.dedent("""\
            chain:
              - ping
              - get: {}
        """)
        mock_response = httpx.Response(
            status_code=200,
            text=body,
            headers={"content-type": "application/x-yaml"},
            request=httpx.Request("GET", "https://example.com/api.yaml"),
        )
        with patch("routeclient.description.loader.httpx.get", return_value=mock_response):
            assert _load_from_url("https://example.com/api.yaml") == {"chain": ["ping", {"get": {}}]}

    def test_http_error(self) -> None:
        mock_response = httpx.Response(
            status_code=404,
            request=httpx.Request("GET", "https://example.com/missing.json"),
        )
        with patch("routeclient.description.loader.httpx.get", return_value=mock_response):
            with pytest.raises(DescriptionParseError, match="HTTP 404"):
                _load_from_url("https://example.com/missing.json")

    def test_connection_error(self) -> None:
        with patch(
            "routeclient.description.loader.httpx.get",
            side_effect=httpx.ConnectError("Connection refused"),
        ):
            with pytest.raises(DescriptionParseError, match="Failed to fetch"):
                _load_from_url("https://unreachable.example.com/api.json")


# ---------------------------------------------------------------------------
# _parse_content
# ---------------------------------------------------------------------------


class TestParseContent:
    def test_json(self) -> None:
        assert _parse_content(json.dumps({"raw": {}})) == {"raw": {}}

    def test_yaml(self) -> None:
        assert _parse_content("raw: {}\n") == {"raw": {}}

    def test_json_hint_forces_json(self) -> None:
        with pytest.raises(DescriptionParseError, match="Invalid JSON"):
            _parse_content("raw: {}\n", hint="json")

    def test_yaml_hint_skips_json(self) -> None:
        assert _parse_content('{"raw": {}}', hint="yaml") == {"raw": {}}

    def test_unparseable(self) -> None:
        with pytest.raises(DescriptionParseError, match="JSON or YAML"):
            _parse_content("key: [unclosed")

    def test_non_mapping(self) -> None:
        with pytest.raises(DescriptionParseError, match="got list"):
            _parse_content("[1, 2]")

    def test_null_document(self) -> None:
        with pytest.raises(DescriptionParseError, match="empty document"):
            _parse_content("~", hint="yaml")
