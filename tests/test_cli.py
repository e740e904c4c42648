"""Tests for the reqtemplate CLI."""

from __future__ import annotations

import json
import logging
import sys
from typing import TYPE_CHECKING

import httpx
import pytest
from click.testing import CliRunner

from reqtemplate.cli import _setup_logging
from reqtemplate.cli import main as cli_main

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture()
def config_file(tmp_path: Path) -> Path:
    """Create a reqtemplate.yaml with settings and quiet logging."""
    config_path = tmp_path / "reqtemplate.yaml"
    config_path.write_text(
        "appSettings:\n"
        "  ApplicationName: Shop\n"
        "  BaseUrl: http://test\n"
        "logging:\n"
        "  level: warning\n"
    )
    return config_path


@pytest.fixture()
def request_file(tmp_path: Path) -> Path:
    path = tmp_path / "request.yaml"
    path.write_text(
        "method: POST\n"
        "url: '@BaseUrl@/orders'\n"
        "headers:\n"
        "  Authorization: '@token@'\n"
        "query_params:\n"
        "  tenant: '@tenant@'\n"
    )
    return path


@pytest.fixture()
def context_file(tmp_path: Path) -> Path:
    path = tmp_path / "context.yaml"
    path.write_text(
        "BaseUrl: ''\n"
        "token: Bearer abc\n"
        "tenant: t-1\n"
        "qty: 4\n"
        "SuccessRequestBody: '{\"sku\":\"A1\",\"qty\":\"1\"}'\n"
    )
    return path


class TestRenderCommand:
    """Test the reqtemplate render command."""

    def test_render_prints_prepared_request(
        self, config_file: Path, request_file: Path, context_file: Path
    ) -> None:
        """render prints the resolved request and context as JSON."""
        runner = CliRunner()
        args = ["render", str(request_file), "--context", str(context_file)]
        result = runner.invoke(cli_main, ["--config", str(config_file), *args])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["request"]["url"] == "http://test/orders"
        assert data["request"]["headers"] == {"Authorization": "Bearer abc"}
        assert data["request"]["query_params"] == {"tenant": "t-1"}
        assert data["request"]["body"] is None
        assert data["context"]["BaseUrl"] == "http://test"

    def test_render_signed_body(
        self, config_file: Path, request_file: Path, context_file: Path
    ) -> None:
        """--sign with --variable-body merges the body templates."""
        runner = CliRunner()
        result = runner.invoke(
            cli_main,
            [
                "--config",
                str(config_file),
                "render",
                str(request_file),
                "--context",
                str(context_file),
                "--sign",
                "--variable-body",
                '{"qty":"{{qty}}"}',
            ],
        )
        assert result.exit_code == 0, result.output
        body = json.loads(result.stdout)["request"]["body"]
        assert body["content_type"] == "application/json"
        assert json.loads(body["body"]) == {"sku": "A1", "qty": "4"}

    def test_render_missing_key_exits_nonzero(
        self, config_file: Path, request_file: Path
    ) -> None:
        """A missing context key fails the command."""
        runner = CliRunner()
        result = runner.invoke(cli_main, ["-c", str(config_file), "render", str(request_file)])
        assert result.exit_code == 1
        assert "preparation failed" in result.output

    def test_render_numeric_values_become_strings(
        self, config_file: Path, tmp_path: Path
    ) -> None:
        """Numeric header and query values in the request file are read as strings."""
        request_path = tmp_path / "numeric.yaml"
        request_path.write_text(
            "url: http://test/items\n"
            "headers:\n  X-Retry: 3\n  X-Debug: true\n"
            "query_params:\n  page: 1\n"
        )
        runner = CliRunner()
        result = runner.invoke(cli_main, ["-c", str(config_file), "render", str(request_path)])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["request"]["query_params"] == {"page": "1"}
        assert data["request"]["headers"] == {"X-Retry": "3", "X-Debug": "true"}

    def test_render_invalid_request_file(self, config_file: Path, tmp_path: Path) -> None:
        """A request file without a url fails cleanly with exit code 1."""
        request_path = tmp_path / "no_url.yaml"
        request_path.write_text("method: GET\n")
        runner = CliRunner()
        result = runner.invoke(cli_main, ["-c", str(config_file), "render", str(request_path)])
        assert result.exit_code == 1
        assert result.exception is None or isinstance(result.exception, SystemExit)
        assert "Invalid request file" in result.output


class TestSendCommand:
    """Test the reqtemplate send command."""

    def test_send_runs_iterations(
        self,
        monkeypatch: pytest.MonkeyPatch,
        config_file: Path,
        request_file: Path,
        context_file: Path,
    ) -> None:
        """send dispatches once per iteration and reports each outcome."""
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(204)

        real_client = httpx.Client

        def mock_client(**kwargs: object) -> httpx.Client:
            return real_client(transport=httpx.MockTransport(handler))

        monkeypatch.setattr("reqtemplate.cli.httpx.Client", mock_client)

        runner = CliRunner()
        result = runner.invoke(
            cli_main,
            [
                "--config",
                str(config_file),
                "send",
                str(request_file),
                "--context",
                str(context_file),
                "-n",
                "2",
                "--json-output",
            ],
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert [r["status_code"] for r in data] == [204, 204]
        assert seen == ["http://test/orders?tenant=t-1"] * 2

    def test_send_reports_failures(self, config_file: Path, request_file: Path) -> None:
        """Iterations that fail preparation make the command exit 1."""
        runner = CliRunner()
        result = runner.invoke(
            cli_main, ["--config", str(config_file), "send", str(request_file), "--json-output"]
        )
        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data[0]["error"]


class TestLoggingSetup:
    """Logging destination follows the logging.output setting."""

    @pytest.fixture()
    def calls(self, monkeypatch: pytest.MonkeyPatch) -> list[dict[str, object]]:
        recorded: list[dict[str, object]] = []
        monkeypatch.setattr(
            "reqtemplate.cli.logging.basicConfig", lambda **kwargs: recorded.append(kwargs)
        )
        return recorded

    def test_stderr_default(self, calls: list[dict[str, object]]) -> None:
        """The default destination is stderr."""
        _setup_logging("info")
        assert calls[0]["stream"] is sys.stderr

    def test_stdout(self, calls: list[dict[str, object]]) -> None:
        """output: stdout logs to standard output."""
        _setup_logging("debug", "stdout")
        assert calls[0]["stream"] is sys.stdout
        assert calls[0]["level"] == logging.DEBUG

    def test_file(self, calls: list[dict[str, object]], tmp_path: Path) -> None:
        """Any other output value is a log file path."""
        log_path = str(tmp_path / "reqtemplate.log")
        _setup_logging("warning", log_path)
        assert calls[0]["filename"] == log_path
        assert "stream" not in calls[0]
