from __future__ import annotations

from typing import Any, Dict, Iterator, List

import httpx
import pytest
from typer.testing import CliRunner

from cli.app import app
from cli.client import ApiClient
from cli.config import CLIConfig, load_config


class StubClient:
    def __init__(self, config) -> None:
        self.config = config
        self.current_payload: Dict[str, Any] = {
            "temperature": 24.5,
            "timestamp": "2024-01-01T00:00:01.000Z",
        }
        self.history_payload: List[Dict[str, Any]] = [
            {"temperature": 24.0, "timestamp": "2024-01-01T00:00:00.000Z"},
            {"temperature": 24.5, "timestamp": "2024-01-01T00:00:01.000Z"},
        ]
        self.watch_calls: List[tuple[float, float]] = []
        self.closed = False

    def get_current(self) -> Dict[str, Any]:
        return self.current_payload

    def get_history(self) -> List[Dict[str, Any]]:
        return self.history_payload

    def get_stats(self) -> Dict[str, Any]:
        return {"count": 2, "min_value": 24.0, "max_value": 24.5, "mean_value": 24.25}

    def watch(self, interval: float, timeout: float) -> Iterator[Dict[str, Any]]:
        self.watch_calls.append((interval, timeout))
        yield from self.history_payload

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


def _install_stub(monkeypatch, stub: StubClient) -> None:
    def factory(config):
        stub.config = config
        return stub

    monkeypatch.setattr("cli.app.ApiClient", factory)


def test_current_command(monkeypatch, runner: CliRunner) -> None:
    stub = StubClient(config=None)
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["current"])

    assert result.exit_code == 0
    assert "Current Temperature" in result.stdout
    assert "24.50 °C (76.1 °F)" in result.stdout
    assert stub.closed is True


def test_current_command_without_reading(monkeypatch, runner: CliRunner) -> None:
    stub = StubClient(config=None)
    stub.current_payload = {"temperature": None, "timestamp": "2024-01-01T00:00:00.000Z"}
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["current"])

    assert result.exit_code == 0
    assert "temperature: --" in result.stdout


def test_history_command(monkeypatch, runner: CliRunner) -> None:
    stub = StubClient(config=None)
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["history"])

    assert result.exit_code == 0
    assert "History (2 readings)" in result.stdout
    assert "2024-01-01T00:00:00.000Z" in result.stdout


def test_stats_command(monkeypatch, runner: CliRunner) -> None:
    stub = StubClient(config=None)
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["stats"])

    assert result.exit_code == 0
    assert "count: 2" in result.stdout
    assert "mean: 24.25 °C" in result.stdout


def test_watch_command_uses_overrides(monkeypatch, runner: CliRunner) -> None:
    stub = StubClient(config=None)
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["watch", "--poll-interval", "0.1", "--timeout", "5"])

    assert result.exit_code == 0
    assert stub.watch_calls == [(0.1, 5.0)]
    assert result.stdout.count("°C") == 2


def test_serve_command_runs_uvicorn(monkeypatch, runner: CliRunner) -> None:
    calls: List[tuple[str, Dict[str, Any]]] = []
    monkeypatch.setattr("cli.app.uvicorn.run", lambda target, **kwargs: calls.append((target, kwargs)))
    _install_stub(monkeypatch, StubClient(config=None))

    result = runner.invoke(app, ["serve", "--port", "9000"])

    assert result.exit_code == 0
    assert calls == [("app.main:app", {"host": "0.0.0.0", "port": 9000, "log_config": None})]


def test_load_config_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("API_BASE_URL", "http://sensor.local:8080/")
    monkeypatch.setenv("CLI_POLL_INTERVAL", "not-a-number")

    config = load_config()

    assert config.base_url == "http://sensor.local:8080"
    assert config.poll_interval == 1.0


def test_api_client_watch_yields_only_new_readings(monkeypatch) -> None:
    payloads = iter(
        [
            {"temperature": None, "timestamp": "2024-01-01T00:00:00.000Z"},
            {"temperature": 20.0, "timestamp": "2024-01-01T00:00:01.000Z"},
            {"temperature": 20.0, "timestamp": "2024-01-01T00:00:01.000Z"},
            {"temperature": 21.0, "timestamp": "2024-01-01T00:00:02.000Z"},
        ]
    )

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=next(payloads))

    client = ApiClient(CLIConfig())
    client._client = httpx.Client(base_url="http://test", transport=httpx.MockTransport(handler))
    monkeypatch.setattr("cli.client.time.sleep", lambda _seconds: None)

    seen = []
    for payload in client.watch(interval=0.0, timeout=60.0):
        seen.append(payload["temperature"])
        if len(seen) == 2:
            break
    client.close()

    assert seen == [20.0, 21.0]
