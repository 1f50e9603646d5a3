from __future__ import annotations

import time
from typing import Any, Dict, Iterator, List

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the telemetry service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=30.0)

    def close(self) -> None:
        self._client.close()

    def get_current(self) -> Dict[str, Any]:
        return self._get("/api/temperature")

    def get_history(self) -> List[Dict[str, Any]]:
        return self._get("/api/temperature/history")

    def get_stats(self) -> Dict[str, Any]:
        return self._get("/api/temperature/stats")

    def watch(self, interval: float, timeout: float) -> Iterator[Dict[str, Any]]:
        """Yield each new reading seen on ``/api/temperature`` until ``timeout``."""
        deadline = time.monotonic() + timeout
        last_timestamp: str | None = None
        while time.monotonic() <= deadline:
            payload = self.get_current()
            if payload.get("temperature") is not None and payload.get("timestamp") != last_timestamp:
                last_timestamp = payload.get("timestamp")
                yield payload
            time.sleep(interval)

    def _get(self, path: str) -> Any:
        try:
            response = self._client.get(path)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.TransportError as exc:
            typer.secho(
                f"Could not reach {self._config.base_url}: {exc}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(code=1)
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
