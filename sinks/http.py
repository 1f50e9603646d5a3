"""HTTP telemetry sink built on httpx."""

from __future__ import annotations

from typing import Dict, Optional

import httpx

from models.errors import SinkDeliveryError
from models.records import Reading, isoformat_utc


def parse_header(raw: Optional[str]) -> Dict[str, str]:
    """Parse a ``Name: value`` header specification."""
    if not raw:
        return {}
    name, sep, value = raw.partition(":")
    name = name.strip()
    if not sep or not name:
        raise ValueError(f"Invalid header specification {raw!r}; expected 'Name: value'.")
    return {name: value.strip()}


class HttpTelemetrySink:
    """POSTs ``{temperature, timestamp}`` for each reading to ``endpoint``."""

    def __init__(
        self,
        endpoint: str,
        headers: Optional[Dict[str, str]] = None,
        timeout: float = 5.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.endpoint = endpoint
        self._client = client or httpx.Client(timeout=timeout, headers=headers or {})

    def send(self, reading: Reading) -> None:
        payload = {
            "temperature": reading.value,
            "timestamp": isoformat_utc(reading.timestamp),
        }
        try:
            response = self._client.post(self.endpoint, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise SinkDeliveryError(
                f"Sink responded with status {exc.response.status_code}."
            ) from exc
        except httpx.HTTPError as exc:
            raise SinkDeliveryError(f"Sink request failed: {exc}") from exc

    def close(self) -> None:
        self._client.close()
