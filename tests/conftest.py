from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable

import httpx
import pytest

from jobs.config import Settings

# 2024-06-15 10:00 UTC is 12:00 in Madrid
FIXED_NOW = datetime(2024, 6, 15, 10, 0, tzinfo=timezone.utc)


@pytest.fixture()
def payload() -> dict[str, Any]:
    return {
        "observations": [
            {
                "stationID": "IALFAR30",
                "humidity": 80,
                "metric": {"temp": 10, "precipTotal": 1.0, "windSpeed": 5},
            },
            {
                "stationID": "IALFAR30",
                "humidity": 60,
                "metric": {"temp": 15, "precipTotal": 2.0, "windSpeed": 7},
            },
        ]
    }


class RecordingStore:
    """In-memory ``DailyStore`` double keyed by date."""

    def __init__(self) -> None:
        self.summaries: dict[Any, tuple[str, Any]] = {}
        self.payloads: dict[Any, tuple[str, Any]] = {}
        self.calls: list[str] = []

    async def upsert_summary(self, fecha, station_id, summary) -> None:
        self.calls.append("summary")
        self.summaries[fecha] = (station_id, summary)

    async def upsert_raw_payload(self, fecha, station_id, payload) -> None:
        self.calls.append("payload")
        self.payloads[fecha] = (station_id, payload)


@pytest.fixture()
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        database_url=str(tmp_path / "pws.duckdb"),
        wu_api_key="test-key",
        static_dir=str(tmp_path / "missing-public"),
    )


@pytest.fixture()
def recording_store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture()
def upstream() -> Callable[..., tuple[httpx.AsyncClient, list[httpx.Request]]]:
    """Build an ``AsyncClient`` whose requests are answered by ``responder``."""

    def _build(responder: Callable[[httpx.Request], httpx.Response]):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return responder(request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return client, seen

    return _build
