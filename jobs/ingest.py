"""Fetch one station-day from weather.com, summarize it and persist it."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any

import httpx

from jobs.config import Settings
from pipelines.common import fetch_text
from pipelines.errors import (
    NoObservations,
    StoreUnavailable,
    UpstreamDenied,
    UpstreamMalformed,
)
from pipelines.model import IngestResult, UpstreamResponse
from pipelines.sources.wunderground import (
    date_code_to_date,
    select_upstream,
    validate_station_date,
)
from pipelines.summary import summarize
from storage.db import DailyStore

logger = logging.getLogger(__name__)

MISSING_DATABASE_MESSAGE = "Falta DATABASE_URL en variables de entorno (servicio web)"


async def _fetch_upstream(
    station_id: str,
    date_code: str,
    *,
    settings: Settings,
    client: httpx.AsyncClient | None,
    now: datetime | None,
) -> UpstreamResponse:
    request = select_upstream(station_id, date_code, now, api_key=settings.wu_api_key)
    logger.debug(
        "Requesting %s for station=%s date=%s",
        request.url,
        station_id,
        date_code,
    )
    return await fetch_text(
        request.url,
        params=request.params,
        headers={"accept": "application/json", "user-agent": settings.user_agent},
        timeout=settings.upstream_timeout,
        client=client,
    )


def _reject_constant(literal: str) -> Any:
    raise ValueError(f"non-standard JSON literal {literal}")


def _loads_strict(text: str) -> Any:
    """Decode standard JSON only; ``NaN`` and ``Infinity`` are rejected."""

    return json.loads(text, parse_constant=_reject_constant)


def _parse_json(text: str) -> Any:
    try:
        return _loads_strict(text)
    except ValueError as exc:
        raise UpstreamMalformed("Respuesta no-JSON de Weather.com") from exc


async def fetch_history(
    station_id: str | None,
    requested_date: str | None,
    *,
    settings: Settings,
    client: httpx.AsyncClient | None = None,
    now: datetime | None = None,
) -> tuple[int, Any | str]:
    """Proxy one station-day from the upstream without summarizing or persisting.

    Returns the upstream status code and the decoded JSON body. A successful
    body that is not JSON is returned as the raw text for the caller to pass
    through unchanged.
    """

    station, date_code = validate_station_date(station_id, requested_date)
    upstream = await _fetch_upstream(
        station, date_code, settings=settings, client=client, now=now
    )
    if not upstream.ok:
        raise UpstreamDenied(
            upstream.status_code, upstream.text, content_type=upstream.content_type
        )
    try:
        return upstream.status_code, _loads_strict(upstream.text)
    except ValueError:
        return upstream.status_code, upstream.text


async def ingest_daily(
    station_id: str | None,
    requested_date: str | None,
    *,
    settings: Settings,
    store: DailyStore | None,
    client: httpx.AsyncClient | None = None,
    now: datetime | None = None,
) -> IngestResult:
    """Summarize and upsert one station-day.

    The summary and the raw payload are written one after the other. They are
    not atomic together; a later ingestion for the same date overwrites both.
    """

    station, date_code = validate_station_date(station_id, requested_date)
    if store is None:
        raise StoreUnavailable(MISSING_DATABASE_MESSAGE)

    upstream = await _fetch_upstream(
        station, date_code, settings=settings, client=client, now=now
    )
    if not upstream.ok:
        raise UpstreamDenied(upstream.status_code, upstream.text)

    payload = _parse_json(upstream.text)
    summary = summarize(payload)
    if summary is None:
        raise NoObservations("Payload sin observations[]")

    fecha = date_code_to_date(date_code)

    await store.upsert_summary(fecha, station, summary)
    await store.upsert_raw_payload(fecha, station, payload)
    logger.info(
        "Stored daily summary for %s on %s (%s observations).",
        station,
        fecha.isoformat(),
        summary.observation_count,
    )
    return IngestResult(fecha=fecha, station_id=station, summary=summary)


__all__ = ["fetch_history", "ingest_daily"]
