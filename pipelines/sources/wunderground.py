"""weather.com PWS request routing.

The upstream exposes the current day and past days through different
endpoints: ``observations/all/1day`` infers the date server-side and rejects a
``date`` parameter, while ``history/all`` requires one.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from pipelines.errors import ConfigurationError, ValidationError
from pipelines.model import UpstreamRequest

WU_TODAY_URL = "https://api.weather.com/v2/pws/observations/all/1day"
WU_HISTORY_URL = "https://api.weather.com/v2/pws/history/all"

REFERENCE_TIMEZONE = ZoneInfo("Europe/Madrid")

DATE_CODE_PATTERN = re.compile(r"^\d{8}$")

MISSING_PARAMS_MESSAGE = "Parámetros requeridos: stationId y date (YYYYMMDD)"
MISSING_API_KEY_MESSAGE = "Falta WU_API_KEY en variables de entorno"


def today_code(reference_now: datetime | None = None) -> str:
    """Return the ``YYYYMMDD`` code of the reference-timezone calendar day."""

    if reference_now is None:
        reference_now = datetime.now(timezone.utc)
    elif reference_now.tzinfo is None:
        reference_now = reference_now.replace(tzinfo=timezone.utc)
    return reference_now.astimezone(REFERENCE_TIMEZONE).strftime("%Y%m%d")


def validate_station_date(station_id: str | None, requested_date: str | None) -> tuple[str, str]:
    """Check presence and shape of the caller input; return stripped values."""

    station = (station_id or "").strip()
    date_code = (requested_date or "").strip()
    if not station or not date_code:
        raise ValidationError(MISSING_PARAMS_MESSAGE)
    if not DATE_CODE_PATTERN.match(date_code):
        raise ValidationError(f"date inválida: {date_code!r} (se espera YYYYMMDD)")
    return station, date_code


def date_code_to_date(date_code: str) -> date:
    """Convert ``YYYYMMDD`` to a calendar date, rejecting impossible dates."""

    if not DATE_CODE_PATTERN.match(date_code or ""):
        raise ValidationError("date inválida")
    try:
        return datetime.strptime(date_code, "%Y%m%d").date()
    except ValueError as exc:
        raise ValidationError("date inválida") from exc


def select_upstream(
    station_id: str | None,
    requested_date: str | None,
    reference_now: datetime | None = None,
    *,
    api_key: str | None,
) -> UpstreamRequest:
    """Pick the upstream endpoint for ``requested_date`` and build its parameters."""

    if not api_key:
        raise ConfigurationError(MISSING_API_KEY_MESSAGE)
    station, date_code = validate_station_date(station_id, requested_date)

    is_today = date_code == today_code(reference_now)
    params = {
        "stationId": station,
        "format": "json",
        "units": "m",
        "apiKey": api_key,
    }
    if not is_today:
        params["date"] = date_code

    return UpstreamRequest(
        url=WU_TODAY_URL if is_today else WU_HISTORY_URL,
        params=params,
        is_today=is_today,
    )


__all__ = [
    "WU_TODAY_URL",
    "WU_HISTORY_URL",
    "REFERENCE_TIMEZONE",
    "today_code",
    "validate_station_date",
    "date_code_to_date",
    "select_upstream",
]
