"""Reduce a PWS observation payload into daily aggregates."""

from __future__ import annotations

import math
from statistics import fmean
from typing import Any, Iterable, Mapping, Sequence

from pipelines.model import DailySummary

# Series name -> path into each observation record
PRECIP_TOTAL_PATH = ("metric", "precipTotal")
TEMPERATURE_PATH = ("metric", "temp")
WIND_SPEED_PATH = ("metric", "windSpeed")
HUMIDITY_PATH = ("humidity",)


def _get_path(record: Any, path: Sequence[str]) -> Any:
    current = record
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def _coerce_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        numeric = float(value)
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        try:
            numeric = float(stripped)
        except ValueError:
            return None
    else:
        return None

    if math.isnan(numeric) or math.isinf(numeric):
        return None
    return numeric


def _series(observations: Iterable[Any], path: Sequence[str]) -> list[float]:
    values = []
    for record in observations:
        numeric = _coerce_float(_get_path(record, path))
        if numeric is not None:
            values.append(numeric)
    return values


def summarize(payload: Any) -> DailySummary | None:
    """Return the daily aggregates for ``payload`` or ``None`` if it has no observations.

    Precipitation is reported as a running total per observation, so the
    daily rainfall is the largest total rather than a sum. Each series is
    filtered independently; a series without valid readings yields ``None``.
    """

    observations = payload.get("observations") if isinstance(payload, Mapping) else None
    if not isinstance(observations, list) or not observations:
        return None

    precip = _series(observations, PRECIP_TOTAL_PATH)
    temps = _series(observations, TEMPERATURE_PATH)
    hums = _series(observations, HUMIDITY_PATH)
    winds = _series(observations, WIND_SPEED_PATH)

    return DailySummary(
        rainfall_mm=max(precip) if precip else None,
        temp_min_c=min(temps) if temps else None,
        temp_max_c=max(temps) if temps else None,
        avg_humidity_pct=fmean(hums) if hums else None,
        max_wind_speed_mps=max(winds) if winds else None,
        observation_count=len(observations),
    )


__all__ = ["summarize"]
