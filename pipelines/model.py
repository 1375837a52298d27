"""Canonical data model for PWS upstream requests and daily aggregates."""

from __future__ import annotations

from datetime import date
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class UpstreamRequest(BaseModel):
    """Fully parameterized request against one of the two upstream endpoints."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(..., description="Base endpoint URL without query string.")
    params: dict[str, str] = Field(
        ..., description="Query parameters in the order they are sent upstream."
    )
    is_today: bool = Field(
        ..., description="True when the current-day endpoint was selected."
    )


class UpstreamResponse(BaseModel):
    """Raw upstream reply kept as text so it can be previewed or passed through."""

    model_config = ConfigDict(frozen=True)

    status_code: int
    content_type: str = ""
    text: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class DailySummary(BaseModel):
    """Daily aggregates reduced from one upstream observation payload."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    rainfall_mm: Optional[float] = Field(
        default=None,
        alias="rainfallMm",
        description="Maximum cumulative precipitation total reported during the day.",
    )
    temp_min_c: Optional[float] = Field(default=None, alias="tempMinC")
    temp_max_c: Optional[float] = Field(default=None, alias="tempMaxC")
    avg_humidity_pct: Optional[float] = Field(default=None, alias="avgHumidityPct")
    max_wind_speed_mps: Optional[float] = Field(default=None, alias="maxWindSpeedMps")
    observation_count: int = Field(
        ...,
        alias="observationCount",
        ge=0,
        description="Number of records in the source payload, before filtering.",
    )


class IngestResult(BaseModel):
    """Outcome of a successful daily ingestion."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    fecha: date
    station_id: str = Field(..., alias="stationId")
    summary: DailySummary

    def to_response(self) -> dict[str, Any]:
        return {
            "ok": True,
            "fecha": self.fecha.isoformat(),
            "stationId": self.station_id,
            **self.summary.model_dump(mode="json", by_alias=True),
        }


__all__ = ["UpstreamRequest", "UpstreamResponse", "DailySummary", "IngestResult"]
