"""Runtime configuration resolved once from the environment.

Several settings have been deployed under more than one variable name over
time (including Spanish names), so each one is looked up through an ordered
alias list where the first non-blank value wins.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Iterable, Mapping

from pipelines.common import DEFAULT_TIMEOUT_SECONDS

DATABASE_URL_ENV = ("DATABASE_URL", "URL_DE_LA_BASE_DE_DATOS", "URL DE LA BASE DE DATOS")
WU_API_KEY_ENV = ("WU_API_KEY", "CLAVE_API_WU", "CLAVE API WU", "API_KEY_WU")
DAILY_INGEST_FLAG_ENV = (
    "ENABLE_DAILY_INGEST",
    "HABILITAR_CARGA_DIARIA",
    "ENABLE DAILY INGEST",
)
DAILY_STATION_ENV = (
    "DAILY_STATION_ID",
    "WU_STATION_ID",
    "WU_STATIONID",
    "DAILY_STATION",
    "ESTACION_DIARIA",
    "ID_DE_ESTACION",
    "id_de_estación",
)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome Safari"
)
DEFAULT_PORT = 3000
DEFAULT_HOST = "0.0.0.0"
DEFAULT_STATIC_DIR = "public"

_TRUE_VALUES = {"1", "true", "yes", "si", "sí", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def env_first(keys: Iterable[str], environ: Mapping[str, str] | None = None) -> str | None:
    env = os.environ if environ is None else environ
    for key in keys:
        value = env.get(key)
        if value is not None and value.strip():
            return value.strip()
    return None


def env_bool(
    keys: Iterable[str],
    default: bool = False,
    environ: Mapping[str, str] | None = None,
) -> bool:
    value = env_first(keys, environ)
    if value is None:
        return default
    lowered = value.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    return default


def _env_int(key: str, default: int, environ: Mapping[str, str]) -> int:
    raw = env_first([key], environ)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{key} must be an integer, got {raw!r}.") from exc


def _env_float(key: str, default: float, environ: Mapping[str, str]) -> float:
    raw = env_first([key], environ)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{key} must be a number, got {raw!r}.") from exc


@dataclass(frozen=True)
class Settings:
    """Typed, immutable view of every setting the service reads."""

    database_url: str | None = None
    wu_api_key: str | None = None
    daily_ingest_enabled: bool = False
    daily_station_id: str | None = None
    user_agent: str = DEFAULT_USER_AGENT
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    static_dir: str = DEFAULT_STATIC_DIR
    upstream_timeout: float = DEFAULT_TIMEOUT_SECONDS
    log_level: str = "INFO"

    @property
    def has_database(self) -> bool:
        return bool(self.database_url)

    @property
    def scheduler_enabled(self) -> bool:
        return self.has_database and self.daily_ingest_enabled and bool(self.daily_station_id)

    def describe(self) -> dict[str, object]:
        """Startup summary that never includes secret values."""

        return {
            "hasDB": self.has_database,
            "hasWUKey": bool(self.wu_api_key),
            "stationEnvPresent": bool(self.daily_station_id),
            "dailyIngestEnabled": self.daily_ingest_enabled,
        }


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    env = os.environ if environ is None else environ
    return Settings(
        database_url=env_first(DATABASE_URL_ENV, env),
        wu_api_key=env_first(WU_API_KEY_ENV, env),
        daily_ingest_enabled=env_bool(DAILY_INGEST_FLAG_ENV, False, env),
        daily_station_id=env_first(DAILY_STATION_ENV, env),
        user_agent=env_first(["USER_AGENT"], env) or DEFAULT_USER_AGENT,
        host=env_first(["HOST"], env) or DEFAULT_HOST,
        port=_env_int("PORT", DEFAULT_PORT, env),
        static_dir=env_first(["STATIC_DIR"], env) or DEFAULT_STATIC_DIR,
        upstream_timeout=_env_float("UPSTREAM_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS, env),
        log_level=(env_first(["LOG_LEVEL"], env) or "INFO").upper(),
    )


__all__ = ["Settings", "load_settings", "env_first", "env_bool"]
