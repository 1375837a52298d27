"""DuckDB persistence for daily PWS summaries and raw payloads."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Protocol

import duckdb

from pipelines.errors import StoreUnavailable
from pipelines.model import DailySummary

DAILY_TABLE = "wu_daily"
DAILY_PAYLOAD_TABLE = "wu_daily_payload"

_URL_PREFIXES = ("duckdb:///", "duckdb://")

logger = logging.getLogger(__name__)


class DailyStore(Protocol):
    """Per-date persistence used by the ingestion orchestrator."""

    async def upsert_summary(
        self, fecha: date, station_id: str, summary: DailySummary
    ) -> None: ...

    async def upsert_raw_payload(
        self, fecha: date, station_id: str, payload: Any
    ) -> None: ...


def get_database_path(database_url: str | os.PathLike[str]) -> Path:
    """Resolve a DuckDB file path from a connection string or plain path."""

    raw = str(database_url).strip()
    for prefix in _URL_PREFIXES:
        if raw.startswith(prefix):
            raw = raw[len(prefix):]
            break
    if not raw:
        raise StoreUnavailable("DATABASE_URL vacía")
    return Path(raw)


def _ensure_parent_dir(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def connect(
    database_url: str | os.PathLike[str],
    *,
    read_only: bool = False,
) -> duckdb.DuckDBPyConnection:
    """Open a DuckDB connection, mapping driver failures to ``StoreUnavailable``."""

    db_path = get_database_path(database_url)
    try:
        if not read_only:
            _ensure_parent_dir(db_path)
        return duckdb.connect(str(db_path), read_only=read_only)
    except (duckdb.Error, OSError) as exc:
        raise StoreUnavailable(f"No se pudo abrir la base de datos: {exc}") from exc


def ensure_daily_tables(conn: duckdb.DuckDBPyConnection) -> None:
    """Create both per-date tables if they do not already exist."""

    conn.execute(
        f"""
        CREATE TABLE IF NOT EXISTS {DAILY_TABLE} (
            fecha DATE PRIMARY KEY,
            station_id TEXT NOT NULL,
            lluvia_mm DOUBLE,
            tmin_c DOUBLE,
            tmax_c DOUBLE,
            humedad_media DOUBLE,
            viento_max_mps DOUBLE,
            creado_en TIMESTAMP NOT NULL
        )
        """
    )
    conn.execute(
        f"""
        CREATE TABLE IF NOT EXISTS {DAILY_PAYLOAD_TABLE} (
            fecha DATE PRIMARY KEY,
            station_id TEXT NOT NULL,
            payload JSON NOT NULL,
            creado_en TIMESTAMP NOT NULL
        )
        """
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def write_summary(
    conn: duckdb.DuckDBPyConnection, fecha: date, station_id: str, summary: DailySummary
) -> None:
    """Insert or fully overwrite the summary row for ``fecha``."""

    conn.execute(
        f"""
        INSERT INTO {DAILY_TABLE} (
            fecha,
            station_id,
            lluvia_mm,
            tmin_c,
            tmax_c,
            humedad_media,
            viento_max_mps,
            creado_en
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT (fecha) DO UPDATE SET
            station_id = EXCLUDED.station_id,
            lluvia_mm = EXCLUDED.lluvia_mm,
            tmin_c = EXCLUDED.tmin_c,
            tmax_c = EXCLUDED.tmax_c,
            humedad_media = EXCLUDED.humedad_media,
            viento_max_mps = EXCLUDED.viento_max_mps,
            creado_en = EXCLUDED.creado_en
        """,
        [
            fecha,
            station_id,
            summary.rainfall_mm,
            summary.temp_min_c,
            summary.temp_max_c,
            summary.avg_humidity_pct,
            summary.max_wind_speed_mps,
            _utcnow(),
        ],
    )


def write_raw_payload(
    conn: duckdb.DuckDBPyConnection, fecha: date, station_id: str, payload: Any
) -> None:
    """Insert or fully overwrite the raw payload row for ``fecha``."""

    conn.execute(
        f"""
        INSERT INTO {DAILY_PAYLOAD_TABLE} (fecha, station_id, payload, creado_en)
        VALUES (?, ?, ?, ?)
        ON CONFLICT (fecha) DO UPDATE SET
            station_id = EXCLUDED.station_id,
            payload = EXCLUDED.payload,
            creado_en = EXCLUDED.creado_en
        """,
        [fecha, station_id, json.dumps(payload), _utcnow()],
    )


def read_summary(conn: duckdb.DuckDBPyConnection, fecha: date) -> dict[str, Any] | None:
    row = conn.execute(
        f"""
        SELECT fecha, station_id, lluvia_mm, tmin_c, tmax_c, humedad_media,
               viento_max_mps, creado_en
        FROM {DAILY_TABLE}
        WHERE fecha = ?
        """,
        [fecha],
    ).fetchone()
    if row is None:
        return None
    columns = (
        "fecha",
        "station_id",
        "lluvia_mm",
        "tmin_c",
        "tmax_c",
        "humedad_media",
        "viento_max_mps",
        "creado_en",
    )
    return dict(zip(columns, row))


def read_raw_payload(conn: duckdb.DuckDBPyConnection, fecha: date) -> dict[str, Any] | None:
    row = conn.execute(
        f"SELECT fecha, station_id, payload, creado_en FROM {DAILY_PAYLOAD_TABLE} WHERE fecha = ?",
        [fecha],
    ).fetchone()
    if row is None:
        return None
    payload = row[2]
    return {
        "fecha": row[0],
        "station_id": row[1],
        "payload": json.loads(payload) if isinstance(payload, str) else payload,
        "creado_en": row[3],
    }


class DuckDBDailyStore:
    """``DailyStore`` backed by a DuckDB file.

    Each operation opens its own short-lived connection in a worker thread,
    so the event loop never blocks on the database and no connection is
    shared between concurrent requests.
    """

    def __init__(self, database_url: str | os.PathLike[str]) -> None:
        self.database_url = database_url
        self.path = get_database_path(database_url)

    def _run(self, operation, *args: Any, read_only: bool = False) -> Any:
        conn = connect(self.database_url, read_only=read_only)
        try:
            return operation(conn, *args)
        except duckdb.Error as exc:
            logger.error("DuckDB operation %s failed: %s", operation.__name__, exc)
            raise StoreUnavailable(f"Error de base de datos: {exc}") from exc
        finally:
            conn.close()

    def initialize_sync(self) -> None:
        self._run(ensure_daily_tables)
        logger.info("Daily tables ready in %s", self.path)

    async def initialize(self) -> None:
        """Create the schema if absent; safe to call on an existing database."""

        await asyncio.to_thread(self.initialize_sync)

    async def upsert_summary(
        self, fecha: date, station_id: str, summary: DailySummary
    ) -> None:
        await asyncio.to_thread(self._run, write_summary, fecha, station_id, summary)

    async def upsert_raw_payload(
        self, fecha: date, station_id: str, payload: Any
    ) -> None:
        await asyncio.to_thread(self._run, write_raw_payload, fecha, station_id, payload)

    async def fetch_summary(self, fecha: date) -> dict[str, Any] | None:
        return await asyncio.to_thread(self._run, read_summary, fecha)

    async def fetch_raw_payload(self, fecha: date) -> dict[str, Any] | None:
        return await asyncio.to_thread(self._run, read_raw_payload, fecha)


__all__ = [
    "DAILY_TABLE",
    "DAILY_PAYLOAD_TABLE",
    "DailyStore",
    "DuckDBDailyStore",
    "connect",
    "ensure_daily_tables",
    "get_database_path",
    "read_raw_payload",
    "read_summary",
    "write_raw_payload",
    "write_summary",
]
