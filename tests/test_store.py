from datetime import date

import duckdb
import pytest

from pipelines.errors import StoreUnavailable
from pipelines.model import DailySummary
from storage.db import (
    DAILY_PAYLOAD_TABLE,
    DAILY_TABLE,
    DuckDBDailyStore,
    get_database_path,
)

FECHA = date(2024, 6, 14)


@pytest.fixture()
def store(tmp_path):
    return DuckDBDailyStore(tmp_path / "nested" / "pws.duckdb")


def _summary(**overrides) -> DailySummary:
    values = dict(
        rainfall_mm=2.0,
        temp_min_c=10.0,
        temp_max_c=15.0,
        avg_humidity_pct=70.0,
        max_wind_speed_mps=7.0,
        observation_count=2,
    )
    values.update(overrides)
    return DailySummary(**values)


@pytest.mark.parametrize(
    "url, expected",
    [
        ("data/pws.duckdb", "data/pws.duckdb"),
        ("duckdb:///data/pws.duckdb", "data/pws.duckdb"),
        ("duckdb:////tmp/pws.duckdb", "/tmp/pws.duckdb"),
        ("duckdb://pws.duckdb", "pws.duckdb"),
    ],
)
def test_database_path_resolution(url, expected):
    assert str(get_database_path(url)) == expected


def test_blank_database_url_is_unavailable():
    with pytest.raises(StoreUnavailable):
        get_database_path("  ")


@pytest.mark.asyncio
async def test_initialize_is_idempotent(store):
    await store.initialize()
    await store.initialize()

    conn = duckdb.connect(str(store.path))
    try:
        tables = {row[0] for row in conn.execute("SHOW TABLES").fetchall()}
    finally:
        conn.close()
    assert {DAILY_TABLE, DAILY_PAYLOAD_TABLE} <= tables


@pytest.mark.asyncio
async def test_upsert_summary_last_write_wins(store):
    await store.initialize()

    await store.upsert_summary(FECHA, "STATION_A", _summary())
    await store.upsert_summary(
        FECHA,
        "STATION_B",
        _summary(rainfall_mm=None, temp_min_c=3.0, temp_max_c=4.0, avg_humidity_pct=None),
    )

    row = await store.fetch_summary(FECHA)
    assert row["station_id"] == "STATION_B"
    assert row["lluvia_mm"] is None
    assert row["tmin_c"] == pytest.approx(3.0)
    assert row["tmax_c"] == pytest.approx(4.0)
    assert row["humedad_media"] is None
    assert row["viento_max_mps"] == pytest.approx(7.0)

    conn = duckdb.connect(str(store.path))
    try:
        count = conn.execute(f"SELECT COUNT(*) FROM {DAILY_TABLE}").fetchone()[0]
    finally:
        conn.close()
    assert count == 1


@pytest.mark.asyncio
async def test_upsert_raw_payload_round_trips_document(store, payload):
    await store.initialize()

    await store.upsert_raw_payload(FECHA, "STATION_A", {"observations": []})
    await store.upsert_raw_payload(FECHA, "STATION_B", payload)

    row = await store.fetch_raw_payload(FECHA)
    assert row["station_id"] == "STATION_B"
    assert row["payload"] == payload


@pytest.mark.asyncio
async def test_rewrite_refreshes_recorded_at(store):
    await store.initialize()

    await store.upsert_summary(FECHA, "STATION_A", _summary())
    first = (await store.fetch_summary(FECHA))["creado_en"]
    await store.upsert_summary(FECHA, "STATION_A", _summary())
    second = (await store.fetch_summary(FECHA))["creado_en"]

    assert second >= first


@pytest.mark.asyncio
async def test_dates_are_independent(store):
    await store.initialize()

    await store.upsert_summary(FECHA, "STATION_A", _summary())
    await store.upsert_summary(date(2024, 6, 15), "STATION_A", _summary(rainfall_mm=9.0))

    assert (await store.fetch_summary(FECHA))["lluvia_mm"] == pytest.approx(2.0)
    assert await store.fetch_summary(date(2024, 6, 13)) is None


@pytest.mark.asyncio
async def test_write_without_schema_is_store_unavailable(store):
    with pytest.raises(StoreUnavailable):
        await store.upsert_summary(FECHA, "STATION_A", _summary())


@pytest.mark.asyncio
async def test_unopenable_database_is_store_unavailable(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    store = DuckDBDailyStore(blocker / "pws.duckdb")

    with pytest.raises(StoreUnavailable):
        await store.initialize()
