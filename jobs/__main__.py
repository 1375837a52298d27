"""Command-line entrypoint for the service and its batch jobs."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging

from dotenv import load_dotenv

from jobs.config import Settings, load_settings
from jobs.ingest import ingest_daily
from pipelines.errors import PwsDailyError, StoreUnavailable
from pipelines.sources.wunderground import date_code_to_date, today_code
from storage.db import DuckDBDailyStore

logger = logging.getLogger(__name__)


def _store_for(settings: Settings) -> DuckDBDailyStore | None:
    if not settings.database_url:
        return None
    return DuckDBDailyStore(settings.database_url)


async def _run_ingest(settings: Settings, station_id: str | None, date_code: str) -> int:
    store = _store_for(settings)
    if store is not None:
        await store.initialize()
    result = await ingest_daily(station_id, date_code, settings=settings, store=store)
    print(json.dumps(result.to_response(), ensure_ascii=False))
    return 0


async def _show_day(settings: Settings, date_code: str) -> int:
    store = _store_for(settings)
    if store is None:
        raise StoreUnavailable("Falta DATABASE_URL en variables de entorno")
    fecha = date_code_to_date(date_code)
    summary = await store.fetch_summary(fecha)
    raw = await store.fetch_raw_payload(fecha)
    if summary is None and raw is None:
        logger.warning("No stored data for %s", fecha.isoformat())
        return 1
    print(
        json.dumps(
            {"summary": summary, "payload": raw["payload"] if raw else None},
            default=str,
            ensure_ascii=False,
        )
    )
    return 0


def _serve(settings: Settings) -> int:
    import uvicorn

    from api.main import create_app

    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    parser = argparse.ArgumentParser(description="PWS daily summary service")
    parser.add_argument(
        "--log-level",
        help="Override LOG_LEVEL for this invocation (e.g. DEBUG, INFO)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    ingest_parser = subparsers.add_parser(
        "ingest-daily", help="Fetch, summarize and persist one station-day"
    )
    ingest_parser.add_argument(
        "--station",
        help="Station identifier (defaults to DAILY_STATION_ID and its aliases)",
    )
    ingest_parser.add_argument(
        "--date",
        help="Day to ingest as YYYYMMDD (defaults to today in Europe/Madrid)",
    )

    show_parser = subparsers.add_parser(
        "show-day", help="Print the stored summary and raw payload for one day"
    )
    show_parser.add_argument("--date", required=True, help="Day to read as YYYYMMDD")

    subparsers.add_parser("init-db", help="Create the daily tables if they are missing")
    subparsers.add_parser("show-config", help="Print which settings are present")
    subparsers.add_parser("serve", help="Run the HTTP service with uvicorn")

    args = parser.parse_args(argv)
    settings = load_settings()
    logging.basicConfig(level=(args.log_level or settings.log_level).upper())

    if args.command == "show-config":
        print(json.dumps(settings.describe()))
        return 0

    if args.command == "serve":
        return _serve(settings)

    try:
        if args.command == "init-db":
            store = _store_for(settings)
            if store is None:
                raise StoreUnavailable("Falta DATABASE_URL en variables de entorno")
            asyncio.run(store.initialize())
            return 0

        if args.command == "show-day":
            return asyncio.run(_show_day(settings, args.date))

        if args.command == "ingest-daily":
            station = args.station or settings.daily_station_id
            date_code = args.date or today_code()
            return asyncio.run(_run_ingest(settings, station, date_code))
    except PwsDailyError as exc:
        logger.error("%s failed: %s", args.command, exc.to_payload())
        return 1

    parser.error("Unknown command")
    return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
