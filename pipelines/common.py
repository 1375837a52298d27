"""Shared utilities for retrieving external API responses."""

from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx

from pipelines.errors import UpstreamUnreachable
from pipelines.model import UpstreamResponse

DEFAULT_TIMEOUT_SECONDS = 30.0

Headers = Mapping[str, str] | None
Params = Mapping[str, Any] | None

logger = logging.getLogger(__name__)


async def _send(
    client: httpx.AsyncClient, url: str, *, headers: Headers, params: Params
) -> httpx.Response:
    try:
        return await client.get(url, headers=headers, params=params)
    except httpx.TransportError as exc:
        logger.warning("Upstream request to %s failed: %s", url, exc)
        raise UpstreamUnreachable(
            "Error al consultar Weather.com", details=str(exc)
        ) from exc


async def fetch_text(
    url: str,
    *,
    headers: Headers = None,
    params: Params = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    client: httpx.AsyncClient | None = None,
) -> UpstreamResponse:
    """Execute a GET request and return status, content type and body text.

    Non-success statuses are returned rather than raised so callers can pass
    them through. Transport failures and timeouts raise ``UpstreamUnreachable``.
    A caller-supplied ``client`` is used as-is and left open; otherwise a
    short-lived client bounded by ``timeout`` is created for the call.
    """

    if client is not None:
        response = await _send(client, url, headers=headers, params=params)
    else:
        async with httpx.AsyncClient(timeout=timeout) as owned_client:
            response = await _send(owned_client, url, headers=headers, params=params)

    return UpstreamResponse(
        status_code=response.status_code,
        content_type=response.headers.get("content-type", "").lower(),
        text=response.text,
    )


__all__ = ["fetch_text", "DEFAULT_TIMEOUT_SECONDS"]
