"""Error taxonomy shared by the selector, orchestrator, store and HTTP layer."""

from __future__ import annotations

from typing import Any

BODY_PREVIEW_LIMIT = 300


class PwsDailyError(Exception):
    """Base class for failures that map onto a JSON error response."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message}


class ValidationError(PwsDailyError):
    status_code = 400


class ConfigurationError(PwsDailyError):
    status_code = 500


class StoreUnavailable(PwsDailyError):
    status_code = 500


class NoObservations(PwsDailyError):
    status_code = 500


class UpstreamMalformed(PwsDailyError):
    status_code = 500


class UpstreamUnreachable(PwsDailyError):
    status_code = 500

    def __init__(self, message: str, *, details: str | None = None) -> None:
        super().__init__(message)
        self.details = details

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        if self.details:
            payload["details"] = self.details
        return payload


class UpstreamDenied(PwsDailyError):
    """Non-success HTTP status from the upstream API.

    Only a bounded preview of the body is kept so error responses stay small.
    """

    def __init__(
        self,
        status_code: int,
        body: str,
        *,
        content_type: str | None = None,
    ) -> None:
        super().__init__("weather.com denied")
        self.status_code = status_code
        self.content_type = content_type
        self.body_preview = (body or "")[:BODY_PREVIEW_LIMIT]

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.message, "status": self.status_code}
        if self.content_type is not None:
            payload["contentType"] = self.content_type
        payload["bodyPreview"] = self.body_preview
        return payload


__all__ = [
    "BODY_PREVIEW_LIMIT",
    "PwsDailyError",
    "ValidationError",
    "ConfigurationError",
    "StoreUnavailable",
    "NoObservations",
    "UpstreamMalformed",
    "UpstreamUnreachable",
    "UpstreamDenied",
]
