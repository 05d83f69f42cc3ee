"""Custom exceptions used across the photobooth pipeline."""

from __future__ import annotations

from typing import Any

import httpx


class PhotoboothError(Exception):
    """Base error for the photobooth domain."""


class HashFailure(PhotoboothError):
    """Raised when a file cannot be read to compute its fingerprint."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Cannot fingerprint {path}: {reason}")
        self.path = path
        self.reason = reason


class LedgerError(PhotoboothError):
    """Base error for processed-file ledger failures."""


class LedgerPersistenceError(LedgerError):
    """Raised when the ledger cannot be written to stable storage."""


class PublishFailure(PhotoboothError):
    """Raised when a generated artifact cannot be copied to the output folder."""


class ExternalServiceFailure(PhotoboothError):
    """Base error raised for analysis or generation API failures."""

    def __init__(
        self,
        message: str,
        *,
        service: str,
        status_code: int | None = None,
        payload: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.service = service
        self.status_code = status_code
        self.payload = payload or {}


class RateLimitError(ExternalServiceFailure):
    """Raised when the provider throttles requests."""


class QuotaExceededError(ExternalServiceFailure):
    """Raised when the account quota or billing limit is exhausted."""


class AuthenticationError(ExternalServiceFailure):
    """Raised when credentials are missing or rejected."""


class ContentSafetyError(ExternalServiceFailure):
    """Raised when the provider refuses the content."""


class ServiceUnavailableError(ExternalServiceFailure):
    """Raised for network errors and provider-side 5xx responses."""


def _response_payload(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {"text": response.text[:500]}
    return data if isinstance(data, dict) else {"data": data}


def error_from_response(service: str, response: httpx.Response) -> ExternalServiceFailure:
    """Map a failed HTTP response to the matching ``ExternalServiceFailure`` subclass."""

    payload = _response_payload(response)
    status = response.status_code
    message = f"{service} request failed with HTTP {status}"
    detail = str(payload).lower()

    if status == 429 and "quota" in detail:
        cls: type[ExternalServiceFailure] = QuotaExceededError
    elif status == 429 or "rate limit" in detail:
        cls = RateLimitError
    elif "quota" in detail or "billing" in detail:
        cls = QuotaExceededError
    elif status in (401, 403):
        cls = AuthenticationError
    elif "safety" in detail or "content filter" in detail:
        cls = ContentSafetyError
    elif status >= 500:
        cls = ServiceUnavailableError
    else:
        cls = ExternalServiceFailure

    return cls(message, service=service, status_code=status, payload=payload)
