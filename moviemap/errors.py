"""
Error kinds shared by the stores, the moderation engine and the HTTP layer.
"""

from __future__ import annotations

from typing import Any, Optional


class MovieMapError(Exception):
    """Base class for errors that map onto a stable API error kind."""

    kind = "internal_error"
    http_status = 500
    retryable = False

    def __init__(self, message: str, *, details: Optional[list[dict]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or []

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.kind, "message": self.message}
        if self.details:
            payload["errors"] = self.details
        return payload


class ValidationError(MovieMapError):
    """Missing or malformed input. Never retried."""

    kind = "validation_error"
    http_status = 400


class NotFound(MovieMapError):
    kind = "not_found"
    http_status = 404


class Unauthorized(MovieMapError):
    """Missing, malformed, expired or otherwise invalid credential."""

    kind = "unauthorized"
    http_status = 401


class Forbidden(MovieMapError):
    """Valid credential, but the identity is not a moderator."""

    kind = "forbidden"
    http_status = 403


class Conflict(MovieMapError):
    """The submission is no longer pending."""

    kind = "conflict"
    http_status = 409


class StoreUnavailable(MovieMapError):
    """Transient backing-store failure; safe to retry with backoff."""

    kind = "store_unavailable"
    http_status = 503
    retryable = True


class PartiallyApplied(MovieMapError):
    """
    One write of a resolution landed and the other could neither be applied
    nor undone. Operators must reconcile the submission by hand.
    """

    kind = "partially_applied"
    http_status = 500

    def __init__(
        self,
        message: str,
        *,
        submission_id: str,
        applied: str,
        details: Optional[list[dict]] = None,
    ):
        super().__init__(message, details=details)
        self.submission_id = submission_id
        self.applied = applied

    def as_dict(self) -> dict[str, Any]:
        payload = super().as_dict()
        payload["submissionId"] = self.submission_id
        payload["applied"] = self.applied
        return payload
