from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Literal


class ErrorKind(StrEnum):
    VALIDATION = "ValidationError"
    REPOSITORY_NOT_FOUND = "RepositoryNotFound"
    REPOSITORY_FORBIDDEN = "RepositoryForbidden"
    RATE_LIMIT_EXCEEDED = "RateLimitExceeded"
    GITHUB_API_ERROR = "GitHubAPIError"
    INTERNAL = "InternalServerError"


_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.REPOSITORY_NOT_FOUND: 404,
    ErrorKind.REPOSITORY_FORBIDDEN: 403,
    ErrorKind.RATE_LIMIT_EXCEEDED: 429,
    ErrorKind.INTERNAL: 500,
}


class MarkViewError(Exception):
    """Raised for all expected failure conditions.

    ``kind`` is the discriminant; the remaining attributes are its payload.
    The GitHub client raises these, the API layer catches them in server.py
    and serialises them into the error envelope. Business logic should let
    them propagate.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        upstream_status: int | None = None,
        response: Any = None,
        reset_at: datetime | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.upstream_status = upstream_status
        self.response = response
        self.reset_at = reset_at

    @classmethod
    def not_found(cls, owner: str, repo: str) -> MarkViewError:
        return cls(
            ErrorKind.REPOSITORY_NOT_FOUND,
            f"Repository {owner}/{repo} not found",
            upstream_status=404,
        )

    @classmethod
    def forbidden(cls, owner: str, repo: str) -> MarkViewError:
        return cls(
            ErrorKind.REPOSITORY_FORBIDDEN,
            f"Repository {owner}/{repo} is private or you don't have access",
            upstream_status=403,
        )

    @classmethod
    def rate_limited(cls, reset_at: datetime) -> MarkViewError:
        return cls(
            ErrorKind.RATE_LIMIT_EXCEEDED,
            f"GitHub API rate limit exceeded. Resets at {_iso(reset_at)}",
            upstream_status=403,
            reset_at=reset_at,
        )

    @classmethod
    def validation(cls, message: str) -> MarkViewError:
        return cls(ErrorKind.VALIDATION, message)

    @property
    def status_code(self) -> int:
        """HTTP status surfaced to API clients."""
        if self.kind == ErrorKind.GITHUB_API_ERROR:
            if self.upstream_status is None:
                return 500
            # A non-error upstream status here means GitHub answered with something unusable
            return self.upstream_status if self.upstream_status >= 400 else 502
        return _STATUS_BY_KIND[self.kind]

    def to_dict(self) -> dict:
        body: dict[str, Any] = {
            "error": str(self.kind),
            "message": self.message,
            "statusCode": self.status_code,
        }
        if self.kind == ErrorKind.RATE_LIMIT_EXCEEDED and self.reset_at is not None:
            body["details"] = {"resetAt": _iso(self.reset_at)}
        elif self.kind == ErrorKind.GITHUB_API_ERROR and self.response:
            body["details"] = self.response
        return body


def _iso(value: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a ``Z`` suffix."""
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ---------------------------------------------------------------------------
# Presentation-side classification
# ---------------------------------------------------------------------------

Severity = Literal["error", "warning", "info"]


@dataclass(frozen=True)
class ErrorDetails:
    """User-facing description of a failure."""

    message: str
    suggestion: str | None = None
    severity: Severity = "error"


def describe_error(error: object) -> ErrorDetails:
    """Map a caught failure to a message, suggestion and severity.

    Keyword search over the message text, first match wins. Unrecognised
    messages fall back to the raw message.
    """
    if not isinstance(error, Exception):
        return ErrorDetails(
            message="An unexpected error occurred",
            suggestion="Please try again or report this issue if it persists.",
        )

    raw = error.message if isinstance(error, MarkViewError) else str(error)
    message = raw.lower()

    if "not found" in message or "404" in message:
        return ErrorDetails(
            message="Repository not found",
            suggestion=(
                "Double-check the owner/repo format and ensure the repository "
                "exists and is public."
            ),
        )

    if "rate limit" in message or "429" in message:
        return ErrorDetails(
            message="GitHub API rate limit exceeded",
            suggestion=(
                "Wait a few minutes before trying again, or add a GitHub token "
                "to increase your rate limit."
            ),
            severity="warning",
        )

    if any(word in message for word in ("forbidden", "private", "403")):
        return ErrorDetails(
            message="Access denied to this repository",
            suggestion=(
                "This repository may be private. Use a GitHub token with appropriate access."
            ),
        )

    if any(word in message for word in ("network", "fetch", "connection")):
        return ErrorDetails(
            message="Network error",
            suggestion="Check your internet connection and try again.",
        )

    if "invalid" in message or "validation" in message:
        return ErrorDetails(message=raw, suggestion="Please check your input and try again.")

    if "500" in message or "server error" in message:
        return ErrorDetails(
            message="GitHub is experiencing issues",
            suggestion="This is a temporary issue. Please try again later.",
            severity="warning",
        )

    return ErrorDetails(message=raw)
