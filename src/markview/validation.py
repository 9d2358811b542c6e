"""Input validation for repository references and API request bodies."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from pydantic import BaseModel, ValidationError

from markview.errors import MarkViewError
from markview.models.github import RepositoryRef

if TYPE_CHECKING:
    from collections.abc import Iterable

M = TypeVar("M", bound=BaseModel)

_GITHUB_URL_PREFIX = "https://github.com/"
_URL_RE = re.compile(
    r"^https://github\.com/([^/]+)/([^/]+?)(?:\.git)?(?:/tree/([^/?#]+))?(?:[/?#].*)?$"
)
_SIMPLE_RE = re.compile(r"^([A-Za-z0-9_-]+)/([A-Za-z0-9_.-]+)$")
_REPO_VALID_RE = re.compile(r"^[A-Za-z0-9._-]+/[A-Za-z0-9._-]+$")
_REF_INVALID_RE = re.compile(r"[\s~^:?*\[\\]|\.\.|@\{|//")


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    error: str | None = None


def parse_repository_input(text: str) -> RepositoryRef | None:
    """Parse ``owner/repo`` or a github.com URL into a RepositoryRef.

    Accepts ``https://github.com/owner/repo`` and
    ``https://github.com/owner/repo/tree/<ref>``. Returns None otherwise.
    """
    trimmed = text.strip()

    if trimmed.startswith(_GITHUB_URL_PREFIX):
        match = _URL_RE.match(trimmed)
        if match is None:
            return None
        owner, repo, ref = match.groups()
        return RepositoryRef(owner=owner, repo=repo, ref=ref or None)

    match = _SIMPLE_RE.match(trimmed)
    if match is None:
        return None
    return RepositoryRef(owner=match.group(1), repo=match.group(2))


def validate_repository_input(text: str) -> ValidationResult:
    trimmed = text.strip()
    if not trimmed:
        return ValidationResult(False, "Repository input is required")

    parts = trimmed.split("/")
    if len(parts) != 2:
        return ValidationResult(False, 'Repository must be in "owner/repo" format')

    owner, repo = parts
    if not owner:
        return ValidationResult(False, "Owner cannot be empty")
    if not repo:
        return ValidationResult(False, "Repository name cannot be empty")

    if not _REPO_VALID_RE.match(trimmed):
        return ValidationResult(False, "Repository contains invalid characters")

    return ValidationResult(True)


def validate_ref_input(text: str | None) -> ValidationResult:
    """Check a branch/tag/commit ref. Empty is valid (the field is optional)."""
    if not text or not text.strip():
        return ValidationResult(True)

    trimmed = text.strip()
    if _REF_INVALID_RE.search(trimmed):
        return ValidationResult(False, "Branch/ref contains invalid characters")
    if trimmed.startswith(".") or trimmed.endswith(".lock"):
        return ValidationResult(False, "Invalid branch/ref format")
    return ValidationResult(True)


def parse_body(model: type[M], body: object, required: Iterable[str]) -> M:
    """Validate a decoded JSON request body against ``model``.

    Raises MarkViewError(VALIDATION) naming the first missing field, or
    summarising the pydantic error.
    """
    if not isinstance(body, dict):
        raise MarkViewError.validation("Invalid JSON body")

    for name in required:
        value = body.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise MarkViewError.validation(f"Missing required field: {name}")

    try:
        parsed = model.model_validate(body)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise MarkViewError.validation(f"Invalid field {location}: {first['msg']}") from exc

    ref = getattr(parsed, "ref", None)
    if ref is not None:
        result = validate_ref_input(ref)
        if not result.valid:
            raise MarkViewError.validation(result.error or "Invalid branch/ref format")

    return parsed
