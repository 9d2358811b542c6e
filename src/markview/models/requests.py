from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Owners and repository names are interpolated into /repos/{owner}/{repo}
_NAME_RE = re.compile(r"^[A-Za-z0-9._-]+$")


def _check_name(v: str) -> str:
    if not _NAME_RE.match(v) or set(v) == {"."}:
        raise ValueError(f"Invalid owner or repository name: {v!r}")
    return v


class RepositoryRequest(BaseModel):
    """Body of ``/api/repository/validate`` and ``/api/repository/files``."""

    model_config = ConfigDict(str_strip_whitespace=True)

    owner: str = Field(min_length=1, max_length=100)
    repo: str = Field(min_length=1, max_length=100)
    ref: str | None = None

    @field_validator("owner", "repo")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _check_name(v)


class ContentRequest(RepositoryRequest):
    """Body of ``/api/repository/content``."""

    path: str = Field(min_length=1)


class InvalidateRequest(BaseModel):
    """Body of ``/api/cache/invalidate``."""

    model_config = ConfigDict(str_strip_whitespace=True)

    owner: str = Field(min_length=1)
    repo: str = Field(min_length=1)

    @field_validator("owner", "repo")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _check_name(v)
