"""Regex include/exclude filtering for Markdown file lists.

Pure functions. They never mutate the input list and never raise for a bad
pattern. An invalid pattern comes back as ``FilterResult.error`` together
with the unfiltered list.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from markview.models.github import MarkdownFile


@dataclass(frozen=True)
class FilterResult:
    files: list[MarkdownFile]
    error: str | None = None


@dataclass(frozen=True)
class FilterPreset:
    name: str
    include: str
    exclude: str


FILTER_PRESETS: dict[str, FilterPreset] = {
    "documentation": FilterPreset(name="Documentation Only", include=r"^docs/", exclude=""),
    "no_tests": FilterPreset(
        name="Exclude Tests", include="", exclude=r"test|spec|\.test\.|_test\."
    ),
    "readmes": FilterPreset(name="READMEs Only", include="README", exclude=""),
    "root_only": FilterPreset(name="Root Files Only", include=r"^[^/]+\.md$", exclude=""),
}


def _is_blank(pattern: str | None) -> bool:
    return not pattern or not pattern.strip()


def _compile(pattern: str, case_sensitive: bool) -> re.Pattern[str]:
    return re.compile(pattern, 0 if case_sensitive else re.IGNORECASE)


def validate_regex(pattern: str | None) -> str | None:
    """Return an error message if ``pattern`` does not compile, else ``None``."""
    if _is_blank(pattern):
        return None
    try:
        re.compile(pattern)  # type: ignore[arg-type]
    except re.error as exc:
        return f"Invalid regex pattern: {exc}"
    return None


def apply_include_filter(
    files: Sequence[MarkdownFile],
    pattern: str | None,
    *,
    case_sensitive: bool = False,
) -> FilterResult:
    """Keep files whose path matches ``pattern`` anywhere."""
    if _is_blank(pattern):
        return FilterResult(files=list(files))
    try:
        regex = _compile(pattern, case_sensitive)  # type: ignore[arg-type]
    except re.error as exc:
        return FilterResult(files=list(files), error=f"Invalid regex pattern: {exc}")
    return FilterResult(files=[f for f in files if regex.search(f.path)])


def apply_exclude_filter(
    files: Sequence[MarkdownFile],
    pattern: str | None,
    *,
    case_sensitive: bool = False,
) -> FilterResult:
    """Drop files whose path matches ``pattern`` anywhere."""
    if _is_blank(pattern):
        return FilterResult(files=list(files))
    try:
        regex = _compile(pattern, case_sensitive)  # type: ignore[arg-type]
    except re.error as exc:
        return FilterResult(files=list(files), error=f"Invalid regex pattern: {exc}")
    return FilterResult(files=[f for f in files if not regex.search(f.path)])


def apply_filters(
    files: Sequence[MarkdownFile],
    include_pattern: str | None,
    exclude_pattern: str | None,
    *,
    case_sensitive: bool = False,
) -> FilterResult:
    """Apply include, then exclude. An include error short-circuits."""
    included = apply_include_filter(files, include_pattern, case_sensitive=case_sensitive)
    if included.error:
        return included
    return apply_exclude_filter(included.files, exclude_pattern, case_sensitive=case_sensitive)
