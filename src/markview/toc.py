"""Table of contents generation for Markdown documents.

Single-pass heading extraction (H1–H4, headings inside fenced code blocks
suppressed), document-unique slug assignment, and a stack-based tree build.
Pure functions: the same text always yields the same forest.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from markview.models.toc import TocItem

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

_HEADING_RE = re.compile(r"^(#{1,6})\s+(.+)$")
_NON_SLUG_CHARS = re.compile(r"[^\w\s-]", re.ASCII)
_WHITESPACE_RUN = re.compile(r"\s+", re.ASCII)
_HYPHEN_RUN = re.compile(r"-+")

MAX_TOC_LEVEL = 4
FALLBACK_ID = "heading"


def slugify(text: str) -> str:
    """Turn heading text into an anchor id.

    ``"Hello, World!"`` → ``"hello-world"``. Falls back to ``"heading"`` when
    nothing survives.
    """
    slug = text.lower()
    slug = _NON_SLUG_CHARS.sub("", slug)
    slug = _WHITESPACE_RUN.sub("-", slug)
    slug = _HYPHEN_RUN.sub("-", slug).strip("-")
    return slug or FALLBACK_ID


class HeadingSlugger:
    """Issues document-unique heading ids.

    One instance per document. Repeated texts get ``-1``, ``-2``, ... in the
    order they are seen. A Markdown renderer should call ``slug`` for every
    heading it emits, in document order, so its ids line up with the TOC.
    """

    def __init__(self) -> None:
        self._issued: set[str] = set()

    def slug(self, text: str) -> str:
        base = slugify(text)
        candidate = base
        counter = 1
        while candidate in self._issued:
            candidate = f"{base}-{counter}"
            counter += 1
        self._issued.add(candidate)
        return candidate

    def reset(self) -> None:
        self._issued.clear()


def iter_fenced_lines(markdown: str, *, keepends: bool = False) -> Iterator[tuple[str, bool]]:
    """Yield ``(line, in_code)`` pairs.

    A fence opened with ``` only closes on ``` and likewise for ~~~.
    Fence delimiter lines count as code.
    """
    in_code_block = False
    fence: str | None = None

    for line in markdown.splitlines(keepends=keepends):
        stripped = line.strip()

        if stripped.startswith("```") or stripped.startswith("~~~"):
            current_fence = stripped[:3]
            if not in_code_block:
                in_code_block = True
                fence = current_fence
            elif current_fence == fence:
                in_code_block = False
                fence = None
            yield line, True
            continue

        yield line, in_code_block


def iter_headings(markdown: str) -> Iterator[tuple[int, str]]:
    """Yield ``(level, text)`` for every H1–H6 outside fenced code blocks."""
    for line, in_code in iter_fenced_lines(markdown):
        if in_code:
            continue

        match = _HEADING_RE.match(line)
        if not match:
            continue

        text = match.group(2).strip()
        if text:
            yield len(match.group(1)), text


def extract_headings(markdown: str) -> list[TocItem]:
    """Return the flat, in-document-order list of H1–H4 headings with ids."""
    slugger = HeadingSlugger()
    headings: list[TocItem] = []
    for level, text in iter_headings(markdown):
        if level > MAX_TOC_LEVEL:
            continue
        headings.append(TocItem(id=slugger.slug(text), text=text, level=level))
    return headings


def build_toc_tree(headings: Iterable[TocItem]) -> list[TocItem]:
    """Nest a flat heading list into a forest.

    Keeps a stack of open ancestors: pop while the top's level is >= the new
    heading's level, attach to whatever is left on top (or make it a root),
    then push.
    """
    roots: list[TocItem] = []
    stack: list[TocItem] = []

    for heading in headings:
        item = TocItem(id=heading.id, text=heading.text, level=heading.level)

        while stack and stack[-1].level >= item.level:
            stack.pop()

        if stack:
            stack[-1].children.append(item)
        else:
            roots.append(item)

        stack.append(item)

    return roots


def generate_toc(markdown: str) -> list[TocItem]:
    """Generate the table of contents forest for a Markdown document."""
    return build_toc_tree(extract_headings(markdown))


def flatten_toc(forest: Iterable[TocItem]) -> list[TocItem]:
    """Pre-order traversal: each node before its children."""
    result: list[TocItem] = []
    pending = list(reversed(list(forest)))
    while pending:
        item = pending.pop()
        result.append(item)
        pending.extend(reversed(item.children))
    return result
