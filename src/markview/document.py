"""Assemble a fetched Markdown file into what the viewer renders."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from markview.assets import rewrite_markdown_assets
from markview.toc import flatten_toc, generate_toc

if TYPE_CHECKING:
    from markview.models.github import FileContent
    from markview.models.toc import TocItem


@dataclass(frozen=True)
class RenderedDocument:
    path: str
    sha: str
    markdown: str  # Asset URLs already absolute
    toc: list[TocItem] = field(default_factory=list)
    heading_ids: tuple[str, ...] = ()

    def to_payload(self) -> dict:
        return {
            "path": self.path,
            "sha": self.sha,
            "markdown": self.markdown,
            "toc": [item.to_payload() for item in self.toc],
            "headingIds": list(self.heading_ids),
        }


def build_document(file: FileContent, owner: str, repo: str, ref: str = "main") -> RenderedDocument:
    """TOC from the original text, assets rewritten against ``file.path``."""
    toc = generate_toc(file.content)
    return RenderedDocument(
        path=file.path,
        sha=file.sha,
        markdown=rewrite_markdown_assets(file.content, owner, repo, file.path, ref),
        toc=toc,
        heading_ids=tuple(item.id for item in flatten_toc(toc)),
    )
