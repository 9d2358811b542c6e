from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class TocItem:
    """One heading in a table of contents forest."""

    id: str  # Unique within one generated TOC
    text: str
    level: int  # 1-4
    children: list[TocItem] = field(default_factory=list)

    def to_payload(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "level": self.level,
            "children": [child.to_payload() for child in self.children],
        }
