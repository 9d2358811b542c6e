"""Scroll tracking for table of contents highlighting.

A ScrollSpy owns one viewport observer at a time. It is created by the view
with a change callback, re-subscribed whenever the document's heading ids
change, and disposed on teardown. Notifications from an observer that has
since been replaced are ignored.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from markview.protocols import Viewport, ViewportObserver

log = structlog.get_logger()

HEADER_OFFSET = 80


@dataclass(frozen=True)
class IntersectionEntry:
    """One heading's visibility change."""

    id: str
    is_intersecting: bool
    top: float  # Bounding-box top relative to the viewport


@dataclass(frozen=True)
class ObserverOptions:
    root_margin: str = "-20% 0px -35% 0px"
    thresholds: tuple[float, ...] = (0.0, 0.25, 0.5, 0.75, 1.0)


def scroll_to_heading(
    viewport: Viewport, heading_id: str, *, header_offset: float = HEADER_OFFSET
) -> bool:
    """Smooth-scroll so the heading clears the fixed header, then set the fragment.

    Returns False if the heading is not in the document.
    """
    top = viewport.element_top(heading_id)
    if top is None:
        return False
    viewport.scroll_to(top + viewport.scroll_y - header_offset, smooth=True)
    viewport.set_fragment(heading_id)
    return True


class ScrollSpy:
    """Reports the topmost visible heading id."""

    def __init__(
        self,
        observer_factory: Callable[
            [Callable[[Sequence[IntersectionEntry]], None], ObserverOptions], ViewportObserver
        ],
        on_change: Callable[[str], None] | None = None,
        *,
        options: ObserverOptions | None = None,
    ) -> None:
        self._factory = observer_factory
        self._on_change = on_change
        self.options = options or ObserverOptions()
        self._observer: ViewportObserver | None = None
        self._generation = 0
        self._heading_ids: tuple[str, ...] = ()
        self._disposed = False
        self.active_id: str | None = None

    @property
    def heading_ids(self) -> tuple[str, ...]:
        return self._heading_ids

    @property
    def subscribed(self) -> bool:
        return self._observer is not None

    def update(self, heading_ids: Iterable[str], fragment: str | None = None) -> None:
        """Observe a new heading list, replacing any previous subscription.

        ``fragment`` (with or without ``#``) seeds the active id when it names
        one of the headings.
        """
        if self._disposed:
            raise RuntimeError("ScrollSpy has been disposed")

        ids = tuple(heading_ids)
        if ids != self._heading_ids or self._observer is None:
            self._unsubscribe()
            self._heading_ids = ids
            if self.active_id not in ids:
                self.active_id = None
            if ids:
                self._subscribe()

        seed = (fragment or "").lstrip("#")
        if seed and seed in self._heading_ids:
            self._set_active(seed)

    def handle_intersections(self, entries: Sequence[IntersectionEntry]) -> None:
        """Pick the topmost intersecting heading; keep the old one if none are."""
        if self._disposed:
            return
        known = set(self._heading_ids)
        visible = sorted(
            (entry for entry in entries if entry.is_intersecting and entry.id in known),
            key=lambda entry: entry.top,
        )
        if visible:
            self._set_active(visible[0].id)

    def scroll_to(self, viewport: Viewport, heading_id: str) -> bool:
        """Handle a click on a TOC entry."""
        if not scroll_to_heading(viewport, heading_id):
            return False
        self._set_active(heading_id)
        return True

    def dispose(self) -> None:
        self._unsubscribe()
        self._heading_ids = ()
        self._disposed = True

    def __enter__(self) -> ScrollSpy:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.dispose()

    # ------------------------------------------------------------------

    def _subscribe(self) -> None:
        self._generation += 1
        generation = self._generation

        def deliver(entries: Sequence[IntersectionEntry]) -> None:
            if generation == self._generation:
                self.handle_intersections(entries)

        observer = self._factory(deliver, self.options)
        missing = [
            heading_id for heading_id in self._heading_ids if not observer.observe(heading_id)
        ]
        if missing:
            log.debug("scrollspy_headings_missing", missing=missing)
        self._observer = observer

    def _unsubscribe(self) -> None:
        # Bumping the generation mutes callbacks from the old observer
        self._generation += 1
        if self._observer is not None:
            self._observer.disconnect()
            self._observer = None

    def _set_active(self, heading_id: str) -> None:
        if heading_id == self.active_id:
            return
        self.active_id = heading_id
        if self._on_change is not None:
            self._on_change(heading_id)
