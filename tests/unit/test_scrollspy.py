"""Unit tests for markview.scrollspy.

A fake observer factory records each observer it hands out so tests can
deliver intersection notifications through the real callback, including
from observers that have since been replaced.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

import pytest

from markview.scrollspy import (
    HEADER_OFFSET,
    IntersectionEntry,
    ObserverOptions,
    ScrollSpy,
    scroll_to_heading,
)


class FakeObserver:
    def __init__(
        self,
        callback: Callable[[Sequence[IntersectionEntry]], None],
        options: ObserverOptions,
        present: set[str] | None,
    ) -> None:
        self.callback = callback
        self.options = options
        self.observed: list[str] = []
        self.connected = True
        self._present = present

    def observe(self, element_id: str) -> bool:
        if self._present is not None and element_id not in self._present:
            return False
        self.observed.append(element_id)
        return True

    def disconnect(self) -> None:
        self.connected = False

    def emit(self, *entries: IntersectionEntry) -> None:
        self.callback(list(entries))


class FakeObserverFactory:
    def __init__(self, present: set[str] | None = None) -> None:
        self.created: list[FakeObserver] = []
        self.present = present

    def __call__(
        self,
        callback: Callable[[Sequence[IntersectionEntry]], None],
        options: ObserverOptions,
    ) -> FakeObserver:
        observer = FakeObserver(callback, options, self.present)
        self.created.append(observer)
        return observer

    @property
    def current(self) -> FakeObserver:
        return self.created[-1]


class FakeViewport:
    def __init__(self, scroll_y: float, tops: dict[str, float]) -> None:
        self._scroll_y = scroll_y
        self.tops = tops
        self.scrolls: list[tuple[float, bool]] = []
        self.fragment: str | None = None

    @property
    def scroll_y(self) -> float:
        return self._scroll_y

    def element_top(self, element_id: str) -> float | None:
        return self.tops.get(element_id)

    def scroll_to(self, top: float, *, smooth: bool = True) -> None:
        self.scrolls.append((top, smooth))

    def set_fragment(self, fragment: str) -> None:
        self.fragment = fragment


def visible(heading_id: str, top: float) -> IntersectionEntry:
    return IntersectionEntry(id=heading_id, is_intersecting=True, top=top)


def hidden(heading_id: str, top: float = -500) -> IntersectionEntry:
    return IntersectionEntry(id=heading_id, is_intersecting=False, top=top)


@pytest.fixture()
def factory() -> FakeObserverFactory:
    return FakeObserverFactory()


@pytest.fixture()
def changes() -> list[str]:
    return []


@pytest.fixture()
def spy(factory: FakeObserverFactory, changes: list[str]) -> ScrollSpy:
    return ScrollSpy(factory, changes.append)


# ---------------------------------------------------------------------------
# Subscription lifecycle
# ---------------------------------------------------------------------------


class TestSubscription:
    def test_update_observes_every_heading(
        self, spy: ScrollSpy, factory: FakeObserverFactory
    ) -> None:
        spy.update(["intro", "install", "usage"])
        assert spy.subscribed
        assert factory.current.observed == ["intro", "install", "usage"]

    def test_default_observer_options(self, spy: ScrollSpy, factory: FakeObserverFactory) -> None:
        spy.update(["intro"])
        assert factory.current.options.root_margin == "-20% 0px -35% 0px"
        assert factory.current.options.thresholds == (0.0, 0.25, 0.5, 0.75, 1.0)

    def test_same_ids_do_not_resubscribe(
        self, spy: ScrollSpy, factory: FakeObserverFactory
    ) -> None:
        spy.update(["intro", "usage"])
        spy.update(["intro", "usage"])
        assert len(factory.created) == 1

    def test_new_ids_replace_observer(self, spy: ScrollSpy, factory: FakeObserverFactory) -> None:
        spy.update(["intro"])
        first = factory.current
        spy.update(["overview", "details"])
        assert first.connected is False
        assert factory.current is not first
        assert spy.heading_ids == ("overview", "details")

    def test_empty_heading_list_unsubscribes(
        self, spy: ScrollSpy, factory: FakeObserverFactory
    ) -> None:
        spy.update(["intro"])
        spy.update([])
        assert not spy.subscribed
        assert factory.created[0].connected is False

    def test_missing_elements_are_skipped(self, changes: list[str]) -> None:
        factory = FakeObserverFactory(present={"intro"})
        spy = ScrollSpy(factory, changes.append)
        spy.update(["intro", "ghost"])
        assert factory.current.observed == ["intro"]

    def test_dispose(self, spy: ScrollSpy, factory: FakeObserverFactory) -> None:
        spy.update(["intro"])
        spy.dispose()
        assert factory.current.connected is False
        assert not spy.subscribed
        with pytest.raises(RuntimeError):
            spy.update(["intro"])

    def test_context_manager_disposes(self, factory: FakeObserverFactory) -> None:
        with ScrollSpy(factory) as spy:
            spy.update(["intro"])
        assert factory.current.connected is False


# ---------------------------------------------------------------------------
# Active heading selection
# ---------------------------------------------------------------------------


class TestActiveHeading:
    def test_topmost_visible_wins(
        self, spy: ScrollSpy, factory: FakeObserverFactory, changes: list[str]
    ) -> None:
        spy.update(["a", "b", "c"])
        factory.current.emit(visible("c", 300), visible("b", 120), hidden("a"))
        assert spy.active_id == "b"
        assert changes == ["b"]

    def test_nothing_visible_keeps_previous(
        self, spy: ScrollSpy, factory: FakeObserverFactory, changes: list[str]
    ) -> None:
        spy.update(["a", "b"])
        factory.current.emit(visible("a", 10))
        factory.current.emit(hidden("a"), hidden("b"))
        assert spy.active_id == "a"
        assert changes == ["a"]

    def test_change_reported_once(
        self, spy: ScrollSpy, factory: FakeObserverFactory, changes: list[str]
    ) -> None:
        spy.update(["a", "b"])
        factory.current.emit(visible("a", 10))
        factory.current.emit(visible("a", 5))
        factory.current.emit(visible("b", 20))
        assert changes == ["a", "b"]

    def test_unknown_ids_ignored(
        self, spy: ScrollSpy, factory: FakeObserverFactory, changes: list[str]
    ) -> None:
        spy.update(["a"])
        factory.current.emit(visible("stranger", 0))
        assert spy.active_id is None
        assert changes == []

    def test_stale_observer_is_muted(
        self, spy: ScrollSpy, factory: FakeObserverFactory, changes: list[str]
    ) -> None:
        spy.update(["old"])
        stale = factory.current
        spy.update(["new"])
        stale.emit(visible("old", 0))
        assert spy.active_id is None
        factory.current.emit(visible("new", 0))
        assert changes == ["new"]

    def test_fragment_seeds_active_id(self, spy: ScrollSpy, changes: list[str]) -> None:
        spy.update(["intro", "usage"], fragment="#usage")
        assert spy.active_id == "usage"
        assert changes == ["usage"]

    def test_unknown_fragment_ignored(self, spy: ScrollSpy) -> None:
        spy.update(["intro"], fragment="#elsewhere")
        assert spy.active_id is None

    def test_active_id_cleared_when_heading_disappears(
        self, spy: ScrollSpy, factory: FakeObserverFactory
    ) -> None:
        spy.update(["a", "b"])
        factory.current.emit(visible("b", 0))
        spy.update(["a", "c"])
        assert spy.active_id is None

    def test_active_id_kept_when_heading_survives(
        self, spy: ScrollSpy, factory: FakeObserverFactory
    ) -> None:
        spy.update(["a", "b"])
        factory.current.emit(visible("a", 0))
        spy.update(["a", "c"])
        assert spy.active_id == "a"

    def test_notifications_after_dispose_ignored(
        self, spy: ScrollSpy, factory: FakeObserverFactory, changes: list[str]
    ) -> None:
        spy.update(["a"])
        observer = factory.current
        spy.dispose()
        observer.emit(visible("a", 0))
        assert changes == []


# ---------------------------------------------------------------------------
# Scrolling
# ---------------------------------------------------------------------------


class TestScrollTo:
    def test_offsets_for_fixed_header(self) -> None:
        viewport = FakeViewport(scroll_y=500, tops={"usage": 300})
        assert scroll_to_heading(viewport, "usage") is True
        assert viewport.scrolls == [(500 + 300 - HEADER_OFFSET, True)]
        assert viewport.fragment == "usage"

    def test_custom_offset(self) -> None:
        viewport = FakeViewport(scroll_y=0, tops={"usage": 300})
        scroll_to_heading(viewport, "usage", header_offset=0)
        assert viewport.scrolls == [(300, True)]

    def test_missing_heading(self) -> None:
        viewport = FakeViewport(scroll_y=0, tops={})
        assert scroll_to_heading(viewport, "ghost") is False
        assert viewport.scrolls == []
        assert viewport.fragment is None

    def test_spy_marks_clicked_heading_active(
        self, spy: ScrollSpy, changes: list[str]
    ) -> None:
        spy.update(["intro", "usage"])
        viewport = FakeViewport(scroll_y=0, tops={"intro": 0, "usage": 900})
        assert spy.scroll_to(viewport, "usage") is True
        assert spy.active_id == "usage"
        assert changes == ["usage"]
