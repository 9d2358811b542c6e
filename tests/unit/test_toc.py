"""Unit tests for markview.toc."""

from __future__ import annotations

from markview.models.toc import TocItem
from markview.toc import (
    HeadingSlugger,
    build_toc_tree,
    extract_headings,
    flatten_toc,
    generate_toc,
    slugify,
)


def _shape(forest: list[TocItem]) -> list:
    """Reduce a forest to nested (id, children) tuples for comparison."""
    return [(item.id, _shape(item.children)) for item in forest]


# ---------------------------------------------------------------------------
# slugify
# ---------------------------------------------------------------------------


class TestSlugify:
    def test_basic(self) -> None:
        assert slugify("Hello, World!") == "hello-world"

    def test_whitespace_runs(self) -> None:
        assert slugify("  Multiple   Spaces  ") == "multiple-spaces"

    def test_hyphen_runs_collapse(self) -> None:
        assert slugify("a -- b") == "a-b"

    def test_underscores_and_digits_kept(self) -> None:
        assert slugify("snake_case v2") == "snake_case-v2"

    def test_non_ascii_letters_dropped(self) -> None:
        assert slugify("Café au lait") == "caf-au-lait"

    def test_fallback_when_nothing_survives(self) -> None:
        assert slugify("!!!") == "heading"
        assert slugify("") == "heading"

    def test_inline_code_markers_removed(self) -> None:
        assert slugify("`parse()` options") == "parse-options"


class TestHeadingSlugger:
    def test_repeats_get_suffixes(self) -> None:
        slugger = HeadingSlugger()
        assert [slugger.slug("Intro") for _ in range(3)] == ["intro", "intro-1", "intro-2"]

    def test_suffix_never_collides_with_literal_heading(self) -> None:
        slugger = HeadingSlugger()
        ids = [slugger.slug(text) for text in ("Intro", "Intro", "Intro 1")]
        assert ids == ["intro", "intro-1", "intro-1-1"]
        assert len(set(ids)) == len(ids)

    def test_reset(self) -> None:
        slugger = HeadingSlugger()
        slugger.slug("Intro")
        slugger.reset()
        assert slugger.slug("Intro") == "intro"


# ---------------------------------------------------------------------------
# extract_headings
# ---------------------------------------------------------------------------


class TestExtractHeadings:
    def test_levels_one_to_four_only(self) -> None:
        markdown = "# One\n## Two\n### Three\n#### Four\n##### Five\n###### Six\n"
        headings = extract_headings(markdown)
        assert [(h.level, h.text) for h in headings] == [
            (1, "One"),
            (2, "Two"),
            (3, "Three"),
            (4, "Four"),
        ]

    def test_requires_space_after_hashes(self) -> None:
        assert extract_headings("#NoSpace\n####### Seven\n") == []

    def test_blank_heading_text_skipped(self) -> None:
        assert extract_headings("#   \n## Real\n")[0].text == "Real"
        assert len(extract_headings("#   \n## Real\n")) == 1

    def test_text_is_trimmed(self) -> None:
        assert extract_headings("##   Spaced out   \n")[0].text == "Spaced out"

    def test_fenced_code_is_ignored(self) -> None:
        markdown = (
            "# Real\n"
            "```bash\n"
            "# not a heading\n"
            "```\n"
            "~~~\n"
            "# still code\n"
            "```\n"
            "# still code, wrong fence closes nothing\n"
            "~~~\n"
            "## After\n"
        )
        assert [h.text for h in extract_headings(markdown)] == ["Real", "After"]

    def test_ids_unique_across_document(self) -> None:
        markdown = "# Setup\n## Setup\n### Setup\n"
        assert [h.id for h in extract_headings(markdown)] == ["setup", "setup-1", "setup-2"]

    def test_empty_document(self) -> None:
        assert extract_headings("") == []


# ---------------------------------------------------------------------------
# build_toc_tree
# ---------------------------------------------------------------------------


def _flat(*spec: tuple[int, str]) -> list[TocItem]:
    return [TocItem(id=name, text=name, level=level) for level, name in spec]


class TestBuildTocTree:
    def test_nesting(self) -> None:
        forest = build_toc_tree(_flat((1, "a"), (2, "b"), (3, "c"), (2, "d"), (1, "e")))
        assert _shape(forest) == [
            ("a", [("b", [("c", [])]), ("d", [])]),
            ("e", []),
        ]

    def test_document_starting_below_h1(self) -> None:
        forest = build_toc_tree(_flat((2, "a"), (1, "b"), (2, "c")))
        assert _shape(forest) == [("a", []), ("b", [("c", [])])]

    def test_skipped_levels_attach_to_nearest_ancestor(self) -> None:
        forest = build_toc_tree(_flat((1, "a"), (3, "b"), (2, "c")))
        assert _shape(forest) == [("a", [("b", []), ("c", [])])]

    def test_same_level_siblings(self) -> None:
        forest = build_toc_tree(_flat((2, "a"), (2, "b"), (2, "c")))
        assert _shape(forest) == [("a", []), ("b", []), ("c", [])]

    def test_input_not_mutated(self) -> None:
        flat = _flat((1, "a"), (2, "b"))
        build_toc_tree(flat)
        assert all(item.children == [] for item in flat)

    def test_empty(self) -> None:
        assert build_toc_tree([]) == []


class TestGenerateToc:
    def test_preorder_matches_document_order(self) -> None:
        markdown = "# Title\n## Install\n### pip\n## Usage\n# Appendix\n"
        forest = generate_toc(markdown)
        assert [item.id for item in flatten_toc(forest)] == [
            item.id for item in extract_headings(markdown)
        ]
        assert [item.id for item in flatten_toc(forest)] == [
            "title",
            "install",
            "pip",
            "usage",
            "appendix",
        ]

    def test_deterministic(self) -> None:
        markdown = "# A\n## B\n## B\n"
        assert _shape(generate_toc(markdown)) == _shape(generate_toc(markdown))

    def test_payload(self) -> None:
        payload = generate_toc("# A\n## B\n")[0].to_payload()
        assert payload == {
            "id": "a",
            "text": "A",
            "level": 1,
            "children": [{"id": "b", "text": "B", "level": 2, "children": []}],
        }
