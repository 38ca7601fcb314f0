import pytest

from readiscover.types import ELLIPSIS, SearchResult, Segment
from readiscover.windowing import (
    expand,
    highlight,
    preview,
    preview_result,
    render_preview,
)


def test_long_left_neighbour_keeps_its_last_context_chars() -> None:
    left = "".join(chr(ord("a") + index % 26) for index in range(250))
    match = Segment("the matched passage", is_match=True)

    window = preview([Segment(left), match], context_chars=100)

    assert window == [ELLIPSIS, Segment(left[-100:]), match]
    assert len(window[1].text) == 100


def test_unmatched_sequence_is_returned_unchanged_and_idempotent() -> None:
    segments = [Segment("one"), Segment("two"), Segment("three")]

    once = preview(segments)
    twice = preview(once)

    assert once == segments
    assert twice == once


def test_already_windowed_sequence_without_match_is_stable() -> None:
    windowed = [ELLIPSIS, Segment("tail of the text"), ELLIPSIS]

    assert preview(windowed) == windowed


def test_match_with_short_neighbours_is_shown_whole() -> None:
    segments = [
        Segment("far before"),
        Segment("just before "),
        Segment("MATCH", is_match=True),
        Segment(" just after"),
    ]

    assert preview(segments, context_chars=100) == [
        ELLIPSIS,
        Segment("just before "),
        Segment("MATCH", is_match=True),
        Segment(" just after"),
    ]


def test_long_successor_is_cut_and_followed_by_one_marker() -> None:
    right = "x" * 150
    segments = [
        Segment("MATCH", is_match=True),
        Segment(right),
        Segment("hidden"),
    ]

    assert preview(segments, context_chars=100) == [
        Segment("MATCH", is_match=True),
        Segment("x" * 100),
        ELLIPSIS,
    ]


def test_hidden_segments_after_short_successor_add_marker() -> None:
    segments = [Segment("MATCH", is_match=True), Segment("short"), Segment("hidden")]

    assert preview(segments) == [Segment("MATCH", is_match=True), Segment("short"), ELLIPSIS]


def test_match_alone_has_no_markers() -> None:
    match = Segment("only the match", is_match=True)

    assert preview([match]) == [match]


def test_matched_segment_is_never_trimmed() -> None:
    match = Segment("m" * 500, is_match=True)

    assert preview([Segment("a"), match, Segment("b")], context_chars=10)[2] == match


def test_only_first_match_run_is_windowed() -> None:
    segments = [
        Segment("a"),
        Segment("first", is_match=True),
        Segment("b"),
        Segment("second", is_match=True),
    ]

    assert preview(segments) == [
        ELLIPSIS,
        Segment("a"),
        Segment("first", is_match=True),
        Segment("b"),
        ELLIPSIS,
    ]


def test_zero_context_keeps_only_markers_around_match() -> None:
    segments = [Segment("before"), Segment("MATCH", is_match=True), Segment("after")]

    assert preview(segments, context_chars=0) == [
        ELLIPSIS,
        Segment("MATCH", is_match=True),
        ELLIPSIS,
    ]


def test_zero_context_emits_no_empty_segments() -> None:
    segments = [Segment("x"), Segment("y"), Segment("MATCH", is_match=True), Segment("z")]

    window = preview(segments, context_chars=0)

    assert all(item is ELLIPSIS or item.text for item in window)
    assert window == [ELLIPSIS, Segment("MATCH", is_match=True), ELLIPSIS]


def test_negative_context_is_rejected() -> None:
    with pytest.raises(ValueError):
        preview([Segment("x", is_match=True)], context_chars=-1)


def test_expand_returns_full_sequence_copy() -> None:
    segments = [Segment("a"), Segment("b", is_match=True), Segment("c")]

    expanded = expand(segments)

    assert expanded == segments
    assert expanded is not segments


def test_preview_result_without_segments_uses_text() -> None:
    result = SearchResult(score=0.5, chapter_number=2, chapter_title="Two", text="plain text")

    assert preview_result(result) == [Segment("plain text")]


def test_render_preview_joins_markers() -> None:
    items = [ELLIPSIS, Segment("left "), Segment("match", is_match=True), ELLIPSIS]

    assert render_preview(items) == "...left match..."
    assert render_preview(items, marker="…") == "…left match…"


def test_highlight_is_case_insensitive_and_keeps_casing() -> None:
    fragments = highlight("The Wizard said: wizards and WIZARD.", ["wizard"])

    assert fragments == [
        ("The ", False),
        ("Wizard", True),
        (" said: wizards and ", False),
        ("WIZARD", True),
        (".", False),
    ]
    assert "".join(text for text, _ in fragments) == "The Wizard said: wizards and WIZARD."


def test_highlight_escapes_regex_characters() -> None:
    fragments = highlight("Costs (approx.) 3.50 or 3x50", ["(approx.)", "3.50"])

    assert ("(approx.)", True) in fragments
    assert ("3.50", True) in fragments
    assert not any(text == "3x50" and flag for text, flag in fragments)


def test_highlight_prefers_longer_keywords() -> None:
    fragments = highlight("the tin woodman", ["tin", "tin woodman"])

    assert fragments == [("the ", False), ("tin woodman", True)]


def test_highlight_without_keywords_returns_whole_text() -> None:
    assert highlight("nothing to mark", []) == [("nothing to mark", False)]
    assert highlight("nothing to mark", ["", "  "]) == [("nothing to mark", False)]
    assert highlight("", ["wizard"]) == []
