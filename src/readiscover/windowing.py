"""Excerpts around a matched passage, and keyword highlighting.

A search result may carry its chunk as a sequence of segments, one of which
(the first with ``is_match`` set) is the passage the service matched. For
display the sequence is reduced to that segment and its immediate
neighbours, with the neighbours cut to ``context_chars`` characters and
``ELLIPSIS`` markers standing in for whatever was left out.

Only the first matched segment is windowed. When a result carries several
disjoint match runs the later ones are shown only if they happen to be the
immediate successor.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import replace

from readiscover.types import ELLIPSIS, EllipsisMarker, SearchResult, Segment

PreviewItem = Segment | EllipsisMarker

DEFAULT_CONTEXT_CHARS = 100


def first_match_index(items: Sequence[object]) -> int | None:
    for index, item in enumerate(items):
        if isinstance(item, Segment) and item.is_match:
            return index
    return None


def preview(
    segments: Iterable[PreviewItem],
    context_chars: int = DEFAULT_CONTEXT_CHARS,
) -> list[PreviewItem]:
    """Window ``segments`` around the first matched segment.

    Emits, in order: a marker when anything precedes the match; the
    predecessor cut to its last ``context_chars`` characters; the match
    itself, untouched; the successor cut to its first ``context_chars``
    characters; a marker when the successor was cut or more segments follow
    it. A neighbour cut down to nothing is left out. Without a matched segment the input comes back unchanged, so calling
    this on its own output for an unmatched sequence is a no-op.
    """
    if context_chars < 0:
        raise ValueError("context_chars must be >= 0")

    items = list(segments)
    index = first_match_index(items)
    if index is None:
        return items

    window: list[PreviewItem] = []

    if index > 0:
        before = items[index - 1]
        window.append(ELLIPSIS)
        if isinstance(before, Segment):
            tail = _tail(before.text, context_chars)
            if tail:
                window.append(replace(before, text=tail))

    window.append(items[index])

    if index + 1 < len(items):
        after = items[index + 1]
        trimmed = False
        if isinstance(after, Segment):
            trimmed = len(after.text) > context_chars
            head = after.text[:context_chars]
            if head:
                window.append(replace(after, text=head))
        if trimmed or index + 2 < len(items):
            window.append(ELLIPSIS)

    return window


def expand(segments: Iterable[PreviewItem]) -> list[PreviewItem]:
    """Unwindowed view: every item as given, with nothing trimmed or hidden."""
    return list(segments)


def result_segments(result: SearchResult) -> list[Segment]:
    if result.matched_segments is None:
        return [Segment(text=result.text, is_match=False)]
    return list(result.matched_segments)


def preview_result(
    result: SearchResult,
    context_chars: int = DEFAULT_CONTEXT_CHARS,
    *,
    full: bool = False,
) -> list[PreviewItem]:
    segments = result_segments(result)
    if full:
        return expand(segments)
    return preview(segments, context_chars)


def highlight(text: str, keywords: Iterable[str]) -> list[tuple[str, bool]]:
    """Split ``text`` into ``(fragment, is_keyword)`` pairs.

    Matching is case-insensitive on whole tokens; keywords are escaped, so
    regex metacharacters in them are literal. Longer keywords win when two
    overlap. Joining the fragments gives back ``text`` exactly.
    """
    if not text:
        return []

    terms = sorted(
        {keyword.strip() for keyword in keywords if keyword and keyword.strip()},
        key=len,
        reverse=True,
    )
    if not terms:
        return [(text, False)]

    pattern = re.compile(
        r"(?<!\w)(?:" + "|".join(re.escape(term) for term in terms) + r")(?!\w)",
        re.IGNORECASE,
    )

    fragments: list[tuple[str, bool]] = []
    cursor = 0
    for match in pattern.finditer(text):
        if match.start() > cursor:
            fragments.append((text[cursor:match.start()], False))
        fragments.append((match.group(0), True))
        cursor = match.end()
    if cursor < len(text):
        fragments.append((text[cursor:], False))
    return fragments


def render_preview(items: Iterable[PreviewItem], *, marker: str = "...") -> str:
    return "".join(marker if item is ELLIPSIS else item.text for item in items)


def _tail(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    if limit == 0:
        return ""
    return text[-limit:]
