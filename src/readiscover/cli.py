from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys

from readiscover.config import get_settings
from readiscover.ingestion import IngestionObserver
from readiscover.session import ReaderSession
from readiscover.status_rotator import StatusMessageRotator
from readiscover.types import (
    ELLIPSIS,
    IngestionBatch,
    ResourceRequest,
    ResourceStatus,
    SearchRun,
)
from readiscover.windowing import highlight, preview_result


class _ConsoleIngestionObserver(IngestionObserver):
    def status_changed(self, request: ResourceRequest, status: ResourceStatus) -> None:
        if not status.state.is_terminal:
            return
        suffix = f": {status.message}" if status.message else ""
        print(
            f"[readiscover] book {request.index + 1} {status.state.value} {request.url}{suffix}",
            file=sys.stderr,
            flush=True,
        )

    def title_received(self, request: ResourceRequest, title: str) -> None:
        print(f"[readiscover] book {request.index + 1} is {title!r}", file=sys.stderr, flush=True)


def _build_parser() -> argparse.ArgumentParser:
    settings = get_settings()

    parser = argparse.ArgumentParser(
        prog="readiscover",
        description="Load books into the readiscover service and search them",
    )
    parser.add_argument("query", help="Natural-language question to search the books with")
    parser.add_argument(
        "--books",
        default=None,
        help="Comma separated book URLs (defaults to the configured reading list)",
    )
    parser.add_argument(
        "--compare",
        action="store_true",
        help="Also search with the original query and show both result lists",
    )
    parser.add_argument(
        "--top-k",
        type=int,
        default=settings.top_k,
        help="Number of passages to return per search",
    )
    parser.add_argument(
        "--context-chars",
        type=int,
        default=settings.context_chars,
        help="Characters of context kept on each side of a matched passage",
    )
    parser.add_argument(
        "--full",
        action="store_true",
        help="Print whole passages instead of windowed excerpts",
    )
    return parser


def _emphasize(text: str, keywords: tuple[str, ...]) -> str:
    return "".join(
        f"**{fragment}**" if is_keyword else fragment
        for fragment, is_keyword in highlight(text, keywords)
    )


def _format_run(
    run: SearchRun,
    keywords: tuple[str, ...],
    *,
    context_chars: int,
    full: bool,
) -> list[str]:
    label = "Enhanced query" if run.enhanced else "Original query"
    lines = [f"{label}: {run.query}"]
    if not run.results:
        lines.append("  (no matching passages)")

    for rank, result in enumerate(run.results, start=1):
        where = result.book_title or "Unknown book"
        if result.chapter_number is not None:
            where += f", chapter {result.chapter_number}"
        if result.chapter_title:
            where += f": {result.chapter_title}"
        if result.progress_percent is not None:
            where += f" ({result.progress_percent:.0f}% through)"
        lines.append(f"  #{rank} score={result.score:.3f} {where}")

        excerpt = "".join(
            "..." if item is ELLIPSIS else _emphasize(item.text, keywords)
            for item in preview_result(result, context_chars, full=full)
        )
        lines.append(f"     {' '.join(excerpt.split())}")
    return lines


def _report_batch(batch: IngestionBatch) -> None:
    for request, message in batch.failures:
        print(
            f"[readiscover] skipped {request.url}: {message}",
            file=sys.stderr,
            flush=True,
        )
    print(
        f"[readiscover] loaded {len(batch.books)} of {len(batch.statuses)} book(s)",
        file=sys.stderr,
        flush=True,
    )


async def _run(args: argparse.Namespace) -> int:
    settings = get_settings()

    async with ReaderSession.from_settings(
        settings, ingestion_observer=_ConsoleIngestionObserver()
    ) as session:
        rotator = StatusMessageRotator(
            settings.status_messages,
            on_message=lambda message: print(
                f"[readiscover] {message}", file=sys.stderr, flush=True
            ),
            interval_seconds=settings.status_interval_seconds,
        )
        async with rotator:
            batch = await session.load_books(args.books)
        if batch is None:
            print(f"[readiscover] failed: {session.error}", file=sys.stderr, flush=True)
            return 1
        _report_batch(batch)

        outcome = await session.ask(args.query, compare_mode=args.compare, top_k=args.top_k)
        if outcome is None:
            print(f"[readiscover] failed: {session.error}", file=sys.stderr, flush=True)
            return 1

    keywords = outcome.rewrite.keywords
    if keywords:
        print(f"Keywords: {', '.join(keywords)}")
    for run in outcome.runs:
        for line in _format_run(
            run, keywords, context_chars=args.context_chars, full=args.full
        ):
            print(line)
    return 0


def main() -> None:
    logging.basicConfig(
        level=os.getenv("READISCOVER_LOG_LEVEL", "WARNING").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    parser = _build_parser()
    args = parser.parse_args()

    try:
        exit_code = asyncio.run(_run(args))
    except Exception as exc:
        print(f"[readiscover] failed: {exc}", file=sys.stderr, flush=True)
        raise SystemExit(1) from exc

    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
