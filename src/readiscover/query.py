from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Callable

from readiscover.config import Settings, get_settings
from readiscover.errors import (
    ApplicationError,
    InputError,
    QueryEmptyError,
    RewriteFailedError,
    SearchFailedError,
    SupersededError,
)
from readiscover.schemas import RewriteRequest, SearchHit, SearchRequest
from readiscover.service_client import BookService
from readiscover.transport import Sleeper
from readiscover.types import (
    IngestedResource,
    QueryOutcome,
    QueryRewriteResult,
    SearchResult,
    SearchRun,
    Segment,
)

logger = logging.getLogger(__name__)

PHASE_REWRITING = "rewriting"
PHASE_SEARCHING = "searching"
PHASE_COMPLETE = "complete"


@dataclass(frozen=True)
class QueryOptions:
    compare_mode: bool = False
    top_k: int | None = None
    min_rewrite_seconds: float | None = None


class QueryObserver:
    def phase_changed(self, phase: str) -> None:
        pass


def _default_query_id() -> str:
    return uuid.uuid4().hex


def to_search_result(hit: SearchHit) -> SearchResult:
    segments = None
    if hit.matched_segments is not None:
        segments = tuple(
            Segment(text=segment.text, is_match=segment.is_match)
            for segment in hit.matched_segments
        )
    return SearchResult(
        score=hit.score,
        chapter_number=hit.chapter_number,
        chapter_title=hit.chapter_title,
        book_title=hit.book_title,
        progress_percent=hit.progress_percent,
        text=hit.text,
        matched_segments=segments,
    )


class QueryPipeline:
    """Rewrite a question, then search the ingested books with the result.

    The rewrite phase always finishes before searching starts. In compare mode
    the enhanced and the original query are searched concurrently and both
    ranked lists are returned, in the order the service ranked them.
    """

    def __init__(
        self,
        service: BookService,
        *,
        settings: Settings | None = None,
        observer: QueryObserver | None = None,
        sleep: Sleeper | None = None,
        clock: Callable[[], float] = time.monotonic,
        query_id_factory: Callable[[], str] = _default_query_id,
    ) -> None:
        self._service = service
        self._settings = settings or get_settings()
        self._observer = observer or QueryObserver()
        self._sleep = sleep or asyncio.sleep
        self._clock = clock
        self._query_id_factory = query_id_factory
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    async def run(
        self,
        query: str,
        resources: Sequence[IngestedResource],
        options: QueryOptions | None = None,
    ) -> QueryOutcome:
        if not query or not query.strip():
            raise QueryEmptyError("Please enter some text")
        if not resources:
            raise InputError("No books have been loaded")

        options = options or QueryOptions()
        top_k = options.top_k if options.top_k is not None else self._settings.top_k
        if top_k < 1:
            raise InputError("top_k must be at least 1")
        min_rewrite_seconds = (
            options.min_rewrite_seconds
            if options.min_rewrite_seconds is not None
            else self._settings.min_rewrite_seconds
        )

        self._generation += 1
        generation = self._generation

        self._notify(generation, PHASE_REWRITING)
        rewrite = await self._rewrite(query, min_seconds=min_rewrite_seconds)
        self._ensure_current(generation)

        self._notify(generation, PHASE_SEARCHING)
        query_id = self._query_id_factory()
        filenames = [resource.filename for resource in resources]
        enhanced_text = rewrite.effective_query(query)

        searches = [
            self._search(
                enhanced_text,
                enhanced=True,
                filenames=filenames,
                top_k=top_k,
                query_id=query_id,
                keywords=rewrite.keywords,
            )
        ]
        if options.compare_mode:
            searches.append(
                self._search(
                    query,
                    enhanced=False,
                    filenames=filenames,
                    top_k=top_k,
                    query_id=query_id,
                    keywords=rewrite.keywords,
                )
            )

        settled = await asyncio.gather(*searches, return_exceptions=True)
        self._ensure_current(generation)
        for item in settled:
            if isinstance(item, BaseException):
                raise item
        runs = tuple(item for item in settled if isinstance(item, SearchRun))

        outcome = QueryOutcome(
            generation=generation,
            query=query,
            query_id=query_id,
            rewrite=rewrite,
            runs=runs,
        )
        logger.info(
            "Query %s searched %d book(s) with %d run(s)",
            query_id,
            len(filenames),
            len(runs),
        )
        self._notify(generation, PHASE_COMPLETE)
        return outcome

    async def _rewrite(self, query: str, *, min_seconds: float) -> QueryRewriteResult:
        started = self._clock()
        try:
            response = await self._service.rewrite_query(RewriteRequest(user_query=query))
        except ApplicationError as exc:
            raise RewriteFailedError(str(exc)) from exc

        remaining = min_seconds - (self._clock() - started)
        if remaining > 0:
            await self._sleep(remaining)

        enhanced = next(
            (
                candidate
                for candidate in (response.search_query, response.enhanced_query)
                if candidate is not None and candidate.strip()
            ),
            None,
        )
        if enhanced is None:
            logger.info("Rewrite was inconclusive, searching with the original query")
        return QueryRewriteResult(enhanced_query=enhanced, keywords=tuple(response.keywords))

    async def _search(
        self,
        text: str,
        *,
        enhanced: bool,
        filenames: list[str],
        top_k: int,
        query_id: str,
        keywords: tuple[str, ...],
    ) -> SearchRun:
        payload = SearchRequest(
            query=text,
            filenames=filenames,
            top_k=top_k,
            query_id=query_id,
            enhanced_query=enhanced,
            keywords=list(keywords) or None,
        )
        try:
            response = await self._service.search(payload)
        except ApplicationError as exc:
            raise SearchFailedError(str(exc)) from exc

        return SearchRun(
            query=text,
            enhanced=enhanced,
            results=tuple(to_search_result(hit) for hit in response.search_results),
        )

    def _ensure_current(self, generation: int) -> None:
        if generation != self._generation:
            logger.debug("Discarding stale query submission %d", generation)
            raise SupersededError(generation, self._generation)

    def _notify(self, generation: int, phase: str) -> None:
        if generation == self._generation:
            self._observer.phase_changed(phase)
