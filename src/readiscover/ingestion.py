from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Sequence

from readiscover.config import Settings, get_settings
from readiscover.errors import (
    AllFailedError,
    ApplicationError,
    EmptyInputError,
    ServiceCallError,
    SupersededError,
)
from readiscover.schemas import IngestRequest
from readiscover.service_client import BookService
from readiscover.types import (
    IngestedResource,
    IngestionBatch,
    IngestionParams,
    ResourceRequest,
    ResourceStatus,
)

logger = logging.getLogger(__name__)


class IngestionObserver:
    """Receives progress from a batch. Subclass and override what you need."""

    def status_changed(self, request: ResourceRequest, status: ResourceStatus) -> None:
        pass

    def title_received(self, request: ResourceRequest, title: str) -> None:
        pass

    def batch_settled(self, batch: IngestionBatch) -> None:
        pass


def normalize_urls(
    raw: str | None,
    *,
    default_urls: Iterable[str],
    delimiter: str = ",",
) -> list[str]:
    text = (raw or "").strip()
    if not text:
        urls = [url.strip() for url in default_urls if url.strip()]
    elif delimiter in text:
        urls = [part.strip() for part in text.split(delimiter) if part.strip()]
    else:
        urls = [text]

    if not urls:
        raise EmptyInputError("Please enter at least one book URL")
    return urls


def params_from_settings(settings: Settings | None = None) -> IngestionParams:
    settings = settings or get_settings()
    return IngestionParams(
        target_chunk_size=settings.target_chunk_size,
        sentence_overlap=settings.sentence_overlap,
        small_paragraph_length=settings.small_paragraph_length,
        small_paragraph_overlap=settings.small_paragraph_overlap,
    )


class ResourceIngestionCoordinator:
    """Fan out one ingestion call per URL and join them into a settled batch.

    Each resource owns one key of the batch's status table, so concurrently
    settling calls never write the same slot. Starting a new batch bumps the
    generation; a batch that is no longer current stops notifying the
    observer and raises ``SupersededError`` instead of returning.
    """

    def __init__(
        self,
        service: BookService,
        *,
        observer: IngestionObserver | None = None,
    ) -> None:
        self._service = service
        self._observer = observer or IngestionObserver()
        self._generation = 0
        self._statuses: dict[str, ResourceStatus] = {}

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def statuses(self) -> dict[str, ResourceStatus]:
        return dict(self._statuses)

    async def ingest_all(
        self,
        urls: Sequence[str],
        params: IngestionParams | None = None,
    ) -> IngestionBatch:
        cleaned = [url.strip() for url in urls if url and url.strip()]
        if not cleaned:
            raise EmptyInputError("Please enter at least one book URL")

        params = params or params_from_settings()
        self._generation += 1
        generation = self._generation

        requests = [
            ResourceRequest(resource_id=f"r{index}", index=index, url=url, params=params)
            for index, url in enumerate(cleaned)
        ]
        table = {request.resource_id: ResourceStatus.pending() for request in requests}
        self._statuses = table
        for request in requests:
            self._observer.status_changed(request, table[request.resource_id])

        logger.info("Ingesting %d book(s) in batch %d", len(requests), generation)
        outcomes = await asyncio.gather(
            *(self._ingest_one(generation, table, request) for request in requests)
        )

        if generation != self._generation:
            logger.debug("Discarding stale ingestion batch %d", generation)
            raise SupersededError(generation, self._generation)

        books: list[IngestedResource] = []
        failures: list[tuple[ResourceRequest, str]] = []
        for request, book, error in outcomes:
            if book is not None:
                books.append(book)
            else:
                failures.append((request, error or "Unknown error"))

        if not books:
            raise AllFailedError(_summarize_failures(failures), failures=failures)

        batch = IngestionBatch(
            generation=generation,
            books=tuple(books),
            statuses=dict(table),
            failures=tuple(failures),
        )
        if failures:
            logger.warning(
                "Batch %d loaded %d of %d book(s)", generation, len(books), len(requests)
            )
        else:
            logger.info("Batch %d loaded %d book(s)", generation, len(books))
        self._observer.batch_settled(batch)
        return batch

    async def _ingest_one(
        self,
        generation: int,
        table: dict[str, ResourceStatus],
        request: ResourceRequest,
    ) -> tuple[ResourceRequest, IngestedResource | None, str | None]:
        self._transition(generation, table, request, ResourceStatus.processing())

        payload = IngestRequest(
            url=request.url,
            target_chunk_size=request.params.target_chunk_size,
            sentence_overlap=request.params.sentence_overlap,
            small_paragraph_length=request.params.small_paragraph_length,
            small_paragraph_overlap=request.params.small_paragraph_overlap,
        )
        try:
            response = await self._service.ingest_book(payload)
        except (ServiceCallError, ApplicationError) as exc:
            message = str(exc) or exc.__class__.__name__
            logger.warning("Failed to ingest %s: %s", request.url, message)
            self._transition(generation, table, request, ResourceStatus.error(message))
            return request, None, message
        except Exception as exc:
            message = str(exc) or exc.__class__.__name__
            logger.exception("Unexpected error ingesting %s", request.url)
            self._transition(generation, table, request, ResourceStatus.error(message))
            return request, None, message

        book = IngestedResource(
            filename=response.filename,
            title=response.book_title,
            author=response.book_author,
            source_url=request.url,
        )
        self._transition(generation, table, request, ResourceStatus.complete())
        if book.title and generation == self._generation:
            self._observer.title_received(request, book.title)
        return request, book, None

    def _transition(
        self,
        generation: int,
        table: dict[str, ResourceStatus],
        request: ResourceRequest,
        status: ResourceStatus,
    ) -> None:
        table[request.resource_id] = table[request.resource_id].advance(status)
        if generation == self._generation:
            self._observer.status_changed(request, status)


def _summarize_failures(failures: list[tuple[ResourceRequest, str]]) -> str:
    if len(failures) == 1:
        return failures[0][1]
    details = "; ".join(f"{request.url}: {message}" for request, message in failures)
    return f"All {len(failures)} books failed to load. {details}"
