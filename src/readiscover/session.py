from __future__ import annotations

import logging
from types import TracebackType

from readiscover.config import Settings, get_settings
from readiscover.errors import ReadiscoverError, SupersededError
from readiscover.ingestion import (
    IngestionObserver,
    ResourceIngestionCoordinator,
    normalize_urls,
    params_from_settings,
)
from readiscover.query import QueryObserver, QueryOptions, QueryPipeline
from readiscover.service_client import BookService, HttpBookService
from readiscover.types import IngestedResource, IngestionBatch, IngestionParams, QueryOutcome

logger = logging.getLogger(__name__)


class ReaderSession:
    """Latest books, latest query outcome and latest error for one reader.

    Every action clears ``error`` when it starts and sets it when it fails, so
    the most recent failure replaces older ones and a success clears them.
    Results from a superseded action are dropped without touching state.
    """

    def __init__(
        self,
        service: BookService,
        *,
        settings: Settings | None = None,
        ingestion_observer: IngestionObserver | None = None,
        query_observer: QueryObserver | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._owned_service: HttpBookService | None = None
        self.coordinator = ResourceIngestionCoordinator(service, observer=ingestion_observer)
        self.pipeline = QueryPipeline(service, settings=self._settings, observer=query_observer)

        self.books: tuple[IngestedResource, ...] = ()
        self.batch: IngestionBatch | None = None
        self.outcome: QueryOutcome | None = None
        self.error: str | None = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        *,
        ingestion_observer: IngestionObserver | None = None,
        query_observer: QueryObserver | None = None,
    ) -> ReaderSession:
        settings = settings or get_settings()
        service = HttpBookService.from_settings(settings)
        session = cls(
            service,
            settings=settings,
            ingestion_observer=ingestion_observer,
            query_observer=query_observer,
        )
        session._owned_service = service
        return session

    async def load_books(
        self,
        raw_urls: str | None,
        params: IngestionParams | None = None,
    ) -> IngestionBatch | None:
        self.error = None
        self.books = ()
        self.batch = None

        try:
            urls = normalize_urls(raw_urls, default_urls=self._settings.default_book_urls)
            batch = await self.coordinator.ingest_all(
                urls, params or params_from_settings(self._settings)
            )
        except SupersededError:
            logger.debug("Ignoring superseded book batch")
            return None
        except ReadiscoverError as exc:
            self.error = str(exc)
            return None

        self.books = batch.books
        self.batch = batch
        return batch

    async def ask(
        self,
        query: str,
        *,
        compare_mode: bool = False,
        top_k: int | None = None,
    ) -> QueryOutcome | None:
        self.error = None
        self.outcome = None

        try:
            outcome = await self.pipeline.run(
                query,
                self.books,
                QueryOptions(compare_mode=compare_mode, top_k=top_k),
            )
        except SupersededError:
            logger.debug("Ignoring superseded query")
            return None
        except ReadiscoverError as exc:
            self.error = str(exc)
            return None

        self.outcome = outcome
        return outcome

    async def aclose(self) -> None:
        if self._owned_service is not None:
            await self._owned_service.aclose()

    async def __aenter__(self) -> ReaderSession:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        await self.aclose()
