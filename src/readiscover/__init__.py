from readiscover.ingestion import ResourceIngestionCoordinator, normalize_urls
from readiscover.query import QueryOptions, QueryPipeline
from readiscover.service_client import BookService, HttpBookService
from readiscover.session import ReaderSession
from readiscover.transport import RetryingTransport
from readiscover.types import (
    ELLIPSIS,
    IngestedResource,
    IngestionBatch,
    IngestionParams,
    QueryOutcome,
    SearchResult,
    Segment,
)
from readiscover.windowing import highlight, preview

__all__ = [
    "ELLIPSIS",
    "BookService",
    "HttpBookService",
    "IngestedResource",
    "IngestionBatch",
    "IngestionParams",
    "QueryOptions",
    "QueryOutcome",
    "QueryPipeline",
    "ReaderSession",
    "ResourceIngestionCoordinator",
    "RetryingTransport",
    "SearchResult",
    "Segment",
    "highlight",
    "normalize_urls",
    "preview",
]
