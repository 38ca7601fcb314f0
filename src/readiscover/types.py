from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Final

from readiscover.errors import InputError, InvalidTransition


@dataclass(frozen=True)
class IngestionParams:
    target_chunk_size: int = 1200
    sentence_overlap: int = 3
    small_paragraph_length: int = 300
    small_paragraph_overlap: int = 3

    def __post_init__(self) -> None:
        for name in (
            "target_chunk_size",
            "sentence_overlap",
            "small_paragraph_length",
            "small_paragraph_overlap",
        ):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise InputError(f"{name} must be a positive integer")


@dataclass(frozen=True)
class ResourceRequest:
    resource_id: str
    index: int
    url: str
    params: IngestionParams


class ResourceState(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETE = "complete"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (ResourceState.COMPLETE, ResourceState.ERROR)


_ALLOWED_TRANSITIONS: Final[dict[ResourceState, frozenset[ResourceState]]] = {
    ResourceState.PENDING: frozenset({ResourceState.PROCESSING}),
    ResourceState.PROCESSING: frozenset({ResourceState.COMPLETE, ResourceState.ERROR}),
    ResourceState.COMPLETE: frozenset(),
    ResourceState.ERROR: frozenset(),
}


@dataclass(frozen=True)
class ResourceStatus:
    state: ResourceState
    message: str | None = None

    @classmethod
    def pending(cls) -> ResourceStatus:
        return cls(ResourceState.PENDING)

    @classmethod
    def processing(cls) -> ResourceStatus:
        return cls(ResourceState.PROCESSING)

    @classmethod
    def complete(cls) -> ResourceStatus:
        return cls(ResourceState.COMPLETE)

    @classmethod
    def error(cls, message: str) -> ResourceStatus:
        return cls(ResourceState.ERROR, message)

    def advance(self, target: ResourceStatus) -> ResourceStatus:
        """Return ``target`` if moving there from this status is a forward step."""
        if target.state not in _ALLOWED_TRANSITIONS[self.state]:
            raise InvalidTransition(
                f"cannot move resource status from {self.state.value} to {target.state.value}"
            )
        return target


@dataclass(frozen=True)
class IngestedResource:
    filename: str
    title: str
    author: str
    source_url: str


@dataclass(frozen=True)
class IngestionBatch:
    generation: int
    books: tuple[IngestedResource, ...]
    statuses: dict[str, ResourceStatus]
    failures: tuple[tuple[ResourceRequest, str], ...] = ()

    @property
    def partial(self) -> bool:
        return bool(self.failures) and bool(self.books)


@dataclass(frozen=True)
class QueryRewriteResult:
    enhanced_query: str | None
    keywords: tuple[str, ...] = ()

    def effective_query(self, original: str) -> str:
        return self.enhanced_query if self.enhanced_query is not None else original


@dataclass(frozen=True)
class Segment:
    text: str
    is_match: bool = False


class EllipsisMarker:
    _instance: EllipsisMarker | None = None

    def __new__(cls) -> EllipsisMarker:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ELLIPSIS"


ELLIPSIS: Final = EllipsisMarker()


@dataclass(frozen=True)
class SearchResult:
    score: float
    chapter_number: int | None
    chapter_title: str
    text: str
    book_title: str | None = None
    progress_percent: float | None = None
    matched_segments: tuple[Segment, ...] | None = None


@dataclass(frozen=True)
class SearchRun:
    query: str
    enhanced: bool
    results: tuple[SearchResult, ...]


@dataclass(frozen=True)
class QueryOutcome:
    generation: int
    query: str
    query_id: str
    rewrite: QueryRewriteResult
    runs: tuple[SearchRun, ...] = field(default_factory=tuple)

    @property
    def compare_mode(self) -> bool:
        return len(self.runs) > 1

    @property
    def primary(self) -> SearchRun:
        return next(run for run in self.runs if run.enhanced)

    @property
    def original(self) -> SearchRun | None:
        return next((run for run in self.runs if not run.enhanced), None)
