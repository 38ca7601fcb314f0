"""Wire models for the ingestion, rewrite and search endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class IngestRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    url: str = Field(min_length=1)
    target_chunk_size: int = Field(gt=0)
    sentence_overlap: int = Field(gt=0)
    small_paragraph_length: int = Field(gt=0)
    small_paragraph_overlap: int = Field(gt=0)


class IngestResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    filename: str = Field(min_length=1)
    book_title: str = ""
    book_author: str = ""

    @field_validator("book_title", "book_author", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class RewriteRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    user_query: str = Field(min_length=1)


class RewriteResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    search_query: str | None = None
    enhanced_query: str | None = None
    keywords: list[str] = Field(default_factory=list)

    @field_validator("keywords", mode="before")
    @classmethod
    def _none_to_list(cls, value: Any) -> Any:
        return [] if value is None else value


class SearchRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    query: str = Field(min_length=1)
    filenames: list[str]
    top_k: int = Field(ge=1)
    query_id: str
    enhanced_query: bool
    keywords: list[str] | None = None


class SegmentPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    text: str
    is_match: bool = False


class SearchHit(BaseModel):
    model_config = ConfigDict(extra="ignore")

    score: float = Field(ge=0.0, le=1.0)
    chapter_number: int | None = None
    chapter_title: str = ""
    book_title: str | None = None
    progress_percent: float | None = Field(default=None, ge=0.0, le=100.0)
    text: str = ""
    matched_segments: list[SegmentPayload] | None = None

    @field_validator("chapter_title", "text", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class SearchResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    search_results: list[SearchHit] = Field(default_factory=list)

    @field_validator("search_results", mode="before")
    @classmethod
    def _none_to_list(cls, value: Any) -> Any:
        return [] if value is None else value
