from __future__ import annotations

import json
import logging
from typing import Any, Protocol, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from readiscover.config import Settings, get_settings
from readiscover.errors import (
    ApplicationError,
    RequestRejectedError,
    ServiceCallError,
    TransientTransportError,
)
from readiscover.schemas import (
    IngestRequest,
    IngestResponse,
    RewriteRequest,
    RewriteResponse,
    SearchRequest,
    SearchResponse,
)
from readiscover.transport import RetryingTransport, is_retryable_status

logger = logging.getLogger(__name__)

ResponseModel = TypeVar("ResponseModel", bound=BaseModel)


class BookService(Protocol):
    async def ingest_book(self, payload: IngestRequest) -> IngestResponse: ...

    async def rewrite_query(self, payload: RewriteRequest) -> RewriteResponse: ...

    async def search(self, payload: SearchRequest) -> SearchResponse: ...


class HttpBookService:
    """``BookService`` over HTTP: every call goes through a ``RetryingTransport``."""

    def __init__(
        self,
        *,
        transport: RetryingTransport,
        settings: Settings | None = None,
    ) -> None:
        self._transport = transport
        self._settings = settings or get_settings()

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> HttpBookService:
        settings = settings or get_settings()
        transport = RetryingTransport(
            client=httpx.AsyncClient(
                timeout=settings.timeout_seconds,
                verify=settings.verify_tls,
            ),
            max_retries=settings.max_retries,
            initial_delay=settings.initial_delay_seconds,
        )
        return cls(transport=transport, settings=settings)

    async def ingest_book(self, payload: IngestRequest) -> IngestResponse:
        return await self._call(
            "ingest", self._settings.ingest_path, payload, IngestResponse
        )

    async def rewrite_query(self, payload: RewriteRequest) -> RewriteResponse:
        return await self._call(
            "rewrite", self._settings.rewrite_path, payload, RewriteResponse
        )

    async def search(self, payload: SearchRequest) -> SearchResponse:
        return await self._call(
            "search", self._settings.search_path, payload, SearchResponse
        )

    async def aclose(self) -> None:
        await self._transport.aclose()

    async def _call(
        self,
        endpoint: str,
        path: str,
        payload: BaseModel,
        response_model: type[ResponseModel],
    ) -> ResponseModel:
        request = httpx.Request(
            "POST",
            self._settings.endpoint_url(path),
            headers={"Content-Type": "application/json"},
            json=payload.model_dump(exclude_none=True),
        )

        try:
            response = await self._transport.send(request)
        except httpx.TransportError as exc:
            raise TransientTransportError(f"Network error: {exc}") from exc
        except httpx.HTTPError as exc:
            raise ServiceCallError(f"Request failed: {exc}") from exc

        if not response.is_success:
            message = f"HTTP error! status: {response.status_code}"
            if is_retryable_status(response.status_code):
                raise TransientTransportError(message, status_code=response.status_code)
            raise RequestRejectedError(message, status_code=response.status_code)

        body = _decode_body(endpoint, response)
        if body.get("status") == "error":
            message = body.get("message") or f"{endpoint} request failed"
            logger.info("%s endpoint reported an error: %s", endpoint, message)
            raise ApplicationError(str(message))

        try:
            return response_model.model_validate(body)
        except ValidationError as exc:
            raise ApplicationError(f"Invalid {endpoint} payload: {exc}") from exc


def _decode_body(endpoint: str, response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except json.JSONDecodeError as exc:
        raise ApplicationError(f"Invalid {endpoint} payload: response is not JSON") from exc

    if not isinstance(body, dict):
        raise ApplicationError(f"Invalid {endpoint} payload: expected a JSON object")
    return body
