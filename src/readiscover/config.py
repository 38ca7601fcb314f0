from dataclasses import dataclass
from functools import lru_cache
import os
from urllib.parse import urlencode

DEFAULT_BOOK_URLS: tuple[str, ...] = (
    "https://www.gutenberg.org/cache/epub/55/pg55-images.html",
    "https://www.gutenberg.org/cache/epub/54/pg54-images.html",
    "https://www.gutenberg.org/cache/epub/33361/pg33361-images.html",
    "https://www.gutenberg.org/cache/epub/22566/pg22566-images.html",
    "https://www.gutenberg.org/cache/epub/26624/pg26624-images.html",
    "https://www.gutenberg.org/cache/epub/41667/pg41667-images.html",
    "https://www.gutenberg.org/cache/epub/32094/pg32094-images.html",
    "https://www.gutenberg.org/cache/epub/75720/pg75720-images.html",
)

DEFAULT_STATUS_MESSAGES: tuple[str, ...] = (
    "Fetching books...",
    "Splitting chapters...",
    "Chunking paragraphs...",
    "Embedding passages...",
    "Building the index...",
)


def _to_bool(value: str | None, *, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _to_int(value: str | None, *, default: int, minimum: int) -> int:
    if value is None:
        return default
    parsed = int(value)
    return max(minimum, parsed)


def _to_float(value: str | None, *, default: float, minimum: float) -> float:
    if value is None:
        return default
    parsed = float(value)
    return max(minimum, parsed)


def _to_list(value: str | None, *, default: tuple[str, ...]) -> tuple[str, ...]:
    if value is None:
        return default
    items = tuple(item.strip() for item in value.split(",") if item.strip())
    return items or default


@dataclass(frozen=True)
class Settings:
    env: str
    dev_base_url: str
    gateway_base_url: str
    api_key: str
    ingest_path: str
    rewrite_path: str
    search_path: str
    timeout_seconds: float
    max_retries: int
    initial_delay_seconds: float
    top_k: int
    target_chunk_size: int
    sentence_overlap: int
    small_paragraph_length: int
    small_paragraph_overlap: int
    min_rewrite_seconds: float
    context_chars: int
    default_book_urls: tuple[str, ...]
    status_messages: tuple[str, ...]
    status_interval_seconds: float
    verify_tls: bool

    @property
    def is_dev(self) -> bool:
        return self.env == "dev"

    @property
    def base_url(self) -> str:
        base = self.dev_base_url if self.is_dev else self.gateway_base_url
        return base.rstrip("/")

    def endpoint_url(self, path: str) -> str:
        url = f"{self.base_url}/{path.lstrip('/')}"
        if self.is_dev:
            return url
        return f"{url}?{urlencode({'key': self.api_key})}"


@lru_cache
def get_settings() -> Settings:
    return Settings(
        env=os.getenv("READISCOVER_ENV", "prod").strip().lower(),
        dev_base_url=os.getenv("READISCOVER_DEV_BASE_URL", "http://localhost:8080"),
        gateway_base_url=os.getenv(
            "READISCOVER_GATEWAY_URL",
            "https://backend-cloud-run-gateway-5o71wi4q.uk.gateway.dev",
        ),
        api_key=os.getenv("READISCOVER_API_KEY", ""),
        ingest_path=os.getenv("READISCOVER_INGEST_PATH", "/v1/process-book"),
        rewrite_path=os.getenv("READISCOVER_REWRITE_PATH", "/v1/model-response"),
        search_path=os.getenv("READISCOVER_SEARCH_PATH", "/v1/search"),
        timeout_seconds=_to_float(
            os.getenv("READISCOVER_TIMEOUT_SECONDS"), default=120.0, minimum=1.0
        ),
        max_retries=_to_int(os.getenv("READISCOVER_MAX_RETRIES"), default=3, minimum=0),
        initial_delay_seconds=_to_float(
            os.getenv("READISCOVER_INITIAL_DELAY_SECONDS"), default=1.0, minimum=0.0
        ),
        top_k=_to_int(os.getenv("READISCOVER_TOP_K"), default=3, minimum=1),
        target_chunk_size=_to_int(
            os.getenv("READISCOVER_TARGET_CHUNK_SIZE"), default=1200, minimum=1
        ),
        sentence_overlap=_to_int(os.getenv("READISCOVER_SENTENCE_OVERLAP"), default=3, minimum=1),
        small_paragraph_length=_to_int(
            os.getenv("READISCOVER_SMALL_PARAGRAPH_LENGTH"), default=300, minimum=1
        ),
        small_paragraph_overlap=_to_int(
            os.getenv("READISCOVER_SMALL_PARAGRAPH_OVERLAP"), default=3, minimum=1
        ),
        min_rewrite_seconds=_to_float(
            os.getenv("READISCOVER_MIN_REWRITE_SECONDS"), default=0.0, minimum=0.0
        ),
        context_chars=_to_int(os.getenv("READISCOVER_CONTEXT_CHARS"), default=100, minimum=0),
        default_book_urls=_to_list(
            os.getenv("READISCOVER_DEFAULT_BOOK_URLS"), default=DEFAULT_BOOK_URLS
        ),
        status_messages=_to_list(
            os.getenv("READISCOVER_STATUS_MESSAGES"), default=DEFAULT_STATUS_MESSAGES
        ),
        status_interval_seconds=_to_float(
            os.getenv("READISCOVER_STATUS_INTERVAL_SECONDS"), default=2.5, minimum=0.1
        ),
        verify_tls=_to_bool(os.getenv("READISCOVER_VERIFY_TLS"), default=True),
    )
