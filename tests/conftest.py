from collections.abc import Iterator

import pytest

from readiscover.config import Settings, get_settings


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Iterator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def dev_settings(monkeypatch: pytest.MonkeyPatch) -> Settings:
    monkeypatch.setenv("READISCOVER_ENV", "dev")
    monkeypatch.setenv("READISCOVER_DEV_BASE_URL", "http://books.test")
    monkeypatch.setenv("READISCOVER_MAX_RETRIES", "2")
    monkeypatch.setenv("READISCOVER_INITIAL_DELAY_SECONDS", "0")
    monkeypatch.setenv("READISCOVER_MIN_REWRITE_SECONDS", "0")
    monkeypatch.setenv("READISCOVER_DEFAULT_BOOK_URLS", "https://books.test/a,https://books.test/b")
    return get_settings()
