import pytest

from gws.core.config import Settings
from gws.core.exceptions import ConfigurationError
from gws.services.container import build_link_stores
from gws.services.link_store import MemoryShortLinkStore, SqlAvailabilityCodeStore, SqlShortLinkStore


def test_memory_backend_is_default():
    short_links, codes = build_link_stores(Settings())
    assert isinstance(short_links, MemoryShortLinkStore)
    assert codes.retention.days == 30
    assert short_links.retention.days == 7


def test_sql_backend(session_factory):
    settings = Settings(LINK_STORE_BACKEND="sql", SHORT_LINK_RETENTION_DAYS=3)
    short_links, codes = build_link_stores(settings, session_factory)

    assert isinstance(short_links, SqlShortLinkStore)
    assert isinstance(codes, SqlAvailabilityCodeStore)
    assert short_links.retention.days == 3
    assert short_links.resolve(short_links.create("https://example.com/x")) == "https://example.com/x"


def test_unknown_backend():
    with pytest.raises(ConfigurationError):
        build_link_stores(Settings(LINK_STORE_BACKEND="mongo"))
