"""Shared fixtures for the crawl test suite."""

import pytest

from crawl.store import RecordStore
from crawl.tests.fakes import FakeDriver, FakeSite


@pytest.fixture
def store(tmp_path) -> RecordStore:
    """An initialized, empty record store in a temp directory."""
    record_store = RecordStore(tmp_path / "data" / "products.csv")
    record_store.ensure_initialized()
    return record_store


@pytest.fixture
def site() -> FakeSite:
    return FakeSite()


@pytest.fixture
def driver(site) -> FakeDriver:
    return FakeDriver(site)


@pytest.fixture
def never_stop():
    return lambda: False
