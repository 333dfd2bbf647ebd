"""Shared test fixtures."""

import pytest

from indexsync.api_clients import SwiftypeAPI
from indexsync.config.schema import IndexConfig, IndicesConfig
from indexsync.utils.logging import setup_logging

from fakes import BASE_URL, FakeRecordStore, FakeSwiftypeTransport


setup_logging(log_level="DEBUG", log_format="console")


@pytest.fixture
def transport():
    return FakeSwiftypeTransport()


@pytest.fixture
def api(transport):
    return SwiftypeAPI(transport, api_key_provider=lambda: "test-key", base_url=BASE_URL)


@pytest.fixture
def record_store():
    return FakeRecordStore()


@pytest.fixture
def faq_index():
    return IndexConfig(name="faq", **{"class": "FAQ"})


@pytest.fixture
def indices(faq_index):
    return IndicesConfig(indices=[faq_index], batch_length=50)
