"""Tests for engine and document type resolution."""

from unittest.mock import AsyncMock, patch

import pytest

from indexsync.api_clients import SwiftypeAPI
from indexsync.core import IndexResolver
from indexsync.exceptions import ConfigurationError, ProvisioningError, TransportError

from fakes import BASE_URL, FakeSwiftypeTransport


@pytest.fixture
def sleep():
    with patch("indexsync.core.resolver.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        yield mock_sleep


def make_resolver(transport, **kwargs):
    api = SwiftypeAPI(transport, api_key_provider=lambda: "key", base_url=BASE_URL)
    return IndexResolver(api, **kwargs)


class TestResolve:
    """Get-or-create and replace choreography."""

    @pytest.mark.asyncio
    async def test_provisions_missing_engine_and_type(self, faq_index, sleep):
        transport = FakeSwiftypeTransport()

        engine, document_type = await make_resolver(transport).resolve(faq_index)

        assert engine.name == "faq"
        assert document_type.name == "faq"
        assert [method for method, _ in transport.calls()] == ["GET", "POST", "GET", "POST"]
        assert transport.requests[1].body["engine"] == {"name": "faq"}
        assert transport.requests[3].body["document_type"] == {"name": "faq"}
        sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_reuses_existing_engine(self, faq_index, sleep):
        transport = FakeSwiftypeTransport()
        engine_id = transport.add_engine("faq")

        engine, _ = await make_resolver(transport).resolve(faq_index)

        assert engine.id == engine_id
        assert ("POST", "engines.json") not in transport.calls()

    @pytest.mark.asyncio
    async def test_replaces_existing_document_type(self, faq_index, sleep):
        transport = FakeSwiftypeTransport(delete_lag=2)
        engine_id = transport.add_engine("faq")
        old_type_id = transport.add_document_type(engine_id, "faq")

        _, document_type = await make_resolver(transport, poll_interval=0.5).resolve(faq_index)

        assert document_type.id != old_type_id
        writes = [call for call in transport.calls() if call[0] != "GET"]
        assert writes == [
            ("DELETE", f"engines/{engine_id}/document_types/{old_type_id}.json"),
            ("POST", f"engines/{engine_id}/document_types.json"),
        ]
        assert [c.args[0] for c in sleep.await_args_list] == [0.5, 1.0, 2.0]

    @pytest.mark.asyncio
    async def test_waits_before_first_check(self, faq_index, sleep):
        transport = FakeSwiftypeTransport()
        engine_id = transport.add_engine("faq")
        transport.add_document_type(engine_id, "faq")

        await make_resolver(transport).resolve(faq_index)

        sleep.assert_awaited_once_with(1.0)

    @pytest.mark.asyncio
    async def test_gives_up_when_type_lingers(self, faq_index, sleep):
        transport = FakeSwiftypeTransport(delete_lag=100)
        engine_id = transport.add_engine("faq")
        transport.add_document_type(engine_id, "faq")

        with pytest.raises(ProvisioningError) as exc_info:
            await make_resolver(transport, poll_interval=1.0, poll_timeout=5.0).resolve(faq_index)

        assert exc_info.value.index == "faq"
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0, 2.0]
        assert ("POST", f"engines/{engine_id}/document_types.json") not in transport.calls()

    @pytest.mark.asyncio
    async def test_engine_creation_failure(self, faq_index, sleep):
        transport = FakeSwiftypeTransport()
        transport.forced_status[("POST", "create_engine")] = 500

        with pytest.raises(ProvisioningError) as exc_info:
            await make_resolver(transport).resolve(faq_index)

        assert exc_info.value.status == 500
        assert len(transport.requests) == 2

    @pytest.mark.asyncio
    async def test_document_type_creation_failure(self, faq_index, sleep):
        transport = FakeSwiftypeTransport()
        transport.add_engine("faq")
        transport.forced_status[("POST", "create_type")] = 422

        with pytest.raises(ProvisioningError) as exc_info:
            await make_resolver(transport).resolve(faq_index)

        assert exc_info.value.status == 422
        assert exc_info.value.class_name == "FAQ"

    @pytest.mark.asyncio
    async def test_delete_failure_stops_before_create(self, faq_index, sleep):
        transport = FakeSwiftypeTransport()
        engine_id = transport.add_engine("faq")
        transport.add_document_type(engine_id, "faq")
        transport.forced_status[("DELETE", "delete_type")] = 500

        with pytest.raises(ProvisioningError):
            await make_resolver(transport).resolve(faq_index)

        assert transport.calls()[-1][0] == "DELETE"
        sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_lookup_failure_is_a_transport_error(self, faq_index, sleep):
        transport = FakeSwiftypeTransport()
        transport.forced_status[("GET", "list_engines")] = 401

        with pytest.raises(TransportError) as exc_info:
            await make_resolver(transport).resolve(faq_index)

        assert exc_info.value.status == 401

    def test_poll_interval_must_be_positive(self):
        with pytest.raises(ValueError):
            make_resolver(FakeSwiftypeTransport(), poll_interval=0)


class TestResolveForSync:
    """Lookup-only resolution used by document writes."""

    @pytest.mark.asyncio
    async def test_finds_existing(self, faq_index):
        transport = FakeSwiftypeTransport()
        engine_id = transport.add_engine("faq")
        type_id = transport.add_document_type(engine_id, "faq")

        engine, document_type = await make_resolver(transport).resolve_for_sync(faq_index)

        assert (engine.id, document_type.id) == (engine_id, type_id)
        assert all(method == "GET" for method, _ in transport.calls())

    @pytest.mark.asyncio
    async def test_missing_engine(self, faq_index):
        transport = FakeSwiftypeTransport()

        with pytest.raises(ConfigurationError):
            await make_resolver(transport).resolve_for_sync(faq_index)

        assert transport.calls() == [("GET", "engines.json")]

    @pytest.mark.asyncio
    async def test_missing_document_type(self, faq_index):
        transport = FakeSwiftypeTransport()
        transport.add_engine("faq")

        with pytest.raises(ConfigurationError) as exc_info:
            await make_resolver(transport).resolve_for_sync(faq_index)

        assert exc_info.value.class_name == "FAQ"
        assert all(method == "GET" for method, _ in transport.calls())
