"""Tests for the remote sync client and remote stores."""

from __future__ import annotations

import asyncio
import uuid
from unittest.mock import AsyncMock

import pytest
from azure.core.exceptions import ServiceRequestError
from azure.cosmos.exceptions import CosmosHttpResponseError, CosmosResourceNotFoundError
from azure.identity.aio import ClientSecretCredential

from colorcard_sync.config import CosmosAuthMethod, SyncConfig
from colorcard_sync.exceptions import (
    AuthenticationError,
    ConfigurationError,
    RemoteRejectedError,
    RemoteUnreachableError,
    SyncErrorKind,
)
from colorcard_sync.records import new_record
from colorcard_sync.remote import InMemoryRemoteStore, RemoteSyncClient
from colorcard_sync.remote.cosmos import (
    MAX_BATCH_OPERATIONS,
    CosmosRemoteStore,
    _get_credential,
    _translate,
)

COLLECTION = "colorCards"


class SlowRemoteStore(InMemoryRemoteStore):
    async def batch_set(self, collection, documents):
        await asyncio.sleep(1.0)
        await super().batch_set(collection, documents)


class TestInMemoryRemoteStore:
    """Tests for the in-memory remote store."""

    @pytest.mark.asyncio
    async def test_batch_set_is_idempotent(self):
        store = InMemoryRemoteStore()
        doc = new_record("A1B2C3").to_document(COLLECTION)

        await store.batch_set(COLLECTION, [doc])
        await store.batch_set(COLLECTION, [doc])

        assert store.documents(COLLECTION) == {doc["id"]: doc}

    @pytest.mark.asyncio
    async def test_failed_batch_writes_nothing(self):
        store = InMemoryRemoteStore()
        store.fail_with = ValueError("quota exceeded")

        with pytest.raises(ValueError):
            await store.batch_set(COLLECTION, [new_record().to_document(COLLECTION)])

        assert store.documents(COLLECTION) == {}
        assert len(store.calls_of("batch_set")) == 1

    @pytest.mark.asyncio
    async def test_delete_absent_returns_false(self):
        store = InMemoryRemoteStore()
        assert await store.delete(COLLECTION, str(uuid.uuid4())) is False


class TestRemoteSyncClient:
    """Tests for RemoteSyncClient."""

    @pytest.fixture
    def store(self):
        return InMemoryRemoteStore()

    @pytest.mark.asyncio
    async def test_push_writes_documents_keyed_by_id(self, store):
        client = RemoteSyncClient(store)
        records = [new_record("A1B2C3"), new_record("00FF00")]

        await client.push(records)

        docs = store.documents(COLLECTION)
        assert set(docs) == {r.record_id for r in records}
        assert docs[records[0].record_id]["hexCode"] == "A1B2C3"
        assert len(store.calls_of("batch_set")) == 1

    @pytest.mark.asyncio
    async def test_push_empty_is_noop(self, store):
        await RemoteSyncClient(store).push([])
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_unreachable_fails_fast(self, store):
        """No remote call is attempted while the gate reports offline."""
        client = RemoteSyncClient(store, reachable=lambda: False)

        with pytest.raises(RemoteUnreachableError) as exc_info:
            await client.push([new_record()])
        with pytest.raises(RemoteUnreachableError):
            await client.delete_remote(str(uuid.uuid4()))

        assert exc_info.value.kind == SyncErrorKind.UNREACHABLE
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_delete_absent_succeeds(self, store):
        """Deleting a record that is not on the remote is not an error."""
        client = RemoteSyncClient(store)
        await client.delete_remote(str(uuid.uuid4()))
        assert len(store.calls_of("delete")) == 1

    @pytest.mark.asyncio
    async def test_delete_removes_document(self, store):
        client = RemoteSyncClient(store)
        record = new_record()
        await client.push([record])

        await client.delete_remote(record.record_id)

        assert store.documents(COLLECTION) == {}

    @pytest.mark.asyncio
    async def test_timeout_is_unreachable(self):
        client = RemoteSyncClient(SlowRemoteStore(), timeout=0.01)
        with pytest.raises(RemoteUnreachableError):
            await client.push([new_record()])

    @pytest.mark.asyncio
    async def test_transport_error_is_unreachable(self, store):
        store.fail_with = ConnectionResetError("reset by peer")
        with pytest.raises(RemoteUnreachableError):
            await RemoteSyncClient(store).push([new_record()])

    @pytest.mark.asyncio
    async def test_other_errors_are_rejected(self, store):
        store.fail_with = ValueError("denied")
        record_id = str(uuid.uuid4())

        with pytest.raises(RemoteRejectedError) as exc_info:
            await RemoteSyncClient(store).delete_remote(record_id)

        assert exc_info.value.kind == SyncErrorKind.REMOTE_REJECTED
        assert exc_info.value.record_id == record_id
        assert isinstance(exc_info.value.cause, ValueError)

    @pytest.mark.asyncio
    async def test_store_classified_errors_pass_through(self, store):
        original = RemoteRejectedError("conflict", status_code=409)
        store.fail_with = original

        with pytest.raises(RemoteRejectedError) as exc_info:
            await RemoteSyncClient(store).push([new_record()])

        assert exc_info.value is original

    @pytest.mark.asyncio
    async def test_close_closes_store(self, store):
        await RemoteSyncClient(store).close()
        assert store.closed


def cosmos_config(**overrides) -> SyncConfig:
    values = {
        "cosmos_endpoint": "https://example.documents.azure.com:443/",
        "cosmos_auth_method": CosmosAuthMethod.KEY,
        "cosmos_key": "test-key",
    }
    values.update(overrides)
    return SyncConfig(**values)


class TestCosmosRemoteStore:
    """Tests for CosmosRemoteStore against a mocked container."""

    @pytest.fixture
    def mock_container(self):
        container = AsyncMock()
        container.execute_item_batch = AsyncMock(return_value=[])
        container.delete_item = AsyncMock()
        return container

    @pytest.fixture
    def store(self, mock_container):
        store = CosmosRemoteStore(cosmos_config())
        store._container = mock_container
        store._initialized = True
        return store

    def test_requires_endpoint(self):
        with pytest.raises(ConfigurationError):
            CosmosRemoteStore(SyncConfig())

    @pytest.mark.asyncio
    async def test_batch_set_chunks_at_batch_limit(self, store, mock_container):
        documents = [new_record().to_document(COLLECTION) for _ in range(MAX_BATCH_OPERATIONS * 2 + 5)]

        await store.batch_set(COLLECTION, documents)

        calls = mock_container.execute_item_batch.await_args_list
        assert [len(c.kwargs["batch_operations"]) for c in calls] == [100, 100, 5]
        assert all(c.kwargs["partition_key"] == COLLECTION for c in calls)
        op, (doc,) = calls[0].kwargs["batch_operations"][0]
        assert op == "upsert"
        assert doc["id"] == documents[0]["id"]
        assert doc["collection"] == COLLECTION

    @pytest.mark.asyncio
    async def test_batch_set_empty_skips_connection(self, store, mock_container):
        await store.batch_set(COLLECTION, [])
        mock_container.execute_item_batch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete_not_found_returns_false(self, store, mock_container):
        mock_container.delete_item.side_effect = CosmosResourceNotFoundError(
            status_code=404, message="Not found"
        )
        assert await store.delete(COLLECTION, "missing") is False

    @pytest.mark.asyncio
    async def test_delete_existing_returns_true(self, store, mock_container):
        assert await store.delete(COLLECTION, "present") is True
        mock_container.delete_item.assert_awaited_once_with(
            item="present", partition_key=COLLECTION
        )

    @pytest.mark.asyncio
    async def test_rejected_batch_is_classified(self, store, mock_container):
        mock_container.execute_item_batch.side_effect = CosmosHttpResponseError(
            status_code=403, message="Forbidden"
        )

        with pytest.raises(RemoteRejectedError) as exc_info:
            await store.batch_set(COLLECTION, [new_record().to_document(COLLECTION)])

        assert exc_info.value.status_code == 403


class TestCosmosErrorTranslation:
    def test_transport_errors_are_unreachable(self):
        for error in (ServiceRequestError("no route"), TimeoutError(), OSError("down")):
            assert isinstance(_translate(error, "push"), RemoteUnreachableError)

    def test_http_errors_are_rejected(self):
        translated = _translate(CosmosHttpResponseError(status_code=429, message="Throttled"), "push")
        assert isinstance(translated, RemoteRejectedError)
        assert translated.status_code == 429


class TestCosmosCredential:
    def test_key_auth_returns_key(self):
        assert _get_credential(cosmos_config()) == "test-key"

    def test_key_auth_without_key_raises(self):
        config = cosmos_config()
        config.cosmos_key = None
        with pytest.raises(AuthenticationError):
            _get_credential(config)

    def test_service_principal_names_missing_secrets(self):
        config = cosmos_config(cosmos_auth_method=CosmosAuthMethod.SERVICE_PRINCIPAL)
        config.azure_tenant_id = "tenant"

        with pytest.raises(AuthenticationError) as exc_info:
            _get_credential(config)

        assert exc_info.value.reason == "missing azure_client_id, azure_client_secret"

    def test_service_principal_builds_client_secret_credential(self):
        config = cosmos_config(
            cosmos_auth_method=CosmosAuthMethod.SERVICE_PRINCIPAL,
            azure_tenant_id="tenant",
            azure_client_id="client",
            azure_client_secret="secret",
        )
        assert isinstance(_get_credential(config), ClientSecretCredential)
