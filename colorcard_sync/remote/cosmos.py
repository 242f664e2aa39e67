"""
Cosmos DB remote store.

Mirrors color records into a single Azure Cosmos DB container.

Supports multiple authentication methods:
- Key-based authentication (if org policy allows)
- Azure AD via DefaultAzureCredential (recommended)
- Azure Managed Identity
- Service Principal
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from azure.core.exceptions import ServiceRequestError, ServiceResponseError
from azure.cosmos import PartitionKey
from azure.cosmos.aio import ContainerProxy, CosmosClient
from azure.cosmos.exceptions import CosmosHttpResponseError, CosmosResourceNotFoundError
from azure.identity.aio import (
    ClientSecretCredential,
    DefaultAzureCredential,
    ManagedIdentityCredential,
)

from ..config import CosmosAuthMethod, SyncConfig
from ..exceptions import AuthenticationError, RemoteRejectedError, RemoteUnreachableError
from .base import RemoteStore

logger = logging.getLogger(__name__)

# Cosmos transactional batches accept at most 100 operations
MAX_BATCH_OPERATIONS = 100

PARTITION_KEY_PATH = "/collection"


def _get_credential(config: SyncConfig) -> Any:
    """Build the Cosmos credential for ``config.cosmos_auth_method``.

    KEY auth passes the account key through. The Azure AD methods return
    an async credential the store closes along with its client.

    Raises:
        AuthenticationError: If the method's secrets are missing
    """
    method = config.cosmos_auth_method
    endpoint = config.cosmos_endpoint or "cosmos"

    if method == CosmosAuthMethod.KEY:
        if not config.cosmos_key:
            raise AuthenticationError(endpoint, "cosmos_key is not set")
        return config.cosmos_key

    if method == CosmosAuthMethod.MANAGED_IDENTITY:
        # A client id selects a user-assigned identity
        return ManagedIdentityCredential(client_id=config.azure_client_id)

    if method == CosmosAuthMethod.SERVICE_PRINCIPAL:
        missing = [
            name
            for name in ("azure_tenant_id", "azure_client_id", "azure_client_secret")
            if not getattr(config, name)
        ]
        if missing:
            raise AuthenticationError(endpoint, f"missing {', '.join(missing)}")
        return ClientSecretCredential(
            tenant_id=config.azure_tenant_id,
            client_id=config.azure_client_id,
            client_secret=config.azure_client_secret,
        )

    return DefaultAzureCredential()


def _translate(error: Exception, operation: str, record_id: str | None = None) -> Exception:
    """Map an SDK exception onto the engine's error taxonomy."""
    if isinstance(error, ServiceRequestError | ServiceResponseError | OSError | TimeoutError):
        return RemoteUnreachableError(f"Cosmos DB unreachable during {operation}", record_id, error)
    if isinstance(error, CosmosHttpResponseError):
        return RemoteRejectedError(
            f"Cosmos DB rejected {operation}: {error.message}",
            status_code=error.status_code,
            record_id=record_id,
            cause=error,
        )
    return RemoteRejectedError(f"Cosmos DB {operation} failed: {error}", record_id=record_id, cause=error)


class CosmosRemoteStore(RemoteStore):
    """Remote store on a single Cosmos DB container.

    The container is partitioned on ``/collection`` so all documents of a
    collection share one logical partition, which is what allows a batch
    to be committed as a transaction.

    Container schema:
    {
        "id": "{record_id}",
        "collection": "{collection}",
        "hexCode": "A1B2C3",
        "timestamp": "{iso_timestamp}"
    }
    """

    def __init__(self, config: SyncConfig) -> None:
        config.validate_for_remote()

        self.config = config
        self._credential: Any = None
        self._client: CosmosClient | None = None
        self._container: ContainerProxy | None = None
        self._initialized = False

    async def _ensure_initialized(self) -> ContainerProxy:
        """Ensure client and container are initialized."""
        if self._initialized and self._container is not None:
            return self._container

        self._credential = _get_credential(self.config)

        try:
            client = CosmosClient(
                self.config.cosmos_endpoint,  # type: ignore[arg-type]
                credential=self._credential,
            )
            self._client = client

            database = await client.create_database_if_not_exists(id=self.config.cosmos_database)
            container = await database.create_container_if_not_exists(
                id=self.config.cosmos_container,
                partition_key=PartitionKey(path=PARTITION_KEY_PATH),
            )
            self._container = container
            self._initialized = True
            logger.info(
                f"Connected to Cosmos DB: {self.config.cosmos_endpoint} "
                f"(database={self.config.cosmos_database}, "
                f"container={self.config.cosmos_container}, "
                f"auth={self.config.cosmos_auth_method.value})"
            )
            return container
        except Exception as e:
            await self.close()
            raise _translate(e, "connect") from e

    async def batch_set(self, collection: str, documents: Sequence[dict[str, Any]]) -> None:
        if not documents:
            return

        container = await self._ensure_initialized()

        for start in range(0, len(documents), MAX_BATCH_OPERATIONS):
            chunk = documents[start : start + MAX_BATCH_OPERATIONS]
            operations = [("upsert", ({**doc, "collection": collection},)) for doc in chunk]
            try:
                await container.execute_item_batch(
                    batch_operations=operations, partition_key=collection
                )
            except Exception as e:
                raise _translate(e, "batch upsert") from e

        logger.debug(f"Upserted {len(documents)} documents into {collection}")

    async def delete(self, collection: str, document_id: str) -> bool:
        container = await self._ensure_initialized()
        try:
            await container.delete_item(item=document_id, partition_key=collection)
            return True
        except CosmosResourceNotFoundError:
            return False  # Already deleted
        except Exception as e:
            raise _translate(e, "delete", document_id) from e

    async def close(self) -> None:
        """Close the Cosmos client."""
        if self._client:
            await self._client.close()
            self._client = None
            self._container = None
            self._initialized = False

        # AAD credentials hold their own sessions
        if self._credential is not None and hasattr(self._credential, "close"):
            await self._credential.close()
        self._credential = None
