"""
Sync engine configuration.

Configuration can be provided directly, via environment variables, or via
a YAML settings file.

Environment Variables:
    COLORSYNC_DATA_DIR: Directory for local persistence (default: ~/.colorcard_sync)
    COLORSYNC_COLLECTION: Remote collection name (default: colorCards)
    COLORSYNC_REMOTE_TIMEOUT: Seconds before a remote call counts as unreachable
    COLORSYNC_PROBE_HOST: Host resolved by the reachability probe
    COLORSYNC_PROBE_INTERVAL: Seconds between reachability probes
    COLORSYNC_COSMOS_ENDPOINT: Cosmos DB endpoint URL
    COLORSYNC_COSMOS_KEY: Cosmos DB key (if using key auth)
    COLORSYNC_COSMOS_DATABASE: Database name (default: colorcards-db)
    COLORSYNC_COSMOS_CONTAINER: Container name (default: color_cards)
    COLORSYNC_COSMOS_AUTH_METHOD: Auth method (default: default_credential)
    AZURE_TENANT_ID / AZURE_CLIENT_ID / AZURE_CLIENT_SECRET: Service principal

Settings file (``sync`` section of a YAML document):

```yaml
sync:
  data_dir: "~/.colorcard_sync"
  collection: "colorCards"
  remote_timeout: 30
  cosmos:
    endpoint: "https://myaccount.documents.azure.com:443/"
    auth_method: "key"
    key: "..."
```
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from enum import Enum
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import yaml

from .connectivity import DEFAULT_PROBE_HOST
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path.home() / ".colorcard_sync"
DEFAULT_COLLECTION = "colorCards"


class CosmosAuthMethod(Enum):
    """Authentication method for Cosmos DB.

    KEY: Use account key (development/testing)
    DEFAULT_CREDENTIAL: Use Azure DefaultAzureCredential (recommended)
    MANAGED_IDENTITY: Use Azure Managed Identity explicitly
    SERVICE_PRINCIPAL: Use Service Principal with client_id/client_secret
    """

    KEY = "key"
    DEFAULT_CREDENTIAL = "default_credential"
    MANAGED_IDENTITY = "managed_identity"
    SERVICE_PRINCIPAL = "service_principal"


def _parse_auth_method(value: str | None) -> CosmosAuthMethod:
    try:
        return CosmosAuthMethod((value or "default_credential").lower())
    except ValueError:
        logger.warning(f"Unknown Cosmos auth method '{value}', using default_credential")
        return CosmosAuthMethod.DEFAULT_CREDENTIAL


@dataclass
class SyncConfig:
    """Configuration for the sync engine.

    Attributes:
        data_dir: Directory holding the local record and pending-queue files
        collection: Remote collection records are mirrored into
        remote_timeout: Seconds before a remote call is abandoned as unreachable
        probe_host: Host resolved by the reachability probe (derived from
            the Cosmos endpoint when not set)
        probe_interval: Seconds between reachability probes
        probe_timeout: Seconds before a probe counts as offline

        cosmos_endpoint: Cosmos DB endpoint URL
        cosmos_auth_method: Authentication method (default: DEFAULT_CREDENTIAL)
        cosmos_key: Cosmos DB key (only for KEY auth method)
        cosmos_database: Cosmos DB database name
        cosmos_container: Cosmos DB container name

        azure_tenant_id: Azure tenant ID (for SERVICE_PRINCIPAL)
        azure_client_id: Azure client/app ID (for SERVICE_PRINCIPAL/MANAGED_IDENTITY)
        azure_client_secret: Azure client secret (for SERVICE_PRINCIPAL)
    """

    data_dir: Path = DEFAULT_DATA_DIR
    collection: str = DEFAULT_COLLECTION
    remote_timeout: float = 30.0
    probe_host: str | None = None
    probe_interval: float = 5.0
    probe_timeout: float = 5.0

    # Cosmos DB connection settings
    cosmos_endpoint: str | None = None
    cosmos_auth_method: CosmosAuthMethod = CosmosAuthMethod.DEFAULT_CREDENTIAL
    cosmos_key: str | None = None
    cosmos_database: str = "colorcards-db"
    cosmos_container: str = "color_cards"

    # Azure AD authentication settings (for SERVICE_PRINCIPAL)
    azure_tenant_id: str | None = None
    azure_client_id: str | None = None
    azure_client_secret: str | None = None

    def __post_init__(self) -> None:
        self.data_dir = Path(self.data_dir).expanduser()
        if isinstance(self.cosmos_auth_method, str):
            self.cosmos_auth_method = _parse_auth_method(self.cosmos_auth_method)
        if self.remote_timeout <= 0:
            raise ConfigurationError("remote_timeout", "must be positive")
        if self.probe_interval <= 0:
            raise ConfigurationError("probe_interval", "must be positive")

    @property
    def resolved_probe_host(self) -> str:
        """Host to probe: explicit setting, else the Cosmos endpoint host."""
        if self.probe_host:
            return self.probe_host
        if self.cosmos_endpoint:
            host = urlparse(self.cosmos_endpoint).hostname
            if host:
                return host
        return DEFAULT_PROBE_HOST

    def validate_for_remote(self) -> None:
        """Check that remote settings are complete.

        Raises:
            ConfigurationError: If a required remote setting is missing
        """
        if not self.cosmos_endpoint:
            raise ConfigurationError("cosmos_endpoint", "required for remote sync")
        if self.cosmos_auth_method == CosmosAuthMethod.KEY and not self.cosmos_key:
            raise ConfigurationError("cosmos_key", "required for KEY authentication")
        if self.cosmos_auth_method == CosmosAuthMethod.SERVICE_PRINCIPAL and not all(
            [self.azure_tenant_id, self.azure_client_id, self.azure_client_secret]
        ):
            raise ConfigurationError(
                "azure_client_secret",
                "azure_tenant_id, azure_client_id and azure_client_secret "
                "required for SERVICE_PRINCIPAL authentication",
            )

    @classmethod
    def from_environment(cls) -> SyncConfig:
        """Create configuration from environment variables."""
        env = os.environ
        return cls(
            data_dir=Path(env.get("COLORSYNC_DATA_DIR", str(DEFAULT_DATA_DIR))),
            collection=env.get("COLORSYNC_COLLECTION", DEFAULT_COLLECTION),
            remote_timeout=float(env.get("COLORSYNC_REMOTE_TIMEOUT", "30")),
            probe_host=env.get("COLORSYNC_PROBE_HOST"),
            probe_interval=float(env.get("COLORSYNC_PROBE_INTERVAL", "5")),
            cosmos_endpoint=env.get("COLORSYNC_COSMOS_ENDPOINT"),
            cosmos_auth_method=_parse_auth_method(env.get("COLORSYNC_COSMOS_AUTH_METHOD")),
            cosmos_key=env.get("COLORSYNC_COSMOS_KEY"),
            cosmos_database=env.get("COLORSYNC_COSMOS_DATABASE", "colorcards-db"),
            cosmos_container=env.get("COLORSYNC_COSMOS_CONTAINER", "color_cards"),
            azure_tenant_id=env.get("AZURE_TENANT_ID"),
            azure_client_id=env.get("AZURE_CLIENT_ID"),
            azure_client_secret=env.get("AZURE_CLIENT_SECRET"),
        )

    @classmethod
    def from_yaml(cls, path: Path | str) -> SyncConfig:
        """Create configuration from the ``sync`` section of a YAML file.

        A missing file yields the defaults.

        Raises:
            ConfigurationError: If the file cannot be parsed
        """
        path = Path(path).expanduser()
        if not path.exists():
            return cls()

        try:
            document = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(str(path), f"invalid YAML: {e}") from e
        if not isinstance(document, dict):
            raise ConfigurationError(str(path), "top level must be a mapping")

        return cls.from_dict(document.get("sync") or {})

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SyncConfig:
        """Create configuration from a settings mapping."""
        values: dict[str, Any] = {}
        known = {f.name for f in fields(cls)}
        for key, value in data.items():
            if key == "cosmos" and isinstance(value, dict):
                for cosmos_key, cosmos_value in value.items():
                    values[f"cosmos_{cosmos_key}"] = cosmos_value
            elif key == "azure" and isinstance(value, dict):
                for azure_key, azure_value in value.items():
                    values[f"azure_{azure_key}"] = azure_value
            else:
                values[key] = value

        unknown = set(values) - known
        if unknown:
            raise ConfigurationError(", ".join(sorted(unknown)), "unknown setting")
        return cls(**values)
