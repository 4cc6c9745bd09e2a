"""
Network configuration for the confkyc SDK.
"""
import logging
import os
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

# Genesis seed of the local development network
GENESIS_SEED = "0" * 63 + "1"

LOCAL_NETWORK = "undeployed"


class NetworkConfig(BaseModel):
    """
    Endpoints and bootstrap parameters of one network.

    bootstrap_seed and funding_amount only matter on the local network,
    where a fresh wallet is funded from the genesis wallet.
    """
    model_config = ConfigDict(frozen=True)

    network_id: str = LOCAL_NETWORK
    node_url: str = "http://127.0.0.1:9944"
    indexer_url: str = "http://127.0.0.1:8088/api/v3/graphql"
    indexer_ws_url: str = "ws://127.0.0.1:8088/api/v3/graphql/ws"
    proof_server_url: str = "http://127.0.0.1:6300"
    bridge_url: Optional[str] = None

    bootstrap_seed: Optional[str] = None
    funding_amount: int = Field(200_000_000_000, gt=0)
    ttl_seconds: int = Field(600, gt=0)
    sync_interval: float = Field(5.0, ge=0)
    funds_interval: float = Field(10.0, ge=0)
    wait_timeout: Optional[float] = Field(None, gt=0)

    @field_validator("network_id")
    @classmethod
    def _network_id_not_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("network_id must not be empty")
        return value

    @property
    def is_local(self) -> bool:
        return self.network_id == LOCAL_NETWORK

    @classmethod
    def get_network(cls, name: str) -> "NetworkConfig":
        """
        Get a preset by network name.

        Raises:
            ConfigError: If the network is unknown
        """
        try:
            return NETWORKS[name]
        except KeyError:
            raise ConfigError(
                f"Network '{name}' not found. Available networks: {', '.join(sorted(NETWORKS))}"
            )

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "NetworkConfig":
        """
        Build a configuration from environment variables.

        CONFKYC_NETWORK selects the preset (default "undeployed"); the
        MIDNIGHT_NODE_URL, INDEXER_URL, INDEXER_WS_URL, PROOF_SERVER_URL and
        CONFKYC_BRIDGE_URL variables override single endpoints.

        Raises:
            ConfigError: If the preset is unknown
        """
        env = os.environ if environ is None else environ
        base = cls.get_network(env.get("CONFKYC_NETWORK", LOCAL_NETWORK))

        overrides = {}
        for field_name, variable in (
            ("node_url", "MIDNIGHT_NODE_URL"),
            ("indexer_url", "INDEXER_URL"),
            ("indexer_ws_url", "INDEXER_WS_URL"),
            ("proof_server_url", "PROOF_SERVER_URL"),
            ("bridge_url", "CONFKYC_BRIDGE_URL"),
        ):
            value = env.get(variable)
            if value:
                overrides[field_name] = value

        if overrides:
            logger.debug(f"Overriding {', '.join(sorted(overrides))} from environment")
        return base.model_copy(update=overrides)


LOCAL_CONFIG = NetworkConfig(bootstrap_seed=GENESIS_SEED)

PREPROD_CONFIG = NetworkConfig(
    network_id="preprod",
    node_url="https://rpc.preprod.midnight.network",
    indexer_url="https://indexer.preprod.midnight.network",
    indexer_ws_url="wss://indexer.preprod.midnight.network/ws",
    proof_server_url="http://localhost:6300",
)

NETWORKS: Dict[str, NetworkConfig] = {
    LOCAL_CONFIG.network_id: LOCAL_CONFIG,
    PREPROD_CONFIG.network_id: PREPROD_CONFIG,
}
