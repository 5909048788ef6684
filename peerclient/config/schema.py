"""Pydantic v2 configuration schema with strict validation."""

from enum import StrEnum

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

# Federation entries are written with the camelCase keys of the shared
# federation file; snake_case works too.
_FEDERATION_MODEL_CONFIG = {
    "extra": "forbid",
    "alias_generator": to_camel,
    "populate_by_name": True,
}


class Network(StrEnum):
    MAINNET = "mainnet"
    TESTNET = "testnet"


class ContactConfig(BaseModel):
    model_config = _FEDERATION_MODEL_CONFIG

    email: str | None = None
    telegram: str | None = None
    matrix: str | None = None
    twitter: str | None = None
    website: str | None = None


class CoordinatorConfig(BaseModel):
    model_config = _FEDERATION_MODEL_CONFIG

    alias: str
    description: str | None = None
    cover_letter: str | None = None
    logo: str = ""
    color: str = ""
    contact: ContactConfig = ContactConfig()
    mainnet_onion: str | None = None
    mainnet_clearnet: str | None = None
    testnet_onion: str | None = None
    testnet_clearnet: str | None = None
    mainnet_nodes_pubkeys: list[str] = []
    testnet_nodes_pubkeys: list[str] = []

    def onion(self, network: Network) -> str | None:
        return self.mainnet_onion if network == Network.MAINNET else self.testnet_onion

    def clearnet(self, network: Network) -> str | None:
        return self.mainnet_clearnet if network == Network.MAINNET else self.testnet_clearnet

    def node_pubkeys(self, network: Network) -> list[str]:
        if network == Network.MAINNET:
            return self.mainnet_nodes_pubkeys
        return self.testnet_nodes_pubkeys


class HostConfig(BaseModel):
    model_config = {"extra": "forbid"}

    onion_capable: bool = False
    origin: str | None = None  # set when served from a coordinator's own web host
    tor_proxy: str | None = None  # e.g. socks5://127.0.0.1:9050


class HttpConfig(BaseModel):
    model_config = {"extra": "forbid"}

    timeout: float = Field(default=30.0, gt=0.0)


class PollingConfig(BaseModel):
    model_config = {"extra": "forbid"}

    default_delay_ms: int = Field(default=60000, ge=1)
    backoff_base_ms: int = Field(default=5000, ge=1)
    backoff_max_ms: int = Field(default=300000, ge=1)
    tick_seconds: float = Field(default=1.0, gt=0.0)


class ClientConfig(BaseModel):
    model_config = {"extra": "forbid"}

    network: Network = Network.MAINNET
    active_coordinator: int = Field(default=0, ge=0)
    client_version: str = "0.5.0"
    storage_path: str = "data/client.db"
    host: HostConfig = HostConfig()
    http: HttpConfig = HttpConfig()
    polling: PollingConfig = PollingConfig()
    federation: list[CoordinatorConfig] = []
