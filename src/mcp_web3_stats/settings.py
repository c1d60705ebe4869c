"""Process configuration, read from the environment and an optional ``.env`` file."""

from typing import Literal

from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from mcp_web3_stats.utilities.logging import LogLevel

TransportMode = Literal["stdio", "http", "sse-legacy", "hybrid"]

DEFAULT_MAX_BODY_BYTES = 4 * 1024 * 1024


class Web3StatsSettings(BaseSettings):
    """Server settings.

    All settings can be configured via environment variables with the prefix
    MCP_. For example, MCP_LOG_LEVEL=DEBUG. The upstream key keeps its
    historical name, DUNE_API_KEY, and the bind host is MCP_BIND_HOST.
    """

    model_config = SettingsConfigDict(
        env_prefix="MCP_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    dune_api_key: SecretStr | None = Field(default=None, validation_alias="DUNE_API_KEY")
    dune_base_url: str = "https://api.sim.dune.com"
    upstream_timeout: float = 30.0

    transport: TransportMode = "http"
    host: str = Field(default="::", validation_alias="MCP_BIND_HOST")
    port: int = Field(default=3000, validation_alias=AliasChoices("MCP_PORT", "PORT"))
    log_level: LogLevel = "INFO"

    # Answer POSTs on /mcp with a single JSON body even when the client also accepts SSE
    json_response: bool = True
    max_body_bytes: int = DEFAULT_MAX_BODY_BYTES

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value


class AuthSettings(BaseSettings):
    """Static allow-list auth, configured with MCP_AUTH_ENABLED, MCP_API_KEYS and MCP_BASIC_AUTH."""

    model_config = SettingsConfigDict(env_prefix="MCP_", env_file=".env", extra="ignore")

    auth_enabled: bool = False
    # Comma separated; kept as raw strings so pydantic-settings does not try to JSON-decode them
    api_keys: str = ""
    basic_auth: str = ""

    def api_key_set(self) -> frozenset[str]:
        return frozenset(key.strip() for key in self.api_keys.split(",") if key.strip())

    def basic_credential_set(self) -> frozenset[tuple[str, str]]:
        pairs: set[tuple[str, str]] = set()
        for entry in self.basic_auth.split(","):
            username, sep, password = entry.strip().partition(":")
            if sep and username:
                pairs.add((username, password))
        return frozenset(pairs)
