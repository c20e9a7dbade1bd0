"""Configuration schema using Pydantic.

Connection settings for the client, persisted to ~/.yolodice/config.json and
overridable through YOLODICE_* environment variables.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientConfig(BaseSettings):
    """Settings for one client connection."""
    host: str = "api.yolodice.com"
    port: int = Field(default=4444, ge=1, le=65535)
    ssl: bool = True
    connect_timeout: float = Field(default=10.0, gt=0)

    keepalive_interval: float = Field(default=30.0, gt=0)  # seconds between no-op calls
    keepalive_method: str = "ping"
    call_timeout: float | None = Field(default=None, gt=0)  # None blocks until answered or closed

    callback_workers: int = Field(default=4, ge=1)
    max_message_bytes: int = Field(default=1024 * 1024, ge=1024)

    auth_key: str = ""  # WIF private key of the API key (optional)

    model_config = SettingsConfigDict(
        env_prefix="YOLODICE_",
        env_nested_delimiter="__",
    )

    def with_overrides(self, **overrides) -> "ClientConfig":
        """Copy with ``overrides`` applied; raises ``ValidationError`` on bad values."""
        if not overrides:
            return self
        return ClientConfig(**{**self.model_dump(), **overrides})
