"""Application configuration for the token broker and client."""
from __future__ import annotations

from functools import lru_cache
from random import randint

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _strip_trailing_slash(value: object) -> object:
    if isinstance(value, str):
        return value.rstrip("/")
    return value


class Settings(BaseSettings):
    """Broker runtime configuration."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    app_env: str = Field(default="development")
    cors_allow_origins: list[str] = Field(default_factory=lambda: ["*"])

    livekit_url: str = Field(default="ws://localhost:7880")
    livekit_api_key: str = Field(default="")
    livekit_api_secret: str = Field(default="")
    room_service_url: str = Field(default="", description="HTTP base of the room service; derived from livekit_url")

    token_ttl_seconds: int = Field(default=600, ge=1)
    identity_hold_seconds: int = Field(default=600, ge=0, description="0 keeps identities reserved forever")
    token_rate_limit_per_minute: int = Field(default=60, ge=0, description="0 disables rate limiting")

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: object) -> object:
        """Allow comma-separated env values for CORS origins."""

        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("livekit_url", "room_service_url", mode="before")
    @classmethod
    def _normalize_urls(cls, value: object) -> object:
        """The transport appends its own path; a trailing slash yields `//rtc`."""

        return _strip_trailing_slash(value)

    @property
    def room_service_base_url(self) -> str:
        """HTTP(S) address of the room service API."""

        if self.room_service_url:
            return self.room_service_url
        url = self.livekit_url
        if url.startswith("wss://"):
            return "https://" + url[len("wss://"):]
        if url.startswith("ws://"):
            return "http://" + url[len("ws://"):]
        return url


class ClientSettings(BaseSettings):
    """Configuration for the device-side bootstrap sequence."""

    model_config = SettingsConfigDict(env_prefix="CLIENT_", env_file=".env", case_sensitive=False, extra="ignore")

    backend_url: str = Field(default="http://localhost:3000")
    livekit_url: str = Field(default="ws://localhost:7880")
    room_name: str = Field(default="quickstart-room")
    identity: str = Field(default_factory=lambda: f"user-{randint(0, 9999)}")
    role: str = Field(default="viewer")

    max_attempts: int = Field(default=3, ge=1)
    retry_delay_ms: int = Field(default=2000, ge=0)

    @field_validator("backend_url", "livekit_url", mode="before")
    @classmethod
    def _normalize_urls(cls, value: object) -> object:
        return _strip_trailing_slash(value)

    @property
    def retry_delay(self) -> float:
        return self.retry_delay_ms / 1000


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


@lru_cache
def get_client_settings() -> ClientSettings:
    """Return cached client settings instance."""

    return ClientSettings()
