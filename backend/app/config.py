from functools import lru_cache
from pathlib import Path
from typing import Annotated, List

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_name: str = Field(default="Chatline Realtime", description="Human readable service name")
    environment: str = Field(default="development", description="Deployment environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root logging level")

    cors_origins: Annotated[List[AnyHttpUrl], NoDecode] = Field(
        default_factory=lambda: [
            "http://localhost",
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ],
        description="List of allowed CORS origins",
    )
    cors_allow_origin_regex: str | None = Field(
        default=None,
        description="Optional regular expression that matches allowed CORS origins",
    )

    websocket_keepalive_timeout_seconds: float = Field(
        default=30.0,
        description="Idle receive timeout after which the server sends a keepalive ping.",
    )
    websocket_keepalive_ping_interval_seconds: float = Field(
        default=30.0,
        description="Minimum delay between two keepalive pings on an idle socket.",
    )

    realtime_send_queue_size: int = Field(
        default=256,
        ge=1,
        description="Outbound frames buffered per channel before new events are dropped.",
    )
    realtime_typing_idle_timeout_seconds: float | None = Field(
        default=None,
        gt=0,
        description=(
            "Expire typing indicators after this many seconds without a new start signal. "
            "Unset keeps indicators until an explicit stop or disconnect."
        ),
    )
    realtime_typing_sweep_interval_seconds: float = Field(
        default=1.0,
        gt=0,
        description="How often idle typing indicators are swept when expiry is enabled.",
    )

    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).resolve().parents[2] / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v):  # type: ignore[override]
        if v in (None, "", Ellipsis):
            return []
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        if isinstance(v, (list, tuple, set)):
            return list(v)
        return v

    @field_validator("realtime_typing_idle_timeout_seconds", mode="before")
    @classmethod
    def empty_timeout_disables_expiry(cls, value):
        if value in ("", "0", 0, None):
            return None
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def normalise_log_level(cls, value: str) -> str:
        return str(value).strip().upper() or "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()
