from __future__ import annotations

from typing import Self

from dotenv import load_dotenv
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from finchat.constants import (
    CORRECTION_MIN_CONFIDENCE,
    DB_SCHEMA,
    DEFAULT_LOCALE,
    LOCAL_ACCEPT_CONFIDENCE,
    PENDING_CONTEXT_TTL_SECONDS,
    SUPPORTED_LOCALES,
)

# Load .env once at module import so every BaseSettings subclass sees the env vars
load_dotenv()


class DatabaseSettings(BaseSettings):
    """PostgreSQL connection settings. Env vars prefixed with DATABASE_."""

    model_config = SettingsConfigDict(env_prefix="DATABASE_")

    host: str = "localhost"
    port: int = 5432
    user: str = "postgres"
    password: str = ""
    name: str = "finchat"
    schema_: str = Field(DB_SCHEMA, validation_alias="DATABASE_SCHEMA")

    @field_validator("schema_")
    @classmethod
    def _validate_schema(cls, v: str) -> str:
        if v != DB_SCHEMA:
            msg = f"DATABASE_SCHEMA must be '{DB_SCHEMA}' (got '{v}')"
            raise ValueError(msg)
        return v


class OpenAISettings(BaseSettings):
    """Intent-resolution model settings. Env vars prefixed with OPENAI_."""

    model_config = SettingsConfigDict(env_prefix="OPENAI_")

    api_key: str = ""  # empty = AI fallback disabled
    model: str = "gpt-4o-mini"
    base_url: str | None = None
    timeout_s: float = Field(30.0, gt=0)
    max_retries: int = Field(2, ge=0, le=10)

    @property
    def enabled(self) -> bool:
        return bool(self.api_key.strip())


class ConversationSettings(BaseSettings):
    """Cascade and pending-flow tuning. Env vars prefixed with CONVERSATION_."""

    model_config = SettingsConfigDict(env_prefix="CONVERSATION_")

    context_ttl_seconds: int = Field(PENDING_CONTEXT_TTL_SECONDS, gt=0, le=86_400)
    correction_min_confidence: float = CORRECTION_MIN_CONFIDENCE
    local_accept_confidence: float = LOCAL_ACCEPT_CONFIDENCE
    group_trigger_word: str = "bot"
    default_locale: str = DEFAULT_LOCALE

    @field_validator("default_locale")
    @classmethod
    def _validate_locale(cls, v: str) -> str:
        v = v.lower()
        if v not in SUPPORTED_LOCALES:
            msg = f"CONVERSATION_DEFAULT_LOCALE must be one of {SUPPORTED_LOCALES} (got '{v}')"
            raise ValueError(msg)
        return v

    @model_validator(mode="after")
    def _validate_thresholds(self) -> Self:
        for name in ("correction_min_confidence", "local_accept_confidence"):
            value = getattr(self, name)
            if not (0.0 <= value <= 1.0):
                raise ValueError(f"{name} must be in [0.0, 1.0], got {value}")
        if not self.group_trigger_word.strip():
            raise ValueError("group_trigger_word must not be empty")
        return self


class TelegramSettings(BaseSettings):
    """Telegram channel settings. Env vars prefixed with TELEGRAM_."""

    model_config = SettingsConfigDict(env_prefix="TELEGRAM_")

    bot_token: str = ""  # empty = channel disabled
    message_max_length: int = Field(4096, gt=0, le=4096)


class GatewaySettings(BaseSettings):
    """HTTP gateway settings. Env vars prefixed with GATEWAY_."""

    model_config = SettingsConfigDict(env_prefix="GATEWAY_")

    host: str = "0.0.0.0"
    port: int = 19790
    log_json: bool = True
    log_level: str = "INFO"


class Settings(BaseSettings):
    """Root settings composing all sub-configurations."""

    model_config = SettingsConfigDict(extra="ignore")

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    openai: OpenAISettings = Field(default_factory=OpenAISettings)
    conversation: ConversationSettings = Field(default_factory=ConversationSettings)
    telegram: TelegramSettings = Field(default_factory=TelegramSettings)
    gateway: GatewaySettings = Field(default_factory=GatewaySettings)


def get_settings() -> Settings:
    """Load and validate settings. Raises ValidationError on invalid values."""
    return Settings()
