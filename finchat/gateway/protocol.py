from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

from finchat.constants import SUPPORTED_LOCALES


class IncomingMessagePayload(BaseModel):
    """Body of POST /v1/messages."""

    conversant: str = Field(min_length=1)
    text: str | None = None
    has_image: bool = False
    is_group: bool = False
    locale: str | None = None

    @field_validator("conversant")
    @classmethod
    def _strip_conversant(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("conversant must not be blank")
        return v

    @field_validator("locale", mode="before")
    @classmethod
    def _normalize_locale(cls, v: Any) -> str | None:
        if v is None:
            return None
        if not isinstance(v, str):
            msg = f"locale must be a string (got {type(v).__name__})"
            raise ValueError(msg)
        v = v.strip().lower()
        if not v:
            return None
        if v not in SUPPORTED_LOCALES:
            raise ValueError(f"locale must be one of {SUPPORTED_LOCALES} (got '{v}')")
        return v


class MessageResponse(BaseModel):
    replies: list[str] = Field(default_factory=list)
