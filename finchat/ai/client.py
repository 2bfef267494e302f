"""OpenAI-backed intent resolution used as the last cascade strategy."""

from __future__ import annotations

import asyncio
import json
import random
import re
from abc import ABC, abstractmethod
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, Any, TypeVar

import structlog
from openai import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AsyncOpenAI,
    RateLimitError,
)
from pydantic import BaseModel, Field, ValidationError, field_validator

from finchat.ai.prompts import CORRECTION_SYSTEM_PROMPT, INTENT_SYSTEM_PROMPT, SUPPORTED_ACTIONS
from finchat.infra.errors import LLMError
from finchat.nlp.intent import UNKNOWN_ACTION, ResolvedIntent

if TYPE_CHECKING:
    from finchat.config.settings import OpenAISettings

logger = structlog.get_logger()

T = TypeVar("T")

_RETRYABLE = (APIConnectionError, APITimeoutError, RateLimitError)
_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


class PatternPayload(BaseModel):
    regex: str


class IntentPayload(BaseModel):
    """JSON contract the model must answer with."""

    action: str
    confidence: float = Field(0.8, ge=0.0, le=1.0)
    entities: dict[str, Any] = Field(default_factory=dict)
    pattern: PatternPayload | None = None

    @field_validator("action")
    @classmethod
    def _known_action(cls, v: str) -> str:
        v = v.strip().lower()
        return v if v in SUPPORTED_ACTIONS else UNKNOWN_ACTION

    @field_validator("entities")
    @classmethod
    def _snake_case_keys(cls, v: dict[str, Any]) -> dict[str, Any]:
        return _snake_keys(v)


def _snake_keys(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            _CAMEL_RE.sub("_", key).lower(): _snake_keys(item)
            for key, item in value.items()
            if item is not None
        }
    if isinstance(value, list):
        return [_snake_keys(item) for item in value]
    return value


def strip_code_fences(raw: str) -> str:
    raw = raw.strip()
    if raw.startswith("```"):
        raw = "\n".join(line for line in raw.split("\n") if not line.startswith("```"))
    return raw.strip()


def parse_payload(raw: str) -> IntentPayload:
    """Decode and validate the model's JSON answer. Raises LLMError on bad output."""
    try:
        return IntentPayload.model_validate(json.loads(strip_code_fences(raw)))
    except json.JSONDecodeError as e:
        raise LLMError(f"Model returned invalid JSON: {e}") from e
    except ValidationError as e:
        raise LLMError(f"Model returned an unexpected shape: {e.error_count()} errors") from e


@dataclass(frozen=True)
class UserContext:
    """What the model is told about the user besides the message itself."""

    today: date
    categories: tuple[str, ...] = ()
    payment_methods: tuple[str, ...] = ()


@dataclass(frozen=True)
class AIResolution:
    intent: ResolvedIntent
    pattern_regex: str | None = None
    raw_entities: dict[str, Any] = field(default_factory=dict)


def _to_resolution(payload: IntentPayload) -> AIResolution:
    intent = ResolvedIntent(payload.action, payload.confidence, payload.entities)
    regex = payload.pattern.regex if payload.pattern and payload.pattern.regex.strip() else None
    return AIResolution(intent=intent, pattern_regex=regex, raw_entities=payload.entities)


class IntentModel(ABC):
    """External capability that turns free text into a ResolvedIntent."""

    @abstractmethod
    async def resolve_intent(self, message: str, *, context: UserContext) -> AIResolution:
        ...

    @abstractmethod
    async def parse_correction(
        self,
        original_message: str,
        previous: ResolvedIntent,
        correction: str,
        *,
        context: UserContext,
    ) -> AIResolution:
        ...


class OpenAIIntentModel(IntentModel):
    """IntentModel over any OpenAI-compatible chat completion endpoint.

    Transient errors are retried with exponential backoff; everything else
    surfaces as LLMError.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        *,
        timeout_s: float = 30.0,
        max_retries: int = 2,
        base_delay: float = 1.0,
    ) -> None:
        self._client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout_s, max_retries=0)
        self._model = model
        self._max_retries = max_retries
        self._base_delay = base_delay

    @classmethod
    def from_settings(cls, settings: OpenAISettings) -> OpenAIIntentModel:
        return cls(
            settings.api_key,
            settings.model,
            settings.base_url,
            timeout_s=settings.timeout_s,
            max_retries=settings.max_retries,
        )

    async def _retry_call(
        self,
        coro_factory: Callable[[], Coroutine[Any, Any, T]],
        *,
        context: str = "",
    ) -> T:
        for attempt in range(self._max_retries + 1):
            try:
                return await coro_factory()
            except _RETRYABLE as e:
                if attempt == self._max_retries:
                    raise LLMError(
                        f"LLM call failed after {self._max_retries + 1} attempts: {e}"
                    ) from e
                delay = self._base_delay * (2**attempt) + random.uniform(0, 0.5)
                logger.warning(
                    "llm_retry",
                    attempt=attempt + 1,
                    max_retries=self._max_retries,
                    delay=round(delay, 2),
                    error=str(e),
                    context=context,
                )
                await asyncio.sleep(delay)
            except APIStatusError as e:
                raise LLMError(f"LLM API error: {e.status_code} {e.message}") from e
        raise LLMError("Retry loop exhausted")  # pragma: no cover

    async def _complete(self, messages: list[dict[str, str]], *, context: str) -> IntentPayload:
        logger.debug("intent_model_request", model=self._model, context=context)
        response = await self._retry_call(
            lambda: self._client.chat.completions.create(
                model=self._model,
                messages=messages,
                temperature=0.1,
                response_format={"type": "json_object"},
            ),
            context=context,
        )
        if not response.choices:
            raise LLMError(f"Empty choices from provider ({context})")
        raw = response.choices[0].message.content or ""
        payload = parse_payload(raw)
        logger.info(
            "intent_model_resolved",
            context=context,
            action=payload.action,
            confidence=payload.confidence,
            has_pattern=payload.pattern is not None,
        )
        return payload

    @staticmethod
    def _system_prompt(context: UserContext) -> str:
        return INTENT_SYSTEM_PROMPT.format(
            actions=", ".join(SUPPORTED_ACTIONS),
            today=context.today.isoformat(),
            categories=", ".join(context.categories) or "-",
            payment_methods=", ".join(context.payment_methods) or "-",
        )

    async def resolve_intent(self, message: str, *, context: UserContext) -> AIResolution:
        payload = await self._complete(
            [
                {"role": "system", "content": self._system_prompt(context)},
                {"role": "user", "content": message},
            ],
            context="resolve_intent",
        )
        return _to_resolution(payload)

    async def parse_correction(
        self,
        original_message: str,
        previous: ResolvedIntent,
        correction: str,
        *,
        context: UserContext,
    ) -> AIResolution:
        previous_json = json.dumps(
            {"action": previous.action, "entities": previous.entities}, ensure_ascii=False, default=str
        )
        correction_prompt = CORRECTION_SYSTEM_PROMPT.format(
            original_message=original_message, previous=previous_json
        )
        payload = await self._complete(
            [
                {"role": "system", "content": self._system_prompt(context)},
                {"role": "system", "content": correction_prompt},
                {"role": "user", "content": correction},
            ],
            context="parse_correction",
        )
        return _to_resolution(payload)
