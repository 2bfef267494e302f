"""Per-user learned regex patterns, generated by the AI fallback and reused locally."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any

import structlog
from sqlalchemy import text

from finchat.constants import PATTERN_RETIRE_MIN_USES, PATTERN_RETIRE_SUCCESS_RATE
from finchat.ledger.repository import SqlRepository
from finchat.nlp.intent import ResolvedIntent

logger = structlog.get_logger()

# JavaScript-style named groups "(?<name>...)"; lookbehinds "(?<=" / "(?<!" are left alone.
_JS_NAMED_GROUP_RE = re.compile(r"\(\?<(?![=!])")
_NUMERIC_GROUPS = frozenset({"amount", "installments"})


@dataclass(frozen=True)
class LearnedPattern:
    id: str
    pattern_type: str
    regex_pattern: str
    parsed_output: dict[str, Any] = field(default_factory=dict)
    confidence_score: float = 0.8
    usage_count: int = 0


def compile_pattern(regex_pattern: str) -> re.Pattern[str]:
    """Compile case-insensitively, accepting ``(?<name>...)`` group syntax."""
    return re.compile(_JS_NAMED_GROUP_RE.sub("(?P<", regex_pattern), re.IGNORECASE)


def _group_value(name: str, value: str) -> Any:
    if name in _NUMERIC_GROUPS:
        try:
            number = float(value.replace(",", "."))
        except ValueError:
            return value
        return int(number) if name == "installments" else number
    return value.strip()


def match_learned_pattern(
    message: str, patterns: list[LearnedPattern]
) -> tuple[LearnedPattern, ResolvedIntent] | None:
    """First pattern whose regex matches; named groups override stored entities."""
    for pattern in patterns:
        try:
            regex = compile_pattern(pattern.regex_pattern)
        except re.error:
            logger.warning("learned_pattern_invalid", pattern_id=pattern.id)
            continue
        match = regex.search(message)
        if not match:
            continue
        entities = dict(pattern.parsed_output)
        for name, value in match.groupdict().items():
            if value:
                entities[name] = _group_value(name, value)
        confidence = min(max(pattern.confidence_score, 0.0), 1.0)
        return pattern, ResolvedIntent(pattern.pattern_type, confidence, entities)
    return None


class LearnedPatternStore(SqlRepository):

    async def active_patterns(self, user_id: str) -> list[LearnedPattern]:
        async with self._connection("load_learned_patterns") as conn:
            result = await conn.execute(
                text(f"""
                    SELECT id, pattern_type, regex_pattern, parsed_output, confidence_score, usage_count
                    FROM {self._schema}.learned_patterns
                    WHERE user_id = :uid AND is_active IS TRUE
                    ORDER BY usage_count DESC, created_at DESC
                """),
                {"uid": user_id},
            )
            rows = result.mappings().all()
        return [
            LearnedPattern(
                id=str(r["id"]),
                pattern_type=r["pattern_type"],
                regex_pattern=r["regex_pattern"],
                parsed_output=dict(r["parsed_output"] or {}),
                confidence_score=float(r["confidence_score"]),
                usage_count=r["usage_count"],
            )
            for r in rows
        ]

    async def save_pattern(
        self,
        user_id: str,
        *,
        pattern_type: str,
        regex_pattern: str,
        example_input: str,
        parsed_output: dict[str, Any],
        confidence_score: float = 1.0,
    ) -> str | None:
        """Store a new pattern. A regex Python cannot compile is rejected (returns None)."""
        try:
            compile_pattern(regex_pattern)
        except re.error:
            logger.warning("learned_pattern_rejected", pattern_type=pattern_type, regex=regex_pattern)
            return None
        async with self._connection("save_learned_pattern", write=True) as conn:
            result = await conn.execute(
                text(f"""
                    INSERT INTO {self._schema}.learned_patterns
                        (user_id, pattern_type, regex_pattern, example_input, parsed_output, confidence_score)
                    VALUES (:uid, :ptype, :regex, :example, CAST(:output AS jsonb), :score)
                    RETURNING id
                """),
                {
                    "uid": user_id,
                    "ptype": pattern_type,
                    "regex": regex_pattern,
                    "example": example_input,
                    "output": json.dumps(parsed_output, default=str),
                    "score": confidence_score,
                },
            )
            pattern_id = str(result.scalar_one())
        logger.info("learned_pattern_saved", pattern_id=pattern_id, pattern_type=pattern_type)
        return pattern_id

    async def record_usage(self, pattern_id: str, *, success: bool) -> bool:
        """Count one use of the pattern. Returns False when this use retired it.

        A pattern used more than PATTERN_RETIRE_MIN_USES times whose success
        rate drops below PATTERN_RETIRE_SUCCESS_RATE is deactivated.
        """
        column = "success_count" if success else "failure_count"
        async with self._connection("record_pattern_usage", write=True) as conn:
            result = await conn.execute(
                text(f"""
                    UPDATE {self._schema}.learned_patterns
                    SET usage_count = usage_count + 1,
                        {column} = {column} + 1,
                        last_used_at = NOW(),
                        is_active = is_active AND NOT (
                            usage_count + 1 > :min_uses
                            AND CAST(success_count + :won AS float) / (usage_count + 1) < :min_rate
                        )
                    WHERE id = CAST(:pid AS uuid)
                    RETURNING is_active
                """),
                {
                    "pid": pattern_id,
                    "won": 1 if success else 0,
                    "min_uses": PATTERN_RETIRE_MIN_USES,
                    "min_rate": PATTERN_RETIRE_SUCCESS_RATE,
                },
            )
            active = result.scalar_one_or_none()
        if active is False:
            logger.info("learned_pattern_retired", pattern_id=pattern_id)
        return active is not False
