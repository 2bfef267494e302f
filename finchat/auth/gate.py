"""Conversant -> user identity + permission set."""

from __future__ import annotations

from dataclasses import dataclass

import structlog
from sqlalchemy import text

from finchat.auth.permissions import PermissionSet, is_action_allowed
from finchat.infra.errors import LedgerError
from finchat.ledger.repository import SqlRepository

logger = structlog.get_logger()

UNAUTHORIZED_ERROR = "unauthorized"
LOOKUP_FAILED_ERROR = "Error checking authorization"


@dataclass(frozen=True)
class AuthorizationRecord:
    authorized: bool
    user_id: str | None = None
    permissions: PermissionSet | None = None
    error: str | None = None

    def allows(self, action: str) -> bool:
        return self.authorized and is_action_allowed(self.permissions, action)


class AuthorizationGate(SqlRepository):
    """Granular per-number grants first, then the legacy session table (full access)."""

    async def check_authorization(self, conversant: str) -> AuthorizationRecord:
        try:
            return await self._lookup(conversant)
        except LedgerError:
            logger.exception("authorization_check_failed", conversant=conversant)
            return AuthorizationRecord(authorized=False, error=LOOKUP_FAILED_ERROR)

    async def _lookup(self, conversant: str) -> AuthorizationRecord:
        async with self._connection("check_authorization") as conn:
            granted = await conn.execute(
                text(f"""
                    SELECT user_id, permissions FROM {self._schema}.authorized_numbers
                    WHERE conversant = :conversant
                """),
                {"conversant": conversant},
            )
            row = granted.mappings().first()
            if row is not None:
                logger.debug("authorization_granted", conversant=conversant, source="authorized_numbers")
                return AuthorizationRecord(
                    authorized=True,
                    user_id=row["user_id"],
                    permissions=PermissionSet.from_mapping(row["permissions"]),
                )

            session = await conn.execute(
                text(f"""
                    SELECT user_id FROM {self._schema}.chat_sessions
                    WHERE conversant = :conversant AND is_active IS TRUE
                """),
                {"conversant": conversant},
            )
            user_id = session.scalar_one_or_none()

        if user_id is not None:
            logger.debug("authorization_granted", conversant=conversant, source="chat_sessions")
            return AuthorizationRecord(authorized=True, user_id=user_id, permissions=PermissionSet.full())

        logger.info("authorization_denied", conversant=conversant)
        return AuthorizationRecord(authorized=False, error=UNAUTHORIZED_ERROR)

    async def end_session(self, conversant: str) -> bool:
        """Deactivate the legacy session row. Granular grants are left alone."""
        async with self._connection("end_session", write=True) as conn:
            result = await conn.execute(
                text(f"""
                    UPDATE {self._schema}.chat_sessions
                    SET is_active = FALSE, last_activity = NOW()
                    WHERE conversant = :conversant AND is_active IS TRUE
                """),
                {"conversant": conversant},
            )
            return result.rowcount > 0
