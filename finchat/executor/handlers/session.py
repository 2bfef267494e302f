from __future__ import annotations

import structlog

from finchat.auth.gate import AuthorizationGate
from finchat.cascade.types import Outcome
from finchat.executor.base import ActionHandler, HandlerContext
from finchat.i18n.catalog import get_message
from finchat.nlp.commands import command_help
from finchat.nlp.entities import as_text
from finchat.nlp.intent import ResolvedIntent

logger = structlog.get_logger()


class SessionHandler(ActionHandler):
    """login / logout / help. Login itself happens in the app; here it only reports state."""

    def __init__(self, gate: AuthorizationGate) -> None:
        self._gate = gate

    @property
    def actions(self) -> frozenset[str]:
        return frozenset({"login", "logout", "help"})

    async def handle(self, intent: ResolvedIntent, context: HandlerContext) -> Outcome:
        locale = context.locale
        if intent.action == "help":
            return Outcome.ok(command_help(as_text(intent.entities.get("topic")), locale), action="help")

        if intent.action == "login":
            if context.auth.authorized:
                return Outcome.ok(get_message("already_authenticated", locale), action="login")
            return Outcome.ok(get_message("login_prompt", locale), action="login")

        ended = await self._gate.end_session(context.conversant)
        logger.info("session_logout", conversant=context.conversant, ended=ended)
        return Outcome.ok(get_message("logout_success", locale), action="logout")
