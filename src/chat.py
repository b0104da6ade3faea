"""Chat service: routes each message to the direct router first, then the LLM fallback."""

import logging

from pydantic import BaseModel

from src.agent.agent import ConversationalAgent
from src.incidents.models import IncidentRecord
from src.observability.metrics import DIRECT_HITS_TOTAL
from src.router.direct import DirectActionRouter

logger = logging.getLogger(__name__)

# (keywords, suggestions); first keyword hit wins
_DEFAULT_NEXT_ACTIONS: tuple[tuple[tuple[str, ...], list[str]], ...] = (
    (("weather",), ["Check another city", "What time is it?", "Show open incidents"]),
    (("time", "date"), ["Check weather", "Calculate something", "Show open incidents"]),
    (("task",), ["List my tasks", "Create another task", "Show open incidents"]),
    (("joke", "fact"), ["Another joke", "Random fact", "Check weather"]),
    (("incident",), ["Show open incidents", "View critical incidents", "Analyze incidents"]),
)
_GENERIC_NEXT_ACTIONS = ["Show open incidents", "What time is it?", "Check weather"]


class ChatReply(BaseModel):
    message: str
    tools_used: list[str]
    next_actions: list[str] | None = None
    incidents: list[IncidentRecord] | None = None


def default_next_actions(message: str) -> list[str]:
    """Follow-up suggestions for an LLM answer, chosen by keywords in the user's message."""
    lower = message.lower()
    for keywords, actions in _DEFAULT_NEXT_ACTIONS:
        if any(k in lower for k in keywords):
            return list(actions)
    return list(_GENERIC_NEXT_ACTIONS)


class ChatService:
    def __init__(self, router: DirectActionRouter, agent: ConversationalAgent) -> None:
        self.router = router
        self.agent = agent

    async def handle(self, session_id: str, message: str) -> ChatReply:
        direct = await self.router.resolve(session_id, message)
        if direct is not None:
            DIRECT_HITS_TOTAL.labels(intent=direct.intent).inc()
            logger.info("Handled directly with tool: %s (intent=%s)", direct.tool, direct.intent)
            return ChatReply(
                message=direct.text,
                tools_used=[direct.tool],
                next_actions=direct.next_actions,
                incidents=direct.incidents,
            )

        reply = await self.agent.chat(session_id, message)
        return ChatReply(
            message=reply.text,
            tools_used=reply.tools_used,
            next_actions=default_next_actions(message),
        )

    def clear_session(self, session_id: str) -> bool:
        return self.agent.clear_session(session_id)
