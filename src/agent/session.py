"""In-memory conversation histories, one per session id.

``SessionStore`` owns every history. ``get_or_create`` is atomic under the
store lock, so concurrent first requests for a session seed it exactly once.
Each ``SessionHistory`` guards its own turns with a per-session lock; callers
mutate through ``append`` and read through ``messages``/``turns`` copies, and
never hold a lock across the LLM call.
"""

import logging
import threading
from datetime import UTC, datetime
from typing import Literal, TypedDict

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from src.observability.metrics import ACTIVE_SESSIONS

logger = logging.getLogger(__name__)

type Role = Literal["system", "user", "assistant", "tool"]


class ChatTurn(TypedDict):
    role: Role
    content: str
    timestamp: str  # ISO 8601


def _turn(role: Role, content: str) -> ChatTurn:
    return {"role": role, "content": content, "timestamp": datetime.now(UTC).isoformat()}


class SessionHistory:
    """Bounded turn list whose first turn is the permanent system instruction."""

    def __init__(self, system_prompt: str, max_messages: int) -> None:
        if max_messages < 2:
            raise ValueError("max_messages must leave room for the system turn and one message")
        self._max_messages = max_messages
        self._turns: list[ChatTurn] = [_turn("system", system_prompt)]
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._turns)

    def append(self, role: Role, content: str) -> None:
        """Append a turn, then evict the oldest non-system turns until within budget."""
        with self._lock:
            self._turns.append(_turn(role, content))
            while len(self._turns) > self._max_messages:
                del self._turns[1]

    def turns(self) -> list[ChatTurn]:
        with self._lock:
            return [ChatTurn(**t) for t in self._turns]

    def messages(self) -> list[BaseMessage]:
        """LangChain messages for the model. Tool turns are records only and are not replayed."""
        converted: list[BaseMessage] = []
        for turn in self.turns():
            match turn["role"]:
                case "system":
                    converted.append(SystemMessage(content=turn["content"]))
                case "user":
                    converted.append(HumanMessage(content=turn["content"]))
                case "assistant":
                    converted.append(AIMessage(content=turn["content"]))
                case "tool":
                    pass
        return converted


class SessionStore:
    """Process-wide registry of session histories."""

    def __init__(self, system_prompt: str, max_messages: int) -> None:
        self._system_prompt = system_prompt
        self._max_messages = max_messages
        self._sessions: dict[str, SessionHistory] = {}
        self._lock = threading.Lock()

    def get_or_create(self, session_id: str) -> SessionHistory:
        with self._lock:
            history = self._sessions.get(session_id)
            if history is None:
                history = SessionHistory(self._system_prompt, self._max_messages)
                self._sessions[session_id] = history
                ACTIVE_SESSIONS.set(len(self._sessions))
                logger.debug("Created conversation history for session '%s'", session_id)
            return history

    def remove(self, session_id: str) -> bool:
        with self._lock:
            removed = self._sessions.pop(session_id, None) is not None
            ACTIVE_SESSIONS.set(len(self._sessions))
        if removed:
            logger.info("Cleared conversation history for session '%s'", session_id)
        return removed

    def snapshot(self) -> dict[str, list[ChatTurn]]:
        with self._lock:
            sessions = dict(self._sessions)
        return {session_id: history.turns() for session_id, history in sessions.items()}

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions
