import json
import logging
from typing import Any, Optional, Tuple

from agent_framework import AgentThread

from .config import THREAD_STATE_KEY
from .logs import log_event


class ConversationThreadStore:
    """Keeps one serialized agent thread per conversation in turn state.

    The thread travels as a compact JSON string in the conversation scope of
    the turn state, so whatever storage backs the agent application also
    persists the agent's conversational context.
    """

    def __init__(self, key: str = THREAD_STATE_KEY):
        self.key = key

    def _read(self, state) -> Optional[str]:
        raw = state.conversation.get_value(self.key, lambda: None)
        if raw is None:
            return None
        if not isinstance(raw, str):
            raise TypeError(f"expected a string at {self.key!r}, got {type(raw).__name__}")
        return raw or None

    async def load_or_create(self, agent, state) -> Tuple[AgentThread, bool]:
        """Return the conversation's thread and whether it was freshly minted."""
        raw = self._read(state)
        if raw is None:
            thread = agent.get_new_thread()
            log_event(logging.INFO, "thread_created", key=self.key)
            return thread, True

        thread = await agent.deserialize_thread(json.loads(raw))
        log_event(logging.INFO, "thread_resumed", key=self.key, size=len(raw))
        return thread, False

    async def save(self, state, thread: Any) -> str:
        serialized = await thread.serialize()
        raw = json.dumps(serialized, separators=(",", ":"), ensure_ascii=False)
        state.conversation.set_value(self.key, raw)
        log_event(logging.INFO, "thread_saved", key=self.key, size=len(raw))
        return raw

    def clear(self, state):
        state.conversation.set_value(self.key, None)
