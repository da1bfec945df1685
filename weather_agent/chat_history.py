"""Chat history kept on each conversation thread.

The store behaves like the framework's in-memory message store but reduces
its contents to a fixed window after every change, so the serialized thread
that ends up in conversation state stays bounded.
"""

from collections.abc import Collection, Sequence
from functools import partial
from typing import Any, Callable, List, Optional

from agent_framework import ChatMessage, ChatMessageStoreProtocol
from agent_framework._threads import ChatMessageStoreState

from .config import HISTORY_MAX_MESSAGES

FUNCTION_CONTENT_TYPES = frozenset({"function_call", "function_result"})


def role_name(message: Any) -> str:
    role = getattr(message, "role", None)
    return str(getattr(role, "value", role) or "")


def _is_function_message(message: Any) -> bool:
    contents = getattr(message, "contents", None) or []
    return any(getattr(c, "type", None) in FUNCTION_CONTENT_TYPES for c in contents)


def reduce_messages(messages: Sequence[Any], max_messages: int) -> List[Any]:
    """Keep the first system message plus the last ``max_messages`` conversational messages.

    Function call and function result messages are neither counted nor kept.
    """
    system_message = None
    kept: List[Any] = []
    for message in messages:
        if system_message is None and role_name(message) == "system":
            system_message = message
            continue
        if _is_function_message(message):
            continue
        kept.append(message)

    kept = kept[-max_messages:]
    if system_message is not None:
        kept.insert(0, system_message)
    return kept


class MessageCountingChatMessageStore(ChatMessageStoreProtocol):
    """In-memory chat message store that retains a bounded number of messages."""

    def __init__(
        self,
        messages: Optional[Collection[ChatMessage]] = None,
        *,
        max_messages: int = HISTORY_MAX_MESSAGES,
    ) -> None:
        if max_messages < 1:
            raise ValueError("max_messages must be at least 1")
        self.max_messages = max_messages
        self._messages: List[ChatMessage] = []
        if messages:
            self._messages = reduce_messages(list(messages), max_messages)

    async def add_messages(self, messages: Collection[ChatMessage]) -> None:
        self._messages = reduce_messages([*self._messages, *messages], self.max_messages)

    async def list_messages(self) -> List[ChatMessage]:
        return list(self._messages)

    @classmethod
    async def deserialize(cls, serialized_store_state: Any, **kwargs: Any) -> "MessageCountingChatMessageStore":
        store = cls()
        await store.update_from_state(serialized_store_state, **kwargs)
        return store

    async def update_from_state(self, serialized_store_state: Any, **kwargs: Any) -> None:
        if not serialized_store_state:
            return
        state = ChatMessageStoreState.from_dict(serialized_store_state, **kwargs)
        if state.messages:
            self._messages = reduce_messages([*self._messages, *state.messages], self.max_messages)

    async def serialize(self, **kwargs: Any) -> Any:
        state = ChatMessageStoreState(messages=self._messages)
        return state.to_dict(**kwargs)


def message_store_factory(max_messages: int = HISTORY_MAX_MESSAGES) -> Callable[[], MessageCountingChatMessageStore]:
    if max_messages < 1:
        raise ValueError("max_messages must be at least 1")
    return partial(MessageCountingChatMessageStore, max_messages=max_messages)
