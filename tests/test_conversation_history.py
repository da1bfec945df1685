import json
from typing import Any, List, Tuple

from agent_framework import BaseChatClient, ChatAgent, ChatMessage, ChatResponse, ChatResponseUpdate

from weather_agent.bot import WeatherAgent
from weather_agent.chat_history import MessageCountingChatMessageStore, message_store_factory, role_name
from weather_agent.config import HISTORY_MAX_MESSAGES, THREAD_STATE_KEY

from .conftest import FakeContext, FakeTurnState, FakeWeatherTool


class ScriptedChatClient(BaseChatClient):
    """Answers every request with "answer <n>" and records the messages it was sent."""

    def __init__(self, **kwargs: Any):
        super().__init__(**kwargs)
        self.seen: List[List[Tuple[str, str]]] = []

    def _record(self, messages) -> str:
        self.seen.append([(role_name(m), m.text) for m in messages])
        return f"answer {len(self.seen)}"

    async def _inner_get_response(self, *, messages, chat_options, **kwargs):
        return ChatResponse(messages=ChatMessage(role="assistant", text=self._record(messages)))

    async def _inner_get_streaming_response(self, *, messages, chat_options, **kwargs):
        yield ChatResponseUpdate(role="assistant", text=self._record(messages))


def chat_agent_without_tools(**kwargs):
    kwargs.pop("tools", None)
    return ChatAgent(**kwargs)


async def test_history_window_survives_turn_state_round_trips(settings):
    client = ScriptedChatClient()
    bot = WeatherAgent(client, settings, agent_factory=chat_agent_without_tools, tool_factory=FakeWeatherTool)
    state = FakeTurnState()
    contexts = []

    for n in range(1, 9):
        context = FakeContext(text=f"question {n}")
        contexts.append(context)
        await bot.on_message(context, state)

    assert [c.streaming_response.chunks for c in contexts] == [[f"answer {n}"] for n in range(1, 9)]

    def conversation(call):
        return [text for role, text in call if role != "system"]

    assert conversation(client.seen[1]) == ["question 1", "answer 1", "question 2"]

    last_call = client.seen[-1]
    expected = []
    for n in range(3, 8):
        expected += [f"question {n}", f"answer {n}"]
    assert conversation(last_call) == expected + ["question 8"]
    assert all(role != "system" for role, _ in last_call[1:])

    stored = state.conversation.values[THREAD_STATE_KEY]
    reader = ChatAgent(chat_client=client, chat_message_store_factory=message_store_factory(HISTORY_MAX_MESSAGES))
    thread = await reader.deserialize_thread(json.loads(stored))
    assert isinstance(thread.message_store, MessageCountingChatMessageStore)
    messages = await thread.message_store.list_messages()
    assert len(messages) == 10
    assert messages[-1].text == "answer 8"
