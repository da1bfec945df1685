from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest

from weather_agent.config import AgentSettings


class FakeStreamingResponse:
    def __init__(self):
        self.calls: List[tuple] = []

    def queue_informative_update(self, text: str):
        self.calls.append(("informative", text))

    def queue_text_chunk(self, text: str):
        self.calls.append(("chunk", text))

    async def end_stream(self):
        self.calls.append(("end",))

    @property
    def chunks(self) -> List[str]:
        return [c[1] for c in self.calls if c[0] == "chunk"]

    @property
    def end_count(self) -> int:
        return sum(1 for c in self.calls if c[0] == "end")


class FakeScope:
    def __init__(self, values: Optional[Dict[str, Any]] = None):
        self.values = dict(values or {})

    def get_value(self, key, default_factory=None):
        if key in self.values:
            return self.values[key]
        return default_factory() if default_factory else None

    def set_value(self, key, value):
        self.values[key] = value


class FakeTurnState:
    def __init__(self, conversation: Optional[Dict[str, Any]] = None):
        self.conversation = FakeScope(conversation)


class FakeContext:
    def __init__(self, text=None, conversation_id="conv-1", recipient_id="bot1", members_added=None):
        self.activity = SimpleNamespace(
            text=text,
            conversation=SimpleNamespace(id=conversation_id),
            recipient=SimpleNamespace(id=recipient_id),
            members_added=members_added or [],
        )
        self.streaming_response = FakeStreamingResponse()
        self.sent: List[Any] = []

    async def send_activity(self, activity):
        self.sent.append(activity)


class FakeThread:
    def __init__(self, data: Optional[Dict[str, Any]] = None):
        self.data = dict(data or {"type": "thread", "messages": []})

    async def serialize(self, **kwargs):
        return dict(self.data)


def update(text, role="assistant"):
    return SimpleNamespace(text=text, role=role)


class FakeAgent:
    def __init__(self, updates=None, fail_after: Optional[int] = None, error: Optional[BaseException] = None, **kwargs):
        self.kwargs = kwargs
        self.error = error
        self.updates = list(updates or [])
        self.fail_after = fail_after
        self.new_threads: List[FakeThread] = []
        self.deserialized: List[Any] = []
        self.runs: List[tuple] = []

    def get_new_thread(self):
        thread = FakeThread({"type": "thread", "id": f"t{len(self.new_threads) + 1}", "messages": []})
        self.new_threads.append(thread)
        return thread

    async def deserialize_thread(self, serialized):
        self.deserialized.append(serialized)
        return FakeThread(serialized)

    async def run_stream(self, messages, *, thread=None):
        self.runs.append((messages, thread))
        for i, item in enumerate(self.updates):
            if self.fail_after is not None and i == self.fail_after:
                raise self.error or RuntimeError("model stream broke")
            yield item
        thread.data["messages"] = [*thread.data.get("messages", []), messages]


class FakeWeatherTool:
    def __init__(self, context, settings):
        self.context = context
        self.settings = settings

    async def get_current_weather_for_location(self, location, state=None):
        return "{}"

    async def get_weather_forecast_for_location(self, location, state=None):
        return "{}"


@pytest.fixture
def settings():
    return AgentSettings(
        azure_openai_endpoint=None,
        azure_openai_api_key=None,
        openai_api_key="sk-test",
        openai_model_id="gpt-test",
        openweather_api_key="ow-test",
        openweather_base_url="https://weather.test",
        openweather_units="imperial",
        weather_http_timeout=5.0,
    )
