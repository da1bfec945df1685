import logging
import re
import time
from typing import Callable, Optional

from agent_framework import ChatAgent
from agent_framework.exceptions import ServiceInitializationError
from microsoft_agents.hosting.core import TurnContext, TurnState

from .chat_client import build_chat_client
from .chat_history import message_store_factory, role_name
from .config import (
    AGENT_INSTRUCTIONS,
    AGENT_NAME,
    AGENT_TEMPERATURE,
    AGENT_WELCOME_MESSAGE,
    HISTORY_MAX_MESSAGES,
    INFORMATIVE_UPDATE_TEXT,
    VERSION,
    AgentSettings,
)
from .errors import ChatClientConfigurationError, require
from .logs import log_event
from .threads import ConversationThreadStore
from .tools import WeatherLookupTool, get_date_time


async def welcome_members(context: TurnContext):
    """Greet every added member except the agent itself."""
    activity = context.activity
    recipient_id = activity.recipient.id if activity.recipient else None
    for member in activity.members_added or []:
        if member.id != recipient_id:
            await context.send_activity(AGENT_WELCOME_MESSAGE)


class WeatherAgent:
    """Welcomes new members and answers weather questions with a streamed agent reply."""

    RE_RESET = re.compile(r"^/?(?:reset|start\s+over)$", re.IGNORECASE)
    RESET_REPLY = "Purr... I've forgotten our chat. What city should we check next?"

    def __init__(
        self,
        chat_client,
        settings: AgentSettings,
        *,
        thread_store: Optional[ConversationThreadStore] = None,
        agent_factory: Callable[..., ChatAgent] = ChatAgent,
        tool_factory: Callable[..., WeatherLookupTool] = WeatherLookupTool,
    ):
        self._chat_client = require(chat_client, "chat_client")
        self._settings = require(settings, "settings")
        self.thread_store = thread_store or ConversationThreadStore()
        self._agent_factory = agent_factory
        self._tool_factory = tool_factory

    # -------------------- Agent --------------------

    def build_agent(self, context: TurnContext) -> ChatAgent:
        """Resolve the chat agent for this turn.

        The weather tool is bound to the turn context so it can post progress
        updates on the turn's streaming response.
        """
        require(context, "context")
        weather = self._tool_factory(context, self._settings)
        return self._agent_factory(
            chat_client=self._chat_client,
            name=AGENT_NAME,
            instructions=AGENT_INSTRUCTIONS,
            temperature=AGENT_TEMPERATURE,
            tools=[
                get_date_time,
                weather.get_current_weather_for_location,
                weather.get_weather_forecast_for_location,
            ],
            chat_message_store_factory=message_store_factory(HISTORY_MAX_MESSAGES),
        )

    # -------------------- Handlers --------------------

    async def on_members_added(self, context: TurnContext, _state: TurnState):
        await welcome_members(context)

    async def on_message(self, context: TurnContext, state: TurnState):
        text = (context.activity.text or "").strip()
        conversation_id = getattr(context.activity.conversation, "id", None)

        if self.RE_RESET.match(text):
            self.thread_store.clear(state)
            log_event(logging.INFO, "thread_reset", conversation_id=conversation_id)
            await context.send_activity(self.RESET_REPLY)
            return

        log_event(logging.INFO, "turn_start", conversation_id=conversation_id)
        streaming = context.streaming_response
        start = time.monotonic()
        thread = None
        chunks = 0
        try:
            streaming.queue_informative_update(INFORMATIVE_UPDATE_TEXT)

            agent = self.build_agent(context)
            thread, _created = await self.thread_store.load_or_create(agent, state)

            async for update in agent.run_stream(text, thread=thread):
                if role_name(update) == "assistant" and update.text:
                    streaming.queue_text_chunk(update.text)
                    chunks += 1
        finally:
            try:
                # a thread that exists is always written back, even when the run failed
                if thread is not None:
                    await self.thread_store.save(state, thread)
            finally:
                await streaming.end_stream()

        log_event(
            logging.INFO,
            "turn_done",
            conversation_id=conversation_id,
            chunks=chunks,
            duration_ms=int((time.monotonic() - start) * 1000),
        )


# -------------------- Application routes --------------------

def init_bot(settings: AgentSettings, client_builder: Callable[[AgentSettings], object] = build_chat_client) -> Optional[WeatherAgent]:
    """Build the bot, or return ``None`` so the host can still start and report not-ready."""
    try:
        bot = WeatherAgent(client_builder(settings), settings)
    except (ChatClientConfigurationError, ServiceInitializationError) as e:
        log_event(logging.ERROR, "agent_init_failed", error_class=type(e).__name__, error=str(e))
        return None
    log_event(logging.INFO, "agent_init_ok", provider=settings.provider, version=VERSION)
    return bot


async def route_members_added(bot: Optional[WeatherAgent], context: TurnContext, state: TurnState):
    # greetings need no model, so they go out even without a configured bot
    if bot is None:
        await welcome_members(context)
        return
    await bot.on_members_added(context, state)


async def route_message(bot: Optional[WeatherAgent], context: TurnContext, state: TurnState):
    await require(bot, "chat_client").on_message(context, state)


async def log_turn_error(context: TurnContext, error: Exception):
    activity = getattr(context, "activity", None)
    conversation = getattr(activity, "conversation", None)
    log_event(
        logging.ERROR,
        "turn_error",
        conversation_id=getattr(conversation, "id", None),
        activity_type=getattr(activity, "type", None),
        error_class=type(error).__name__,
        error_message=str(error),
    )
