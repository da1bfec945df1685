import logging
import os

from microsoft_agents.activity import load_configuration_from_env
from microsoft_agents.authentication.msal import MsalConnectionManager
from microsoft_agents.hosting.aiohttp import CloudAdapter
from microsoft_agents.hosting.core import (
    AgentApplication,
    Authorization,
    MemoryStorage,
    TurnContext,
    TurnState,
)

from .bot import init_bot, log_turn_error, route_members_added, route_message
from .config import AgentSettings

# ------------------------------------------------------------------------------
# Agents SDK wiring
# ------------------------------------------------------------------------------

agents_sdk_config = load_configuration_from_env(os.environ)
logging.basicConfig(level=logging.INFO)

STORAGE = MemoryStorage()
CONNECTION_MANAGER = MsalConnectionManager(**agents_sdk_config)
ADAPTER = CloudAdapter(connection_manager=CONNECTION_MANAGER)
AUTHORIZATION = Authorization(STORAGE, CONNECTION_MANAGER, **agents_sdk_config)

AGENT_APP = AgentApplication[TurnState](
    storage=STORAGE, adapter=ADAPTER, authorization=AUTHORIZATION, **agents_sdk_config
)

SETTINGS = AgentSettings()
BOT = init_bot(SETTINGS)


# ------------------------------------------------------------------------------
# Routes
# ------------------------------------------------------------------------------

@AGENT_APP.conversation_update("membersAdded")
async def on_members_added(context: TurnContext, state: TurnState):
    await route_members_added(BOT, context, state)


# Catch-all message route: register any more specific message routes above it.
@AGENT_APP.activity("message")
async def on_message(context: TurnContext, state: TurnState):
    await route_message(BOT, context, state)


@AGENT_APP.error
async def on_error(context: TurnContext, error: Exception):
    await log_turn_error(context, error)
