import logging

from agent_framework.azure import AzureOpenAIChatClient
from agent_framework.openai import OpenAIChatClient
from azure.identity import AzureCliCredential

from .config import AgentSettings
from .errors import ChatClientConfigurationError, require
from .logs import log_event


def build_chat_client(settings: AgentSettings):
    """Create the chat client for the configured provider.

    Azure OpenAI wins when an endpoint is configured. Without an API key the
    Azure CLI login is used.
    """
    require(settings, "settings")
    provider = settings.provider

    if provider == "azure":
        if not settings.azure_openai_deployment:
            raise ChatClientConfigurationError(
                "AZURE_OPENAI_ENDPOINT is set but AZURE_OPENAI_CHAT_DEPLOYMENT_NAME is missing"
            )
        kwargs = {
            "endpoint": settings.azure_openai_endpoint,
            "deployment_name": settings.azure_openai_deployment,
        }
        if settings.azure_openai_api_version:
            kwargs["api_version"] = settings.azure_openai_api_version
        if settings.azure_openai_api_key:
            kwargs["api_key"] = settings.azure_openai_api_key
            auth = "key"
        else:
            kwargs["credential"] = AzureCliCredential()
            auth = "azure_cli"
        log_event(logging.INFO, "chat_client_init", provider=provider, auth=auth)
        return AzureOpenAIChatClient(**kwargs)

    if provider == "openai":
        log_event(logging.INFO, "chat_client_init", provider=provider, model=settings.openai_model_id)
        return OpenAIChatClient(api_key=settings.openai_api_key, model_id=settings.openai_model_id)

    raise ChatClientConfigurationError(
        "No model provider configured: set AZURE_OPENAI_ENDPOINT or OPENAI_API_KEY"
    )
