import os
from dataclasses import dataclass, field
from os import environ
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# ------------------------------------------------------------------------------
# Config (load env)
# ------------------------------------------------------------------------------

load_dotenv(dotenv_path=Path(__file__).resolve().parents[1] / ".env", override=True)

VERSION = os.getenv("VERSION", "purrfect-weather-agent-1.0.0")

# Fixed agent behaviour
AGENT_NAME = "Purrfect Weather Agent"
AGENT_TEMPERATURE = 0.2
HISTORY_MAX_MESSAGES = 10
THREAD_STATE_KEY = "conversation.threadInfo"
INFORMATIVE_UPDATE_TEXT = "Just a moment please.."

AGENT_WELCOME_MESSAGE = (
    "Hello! I'm your friendly weather cat assistant. I can help you find the current weather "
    "or a weather forecast for any city. Just tell me the city name and, if you're in the US, "
    "the 2-letter state code. Meow!"
)

AGENT_INSTRUCTIONS = """
You are a friendly feline assistant that helps people find the current weather or a weather forecast for a given place.
You will always speak like a cat.
Location is a city name, 2 letter US state codes should be resolved to the full name of the United States State.
You may ask follow up questions until you have enough information to answer the customers question, but once you have the current weather or a forecast, make sure to format it nicely in text.

For current weather, Use the get_current_weather_for_location tool, you should include the current temperature, low and high temperatures, wind speed, humidity, and a short description of the weather.
For forecast's, Use the get_weather_forecast_for_location tool, you should report on the next 5 days, including the current day, and include the date, high and low temperatures, and a short description of the weather.
You should use the get_date_time tool to get the current date and time.
""".strip()


# ------------------------------------------------------------------------------
# Env helpers
# ------------------------------------------------------------------------------
def env_bool(name: str, default: bool = False) -> bool:
    val = environ.get(name)
    if val is None:
        return default
    return val.strip().lower() in {"1", "true", "yes", "on", "y"}


def env_int(name: str, default: int) -> int:
    try:
        return int(environ.get(name, str(default)))
    except ValueError:
        return default


def env_float(name: str, default: float) -> float:
    try:
        return float(environ.get(name, str(default)))
    except ValueError:
        return default


def _env_str(name: str) -> Optional[str]:
    val = environ.get(name)
    if val is None or not val.strip():
        return None
    return val.strip()


# ------------------------------------------------------------------------------
# HTTP host
# ------------------------------------------------------------------------------
@dataclass
class AppConfig:
    host: str = field(default_factory=lambda: environ.get("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: env_int("PORT", 3978))
    base_api: str = field(default_factory=lambda: environ.get("BASE_API", "/api"))
    messages_path: str = field(default_factory=lambda: environ.get("MESSAGES_PATH", "/messages"))
    client_max_size_mb: int = field(default_factory=lambda: env_int("CLIENT_MAX_SIZE_MB", 10))
    log_level: str = field(default_factory=lambda: environ.get("LOG_LEVEL", "INFO").upper())
    debug: bool = field(default_factory=lambda: env_bool("DEBUG", False))

    def client_max_size_bytes(self) -> int:
        return max(1, self.client_max_size_mb) * 1024 * 1024


# ------------------------------------------------------------------------------
# Model + tools
# ------------------------------------------------------------------------------
@dataclass
class AgentSettings:
    azure_openai_endpoint: Optional[str] = field(default_factory=lambda: _env_str("AZURE_OPENAI_ENDPOINT"))
    azure_openai_api_key: Optional[str] = field(default_factory=lambda: _env_str("AZURE_OPENAI_API_KEY"))
    azure_openai_deployment: Optional[str] = field(
        default_factory=lambda: _env_str("AZURE_OPENAI_CHAT_DEPLOYMENT_NAME")
    )
    azure_openai_api_version: Optional[str] = field(default_factory=lambda: _env_str("AZURE_OPENAI_API_VERSION"))

    openai_api_key: Optional[str] = field(default_factory=lambda: _env_str("OPENAI_API_KEY"))
    openai_model_id: Optional[str] = field(default_factory=lambda: _env_str("OPENAI_CHAT_MODEL_ID"))

    openweather_api_key: Optional[str] = field(default_factory=lambda: _env_str("OPENWEATHER_API_KEY"))
    openweather_base_url: str = field(
        default_factory=lambda: environ.get("OPENWEATHER_BASE_URL", "https://api.openweathermap.org").rstrip("/")
    )
    openweather_units: str = field(default_factory=lambda: environ.get("OPENWEATHER_UNITS", "imperial"))
    weather_http_timeout: float = field(default_factory=lambda: env_float("WEATHER_HTTP_TIMEOUT", 10.0))

    @property
    def provider(self) -> Optional[str]:
        if self.azure_openai_endpoint:
            return "azure"
        if self.openai_api_key:
            return "openai"
        return None
