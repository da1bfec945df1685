import json
import logging

from .config import VERSION

logger = logging.getLogger("weather_agent")


def log_event(level: int, event: str, **kwargs):
    try:
        payload = {"event": event, "v": VERSION, **kwargs}
        logger.log(level, json.dumps(payload, ensure_ascii=False))
    except (TypeError, ValueError):
        logger.log(level, f"{event} | {kwargs}")


def configure_logging(level: str = "INFO"):
    ms_agents_logger = logging.getLogger("microsoft_agents")
    ms_agents_logger.addHandler(logging.StreamHandler())
    ms_agents_logger.setLevel(logging.INFO)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    for name in ("app", "weather_agent"):
        lg = logging.getLogger(name)
        lg.addHandler(handler)
        lg.setLevel(getattr(logging, level.upper(), logging.INFO))
        lg.propagate = False
