from typing import Optional


class MissingDependencyError(ValueError):
    """A collaborator required to build the agent was not supplied."""

    def __init__(self, name: str):
        super().__init__(f"{name} is required")
        self.name = name


def require(value, name: str):
    if value is None:
        raise MissingDependencyError(name)
    return value


class ChatClientConfigurationError(RuntimeError):
    """No model provider could be configured from the environment."""


class WeatherLookupError(RuntimeError):
    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status
