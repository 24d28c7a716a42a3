from enum import Enum

from pydantic import BaseModel, Field


class AuthMode(str, Enum):
    """How the client authenticates when creating a session."""

    GUEST = "guest"
    PLATFORM = "platform"


class LoggingConfig(BaseModel):
    """Root logger settings applied by ``setup_logging``."""

    level: str = Field(default="INFO", description="Root log level")
    json_output: bool = Field(
        default=False,
        description="Emit JSON lines instead of human-readable output",
    )
