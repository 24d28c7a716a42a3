"""Configuration management using pydantic-settings.

The SDK configuration is an immutable per-process record owned by the
embedding application.  It is usually passed explicitly to
``Journale.initialize``; when it is not, ``load_config()`` looks for a
YAML file on disk.

Priority order (highest first):

1. Init kwargs (values passed to ``JournaleConfig(...)``)
2. Environment variables (``JOURNALE_`` prefix, ``__`` for nesting)
3. ``.env`` dotenv file
4. YAML file (path from ``JOURNALE_CONFIG_FILE``, else ``journale.yaml``
   in the working directory)
5. File secrets

YAML keys may be written in the camelCase form used by the session
config asset (``apiBaseUrl``, ``maxRetriesOn429``, ...) or in snake_case.
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from .system import AuthMode, LoggingConfig

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Path constants
# ---------------------------------------------------------------------------

CONFIG_FILE_ENV = "JOURNALE_CONFIG_FILE"
DEFAULT_CONFIG_FILE_NAME = "journale.yaml"
DEFAULT_DEVICE_STORE_PATH = Path.home() / ".journale" / "device.json"

DOTENV_FILE_PATH = Path(".env")
ENV_DELIMITER = "__"
ENV_PREFIX = "JOURNALE_"

DEFAULT_ENCODING = "utf-8"

# camelCase asset keys -> field names.  The second group keeps configs
# written for the Steam-only asset loading unchanged.
_CAMEL_CASE_KEYS = {
    "apiBaseUrl": "api_base_url",
    "sessionCreatePath": "session_create_path",
    "chatPath": "chat_path",
    "projectId": "project_id",
    "authMode": "auth_mode",
    "platformName": "platform_name",
    "deviceIdOverride": "device_id_override",
    "deviceStorePath": "device_store_path",
    "allowFallbackIfPlatformMissing": "allow_fallback_if_platform_missing",
    "maxHistoryLinesForContext": "max_history_lines_for_context",
    "maxRetriesOn429": "max_retries_on_429",
    "baseBackoffSeconds": "base_backoff_seconds",
    "defaultParticipantDescription": "default_participant_description",
    "requestTimeoutSeconds": "request_timeout_seconds",
    "jsonOutput": "json_output",
    # legacy asset names
    "platform": "auth_mode",
    "allowGuestFallbackIfSteamMissing": "allow_fallback_if_platform_missing",
    "defaultPlayerDescription": "default_participant_description",
}

_LEGACY_PLATFORM_VALUES = {"steam": AuthMode.PLATFORM.value}


def config_file_path() -> Path:
    """Return the YAML config path currently in effect."""
    configured = os.environ.get(CONFIG_FILE_ENV)
    if configured:
        return Path(configured)
    return Path.cwd() / DEFAULT_CONFIG_FILE_NAME


def normalize_keys(data: dict[str, Any]) -> dict[str, Any]:
    """Map camelCase keys to field names, recursing into nested sections."""
    normalized: dict[str, Any] = {}
    for key, value in data.items():
        name = _CAMEL_CASE_KEYS.get(key, key)
        if isinstance(value, dict):
            value = normalize_keys(value)
        if name == "auth_mode" and isinstance(value, str):
            value = _LEGACY_PLATFORM_VALUES.get(value.lower(), value.lower())
        normalized[name] = value
    return normalized


def read_yaml_settings(path: Path) -> dict[str, Any]:
    """Read a YAML config file into a normalized settings dict."""
    with open(path, encoding=DEFAULT_ENCODING) as f:
        data = yaml.safe_load(f)
    if not data:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    return normalize_keys(data)


# ---------------------------------------------------------------------------
# SDK config
# ---------------------------------------------------------------------------


class JournaleConfig(BaseSettings):
    """Client configuration (read-only once constructed)."""

    model_config = SettingsConfigDict(
        env_file=DOTENV_FILE_PATH,
        env_file_encoding=DEFAULT_ENCODING,
        env_nested_delimiter=ENV_DELIMITER,
        env_prefix=ENV_PREFIX,
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    api_base_url: str = Field(
        default="https://api.journale.ai",
        description="Backend base URL (no trailing path)",
    )
    session_create_path: str = Field(
        default="/session/create",
        description="Path of the session-create endpoint",
    )
    chat_path: str = Field(
        default="/chat/player",
        description="Path of the signed chat endpoint",
    )
    project_id: str = Field(default="", description="Backend project id")

    auth_mode: AuthMode = Field(
        default=AuthMode.GUEST,
        description="guest: device-based auth; platform: platform identity",
    )
    platform_name: str = Field(
        default="steam",
        description="Platform name sent when authenticating in platform mode",
    )
    device_id_override: str = Field(
        default="",
        description="Fixed device id; empty means generate and persist one",
    )
    device_store_path: Path = Field(
        default=DEFAULT_DEVICE_STORE_PATH,
        description="JSON file the generated device id is persisted to",
    )
    allow_fallback_if_platform_missing: bool = Field(
        default=True,
        description="Downgrade to guest auth when no platform identity exists",
    )

    max_history_lines_for_context: int = Field(
        default=16,
        description="History entries kept per thread and sent as context",
    )
    max_retries_on_429: int = Field(
        default=2, ge=0, description="Retries for rate-limited chat requests"
    )
    base_backoff_seconds: float = Field(
        default=0.6, ge=0, description="First backoff delay, doubled per retry"
    )
    request_timeout_seconds: float = Field(
        default=30.0, gt=0, description="Transport timeout per HTTP request"
    )

    default_participant_description: str = Field(
        default="A curious player testing NPC chat.",
        description="Player description sent when none is given per call",
    )

    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging bootstrap settings",
    )

    def url_for(self, path: str) -> str:
        """Join ``api_base_url`` and an endpoint path."""
        if not path.startswith("/"):
            path = "/" + path
        return self.api_base_url.rstrip("/") + path

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            _CamelCaseYamlSettingsSource(settings_cls),
            file_secret_settings,
        )


class _CamelCaseYamlSettingsSource(PydanticBaseSettingsSource):
    """Settings source for the YAML config file, accepting camelCase keys."""

    def __init__(self, settings_cls: type[BaseSettings]) -> None:
        super().__init__(settings_cls)

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        # Unused: __call__ returns the whole mapping at once.
        return None, field_name, False

    def __call__(self) -> dict[str, Any]:
        path = config_file_path()
        if not path.is_file():
            return {}
        return read_yaml_settings(path)


def load_config(path: Optional[Path | str] = None) -> JournaleConfig | None:
    """Load configuration from disk.

    With *path*, that file is read and its values take precedence over
    the environment.  Without it, the default YAML location is used and
    ``None`` is returned when no such file exists.
    """
    if path is not None:
        logger.debug("Loading Journale config from %s", path)
        return JournaleConfig(**read_yaml_settings(Path(path)))

    default_path = config_file_path()
    if not default_path.is_file():
        return None
    logger.debug("Loading Journale config from %s", default_path)
    return JournaleConfig()
