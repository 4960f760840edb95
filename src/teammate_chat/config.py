"""Configuration loading and validation for the teammate chat TUI."""

from __future__ import annotations

from copy import deepcopy
import logging
import os
from pathlib import Path
from typing import Any, Literal

from platformdirs import user_config_path
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from .catalog import DEFAULT_MODEL, DEFAULT_THINKING_MODE, is_model, is_thinking_mode
from .exceptions import ConfigValidationError

import tomllib  # stdlib since Python 3.11 (project requires >=3.11)

LOGGER = logging.getLogger(__name__)

APP_NAME = "teamterm"
CONFIG_DIR = user_config_path(APP_NAME)
CONFIG_PATH = CONFIG_DIR / "config.toml"

VALID_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def _required_string(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError("Expected a string value.")
    normalized = value.strip()
    if not normalized:
        raise ValueError("String value must not be empty.")
    return normalized


def _optional_string(value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError("Expected a string value.")
    return value.strip()


class AppConfig(BaseModel):
    """Application metadata."""

    title: str = "TeamTerm"
    expanded_on_start: bool = False

    @field_validator("title", mode="before")
    @classmethod
    def _validate_title(cls, value: Any) -> str:
        return _required_string(value)


class AgentConfig(BaseModel):
    """The primary agent that receives messages without a mention."""

    id: str = "assistant"
    work_directory: str = "."
    model: str = ""

    @field_validator("id", "work_directory", mode="before")
    @classmethod
    def _validate_required(cls, value: Any) -> str:
        return _required_string(value)

    @field_validator("model", mode="before")
    @classmethod
    def _validate_model(cls, value: Any) -> str:
        return _optional_string(value)


class HostConfig(BaseModel):
    """How agent processes are launched."""

    kind: Literal["auto", "subprocess", "memory"] = "auto"
    command: list[str] = Field(
        default_factory=lambda: ["teammate-agent", "--agent", "{agent_id}"]
    )
    model_flag: str = "--model"
    terminate_timeout_seconds: float = Field(default=5.0, gt=0, le=300)

    @field_validator("command", mode="before")
    @classmethod
    def _validate_command(cls, value: Any) -> list[str]:
        if isinstance(value, str):
            value = value.split()
        if not isinstance(value, list) or not value:
            raise ValueError("command must be a non-empty list of strings.")
        parts: list[str] = []
        for item in value:
            if not isinstance(item, str) or not item.strip():
                raise ValueError("command entries must be non-empty strings.")
            parts.append(item.strip())
        return parts

    @field_validator("model_flag", mode="before")
    @classmethod
    def _validate_model_flag(cls, value: Any) -> str:
        return _optional_string(value)


class ComposerConfig(BaseModel):
    """Composer picker context and default selections."""

    project_id: str = ""
    base_path: str = ""
    thinking_mode: str = DEFAULT_THINKING_MODE
    model: str = DEFAULT_MODEL
    max_file_results: int = Field(default=50, ge=1, le=1000)

    @field_validator("project_id", "base_path", mode="before")
    @classmethod
    def _validate_context(cls, value: Any) -> str:
        return _optional_string(value)

    @field_validator("thinking_mode", mode="before")
    @classmethod
    def _validate_thinking_mode(cls, value: Any) -> str:
        normalized = _required_string(value)
        if not is_thinking_mode(normalized):
            raise ValueError(f"Unknown thinking mode {normalized!r}.")
        return normalized

    @field_validator("model", mode="before")
    @classmethod
    def _validate_composer_model(cls, value: Any) -> str:
        normalized = _required_string(value)
        if not is_model(normalized):
            raise ValueError(f"Unknown model {normalized!r}.")
        return normalized


class TeamMemberConfig(BaseModel):
    """One agent of the team."""

    id: str
    name: str
    nickname: str = ""
    agent_type: str = ""
    role: str = ""
    model: str = ""

    @field_validator("id", "name", mode="before")
    @classmethod
    def _validate_identity(cls, value: Any) -> str:
        return _required_string(value)

    @field_validator("nickname", "agent_type", "role", "model", mode="before")
    @classmethod
    def _validate_optional(cls, value: Any) -> str:
        return _optional_string(value)


class TeamConfig(BaseModel):
    """The agents that can be addressed with ``@name``."""

    members: list[TeamMemberConfig] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_member_ids(self) -> TeamConfig:
        seen: set[str] = set()
        for member in self.members:
            if member.id in seen:
                raise ValueError(f"Duplicate team member id {member.id!r}.")
            seen.add(member.id)
        return self


class CustomCommandConfig(BaseModel):
    """A ``/`` command that sends a prompt template to the primary agent."""

    name: str
    namespace: str = ""
    description: str = ""
    prompt: str
    accepts_arguments: bool = False

    @field_validator("name", "prompt", mode="before")
    @classmethod
    def _validate_required(cls, value: Any) -> str:
        return _required_string(value)

    @field_validator("name", mode="after")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        if any(char.isspace() for char in value) or ":" in value:
            raise ValueError("Command names must not contain whitespace or ':'.")
        return value.lstrip("/")

    @field_validator("namespace", "description", mode="before")
    @classmethod
    def _validate_optional(cls, value: Any) -> str:
        return _optional_string(value)


class CommandsConfig(BaseModel):
    """User-defined slash commands."""

    custom: list[CustomCommandConfig] = Field(default_factory=list)


class KeybindsConfig(BaseModel):
    """Keyboard action mapping."""

    toggle_expanded: str = "ctrl+shift+e"
    kill_agent: str = "ctrl+b"
    clear_conversation: str = "ctrl+l"
    quit: str = "ctrl+q"

    @field_validator("*", mode="before")
    @classmethod
    def _validate_keybind(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("Keybind must be a string.")
        normalized = value.strip()
        if not normalized:
            raise ValueError("Keybind must not be empty.")
        return normalized


class LoggingConfig(BaseModel):
    """Logging behavior and output destinations."""

    level: str = "INFO"
    structured: bool = True
    log_to_file: bool = False
    log_file_path: str = "~/.local/state/teamterm/app.log"

    @field_validator("level", mode="before")
    @classmethod
    def _validate_level(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("Logging level must be a string.")
        normalized = value.strip().upper()
        if normalized not in VALID_LOG_LEVELS:
            raise ValueError(f"Unsupported log level {normalized!r}.")
        return normalized

    @field_validator("log_file_path", mode="before")
    @classmethod
    def _validate_log_file_path(cls, value: Any) -> str:
        return _required_string(value)


class Config(BaseModel):
    """Root configuration model for all sections."""

    model_config = ConfigDict(populate_by_name=True)
    app: AppConfig = AppConfig()
    agent: AgentConfig = AgentConfig()
    host: HostConfig = HostConfig()
    composer: ComposerConfig = ComposerConfig()
    team: TeamConfig = TeamConfig()
    commands: CommandsConfig = CommandsConfig()
    keybinds: KeybindsConfig = KeybindsConfig()
    logging: LoggingConfig = LoggingConfig()

    @model_validator(mode="after")
    def _validate_agent_model(self) -> Config:
        if self.agent.model and not is_model(self.agent.model):
            raise ValueError(f"agent.model {self.agent.model!r} is not a known model.")
        for member in self.team.members:
            if member.model and not is_model(member.model):
                raise ValueError(
                    f"team member {member.id!r} uses unknown model {member.model!r}."
                )
        return self


DEFAULT_CONFIG: dict[str, dict[str, Any]] = Config().model_dump(by_alias=True)


def ensure_config_dir(config_dir: Path | None = None) -> Path:
    """Ensure that the config directory exists and return its path."""
    directory = config_dir or CONFIG_DIR
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        LOGGER.warning("Unable to create config directory %s: %s", directory, exc)
    return directory


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override values onto base values."""
    merged: dict[str, Any] = deepcopy(base)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _enforce_private_permissions(path: Path) -> None:
    """Best-effort enforcement of private file permissions on POSIX systems."""
    if os.name != "posix" or not path.exists():
        return
    try:
        path.chmod(0o600)
    except OSError as exc:
        LOGGER.warning("Unable to enforce 0600 permissions for %s: %s", path, exc)


def _safe_default_config() -> dict[str, dict[str, Any]]:
    """Return a deep copy of validated default config data."""
    return deepcopy(DEFAULT_CONFIG)


def _validate_config(raw: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """Validate merged config and fallback to safe defaults when possible."""
    try:
        config = Config.model_validate(raw)
        return config.model_dump(by_alias=True)
    except ValidationError as exc:
        LOGGER.warning(
            "config.invalid",
            extra={"event": "config.invalid", "errors": exc.error_count()},
        )
        LOGGER.debug("Configuration validation failed, using safe defaults: %s", exc)
        return _safe_default_config()
    except Exception as exc:  # noqa: BLE001 - unexpected model construction failure.
        raise ConfigValidationError(f"Unable to validate configuration: {exc}") from exc


def load_config(config_path: Path | None = None) -> dict[str, dict[str, Any]]:
    """
    Load configuration from TOML, merge with defaults, and validate.

    The optional ``config_path`` argument is intended for tests and tooling.
    """
    target_path = config_path or CONFIG_PATH
    ensure_config_dir(target_path.parent)

    raw_data: dict[str, Any] = {}
    if target_path.exists():
        _enforce_private_permissions(target_path)
        try:
            raw_data = tomllib.loads(target_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as exc:
            LOGGER.warning(
                "config.unreadable",
                extra={
                    "event": "config.unreadable",
                    "path": str(target_path),
                    "reason": str(exc),
                },
            )
            raw_data = {}

    return _validate_config(_deep_merge(DEFAULT_CONFIG, raw_data))
