"""Runtime settings for homestack.

Provides centralized configuration using Pydantic BaseSettings with
environment variable support. Every variable uses the ``HOMESTACK_`` prefix.
"""

from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError

ROOT_ENV_VAR = "HOMESTACK_ROOT"
DEFAULT_PASSWORD_LENGTH = 16


class FanOutMode(str, Enum):
    """How a lifecycle verb is applied when no stack is named."""

    BEST_EFFORT = "best-effort"
    FAIL_FAST = "fail-fast"
    PARALLEL = "parallel"


class HomestackSettings(BaseSettings):
    """homestack configuration."""

    root: Path = Field(description="Directory holding the stack directories")

    fan_out: FanOutMode = Field(
        FanOutMode.BEST_EFFORT, description="Policy for verbs applied to every stack"
    )

    detach: bool = Field(True, description="Pass -d to 'up' unless already given")

    compose_command: list[str] = Field(
        default_factory=lambda: ["docker", "compose"],
        description="Command prefix used to invoke the compose runtime",
    )

    docker_command: list[str] = Field(
        default_factory=lambda: ["docker"],
        description="Command prefix used for system-wide docker operations",
    )

    command_timeout: float | None = Field(
        None, description="Timeout in seconds for a runtime call (None waits forever)"
    )

    password_length: int = Field(
        DEFAULT_PASSWORD_LENGTH, gt=0, description="Default byte count for 'password'"
    )

    model_config = SettingsConfigDict(
        env_prefix="HOMESTACK_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("root")
    @classmethod
    def _root_must_be_directory(cls, value: Path) -> Path:
        value = value.expanduser()
        if not value.is_dir():
            raise ValueError(f"{value} is not a directory")
        return value.resolve()

    @field_validator("compose_command", "docker_command")
    @classmethod
    def _command_not_empty(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("command prefix must not be empty")
        return value


def load_settings(**overrides: Any) -> HomestackSettings:
    """Load settings from the environment, applying non-None overrides.

    Raises:
        ConfigurationError: If the root directory is unset or invalid, or any
            other setting fails validation.
    """
    overrides = {key: value for key, value in overrides.items() if value is not None}
    try:
        return HomestackSettings(**overrides)
    except ValidationError as e:
        problems = []
        for error in e.errors():
            field = ".".join(str(part) for part in error["loc"]) or "settings"
            if field == "root" and error["type"] == "missing":
                problems.append(f"{ROOT_ENV_VAR} is not set")
            else:
                problems.append(f"{field}: {error['msg']}")
        raise ConfigurationError("; ".join(problems)) from e
