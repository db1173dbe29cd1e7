"""Environment-driven settings for runguard hosts.

The library itself never reads the environment: ``StructuredLogger`` and
``RetryExecutor`` take explicit configuration objects.  Hosts (the CLI, or an
application embedding runguard) load ``RunguardSettings`` once at startup and
build those objects from it with ``LoggerConfig.from_settings()`` and
``RetryPolicy.from_settings()``.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.

    - **Pydantic validation:** Type-checked at startup, not runtime
    - **Environment-driven:** Reads ``RUNGUARD_*`` env vars and .env files
    - **Sensible defaults:** Works out of the box for development

Examples:
    >>> import os
    >>> os.environ["RUNGUARD_MAX_ATTEMPTS"] = "5"
    >>> RunguardSettings().max_attempts
    5

Tags:
    settings, configuration, pydantic, environment, runguard
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RunguardSettings(BaseSettings):
    """Settings shared by runguard hosts.

    Fields
    ──────
    log_level          : Minimum level of the structured logger
    log_format         : ``text`` (key=value lines) or ``json``
    log_file           : Optional file sink, in addition to the console
    exit_on_fatal      : Whether FATAL events terminate the process
    max_attempts       : Default retry budget
    initial_delay      : Delay before the first retry, in seconds
    backoff_multiplier : Growth factor of the delay after each retry
    max_delay          : Optional cap on the delay, in seconds
    command_timeout    : Optional per-attempt timeout for shell commands
    """

    model_config = SettingsConfigDict(
        env_prefix="RUNGUARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: Literal["text", "json"] = "text"
    log_file: Path | None = None
    exit_on_fatal: bool = True

    # ── Retry ────────────────────────────────────────────────────
    max_attempts: int = Field(default=3, ge=1)
    initial_delay: float = Field(default=1.0, ge=0)
    backoff_multiplier: float = Field(default=2.0, ge=1.0)
    max_delay: float | None = Field(default=None, ge=0)

    # ── Execution ────────────────────────────────────────────────
    command_timeout: float | None = Field(default=None, gt=0)

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        from runguard.logging.events import LogLevel

        return LogLevel.parse(value).name


__all__ = ["RunguardSettings"]
