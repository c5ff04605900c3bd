# SPDX-License-Identifier: MIT
"""Settings read from ``PYANDROIDSDK_*`` environment variables or ``.env``."""
from __future__ import annotations

import logging
import shlex
import sys
from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s – %(message)s"
_LOGGERS = ("pyandroidsdk", "android_sdk_utils")


class _StdoutHandler(logging.StreamHandler):
    """The handler installed by :func:`configure_logging`."""

    def __init__(self) -> None:
        super().__init__(sys.stdout)
        self.setFormatter(logging.Formatter(_LOG_FORMAT))


class SdkSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PYANDROIDSDK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    android_home: Optional[str] = Field(
        default=None,
        description="Configured SDK root; may contain ${VAR} references.",
    )
    agent_python: str = Field(
        default="python3",
        min_length=1,
        description="Interpreter used to start the agent on remote machines.",
    )
    ssh_command: str = Field(default="ssh", min_length=1)
    ssh_options: str = Field(
        default="-o BatchMode=yes",
        description="Extra ssh arguments, split shell-style.",
    )
    ssh_timeout: float = Field(
        default=60.0,
        gt=0,
        description="Seconds to wait for one agent request over ssh.",
    )
    log_level: str = "INFO"

    def ssh_options_list(self) -> List[str]:
        return shlex.split(self.ssh_options)


@lru_cache
def get_settings() -> SdkSettings:
    return SdkSettings()


def configure_logging(level: str | int | None = None) -> None:
    """Send this package's log records to stdout (idempotent)."""
    if level is None:
        level = get_settings().log_level
    if isinstance(level, str):
        level = level.upper()
    for name in _LOGGERS:
        logger = logging.getLogger(name)
        if not any(isinstance(h, _StdoutHandler) for h in logger.handlers):
            logger.addHandler(_StdoutHandler())
        logger.setLevel(level)
