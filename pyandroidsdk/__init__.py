# SPDX-License-Identifier: MIT
"""
pyandroidsdk
============

A thin, import-ready façade over the Android SDK locator: resolve an SDK on
a local or ssh-reachable build machine, check it, and run its tools.

Usage
-----
>>> from pyandroidsdk import ADB, LocalExecutionContext, get_android_sdk, run_android_tool
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Re-export public API
# ---------------------------------------------------------------------------
from android_sdk_utils import (
    ADB,
    ALL_TOOLS,
    ANDROID,
    EMULATOR,
    MKSDCARD,
    Severity,
    Tool,
    ValidationResult,
    expand_variables,
    get_tool,
    validate_android_home,
)

from ._context import ExecutionContext, LocalExecutionContext, SshExecutionContext
from .config import SdkSettings, configure_logging, get_settings
from .exceptions import (
    AndroidSdkError,
    AndroidToolNotFound,
    ChannelError,
    EnvironmentLookupError,
    RemoteCallError,
    ToolExecutionError,
)
from .pyandroidsdk import (
    AndroidSdk,
    Command,
    EnvironmentProvider,
    check_android_home,
    discover_android_home,
    expand_build_variables,
    get_android_sdk,
    get_build_variables,
    get_environment,
    get_tool_command,
    locate_android_sdk,
    require_android_sdk,
    run_android_tool,
)

__all__: list[str] = [
    # tools
    "Tool",
    "ADB",
    "ANDROID",
    "EMULATOR",
    "MKSDCARD",
    "ALL_TOOLS",
    "get_tool",
    # validation
    "Severity",
    "ValidationResult",
    "validate_android_home",
    "check_android_home",
    # discovery
    "AndroidSdk",
    "discover_android_home",
    "get_android_sdk",
    "require_android_sdk",
    "locate_android_sdk",
    # commands
    "Command",
    "get_tool_command",
    "run_android_tool",
    # execution contexts
    "ExecutionContext",
    "LocalExecutionContext",
    "SshExecutionContext",
    # environment & macros
    "EnvironmentProvider",
    "get_environment",
    "get_build_variables",
    "expand_variables",
    "expand_build_variables",
    # config
    "SdkSettings",
    "get_settings",
    "configure_logging",
    # exceptions
    "AndroidSdkError",
    "AndroidToolNotFound",
    "ChannelError",
    "RemoteCallError",
    "ToolExecutionError",
    "EnvironmentLookupError",
]

# ---------------------------------------------------------------------------
# Optional: version & logging niceties
# ---------------------------------------------------------------------------
from importlib.metadata import PackageNotFoundError, version

try:
    __version__: str = version(__name__)
except PackageNotFoundError:  # running from a checkout
    __version__ = "0.0.0.dev0"

import logging

logging.getLogger(__name__).addHandler(logging.NullHandler())
