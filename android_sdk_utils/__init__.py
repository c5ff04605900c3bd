# SPDX-License-Identifier: MIT
"""
Filesystem-level Android SDK helpers.

Everything in here inspects the filesystem of the machine it runs on; use
:mod:`pyandroidsdk` to run them on a remote build machine.
"""
from __future__ import annotations

from ._android_sdk_utils import (
    SDK_HOME_VARIABLES,
    Severity,
    ValidationResult,
    describe_android_sdk,
    find_android_home,
    get_sdk_root_from_path,
    validate_android_home,
)
from ._macros import contains_variable, expand_variables, replace_macro
from ._tools import ADB, ALL_TOOLS, ANDROID, EMULATOR, EMULATOR_TOOLS, MKSDCARD, Tool, get_tool

__all__: list[str] = [
    # tools
    "Tool",
    "ADB",
    "ANDROID",
    "EMULATOR",
    "MKSDCARD",
    "ALL_TOOLS",
    "EMULATOR_TOOLS",
    "get_tool",
    # validation & discovery
    "Severity",
    "ValidationResult",
    "SDK_HOME_VARIABLES",
    "validate_android_home",
    "find_android_home",
    "get_sdk_root_from_path",
    "describe_android_sdk",
    # macros
    "contains_variable",
    "expand_variables",
    "replace_macro",
]

import logging

logging.getLogger(__name__).addHandler(logging.NullHandler())
