# SPDX-License-Identifier: MIT
"""Exception hierarchy shared by the SDK helpers and execution contexts."""
from __future__ import annotations


class AndroidSdkError(RuntimeError):
    """Base class for everything raised by :mod:`pyandroidsdk`."""


class AndroidToolNotFound(AndroidSdkError):
    """Raised when no usable SDK (or PATH toolchain) could be determined."""


class ChannelError(AndroidSdkError):
    """The channel to the build machine failed or was interrupted."""


class RemoteCallError(ChannelError):
    """The agent on the build machine answered a request with an error."""

    def __init__(self, error_type: str, message: str) -> None:
        super().__init__(f"{error_type}: {message}")
        self.error_type = error_type
        self.message = message


class ToolExecutionError(AndroidSdkError):
    """An SDK tool could not be started or was interrupted before exiting."""


class EnvironmentLookupError(RuntimeError):
    """Raised by environment providers when variables cannot be read."""
