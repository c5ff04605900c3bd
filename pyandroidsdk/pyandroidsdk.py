# SPDX-License-Identifier: MIT
"""
Locate, validate and run Android SDK tools on a (possibly remote) build machine.

* SDK discovery and validation run *on* the build machine, via an
  :class:`~pyandroidsdk._context.ExecutionContext`
* :class:`AndroidSdk` describes the chosen installation
* :func:`get_tool_command` turns a :class:`Tool` plus an argument string into
  a ready-to-launch :class:`Command`
* :func:`run_android_tool` launches it and blocks until it exits
"""
from __future__ import annotations

###############################################################################
# Standard library
###############################################################################
import logging
import shlex
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Dict, Iterator, Mapping, Optional, Protocol, Tuple

from android_sdk_utils import Severity, Tool, ValidationResult, expand_variables

from ._context import ExecutionContext, Sink
from .agent import DescribeSdkRequest, DiscoverHomeRequest, ValidateHomeRequest
from .config import SdkSettings
from .exceptions import AndroidToolNotFound, EnvironmentLookupError

###############################################################################
# Logging
###############################################################################
logger = logging.getLogger(__name__)


###############################################################################
# SDK & command models
###############################################################################
@dataclass(frozen=True, slots=True)
class AndroidSdk:
    sdk_root: Optional[str] = None
    uses_platform_tools: bool = False

    @property
    def has_known_root(self) -> bool:
        return self.sdk_root is not None


@dataclass(frozen=True, slots=True)
class Command:
    args: Tuple[str, ...]

    @property
    def executable(self) -> str:
        return self.args[0]

    @property
    def arguments(self) -> Tuple[str, ...]:
        return self.args[1:]

    def __iter__(self) -> Iterator[str]:
        return iter(self.args)

    def __len__(self) -> int:
        return len(self.args)

    def __str__(self) -> str:
        return shlex.join(self.args)


###############################################################################
# Environment
###############################################################################
class EnvironmentProvider(Protocol):
    """Source of the variables for one build on one machine."""

    def host_environment(self) -> Mapping[str, str]: ...

    def job_environment(self) -> Mapping[str, str]: ...

    def build_variables(self) -> Mapping[str, str]: ...


def _read(getter: Callable[[], Mapping[str, str]]) -> Optional[Mapping[str, str]]:
    try:
        return getter()
    except (EnvironmentLookupError, OSError) as exc:
        logger.debug("Could not read variables: %s", exc)
        return None


def get_environment(provider: EnvironmentProvider) -> Mapping[str, str]:
    """
    Host environment overlaid with the job's environment (job wins).

    Lookups that fail are skipped; the snapshot is read-only.
    """
    merged: Dict[str, str] = {}
    for getter in (provider.host_environment, provider.job_environment):
        if (values := _read(getter)) is not None:
            merged.update(values)
    return MappingProxyType(merged)


def get_build_variables(provider: EnvironmentProvider) -> Mapping[str, str]:
    return MappingProxyType(dict(_read(provider.build_variables) or {}))


def expand_build_variables(provider: EnvironmentProvider, token: Optional[str]) -> Optional[str]:
    """Expand ``token`` for one build; ``None`` if its variables are unavailable."""
    try:
        env_vars = dict(provider.host_environment())
        env_vars.update(provider.job_environment())
        build_vars = provider.build_variables()
    except (EnvironmentLookupError, OSError) as exc:
        logger.debug("Could not expand %r: %s", token, exc)
        return None
    return expand_variables(env_vars, build_vars, token)


###############################################################################
# Discovery (runs on the build machine)
###############################################################################
def check_android_home(context: ExecutionContext, sdk_root: Optional[str]) -> ValidationResult:
    """Validate ``sdk_root`` against the build machine's filesystem."""
    value = context.call(ValidateHomeRequest(sdk_root=sdk_root))
    return ValidationResult(Severity(value["severity"]), value["message"])


def discover_android_home(
    context: ExecutionContext,
    environment: Mapping[str, str],
    android_home: Optional[str],
) -> Optional[str]:
    """
    Validate the configured SDK root, else find one via ANDROID_SDK_ROOT & co.

    Either way, the configured value is returned if nothing better turns up.
    """
    request = DiscoverHomeRequest(environment=dict(environment), android_home=android_home)
    return context.call(request)


def get_android_sdk(context: ExecutionContext, android_home: Optional[str]) -> Optional[AndroidSdk]:
    """
    Describe the SDK installed on the build machine.

    With no ``android_home``, the SDK is looked for on the machine's PATH.
    Returns ``None`` when nothing usable was found.
    """
    value = context.call(DescribeSdkRequest(android_home=android_home, is_unix=context.is_unix))
    if value is None:
        logger.info("No usable Android SDK found (configured: %r)", android_home)
        return None
    return AndroidSdk(value["sdk_root"], bool(value["uses_platform_tools"]))


def require_android_sdk(context: ExecutionContext, android_home: Optional[str]) -> AndroidSdk:
    sdk = get_android_sdk(context, android_home)
    if sdk is None:
        raise AndroidToolNotFound(
            "Could not find a usable Android SDK. "
            "Configure the SDK root, set ANDROID_SDK_ROOT or put adb and emulator on the PATH."
        )
    return sdk


def locate_android_sdk(
    context: ExecutionContext,
    provider: EnvironmentProvider,
    settings: SdkSettings,
) -> Optional[AndroidSdk]:
    """Expand the configured SDK root for this build, resolve it and describe it."""
    environment = get_environment(provider)
    android_home = expand_variables(
        environment, get_build_variables(provider), settings.android_home
    )
    android_home = discover_android_home(context, environment, android_home)
    return get_android_sdk(context, android_home)


###############################################################################
# Commands
###############################################################################
def _tokenize(args: Optional[str], is_unix: bool) -> list[str]:
    if not args or not args.strip():
        return []
    lexer = shlex.shlex(args, posix=True)
    lexer.whitespace_split = True
    lexer.commenters = ""
    if not is_unix:
        # keep C:\paths intact
        lexer.escape = ""
    return list(lexer)


def get_tool_command(
    sdk: AndroidSdk,
    is_unix: bool,
    tool: Tool,
    args: Optional[str] = None,
) -> Command:
    """
    Full command line for ``tool``, pointing into the SDK when its root is known.

    ``adb`` lives in ``platform-tools`` on newer SDKs; everything else, and
    ``adb`` on SDKs without ``platform-tools``, comes from ``tools``. With no
    known root the bare executable name is used and left to the PATH.
    """
    if sdk.has_known_root:
        if tool.is_platform_tool and sdk.uses_platform_tools:
            tools_dir = f"{sdk.sdk_root}/platform-tools/"
        else:
            tools_dir = f"{sdk.sdk_root}/tools/"
    else:
        tools_dir = ""

    return Command((tools_dir + tool.executable(is_unix), *_tokenize(args, is_unix)))


def run_android_tool(
    context: ExecutionContext,
    stdout: Sink,
    stderr: Sink,
    sdk: AndroidSdk,
    tool: Tool,
    args: Optional[str] = None,
    working_directory: Optional[str] = None,
) -> int:
    """
    Run ``tool`` on the build machine and wait for it to exit.

    Returns the process exit status as-is; what a non-zero status means is up
    to the caller. Raises :class:`ToolExecutionError` if the tool could not
    be started or was interrupted.
    """
    cmd = get_tool_command(sdk, context.is_unix, tool, args)
    logger.info("Running %s", tool.name)
    return context.launch(cmd.args, stdout=stdout, stderr=stderr, cwd=working_directory)
