from __future__ import annotations
import logging, os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Final, Mapping, Optional, Tuple

from ._macros import contains_variable
from ._tools import ALL_TOOLS, EMULATOR_TOOLS

logger = logging.getLogger(__name__)

INVALID_DIRECTORY: Final = "Not a valid directory"
INVALID_SDK_DIRECTORY: Final = (
    "Not a valid Android SDK directory: expected 'tools' and 'platforms' subdirectories"
)
REQUIRED_SDK_TOOLS_NOT_FOUND: Final = (
    "Required SDK tools not found: install the Android SDK Tools and Platform-tools"
)
SDK_PLATFORMS_EMPTY: Final = (
    "No Android platforms installed yet; install at least one via the SDK manager"
)

# Probed in this order when the configured home is unusable
SDK_HOME_VARIABLES: Final = (
    "ANDROID_SDK_ROOT",
    "ANDROID_SDK_HOME",
    "ANDROID_HOME",
    "ANDROID_SDK",
)

_REQUIRED_DIRS: Final = ("tools", "platforms")
_TOOL_DIRS: Final = ("tools", "platform-tools")

PermissionCheck = Callable[[], bool]


# ---------- Validation result ------------------------------------------------
class Severity(Enum):
    OK = "ok"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class ValidationResult:
    severity: Severity
    message: str = ""

    @property
    def is_fatal(self) -> bool:
        return self.severity is Severity.ERROR

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(Severity.OK)

    @classmethod
    def warning(cls, message: str) -> "ValidationResult":
        return cls(Severity.WARNING, message)

    @classmethod
    def error(cls, message: str) -> "ValidationResult":
        return cls(Severity.ERROR, message)

    def __str__(self) -> str:
        return f"{self.severity.value}: {self.message}" if self.message else self.severity.value


# ---------- Core helpers -----------------------------------------------------
def validate_android_home(
    sdk_root: Optional[str | os.PathLike[str]],
    from_web_config: bool = False,
    *,
    permission_check: Optional[PermissionCheck] = None,
) -> ValidationResult:
    """
    Check whether ``sdk_root`` looks like a usable Android SDK installation.

    ``from_web_config`` selects the lenient mode used while a user is still
    typing a configuration value:
      * unprivileged callers always get ``ok`` (no probing of the filesystem
        on their behalf),
      * a blank value is ``ok``,
      * a path that still holds ``${VAR}`` style placeholders is ``ok``.

    Otherwise the directory must hold ``tools`` and ``platforms``, every
    registered tool must be present in ``tools`` or ``platform-tools``, and
    an empty ``platforms`` directory only earns a warning.
    """
    if from_web_config and not (permission_check is not None and permission_check()):
        return ValidationResult.ok()

    raw = os.fspath(sdk_root).strip() if sdk_root is not None else ""
    if from_web_config and not raw:
        return ValidationResult.ok()

    root = Path(raw)
    if not raw or not root.is_dir():
        if from_web_config and contains_variable(raw):
            return ValidationResult.ok()
        return ValidationResult.error(INVALID_DIRECTORY)

    for name in _REQUIRED_DIRS:
        if not (root / name).is_dir():
            return ValidationResult.error(INVALID_SDK_DIRECTORY)

    if len(_find_tools(root)) < len(ALL_TOOLS):
        return ValidationResult.error(REQUIRED_SDK_TOOLS_NOT_FOUND)

    if not any((root / "platforms").iterdir()):
        return ValidationResult.warning(SDK_PLATFORMS_EMPTY)

    return ValidationResult.ok()


def find_android_home(
    environment: Mapping[str, str],
    android_home: Optional[str],
) -> Optional[str]:
    """
    Pick an SDK root from the configured value or well-known env vars.

    Search order (first non-fatal hit wins):
      1. ``android_home`` itself, returned verbatim
      2. ANDROID_SDK_ROOT, ANDROID_SDK_HOME, ANDROID_HOME, ANDROID_SDK
    Falls back to ``android_home`` unchanged, valid or not, so that the
    eventual error is reported where the tool is actually run.
    """
    if _is_usable_home(android_home):
        return android_home

    for key in SDK_HOME_VARIABLES:
        home = environment.get(key)
        if _is_usable_home(home):
            logger.info("Using Android SDK from $%s: %s", key, home)
            return home

    logger.debug("No usable Android SDK found; keeping configured value %r", android_home)
    return android_home


def get_sdk_root_from_path(is_unix: bool, search_path: Optional[str] = None) -> Optional[str]:
    """
    Derive an SDK root from the PATH of the current machine.

    The first PATH entry holding *both* ``adb`` and ``emulator`` is taken to be
    ``tools`` or ``platform-tools``, so its parent is returned. Relative
    entries have no meaningful parent and are skipped.
    """
    if search_path is None:
        search_path = os.environ.get("PATH", "")

    for entry in search_path.split(os.pathsep):
        if not entry:
            continue
        directory = Path(entry)
        if not directory.is_absolute() or not directory.is_dir():
            continue
        found = sum(
            1 for tool in EMULATOR_TOOLS if (directory / tool.executable(is_unix)).exists()
        )
        if found == len(EMULATOR_TOOLS):
            logger.debug("Found emulator tools on PATH in %s", directory)
            return str(directory.parent)
    return None


def describe_android_sdk(
    android_home: Optional[str],
    is_unix: bool,
    search_path: Optional[str] = None,
) -> Optional[Tuple[str, bool]]:
    """Return ``(sdk_root, has_platform_tools)`` or ``None`` if unusable."""
    if android_home is None or not android_home.strip():
        sdk_root = get_sdk_root_from_path(is_unix, search_path)
        if sdk_root is None:
            return None
    else:
        result = validate_android_home(android_home)
        if result.is_fatal:
            logger.debug("Rejecting Android SDK %r: %s", android_home, result.message)
            return None
        sdk_root = android_home

    return sdk_root, Path(sdk_root, "platform-tools").is_dir()


# ---------- Helpers ----------------------------------------------------------
def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def _is_usable_home(value: Optional[str]) -> bool:
    if _is_blank(value):
        return False
    return not validate_android_home(value).is_fatal


def _find_tools(root: Path) -> set[str]:
    """Names of the registered tools with at least one executable under root."""
    found: set[str] = set()
    for dir_name in _TOOL_DIRS:
        tools_dir = root / dir_name
        if not tools_dir.is_dir():
            continue
        for tool in ALL_TOOLS:
            if any((tools_dir / exe).is_file() for exe in tool.variants):
                found.add(tool.name)
    return found
