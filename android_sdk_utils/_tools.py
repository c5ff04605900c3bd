# SPDX-License-Identifier: MIT
"""Catalogue of the Android SDK executables this package knows how to run."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Tuple


@dataclass(frozen=True, slots=True)
class Tool:
    name: str
    unix_executable: str
    windows_executable: str
    is_platform_tool: bool = False

    def executable(self, is_unix: bool) -> str:
        """Return the on-disk filename of this tool for the target platform."""
        return self.unix_executable if is_unix else self.windows_executable

    @property
    def variants(self) -> Tuple[str, str]:
        return (self.unix_executable, self.windows_executable)


# adb moved to platform-tools; everything else still ships in tools/
ADB: Final = Tool("adb", "adb", "adb.exe", is_platform_tool=True)
ANDROID: Final = Tool("android", "android", "android.bat")
EMULATOR: Final = Tool("emulator", "emulator", "emulator.exe")
MKSDCARD: Final = Tool("mksdcard", "mksdcard", "mksdcard.exe")

ALL_TOOLS: Final[Tuple[Tool, ...]] = (ADB, ANDROID, EMULATOR, MKSDCARD)

# Enough to start and drive an emulator when the SDK is only known via PATH
EMULATOR_TOOLS: Final[Tuple[Tool, ...]] = (ADB, EMULATOR)

_BY_NAME: Final = {t.name: t for t in ALL_TOOLS}


def get_tool(name: str) -> Tool:
    try:
        return _BY_NAME[name]
    except KeyError:
        raise ValueError(f"Unsupported tool: {name}") from None
