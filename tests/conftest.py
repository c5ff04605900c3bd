from __future__ import annotations

import stat
from pathlib import Path
from typing import Callable, Iterable

import pytest

from android_sdk_utils import ALL_TOOLS, Tool


def _make_dummy_exe(dir_: Path, name: str, body: str = "") -> Path:
    """
    Create a tiny shell script and mark it +x.

    We really create a file so that Path.is_file() returns True — no mocks.
    """
    dir_.mkdir(parents=True, exist_ok=True)
    path = dir_ / name
    path.write_text(f"#!/bin/sh\n{body}")
    path.chmod(path.stat().st_mode | stat.S_IXUSR)
    return path


def _make_sdk(
    root: Path,
    tools: Iterable[Tool] = ALL_TOOLS,
    *,
    is_unix: bool = True,
    platform_tools: bool = True,
    platforms: Iterable[str] = ("android-34",),
) -> Path:
    """Lay out a fake SDK; platform tools go into platform-tools/ when it exists."""
    (root / "tools").mkdir(parents=True, exist_ok=True)
    (root / "platforms").mkdir(exist_ok=True)
    if platform_tools:
        (root / "platform-tools").mkdir(exist_ok=True)
    for tool in tools:
        sub = "platform-tools" if tool.is_platform_tool and platform_tools else "tools"
        _make_dummy_exe(root / sub, tool.executable(is_unix))
    for name in platforms:
        (root / "platforms" / name).mkdir()
    return root


@pytest.fixture
def make_exe() -> Callable[..., Path]:
    return _make_dummy_exe


@pytest.fixture
def make_sdk() -> Callable[..., Path]:
    return _make_sdk
