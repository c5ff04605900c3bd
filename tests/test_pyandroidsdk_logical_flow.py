# SPDX-License-Identifier: MIT
"""
High-coverage tests for pyandroidsdk.pyandroidsdk
=================================================

What is covered
---------------
✔ `get_tool_command` path prefixes, executable names and tokenizing
✔ Home discovery / SDK description through a `LocalExecutionContext`
✔ `locate_android_sdk` end-to-end with an injected configuration
✔ Environment snapshots and the provider-based macro expansion
✔ `run_android_tool` against real (tiny) shell scripts
✔ Error branches
      • tool cannot be started        → ToolExecutionError
      • tool killed by a signal       → ToolExecutionError
      • interrupted while waiting     → child killed, ToolExecutionError
      • output sink fails             → ToolExecutionError
      • no SDK at all                 → AndroidToolNotFound

Tools are shell scripts written into tmp_path, so nothing needs an actual
Android SDK.
"""
from __future__ import annotations

import dataclasses
import io
import os
import signal
import subprocess
import sys
from typing import Dict, List, Mapping

import pytest

import pyandroidsdk._context as ctx_mod
from pyandroidsdk import (
    ADB,
    ANDROID,
    EMULATOR,
    MKSDCARD,
    AndroidSdk,
    AndroidToolNotFound,
    EnvironmentLookupError,
    LocalExecutionContext,
    SdkSettings,
    Severity,
    ToolExecutionError,
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

posix_only = pytest.mark.skipif(sys.platform.startswith("win"), reason="needs /bin/sh")


###############################################################################
# --- helpers -----------------------------------------------------------------
###############################################################################
class FakeProvider:
    """EnvironmentProvider with canned maps; a ``None`` map raises on access."""

    def __init__(
        self,
        host: Mapping[str, str] | None = None,
        job: Mapping[str, str] | None = None,
        build: Mapping[str, str] | None = None,
    ) -> None:
        self._maps = {"host": host, "job": job, "build": build}

    def _get(self, key: str) -> Mapping[str, str]:
        value = self._maps[key]
        if value is None:
            raise EnvironmentLookupError(f"{key} variables unavailable")
        return value

    def host_environment(self) -> Mapping[str, str]:
        return self._get("host")

    def job_environment(self) -> Mapping[str, str]:
        return self._get("job")

    def build_variables(self) -> Mapping[str, str]:
        return self._get("build")


@pytest.fixture
def local():
    return LocalExecutionContext(is_unix=True)


###############################################################################
# --- command builder ---------------------------------------------------------
###############################################################################
def test_platform_tool_uses_platform_tools_dir():
    cmd = get_tool_command(AndroidSdk("/sdk", True), True, ADB, "devices")
    assert cmd.args == ("/sdk/platform-tools/adb", "devices")
    assert cmd.executable == "/sdk/platform-tools/adb"
    assert cmd.arguments == ("devices",)


def test_platform_tool_on_legacy_sdk_uses_tools_dir():
    cmd = get_tool_command(AndroidSdk("/sdk", False), True, ADB)
    assert list(cmd) == ["/sdk/tools/adb"]


@pytest.mark.parametrize("uses_platform_tools", [True, False])
def test_regular_tool_always_uses_tools_dir(uses_platform_tools):
    cmd = get_tool_command(AndroidSdk("/sdk", uses_platform_tools), True, EMULATOR)
    assert cmd.executable == "/sdk/tools/emulator"


def test_windows_executable_names():
    sdk = AndroidSdk(r"C:\Android\sdk", True)
    assert get_tool_command(sdk, False, ADB).executable == r"C:\Android\sdk/platform-tools/adb.exe"
    assert get_tool_command(sdk, False, ANDROID).executable == r"C:\Android\sdk/tools/android.bat"


def test_unknown_root_relies_on_path():
    cmd = get_tool_command(AndroidSdk(None, True), True, MKSDCARD, "16M card.img")
    assert cmd.args == ("mksdcard", "16M", "card.img")


@pytest.mark.parametrize("args", [None, "", "   "])
def test_no_extra_arguments(args):
    assert len(get_tool_command(AndroidSdk("/sdk"), True, EMULATOR, args)) == 1


def test_arguments_are_tokenized_shell_style():
    cmd = get_tool_command(
        AndroidSdk("/sdk"), True, EMULATOR, "-avd  test -prop 'persist.sys.language=en US' -no-window#x"
    )
    assert cmd.arguments == (
        "-avd", "test", "-prop", "persist.sys.language=en US", "-no-window#x"
    )


def test_windows_arguments_keep_backslashes():
    cmd = get_tool_command(AndroidSdk(None), False, EMULATOR, r'-sdcard C:\avd\sd.img -skin "WVGA 800"')
    assert cmd.arguments == ("-sdcard", r"C:\avd\sd.img", "-skin", "WVGA 800")


def test_command_is_immutable():
    cmd = get_tool_command(AndroidSdk("/sdk"), True, EMULATOR, "-avd x")
    with pytest.raises(dataclasses.FrozenInstanceError):
        cmd.args = ()  # type: ignore[misc]
    assert str(cmd) == "/sdk/tools/emulator -avd x"


###############################################################################
# --- discovery through an execution context ----------------------------------
###############################################################################
def test_discover_prefers_configured_home(local, tmp_path, make_sdk):
    configured = str(make_sdk(tmp_path / "configured"))
    env = {"ANDROID_SDK_ROOT": str(make_sdk(tmp_path / "root"))}
    assert discover_android_home(local, env, configured) == configured


def test_discover_falls_back_to_env(local, tmp_path, make_sdk):
    env = {"ANDROID_HOME": str(make_sdk(tmp_path / "home"))}
    assert discover_android_home(local, env, str(tmp_path / "missing")) == env["ANDROID_HOME"]


def test_discover_gives_back_configured_value(local, tmp_path):
    assert discover_android_home(local, {}, "/nowhere") == "/nowhere"
    assert discover_android_home(local, {}, None) is None


def test_get_android_sdk(local, tmp_path, make_sdk):
    root = str(make_sdk(tmp_path / "sdk"))
    assert get_android_sdk(local, root) == AndroidSdk(root, True)


def test_get_android_sdk_legacy(local, tmp_path, make_sdk):
    root = str(make_sdk(tmp_path / "sdk", platform_tools=False))
    sdk = get_android_sdk(local, root)
    assert sdk is not None and not sdk.uses_platform_tools


def test_get_android_sdk_invalid(local, tmp_path):
    assert get_android_sdk(local, str(tmp_path)) is None
    with pytest.raises(AndroidToolNotFound):
        require_android_sdk(local, str(tmp_path))


def test_get_android_sdk_from_path(local, tmp_path, monkeypatch, make_exe):
    platform_tools = tmp_path / "sdk" / "platform-tools"
    make_exe(platform_tools, "adb")
    make_exe(platform_tools, "emulator")
    monkeypatch.setenv("PATH", str(platform_tools))
    sdk = require_android_sdk(local, None)
    assert sdk == AndroidSdk(str(tmp_path / "sdk"), True)
    assert sdk.has_known_root


def test_get_android_sdk_nothing_on_path(local, tmp_path, monkeypatch):
    monkeypatch.setenv("PATH", str(tmp_path))
    assert get_android_sdk(local, "") is None


def test_check_android_home(local, tmp_path, make_sdk):
    result = check_android_home(local, str(make_sdk(tmp_path / "sdk", platforms=())))
    assert result.severity is Severity.WARNING
    assert check_android_home(local, str(tmp_path / "missing")).is_fatal


def test_locate_android_sdk(local, tmp_path, make_sdk):
    root = make_sdk(tmp_path / "ci" / "sdk")
    provider = FakeProvider(
        host={"WORKSPACE_ROOT": str(tmp_path)},
        job={"SDK_DIR": "sdk"},
        build={"AGENT": "ci"},
    )
    settings = SdkSettings(android_home="${WORKSPACE_ROOT}/${AGENT}/${SDK_DIR}")
    assert locate_android_sdk(local, provider, settings) == AndroidSdk(str(root), True)


def test_locate_android_sdk_uses_env_when_unconfigured(local, tmp_path, make_sdk):
    root = str(make_sdk(tmp_path / "sdk"))
    provider = FakeProvider(host={}, job={"ANDROID_SDK_ROOT": root}, build=None)
    assert locate_android_sdk(local, provider, SdkSettings(android_home=None)) == AndroidSdk(root, True)


###############################################################################
# --- environment -------------------------------------------------------------
###############################################################################
def test_job_environment_overrides_host():
    env = get_environment(FakeProvider(host={"A": "host", "B": "b"}, job={"A": "job"}))
    assert dict(env) == {"A": "job", "B": "b"}
    with pytest.raises(TypeError):
        env["C"] = "c"  # type: ignore[index]


def test_failing_lookups_are_skipped():
    assert dict(get_environment(FakeProvider(host={"A": "1"}, job=None))) == {"A": "1"}
    assert dict(get_environment(FakeProvider())) == {}
    assert dict(get_build_variables(FakeProvider())) == {}


def test_expand_build_variables():
    provider = FakeProvider(host={"X": "1"}, job={"Y": "2"}, build={"X": "3"})
    assert expand_build_variables(provider, "${X}${Y}") == "32"
    assert expand_build_variables(provider, " ") is None


def test_expand_build_variables_provider_failure():
    assert expand_build_variables(FakeProvider(host={}, job={}, build=None), "${X}") is None


###############################################################################
# --- running tools -----------------------------------------------------------
###############################################################################
@posix_only
def test_run_android_tool_streams_output(local, tmp_path, make_sdk, make_exe):
    root = make_sdk(tmp_path / "sdk")
    make_exe(root / "tools", "emulator", 'echo "args: $*"\necho oops >&2\nexit 3\n')
    out, err = io.BytesIO(), io.BytesIO()

    status = run_android_tool(
        local, out, err, AndroidSdk(str(root), True), EMULATOR, "-avd 'my avd'"
    )

    assert status == 3
    assert out.getvalue() == b"args: -avd my avd\n"
    assert err.getvalue() == b"oops\n"


@posix_only
def test_run_android_tool_working_directory(local, tmp_path, make_sdk, make_exe):
    root = make_sdk(tmp_path / "sdk")
    make_exe(root / "platform-tools", "adb", "pwd -P\n")
    work = tmp_path / "work"
    work.mkdir()
    out = io.BytesIO()

    assert run_android_tool(local, out, None, AndroidSdk(str(root), True), ADB, None, str(work)) == 0
    assert out.getvalue().decode().strip() == os.path.realpath(work)


@posix_only
def test_run_android_tool_killed_by_signal(local, tmp_path, make_sdk, make_exe):
    root = make_sdk(tmp_path / "sdk")
    make_exe(root / "tools", "mksdcard", "kill -TERM $$\n")
    with pytest.raises(ToolExecutionError):
        run_android_tool(local, None, None, AndroidSdk(str(root), True), MKSDCARD)


class BrokenSink(io.BytesIO):
    def write(self, data):  # type: ignore[override]
        raise OSError("sink closed")


@posix_only
def test_run_android_tool_sink_failure(local, tmp_path, make_sdk, make_exe):
    root = make_sdk(tmp_path / "sdk")
    make_exe(root / "tools", "emulator", "head -c 300000 /dev/zero\nexit 0\n")

    with pytest.raises(ToolExecutionError) as exc_info:
        run_android_tool(local, BrokenSink(), None, AndroidSdk(str(root), True), EMULATOR)
    assert isinstance(exc_info.value.__cause__, OSError)


@posix_only
def test_run_android_tool_interrupted(local, tmp_path, monkeypatch, make_sdk, make_exe):
    root = make_sdk(tmp_path / "sdk")
    # exec so that killing the script also closes its pipes
    make_exe(root / "tools", "emulator", "exec sleep 30\n")
    started: List[subprocess.Popen] = []

    class InterruptedPopen(subprocess.Popen):
        def __init__(self, *args, **kwargs):
            self.interrupted = False
            super().__init__(*args, **kwargs)
            started.append(self)

        def wait(self, timeout=None):
            if not self.interrupted:
                self.interrupted = True
                raise KeyboardInterrupt
            return super().wait(timeout)

    monkeypatch.setattr(ctx_mod.subprocess, "Popen", InterruptedPopen)

    with pytest.raises(ToolExecutionError, match="Interrupted"):
        run_android_tool(local, None, None, AndroidSdk(str(root), True), EMULATOR)
    (proc,) = started
    assert proc.returncode == -signal.SIGKILL


def test_run_android_tool_cannot_start(local, tmp_path):
    with pytest.raises(ToolExecutionError):
        run_android_tool(local, None, None, AndroidSdk(str(tmp_path), True), EMULATOR)


def test_windows_batch_files_go_through_cmd(monkeypatch):
    seen: Dict[str, List[str]] = {}

    def fake_run(cmd, **kwargs):
        seen["cmd"] = cmd
        return 0

    monkeypatch.setattr(ctx_mod, "_run", fake_run)
    win = LocalExecutionContext(is_unix=False)
    run_android_tool(win, None, None, AndroidSdk("C:/sdk", True), ANDROID, "list avd")
    assert seen["cmd"] == ["cmd", "/c", "C:/sdk/tools/android.bat", "list", "avd"]

    run_android_tool(win, None, None, AndroidSdk("C:/sdk", True), ADB, "devices")
    assert seen["cmd"] == ["C:/sdk/platform-tools/adb.exe", "devices"]
