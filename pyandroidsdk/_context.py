# SPDX-License-Identifier: MIT
"""
Execution contexts: *where* SDK discovery runs and tools are launched.

:class:`LocalExecutionContext` works on this machine; :class:`SshExecutionContext`
talks to a build machine over ``ssh``, shipping requests to
``python -m pyandroidsdk.agent`` and launching tools there.
"""
from __future__ import annotations

###############################################################################
# Standard library
###############################################################################
import logging
import os
import shlex
import shutil
import subprocess
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import IO, Any, List, Optional, Sequence, Type

###############################################################################
# Third-party
###############################################################################
from pydantic import ValidationError

from .agent import AgentRequest, AgentResponse, PlatformRequest, handle_request
from .config import SdkSettings
from .exceptions import AndroidSdkError, ChannelError, RemoteCallError, ToolExecutionError

logger = logging.getLogger(__name__)

Sink = Optional[IO[bytes]]

# ssh exits with this when the connection itself fails
SSH_FAILURE_STATUS = 255


###############################################################################
# Base class
###############################################################################
class ExecutionContext(ABC):
    """The machine on which SDK paths are meaningful."""

    @property
    @abstractmethod
    def is_unix(self) -> bool: ...

    @abstractmethod
    def request(self, request: AgentRequest) -> AgentResponse: ...

    @abstractmethod
    def launch(
        self,
        cmd: Sequence[str],
        *,
        stdout: Sink = None,
        stderr: Sink = None,
        cwd: Optional[str] = None,
    ) -> int:
        """Run ``cmd`` to completion, copying its output into the sinks."""

    def call(self, request: AgentRequest) -> Any:
        """Send ``request`` to the agent and return its value."""
        response = self.request(request)
        if not response.ok:
            raise RemoteCallError(
                response.error_type or "Error", response.error_message or ""
            )
        return response.value


###############################################################################
# Helper wrappers
###############################################################################
def _pump(source: IO[bytes], sink: Sink, errors: List[Exception]) -> None:
    with source:
        if sink is not None:
            try:
                shutil.copyfileobj(source, sink)
                sink.flush()
                return
            except Exception as exc:  # re-raised by _run once the child exits
                errors.append(exc)
        # drain whatever is left so the child never blocks on a full pipe
        for _ in iter(lambda: source.read(8192), b""):
            pass


def _run(
    cmd: List[str],
    *,
    stdout: Sink,
    stderr: Sink,
    cwd: Optional[str] = None,
    start_error: Type[AndroidSdkError] = ToolExecutionError,
) -> int:
    """Start ``cmd``, stream both pipes into the sinks and wait for exit."""
    logger.debug("$ %s", " ".join(map(shlex.quote, cmd)))
    try:
        proc = subprocess.Popen(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE, cwd=cwd)
    except OSError as exc:
        raise start_error(f"Could not start {cmd[0]!r}: {exc}") from exc
    if proc.stdout is None or proc.stderr is None:
        proc.kill()
        raise ToolExecutionError(f"No output pipes for {cmd[0]!r}")

    errors: List[Exception] = []
    pumps = [
        threading.Thread(target=_pump, args=(proc.stdout, stdout, errors), daemon=True),
        threading.Thread(target=_pump, args=(proc.stderr, stderr, errors), daemon=True),
    ]
    for t in pumps:
        t.start()
    try:
        returncode = proc.wait()
    except KeyboardInterrupt as exc:
        proc.kill()
        proc.wait()
        raise ToolExecutionError(f"Interrupted while waiting for {cmd[0]!r}") from exc
    finally:
        for t in pumps:
            t.join()

    if errors:
        raise ToolExecutionError(
            f"Could not copy the output of {cmd[0]!r}: {errors[0]}"
        ) from errors[0]
    if returncode < 0:
        raise ToolExecutionError(f"{cmd[0]!r} was terminated by signal {-returncode}")
    logger.debug("%s exited with %d", cmd[0], returncode)
    return returncode


###############################################################################
# Local machine
###############################################################################
class LocalExecutionContext(ExecutionContext):
    """Runs everything in-process and on this machine's filesystem."""

    def __init__(self, *, is_unix: Optional[bool] = None) -> None:
        self._is_unix = os.name != "nt" if is_unix is None else is_unix

    def __repr__(self) -> str:  # pragma: no cover
        return f"<LocalExecutionContext unix={self._is_unix}>"

    @property
    def is_unix(self) -> bool:
        return self._is_unix

    def request(self, request: AgentRequest) -> AgentResponse:
        return handle_request(request)

    def launch(
        self,
        cmd: Sequence[str],
        *,
        stdout: Sink = None,
        stderr: Sink = None,
        cwd: Optional[str] = None,
    ) -> int:
        argv = list(cmd)
        # Batch scripts only run through cmd.exe on Windows
        if not self._is_unix and argv:
            exe_path = Path(argv[0])
            if exe_path.suffix.lower() in {".bat", ".cmd"}:
                argv = ["cmd", "/c", *argv]
        return _run(argv, stdout=stdout, stderr=stderr, cwd=cwd)


###############################################################################
# Remote machine over ssh
###############################################################################
class SshExecutionContext(ExecutionContext):
    """A build machine reachable with ``ssh <host>``."""

    def __init__(
        self,
        host: str,
        *,
        python: str = "python3",
        ssh_command: str = "ssh",
        ssh_options: Sequence[str] = (),
        timeout: Optional[float] = None,
        is_unix: Optional[bool] = None,
    ) -> None:
        self.host = host
        self.python = python
        self.ssh_command = ssh_command
        self.ssh_options = tuple(ssh_options)
        self.timeout = timeout
        self._is_unix = is_unix

    @classmethod
    def from_settings(cls, host: str, settings: SdkSettings, **kwargs: Any) -> "SshExecutionContext":
        return cls(
            host,
            python=settings.agent_python,
            ssh_command=settings.ssh_command,
            ssh_options=settings.ssh_options_list(),
            timeout=settings.ssh_timeout,
            **kwargs,
        )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<SshExecutionContext {self.host!r}>"

    @property
    def is_unix(self) -> bool:
        if self._is_unix is None:
            self._is_unix = bool(self.call(PlatformRequest())["is_unix"])
        return self._is_unix

    def _ssh(self, remote: str) -> List[str]:
        return [self.ssh_command, *self.ssh_options, self.host, remote]

    def _quote(self, argv: Sequence[str]) -> str:
        if self.is_unix:
            return shlex.join(argv)
        return subprocess.list2cmdline(list(argv))

    def request(self, request: AgentRequest) -> AgentResponse:
        agent = [self.python, "-m", "pyandroidsdk.agent"]
        # is_unix itself is answered through this method
        remote = subprocess.list2cmdline(agent) if self._is_unix is False else shlex.join(agent)
        cmd = self._ssh(remote)
        logger.debug("$ %s  <<< %s", " ".join(map(shlex.quote, cmd)), request.kind)
        try:
            proc = subprocess.run(
                cmd,
                input=request.model_dump_json().encode(),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=self.timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise ChannelError(f"Channel to {self.host} failed: {exc}") from exc

        try:
            return AgentResponse.model_validate_json(proc.stdout)
        except ValidationError as exc:
            stderr = proc.stderr.decode(errors="replace").strip()
            raise ChannelError(
                f"Agent on {self.host} exited {proc.returncode} without a response: "
                f"{stderr or '<no output>'}"
            ) from exc

    def launch(
        self,
        cmd: Sequence[str],
        *,
        stdout: Sink = None,
        stderr: Sink = None,
        cwd: Optional[str] = None,
    ) -> int:
        """
        Run ``cmd`` on the remote host through ``ssh``.

        ssh reports its own failures (refused, dropped, bad host key) with exit
        status 255, which is raised as :class:`ChannelError`. A tool that
        itself exits with 255 is indistinguishable from that and is reported
        the same way.
        """
        remote = self._quote(cmd)
        if cwd is not None:
            if self.is_unix:
                remote = f"cd {shlex.quote(cwd)} && {remote}"
            else:
                remote = f"cd /d {subprocess.list2cmdline([cwd])} && {remote}"
        status = _run(self._ssh(remote), stdout=stdout, stderr=stderr, start_error=ChannelError)
        if status == SSH_FAILURE_STATUS:
            raise ChannelError(f"ssh to {self.host} failed with exit status {status}")
        return status
