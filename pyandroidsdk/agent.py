# SPDX-License-Identifier: MIT
"""
Agent side of the build-machine channel.

Every operation that has to look at the build machine's filesystem is sent
there as a small request message and answered by :func:`handle_request`.
Over ssh the agent is started as ``python -m pyandroidsdk.agent``: it reads
one JSON request from stdin and writes one JSON response to stdout.

Handler failures come back as ``AgentResponse(ok=False, ...)``; only a broken
channel surfaces as an exception on the caller's side.
"""
from __future__ import annotations

import logging
import os
import sys
from typing import Annotated, Any, Callable, Dict, Literal, Optional, TextIO, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from android_sdk_utils import (
    describe_android_sdk,
    find_android_home,
    validate_android_home,
)

logger = logging.getLogger(__name__)


###############################################################################
# Messages
###############################################################################
class _Request(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class PlatformRequest(_Request):
    kind: Literal["platform"] = "platform"


class ValidateHomeRequest(_Request):
    kind: Literal["validate_home"] = "validate_home"
    sdk_root: Optional[str] = None


class DiscoverHomeRequest(_Request):
    kind: Literal["discover_home"] = "discover_home"
    environment: Dict[str, str] = Field(default_factory=dict)
    android_home: Optional[str] = None


class DescribeSdkRequest(_Request):
    kind: Literal["describe_sdk"] = "describe_sdk"
    android_home: Optional[str] = None
    is_unix: bool = True


AgentRequest = Annotated[
    Union[PlatformRequest, ValidateHomeRequest, DiscoverHomeRequest, DescribeSdkRequest],
    Field(discriminator="kind"),
]
_REQUEST_ADAPTER: TypeAdapter[AgentRequest] = TypeAdapter(AgentRequest)


class AgentResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    ok: bool
    value: Any = None
    error_type: Optional[str] = None
    error_message: Optional[str] = None

    @classmethod
    def success(cls, value: Any) -> "AgentResponse":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, exc: BaseException) -> "AgentResponse":
        return cls(ok=False, error_type=type(exc).__name__, error_message=str(exc))


def parse_request(data: str | bytes) -> AgentRequest:
    return _REQUEST_ADAPTER.validate_json(data)


###############################################################################
# Handlers
###############################################################################
def _platform(_: PlatformRequest) -> Any:
    return {"is_unix": os.name != "nt", "path_separator": os.pathsep}


def _validate_home(req: ValidateHomeRequest) -> Any:
    result = validate_android_home(req.sdk_root)
    return {"severity": result.severity.value, "message": result.message}


def _discover_home(req: DiscoverHomeRequest) -> Any:
    return find_android_home(req.environment, req.android_home)


def _describe_sdk(req: DescribeSdkRequest) -> Any:
    described = describe_android_sdk(req.android_home, req.is_unix)
    if described is None:
        return None
    sdk_root, uses_platform_tools = described
    return {"sdk_root": sdk_root, "uses_platform_tools": uses_platform_tools}


_HANDLERS: Dict[str, Callable[[Any], Any]] = {
    "platform": _platform,
    "validate_home": _validate_home,
    "discover_home": _discover_home,
    "describe_sdk": _describe_sdk,
}


def handle_request(request: AgentRequest) -> AgentResponse:
    logger.debug("Handling %s request", request.kind)
    try:
        return AgentResponse.success(_HANDLERS[request.kind](request))
    except OSError as exc:
        logger.debug("Request %s failed: %s", request.kind, exc)
        return AgentResponse.failure(exc)


def serve(stdin: TextIO, stdout: TextIO) -> int:
    """Answer a single request read from ``stdin``."""
    try:
        request = parse_request(stdin.read())
    except ValidationError as exc:
        response = AgentResponse.failure(exc)
    else:
        response = handle_request(request)
    stdout.write(response.model_dump_json())
    stdout.write("\n")
    stdout.flush()
    return 0 if response.ok else 1


def main() -> int:
    return serve(sys.stdin, sys.stdout)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
