# SPDX-License-Identifier: MIT
"""
``${name}`` macro expansion for configuration tokens.

Tokens are expanded twice: once against the environment of the build
machine, then once more against the job's own build variables. Each pass
scans its input exactly once, so text substituted during a pass is not
looked at again by that same pass.

>>> expand_variables({"HOME": "/home/ci"}, {}, "${HOME}/sdk")
'/home/ci/sdk'
"""
from __future__ import annotations

import re
from typing import Final, Mapping, Optional

_MACRO_RE: Final = re.compile(r"\$\{([A-Za-z0-9_.]+)\}")

# ${FOO}, $FOO or %FOO%
_PLACEHOLDER_RE: Final = re.compile(
    r"\$\{[^}]+\}|\$[A-Za-z_][A-Za-z0-9_]*|%[A-Za-z_][A-Za-z0-9_]*%"
)


def contains_variable(text: str) -> bool:
    """Whether ``text`` still holds a not-yet-expanded variable reference."""
    return bool(_PLACEHOLDER_RE.search(text))


def replace_macro(text: str, variables: Mapping[str, str]) -> str:
    def _sub(m: re.Match[str]) -> str:
        value = variables.get(m[1])
        return m[0] if value is None else value

    return _MACRO_RE.sub(_sub, text)


def expand_variables(
    env_vars: Mapping[str, str],
    build_vars: Mapping[str, str],
    token: Optional[str],
) -> Optional[str]:
    """
    Expand ``token`` against environment variables, then build variables.

    Returns ``None`` for a missing or blank token so callers can tell
    "not configured" apart from "configured as empty". Unknown names are
    left in place untouched.
    """
    result = token.strip() if token else ""
    if not result:
        return None
    return replace_macro(replace_macro(result, env_vars), build_vars)
