"""Fail fast when a required tool or credential is missing."""

from __future__ import annotations

import shutil
from typing import Callable, Mapping

INSTALL_HINTS = {
    "git": "https://git-scm.com/",
    "gh": "https://cli.github.com/",
}

API_KEY_VARS = ("OPENROUTER_API_KEY", "OPENAI_API_KEY")


class PrerequisiteMissing(Exception):
    """A required tool or credential is absent. Raised before any network call."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        lines = [f"missing required prerequisites: {', '.join(self.missing)}"]
        for name in self.missing:
            hint = INSTALL_HINTS.get(name)
            if hint:
                lines.append(f"  - {name}: {hint}")
            elif name == "api-key":
                lines.append(f"  - api-key: set {' or '.join(API_KEY_VARS)}")
        super().__init__("\n".join(lines))


def missing_prerequisites(
    tools: tuple[str, ...],
    env: Mapping[str, str],
    *,
    need_api_key: bool = True,
    which: Callable[[str], str | None] = shutil.which,
) -> list[str]:
    missing = [tool for tool in tools if which(tool) is None]
    if need_api_key and not any((env.get(var) or "").strip() for var in API_KEY_VARS):
        missing.append("api-key")
    return missing


def require_prerequisites(
    tools: tuple[str, ...],
    env: Mapping[str, str],
    *,
    need_api_key: bool = True,
    which: Callable[[str], str | None] = shutil.which,
) -> None:
    missing = missing_prerequisites(tools, env, need_api_key=need_api_key, which=which)
    if missing:
        raise PrerequisiteMissing(missing)
