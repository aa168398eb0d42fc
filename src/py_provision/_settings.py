"""Configuration read from the process environment."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from platformdirs import user_cache_path

if TYPE_CHECKING:
    from collections.abc import Mapping

TOOL_CACHE_DEFAULT = "C:\\hostedtoolcache\\windows"
TOOL_CACHE_VARS = ("AGENT_TOOLSDIRECTORY", "RUNNER_TOOL_CACHE")
AGENT_VARS = ("TF_BUILD", "GITHUB_ACTIONS", *TOOL_CACHE_VARS)
_FALSY = {"", "0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    probe_timeout: float = 3.0
    #: ``None`` lets each package manager use its own default
    install_timeout: float | None = None
    install_if_missing: bool = True
    lock_dir: Path | None = None
    tool_cache_root: str = TOOL_CACHE_DEFAULT
    in_agent: bool = False

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if env is None else env
        root = next((env[var] for var in TOOL_CACHE_VARS if env.get(var)), TOOL_CACHE_DEFAULT)
        lock_dir = env.get("PY_PROVISION_LOCK_DIR")
        return cls(
            probe_timeout=_seconds(env, "PY_PROVISION_PROBE_TIMEOUT", cls.probe_timeout),
            install_timeout=_seconds(env, "PY_PROVISION_INSTALL_TIMEOUT", None),
            install_if_missing=not _flag(env, "PY_PROVISION_NO_INSTALL"),
            lock_dir=Path(lock_dir) if lock_dir else None,
            tool_cache_root=root,
            in_agent=any(env.get(var) for var in AGENT_VARS),
        )

    @property
    def install_lock_dir(self) -> Path:
        return self.lock_dir if self.lock_dir is not None else user_cache_path("py-provision", appauthor=False)


def _seconds(env: Mapping[str, str], key: str, default: float | None) -> float | None:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        value = -1.0
    if not math.isfinite(value) or value <= 0:
        msg = f"{key} must be a positive number of seconds, got {raw!r}"
        raise ValueError(msg)
    return value


def _flag(env: Mapping[str, str], key: str) -> bool:
    return env.get(key, "").strip().lower() not in _FALSY


__all__ = [
    "AGENT_VARS",
    "TOOL_CACHE_DEFAULT",
    "TOOL_CACHE_VARS",
    "Settings",
]
