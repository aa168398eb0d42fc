"""Ask a single launch command which interpreter it starts."""

from __future__ import annotations

import enum
import json
import logging
import shlex
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ._process import ProcessCancelled, ProcessError

if TYPE_CHECKING:
    from ._cancel import CancelToken
    from ._process import ProcessRunner
    from ._requirement import VersionRequirement

LOGGER = logging.getLogger(__name__)

PROBE_TIMEOUT = 3.0
INTROSPECT = "import json, platform, sys; print(json.dumps([sys.executable, platform.python_version()]))"
APP_EXECUTION_ALIAS_DIR = "\\appdata\\local\\microsoft\\windowsapps\\"


class ProbeOutcome(enum.Enum):
    FOUND = "found"
    NOT_FOUND = "not found"
    REJECTED = "rejected"


@dataclass(frozen=True)
class ProbeResult:
    command: str
    outcome: ProbeOutcome
    path: str | None = None
    version: str | None = None
    reason: str = ""

    @property
    def found(self) -> bool:
        return self.outcome is ProbeOutcome.FOUND

    def __str__(self) -> str:
        text = f"{self.command} -> {self.outcome.value}"
        if self.path is not None:
            text = f"{text} {self.path} ({self.version})"
        if self.reason:
            text = f"{text}: {self.reason}"
        return text


def split_command(command: str) -> tuple[str, list[str]]:
    """Split ``py -3`` into the executable and its extra arguments, at the first space."""
    exe, _, extra = command.strip().partition(" ")
    return exe, shlex.split(extra)


def is_app_execution_alias(path: str) -> bool:
    """Windows places ``python.exe`` stubs that open the Store under the per-user WindowsApps folder."""
    return APP_EXECUTION_ALIAS_DIR in path.replace("/", "\\").casefold()


def decode_record(raw: str) -> tuple[str, str]:
    """Decode the ``[executable, version]`` pair printed by :data:`INTROSPECT`.

    :raises ValueError: if the text is not such a pair

    """
    lines = raw.strip().splitlines()
    data = json.loads(lines[-1] if lines else "")
    if not isinstance(data, list) or len(data) != 2 or not all(isinstance(i, str) and i for i in data):  # noqa: PLR2004
        msg = f"unexpected probe record {data!r}"
        raise ValueError(msg)
    return data[0], data[1]


class CommandProber:
    def __init__(self, runner: ProcessRunner, *, windows: bool, timeout: float = PROBE_TIMEOUT) -> None:
        self._runner = runner
        self._windows = windows
        self._timeout = timeout

    async def probe(
        self,
        command: str,
        requirement: VersionRequirement,
        cancel: CancelToken | None = None,
    ) -> ProbeResult:
        """Launch ``command`` and classify what it starts; never raises for a broken candidate."""
        exe, extra = split_command(command)
        try:
            raw = await self._runner.output(exe, [*extra, "-c", INTROSPECT], timeout=self._timeout, cancel=cancel)
        except ProcessCancelled:
            return ProbeResult(command, ProbeOutcome.NOT_FOUND, reason="cancelled")
        except ProcessError as exception:
            return ProbeResult(command, ProbeOutcome.NOT_FOUND, reason=str(exception))
        try:
            path, version = decode_record(raw)
        except ValueError as exception:
            return ProbeResult(command, ProbeOutcome.NOT_FOUND, reason=f"bad output ({exception})")

        if self._windows and is_app_execution_alias(path):
            return ProbeResult(command, ProbeOutcome.REJECTED, path, version, "app execution alias")
        if not requirement.matches(version):
            return ProbeResult(command, ProbeOutcome.REJECTED, path, version, f"not {requirement}")
        return ProbeResult(command, ProbeOutcome.FOUND, path, version)


__all__ = [
    "INTROSPECT",
    "PROBE_TIMEOUT",
    "CommandProber",
    "ProbeOutcome",
    "ProbeResult",
    "decode_record",
    "is_app_execution_alias",
    "split_command",
]
