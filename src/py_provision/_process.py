"""Run external commands without blocking the event loop."""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from typing import TYPE_CHECKING

from ._errors import OperationCancelled, ProvisionError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ._cancel import CancelToken

LOGGER = logging.getLogger(__name__)

_REAP_TIMEOUT = 5.0


class ProcessError(ProvisionError):
    def __init__(self, cmd: Sequence[str], message: str) -> None:
        self.cmd = list(cmd)
        super().__init__(f"{LogCmd(self.cmd)}: {message}")


class CommandNotFound(ProcessError):
    """The executable could not be started."""


class ProcessTimeout(ProcessError):
    """The command outlived its time budget and was killed."""


class ProcessFailed(ProcessError):
    def __init__(self, cmd: Sequence[str], returncode: int, output: str) -> None:
        self.returncode = returncode
        self.output = output
        detail = f"exited with code {returncode}"
        if output.strip():
            detail = f"{detail}: {output.strip()}"
        super().__init__(cmd, detail)


class ProcessCancelled(ProcessError, OperationCancelled):
    """The cancel token fired while the command was running."""


class ProcessRunner:
    """Start executables, capture their output and bound them by a timeout and a cancel token.

    Every child started here is killed and reaped before the awaiting call returns or raises, whatever the reason.

    """

    async def output(
        self,
        exe: str,
        args: Sequence[str] = (),
        *,
        cwd: str | None = None,
        timeout: float,
        cancel: CancelToken | None = None,
    ) -> str:
        """:returns: standard output of a successful run, decoded as text"""
        return await self._run([exe, *args], cwd=cwd, timeout=timeout, cancel=cancel)

    async def responds(
        self,
        exe: str,
        args: Sequence[str] = ("--version",),
        *,
        timeout: float,
        cancel: CancelToken | None = None,
    ) -> bool:
        """:returns: ``True`` if the command exists and exits cleanly"""
        try:
            await self.output(exe, args, timeout=timeout, cancel=cancel)
        except ProcessCancelled:
            raise
        except ProcessError as exception:
            LOGGER.debug("%s does not respond: %s", exe, exception)
            return False
        return True

    async def run_shell(
        self,
        script: str,
        *,
        cwd: str | None = None,
        timeout: float,
        cancel: CancelToken | None = None,
    ) -> str:
        """Run ``script`` as the body of a ``bash -c`` invocation."""
        return await self._run(["bash", "-c", script], cwd=cwd, timeout=timeout, cancel=cancel)

    async def _run(
        self,
        cmd: list[str],
        *,
        cwd: str | None,
        timeout: float,
        cancel: CancelToken | None,
    ) -> str:
        if cancel is not None and cancel.cancelled:
            raise ProcessCancelled(cmd, "cancelled before start")
        LOGGER.debug("run %s", LogCmd(cmd))
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=cwd or None,
            )
        except OSError as exception:
            raise CommandNotFound(cmd, f"failed to start ({exception})") from exception

        communicate = asyncio.ensure_future(process.communicate())
        cancelled = asyncio.ensure_future(cancel.wait()) if cancel is not None else None
        try:
            waiting = {communicate} if cancelled is None else {communicate, cancelled}
            done, _ = await asyncio.wait(waiting, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
            if communicate in done:
                out, err = communicate.result()
            elif cancelled is not None and cancelled in done:
                raise ProcessCancelled(cmd, "cancelled")
            else:
                raise ProcessTimeout(cmd, f"timed out after {timeout}s")
        finally:
            if cancelled is not None:
                cancelled.cancel()
            await _reap(process, communicate)

        stdout = _decode(out)
        if process.returncode != 0:
            raise ProcessFailed(cmd, process.returncode, _decode(err) or stdout)
        return stdout


async def _reap(process: asyncio.subprocess.Process, communicate: asyncio.Future) -> None:
    if process.returncode is None:
        with suppress(ProcessLookupError):
            process.kill()
    if not communicate.done():
        # pipes inherited by grandchildren may stay open after the kill
        _, pending = await asyncio.wait({communicate}, timeout=_REAP_TIMEOUT)
        for future in pending:
            future.cancel()
    elif not communicate.cancelled():
        communicate.exception()  # mark retrieved
    with suppress(asyncio.TimeoutError):
        await asyncio.wait_for(process.wait(), timeout=_REAP_TIMEOUT)


def _decode(raw: bytes | None) -> str:
    return (raw or b"").decode("utf-8", errors="replace")


class LogCmd:
    def __init__(self, cmd: Sequence[str]) -> None:
        self.cmd = cmd

    def __repr__(self) -> str:
        return " ".join(f'"{part}"' if " " in part else part for part in self.cmd)

    __str__ = __repr__


__all__ = [
    "CommandNotFound",
    "LogCmd",
    "ProcessCancelled",
    "ProcessError",
    "ProcessFailed",
    "ProcessRunner",
    "ProcessTimeout",
]
