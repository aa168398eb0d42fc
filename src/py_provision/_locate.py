"""Find an installed interpreter matching a version requirement."""

from __future__ import annotations

import asyncio
import logging
import os
from contextlib import aclosing
from typing import TYPE_CHECKING

from ._compat import fs_path_id
from ._probe import ProbeOutcome, ProbeResult
from ._registry import HKEY_CURRENT_USER, HKEY_LOCAL_MACHINE
from ._requirement import parse_version

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Callable

    from ._cancel import CancelToken
    from ._fs import FileSystem
    from ._platform import Platform
    from ._probe import CommandProber
    from ._registry import Registry
    from ._requirement import VersionRequirement
    from ._settings import Settings

    Source = Callable[[VersionRequirement, CancelToken | None], AsyncGenerator[ProbeResult, None]]

LOGGER = logging.getLogger(__name__)

REGISTRY_ROOT = "SOFTWARE\\Python\\PythonCore"
REGISTRY_HIVES = (HKEY_CURRENT_USER, HKEY_LOCAL_MACHINE)


class Locator:
    """Walk the candidate sources in priority order and stop at the first interpreter that matches.

    Sources, in order: the CI hosted tool cache (Windows agents only), launch commands probed one by one, and the
    PEP-514 registry (Windows only).

    """

    def __init__(
        self,
        platform: Platform,
        prober: CommandProber,
        fs: FileSystem,
        registry: Registry,
        settings: Settings,
    ) -> None:
        self.platform = platform
        self._prober = prober
        self._fs = fs
        self._registry = registry
        self._settings = settings

    async def locate(self, requirement: VersionRequirement, cancel: CancelToken | None = None) -> str | None:
        """:returns: absolute path of the first matching interpreter, or ``None`` if there is none"""
        LOGGER.info("locate python %s", requirement)
        async with aclosing(self.candidates(requirement, cancel)) as results:
            async for result in results:
                LOGGER.debug("candidate %s", result)
                if result.found:
                    LOGGER.info("found python %s at %s via %s", result.version, result.path, result.command)
                    return result.path
        LOGGER.info("python %s not found", requirement)
        return None

    async def candidates(
        self,
        requirement: VersionRequirement,
        cancel: CancelToken | None = None,
    ) -> AsyncGenerator[ProbeResult, None]:
        """Lazily evaluate every candidate in priority order; each call starts over from the first source.

        :raises OperationCancelled: once ``cancel`` fires, before the next candidate is tried

        """
        tested: set[str] = set()
        for source in self.sources():
            async for result in source(requirement, cancel):
                if result.path is not None:
                    path_id = fs_path_id(result.path, windows=self.platform.windows)
                    if path_id in tested:
                        LOGGER.debug("skip %s, already tested", result.path)
                        continue
                    tested.add(path_id)
                yield result
                if cancel is not None:
                    cancel.raise_if_cancelled()

    def sources(self) -> list[Source]:
        if not self.platform.windows:
            return [self.commands]
        return [self.hosted_tool_cache, self.commands, self.registry]

    async def hosted_tool_cache(
        self,
        requirement: VersionRequirement,
        cancel: CancelToken | None = None,
    ) -> AsyncGenerator[ProbeResult, None]:
        if not self._settings.in_agent:
            return
        python_root = os.path.join(self._settings.tool_cache_root, "Python")
        if cancel is not None:
            cancel.raise_if_cancelled()
        if not await asyncio.to_thread(self._fs.exists, python_root):
            LOGGER.debug("no hosted tool cache at %s", python_root)
            return
        for version_dir in await asyncio.to_thread(self._fs.list_dirs, python_root):
            name = os.path.basename(version_dir)
            if not requirement.matches(parse_version(name)):
                continue
            candidate = os.path.join(version_dir, "x64", "python.exe")
            yield await self._check_file("tool-cache", candidate, name)

    async def commands(
        self,
        requirement: VersionRequirement,
        cancel: CancelToken | None = None,
    ) -> AsyncGenerator[ProbeResult, None]:
        for command in self.platform.commands(requirement):
            if cancel is not None:
                cancel.raise_if_cancelled()
            yield await self._prober.probe(command, requirement, cancel)

    async def registry(
        self,
        requirement: VersionRequirement,
        cancel: CancelToken | None = None,
    ) -> AsyncGenerator[ProbeResult, None]:
        for hive in REGISTRY_HIVES:
            if cancel is not None:
                cancel.raise_if_cancelled()
            for tag in await asyncio.to_thread(self._registry.subkeys, hive, REGISTRY_ROOT):
                if not requirement.matches(parse_version(tag)):
                    continue
                install_key = f"{REGISTRY_ROOT}\\{tag}\\InstallPath"
                exe = await asyncio.to_thread(self._registry.value, hive, install_key, "ExecutablePath")
                if not exe:
                    install_path = await asyncio.to_thread(self._registry.value, hive, install_key)
                    if not install_path:
                        continue
                    exe = os.path.join(install_path, "python.exe")
                yield await self._check_file(f"registry {hive}\\{tag}", exe, tag)

    async def _check_file(self, source: str, path: str, version: str) -> ProbeResult:
        if await asyncio.to_thread(self._fs.is_file, path):
            return ProbeResult(source, ProbeOutcome.FOUND, path, version)
        return ProbeResult(source, ProbeOutcome.NOT_FOUND, path, version, "no such file")


__all__ = [
    "REGISTRY_HIVES",
    "REGISTRY_ROOT",
    "Locator",
]
