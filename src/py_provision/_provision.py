"""Locate a Python interpreter of a requested version, installing it first when allowed."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from filelock import AsyncFileLock, Timeout

from ._errors import InstallError, PythonNotFoundError
from ._fs import FileSystem
from ._locate import Locator
from ._platform import detect_platform
from ._probe import CommandProber, split_command
from ._process import ProcessRunner
from ._registry import NullRegistry, WinRegistry
from ._requirement import VersionRequirement
from ._settings import Settings

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Mapping

    from ._cancel import CancelToken
    from ._platform import Platform
    from ._registry import Registry

LOGGER = logging.getLogger(__name__)

RESOLVE_SCRIPT = "import sys; print(sys.executable)"
LOCK_POLL_INTERVAL = 0.25


class PythonProvisioner:
    """Public entry point; every collaborator can be swapped so any platform is testable on any host.

    Calls share no mutable state: several may run concurrently on the same instance.

    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        settings: Settings | None = None,
        platform: Platform | None = None,
        runner: ProcessRunner | None = None,
        fs: FileSystem | None = None,
        registry: Registry | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self.settings = Settings.from_env(env) if settings is None else settings
        self.platform = detect_platform() if platform is None else platform
        self._runner = ProcessRunner() if runner is None else runner
        if registry is None:
            registry = WinRegistry() if self.platform.windows else NullRegistry()
        prober = CommandProber(self._runner, windows=self.platform.windows, timeout=self.settings.probe_timeout)
        self.locator = Locator(self.platform, prober, FileSystem() if fs is None else fs, registry, self.settings)
        self.installer = self.platform.installer(self._runner, timeout=self.settings.install_timeout)

    async def resolve_path(self, command: str = "python", cancel: CancelToken | None = None) -> str:
        """:returns: ``sys.executable`` of the interpreter ``command`` launches

        :raises ProcessError: if the command cannot be run

        """
        exe, extra = split_command(command)
        out = await self._runner.output(
            exe,
            [*extra, "-c", RESOLVE_SCRIPT],
            timeout=self.settings.probe_timeout,
            cancel=cancel,
        )
        return out.strip()

    async def locate(self, version: str | VersionRequirement, cancel: CancelToken | None = None) -> str | None:
        return await self.locator.locate(_requirement(version), cancel)

    async def ensure_installed(
        self,
        version: str | VersionRequirement = "3.11",
        install_if_missing: bool | None = None,
        cancel: CancelToken | None = None,
    ) -> str:
        """Return the path of a Python ``major.minor`` interpreter, installing it when missing.

        :param install_if_missing: defaults to the ``install_if_missing`` setting
        :raises InvalidVersionError: ``version`` is malformed; nothing is probed
        :raises PythonNotFoundError: not found, and either installing is disabled or the fresh install is not found
        :raises NoInstallerError: no package manager is available
        :raises InstallError: the package manager failed

        """
        LOGGER.info("ensure python %s is installed", version)
        requirement = _requirement(version)
        if install_if_missing is None:
            install_if_missing = self.settings.install_if_missing

        if (path := await self.locator.locate(requirement, cancel)) is not None:
            return path
        if not install_if_missing:
            raise PythonNotFoundError(requirement.dotted)

        async with self._install_lock(requirement, cancel) as waited:
            # another process may have installed it while we waited
            if waited and (path := await self.locator.locate(requirement, cancel)) is not None:
                return path
            await self.installer.install(requirement, cancel)
        if (path := await self.locator.locate(requirement, cancel)) is not None:
            return path
        raise PythonNotFoundError(requirement.dotted, install_attempted=True)

    async def install(self, version: str | VersionRequirement, cancel: CancelToken | None = None) -> None:
        """Install Python ``major.minor``, serialized with other processes installing the same version."""
        requirement = _requirement(version)
        async with self._install_lock(requirement, cancel):
            await self.installer.install(requirement, cancel)

    @asynccontextmanager
    async def _install_lock(
        self,
        requirement: VersionRequirement,
        cancel: CancelToken | None,
    ) -> AsyncIterator[bool]:
        """Hold the per-version install lock; yields whether another process held it first.

        :raises OperationCancelled: the token fired while waiting
        :raises InstallError: the lock was not freed within the install timeout

        """
        lock_dir = self.settings.install_lock_dir
        lock_dir.mkdir(parents=True, exist_ok=True)
        lock_file = lock_dir / f"install-{requirement.dotted}.lock"
        lock = AsyncFileLock(str(lock_file))
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.installer.timeout
        waited = False
        LOGGER.debug("acquire install lock %s", lock_file)
        while True:
            if cancel is not None:
                cancel.raise_if_cancelled()
            try:
                await lock.acquire(timeout=LOCK_POLL_INTERVAL)
            except Timeout:
                if loop.time() >= deadline:
                    msg = f"install lock {lock_file} still held after {self.installer.timeout}s"
                    raise InstallError(msg) from None
                if not waited:
                    LOGGER.info("waiting for another install of python %s to finish", requirement)
                waited = True
            else:
                break
        try:
            yield waited
        finally:
            await lock.release()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(platform={self.platform.name}, installer={self.installer!r})"


def _requirement(version: str | VersionRequirement) -> VersionRequirement:
    if isinstance(version, VersionRequirement):
        return version
    return VersionRequirement.from_string(version)


__all__ = [
    "PythonProvisioner",
]
