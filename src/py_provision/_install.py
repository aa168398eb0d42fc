"""Install an interpreter with the package manager native to the running OS."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, ClassVar

from ._errors import InstallError, NoInstallerError
from ._process import ProcessCancelled, ProcessError

if TYPE_CHECKING:
    from collections.abc import Awaitable

    from ._cancel import CancelToken
    from ._process import ProcessRunner
    from ._requirement import VersionRequirement

LOGGER = logging.getLogger(__name__)

AVAILABILITY_TIMEOUT = 3.0


class Installer(ABC):
    """Bring a ``major.minor`` interpreter onto the machine; success is checked by locating it afterwards."""

    name: ClassVar[str]
    default_timeout: ClassVar[float] = 300.0

    def __init__(self, runner: ProcessRunner, *, timeout: float | None = None) -> None:
        self._runner = runner
        self.timeout = self.default_timeout if timeout is None else timeout

    @abstractmethod
    async def install(self, requirement: VersionRequirement, cancel: CancelToken | None = None) -> None:
        """:raises NoInstallerError: no usable package manager; :raises InstallError: the package manager failed"""
        raise NotImplementedError

    async def _available(self, exe: str, cancel: CancelToken | None) -> bool:
        return await self._runner.responds(exe, ["--version"], timeout=AVAILABILITY_TIMEOUT, cancel=cancel)

    async def _run(self, manager: str, pending: Awaitable[str]) -> None:
        try:
            out = await pending
        except ProcessCancelled:
            raise
        except ProcessError as exception:
            msg = f"{manager} failed: {exception}"
            raise InstallError(msg) from exception
        LOGGER.debug("%s output:\n%s", manager, out)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(timeout={self.timeout})"


class AptInstaller(Installer):
    """Debian and Ubuntu only; other distributions have no fallback."""

    name = "apt-get"
    default_timeout = 600.0

    async def install(self, requirement: VersionRequirement, cancel: CancelToken | None = None) -> None:
        if not await self._available("apt-get", cancel):
            msg = "apt-get is not available, cannot install Python on this Linux distribution"
            raise NoInstallerError(msg)
        package = f"python{requirement.dotted}"
        script = (
            "sudo apt-get -qq update && "
            f"sudo DEBIAN_FRONTEND=noninteractive apt-get -y -qq install {package}"
        )
        LOGGER.info("installing %s via apt-get", package)
        await self._run("apt-get", self._runner.run_shell(script, timeout=self.timeout, cancel=cancel))


class WindowsInstaller(Installer):
    """winget when it responds, otherwise Chocolatey."""

    name = "winget"

    async def install(self, requirement: VersionRequirement, cancel: CancelToken | None = None) -> None:
        version = requirement.dotted
        if await self._available("winget", cancel):
            args = [
                "install",
                "--exact",
                "--id",
                f"Python.Python.{version}",
                "--silent",
                "--disable-interactivity",
                "--accept-source-agreements",
                "--accept-package-agreements",
                "--source",
                "winget",
            ]
            LOGGER.info("installing Python %s via winget", version)
            await self._run("winget", self._runner.output("winget", args, timeout=self.timeout, cancel=cancel))
        elif await self._available("choco", cancel):
            args = ["install", "python", "--version", f"{version}.0", "-y", "--no-progress"]
            LOGGER.info("installing Python %s via choco", version)
            await self._run("choco", self._runner.output("choco", args, timeout=self.timeout, cancel=cancel))
        else:
            msg = "neither winget nor Chocolatey is available to install Python on this machine"
            raise NoInstallerError(msg)


class BrewInstaller(Installer):
    name = "brew"
    default_timeout = 600.0

    async def install(self, requirement: VersionRequirement, cancel: CancelToken | None = None) -> None:
        if not await self._available("brew", cancel):
            msg = "Homebrew is not available to install Python on this machine"
            raise NoInstallerError(msg)
        formula = f"python@{requirement.dotted}"
        LOGGER.info("installing %s via brew", formula)
        await self._run("brew", self._runner.output("brew", ["install", formula], timeout=self.timeout, cancel=cancel))


class NullInstaller(Installer):
    name = "none"

    async def install(self, requirement: VersionRequirement, cancel: CancelToken | None = None) -> None:  # noqa: ARG002
        msg = f"no supported package manager to install Python {requirement} on this operating system"
        raise NoInstallerError(msg)


__all__ = [
    "AptInstaller",
    "BrewInstaller",
    "Installer",
    "NullInstaller",
    "WindowsInstaller",
]
