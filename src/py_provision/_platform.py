"""Per operating system choices: which commands to try, which extra sources apply, which installer to use."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, ClassVar

from ._compat import IS_LINUX, IS_MAC, IS_WIN
from ._install import AptInstaller, BrewInstaller, Installer, NullInstaller, WindowsInstaller

if TYPE_CHECKING:
    from ._process import ProcessRunner
    from ._requirement import VersionRequirement

LOGGER = logging.getLogger(__name__)


class Platform(ABC):
    name: ClassVar[str]
    #: the hosted tool cache and the PEP-514 registry are only consulted on Windows
    windows: ClassVar[bool] = False
    installer_class: ClassVar[type[Installer]] = NullInstaller

    @abstractmethod
    def commands(self, requirement: VersionRequirement) -> list[str]:
        """:returns: launch commands to probe, most reliable first"""
        raise NotImplementedError

    def installer(self, runner: ProcessRunner, *, timeout: float | None = None) -> Installer:
        return self.installer_class(runner, timeout=timeout)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class WindowsPlatform(Platform):
    name = "windows"
    windows = True
    installer_class = WindowsInstaller

    def commands(self, requirement: VersionRequirement) -> list[str]:
        return [f"py -{requirement.dotted}", "python", "python3", "py -3"]


class PosixPlatform(Platform):
    name = "posix"

    def commands(self, requirement: VersionRequirement) -> list[str]:  # noqa: ARG002
        return ["python3", "python"]


class LinuxPlatform(PosixPlatform):
    name = "linux"
    installer_class = AptInstaller


class MacPlatform(PosixPlatform):
    name = "macos"
    installer_class = BrewInstaller


def detect_platform(*, windows: bool = IS_WIN, linux: bool = IS_LINUX, mac: bool = IS_MAC) -> Platform:
    if windows:
        platform: Platform = WindowsPlatform()
    elif linux:
        platform = LinuxPlatform()
    elif mac:
        platform = MacPlatform()
    else:
        platform = PosixPlatform()
    LOGGER.debug("platform %s", platform.name)
    return platform


__all__ = [
    "LinuxPlatform",
    "MacPlatform",
    "Platform",
    "PosixPlatform",
    "WindowsPlatform",
    "detect_platform",
]
