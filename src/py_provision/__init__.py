"""Locate a Python interpreter by ``major.minor`` version, provisioning it with the native package manager."""

from __future__ import annotations

from ._cancel import CancelToken
from ._errors import (
    InstallError,
    InvalidVersionError,
    NoInstallerError,
    OperationCancelled,
    ProvisionError,
    PythonNotFoundError,
)
from ._locate import Locator
from ._platform import LinuxPlatform, MacPlatform, Platform, WindowsPlatform, detect_platform
from ._probe import CommandProber, ProbeOutcome, ProbeResult
from ._process import ProcessError, ProcessRunner
from ._provision import PythonProvisioner
from ._requirement import VersionRequirement
from ._settings import Settings

__all__ = [
    "CancelToken",
    "CommandProber",
    "InstallError",
    "InvalidVersionError",
    "LinuxPlatform",
    "Locator",
    "MacPlatform",
    "NoInstallerError",
    "OperationCancelled",
    "Platform",
    "ProbeOutcome",
    "ProbeResult",
    "ProcessError",
    "ProcessRunner",
    "ProvisionError",
    "PythonNotFoundError",
    "PythonProvisioner",
    "Settings",
    "VersionRequirement",
    "WindowsPlatform",
    "detect_platform",
]
