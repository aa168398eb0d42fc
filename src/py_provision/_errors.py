"""Failures surfaced by the provisioning engine."""

from __future__ import annotations


class ProvisionError(Exception):
    """Base class for every failure this package raises on purpose."""


class InvalidVersionError(ProvisionError, ValueError):
    """The requested version string is not ``<major>.<minor>``."""


class PythonNotFoundError(ProvisionError):
    def __init__(self, version: str, *, install_attempted: bool = False) -> None:
        self.version = version
        self.install_attempted = install_attempted
        suffix = " after installation attempt" if install_attempted else ""
        super().__init__(f"Python {version} not found{suffix}.")


class NoInstallerError(ProvisionError):
    """No supported package manager is available on this machine."""


class InstallError(ProvisionError):
    """The package manager ran but did not complete."""


class OperationCancelled(ProvisionError):
    """The caller's cancel token fired while work was in flight."""


__all__ = [
    "InstallError",
    "InvalidVersionError",
    "NoInstallerError",
    "OperationCancelled",
    "ProvisionError",
    "PythonNotFoundError",
]
