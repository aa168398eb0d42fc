"""Read-only access to the Windows registry, PEP-514 style."""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

LOGGER = logging.getLogger(__name__)

HKEY_CURRENT_USER = "HKEY_CURRENT_USER"
HKEY_LOCAL_MACHINE = "HKEY_LOCAL_MACHINE"


@runtime_checkable
class Registry(Protocol):
    """Key/value store addressed by a hive name and a backslash separated key path."""

    def subkeys(self, hive: str, path: str) -> list[str]: ...

    def value(self, hive: str, path: str, name: str | None = None) -> str | None: ...


class WinRegistry:
    """:class:`Registry` backed by :mod:`winreg`; missing keys and values read as absent."""

    def subkeys(self, hive: str, path: str) -> list[str]:
        import winreg  # noqa: PLC0415

        try:
            with winreg.OpenKeyEx(getattr(winreg, hive), path, 0, winreg.KEY_READ) as key:
                count = winreg.QueryInfoKey(key)[0]
                return [winreg.EnumKey(key, index) for index in range(count)]
        except OSError:
            LOGGER.debug("no registry key %s\\%s", hive, path)
            return []

    def value(self, hive: str, path: str, name: str | None = None) -> str | None:
        import winreg  # noqa: PLC0415

        try:
            with winreg.OpenKeyEx(getattr(winreg, hive), path, 0, winreg.KEY_READ) as key:
                data, _ = winreg.QueryValueEx(key, name)
        except OSError:
            LOGGER.debug("no registry value %s\\%s[%s]", hive, path, name)
            return None
        return None if data is None else str(data)


class NullRegistry:
    """Registry of a machine that has none."""

    def subkeys(self, hive: str, path: str) -> list[str]:  # noqa: ARG002
        return []

    def value(self, hive: str, path: str, name: str | None = None) -> str | None:  # noqa: ARG002
        return None


__all__ = [
    "HKEY_CURRENT_USER",
    "HKEY_LOCAL_MACHINE",
    "NullRegistry",
    "Registry",
    "WinRegistry",
]
