from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from py_provision import ProcessRunner, PythonProvisioner, Settings
from py_provision._probe import INTROSPECT
from py_provision._process import CommandNotFound, ProcessCancelled

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path


class FakeRunner(ProcessRunner):
    """Answers probes from a table keyed by launch command, records everything else."""

    def __init__(self) -> None:
        self.probes: dict[str, tuple[str, str] | str | Exception] = {}
        self.available: set[str] = set()
        self.failures: dict[str, Exception] = {}
        self.calls: list[list[str]] = []
        self.scripts: list[str] = []
        self.on_install = None

    async def output(self, exe, args=(), *, cwd=None, timeout, cancel=None):  # noqa: ARG002
        cmd = [exe, *args]
        self.calls.append(cmd)
        if cancel is not None and cancel.cancelled:
            raise ProcessCancelled(cmd, "cancelled")
        if len(cmd) >= 3 and cmd[-2] == "-c":  # noqa: PLR2004
            return self._probe(" ".join(cmd[:-2]), cmd[-1])
        if exe in self.failures:
            raise self.failures[exe]
        if self.on_install is not None:
            self.on_install(cmd)
        return ""

    async def responds(self, exe, args=("--version",), *, timeout, cancel=None):  # noqa: ARG002
        self.calls.append([exe, *args])
        return exe in self.available

    async def run_shell(self, script, *, cwd=None, timeout, cancel=None):  # noqa: ARG002
        self.scripts.append(script)
        if "bash" in self.failures:
            raise self.failures["bash"]
        if self.on_install is not None:
            self.on_install(["bash", "-c", script])
        return ""

    def _probe(self, launcher: str, script: str) -> str:
        answer = self.probes.get(launcher)
        if answer is None:
            raise CommandNotFound([launcher], "failed to start")
        if isinstance(answer, Exception):
            raise answer
        if isinstance(answer, str):
            return answer
        path, version = answer
        if script == INTROSPECT:
            return json.dumps([path, version]) + "\n"
        return path + "\n"

    @property
    def probed(self) -> list[str]:
        return [" ".join(cmd[:-2]) for cmd in self.calls if len(cmd) >= 3 and cmd[-2] == "-c"]  # noqa: PLR2004

    @property
    def install_calls(self) -> list[list[str]]:
        return [cmd for cmd in self.calls if cmd[1:] != ["--version"] and "-c" not in cmd]


class FakeFileSystem:
    def __init__(self, files: Sequence[str] = (), dirs: dict[str, list[str]] | None = None) -> None:
        self.files = set(files)
        self.dirs = dirs or {}

    def exists(self, path) -> bool:
        return str(path) in self.files or str(path) in self.dirs

    def is_file(self, path) -> bool:
        return str(path) in self.files

    def list_dirs(self, path) -> list[str]:
        return list(self.dirs.get(str(path), []))


class FakeRegistry:
    def __init__(self) -> None:
        self.keys: dict[tuple[str, str], list[str]] = {}
        self.values: dict[tuple[str, str, str | None], str] = {}

    def subkeys(self, hive: str, path: str) -> list[str]:
        return list(self.keys.get((hive, path), []))

    def value(self, hive: str, path: str, name: str | None = None) -> str | None:
        return self.values.get((hive, path, name))


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def fs() -> FakeFileSystem:
    return FakeFileSystem()


@pytest.fixture
def registry() -> FakeRegistry:
    return FakeRegistry()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(lock_dir=tmp_path / "locks")


@pytest.fixture
def make_provisioner(runner, fs, registry, settings):
    def _make(platform, **kwargs) -> PythonProvisioner:
        kwargs.setdefault("settings", settings)
        return PythonProvisioner(platform=platform, runner=runner, fs=fs, registry=registry, **kwargs)

    return _make
