from __future__ import annotations

import asyncio
import os

import pytest

from py_provision import (
    CancelToken,
    CommandProber,
    LinuxPlatform,
    Locator,
    OperationCancelled,
    ProbeOutcome,
    Settings,
    VersionRequirement,
    WindowsPlatform,
)
from py_provision._fs import FileSystem
from py_provision._locate import REGISTRY_ROOT
from py_provision._registry import HKEY_CURRENT_USER, HKEY_LOCAL_MACHINE

ALIAS = "C:\\Users\\ci\\AppData\\Local\\Microsoft\\WindowsApps\\python.exe"


def make_locator(platform, runner, fs, registry, settings=None):
    prober = CommandProber(runner, windows=platform.windows)
    return Locator(platform, prober, fs, registry, settings or Settings())


@pytest.mark.asyncio
async def test_skips_mismatch_and_returns_second_candidate(runner, fs, registry):
    runner.probes["python3"] = ("/usr/bin/python3", "3.9.0")
    runner.probes["python"] = ("/opt/python/3.11/bin/python", "3.11.2")
    locator = make_locator(LinuxPlatform(), runner, fs, registry)

    assert await locator.locate(VersionRequirement(3, 11)) == "/opt/python/3.11/bin/python"
    assert runner.probed == ["python3", "python"]


@pytest.mark.asyncio
async def test_first_match_wins_not_best_match(runner, fs, registry):
    runner.probes["python3"] = ("/usr/bin/python3", "3.11.0")
    runner.probes["python"] = ("/usr/local/bin/python", "3.11.9")
    locator = make_locator(LinuxPlatform(), runner, fs, registry)

    assert await locator.locate(VersionRequirement(3, 11)) == "/usr/bin/python3"
    assert runner.probed == ["python3"]


@pytest.mark.asyncio
async def test_absent_is_none(runner, fs, registry):
    runner.probes["python3"] = ("/usr/bin/python3", "3.10.12")
    locator = make_locator(LinuxPlatform(), runner, fs, registry)

    assert await locator.locate(VersionRequirement(3, 12)) is None
    assert runner.probed == ["python3", "python"]


@pytest.mark.asyncio
async def test_windows_command_order(runner, fs, registry):
    locator = make_locator(WindowsPlatform(), runner, fs, registry)

    assert await locator.locate(VersionRequirement(3, 11)) is None
    assert runner.probed == ["py -3.11", "python", "python3", "py -3"]


@pytest.mark.asyncio
async def test_windows_alias_never_returned(runner, fs, registry):
    runner.probes["python"] = (ALIAS, "3.11.4")
    runner.probes["py -3"] = ("C:\\Python311\\python.exe", "3.11.4")
    locator = make_locator(WindowsPlatform(), runner, fs, registry)

    assert await locator.locate(VersionRequirement(3, 11)) == "C:\\Python311\\python.exe"


@pytest.mark.asyncio
async def test_hosted_tool_cache_first_on_agent(tmp_path, runner, registry):
    root = tmp_path / "hostedtoolcache"
    for version in ("3.10.11", "3.11.9", "3.12.7"):
        (root / "Python" / version / "x64").mkdir(parents=True)
        (root / "Python" / version / "x64" / "python.exe").write_text("", encoding="utf-8")
    (root / "Python" / "not-a-version").mkdir()
    runner.probes["py -3.11"] = ("C:\\Python311\\python.exe", "3.11.4")
    settings = Settings(tool_cache_root=str(root), in_agent=True)
    locator = make_locator(WindowsPlatform(), runner, FileSystem(), registry, settings)

    result = await locator.locate(VersionRequirement(3, 11))

    assert result == os.path.join(str(root / "Python" / "3.11.9"), "x64", "python.exe")
    assert runner.probed == []


@pytest.mark.asyncio
async def test_hosted_tool_cache_missing_binary_falls_through(tmp_path, runner, registry):
    root = tmp_path / "hostedtoolcache"
    (root / "Python" / "3.11.9" / "x86").mkdir(parents=True)
    runner.probes["python"] = ("C:\\Python311\\python.exe", "3.11.4")
    settings = Settings(tool_cache_root=str(root), in_agent=True)
    locator = make_locator(WindowsPlatform(), runner, FileSystem(), registry, settings)

    assert await locator.locate(VersionRequirement(3, 11)) == "C:\\Python311\\python.exe"


@pytest.mark.asyncio
async def test_hosted_tool_cache_ignored_outside_agent(runner, fs, registry):
    root = "C:\\hostedtoolcache\\windows"
    python_root = os.path.join(root, "Python")
    version_dir = os.path.join(python_root, "3.11.9")
    exe = os.path.join(version_dir, "x64", "python.exe")
    fs.files.add(exe)
    fs.dirs[python_root] = [version_dir]
    locator = make_locator(WindowsPlatform(), runner, fs, registry, Settings(tool_cache_root=root, in_agent=False))

    assert await locator.locate(VersionRequirement(3, 11)) is None
    assert len(runner.probed) == 4


@pytest.mark.asyncio
async def test_hosted_tool_cache_ignored_on_linux(runner, fs, registry):
    root = "/opt/hostedtoolcache"
    python_root = os.path.join(root, "Python")
    version_dir = os.path.join(python_root, "3.11.9")
    fs.files.add(os.path.join(version_dir, "x64", "python.exe"))
    fs.dirs[python_root] = [version_dir]
    locator = make_locator(LinuxPlatform(), runner, fs, registry, Settings(tool_cache_root=root, in_agent=True))

    assert await locator.locate(VersionRequirement(3, 11)) is None


@pytest.mark.asyncio
async def test_registry_checked_last_both_hives(runner, fs, registry):
    registry.keys[HKEY_CURRENT_USER, REGISTRY_ROOT] = ["3.10", "3.11-32"]
    registry.values[HKEY_CURRENT_USER, f"{REGISTRY_ROOT}\\3.11-32\\InstallPath", None] = "C:\\Missing"
    registry.keys[HKEY_LOCAL_MACHINE, REGISTRY_ROOT] = ["3.11"]
    registry.values[HKEY_LOCAL_MACHINE, f"{REGISTRY_ROOT}\\3.11\\InstallPath", None] = "C:\\Program Files\\Python311"
    expected = os.path.join("C:\\Program Files\\Python311", "python.exe")
    fs.files.add(expected)
    locator = make_locator(WindowsPlatform(), runner, fs, registry)

    assert await locator.locate(VersionRequirement(3, 11)) == expected
    assert len(runner.probed) == 4


@pytest.mark.asyncio
async def test_registry_prefers_executable_path(runner, fs, registry):
    registry.keys[HKEY_CURRENT_USER, REGISTRY_ROOT] = ["3.12"]
    install_key = f"{REGISTRY_ROOT}\\3.12\\InstallPath"
    registry.values[HKEY_CURRENT_USER, install_key, None] = "C:\\Python312"
    registry.values[HKEY_CURRENT_USER, install_key, "ExecutablePath"] = "C:\\Python312\\bin\\python.exe"
    fs.files.add("C:\\Python312\\bin\\python.exe")
    locator = make_locator(WindowsPlatform(), runner, fs, registry)

    assert await locator.locate(VersionRequirement(3, 12)) == "C:\\Python312\\bin\\python.exe"


@pytest.mark.asyncio
async def test_registry_not_consulted_on_linux(mocker, runner, fs, registry):
    subkeys = mocker.spy(registry, "subkeys")
    locator = make_locator(LinuxPlatform(), runner, fs, registry)

    assert await locator.locate(VersionRequirement(3, 11)) is None
    assert subkeys.call_count == 0


@pytest.mark.asyncio
async def test_candidates_are_restartable(runner, fs, registry):
    runner.probes["python3"] = ("/usr/bin/python3", "3.9.0")
    locator = make_locator(LinuxPlatform(), runner, fs, registry)

    first = [result async for result in locator.candidates(VersionRequirement(3, 11))]
    second = [result async for result in locator.candidates(VersionRequirement(3, 11))]

    assert [r.outcome for r in first] == [ProbeOutcome.REJECTED, ProbeOutcome.NOT_FOUND]
    assert first == second


@pytest.mark.asyncio
async def test_cancel_stops_candidate_loop(runner, fs, registry):
    runner.probes["python"] = ("/usr/bin/python", "3.11.0")
    cancel = CancelToken()
    cancel.cancel()
    locator = make_locator(LinuxPlatform(), runner, fs, registry)

    with pytest.raises(OperationCancelled):
        await locator.locate(VersionRequirement(3, 11), cancel)
    assert runner.probed == []


@pytest.mark.asyncio
async def test_cancel_during_probe_unwinds(runner, fs, registry):
    cancel = CancelToken()
    original = runner.output

    async def cancelling_output(exe, args=(), **kwargs):
        cancel.cancel()
        return await original(exe, args, **kwargs)

    runner.output = cancelling_output
    runner.probes["python"] = ("/usr/bin/python", "3.11.0")
    locator = make_locator(LinuxPlatform(), runner, fs, registry)

    with pytest.raises(OperationCancelled):
        await locator.locate(VersionRequirement(3, 11), cancel)
    assert runner.probed == ["python3"]



@pytest.mark.asyncio
async def test_same_path_from_both_hives_tested_once(runner, fs, registry):
    registry.keys[HKEY_CURRENT_USER, REGISTRY_ROOT] = ["3.11"]
    registry.keys[HKEY_LOCAL_MACHINE, REGISTRY_ROOT] = ["3.11"]
    install_key = f"{REGISTRY_ROOT}\\3.11\\InstallPath"
    registry.values[HKEY_CURRENT_USER, install_key, "ExecutablePath"] = "C:\\Python311\\python.exe"
    registry.values[HKEY_LOCAL_MACHINE, install_key, "ExecutablePath"] = "c:/python311/PYTHON.EXE"
    locator = make_locator(WindowsPlatform(), runner, fs, registry)

    results = [result async for result in locator.candidates(VersionRequirement(3, 11))]

    from_registry = [result for result in results if result.command.startswith("registry")]
    assert [result.path for result in from_registry] == ["C:\\Python311\\python.exe"]


@pytest.mark.asyncio
async def test_rejected_interpreter_not_reported_twice(runner, fs, registry):
    runner.probes["python"] = (ALIAS, "3.10.0")
    runner.probes["python3"] = (ALIAS, "3.10.0")
    locator = make_locator(WindowsPlatform(), runner, fs, registry)

    results = [result async for result in locator.candidates(VersionRequirement(3, 11))]

    assert [result.path for result in results].count(ALIAS) == 1
    assert runner.probed == ["py -3.11", "python", "python3", "py -3"]


@pytest.mark.asyncio
async def test_filesystem_and_registry_reads_run_in_threads(mocker, runner, fs, registry):
    to_thread = mocker.spy(asyncio, "to_thread")
    registry.keys[HKEY_CURRENT_USER, REGISTRY_ROOT] = ["3.11"]
    registry.values[HKEY_CURRENT_USER, f"{REGISTRY_ROOT}\\3.11\\InstallPath", None] = "C:\\Python311"
    root = "C:\\hostedtoolcache\\windows"
    fs.dirs[os.path.join(root, "Python")] = []
    locator = make_locator(WindowsPlatform(), runner, fs, registry, Settings(tool_cache_root=root, in_agent=True))

    assert await locator.locate(VersionRequirement(3, 11)) is None

    offloaded = {call.args[0] for call in to_thread.call_args_list}
    assert {fs.exists, fs.list_dirs, fs.is_file, registry.subkeys, registry.value} <= offloaded
