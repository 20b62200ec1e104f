from pathlib import Path

import pytest
from playwright.async_api import Error as PlaywrightError

from quotabar.runtime import RuntimeGate, browsers_directory, is_writable


class FakeInstaller:
    """
    records install calls and optionally creates the executable.
    """

    def __init__(self, creates: "Path | None" = None, succeeds: "bool" = True) -> "None":
        self._creates = creates
        self._succeeds = succeeds
        self.calls = 0

    async def __call__(self) -> "bool":
        self.calls += 1
        if self._creates is not None:
            self._creates.write_text("#!/bin/sh\n")
        return self._succeeds


def _resolver(path: "str"):
    async def resolve() -> "str":
        return path

    return resolve


class TestRuntimeGateIsAvailable:
    @pytest.mark.asyncio
    async def test_existing_executable(self, tmp_path: "Path") -> "None":
        executable = tmp_path / "chrome"
        executable.write_text("")
        gate = RuntimeGate(resolve_executable=_resolver(str(executable)))
        assert await gate.is_available() is True

    @pytest.mark.asyncio
    async def test_missing_executable(self, tmp_path: "Path") -> "None":
        gate = RuntimeGate(resolve_executable=_resolver(str(tmp_path / "missing")))
        assert await gate.is_available() is False

    @pytest.mark.asyncio
    async def test_directory_is_not_an_executable(self, tmp_path: "Path") -> "None":
        gate = RuntimeGate(resolve_executable=_resolver(str(tmp_path)))
        assert await gate.is_available() is False

    @pytest.mark.asyncio
    async def test_resolution_error(self) -> "None":
        async def broken() -> "str":
            raise PlaywrightError("driver not found")

        gate = RuntimeGate(resolve_executable=broken)
        assert await gate.is_available() is False


class TestRuntimeGateEnsureAvailable:
    @pytest.mark.asyncio
    async def test_returns_false_without_raising(self, tmp_path: "Path") -> "None":
        installer = FakeInstaller()
        gate = RuntimeGate(
            resolve_executable=_resolver(str(tmp_path / "does-not-exist")),
            installer=installer,
            browsers_dir=lambda: tmp_path,
        )

        assert await gate.ensure_available() is False
        assert installer.calls == 1

    @pytest.mark.asyncio
    async def test_installs_and_rechecks(self, tmp_path: "Path") -> "None":
        executable = tmp_path / "chrome"
        installer = FakeInstaller(creates=executable)
        gate = RuntimeGate(
            resolve_executable=_resolver(str(executable)),
            installer=installer,
            browsers_dir=lambda: tmp_path,
        )

        assert await gate.ensure_available() is True
        assert installer.calls == 1

    @pytest.mark.asyncio
    async def test_no_install_when_available(self, tmp_path: "Path") -> "None":
        executable = tmp_path / "chrome"
        executable.write_text("")
        installer = FakeInstaller()
        gate = RuntimeGate(
            resolve_executable=_resolver(str(executable)),
            installer=installer,
        )

        assert await gate.ensure_available() is True
        assert installer.calls == 0

    @pytest.mark.asyncio
    async def test_auto_install_disabled(self, tmp_path: "Path") -> "None":
        installer = FakeInstaller()
        gate = RuntimeGate(
            auto_install=False,
            resolve_executable=_resolver(str(tmp_path / "missing")),
            installer=installer,
        )

        assert await gate.ensure_available() is False
        assert installer.calls == 0

    @pytest.mark.asyncio
    async def test_installer_os_error(self, tmp_path: "Path") -> "None":
        async def broken_installer() -> "bool":
            raise FileNotFoundError("python")

        gate = RuntimeGate(
            resolve_executable=_resolver(str(tmp_path / "missing")),
            installer=broken_installer,
            browsers_dir=lambda: tmp_path,
        )
        assert await gate.ensure_available() is False


class TestBrowsersDirectory:
    def test_env_override(self, monkeypatch: "pytest.MonkeyPatch", tmp_path: "Path") -> "None":
        monkeypatch.setenv("PLAYWRIGHT_BROWSERS_PATH", str(tmp_path))
        assert browsers_directory() == tmp_path

    def test_bundled_browsers(self, monkeypatch: "pytest.MonkeyPatch") -> "None":
        monkeypatch.setenv("PLAYWRIGHT_BROWSERS_PATH", "0")
        assert browsers_directory() is None

    def test_writable_walks_up_to_existing_parent(self, tmp_path: "Path") -> "None":
        assert is_writable(tmp_path / "not" / "yet" / "created") is True
