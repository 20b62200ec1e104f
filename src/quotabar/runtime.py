import asyncio
import os
import sys
from pathlib import Path
from typing import Awaitable, Callable

import structlog
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

logger = structlog.get_logger()

INSTALL_COMMAND: "list[str]" = [sys.executable, "-m", "playwright", "install", "chromium"]


async def chromium_executable_path() -> "str":
    """
    asks Playwright where it expects the Chromium binary to live.
    """
    async with async_playwright() as playwright:
        return playwright.chromium.executable_path


def browsers_directory() -> "Path | None":
    """
    resolves the directory Playwright installs browsers into.
    Returns None when browsers are kept inside the package
    (PLAYWRIGHT_BROWSERS_PATH=0).
    """
    configured = os.environ.get("PLAYWRIGHT_BROWSERS_PATH")
    if configured == "0":
        return None
    if configured:
        return Path(configured).expanduser()

    if sys.platform == "darwin":
        return Path.home() / "Library" / "Caches" / "ms-playwright"
    if sys.platform == "win32":
        local = os.environ.get("LOCALAPPDATA") or str(Path.home() / "AppData" / "Local")
        return Path(local) / "ms-playwright"
    cache = os.environ.get("XDG_CACHE_HOME") or str(Path.home() / ".cache")
    return Path(cache) / "ms-playwright"


def is_writable(directory: "Path") -> "bool":
    """
    checks the directory, or its closest existing parent when it
    does not exist yet, can be written to.
    """
    candidate = directory
    while not candidate.exists():
        if candidate.parent == candidate:
            return False
        candidate = candidate.parent
    return os.access(candidate, os.W_OK)


async def run_install_command() -> "bool":
    """
    runs `playwright install chromium` in a subprocess.
    """
    logger.info("runtime_install_started", command=" ".join(INSTALL_COMMAND))
    process = await asyncio.create_subprocess_exec(
        *INSTALL_COMMAND,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.STDOUT,
    )
    output, _ = await process.communicate()
    logger.debug("runtime_install_output", output=output.decode(errors="replace"))

    if process.returncode != 0:
        logger.error("runtime_install_failed", returncode=process.returncode)
        return False
    return True


class RuntimeGate:
    """
    RuntimeGate decides whether the browser runtime can be used at
    all. It never raises for a missing runtime: callers get False
    and skip the acquisition for this cycle.
    """

    def __init__(
        self,
        auto_install: "bool" = True,
        resolve_executable: "Callable[[], Awaitable[str]]" = chromium_executable_path,
        installer: "Callable[[], Awaitable[bool]]" = run_install_command,
        browsers_dir: "Callable[[], Path | None]" = browsers_directory,
    ) -> "None":
        self._auto_install = auto_install
        self._resolve_executable = resolve_executable
        self._installer = installer
        self._browsers_dir = browsers_dir

    @property
    def auto_install(self) -> "bool":
        return self._auto_install

    @auto_install.setter
    def auto_install(self, value: "bool") -> "None":
        self._auto_install = value

    async def is_available(self) -> "bool":
        """
        true only if the resolved executable path points to an
        existing file.
        """
        try:
            path = await self._resolve_executable()
        except (PlaywrightError, OSError) as exc:
            logger.warning("runtime_not_available", error=str(exc))
            return False

        if not path or not os.path.isfile(path):
            logger.warning("runtime_executable_missing", path=path)
            return False

        logger.debug("runtime_available", path=path)
        return True

    async def install(self) -> "bool":
        """
        installs Chromium for Playwright. Fails fast when the browser
        cache directory is not writable, since the installer would
        otherwise hang on permission errors.
        """
        directory = self._browsers_dir()
        if directory is not None and not is_writable(directory):
            logger.error("runtime_install_permission_denied", directory=str(directory))
            return False

        try:
            return await self._installer()
        except OSError as exc:
            logger.error("runtime_install_failed", error=str(exc))
            return False

    async def ensure_available(self) -> "bool":
        """
        checks availability, installing once when allowed, and
        re-checks afterwards.
        """
        if await self.is_available():
            return True

        if not self._auto_install:
            logger.warning("runtime_install_required", hint="playwright install chromium")
            return False

        if not await self.install():
            return False

        available = await self.is_available()
        if available:
            logger.info("runtime_installed")
        else:
            logger.error("runtime_still_missing_after_install")
        return available
