import asyncio
from typing import Any, Callable

import structlog
from playwright.async_api import Browser, BrowserContext, Playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from quotabar.credentials import ORGANIZATION_COOKIE, SESSION_COOKIE
from quotabar.errors import RuntimeUnavailableError
from quotabar.models import Credentials, SessionState

logger = structlog.get_logger()

COOKIE_DOMAIN = ".claude.ai"

# keeps the headed window off-screen and hides the
# "controlled by automated software" signals
LAUNCH_ARGS: "list[str]" = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-blink-features=AutomationControlled",
    "--window-size=1,1",
    "--window-position=-9999,-9999",
    "--disable-gpu",
    "--disable-software-rasterizer",
]

CONTEXT_OPTIONS: "dict[str, Any]" = {
    "user_agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/129.0.6668.90 Safari/537.36"
    ),
    "viewport": {"width": 1, "height": 1},
    "locale": "en-US",
    "timezone_id": "America/New_York",
}


def session_cookies(
    credentials: "Credentials",
    domain: "str" = COOKIE_DOMAIN,
) -> "list[dict[str, Any]]":
    """
    builds the Playwright cookie payload for the session key
    and the active organization.
    """
    return [
        {
            "name": SESSION_COOKIE,
            "value": credentials.session_key,
            "domain": domain,
            "path": "/",
            "httpOnly": True,
            "secure": True,
            "sameSite": "Lax",
        },
        {
            "name": ORGANIZATION_COOKIE,
            "value": credentials.organization_id,
            "domain": domain,
            "path": "/",
            "secure": True,
            "sameSite": "Lax",
        },
    ]


class BrowserSessionManager:
    """
    BrowserSessionManager owns a lazily launched Chromium process and
    a single authenticated browsing context. Both are reused across
    refresh cycles since launching and passing the site's challenge
    takes seconds. The context is dropped whenever the credentials
    change so stale cookies never outlive them.
    """

    def __init__(
        self,
        headless: "bool" = False,
        cookie_domain: "str" = COOKIE_DOMAIN,
        playwright_factory: "Callable[[], Any]" = async_playwright,
    ) -> "None":
        self._headless = headless
        self._cookie_domain = cookie_domain
        self._playwright_factory = playwright_factory
        self._playwright: "Playwright | None" = None
        self._browser: "Browser | None" = None
        self._context: "BrowserContext | None" = None
        self._lock: "asyncio.Lock" = asyncio.Lock()

    @property
    def state(self) -> "SessionState":
        if self._browser is None:
            return SessionState.ABSENT
        if self._context is None:
            return SessionState.BROWSER_READY
        return SessionState.CONTEXT_READY

    async def acquire(self, credentials: "Credentials") -> "BrowserContext":
        """
        returns the authenticated context, launching the browser and
        creating the context as needed.
        """
        async with self._lock:
            if self._browser is not None and not self._browser.is_connected():
                logger.warning("browser_disconnected")
                await self._reset()

            if self._context is not None:
                return self._context

            browser = self._browser or await self._launch()
            self._context = await self._create_context(browser, credentials)
            return self._context

    async def invalidate(self) -> "None":
        """
        drops the current context so the next acquire installs fresh
        cookies. The browser process is kept.
        """
        async with self._lock:
            await self._close_context()

    async def dispose(self) -> "None":
        """
        closes the context, the browser and the Playwright driver.
        Safe to call repeatedly and when nothing was launched.
        """
        async with self._lock:
            await self._reset()
        logger.info("browser_session_disposed")

    async def _launch(self) -> "Browser":
        logger.info("browser_launching", headless=self._headless)
        try:
            playwright = await self._playwright_factory().start()
        except PlaywrightError as exc:
            logger.error("playwright_start_failed", error=str(exc))
            raise RuntimeUnavailableError(
                f"could not start Playwright: {exc.message}"
            ) from exc

        try:
            browser = await playwright.chromium.launch(
                headless=self._headless,
                args=LAUNCH_ARGS,
            )
        except PlaywrightError as exc:
            await playwright.stop()
            logger.error("browser_launch_failed", error=str(exc))
            raise RuntimeUnavailableError(
                f"could not launch Chromium: {exc.message}"
            ) from exc

        self._playwright = playwright
        self._browser = browser
        logger.info("browser_launched")
        return browser

    async def _create_context(
        self, browser: "Browser", credentials: "Credentials"
    ) -> "BrowserContext":
        context = await browser.new_context(**CONTEXT_OPTIONS)
        await context.add_cookies(session_cookies(credentials, self._cookie_domain))
        logger.info("browser_context_created", domain=self._cookie_domain)
        return context

    async def _close_context(self) -> "None":
        if self._context is None:
            return

        context, self._context = self._context, None
        try:
            await context.close()
        except PlaywrightError as exc:
            logger.warning("browser_context_close_failed", error=str(exc))

    async def _reset(self) -> "None":
        await self._close_context()

        browser, self._browser = self._browser, None
        if browser is not None:
            try:
                await browser.close()
            except PlaywrightError as exc:
                logger.warning("browser_close_failed", error=str(exc))

        playwright, self._playwright = self._playwright, None
        if playwright is not None:
            await playwright.stop()
