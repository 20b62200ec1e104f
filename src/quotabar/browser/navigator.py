import asyncio
import time

import structlog
from playwright.async_api import BrowserContext, Page
from playwright.async_api import Error as PlaywrightError

from quotabar.errors import NavigationError
from quotabar.models import ChallengeResult

logger = structlog.get_logger()

# text shown by the bot-mitigation interstitial while it is active
CHALLENGE_MARKERS: "tuple[str, ...]" = (
    "just a moment",
    "verifying you are human",
    "checking your browser",
    "needs to review the security of your connection",
    "enable javascript and cookies to continue",
)

# hides the automation signals page scripts look at
STEALTH_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', { get: () => undefined });

if (window.navigator.permissions && window.navigator.permissions.query) {
  const originalQuery = window.navigator.permissions.query.bind(window.navigator.permissions);
  window.navigator.permissions.query = (parameters) =>
    parameters && parameters.name === 'notifications'
      ? Promise.resolve({ state: Notification.permission })
      : originalQuery(parameters);
}

window.chrome = window.chrome || { runtime: {} };
"""


def has_challenge_marker(text: "str") -> "bool":
    lowered = text.lower()
    return any(marker in lowered for marker in CHALLENGE_MARKERS)


class Navigator:
    """
    Navigator opens the target site in the authenticated context,
    waits out the anti-automation interstitial and gives the site's
    own scripts a moment to bootstrap the session before the page
    is handed back.
    """

    def __init__(
        self,
        navigation_timeout: "float" = 15.0,
        challenge_timeout: "float" = 30.0,
        settle_delay: "float" = 1.0,
        poll_interval: "float" = 0.5,
    ) -> "None":
        self._navigation_timeout = navigation_timeout
        self._challenge_timeout = challenge_timeout
        self._settle_delay = settle_delay
        self._poll_interval = poll_interval

    async def navigate(self, context: "BrowserContext", url: "str") -> "Page":
        """
        returns a page that has loaded url and passed (or waited out)
        the challenge. Raises NavigationError if the site does not
        reach DOM-ready within the navigation timeout.
        """
        page = await context.new_page()
        try:
            await page.add_init_script(STEALTH_SCRIPT)
            await page.goto(
                url,
                wait_until="domcontentloaded",
                timeout=self._navigation_timeout * 1000,
            )
        except PlaywrightError as exc:
            await _close_quietly(page)
            logger.warning("navigation_failed", url=url, error=str(exc))
            raise NavigationError(f"could not load {url}: {exc.message}") from exc

        result = await self.wait_for_challenge(page)
        logger.debug("challenge_wait_done", result=result.value)

        await asyncio.sleep(self._settle_delay)
        return page

    async def wait_for_challenge(self, page: "Page") -> "ChallengeResult":
        """
        polls the page title and visible text until no challenge
        marker is left. Never raises: a timeout or an inspection
        error is reported through the result only, since the usage
        call may still go through.
        """
        deadline = time.monotonic() + self._challenge_timeout
        while True:
            try:
                title = await page.title()
                body = await page.inner_text("body")
            except PlaywrightError as exc:
                logger.warning("challenge_inspect_failed", error=str(exc))
                return ChallengeResult.ERROR

            if not has_challenge_marker(title) and not has_challenge_marker(body):
                return ChallengeResult.CLEARED

            if time.monotonic() >= deadline:
                logger.warning(
                    "challenge_timed_out",
                    timeout_seconds=self._challenge_timeout,
                )
                return ChallengeResult.TIMED_OUT

            logger.debug("challenge_active", title=title)
            await asyncio.sleep(self._poll_interval)


async def _close_quietly(page: "Page") -> "None":
    try:
        await page.close()
    except PlaywrightError as exc:
        logger.debug("page_close_failed", error=str(exc))
