import structlog
from playwright.async_api import Error as PlaywrightError

from quotabar.browser.fetcher import fetch_json
from quotabar.browser.navigator import Navigator
from quotabar.browser.session import BrowserSessionManager
from quotabar.credentials import normalize_session_key
from quotabar.errors import ConfigurationIncompleteError, FetchError
from quotabar.models import Credentials, QuotaInfo, UsagePeriod
from quotabar.usage import normalize_usage

logger = structlog.get_logger()

CLAUDE_BASE_URL = "https://claude.ai"


class QuotaClient:
    """
    QuotaClient acquires the usage quota through a real browser
    session. It owns the browser session, the current credentials
    and the last successfully fetched quota. A failed fetch leaves
    both the session and the last result untouched so the next
    cycle can reuse them.
    """

    def __init__(
        self,
        session: "BrowserSessionManager | None" = None,
        navigator: "Navigator | None" = None,
        base_url: "str" = CLAUDE_BASE_URL,
    ) -> "None":
        self._session = session or BrowserSessionManager()
        self._navigator = navigator or Navigator()
        self._base_url = base_url.rstrip("/")
        self._credentials: "Credentials" = Credentials()
        self._last_result: "QuotaInfo | None" = None

    @property
    def credentials(self) -> "Credentials":
        return self._credentials

    @property
    def last_result(self) -> "QuotaInfo | None":
        return self._last_result

    def usage_url(self, credentials: "Credentials | None" = None) -> "str":
        organization_id = (credentials or self._credentials).organization_id
        return f"{self._base_url}/api/organizations/{organization_id}/usage"

    async def update_credentials(
        self,
        session_key: "str",
        organization_id: "str",
    ) -> "None":
        """
        replaces the credentials and drops the browser context so the
        next fetch installs fresh cookies. The last result is cleared
        when the account actually changed.
        """
        credentials = Credentials(
            session_key=normalize_session_key(session_key),
            organization_id=organization_id.strip(),
        )
        if credentials != self._credentials:
            self._last_result = None
        self._credentials = credentials

        await self._session.invalidate()
        logger.info(
            "credentials_updated",
            has_session_key=bool(credentials.session_key),
            has_organization_id=bool(credentials.organization_id),
        )

    async def fetch_quota(self, preferred: "UsagePeriod") -> "QuotaInfo":
        """
        runs one acquisition: acquire the session, open the site,
        call the usage endpoint from inside the page and normalize
        the response. A result obtained while the credentials changed
        underneath is discarded.
        """
        credentials = self._credentials
        if not credentials.complete:
            raise ConfigurationIncompleteError(
                "session key and organization id not configured"
            )

        context = await self._session.acquire(credentials)
        page = await self._navigator.navigate(context, f"{self._base_url}/")
        try:
            result = await fetch_json(page, self.usage_url(credentials))
        finally:
            try:
                await page.close()
            except PlaywrightError as exc:
                logger.debug("page_close_failed", error=str(exc))

        if result.error is not None:
            raise FetchError(f"request failed: {result.error}")

        if result.status != 200:
            logger.debug("usage_error_body", status=result.status, body=result.body)
            raise FetchError(
                f"HTTP {result.status}: {result.status_text}",
                status=result.status,
            )

        if not isinstance(result.body, dict):
            content_type = result.headers.get("content-type", "")
            logger.debug("usage_body_not_json", content_type=content_type)
            raise FetchError(
                f"unexpected response body ({content_type or 'unknown content type'})",
                status=result.status,
            )

        if credentials != self._credentials:
            raise FetchError("credentials changed during fetch")

        quota = normalize_usage(result.body, preferred)
        self._last_result = quota
        logger.debug(
            "quota_fetched",
            usage=quota.usage,
            remaining=quota.remaining,
            period=quota.period.type if quota.period else None,
        )
        return quota

    async def close(self) -> "None":
        """
        disposes the browser session.
        """
        await self._session.dispose()
