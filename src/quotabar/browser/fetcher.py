import structlog
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from quotabar.errors import FetchError
from quotabar.models import FetchResult

logger = structlog.get_logger()

CLIENT_PLATFORM = "web_claude_ai"

# runs inside the page with the site's cookies and TLS identity.
# Takes the URL as its only argument and returns plain data;
# exceptions are reported through the "error" field.
FETCH_SCRIPT = (
    """
async (url) => {
  try {
    const response = await fetch(url, {
      method: 'GET',
      credentials: 'include',
      headers: {
        'accept': '*/*',
        'anthropic-client-platform': '%s',
      },
    });
    const headers = {};
    response.headers.forEach((value, key) => { headers[key] = value; });
    const contentType = response.headers.get('content-type') || '';
    const body = contentType.includes('json')
      ? await response.json()
      : await response.text();
    return {
      status: response.status,
      statusText: response.statusText,
      headers: headers,
      body: body,
      error: null,
    };
  } catch (e) {
    return {
      status: 0,
      statusText: '',
      headers: {},
      body: null,
      error: String((e && e.message) || e),
    };
  }
}
"""
    % CLIENT_PLATFORM
)


async def fetch_json(page: "Page", url: "str") -> "FetchResult":
    """
    issues an authenticated GET from inside the page. Only a failure
    of the evaluation itself (page closed, browser gone) raises.
    """
    logger.debug("in_page_fetch", url=url)
    try:
        raw = await page.evaluate(FETCH_SCRIPT, url)
    except PlaywrightError as exc:
        raise FetchError(f"in-page request could not run: {exc.message}") from exc

    return FetchResult(
        status=int(raw.get("status") or 0),
        status_text=raw.get("statusText") or "",
        headers=dict(raw.get("headers") or {}),
        body=raw.get("body"),
        error=raw.get("error"),
    )
