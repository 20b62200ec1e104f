from typing import Any

import pytest
from playwright.async_api import Error as PlaywrightError
from prometheus_client import CollectorRegistry


@pytest.fixture()
def registry() -> "CollectorRegistry":
    """
    fresh Prometheus registry to avoid cross-test state.
    """
    return CollectorRegistry()


class FakePage:
    """
    A stand-in for a Playwright page. Titles and body texts are
    returned in order, the last one repeating.
    """

    def __init__(
        self,
        titles: "list[str] | None" = None,
        bodies: "list[str] | None" = None,
        evaluate_result: "dict[str, Any] | None" = None,
        goto_error: "Exception | None" = None,
        evaluate_error: "Exception | None" = None,
        inspect_error: "Exception | None" = None,
    ) -> "None":
        self._titles = list(titles or ["Claude"])
        self._bodies = list(bodies or ["New chat"])
        self.evaluate_result = evaluate_result or {"status": 200, "body": {}}
        self.goto_error = goto_error
        self.evaluate_error = evaluate_error
        self.inspect_error = inspect_error
        self.init_scripts: "list[str]" = []
        self.visited: "list[str]" = []
        self.evaluated: "list[tuple[str, Any]]" = []
        self.closed = False

    async def add_init_script(self, script: "str") -> "None":
        self.init_scripts.append(script)

    async def goto(self, url: "str", **kwargs: "Any") -> "None":
        self.visited.append(url)
        if self.goto_error is not None:
            raise self.goto_error

    async def title(self) -> "str":
        if self.inspect_error is not None:
            raise self.inspect_error
        return self._titles.pop(0) if len(self._titles) > 1 else self._titles[0]

    async def inner_text(self, selector: "str") -> "str":
        return self._bodies.pop(0) if len(self._bodies) > 1 else self._bodies[0]

    async def evaluate(self, script: "str", arg: "Any" = None) -> "Any":
        self.evaluated.append((script, arg))
        if self.evaluate_error is not None:
            raise self.evaluate_error
        return self.evaluate_result

    async def close(self) -> "None":
        self.closed = True


class FakeContext:
    def __init__(self, pages: "list[FakePage] | None" = None) -> "None":
        self._pages = list(pages or [])
        self.cookies: "list[dict[str, Any]]" = []
        self.opened: "list[FakePage]" = []
        self.closed = False

    async def add_cookies(self, cookies: "list[dict[str, Any]]") -> "None":
        self.cookies.extend(cookies)

    async def new_page(self) -> "FakePage":
        page = self._pages.pop(0) if self._pages else FakePage()
        self.opened.append(page)
        return page

    async def close(self) -> "None":
        self.closed = True


class FakeBrowser:
    def __init__(self, pages: "list[FakePage] | None" = None) -> "None":
        # pages handed out by contexts of this browser, shared with the factory
        self.pages: "list[FakePage]" = pages if pages is not None else []
        self.contexts: "list[FakeContext]" = []
        self.context_options: "list[dict[str, Any]]" = []
        self.connected = True
        self.closed = False

    def is_connected(self) -> "bool":
        return self.connected

    async def new_context(self, **kwargs: "Any") -> "FakeContext":
        self.context_options.append(kwargs)
        context = FakeContext()
        context._pages = self.pages
        self.contexts.append(context)
        return context

    async def close(self) -> "None":
        self.closed = True
        self.connected = False


class FakeChromium:
    def __init__(
        self,
        launch_error: "Exception | None" = None,
        pages: "list[FakePage] | None" = None,
    ) -> "None":
        self.launch_error = launch_error
        self.pages: "list[FakePage]" = pages if pages is not None else []
        self.launches: "list[dict[str, Any]]" = []
        self.browsers: "list[FakeBrowser]" = []

    async def launch(self, **kwargs: "Any") -> "FakeBrowser":
        self.launches.append(kwargs)
        if self.launch_error is not None:
            raise self.launch_error
        browser = FakeBrowser(self.pages)
        self.browsers.append(browser)
        return browser


class FakePlaywright:
    def __init__(self, chromium: "FakeChromium") -> "None":
        self.chromium = chromium
        self.stopped = False

    async def stop(self) -> "None":
        self.stopped = True


class FakePlaywrightFactory:
    """
    mimics async_playwright(): calling it returns an object whose
    start() yields the driver.
    """

    def __init__(self, launch_error: "Exception | None" = None) -> "None":
        self.chromium = FakeChromium(launch_error)
        # queue pages here to control what the next new_page returns
        self.pages = self.chromium.pages
        self.drivers: "list[FakePlaywright]" = []

    def __call__(self) -> "FakePlaywrightFactory":
        return self

    async def start(self) -> "FakePlaywright":
        driver = FakePlaywright(self.chromium)
        self.drivers.append(driver)
        return driver


@pytest.fixture()
def playwright_factory() -> "FakePlaywrightFactory":
    return FakePlaywrightFactory()


@pytest.fixture()
def failing_playwright_factory() -> "FakePlaywrightFactory":
    return FakePlaywrightFactory(
        launch_error=PlaywrightError("Executable doesn't exist at /nope/chrome")
    )


@pytest.fixture()
def make_page() -> "type[FakePage]":
    return FakePage


@pytest.fixture()
def make_context() -> "type[FakeContext]":
    return FakeContext
