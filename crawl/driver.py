"""Browser driver used by the crawl workflows.

The workflows only see the ``Driver`` protocol: navigate, read rendered HTML,
query elements, click and wait. ``PlaywrightDriver`` implements it on top of
Playwright's synchronous API; tests substitute a scripted fake.
"""

import time
from contextlib import contextmanager
from typing import Any, Callable, Generator, List, Optional, Protocol

from playwright.sync_api import ElementHandle, Page, sync_playwright
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from crawl.config import (
    BROWSER_ARGS,
    HEADLESS,
    NAVIGATION_TIMEOUT,
    POLL_INTERVAL,
    SETTLE_TIMEOUT,
    VIEWPORT,
)
from crawl.logging_config import get_logger

__all__ = [
    "Driver",
    "PlaywrightDriver",
    "open_browser",
    "wait_until",
]

logger = get_logger("driver")


def wait_until(
    condition: Callable[[], bool],
    timeout: float,
    interval: float = POLL_INTERVAL,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> bool:
    """Poll ``condition`` until it holds or ``timeout`` seconds pass.

    The condition is always evaluated at least once.

    Returns:
        True if the condition held before the deadline, False otherwise
    """
    deadline = clock() + timeout
    while True:
        if condition():
            return True
        remaining = deadline - clock()
        if remaining <= 0:
            return False
        sleep(min(interval, remaining))


class Driver(Protocol):
    """Capabilities the crawl workflows need from a browser page."""

    def goto(self, url: str) -> None: ...

    def content(self) -> str: ...

    def scroll_to_bottom(self) -> None: ...

    def query_all(self, selector: str, root: Optional[Any] = None) -> List[Any]: ...

    def query_one(self, selector: str, root: Optional[Any] = None) -> Optional[Any]: ...

    def query_by_text(self, selector: str, text: str, exact: bool = True) -> List[Any]: ...

    def text_of(self, element: Any, rendered: bool = True) -> str: ...

    def click(self, element: Any) -> None: ...

    def exists(self, selector: str) -> bool: ...

    def wait_for(self, selector: str, timeout: float) -> bool: ...

    def wait_until(self, condition: Callable[[], bool], timeout: float) -> bool: ...

    def settle(self, timeout: float = SETTLE_TIMEOUT) -> bool: ...


class PlaywrightDriver:
    """``Driver`` implementation over a Playwright page."""

    # Size of the rendered DOM; unchanged between two polls means settled
    _DOM_SIZE_JS = "() => document.body ? document.body.innerHTML.length : 0"

    def __init__(
        self,
        page: Page,
        navigation_timeout: float = NAVIGATION_TIMEOUT,
        poll_interval: float = POLL_INTERVAL,
    ) -> None:
        self.page = page
        self.navigation_timeout = navigation_timeout
        self.poll_interval = poll_interval

    def goto(self, url: str) -> None:
        self.page.goto(url, wait_until="networkidle", timeout=self.navigation_timeout * 1000)

    def content(self) -> str:
        return self.page.content()

    def scroll_to_bottom(self) -> None:
        self.page.evaluate("() => window.scrollTo(0, document.body.scrollHeight)")

    def query_all(self, selector: str, root: Optional[ElementHandle] = None) -> List[ElementHandle]:
        return (root or self.page).query_selector_all(selector)

    def query_one(self, selector: str, root: Optional[ElementHandle] = None) -> Optional[ElementHandle]:
        return (root or self.page).query_selector(selector)

    def query_by_text(self, selector: str, text: str, exact: bool = True) -> List[ElementHandle]:
        """Elements matching ``selector`` whose trimmed text equals (or contains) ``text``."""
        matches = []
        for element in self.page.query_selector_all(selector):
            content = (element.text_content() or "").strip()
            if content == text or (not exact and text in content):
                matches.append(element)
        return matches

    def text_of(self, element: ElementHandle, rendered: bool = True) -> str:
        """Trimmed text of ``element``.

        ``rendered`` reads the visible text (``innerText``); otherwise the raw
        DOM text (``textContent``), which includes CSS-hidden content.
        """
        text = element.inner_text() if rendered else element.text_content()
        return (text or "").strip()

    def click(self, element: ElementHandle) -> None:
        element.click()

    def exists(self, selector: str) -> bool:
        return self.page.query_selector(selector) is not None

    def wait_for(self, selector: str, timeout: float) -> bool:
        try:
            self.page.wait_for_selector(selector, timeout=timeout * 1000, state="attached")
            return True
        except PlaywrightTimeoutError:
            return False

    def wait_until(self, condition: Callable[[], bool], timeout: float) -> bool:
        return wait_until(
            condition,
            timeout,
            interval=self.poll_interval,
            sleep=lambda seconds: self.page.wait_for_timeout(seconds * 1000),
        )

    def settle(self, timeout: float = SETTLE_TIMEOUT) -> bool:
        """Wait until the DOM size is unchanged across two polls.

        Returns False if the page was still changing when the timeout expired.
        """
        last_size = [-1]

        def stable() -> bool:
            size = self.page.evaluate(self._DOM_SIZE_JS)
            unchanged = size == last_size[0]
            last_size[0] = size
            return unchanged

        # The first poll only records a baseline
        stable()
        self.page.wait_for_timeout(self.poll_interval * 1000)
        settled = self.wait_until(stable, timeout)
        if not settled:
            logger.debug(f"Page still changing after {timeout:.1f}s settle wait")
        return settled


@contextmanager
def open_browser(
    headless: bool = HEADLESS,
    navigation_timeout: float = NAVIGATION_TIMEOUT,
) -> Generator[PlaywrightDriver, None, None]:
    """Launch Chromium and yield a driver for a single page.

    The browser is closed when the block exits, however it exits.
    """
    logger.info(f"Launching browser (headless={headless})...")
    with sync_playwright() as playwright:
        browser = playwright.chromium.launch(headless=headless, args=BROWSER_ARGS)
        try:
            page = browser.new_page(viewport=VIEWPORT)
            yield PlaywrightDriver(page, navigation_timeout=navigation_timeout)
        finally:
            browser.close()
            logger.info("Browser closed")
