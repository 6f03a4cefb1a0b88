"""Listing extraction and per-category pagination."""

import logging
from enum import Enum
from typing import Callable, List, Optional, Set

from crawl.config import (
    BASE_URL,
    DEFAULT_SELECTORS,
    MAX_PAGES_PER_CATEGORY,
    SETTLE_TIMEOUT,
    Selectors,
)
from crawl.driver import Driver
from crawl.html_utils import extract_product_stubs
from crawl.logging_config import get_logger, log_crawl_event
from crawl.models import Category, CategoryResult, ProductStub
from crawl.product import ProductDetailWorkflow
from crawl.shutdown import shutdown_requested
from crawl.store import RecordStore

__all__ = [
    "CrawlError",
    "extract_products_from_page",
    "PageState",
    "CategoryPaginator",
]

logger = get_logger("scraper")


class CrawlError(Exception):
    """Raised when the crawl cannot continue at the current level."""
    pass


def extract_products_from_page(
    driver: Driver,
    category: str,
    selectors: Selectors = DEFAULT_SELECTORS,
    settle_timeout: float = SETTLE_TIMEOUT,
    base_url: str = BASE_URL,
) -> List[ProductStub]:
    """Scroll the current listing page to its end and read the product stubs.

    Does not change page state beyond scrolling.
    """
    driver.scroll_to_bottom()
    driver.settle(settle_timeout)
    return extract_product_stubs(driver.content(), category, selectors, base_url)


class PageState(Enum):
    LOADING_PAGE = "loading_page"
    EXTRACTING = "extracting"
    PROCESSING_NEW_PRODUCTS = "processing_new_products"
    ADVANCING = "advancing"
    DONE = "done"


class CategoryPaginator:
    """Walks one category from its first listing page to its last.

    For every product stub whose URL is new, the stub row is written and the
    URL added to ``seen_urls`` before the product page is visited. After each
    visit the listing is reloaded from the category URL and the paginator
    clicks forward to the page it was on.

    Args:
        driver: Browser driver
        store: Record store receiving stub (and, through the workflow, variant) rows
        seen_urls: Shared set of already-recorded product URLs; mutated in place
        workflow: Detail workflow run for each new product
        selectors: Markup bindings
        max_pages: Safety limit on listing pages per category
        should_stop: Checked between products and pages; True ends the category
    """

    def __init__(
        self,
        driver: Driver,
        store: RecordStore,
        seen_urls: Set[str],
        workflow: ProductDetailWorkflow,
        selectors: Selectors = DEFAULT_SELECTORS,
        max_pages: int = MAX_PAGES_PER_CATEGORY,
        settle_timeout: float = SETTLE_TIMEOUT,
        should_stop: Callable[[], bool] = shutdown_requested,
        base_url: str = BASE_URL,
    ) -> None:
        self.driver = driver
        self.store = store
        self.seen_urls = seen_urls
        self.workflow = workflow
        self.selectors = selectors
        self.max_pages = max_pages
        self.settle_timeout = settle_timeout
        self.should_stop = should_stop
        self.base_url = base_url

    def run(self, category: Category) -> CategoryResult:
        """Process every listing page of ``category``.

        A failure while handling a page ends this category only. Failure to
        load the category URL in the first place is raised to the caller.
        """
        logger.info(f"Processing category: {category.name} ({category.listing_url})")
        log_crawl_event("category_start", {
            "category": category.name,
            "url": category.listing_url,
        })

        result = CategoryResult(category=category)
        page_index = 1
        stubs: List[ProductStub] = []
        state = PageState.LOADING_PAGE

        self.driver.goto(category.listing_url)
        self.driver.settle(self.settle_timeout)

        while state is not PageState.DONE:
            try:
                if state is PageState.LOADING_PAGE:
                    result.pages_visited = page_index
                    state = PageState.EXTRACTING

                elif state is PageState.EXTRACTING:
                    stubs = extract_products_from_page(
                        self.driver, category.name, self.selectors, self.settle_timeout, self.base_url
                    )
                    state = PageState.PROCESSING_NEW_PRODUCTS

                elif state is PageState.PROCESSING_NEW_PRODUCTS:
                    self._process_stubs(category, stubs, page_index, result)
                    logger.info(f"Extracted {len(stubs)} products from page {page_index}")
                    state = PageState.DONE if result.status == "interrupted" else PageState.ADVANCING

                elif state is PageState.ADVANCING:
                    if self._advance(page_index, result):
                        page_index += 1
                        logger.info(f"Moving to page {page_index}")
                        log_crawl_event("page_turn", {
                            "category": category.name,
                            "page": page_index,
                        }, level=logging.DEBUG)
                        state = PageState.LOADING_PAGE
                    else:
                        state = PageState.DONE

            except Exception as e:
                logger.exception(f"Error processing page {page_index} of {category.name}: {e}")
                result.status = "failed"
                state = PageState.DONE

        logger.info(
            f"Finished category {category.name} ({result.status}): "
            f"{result.pages_visited} page(s), {result.new_products} new product(s)"
        )
        log_crawl_event("category_complete", {
            "category": category.name,
            "pages_visited": result.pages_visited,
            "new_products": result.new_products,
            "failed_products": result.failed_products,
            "status": result.status,
        })
        return result

    def _process_stubs(
        self,
        category: Category,
        stubs: List[ProductStub],
        page_index: int,
        result: CategoryResult,
    ) -> None:
        for stub in stubs:
            if not stub.url or stub.url in self.seen_urls:
                continue

            if self.should_stop():
                logger.info("Shutdown requested, stopping category before next product")
                result.status = "interrupted"
                return

            log_crawl_event("product_found", {
                "message": f"[Product] {stub.product_name} -> {stub.url}",
                "category": category.name,
                "url": stub.url,
                "page": page_index,
            })
            # Recorded before the visit: a crash mid-visit never re-queues the product
            self.store.append_product_stub(stub.to_record())
            self.seen_urls.add(stub.url)
            result.new_products += 1

            try:
                self.workflow.run(stub)
            except Exception as e:
                result.failed_products += 1
                log_crawl_event("product_error", {
                    "message": f"Error visiting product page {stub.url}: {e}",
                    "category": category.name,
                    "url": stub.url,
                    "error": str(e),
                }, level=logging.ERROR)

            self._return_to_listing(category, page_index)

    def _return_to_listing(self, category: Category, page_index: int) -> None:
        """Reload the category URL and click forward to ``page_index``."""
        self.driver.goto(category.listing_url)
        self.driver.settle(self.settle_timeout)

        for page in range(2, page_index + 1):
            if not self._click_next():
                raise CrawlError(
                    f"Could not return to page {page_index} of {category.name}: "
                    f"no next control on page {page - 1}"
                )
            self.driver.settle(self.settle_timeout)

    def _advance(self, page_index: int, result: CategoryResult) -> bool:
        """Move to the next listing page. Returns False when pagination is over."""
        if self.should_stop():
            logger.info("Shutdown requested, stopping category before next page")
            result.status = "interrupted"
            return False

        if self.driver.exists(self.selectors.next_disabled):
            logger.info("Reached last page - next button is disabled")
            return False

        if page_index >= self.max_pages:
            logger.warning(f"Reached max pages limit ({self.max_pages})")
            result.status = "page_limit"
            return False

        if not self._click_next():
            logger.info("Could not find or click enabled next button. Stopping.")
            return False

        self.driver.settle(self.settle_timeout)
        return True

    def _click_next(self) -> bool:
        button: Optional[object] = self.driver.query_one(self.selectors.next_enabled)
        if button is None:
            return False
        self.driver.click(button)
        return True
