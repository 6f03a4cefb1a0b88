"""High-level crawl orchestration.

A run has two phases, each with its own browser session:

1. Discovery pass: find categories, page through each one, record and visit
   every product not yet in the store.
2. Resume pass: revisit the products already in the store.

The record store is the only state carried between runs; the set of seen
product URLs is rebuilt from it at the start of every run.
"""

import logging
from typing import Callable, ContextManager, Iterable, List, Optional, Set

from crawl.config import (
    BASE_URL,
    DEFAULT_SELECTORS,
    MAX_PAGES_PER_CATEGORY,
    SETTLE_TIMEOUT,
    START_URL,
    Selectors,
)
from crawl.discover_categories import discover_categories, filter_categories
from crawl.driver import Driver, open_browser
from crawl.logging_config import get_logger, log_crawl_event
from crawl.models import CrawlSummary, ProductRecord
from crawl.product import ProductDetailWorkflow
from crawl.scraper import CategoryPaginator
from crawl.shutdown import shutdown_requested
from crawl.store import RecordStore

__all__ = [
    "DriverFactory",
    "CrawlOrchestrator",
]

logger = get_logger("workflows")

DriverFactory = Callable[[], ContextManager[Driver]]


class CrawlOrchestrator:
    """Runs the discovery pass and the resume pass against one record store.

    Args:
        store: Record store shared by both passes
        driver_factory: Returns a context manager yielding a fresh browser
            driver; called once per pass
        category_names: Only crawl categories with these names (default: all)
        run_discovery: Run the discovery pass
        run_resume: Run the resume pass
        resume_records_variants: In the resume pass, harvest variants for
            products that have none yet instead of only revisiting every row
        should_stop: Graceful-stop check, consulted between units of work
    """

    def __init__(
        self,
        store: RecordStore,
        driver_factory: DriverFactory = open_browser,
        selectors: Selectors = DEFAULT_SELECTORS,
        start_url: str = START_URL,
        base_url: str = BASE_URL,
        category_names: Optional[Iterable[str]] = None,
        max_pages: int = MAX_PAGES_PER_CATEGORY,
        settle_timeout: float = SETTLE_TIMEOUT,
        run_discovery: bool = True,
        run_resume: bool = True,
        resume_records_variants: bool = False,
        should_stop: Callable[[], bool] = shutdown_requested,
    ) -> None:
        self.store = store
        self.driver_factory = driver_factory
        self.selectors = selectors
        self.start_url = start_url
        self.base_url = base_url
        self.category_names = list(category_names) if category_names else None
        self.max_pages = max_pages
        self.settle_timeout = settle_timeout
        self.run_discovery = run_discovery
        self.run_resume = run_resume
        self.resume_records_variants = resume_records_variants
        self.should_stop = should_stop
        self.seen_urls: Set[str] = set()

    def run(self) -> CrawlSummary:
        """Run the configured passes and return a summary.

        Raises:
            CrawlError: If the catalog navigation cannot be read
        """
        summary = CrawlSummary()

        self.store.ensure_initialized()
        self.seen_urls = self.store.load_seen_urls()
        logger.info(f"Loaded {len(self.seen_urls)} known product URLs from {self.store.path}")

        if self.run_discovery:
            self.run_discovery_pass(summary)

        if self.run_resume and not summary.interrupted:
            self.run_resume_pass(summary)

        log_crawl_event("crawl_complete", {
            "message": (
                f"Crawl {'interrupted' if summary.interrupted else 'complete'}: "
                f"{summary.new_products} new product(s) in {summary.categories_found} categories"
            ),
            **summary.as_dict(),
        })
        return summary

    def run_discovery_pass(self, summary: CrawlSummary) -> None:
        with self.driver_factory() as driver:
            categories = discover_categories(
                driver, self.start_url, self.selectors, base_url=self.base_url
            )
            categories = filter_categories(categories, self.category_names)
            summary.categories_found = len(categories)

            paginator = CategoryPaginator(
                driver,
                self.store,
                self.seen_urls,
                self._make_workflow(driver, record_variants=True),
                selectors=self.selectors,
                max_pages=self.max_pages,
                settle_timeout=self.settle_timeout,
                should_stop=self.should_stop,
                base_url=self.base_url,
            )

            for category in categories:
                if self.should_stop():
                    logger.info("Shutdown requested, skipping remaining categories")
                    summary.interrupted = True
                    break

                try:
                    result = paginator.run(category)
                except Exception as e:
                    logger.exception(f"Error processing category {category.name}: {e}")
                    summary.categories_failed += 1
                    continue

                summary.category_results.append(result)
                summary.new_products += result.new_products
                if result.status == "failed":
                    summary.categories_failed += 1
                elif result.status == "interrupted":
                    summary.interrupted = True
                    break
                else:
                    logger.info(f"Processed category: {category.name}")

    def resume_targets(self) -> List[ProductRecord]:
        """Rows the resume pass visits.

        Visit-only mode revisits every row in file order, duplicates included.
        When recording variants, only distinct URLs without any variant row
        are targeted.
        """
        records = self.store.read_all_product_records()
        if not self.resume_records_variants:
            return records

        harvested = {r.url for r in records if r.is_variant}
        targets: List[ProductRecord] = []
        queued: Set[str] = set()
        for record in records:
            if record.url and record.url not in harvested and record.url not in queued:
                queued.add(record.url)
                targets.append(record)
        return targets

    def run_resume_pass(self, summary: CrawlSummary) -> None:
        targets = self.resume_targets()
        mode = "record variants" if self.resume_records_variants else "visit only"
        logger.info(f"Resume pass ({mode}): {len(targets)} row(s)")
        if not targets:
            return

        with self.driver_factory() as driver:
            workflow = self._make_workflow(driver, record_variants=self.resume_records_variants)

            for record in targets:
                if self.should_stop():
                    logger.info("Shutdown requested, stopping resume pass")
                    summary.interrupted = True
                    break

                if not record.url:
                    logger.warning(f"Skipping row without product URL: {record.product_name!r}")
                    continue

                logger.info(f"Visiting product: {record.product_name} -> {record.url}")
                try:
                    workflow.run(record)
                    summary.resume_rows_visited += 1
                except Exception as e:
                    summary.resume_rows_failed += 1
                    log_crawl_event("product_error", {
                        "message": f"Error processing product {record.url}: {e}",
                        "url": record.url,
                        "error": str(e),
                        "pass": "resume",
                    }, level=logging.ERROR)

    def _make_workflow(self, driver: Driver, record_variants: bool) -> ProductDetailWorkflow:
        return ProductDetailWorkflow(
            driver,
            self.store,
            selectors=self.selectors,
            record_variants=record_variants,
            settle_timeout=self.settle_timeout,
        )
