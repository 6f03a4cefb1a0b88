"""Category discovery from the catalog navigation menu."""

from typing import Dict, Iterable, List, Optional

from crawl.config import BASE_URL, DEFAULT_SELECTORS, NAV_MENU_TIMEOUT, START_URL, Selectors
from crawl.driver import Driver
from crawl.html_utils import extract_categories
from crawl.logging_config import get_logger
from crawl.models import Category
from crawl.scraper import CrawlError

__all__ = [
    "dedupe_categories",
    "filter_categories",
    "discover_categories",
]

logger = get_logger("discover")


def dedupe_categories(categories: Iterable[Category]) -> List[Category]:
    """Collapse menu entries that point at the same listing URL.

    Order follows the first occurrence of each URL; the name comes from the
    last occurrence.
    """
    by_url: Dict[str, Category] = {}
    for category in categories:
        by_url[category.listing_url] = category
    return list(by_url.values())


def filter_categories(categories: List[Category], names: Optional[Iterable[str]]) -> List[Category]:
    """Keep only categories whose name matches one of ``names`` (case-insensitive)."""
    if not names:
        return categories
    wanted = {n.strip().lower() for n in names}
    return [c for c in categories if c.name.lower() in wanted]


def discover_categories(
    driver: Driver,
    start_url: str = START_URL,
    selectors: Selectors = DEFAULT_SELECTORS,
    nav_timeout: float = NAV_MENU_TIMEOUT,
    base_url: str = BASE_URL,
) -> List[Category]:
    """Open the catalog start page and return its unique categories.

    Raises:
        CrawlError: If the navigation menu does not appear in time
    """
    logger.info(f"Navigating to catalog: {start_url}")
    driver.goto(start_url)

    if not driver.wait_for(selectors.nav, nav_timeout):
        raise CrawlError(f"Navigation menu not found on {start_url} within {nav_timeout:.0f}s")
    logger.info("Navigation menu loaded")

    links = extract_categories(driver.content(), selectors, base_url)
    categories = dedupe_categories(links)
    logger.info(f"Found {len(categories)} categories ({len(links)} menu links)")
    return categories
