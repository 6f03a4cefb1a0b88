"""HTML parsing for rendered listing pages and the navigation menu."""

from typing import List

from bs4 import BeautifulSoup

from crawl.config import BASE_URL, DEFAULT_SELECTORS, Selectors
from crawl.logging_config import get_logger
from crawl.models import Category, ProductStub
from crawl.url_validation import URLValidationError, absolute_url

__all__ = [
    "extract_product_stubs",
    "extract_categories",
]

logger = get_logger("html")


def extract_product_stubs(
    html: str,
    category: str,
    selectors: Selectors = DEFAULT_SELECTORS,
    base_url: str = BASE_URL,
) -> List[ProductStub]:
    """Extract product stubs from a rendered listing page.

    Every product anchor yields a stub, in page order. A stub whose href is
    missing or invalid keeps an empty URL; callers skip those.
    """
    soup = BeautifulSoup(html, "html.parser")
    stubs: List[ProductStub] = []

    for link in soup.select(selectors.product_link):
        name_el = link.select_one(selectors.product_name)
        product_name = name_el.get_text().strip() if name_el else ""

        href = link.get("href")
        try:
            url = absolute_url(href if isinstance(href, str) else None, base_url)
        except URLValidationError as e:
            logger.debug(f"Product link without usable URL ({product_name!r}): {e}")
            url = ""

        stubs.append(ProductStub(category=category, product_name=product_name, url=url))

    return stubs


def extract_categories(
    html: str,
    selectors: Selectors = DEFAULT_SELECTORS,
    base_url: str = BASE_URL,
) -> List[Category]:
    """Extract category links from the navigation menu, duplicates included."""
    soup = BeautifulSoup(html, "html.parser")
    categories: List[Category] = []

    for link in soup.select(selectors.nav_category_link):
        href = link.get("href")
        try:
            url = absolute_url(href if isinstance(href, str) else None, base_url)
        except URLValidationError as e:
            logger.warning(f"Skipping navigation link: {e}")
            continue
        categories.append(Category(name=link.get_text().strip(), listing_url=url))

    return categories
