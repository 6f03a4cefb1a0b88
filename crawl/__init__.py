"""Resumable Printify catalog crawler package."""

__version__ = "0.1.0"

# Re-export main components for convenient imports
from crawl.config import (
    BASE_URL,
    CSV_PATH,
    DEFAULT_SELECTORS,
    START_URL,
    Selectors,
)
from crawl.models import (
    Category,
    CrawlSummary,
    ProductRecord,
    ProductStub,
    VariantRecord,
)
from crawl.product import ProductDetailWorkflow
from crawl.scraper import CategoryPaginator, CrawlError, extract_products_from_page
from crawl.store import RecordStore
from crawl.workflows import CrawlOrchestrator

__all__ = [
    # Version
    "__version__",
    # Config
    "BASE_URL",
    "START_URL",
    "CSV_PATH",
    "Selectors",
    "DEFAULT_SELECTORS",
    # Models
    "Category",
    "ProductStub",
    "ProductRecord",
    "VariantRecord",
    "CrawlSummary",
    # Core components
    "RecordStore",
    "extract_products_from_page",
    "CategoryPaginator",
    "ProductDetailWorkflow",
    "CrawlOrchestrator",
    "CrawlError",
]
