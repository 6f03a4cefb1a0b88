"""Configuration and constants for the crawler."""

import os
from dataclasses import dataclass
from typing import Dict

from dotenv import load_dotenv

__all__ = [
    "BASE_URL",
    "START_URL",
    "CSV_PATH",
    "CSV_FIELDNAMES",
    "LOG_DIR",
    "HEADLESS",
    "VIEWPORT",
    "BROWSER_ARGS",
    "NAVIGATION_TIMEOUT",
    "NAV_MENU_TIMEOUT",
    "CHIP_BUTTON_TIMEOUT",
    "CONFIG_PANEL_TIMEOUT",
    "CLOSE_TIMEOUT",
    "SIZE_VIEW_TIMEOUT",
    "SETTLE_TIMEOUT",
    "VIEW_SETTLE_TIMEOUT",
    "POLL_INTERVAL",
    "MAX_PAGES_PER_CATEGORY",
    "Selectors",
    "DEFAULT_SELECTORS",
]

# Environment overrides, optionally from a .env file in the working directory
load_dotenv()

BASE_URL = os.getenv("CRAWL_BASE_URL", "https://printify.com")
START_URL = os.getenv("CRAWL_START_URL", f"{BASE_URL}/app/products")

# Output store
CSV_PATH = os.getenv("CRAWL_CSV_PATH", "data/printify_products.csv")
CSV_FIELDNAMES = ["Category", "Product Name", "Product URL", "Size", "Price"]

# Daily JSONL run logs
LOG_DIR = os.getenv("CRAWL_LOG_DIR", "logs")

# Browser session
HEADLESS = os.getenv("CRAWL_HEADLESS", "True").lower() == "true"
VIEWPORT: Dict[str, int] = {"width": 1280, "height": 800}
BROWSER_ARGS = ["--no-sandbox", "--disable-setuid-sandbox"]

# Bounded waits (seconds)
NAVIGATION_TIMEOUT = float(os.getenv("CRAWL_NAVIGATION_TIMEOUT", "60"))
NAV_MENU_TIMEOUT = float(os.getenv("CRAWL_NAV_MENU_TIMEOUT", "30"))
CHIP_BUTTON_TIMEOUT = 5.0
CONFIG_PANEL_TIMEOUT = 5.0
CLOSE_TIMEOUT = 3.0
SIZE_VIEW_TIMEOUT = 5.0

# Settle waits: poll until the DOM stops changing, give up after the timeout
SETTLE_TIMEOUT = float(os.getenv("CRAWL_SETTLE_TIMEOUT", "2"))
VIEW_SETTLE_TIMEOUT = 2.0
POLL_INTERVAL = 0.25

# Safety limit to avoid runaway pagination
MAX_PAGES_PER_CATEGORY = int(os.getenv("CRAWL_MAX_PAGES", "200"))


@dataclass(frozen=True)
class Selectors:
    """Markup bindings for the catalog site.

    The crawl logic only ever refers to these by attribute name, so a markup
    change on the site means editing this table and nothing else.
    """

    # Catalog navigation menu
    nav: str = ".nav"
    nav_category_link: str = '.nav a[href^="/app/products"]'

    # Listing page
    product_link: str = "a.wrapper-link"
    product_name: str = 'p[data-testid="blueprintName"]'
    next_disabled: str = 'pfy-button.disabled button[disabled] pfy-icon[name="chevron_right"]'
    next_enabled: str = 'button:not([disabled]):has(pfy-icon[name="chevron_right"])'

    # Product page configuration
    chip_button: str = 'button[data-testid="chipButton"]'
    choose_manually_text: str = "Choose manually"
    config_panel: str = ".custom-content"
    config_panel_button: str = ".custom-content button"

    # Providers
    provider_button: str = 'pfy-button[data-testid="moreDetailsButton"] button'
    panel: str = ".custom-content"
    provider_info_text: str = "Provider info"
    size_text: str = "Size"

    # Variants table
    variants_table: str = 'pfy-variants-table[data-testid="variantsTable"]'
    variant_row: str = "pfy-variants-table-title-row"
    variant_size: str = 'td.selected-option pfy-variants-table-column-text [data-testid="columnText"]'
    variant_price: str = 'span[data-testid="standardPrice"]'

    # Provider popup
    close_button: str = 'i.material-icons[title="Close"]'


DEFAULT_SELECTORS = Selectors()
