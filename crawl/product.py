"""Product detail workflow: configure, open each provider, harvest size/price rows.

The workflow is a small state machine. For the product as a whole:

    ARRIVE -> CONFIGURE -> PROVIDERS -> DONE

and, when variants are recorded, for every provider found on the page:

    OPEN -> SELECT_SIZE_VIEW -> HARVEST -> CLOSE -> CLOSED

With ``record_variants=False`` the PROVIDERS step only opens the provider
and size views without harvesting or closing anything; the resume pass uses
that mode. The workflow never navigates away from the product page when it
is done; returning to the listing is the caller's job.
"""

import logging
from enum import Enum
from typing import Any, Union

from crawl.config import (
    CHIP_BUTTON_TIMEOUT,
    CLOSE_TIMEOUT,
    CONFIG_PANEL_TIMEOUT,
    DEFAULT_SELECTORS,
    SETTLE_TIMEOUT,
    SIZE_VIEW_TIMEOUT,
    VIEW_SETTLE_TIMEOUT,
    Selectors,
)
from crawl.driver import Driver
from crawl.logging_config import get_logger, log_crawl_event
from crawl.models import DetailResult, ProductRecord, ProductStub, VariantRecord
from crawl.store import RecordStore

__all__ = [
    "DetailState",
    "ProviderState",
    "ProductDetailWorkflow",
]

logger = get_logger("product")

Product = Union[ProductStub, ProductRecord]


class DetailState(Enum):
    ARRIVE = "arrive"
    CONFIGURE = "configure"
    PROVIDERS = "providers"
    DONE = "done"


class ProviderState(Enum):
    OPEN = "open"
    SELECT_SIZE_VIEW = "select_size_view"
    HARVEST = "harvest"
    CLOSE = "close"
    CLOSED = "closed"


class ProductDetailWorkflow:
    """Drives one product page through configuration and provider extraction.

    Args:
        driver: Browser driver positioned anywhere; ARRIVE navigates
        store: Record store that harvested variants are appended to
        selectors: Markup bindings
        record_variants: Harvest and persist variant rows (first pass) or only
            open the provider/size views (resume pass)
    """

    def __init__(
        self,
        driver: Driver,
        store: RecordStore,
        selectors: Selectors = DEFAULT_SELECTORS,
        record_variants: bool = True,
        settle_timeout: float = SETTLE_TIMEOUT,
        chip_button_timeout: float = CHIP_BUTTON_TIMEOUT,
        config_panel_timeout: float = CONFIG_PANEL_TIMEOUT,
        close_timeout: float = CLOSE_TIMEOUT,
        size_view_timeout: float = SIZE_VIEW_TIMEOUT,
        view_settle_timeout: float = VIEW_SETTLE_TIMEOUT,
    ) -> None:
        self.driver = driver
        self.store = store
        self.selectors = selectors
        self.record_variants = record_variants
        self.settle_timeout = settle_timeout
        self.chip_button_timeout = chip_button_timeout
        self.config_panel_timeout = config_panel_timeout
        self.close_timeout = close_timeout
        self.size_view_timeout = size_view_timeout
        self.view_settle_timeout = view_settle_timeout

    def run(self, product: Product) -> DetailResult:
        """Run the workflow for one product.

        Navigation failures propagate; the caller decides whether they skip
        the product or abort something larger.
        """
        result = DetailResult(url=product.url)
        state = DetailState.ARRIVE

        while state is not DetailState.DONE:
            if state is DetailState.ARRIVE:
                self._arrive(product)
                state = DetailState.CONFIGURE
            elif state is DetailState.CONFIGURE:
                result.configured = self._configure()
                state = DetailState.PROVIDERS
            elif state is DetailState.PROVIDERS:
                if self.record_variants:
                    self._harvest_providers(product, result)
                else:
                    self._open_provider_views(result)
                state = DetailState.DONE

        return result

    # ------------------------------------------------------------------
    # Product-level states
    # ------------------------------------------------------------------

    def _arrive(self, product: Product) -> None:
        self.driver.goto(product.url)
        self.driver.settle(self.settle_timeout)
        logger.info(f"[Visited] {product.url}")

    def _configure(self) -> bool:
        """Click "Choose manually" and every button of the configuration panel.

        Returns True if the "Choose manually" control was found and clicked.
        A missing control is the normal case for many products.
        """
        sel = self.selectors
        if not self.driver.wait_for(sel.chip_button, self.chip_button_timeout):
            logger.info('No "Choose manually" button found on product page')
            return False

        choose = self.driver.query_by_text(sel.chip_button, sel.choose_manually_text, exact=False)
        if not choose:
            logger.info('No "Choose manually" button found on product page')
            return False

        try:
            self.driver.click(choose[0])
            logger.info('Clicked "Choose manually" button')
            self.driver.settle(self.settle_timeout)

            if not self.driver.wait_for(sel.config_panel, self.config_panel_timeout):
                logger.warning("Configuration panel did not appear after \"Choose manually\"")
                return True

            for button in self.driver.query_all(sel.config_panel_button):
                self.driver.click(button)
                logger.info("Clicked button inside configuration panel")
                self.driver.settle(self.settle_timeout)
        except Exception as e:
            # Configuration is best effort; providers are still attempted
            logger.warning(f"Configuration step failed: {e}")

        return True

    def _harvest_providers(self, product: Product, result: DetailResult) -> None:
        providers = self.driver.query_all(self.selectors.provider_button)
        result.providers = len(providers)
        logger.info(f"Found {len(providers)} 'Provider info' button(s)")

        for index, button in enumerate(providers, start=1):
            self._run_provider(product, index, button, result)

    def _open_provider_views(self, result: DetailResult) -> None:
        """Resume-pass variant of PROVIDERS: open the views, record nothing."""
        sel = self.selectors
        logger.info(f'Looking for "{sel.provider_info_text}" panels')

        triggers = self.driver.query_by_text(sel.panel, sel.provider_info_text)
        for trigger in triggers:
            self.driver.click(trigger)
        result.providers = len(triggers)
        logger.info(f"Clicked {len(triggers)} '{sel.provider_info_text}' element(s)")
        self.driver.settle(self.settle_timeout)

        size_visible = self.driver.wait_until(
            lambda: bool(self.driver.query_by_text(sel.panel, sel.size_text)),
            self.size_view_timeout,
        )
        if size_visible:
            clicked = self._click_size_panels()
            logger.info(f"Clicked {clicked} '{sel.size_text}' element(s)")
        else:
            logger.info(f"'{sel.size_text}' element not found")

        self.driver.settle(self.view_settle_timeout)

    # ------------------------------------------------------------------
    # Provider-level states
    # ------------------------------------------------------------------

    def _run_provider(self, product: Product, index: int, button: Any, result: DetailResult) -> None:
        state = ProviderState.OPEN

        while state is not ProviderState.CLOSED:
            if state is ProviderState.OPEN:
                logger.info(f"Clicking 'Provider info' button #{index}")
                self.driver.click(button)
                self.driver.settle(self.settle_timeout)
                state = ProviderState.SELECT_SIZE_VIEW

            elif state is ProviderState.SELECT_SIZE_VIEW:
                clicked = self._click_size_panels()
                if clicked:
                    logger.info(f"Clicked {clicked} '{self.selectors.size_text}' element(s) for provider #{index}")
                    self.driver.settle(self.settle_timeout)
                else:
                    logger.info(f"No '{self.selectors.size_text}' option for provider #{index}")
                state = ProviderState.HARVEST

            elif state is ProviderState.HARVEST:
                result.variants_recorded += self._harvest_variants(product, index)
                state = ProviderState.CLOSE

            elif state is ProviderState.CLOSE:
                if not self._close_popup(index):
                    result.unclosed_popups += 1
                state = ProviderState.CLOSED

    def _click_size_panels(self) -> int:
        panels = self.driver.query_by_text(self.selectors.panel, self.selectors.size_text)
        for panel in panels:
            self.driver.click(panel)
        return len(panels)

    def _harvest_variants(self, product: Product, index: int) -> int:
        sel = self.selectors
        if not self.driver.exists(sel.variants_table):
            logger.info(f"No variants table for provider #{index}")
            return 0

        recorded = 0
        for row in self.driver.query_all(sel.variant_row):
            size_el = self.driver.query_one(sel.variant_size, root=row)
            price_el = self.driver.query_one(sel.variant_price, root=row)
            variant = VariantRecord(
                category=product.category,
                product_name=product.product_name,
                url=product.url,
                size=self.driver.text_of(size_el) if size_el is not None else "",
                # Prices are read from the DOM text, so CSS-hidden spans still count
                price=self.driver.text_of(price_el, rendered=False) if price_el is not None else "",
            )
            if not (variant.size or variant.price):
                # A row with neither cell would read back as a stub row
                logger.info(f"Skipping variants table row without size or price (provider #{index})")
                continue

            self.store.append_variant(variant)
            recorded += 1
            log_crawl_event("variant", {
                "message": f"[Variant] {variant.size} -> {variant.price} (provider #{index})",
                "url": variant.url,
                "size": variant.size,
                "price": variant.price,
                "provider": index,
            })
        return recorded

    def _close_popup(self, index: int) -> bool:
        """Close the provider popup. Failing to close is logged, not raised."""
        sel = self.selectors
        error = None
        try:
            close = None
            if self.driver.wait_for(sel.close_button, self.close_timeout):
                close = self.driver.query_one(sel.close_button)
            if close is not None:
                self.driver.click(close)
                logger.info(f"Closed provider info popup for provider #{index}")
                self.driver.settle(self.settle_timeout)
                return True
        except Exception as e:
            error = e

        log_crawl_event("popup_close_failed", {
            "message": f"Could not close provider info popup for provider #{index}"
                       + (f": {error}" if error else ""),
            "provider": index,
            "timeout": self.close_timeout,
            "error": str(error) if error else None,
        }, level=logging.WARNING)
        return False
