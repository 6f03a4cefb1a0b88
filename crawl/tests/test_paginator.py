"""Tests for listing extraction and category pagination."""

import pytest

from crawl.models import Category
from crawl.product import ProductDetailWorkflow
from crawl.scraper import CategoryPaginator, extract_products_from_page
from crawl.tests.fakes import FakeNavigationError, absolute

MUGS_HREF = "/app/products/mugs"
MUGS = Category("Mugs", absolute(MUGS_HREF))


def product_href(slug: str) -> str:
    return f"/app/product-details/{slug}"


def make_paginator(driver, store, seen=None, **kwargs) -> CategoryPaginator:
    kwargs.setdefault("should_stop", lambda: False)
    return CategoryPaginator(
        driver,
        store,
        seen if seen is not None else set(),
        ProductDetailWorkflow(driver, store),
        **kwargs,
    )


def product_visits(driver):
    return [url for url in driver.visits if "/app/product-details/" in url]


def test_extract_products_scrolls_then_reads(site, driver):
    site.add_category("Mugs", MUGS_HREF, [[("A", product_href("a")), ("B", product_href("b"))]])
    driver.goto(MUGS.listing_url)

    stubs = extract_products_from_page(driver, "Mugs")

    assert driver.scrolls == 1
    assert [(s.product_name, s.url) for s in stubs] == [
        ("A", absolute(product_href("a"))),
        ("B", absolute(product_href("b"))),
    ]


class TestNewProducts:
    def test_only_unseen_products_are_written_and_visited(self, site, driver, store):
        site.add_category("Mugs", MUGS_HREF, [
            [("A", product_href("a")), ("B", product_href("b"))],
            [("C", product_href("c"))],
        ])
        seen = {absolute(product_href("a"))}

        result = make_paginator(driver, store, seen).run(MUGS)

        assert product_visits(driver) == [absolute(product_href("b")), absolute(product_href("c"))]
        assert [r.product_name for r in store.read_all_product_records()] == ["B", "C"]
        assert result.pages_visited == 2
        assert result.new_products == 2
        assert result.status == "complete"
        assert seen == {absolute(product_href(s)) for s in "abc"}

    def test_stub_row_written_before_visit(self, site, driver, store):
        site.add_category("Mugs", MUGS_HREF, [[("B", product_href("b"))]])
        paginator = make_paginator(driver, store)
        rows_at_visit = []

        def workflow_run(stub):
            rows_at_visit.append([r.url for r in store.read_all_product_records()])

        paginator.workflow.run = workflow_run
        paginator.run(MUGS)

        assert rows_at_visit == [[absolute(product_href("b"))]]

    def test_stubs_without_url_are_skipped(self, site, driver, store):
        site.add_category("Mugs", MUGS_HREF, [[("No link", None), ("B", product_href("b"))]])

        result = make_paginator(driver, store).run(MUGS)

        assert result.new_products == 1
        assert [r.product_name for r in store.read_all_product_records()] == ["B"]

    def test_duplicate_url_on_same_page_is_visited_once(self, site, driver, store):
        site.add_category("Mugs", MUGS_HREF, [[("B", product_href("b")), ("B again", product_href("b"))]])

        result = make_paginator(driver, store).run(MUGS)

        assert result.new_products == 1
        assert len(product_visits(driver)) == 1


class TestPagination:
    def test_stops_after_last_page(self, site, driver, store):
        site.add_category("Mugs", MUGS_HREF, [
            [("A", product_href("a"))],
            [("B", product_href("b"))],
            [("C", product_href("c"))],
        ])
        seen = {absolute(product_href(s)) for s in "abc"}

        result = make_paginator(driver, store, seen).run(MUGS)

        assert result.pages_visited == 3
        assert result.status == "complete"
        assert driver.clicks == ["next", "next"]
        assert driver.visits == [MUGS.listing_url]

    def test_single_page_category(self, site, driver, store):
        site.add_category("Mugs", MUGS_HREF, [[]])

        result = make_paginator(driver, store).run(MUGS)

        assert result.pages_visited == 1
        assert driver.clicks == []

    def test_returns_to_current_page_after_each_visit(self, site, driver, store):
        site.add_category("Mugs", MUGS_HREF, [
            [("A", product_href("a"))],
            [("X", product_href("x")), ("Y", product_href("y"))],
        ])
        seen = {absolute(product_href("a"))}

        result = make_paginator(driver, store, seen).run(MUGS)

        # One click to reach page 2, then one per return to page 2
        assert driver.clicks == ["next", "next", "next"]
        assert driver.visits == [
            MUGS.listing_url,
            absolute(product_href("x")),
            MUGS.listing_url,
            absolute(product_href("y")),
            MUGS.listing_url,
        ]
        assert driver.listing_page == 1
        assert result.pages_visited == 2

    def test_last_page_without_any_next_control(self, site, driver, store):
        site.add_category("Mugs", MUGS_HREF, [[("A", product_href("a"))], [("B", product_href("b"))]])
        site.bare_last_page = True
        seen = {absolute(product_href("a")), absolute(product_href("b"))}

        result = make_paginator(driver, store, seen).run(MUGS)

        assert result.status == "complete"
        assert result.pages_visited == 2
        assert driver.clicks == ["next"]

    def test_page_limit(self, site, driver, store):
        site.add_category("Mugs", MUGS_HREF, [[], [], [], []])

        result = make_paginator(driver, store, max_pages=2).run(MUGS)

        assert result.pages_visited == 2
        assert result.status == "page_limit"


class TestFailures:
    def test_product_failure_does_not_stop_category(self, site, driver, store):
        site.add_category("Mugs", MUGS_HREF, [
            [("A", product_href("a")), ("B", product_href("b")), ("C", product_href("c"))],
        ])
        site.failing_urls.add(absolute(product_href("b")))

        result = make_paginator(driver, store).run(MUGS)

        assert result.status == "complete"
        assert result.new_products == 3
        assert result.failed_products == 1
        assert product_visits(driver) == [absolute(product_href(s)) for s in "abc"]
        assert [r.product_name for r in store.read_all_product_records()] == ["A", "B", "C"]

    def test_broken_listing_page_ends_category(self, site, driver, store):
        site.add_category("Mugs", MUGS_HREF, [
            [("A", product_href("a"))],
            [("B", product_href("b"))],
            [("C", product_href("c"))],
        ])
        site.broken_listings.add((MUGS.listing_url, 1))

        result = make_paginator(driver, store).run(MUGS)

        assert result.status == "failed"
        assert result.pages_visited == 2
        assert [r.product_name for r in store.read_all_product_records()] == ["A"]

    def test_category_load_failure_propagates(self, site, driver, store):
        site.add_category("Mugs", MUGS_HREF, [[("A", product_href("a"))]])
        site.failing_urls.add(MUGS.listing_url)

        with pytest.raises(FakeNavigationError):
            make_paginator(driver, store).run(MUGS)


class TestShutdown:
    def test_stop_before_first_product(self, site, driver, store):
        site.add_category("Mugs", MUGS_HREF, [[("A", product_href("a"))], [("B", product_href("b"))]])

        result = make_paginator(driver, store, should_stop=lambda: True).run(MUGS)

        assert result.status == "interrupted"
        assert store.read_all_product_records() == []
        assert product_visits(driver) == []

    def test_stop_between_products(self, site, driver, store):
        site.add_category("Mugs", MUGS_HREF, [[("A", product_href("a")), ("B", product_href("b"))]])

        def stop_after_first():
            return len(store.read_all_product_records()) >= 1

        result = make_paginator(driver, store, should_stop=stop_after_first).run(MUGS)

        assert result.status == "interrupted"
        assert result.new_products == 1
        assert product_visits(driver) == [absolute(product_href("a"))]
