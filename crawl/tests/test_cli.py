"""Tests for CLI argument parsing and the stats command."""

import pytest

from crawl.cli import main, parse_args
from crawl.config import CSV_PATH, MAX_PAGES_PER_CATEGORY
from crawl.models import ProductRecord, VariantRecord


def test_defaults():
    args = parse_args([])

    assert args.csv == CSV_PATH
    assert args.categories is None
    assert args.max_pages == MAX_PAGES_PER_CATEGORY
    assert not args.skip_resume_pass
    assert not args.resume_only
    assert not args.resume_records_variants


def test_category_names_and_limits():
    args = parse_args(["--categories", "Mugs", "Posters", "--max-pages", "3", "--csv", "out.csv"])

    assert args.categories == ["Mugs", "Posters"]
    assert args.max_pages == 3
    assert args.csv == "out.csv"


def test_pass_selection_flags_are_exclusive():
    with pytest.raises(SystemExit):
        parse_args(["--skip-resume-pass", "--resume-only"])


def test_stats_for_missing_store(tmp_path, capsys):
    path = tmp_path / "absent.csv"

    assert main(["--stats", "--csv", str(path)]) == 0
    assert "No record store" in capsys.readouterr().out


def test_stats_summary(store, capsys):
    url = "https://printify.com/app/product-details/1"
    store.append_product_stub(ProductRecord("Mugs", "Mug", url))
    store.append_variant(VariantRecord("Mugs", "Mug", url, "11oz", "$4.50"))

    assert main(["--stats", "--csv", str(store.path)]) == 0

    out = capsys.readouterr().out
    assert "Total rows: 2" in out
    assert "Variant rows: 1" in out
    assert "Mugs: 1" in out
