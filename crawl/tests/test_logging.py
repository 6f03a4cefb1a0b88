"""Tests for the JSONL run log."""

import json
import logging

import pytest

from crawl.logging_config import get_logger, log_crawl_event, setup_logging


@pytest.fixture
def log_dir(tmp_path):
    directory = tmp_path / "logs"
    yield directory
    logger = logging.getLogger("crawl")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def read_entries(log_dir):
    (log_file,) = log_dir.glob("crawl_*.jsonl")
    return [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]


def test_event_fields_are_flattened_into_entry(log_dir):
    run_id = setup_logging(log_to_console=False, log_dir=log_dir, run_id="run-1")

    log_crawl_event("variant", {
        "message": "[Variant] 11oz -> $4.50 (provider #1)",
        "size": "11oz",
        "price": "$4.50",
    }, logger_name="product")

    (entry,) = read_entries(log_dir)
    assert run_id == "run-1"
    assert entry["run_id"] == "run-1"
    assert entry["event_type"] == "variant"
    assert entry["logger"] == "crawl.product"
    assert entry["message"] == "[Variant] 11oz -> $4.50 (provider #1)"
    assert (entry["size"], entry["price"]) == ("11oz", "$4.50")


def test_plain_records_and_debug_reach_the_file(log_dir):
    setup_logging(level=logging.WARNING, log_to_console=False, log_dir=log_dir)

    get_logger("scraper").debug("Moving to page 2")

    (entry,) = read_entries(log_dir)
    assert entry["level"] == "DEBUG"
    assert entry["event_type"] is None


def test_exceptions_are_recorded(log_dir):
    setup_logging(log_to_console=False, log_dir=log_dir)

    try:
        raise ValueError("listing did not render")
    except ValueError:
        get_logger("workflows").exception("Error processing category Mugs")

    (entry,) = read_entries(log_dir)
    assert "ValueError: listing did not render" in entry["exception"]
