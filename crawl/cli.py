"""Command-line interface for the catalog crawler."""

import argparse
import logging
import sys
from typing import List, Optional

from crawl.config import CSV_PATH, HEADLESS, MAX_PAGES_PER_CATEGORY
from crawl.driver import open_browser
from crawl.logging_config import get_logger, setup_logging
from crawl.shutdown import get_shutdown_handler
from crawl.store import RecordStore
from crawl.workflows import CrawlOrchestrator

__all__ = ["main", "parse_args", "show_stats"]

logger = get_logger("cli")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Resumable Printify catalog crawler (categories, products, provider sizes and prices)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Full run: discover categories, record new products, then the resume pass
  python -m crawl.cli

  # Only the Mugs and Posters categories, no resume pass, visible browser
  python -m crawl.cli --categories Mugs Posters --skip-resume-pass --headed

  # Retry variant extraction for products that have no variant rows yet
  python -m crawl.cli --resume-only --resume-records-variants

  # Show record store statistics
  python -m crawl.cli --stats
        """,
    )

    parser.add_argument(
        "--csv",
        default=CSV_PATH,
        help=f"Record store CSV path (default: {CSV_PATH})",
    )
    parser.add_argument(
        "--categories",
        nargs="+",
        metavar="NAME",
        help="Only crawl categories with these menu names (default: all)",
    )
    parser.add_argument(
        "--max-pages",
        type=int,
        default=MAX_PAGES_PER_CATEGORY,
        help=f"Safety limit on listing pages per category (default: {MAX_PAGES_PER_CATEGORY})",
    )
    parser.add_argument(
        "--headed",
        action="store_true",
        default=not HEADLESS,
        help="Show the browser window",
    )

    passes = parser.add_mutually_exclusive_group()
    passes.add_argument(
        "--skip-resume-pass",
        action="store_true",
        help="Stop after the discovery pass",
    )
    passes.add_argument(
        "--resume-only",
        action="store_true",
        help="Skip discovery and only run the resume pass over stored rows",
    )
    parser.add_argument(
        "--resume-records-variants",
        action="store_true",
        help="Resume pass harvests variants for stored products that have none, "
             "instead of only revisiting every row",
    )

    parser.add_argument(
        "--stats",
        action="store_true",
        help="Show record store statistics and exit",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Console log level (default: INFO)",
    )
    parser.add_argument(
        "--no-log-file",
        action="store_true",
        help="Don't write the JSONL log file",
    )

    return parser.parse_args(argv)


def show_stats(csv_path: str) -> None:
    """Print record store statistics."""
    store = RecordStore(csv_path)
    if not store.exists():
        print(f"No record store at {csv_path}")
        return

    stats = store.summarize()
    print(f"\n{'='*50}")
    print(f"Record store: {stats['path']}")
    print(f"{'='*50}")
    print(f"\nTotal rows: {stats['total_rows']}")
    print(f"  Product rows: {stats['product_rows']}")
    print(f"  Variant rows: {stats['variant_rows']}")
    print(f"Distinct product URLs: {stats['distinct_urls']}")
    print(f"Products without variants: {stats['products_without_variants']}")

    print("\nProducts by category:")
    for category, count in sorted(stats["products_by_category"].items()):
        print(f"  {category}: {count}")
    print()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI. Returns the process exit code."""
    args = parse_args(argv)

    if args.stats:
        show_stats(args.csv)
        return 0

    run_id = setup_logging(level=getattr(logging, args.log_level), log_to_file=not args.no_log_file)
    logger.info(f"Starting crawl run {run_id} -> {args.csv}")

    orchestrator = CrawlOrchestrator(
        RecordStore(args.csv),
        driver_factory=lambda: open_browser(headless=not args.headed),
        category_names=args.categories,
        max_pages=max(1, args.max_pages),
        run_discovery=not args.resume_only,
        run_resume=not args.skip_resume_pass,
        resume_records_variants=args.resume_records_variants,
    )

    try:
        with get_shutdown_handler():
            summary = orchestrator.run()
    except KeyboardInterrupt:
        logger.warning("Crawl interrupted")
        return 130
    except Exception as e:
        logger.exception(f"Error during crawl: {e}")
        return 1

    print(f"\nRecords saved to: {args.csv}")
    print(f"New products this run: {summary.new_products}")
    if summary.categories_failed:
        print(f"Categories with errors: {summary.categories_failed}")
    if summary.interrupted:
        print("Run was interrupted; start it again to continue where it stopped.")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
