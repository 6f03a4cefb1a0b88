"""Append-only CSV record store for discovered products and variants."""

import csv
import os
from collections import Counter
from pathlib import Path
from typing import Any, Dict, List, Set, Union

from crawl.config import CSV_FIELDNAMES, CSV_PATH
from crawl.logging_config import get_logger
from crawl.models import ProductRecord, VariantRecord

__all__ = ["RecordStore"]

logger = get_logger("store")


class RecordStore:
    """Durable table of product and variant rows backed by a CSV file.

    Rows are only ever appended. Every append is flushed and fsynced before
    the call returns so the in-memory seen set never runs ahead of the disk.
    """

    def __init__(self, path: Union[str, Path] = CSV_PATH) -> None:
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists() and self.path.stat().st_size > 0

    def ensure_initialized(self) -> None:
        """Create the file with its header row if it is missing or empty."""
        if self.exists():
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", newline="", encoding="utf-8") as f:
            csv.writer(f, lineterminator="\n").writerow(CSV_FIELDNAMES)
            f.flush()
            os.fsync(f.fileno())
        logger.info(f"Created record store: {self.path}")

    def load_seen_urls(self) -> Set[str]:
        """Return every product URL present in the store, stub or variant row."""
        return {record.url for record in self.read_all_product_records() if record.url}

    def append_product_stub(self, record: ProductRecord) -> None:
        self._append_row([record.category, record.product_name, record.url, "", ""])

    def append_variant(self, record: VariantRecord) -> None:
        self._append_row([record.category, record.product_name, record.url, record.size, record.price])

    def read_all_product_records(self) -> List[ProductRecord]:
        """Read all rows in file order. Duplicate URLs are kept."""
        if not self.path.exists():
            return []

        with open(self.path, "r", newline="", encoding="utf-8") as f:
            reader = csv.DictReader(f)
            return [
                ProductRecord(
                    category=row.get("Category") or "",
                    product_name=row.get("Product Name") or "",
                    url=row.get("Product URL") or "",
                    size=row.get("Size") or "",
                    price=row.get("Price") or "",
                )
                for row in reader
            ]

    def summarize(self) -> Dict[str, Any]:
        """Row counts for reporting."""
        records = self.read_all_product_records()
        stubs = [r for r in records if not r.is_variant]
        variants = [r for r in records if r.is_variant]
        urls_with_variants = {r.url for r in variants}

        return {
            "path": str(self.path),
            "total_rows": len(records),
            "product_rows": len(stubs),
            "variant_rows": len(variants),
            "distinct_urls": len({r.url for r in records if r.url}),
            "products_without_variants": len({r.url for r in stubs if r.url not in urls_with_variants}),
            "products_by_category": dict(Counter(r.category for r in stubs)),
        }

    def _append_row(self, fields: List[str]) -> None:
        with open(self.path, "a", newline="", encoding="utf-8") as f:
            csv.writer(f, quoting=csv.QUOTE_ALL, lineterminator="\n").writerow(fields)
            f.flush()
            os.fsync(f.fileno())
