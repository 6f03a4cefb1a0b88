"""Data models for categories, products and variants."""

from dataclasses import dataclass, field
from typing import Dict, List

__all__ = [
    "Category",
    "ProductStub",
    "ProductRecord",
    "VariantRecord",
    "CategoryResult",
    "DetailResult",
    "CrawlSummary",
]


@dataclass(frozen=True)
class Category:
    """A catalog category found in the navigation menu.

    Identity is the listing URL; two menu entries pointing at the same URL
    are the same category.
    """

    name: str
    listing_url: str


@dataclass
class ProductStub:
    """A product reference as seen on a listing page, before detail extraction."""

    category: str
    product_name: str
    url: str

    def to_record(self) -> "ProductRecord":
        return ProductRecord(category=self.category, product_name=self.product_name, url=self.url)


@dataclass
class ProductRecord:
    """One row of the record store.

    Stub rows leave size and price empty; rows written for a harvested
    variant carry both.
    """

    category: str
    product_name: str
    url: str
    size: str = ""
    price: str = ""

    @property
    def is_variant(self) -> bool:
        # Harvesting never writes a variant row with both cells empty
        return bool(self.size or self.price)


@dataclass
class VariantRecord:
    """One (size, price) pair under a provider for a product."""

    category: str
    product_name: str
    url: str
    size: str
    price: str


@dataclass
class CategoryResult:
    category: Category
    pages_visited: int = 0
    new_products: int = 0
    failed_products: int = 0
    # complete | failed | interrupted | page_limit
    status: str = "complete"


@dataclass
class DetailResult:
    url: str
    configured: bool = False
    providers: int = 0
    variants_recorded: int = 0
    unclosed_popups: int = 0


@dataclass
class CrawlSummary:
    categories_found: int = 0
    categories_failed: int = 0
    new_products: int = 0
    resume_rows_visited: int = 0
    resume_rows_failed: int = 0
    interrupted: bool = False
    category_results: List[CategoryResult] = field(default_factory=list)

    def as_dict(self) -> Dict[str, object]:
        return {
            "categories_found": self.categories_found,
            "categories_failed": self.categories_failed,
            "new_products": self.new_products,
            "resume_rows_visited": self.resume_rows_visited,
            "resume_rows_failed": self.resume_rows_failed,
            "interrupted": self.interrupted,
        }
