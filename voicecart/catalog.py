"""
Read-only product catalog.

Lookups are plain substring searches in catalog order.
"""

import re
from typing import Iterable, Optional

from .models import Product

DEFAULT_PRODUCTS = (
    Product(id=1, name="Wireless Earbuds", price=49.99, category="electronics"),
    Product(id=2, name="Coffee Maker", price=79.99, category="home"),
    Product(id=3, name="Running Shoes", price=89.99, category="sports"),
    Product(id=4, name="Desk Lamp", price=34.99, category="home"),
    Product(id=5, name="Water Bottle", price=19.99, category="sports"),
)

# Name words shorter than this are ignored for partial matches
MIN_TOKEN_LENGTH = 3


class Catalog:
    """In-memory catalog of immutable products."""

    def __init__(self, products: Optional[Iterable[Product]] = None):
        self._products = tuple(products if products is not None else DEFAULT_PRODUCTS)

    @property
    def products(self) -> tuple:
        return self._products

    @property
    def categories(self) -> list[str]:
        """Distinct categories in catalog order."""
        seen = []
        for product in self._products:
            if product.category not in seen:
                seen.append(product.category)
        return seen

    def get(self, product_id: int) -> Optional[Product]:
        for product in self._products:
            if product.id == product_id:
                return product
        return None

    def by_category(self, category: Optional[str] = None) -> list[Product]:
        """Products in a category, or every product when category is None."""
        if category is None:
            return list(self._products)
        category = category.lower()
        return [p for p in self._products if p.category == category]

    def find_category(self, text: str) -> Optional[str]:
        """Return the first category mentioned in text."""
        text_lower = text.lower()
        for category in self.categories:
            if category in text_lower:
                return category
        return None

    def find_product(self, query: str) -> Optional[Product]:
        """
        Resolve a spoken product reference.

        A product matches when its full name appears in the query; failing
        that, when any word of its name appears as a word in the query
        (plural "s" tolerated). First match by catalog order wins.
        """
        query_lower = query.lower().strip()
        if not query_lower:
            return None

        for product in self._products:
            if product.name.lower() in query_lower:
                return product

        words = set(re.findall(r"[a-z0-9']+", query_lower))
        words |= {w[:-1] for w in words if w.endswith("s")}
        for product in self._products:
            for token in product.name.lower().split():
                if len(token) >= MIN_TOKEN_LENGTH and (
                    token in words or token.rstrip("s") in words
                ):
                    return product
        return None
