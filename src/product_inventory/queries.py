"""Read-only searches and statistics over a ``DataStore``.

Search results hold deep copies of the matching products. They are detached
from the live tree, so later mutations of the store do not affect a result
and changing a result does not affect the store.
"""

from typing import (
    Callable,
    List,
)

from pydantic import (
    BaseModel,
    Field,
)

from .models import Product
from .store import DataStore


LOW_STOCK_THRESHOLD = 10


class SearchResult(BaseModel):
    """Detached copies of the products that matched a search, in tree order."""

    products: List[Product] = Field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.products)

    def __len__(self) -> int:
        return len(self.products)

    @property
    def ids(self) -> List[int]:
        return [product.id for product in self.products]


class InventoryStatistics(BaseModel):
    """Aggregate counts and values for the whole store."""

    total_categories: int = 0
    total_subgroups: int = 0
    total_products: int = 0
    total_quantity: int = 0
    total_value: float = 0.0
    average_price: float = 0.0


def _collect(store: DataStore, predicate: Callable[[Product], bool]) -> SearchResult:
    return SearchResult(
        products=[product.model_copy(deep=True) for product in store.iter_products() if predicate(product)]
    )


def search_by_name(store: DataStore, text: str) -> SearchResult:
    """Products whose name contains ``text``, case-insensitively. An empty string matches every product."""
    needle = text.casefold()
    return _collect(store, lambda product: needle in product.name.casefold())


def search_by_price_range(store: DataStore, min_price: float, max_price: float) -> SearchResult:
    """Products with ``min_price <= price <= max_price``.

    Raises:
        ValueError: If ``min_price`` is greater than ``max_price``.
    """
    if min_price > max_price:
        raise ValueError(f"Minimum price {min_price} is greater than maximum price {max_price}")
    return _collect(store, lambda product: min_price <= product.price <= max_price)


def search_by_quantity_range(store: DataStore, min_quantity: int, max_quantity: int) -> SearchResult:
    """Products with ``min_quantity <= quantity <= max_quantity``.

    Raises:
        ValueError: If ``min_quantity`` is greater than ``max_quantity``.
    """
    if min_quantity > max_quantity:
        raise ValueError(f"Minimum quantity {min_quantity} is greater than maximum quantity {max_quantity}")
    return _collect(store, lambda product: min_quantity <= product.quantity <= max_quantity)


def find_low_stock(store: DataStore, threshold: int = LOW_STOCK_THRESHOLD) -> SearchResult:
    """Products with fewer than ``threshold`` units in stock."""
    if threshold < 0:
        raise ValueError("Low stock threshold cannot be negative")
    return _collect(store, lambda product: product.quantity < threshold)


def get_statistics(store: DataStore) -> InventoryStatistics:
    """Totals over the whole tree in a single traversal.

    ``average_price`` is the plain mean of unit prices (not weighted by
    quantity) and is 0 when the store holds no products.
    """
    stats = InventoryStatistics(total_categories=store.category_count)
    price_sum = 0.0

    for category in store.categories:
        stats.total_subgroups += category.subgroup_count
        for subgroup in category.subgroups:
            stats.total_products += subgroup.product_count
            for product in subgroup.products:
                stats.total_quantity += product.quantity
                stats.total_value += product.total_value
                price_sum += product.price

    if stats.total_products > 0:
        stats.average_price = price_sum / stats.total_products
    return stats
