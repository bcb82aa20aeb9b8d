"""Hierarchical product inventory with binary file persistence.

Categories own subgroups, subgroups own products. A ``DataStore`` holds the
tree and assigns ids; ``save``/``load`` persist it in a fixed-width binary
format.

Example:
    >>> from product_inventory import DataStore, get_statistics
    >>> store = DataStore()
    >>> electronics = store.new_category("Electronics")
    >>> laptops = store.new_subgroup(electronics.id, "Laptops")
    >>> x1 = store.new_product(laptops.id, "X1", "ThinkPad X1", price=999.0, quantity=3)
    >>> get_statistics(store).total_value
    2997.0
"""

from .codec import (
    decode_store,
    encode_store,
)
from .collection import EntityCollection
from .errors import (
    CapacityError,
    CorruptDataError,
    DuplicateEntityError,
    EntityNotFoundError,
    InvalidEntityError,
    InventoryError,
    StorageError,
)
from .models import (
    Category,
    Product,
    Subgroup,
)
from .queries import (
    InventoryStatistics,
    SearchResult,
    find_low_stock,
    get_statistics,
    search_by_name,
    search_by_price_range,
    search_by_quantity_range,
)
from .reports import (
    render_statistics,
    render_store,
    write_report,
)
from .settings import InventorySettings
from .storage import (
    load_store,
    save_store,
)
from .store import DataStore
from .utils import configure_logging


__version__ = "0.1.0"

__all__ = [
    "CapacityError",
    "Category",
    "CorruptDataError",
    "DataStore",
    "DuplicateEntityError",
    "EntityCollection",
    "EntityNotFoundError",
    "InvalidEntityError",
    "InventoryError",
    "InventorySettings",
    "InventoryStatistics",
    "Product",
    "SearchResult",
    "StorageError",
    "Subgroup",
    "configure_logging",
    "decode_store",
    "encode_store",
    "find_low_stock",
    "get_statistics",
    "load_store",
    "render_statistics",
    "render_store",
    "save_store",
    "search_by_name",
    "search_by_price_range",
    "search_by_quantity_range",
    "write_report",
]
