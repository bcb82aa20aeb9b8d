"""Plain-text views of the inventory tree.

``render_store`` is the read-only "display all" traversal. ``write_report``
combines statistics, low-stock products and the full tree into a text file.
"""

import logging
from pathlib import Path
from typing import (
    Iterable,
    List,
    Optional,
    Union,
)

from .errors import StorageError
from .models import (
    Category,
    Product,
    format_timestamp,
    now,
)
from .queries import (
    LOW_STOCK_THRESHOLD,
    InventoryStatistics,
    find_low_stock,
    get_statistics,
)
from .storage import atomic_write_bytes
from .store import DataStore


logger = logging.getLogger(__name__)

DEFAULT_REPORT_FILE = Path("data") / "report.txt"

_PRODUCT_ROW = "{id:>6}  {subgroup_id:>6}  {code:<10}  {name:<24}  {price:>12}  {quantity:>8}"
_SUBGROUP_ROW = "{id:>6}  {name:<36}  {products:>8}"


def _clip(text: str, width: int) -> str:
    return text if len(text) <= width else text[: width - 3] + "..."


def render_products(products: Iterable[Product], indent: str = "  ") -> List[str]:
    """Table rows for ``products`` (header included)."""
    header = _PRODUCT_ROW.format(
        id="ID", subgroup_id="Sub ID", code="Code", name="Name", price="Price", quantity="Quantity"
    )
    lines = [indent + header, indent + "-" * len(header)]
    for product in products:
        lines.append(
            indent
            + _PRODUCT_ROW.format(
                id=product.id,
                subgroup_id=product.subgroup_id,
                code=_clip(product.code, 10),
                name=_clip(product.name, 24),
                price=f"${product.price:,.2f}",
                quantity=product.quantity,
            )
        )
    return lines


def render_category(category: Category) -> List[str]:
    lines = [
        f"Category {category.id}: {category.name}",
        f"  Description: {category.description or '-'}",
        f"  Subgroups:   {category.subgroup_count} (capacity {category.subgroups.capacity})",
    ]
    if not category.subgroup_count:
        return lines

    header = _SUBGROUP_ROW.format(id="ID", name="Subgroup", products="Products")
    lines.extend(["", "  " + header, "  " + "-" * len(header)])
    for subgroup in category.subgroups:
        row = _SUBGROUP_ROW.format(id=subgroup.id, name=_clip(subgroup.name, 36), products=subgroup.product_count)
        lines.append("  " + row)

    for subgroup in category.subgroups:
        if subgroup.product_count:
            lines.extend(["", f"  Products in '{subgroup.name}' (subgroup {subgroup.id}):"])
            lines.extend(render_products(subgroup.products, indent="    "))
    return lines


def render_store(store: DataStore) -> str:
    """Hierarchical view of every category, subgroup and product."""
    lines = ["ALL DATA - HIERARCHICAL VIEW", ""]
    if not store.category_count:
        lines.append("No data available.")
        return "\n".join(lines) + "\n"

    last_saved = format_timestamp(store.last_saved) if store.last_saved else "Never"
    lines.extend(
        [
            f"Total Categories: {store.category_count}",
            f"Last Saved: {last_saved}",
            f"Modified: {'Yes' if store.is_modified else 'No'}",
        ]
    )
    for category in store.categories:
        lines.append("")
        lines.extend(render_category(category))
    return "\n".join(lines) + "\n"


def render_statistics(stats: InventoryStatistics) -> str:
    return "\n".join(
        [
            "INVENTORY STATISTICS",
            f"  Total categories: {stats.total_categories}",
            f"  Total subgroups:  {stats.total_subgroups}",
            f"  Total products:   {stats.total_products}",
            f"  Total quantity:   {stats.total_quantity}",
            f"  Total value:      ${stats.total_value:,.2f}",
            f"  Average price:    ${stats.average_price:,.2f}",
        ]
    ) + "\n"


def build_report(store: DataStore, low_stock_threshold: int = LOW_STOCK_THRESHOLD) -> str:
    low_stock = find_low_stock(store, low_stock_threshold)
    sections = [
        f"PRODUCT MANAGEMENT SYSTEM REPORT - generated {format_timestamp(now())}",
        "",
        render_statistics(get_statistics(store)),
        f"LOW STOCK (quantity below {low_stock_threshold}): {low_stock.count} product(s)",
    ]
    if low_stock.count:
        sections.append("\n".join(render_products(low_stock.products)))
    sections.extend(["", render_store(store)])
    return "\n".join(sections)


def write_report(
    store: DataStore,
    path: Optional[Union[str, Path]] = None,
    low_stock_threshold: int = LOW_STOCK_THRESHOLD,
) -> Path:
    """Write the text report to ``path`` (``data/report.txt`` by default).

    Raises:
        StorageError: If the report cannot be written.
    """
    target = Path(path) if path is not None else DEFAULT_REPORT_FILE
    try:
        atomic_write_bytes(target, build_report(store, low_stock_threshold).encode("utf-8"))
    except OSError as e:
        logger.error("Error writing report to %s: %s", target, e)
        raise StorageError(f"Cannot write report to {target}: {e}") from e
    logger.info("Wrote report to %s", target)
    return target
