"""Command line interface for the product inventory.

Every invocation loads the data file, performs one operation and saves the
store again if the operation changed it. Settings come from ``PMS_*``
environment variables (or a ``.env`` file) and can be overridden by flags.
"""

import argparse
import logging
import sys
from typing import (
    Callable,
    Dict,
    List,
    Optional,
)

from .errors import InventoryError
from .queries import (
    SearchResult,
    find_low_stock,
    get_statistics,
    search_by_name,
    search_by_price_range,
    search_by_quantity_range,
)
from .reports import (
    render_products,
    render_statistics,
    render_store,
    write_report,
)
from .sample_data import populate_sample_data
from .settings import InventorySettings
from .store import DataStore
from .utils import configure_logging


logger = logging.getLogger(__name__)

Handler = Callable[[DataStore, argparse.Namespace, InventorySettings], None]


def _print_counts(deleted_counts: Dict[str, int]) -> None:
    summary = ", ".join(f"{key.replace('deleted_', '')}: {value}" for key, value in deleted_counts.items())
    print(f"Deleted ({summary})")


def _print_result(result: SearchResult, title: str) -> None:
    if not result.count:
        print(f"{title}: no products found.")
        return
    print(f"{title}: {result.count} product(s)")
    print("\n".join(render_products(result.products)))


# ==============================================================================
# Command handlers
# ==============================================================================
# pylint: disable=unused-argument


def cmd_show(store: DataStore, args: argparse.Namespace, settings: InventorySettings) -> None:
    print(render_store(store), end="")


def cmd_stats(store: DataStore, args: argparse.Namespace, settings: InventorySettings) -> None:
    print(render_statistics(get_statistics(store)), end="")


def cmd_search(store: DataStore, args: argparse.Namespace, settings: InventorySettings) -> None:
    if args.field == "name":
        _print_result(search_by_name(store, args.text), f"Name contains '{args.text}'")
    elif args.field == "price":
        _print_result(search_by_price_range(store, args.min, args.max), f"Price {args.min:.2f} to {args.max:.2f}")
    else:
        _print_result(search_by_quantity_range(store, args.min, args.max), f"Quantity {args.min} to {args.max}")


def cmd_low_stock(store: DataStore, args: argparse.Namespace, settings: InventorySettings) -> None:
    threshold = settings.low_stock_threshold if args.threshold is None else args.threshold
    _print_result(find_low_stock(store, threshold), f"Quantity below {threshold}")


def cmd_add_category(store: DataStore, args: argparse.Namespace, settings: InventorySettings) -> None:
    category = store.new_category(args.name, args.description)
    print(f"Added category {category.id}: {category.name}")


def cmd_add_subgroup(store: DataStore, args: argparse.Namespace, settings: InventorySettings) -> None:
    subgroup = store.new_subgroup(args.category_id, args.name, args.description)
    print(f"Added subgroup {subgroup.id}: {subgroup.name} (category {subgroup.category_id})")


def cmd_add_product(store: DataStore, args: argparse.Namespace, settings: InventorySettings) -> None:
    product = store.new_product(
        args.subgroup_id,
        args.code,
        args.name,
        description=args.description,
        price=args.price,
        quantity=args.quantity,
    )
    print(f"Added product {product.id}: {product.name} (subgroup {product.subgroup_id})")


def cmd_update_product(store: DataStore, args: argparse.Namespace, settings: InventorySettings) -> None:
    product = store.update_product(
        args.product_id,
        code=args.code,
        name=args.name,
        description=args.description,
        price=args.price,
        quantity=args.quantity,
    )
    print(f"Updated product {product.id}: {product.name}")


def cmd_remove_category(store: DataStore, args: argparse.Namespace, settings: InventorySettings) -> None:
    _print_counts(store.remove_category(args.category_id))


def cmd_remove_subgroup(store: DataStore, args: argparse.Namespace, settings: InventorySettings) -> None:
    _print_counts(store.remove_subgroup(args.subgroup_id))


def cmd_remove_product(store: DataStore, args: argparse.Namespace, settings: InventorySettings) -> None:
    _print_counts(store.remove_product(args.product_id))


def cmd_report(store: DataStore, args: argparse.Namespace, settings: InventorySettings) -> None:
    threshold = settings.low_stock_threshold if args.threshold is None else args.threshold
    path = write_report(store, args.output or settings.report_file, threshold)
    print(f"Report written to {path}")


def cmd_seed(store: DataStore, args: argparse.Namespace, settings: InventorySettings) -> None:
    added = populate_sample_data(store)
    print(
        f"Added sample data: {added['categories']} categories, "
        f"{added['subgroups']} subgroups, {added['products']} products"
    )


# ==============================================================================
# Argument parsing
# ==============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="product-inventory",
        description="Manage a Category > Subgroup > Product inventory stored in a binary data file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s seed
  %(prog)s show
  %(prog)s add-product 2 "USB Hub" --code ELEC-104 --price 24.99 --quantity 15
  %(prog)s search price 10 50
  %(prog)s --data-file /tmp/products.dat low-stock --threshold 5
        """,
    )
    parser.add_argument("--data-file", "-f", help="Binary data file (default: $PMS_DATA_FILE or data/products.dat)")
    parser.add_argument(
        "--backup-file", help="Backup of the previous data file (default: $PMS_BACKUP_FILE or data/products.bak)"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable informational logging")

    subparsers = parser.add_subparsers(dest="command", required=True, metavar="COMMAND")

    sub = subparsers.add_parser("show", help="Display all categories, subgroups and products")
    sub.set_defaults(handler=cmd_show)

    sub = subparsers.add_parser("stats", help="Show inventory statistics")
    sub.set_defaults(handler=cmd_stats)

    search = subparsers.add_parser("search", help="Search products")
    search_fields = search.add_subparsers(dest="field", required=True, metavar="FIELD")
    sub = search_fields.add_parser("name", help="Name contains TEXT (case-insensitive)")
    sub.add_argument("text")
    sub = search_fields.add_parser("price", help="Price between MIN and MAX (inclusive)")
    sub.add_argument("min", type=float)
    sub.add_argument("max", type=float)
    sub = search_fields.add_parser("quantity", help="Quantity between MIN and MAX (inclusive)")
    sub.add_argument("min", type=int)
    sub.add_argument("max", type=int)
    search.set_defaults(handler=cmd_search)

    sub = subparsers.add_parser("low-stock", help="List products below the low stock threshold")
    sub.add_argument("--threshold", "-t", type=int, help="Quantity threshold (default: $PMS_LOW_STOCK_THRESHOLD or 10)")
    sub.set_defaults(handler=cmd_low_stock)

    sub = subparsers.add_parser("add-category", help="Add a category")
    sub.add_argument("name")
    sub.add_argument("--description", "-d")
    sub.set_defaults(handler=cmd_add_category)

    sub = subparsers.add_parser("add-subgroup", help="Add a subgroup to a category")
    sub.add_argument("category_id", type=int)
    sub.add_argument("name")
    sub.add_argument("--description", "-d")
    sub.set_defaults(handler=cmd_add_subgroup)

    sub = subparsers.add_parser("add-product", help="Add a product to a subgroup")
    sub.add_argument("subgroup_id", type=int)
    sub.add_argument("name")
    sub.add_argument("--code", "-c")
    sub.add_argument("--description", "-d")
    sub.add_argument("--price", "-p", type=float, default=0.0)
    sub.add_argument("--quantity", "-q", type=int, default=0)
    sub.set_defaults(handler=cmd_add_product)

    sub = subparsers.add_parser("update-product", help="Update fields of a product")
    sub.add_argument("product_id", type=int)
    sub.add_argument("--code", "-c")
    sub.add_argument("--name", "-n")
    sub.add_argument("--description", "-d")
    sub.add_argument("--price", "-p", type=float)
    sub.add_argument("--quantity", "-q", type=int)
    sub.set_defaults(handler=cmd_update_product)

    sub = subparsers.add_parser("remove-category", help="Remove a category with its subgroups and products")
    sub.add_argument("category_id", type=int)
    sub.set_defaults(handler=cmd_remove_category)

    sub = subparsers.add_parser("remove-subgroup", help="Remove a subgroup with its products")
    sub.add_argument("subgroup_id", type=int)
    sub.set_defaults(handler=cmd_remove_subgroup)

    sub = subparsers.add_parser("remove-product", help="Remove a product")
    sub.add_argument("product_id", type=int)
    sub.set_defaults(handler=cmd_remove_product)

    sub = subparsers.add_parser("report", help="Write a text report")
    sub.add_argument("--output", "-o", help="Report file (default: $PMS_REPORT_FILE or data/report.txt)")
    sub.add_argument("--threshold", "-t", type=int, help="Low stock threshold for the report")
    sub.set_defaults(handler=cmd_report)

    sub = subparsers.add_parser("seed", help="Add sample categories, subgroups and products")
    sub.set_defaults(handler=cmd_seed)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Run one command and return the process exit code.

    Returns:
        0 on success, 1 if the operation failed. Usage errors exit with 2 from argparse.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = InventorySettings.from_env()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    configure_logging(name="product_inventory", level="INFO" if args.verbose else settings.log_level)

    data_file = args.data_file or settings.data_file
    backup_file = args.backup_file or settings.backup_file
    handler: Handler = args.handler

    store = DataStore()
    try:
        store.load(data_file)
        handler(store, args, settings)
        if store.is_modified:
            store.save(data_file, backup_file)
            print(f"Saved to {data_file}")
    except (InventoryError, ValueError) as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        store.clear()

    return 0


if __name__ == "__main__":
    sys.exit(main())
