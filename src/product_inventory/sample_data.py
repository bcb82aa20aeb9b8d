"""Populate a store with demonstration data.

The sample tree covers every level of the hierarchy and includes a few
products below the default low-stock threshold, so searches, statistics and
reports have something to show on a fresh install.
"""

import logging
from typing import (
    Any,
    Dict,
    List,
)

from .store import DataStore


logger = logging.getLogger(__name__)


SAMPLE_DATA: List[Dict[str, Any]] = [
    {
        "name": "Electronics",
        "description": "Electronic devices and accessories",
        "subgroups": [
            {
                "name": "Laptops",
                "description": "Portable computers",
                "products": [
                    {
                        "code": "ELEC-001",
                        "name": "ThinkPad X1 Carbon",
                        "description": "14-inch business ultrabook",
                        "price": 1499.0,
                        "quantity": 7,
                    },
                    {
                        "code": "ELEC-002",
                        "name": "MacBook Air 13",
                        "description": "Lightweight laptop with M-series chip",
                        "price": 1099.0,
                        "quantity": 12,
                    },
                ],
            },
            {
                "name": "Accessories",
                "description": "Peripherals and cables",
                "products": [
                    {
                        "code": "ELEC-101",
                        "name": "Wireless Mouse",
                        "description": "Ergonomic wireless mouse with 6 buttons",
                        "price": 29.99,
                        "quantity": 35,
                    },
                    {
                        "code": "ELEC-102",
                        "name": "Mechanical Keyboard",
                        "description": "RGB mechanical keyboard",
                        "price": 129.99,
                        "quantity": 4,
                    },
                    {
                        "code": "ELEC-103",
                        "name": "USB-C Cable 6ft",
                        "description": "High-speed charging and data cable",
                        "price": 12.99,
                        "quantity": 80,
                    },
                ],
            },
        ],
    },
    {
        "name": "Beverages",
        "description": "Beverages and drinks",
        "subgroups": [
            {
                "name": "Coffee",
                "description": "Beans and ground coffee",
                "products": [
                    {
                        "code": "BEV-001",
                        "name": "Premium Coffee Beans",
                        "description": "Arabica coffee beans from Colombia",
                        "price": 12.99,
                        "quantity": 150,
                    },
                ],
            },
            {
                "name": "Tea",
                "description": "Loose leaf and bagged tea",
                "products": [
                    {
                        "code": "BEV-002",
                        "name": "Earl Grey Tea",
                        "description": "Black tea with bergamot",
                        "price": 8.99,
                        "quantity": 75,
                    },
                    {
                        "code": "BEV-006",
                        "name": "Green Tea Organic",
                        "description": "Organic green tea leaves",
                        "price": 7.99,
                        "quantity": 6,
                    },
                ],
            },
        ],
    },
    {
        "name": "Office Supplies",
        "description": "Office supplies and stationery",
        "subgroups": [
            {
                "name": "Paper",
                "description": "Copy paper and notebooks",
                "products": [
                    {
                        "code": "OFF-002",
                        "name": "Printer Paper Ream",
                        "description": "500 sheets, 8.5x11 inches",
                        "price": 9.99,
                        "quantity": 150,
                    },
                ],
            },
            {
                "name": "Writing",
                "description": "Pens and markers",
                "products": [
                    {
                        "code": "OFF-001",
                        "name": "Ballpoint Pens 12-Pack",
                        "description": "Black ink ballpoint pens",
                        "price": 8.99,
                        "quantity": 100,
                    },
                    {
                        "code": "OFF-007",
                        "name": "Highlighters 6-Pack",
                        "description": "Assorted fluorescent colors",
                        "price": 5.49,
                        "quantity": 0,
                    },
                ],
            },
        ],
    },
    {
        "name": "Books",
        "description": "Books and publications",
        "subgroups": [],
    },
]


def populate_sample_data(store: DataStore) -> Dict[str, int]:
    """Add the sample categories, subgroups and products to ``store``.

    Ids come from the store's counters, so this can be applied to a store
    that already holds data. A category that already exists under the same
    name is not merged: a second one is created next to it.

    Returns:
        {"categories": int, "subgroups": int, "products": int} added.
    """
    added = {"categories": 0, "subgroups": 0, "products": 0}

    for category_data in SAMPLE_DATA:
        category = store.new_category(category_data["name"], category_data["description"])
        added["categories"] += 1
        for subgroup_data in category_data["subgroups"]:
            subgroup = store.new_subgroup(category.id, subgroup_data["name"], subgroup_data["description"])
            added["subgroups"] += 1
            for product_data in subgroup_data["products"]:
                store.new_product(subgroup.id, **product_data)
                added["products"] += 1
        logger.debug("Seeded category %d (%s)", category.id, category.name)

    logger.info(
        "Added %d categories, %d subgroups and %d products of sample data",
        added["categories"],
        added["subgroups"],
        added["products"],
    )
    return added


def build_sample_store() -> DataStore:
    """A new store holding only the sample data."""
    store = DataStore()
    populate_sample_data(store)
    return store
