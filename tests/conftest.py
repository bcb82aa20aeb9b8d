"""Shared fixtures for the product inventory tests."""

from pathlib import Path

import pytest

from product_inventory import DataStore


@pytest.fixture
def store() -> DataStore:
    """An empty store."""
    return DataStore()


@pytest.fixture
def populated_store() -> DataStore:
    """A small tree with two categories, three subgroups and four products.

    Electronics (1)
        Laptops (1): ThinkPad X1 (1, qty 3), MacBook Air (2, qty 12)
        Phones (2):  Pixel 8 (3, qty 0)
    Office (2)
        Paper (3):   Printer Paper (4, qty 150)
    """
    store = DataStore()
    electronics = store.new_category("Electronics", "Devices and accessories")
    office = store.new_category("Office", "Office supplies")

    laptops = store.new_subgroup(electronics.id, "Laptops", "Portable computers")
    phones = store.new_subgroup(electronics.id, "Phones")
    paper = store.new_subgroup(office.id, "Paper", "Copy paper")

    store.new_product(laptops.id, "LAP-001", "ThinkPad X1", "Business ultrabook", price=999.0, quantity=3)
    store.new_product(laptops.id, "LAP-002", "MacBook Air", price=1099.0, quantity=12)
    store.new_product(phones.id, "PHN-001", "Pixel 8", price=699.0, quantity=0)
    store.new_product(paper.id, None, "Printer Paper", "500 sheets", price=9.99, quantity=150)
    return store


@pytest.fixture
def data_file(tmp_path: Path) -> Path:
    return tmp_path / "data" / "products.dat"


@pytest.fixture
def backup_file(tmp_path: Path) -> Path:
    return tmp_path / "data" / "products.bak"
