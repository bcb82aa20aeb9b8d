"""Root aggregate of the inventory tree.

A ``DataStore`` exclusively owns its categories, each category owns its
subgroups and each subgroup owns its products. Ids of every kind are assigned
from monotonic counters kept here and are never reused within the lifetime of
a store, even after deletions.

There is no module-level store instance: construct one, pass it to whatever
needs it, and call ``clear()`` when done with it.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import (
    Any,
    Dict,
    Iterable,
    Iterator,
    Optional,
    Set,
    Tuple,
    Union,
)

from .collection import EntityCollection
from .errors import (
    DuplicateEntityError,
    EntityNotFoundError,
)
from .models import (
    Category,
    Product,
    Subgroup,
)


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class DataStore:  # pylint: disable=too-many-public-methods
    """In-memory Category → Subgroup → Product tree with change tracking.

    Every structural mutation made through the store sets ``is_modified``.
    Only a successful save (or a load that replaces the whole tree) clears it.
    Mutating entities directly, bypassing the store, is not tracked.
    """

    def __init__(self) -> None:
        self.categories: EntityCollection[Category] = EntityCollection("category")
        self.next_category_id = 1
        self.next_subgroup_id = 1
        self.next_product_id = 1
        self.is_modified = False
        self.last_saved: Optional[datetime] = None

    def __repr__(self) -> str:
        return (
            f"DataStore(categories={self.categories.count}, next_ids=("
            f"{self.next_category_id}, {self.next_subgroup_id}, {self.next_product_id}), "
            f"modified={self.is_modified})"
        )

    def __eq__(self, other: object) -> bool:
        """Structural equality: same tree and same counters."""
        if not isinstance(other, DataStore):
            return NotImplemented
        return (
            self.categories == other.categories
            and self.next_category_id == other.next_category_id
            and self.next_subgroup_id == other.next_subgroup_id
            and self.next_product_id == other.next_product_id
        )

    __hash__ = None  # type: ignore[assignment]

    @property
    def category_count(self) -> int:
        return self.categories.count

    def mark_modified(self) -> None:
        self.is_modified = True

    def clear(self) -> None:
        """Release the whole tree and reset the store to its initial state."""
        self.categories.clear()
        self.next_category_id = 1
        self.next_subgroup_id = 1
        self.next_product_id = 1
        self.is_modified = False
        self.last_saved = None

    # ==============================================================================
    # READ Methods - Lookups and Traversal
    # ==============================================================================

    def find_category(self, category_id: int) -> Optional[Category]:
        return self.categories.find(category_id)

    def find_subgroup_with_owner(self, subgroup_id: int) -> Optional[Tuple[Category, Subgroup]]:
        """Find a subgroup anywhere in the store together with its owning category."""
        for category in self.categories:
            subgroup = category.find_subgroup(subgroup_id)
            if subgroup is not None:
                return category, subgroup
        return None

    def find_subgroup(self, subgroup_id: int) -> Optional[Subgroup]:
        found = self.find_subgroup_with_owner(subgroup_id)
        return found[1] if found else None

    def find_product_with_owner(self, product_id: int) -> Optional[Tuple[Category, Subgroup, Product]]:
        """Find a product anywhere in the store together with its owning subgroup and category."""
        for category in self.categories:
            for subgroup in category.subgroups:
                product = subgroup.find_product(product_id)
                if product is not None:
                    return category, subgroup, product
        return None

    def find_product(self, product_id: int) -> Optional[Product]:
        found = self.find_product_with_owner(product_id)
        return found[2] if found else None

    def iter_subgroups(self) -> Iterator[Subgroup]:
        for category in self.categories:
            yield from category.subgroups

    def iter_products(self) -> Iterator[Product]:
        for subgroup in self.iter_subgroups():
            yield from subgroup.products

    # ==============================================================================
    # CREATE Methods
    # ==============================================================================

    def _check_subtree(self, subgroups: Iterable[Subgroup]) -> Tuple[int, int]:
        """Check that subgroups and products brought in with an added record are new to the store.

        Returns:
            The largest subgroup id and the largest product id in the subtree (0 when empty).

        Raises:
            DuplicateEntityError: If an id is already used in the store or twice in the subtree.
        """
        existing_subgroups = {subgroup.id for subgroup in self.iter_subgroups()}
        existing_products = {product.id for product in self.iter_products()}
        subgroup_ids: Set[int] = set()
        product_ids: Set[int] = set()

        for subgroup in subgroups:
            if subgroup.id in existing_subgroups or subgroup.id in subgroup_ids:
                raise DuplicateEntityError(f"Subgroup with ID {subgroup.id} already exists")
            subgroup_ids.add(subgroup.id)
            for product in subgroup.products:
                if product.id in existing_products or product.id in product_ids:
                    raise DuplicateEntityError(f"Product with ID {product.id} already exists")
                product_ids.add(product.id)

        return max(subgroup_ids, default=0), max(product_ids, default=0)

    def _advance_counters(self, max_subgroup_id: int, max_product_id: int) -> None:
        self.next_subgroup_id = max(self.next_subgroup_id, max_subgroup_id + 1)
        self.next_product_id = max(self.next_product_id, max_product_id + 1)

    def add_category(self, category: Category) -> Category:
        """Add a category built by the caller (normally with ``next_category_id``).

        The category may already hold subgroups and products. Their ids must be
        unused in the store, and the subgroup and product counters move past them.

        Raises:
            InvalidEntityError: If the category fails validation.
            DuplicateEntityError: If the id of the category, or of anything under it, is already used.
        """
        max_ids = self._check_subtree(category.subgroups)

        self.categories.add(category)
        self.next_category_id = max(self.next_category_id, category.id + 1)
        self._advance_counters(*max_ids)
        self.mark_modified()
        logger.debug("Added category %d (%s)", category.id, category.name)
        return category

    def new_category(self, name: str, description: Optional[str] = None) -> Category:
        """Create a category with the next free id and add it."""
        return self.add_category(Category.create(self.next_category_id, name, description))

    def add_subgroup(self, category_id: int, subgroup: Subgroup) -> Subgroup:
        """Add a subgroup under an existing category.

        Products already in the subgroup must have ids unused in the store, and
        the product counter moves past them.

        Raises:
            EntityNotFoundError: If the category does not exist.
            InvalidEntityError: If the subgroup is invalid or points at another category.
            DuplicateEntityError: If the id of the subgroup or of one of its products is used anywhere,
                or the name is used in the category.
        """
        category = self.categories.find(category_id)
        if category is None:
            raise EntityNotFoundError(f"Category with ID {category_id} does not exist")
        max_ids = self._check_subtree([subgroup])

        category.add_subgroup(subgroup)
        self._advance_counters(*max_ids)
        self.mark_modified()
        logger.debug("Added subgroup %d (%s) to category %d", subgroup.id, subgroup.name, category_id)
        return subgroup

    def new_subgroup(self, category_id: int, name: str, description: Optional[str] = None) -> Subgroup:
        """Create a subgroup with the next free id and add it under ``category_id``."""
        subgroup = Subgroup.create(self.next_subgroup_id, category_id, name, description)
        return self.add_subgroup(category_id, subgroup)

    def add_product(self, subgroup_id: int, product: Product) -> Product:
        """Add a product under an existing subgroup.

        Product ids are unique across the whole store, not only within the subgroup.

        Raises:
            EntityNotFoundError: If the subgroup does not exist.
            InvalidEntityError: If the product is invalid or points at another subgroup.
            DuplicateEntityError: If a product with the same id exists anywhere in the store.
        """
        subgroup = self.find_subgroup(subgroup_id)
        if subgroup is None:
            raise EntityNotFoundError(f"Subgroup with ID {subgroup_id} does not exist")
        if self.find_product(product.id) is not None:
            raise DuplicateEntityError(f"Product with ID {product.id} already exists")

        subgroup.add_product(product)
        self.next_product_id = max(self.next_product_id, product.id + 1)
        self.mark_modified()
        logger.debug("Added product %d (%s) to subgroup %d", product.id, product.name, subgroup_id)
        return product

    def new_product(  # pylint: disable=too-many-arguments,too-many-positional-arguments
        self,
        subgroup_id: int,
        code: Optional[str],
        name: str,
        description: Optional[str] = None,
        price: float = 0.0,
        quantity: int = 0,
    ) -> Product:
        """Create a product with the next free id and add it under ``subgroup_id``."""
        product = Product.create(self.next_product_id, subgroup_id, code, name, description, price, quantity)
        return self.add_product(subgroup_id, product)

    # ==============================================================================
    # UPDATE Methods
    # ==============================================================================
    #
    # Only provided (non-None) fields are changed. All provided values are
    # validated on a copy first, so a rejected value never leaves the entity
    # half updated.

    @staticmethod
    def _apply_updates(entity: Any, updates: Dict[str, Any]) -> None:
        candidate = entity.model_copy()
        for field, value in updates.items():
            setattr(candidate, field, value)
        for field in updates:
            setattr(entity, field, getattr(candidate, field))

    def update_category(
        self, category_id: int, name: Optional[str] = None, description: Optional[str] = None
    ) -> Category:
        """Update a category's name and/or description.

        Raises:
            EntityNotFoundError: If the category does not exist.
            ValueError: If a provided value fails validation (nothing is changed).
        """
        category = self.categories.find(category_id)
        if category is None:
            raise EntityNotFoundError(f"Category with ID {category_id} does not exist")

        updates: Dict[str, Any] = {}
        if name is not None:
            updates["name"] = name
        if description is not None:
            updates["description"] = description
        if updates:
            self._apply_updates(category, updates)
            self.mark_modified()
        return category

    def update_subgroup(
        self, subgroup_id: int, name: Optional[str] = None, description: Optional[str] = None
    ) -> Subgroup:
        """Update a subgroup's name and/or description.

        Raises:
            EntityNotFoundError: If the subgroup does not exist.
            DuplicateEntityError: If the new name is already used by a sibling (case-insensitive).
            ValueError: If a provided value fails validation (nothing is changed).
        """
        found = self.find_subgroup_with_owner(subgroup_id)
        if found is None:
            raise EntityNotFoundError(f"Subgroup with ID {subgroup_id} does not exist")
        category, subgroup = found

        updates: Dict[str, Any] = {}
        if name is not None:
            updates["name"] = name
        if description is not None:
            updates["description"] = description
        if not updates:
            return subgroup

        candidate = subgroup.model_copy()
        for field, value in updates.items():
            setattr(candidate, field, value)
        sibling = category.find_subgroup_by_name(candidate.name)
        if sibling is not None and sibling.id != subgroup.id:
            raise DuplicateEntityError(f"Subgroup '{candidate.name}' already exists in category {category.id}")

        for field in updates:
            setattr(subgroup, field, getattr(candidate, field))
        self.mark_modified()
        return subgroup

    def update_product(  # pylint: disable=too-many-arguments,too-many-positional-arguments
        self,
        product_id: int,
        code: Optional[str] = None,
        name: Optional[str] = None,
        description: Optional[str] = None,
        price: Optional[float] = None,
        quantity: Optional[int] = None,
    ) -> Product:
        """Update a product's fields and refresh its ``updated_at`` timestamp.

        Raises:
            EntityNotFoundError: If the product does not exist.
            ValueError: If a provided value fails validation (nothing is changed).

        Example:
            store.update_product(product_id, price=849.0, quantity=12)
        """
        product = self.find_product(product_id)
        if product is None:
            raise EntityNotFoundError(f"Product with ID {product_id} does not exist")

        updates: Dict[str, Any] = {}
        if code is not None:
            updates["code"] = code
        if name is not None:
            updates["name"] = name
        if description is not None:
            updates["description"] = description
        if price is not None:
            updates["price"] = price
        if quantity is not None:
            updates["quantity"] = quantity
        if updates:
            self._apply_updates(product, updates)
            product.touch()
            self.mark_modified()
        return product

    # ==============================================================================
    # DELETE Methods
    # ==============================================================================
    #
    # Removal cascades: a category releases its subgroups, which release their
    # products, before its own slot is reused. Each method returns the counts of
    # removed entities per kind.

    def remove_category(self, category_id: int) -> Dict[str, int]:
        """Remove a category and everything under it.

        Returns:
            {"deleted_categories": 1, "deleted_subgroups": int, "deleted_products": int}

        Raises:
            EntityNotFoundError: If the category does not exist.
        """
        category = self.categories.find(category_id)
        if category is None:
            raise EntityNotFoundError(f"Category with ID {category_id} does not exist")

        deleted_counts = {
            "deleted_categories": 1,
            "deleted_subgroups": category.subgroup_count,
            "deleted_products": category.product_count,
        }
        self.categories.remove(category_id)
        self.mark_modified()
        logger.debug("Removed category %d: %s", category_id, deleted_counts)
        return deleted_counts

    def remove_subgroup(self, subgroup_id: int) -> Dict[str, int]:
        """Remove a subgroup and all of its products.

        Raises:
            EntityNotFoundError: If the subgroup does not exist.
        """
        found = self.find_subgroup_with_owner(subgroup_id)
        if found is None:
            raise EntityNotFoundError(f"Subgroup with ID {subgroup_id} does not exist")
        category, subgroup = found

        deleted_counts = {"deleted_subgroups": 1, "deleted_products": subgroup.product_count}
        category.remove_subgroup(subgroup_id)
        self.mark_modified()
        logger.debug("Removed subgroup %d: %s", subgroup_id, deleted_counts)
        return deleted_counts

    def remove_product(self, product_id: int) -> Dict[str, int]:
        """Remove a single product.

        Raises:
            EntityNotFoundError: If the product does not exist.
        """
        found = self.find_product_with_owner(product_id)
        if found is None:
            raise EntityNotFoundError(f"Product with ID {product_id} does not exist")
        _, subgroup, _ = found

        subgroup.remove_product(product_id)
        self.mark_modified()
        logger.debug("Removed product %d from subgroup %d", product_id, subgroup.id)
        return {"deleted_products": 1}

    # ==============================================================================
    # Persistence
    # ==============================================================================

    def save(self, path: PathLike, backup_path: Optional[PathLike] = None) -> Path:
        """Write the store to ``path`` (see ``storage.save_store``)."""
        from .storage import save_store  # pylint: disable=import-outside-toplevel

        return save_store(self, path, backup_path)

    def load(self, path: PathLike) -> None:
        """Replace the contents of this store with the tree stored at ``path``.

        The file is decoded completely before anything is replaced, so on
        failure this store is left exactly as it was.

        Raises:
            StorageError: If the file cannot be read.
            CorruptDataError: If the file is truncated or inconsistent.
        """
        from .storage import load_store  # pylint: disable=import-outside-toplevel

        loaded = load_store(path)
        self.categories.clear()
        self.categories = loaded.categories
        self.next_category_id = loaded.next_category_id
        self.next_subgroup_id = loaded.next_subgroup_id
        self.next_product_id = loaded.next_product_id
        self.is_modified = False
        self.last_saved = loaded.last_saved
