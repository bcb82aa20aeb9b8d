"""Growable id-keyed array shared by every level of the inventory tree.

``EntityCollection`` keeps sibling records of one kind under a single owner:
products in a subgroup, subgroups in a category, categories in the store.
Lookup is a linear scan by id. Removal is swap-and-pop, so the relative order
of the remaining records is NOT stable across removals.
"""

import logging
from typing import (
    Callable,
    Generic,
    Hashable,
    Iterator,
    List,
    Optional,
    Protocol,
    TypeVar,
)

from .errors import (
    CapacityError,
    DuplicateEntityError,
    InvalidEntityError,
)


logger = logging.getLogger(__name__)

INITIAL_CAPACITY = 10


class Record(Protocol):
    """Structural type of anything an ``EntityCollection`` can hold."""

    id: int

    def is_valid(self) -> bool: ...  # noqa: E704

    def release(self) -> None: ...  # noqa: E704


T = TypeVar("T", bound=Record)


class EntityCollection(Generic[T]):
    """Capacity-doubling array of records with swap-and-pop removal.

    ``capacity`` starts at ``INITIAL_CAPACITY`` and doubles whenever an insert
    finds the collection full. ``count <= capacity`` holds at all times.

    Reference semantics:
        ``find()`` returns the live record, not a copy. Holding on to it is
        safe in the sense that it always refers to the same logical entity,
        but positional indexes (``index_of()``, iteration order) taken before
        a ``remove()`` may afterwards point at a different entity because the
        last record is moved into the vacated slot.
    """

    def __init__(
        self,
        kind: str,
        unique_key: Optional[Callable[[T], Hashable]] = None,
        capacity: int = INITIAL_CAPACITY,
        max_capacity: Optional[int] = None,
    ) -> None:
        """Create an empty collection.

        Args:
            kind: Human readable record kind used in error messages ("product").
            unique_key: Optional secondary key that must be unique in addition to the id.
            capacity: Initial capacity (at least 1).
            max_capacity: Upper bound for growth. ``None`` means unbounded.
        """
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        if max_capacity is not None and max_capacity < capacity:
            raise ValueError("max_capacity must not be smaller than capacity")

        self.kind = kind
        self._unique_key = unique_key
        self._capacity = capacity
        self._max_capacity = max_capacity
        self._items: List[T] = []

    @property
    def count(self) -> int:
        return len(self._items)

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._items))

    def __bool__(self) -> bool:
        return bool(self._items)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EntityCollection):
            return NotImplemented
        return self.kind == other.kind and self._items == other._items

    def __repr__(self) -> str:
        return f"EntityCollection(kind={self.kind!r}, count={self.count}, capacity={self.capacity})"

    def _grow(self) -> None:
        new_capacity = self._capacity * 2
        if self._max_capacity is not None:
            new_capacity = min(new_capacity, self._max_capacity)
        if new_capacity <= self._capacity:
            raise CapacityError(f"Cannot add {self.kind}: collection is full ({self._capacity} records)")
        logger.debug("Growing %s collection from %d to %d", self.kind, self._capacity, new_capacity)
        self._capacity = new_capacity

    def check_can_add(self, record: T) -> None:
        """Raise the error ``add()`` would raise for ``record`` without inserting it."""
        if not record.is_valid():
            raise InvalidEntityError(f"Invalid {self.kind} data")
        if self.exists(record.id):
            raise DuplicateEntityError(f"{self.kind.capitalize()} with ID {record.id} already exists")
        if self._unique_key is not None:
            key = self._unique_key(record)
            if any(self._unique_key(item) == key for item in self._items):
                raise DuplicateEntityError(f"{self.kind.capitalize()} '{key}' already exists")
        if len(self._items) >= self._capacity and self._max_capacity is not None:
            if self._capacity >= self._max_capacity:
                raise CapacityError(f"Cannot add {self.kind}: collection is full ({self._capacity} records)")

    def add(self, record: T) -> T:
        """Append a record, doubling capacity when full.

        Raises:
            InvalidEntityError: If the record fails its own validity check.
            DuplicateEntityError: If the id (or the secondary unique key) is taken.
            CapacityError: If the collection cannot grow. The collection is unchanged.
        """
        self.check_can_add(record)
        if len(self._items) >= self._capacity:
            self._grow()
        self._items.append(record)
        return record

    def index_of(self, record_id: int) -> int:
        """Return the slot index of ``record_id`` or -1."""
        for index, item in enumerate(self._items):
            if item.id == record_id:
                return index
        return -1

    def find(self, record_id: int) -> Optional[T]:
        index = self.index_of(record_id)
        return self._items[index] if index >= 0 else None

    def find_by(self, predicate: Callable[[T], bool]) -> Optional[T]:
        """Return the first record matching ``predicate`` or None."""
        for item in self._items:
            if predicate(item):
                return item
        return None

    def exists(self, record_id: int) -> bool:
        return self.index_of(record_id) >= 0

    def remove(self, record_id: int) -> Optional[T]:
        """Swap-and-pop the record with ``record_id``.

        Nested owned records are released before the slot is overwritten.

        Returns:
            The removed record, or None when no record has that id (no-op).
        """
        index = self.index_of(record_id)
        if index < 0:
            return None

        removed = self._items[index]
        removed.release()

        last_index = len(self._items) - 1
        if index < last_index:
            self._items[index] = self._items[last_index]
        self._items.pop()
        return removed

    def clear(self) -> None:
        """Release every record (children first) and empty the collection."""
        for item in self._items:
            item.release()
        self._items.clear()
