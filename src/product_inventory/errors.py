"""Exception hierarchy for the inventory core.

Validation, duplicate and not-found errors also derive from ``ValueError`` so
callers that only care about "bad input" can catch a single type. Field-level
validation failures surface as pydantic's ``ValidationError``, which is a
``ValueError`` as well.
"""


class InventoryError(Exception):
    """Base class for all inventory errors."""


class InvalidEntityError(InventoryError, ValueError):
    """A record failed its validity check at a collection boundary."""


class DuplicateEntityError(InventoryError, ValueError):
    """A record with the same identity key already exists."""


class EntityNotFoundError(InventoryError, ValueError):
    """A mutating operation referenced an id that does not exist."""


class CapacityError(InventoryError):
    """A collection could not grow to accept another record."""


class StorageError(InventoryError):
    """Reading or writing the data file failed."""


class CorruptDataError(StorageError):
    """The data file is truncated or structurally inconsistent."""
