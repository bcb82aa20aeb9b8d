"""Entity records of the inventory tree: Category, Subgroup and Product.

Every text field is bounded by the width of its slot in the binary data file.
Values that are too long are silently truncated (never rejected), then
stripped of surrounding whitespace. Bounds are measured in UTF-8 bytes and
include the terminating NUL, so a 50-byte field holds at most 49 bytes of text.

Models validate on assignment, so an update that fails validation raises and
leaves the previous value in place.
"""

import math
import struct
from datetime import datetime
from typing import (
    Annotated,
    Any,
    Callable,
    Optional,
)

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PrivateAttr,
)

from .collection import EntityCollection
from .errors import InvalidEntityError


INT32_MAX = 2**31 - 1

CODE_SIZE = 20
PRODUCT_NAME_SIZE = 100
GROUP_NAME_SIZE = 50
DESCRIPTION_SIZE = 200
TIMESTAMP_SIZE = 20

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_FLOAT32 = struct.Struct("<f")


def fit_text(value: Any, size: int) -> str:
    """Truncate ``value`` to fit a NUL-terminated field of ``size`` bytes, then strip it.

    ``None`` becomes an empty string. A multi-byte character that would be cut
    in half by the truncation is dropped entirely.
    """
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError("must be a string")
    raw = value.encode("utf-8")[: size - 1]
    return raw.decode("utf-8", errors="ignore").strip()


def to_float32(value: float) -> float:
    """Round ``value`` to the nearest 4-byte float, the precision prices are stored with."""
    if not math.isfinite(value):
        raise ValueError("must be a finite number")
    try:
        return float(_FLOAT32.unpack(_FLOAT32.pack(value))[0])
    except (OverflowError, struct.error) as e:
        raise ValueError("is too large to store") from e


def now() -> datetime:
    """Current local time at the one-second resolution of stored timestamps."""
    return datetime.now().replace(microsecond=0)


def format_timestamp(value: datetime) -> str:
    return value.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    return datetime.strptime(value, TIMESTAMP_FORMAT)


def _bounded(size: int) -> Callable[[Any], str]:
    def validator(value: Any) -> str:
        return fit_text(value, size)

    return validator


def _required(value: str) -> str:
    if not value:
        raise ValueError("cannot be empty")
    return value


def _whole_seconds(value: datetime) -> datetime:
    return value.replace(microsecond=0)


EntityId = Annotated[int, Field(gt=0, le=INT32_MAX)]
Code = Annotated[str, BeforeValidator(_bounded(CODE_SIZE))]
ProductName = Annotated[str, BeforeValidator(_bounded(PRODUCT_NAME_SIZE)), AfterValidator(_required)]
GroupName = Annotated[str, BeforeValidator(_bounded(GROUP_NAME_SIZE)), AfterValidator(_required)]
Description = Annotated[str, BeforeValidator(_bounded(DESCRIPTION_SIZE))]
Price = Annotated[float, Field(ge=0, allow_inf_nan=False), AfterValidator(to_float32)]
Quantity = Annotated[int, Field(ge=0, le=INT32_MAX)]
Timestamp = Annotated[datetime, AfterValidator(_whole_seconds)]


class Product(BaseModel):
    """Product record, owned by exactly one Subgroup."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    id: EntityId = Field(..., description="Store-wide unique product identifier")
    subgroup_id: EntityId = Field(..., description="Owning subgroup (lookup key only)")
    code: Code = Field(default="", description="Short product code")
    name: ProductName = Field(..., description="Product name")
    description: Description = Field(default="", description="Product description")
    price: Price = Field(default=0.0, description="Unit price")
    quantity: Quantity = Field(default=0, description="Units in stock")
    created_at: Timestamp = Field(default_factory=now, description="Creation timestamp")
    updated_at: Timestamp = Field(default_factory=now, description="Last update timestamp")

    @classmethod
    def create(  # pylint: disable=too-many-arguments,too-many-positional-arguments
        cls,
        id: int,  # pylint: disable=redefined-builtin
        subgroup_id: int,
        code: Optional[str],
        name: Optional[str],
        description: Optional[str] = None,
        price: float = 0.0,
        quantity: int = 0,
    ) -> "Product":
        """Build a validated product stamped with the current time.

        Raises:
            ValueError: If the id is not positive, the name is blank, or price/quantity is negative.
        """
        stamp = now()
        return cls(
            id=id,
            subgroup_id=subgroup_id,
            code=code,
            name=name,
            description=description,
            price=price,
            quantity=quantity,
            created_at=stamp,
            updated_at=stamp,
        )

    @property
    def total_value(self) -> float:
        return self.price * self.quantity

    def is_valid(self) -> bool:
        return (
            self.id > 0
            and self.subgroup_id > 0
            and bool(self.name)
            and self.price >= 0
            and self.quantity >= 0
        )

    def release(self) -> None:
        """Products own nothing."""

    def touch(self) -> None:
        self.updated_at = now()

    def update_code(self, code: Optional[str]) -> None:
        self.code = code  # type: ignore[assignment]
        self.touch()

    def update_name(self, name: str) -> None:
        self.name = name
        self.touch()

    def update_description(self, description: Optional[str]) -> None:
        self.description = description  # type: ignore[assignment]
        self.touch()

    def update_price(self, price: float) -> None:
        self.price = price
        self.touch()

    def update_quantity(self, quantity: int) -> None:
        self.quantity = quantity
        self.touch()


class Subgroup(BaseModel):
    """Subgroup record owning a collection of products."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    id: EntityId = Field(..., description="Store-wide unique subgroup identifier")
    category_id: EntityId = Field(..., description="Owning category (lookup key only)")
    name: GroupName = Field(..., description="Subgroup name, unique per category (case-insensitive)")
    description: Description = Field(default="", description="Subgroup description")

    _products: EntityCollection[Product] = PrivateAttr(default_factory=lambda: EntityCollection("product"))

    @classmethod
    def create(
        cls,
        id: int,  # pylint: disable=redefined-builtin
        category_id: int,
        name: Optional[str],
        description: Optional[str] = None,
    ) -> "Subgroup":
        return cls(id=id, category_id=category_id, name=name, description=description)

    @property
    def products(self) -> EntityCollection[Product]:
        return self._products

    @property
    def name_key(self) -> str:
        return self.name.casefold()

    @property
    def product_count(self) -> int:
        return self._products.count

    @property
    def total_quantity(self) -> int:
        return sum(product.quantity for product in self._products)

    @property
    def total_value(self) -> float:
        return sum(product.total_value for product in self._products)

    def is_valid(self) -> bool:
        return (
            self.id > 0
            and self.category_id > 0
            and bool(self.name)
            and self._products.count <= self._products.capacity
        )

    def release(self) -> None:
        self._products.clear()

    def add_product(self, product: Product) -> Product:
        """Add a product to this subgroup.

        Raises:
            InvalidEntityError: If the product is invalid or points at another subgroup.
            DuplicateEntityError: If a product with the same id is already here.
        """
        if product.subgroup_id != self.id:
            raise InvalidEntityError(
                f"Product {product.id} belongs to subgroup {product.subgroup_id}, not {self.id}"
            )
        return self._products.add(product)

    def remove_product(self, product_id: int) -> Optional[Product]:
        return self._products.remove(product_id)

    def find_product(self, product_id: int) -> Optional[Product]:
        return self._products.find(product_id)

    def update_name(self, name: str) -> None:
        """Rename this subgroup without looking at its siblings.

        Use ``DataStore.update_subgroup`` to rename a subgroup that is in a store:
        it rejects a name already used in the category. A clash left by this
        method is refused when the store is saved.
        """
        self.name = name

    def update_description(self, description: Optional[str]) -> None:
        self.description = description  # type: ignore[assignment]


def _subgroup_name_key(subgroup: Subgroup) -> str:
    return subgroup.name_key


class Category(BaseModel):
    """Top-level category owning a collection of subgroups."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    id: EntityId = Field(..., description="Store-wide unique category identifier")
    name: GroupName = Field(..., description="Category name")
    description: Description = Field(default="", description="Category description")

    _subgroups: EntityCollection[Subgroup] = PrivateAttr(
        default_factory=lambda: EntityCollection("subgroup", unique_key=_subgroup_name_key)
    )

    @classmethod
    def create(
        cls,
        id: int,  # pylint: disable=redefined-builtin
        name: Optional[str],
        description: Optional[str] = None,
    ) -> "Category":
        return cls(id=id, name=name, description=description)

    @property
    def subgroups(self) -> EntityCollection[Subgroup]:
        return self._subgroups

    @property
    def subgroup_count(self) -> int:
        return self._subgroups.count

    @property
    def product_count(self) -> int:
        return sum(subgroup.product_count for subgroup in self._subgroups)

    @property
    def total_quantity(self) -> int:
        return sum(subgroup.total_quantity for subgroup in self._subgroups)

    @property
    def total_value(self) -> float:
        return sum(subgroup.total_value for subgroup in self._subgroups)

    def is_valid(self) -> bool:
        return self.id > 0 and bool(self.name) and self._subgroups.count <= self._subgroups.capacity

    def release(self) -> None:
        self._subgroups.clear()

    def add_subgroup(self, subgroup: Subgroup) -> Subgroup:
        """Add a subgroup to this category.

        Raises:
            InvalidEntityError: If the subgroup is invalid or points at another category.
            DuplicateEntityError: If the id or the (case-insensitive) name is already used here.
        """
        if subgroup.category_id != self.id:
            raise InvalidEntityError(
                f"Subgroup {subgroup.id} belongs to category {subgroup.category_id}, not {self.id}"
            )
        return self._subgroups.add(subgroup)

    def remove_subgroup(self, subgroup_id: int) -> Optional[Subgroup]:
        return self._subgroups.remove(subgroup_id)

    def find_subgroup(self, subgroup_id: int) -> Optional[Subgroup]:
        return self._subgroups.find(subgroup_id)

    def find_subgroup_by_name(self, name: str) -> Optional[Subgroup]:
        key = name.strip().casefold()
        return self._subgroups.find_by(lambda subgroup: subgroup.name_key == key)

    def update_name(self, name: str) -> None:
        self.name = name

    def update_description(self, description: Optional[str]) -> None:
        self.description = description  # type: ignore[assignment]
