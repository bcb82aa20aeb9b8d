"""Binary encoding of the whole inventory tree.

Layout (little-endian, fixed width, no padding, depth-first pre-order)::

    header    int32 category_count, next_category_id, next_subgroup_id, next_product_id
    category  int32 id, char[50] name, char[200] description, int32 subgroup_count
      subgroup  int32 id, int32 category_id, char[50] name, char[200] description, int32 product_count
        product   int32 id, int32 subgroup_id, char[20] code, char[100] name, char[200] description,
                  float32 price, int32 quantity, char[20] created_at, char[20] updated_at

Text fields are UTF-8, NUL-terminated inside their slot; bytes after the first
NUL are ignored when reading. Text that is not valid UTF-8 is rejected as
corrupt rather than replaced, so a file is never silently rewritten with
different text. Timestamps are ``YYYY-MM-DD HH:MM:SS``.

``encode_store`` refuses a tree that ``decode_store`` would reject, so whatever
is written can be read back.

The format carries neither a version tag nor a checksum. Truncation and
structural inconsistencies are detected, but a flipped bit inside a
fixed-width field that leaves the structure intact decodes as wrong data.
"""

import logging
import struct
from datetime import datetime
from typing import (
    List,
    Set,
    Tuple,
)

from pydantic import ValidationError

from .errors import (
    CorruptDataError,
    DuplicateEntityError,
    InvalidEntityError,
    InventoryError,
)
from .models import (
    CODE_SIZE,
    DESCRIPTION_SIZE,
    GROUP_NAME_SIZE,
    PRODUCT_NAME_SIZE,
    TIMESTAMP_SIZE,
    Category,
    Product,
    Subgroup,
    format_timestamp,
    parse_timestamp,
)
from .store import DataStore


logger = logging.getLogger(__name__)

TEXT_ENCODING = "utf-8"

HEADER = struct.Struct("<iiii")
CATEGORY = struct.Struct(f"<i{GROUP_NAME_SIZE}s{DESCRIPTION_SIZE}si")
SUBGROUP = struct.Struct(f"<ii{GROUP_NAME_SIZE}s{DESCRIPTION_SIZE}si")
PRODUCT = struct.Struct(
    f"<ii{CODE_SIZE}s{PRODUCT_NAME_SIZE}s{DESCRIPTION_SIZE}sfi{TIMESTAMP_SIZE}s{TIMESTAMP_SIZE}s"
)

# Upper bound for any single count field.
MAX_RECORD_COUNT = 1_000_000


def pack_text(value: str, size: int) -> bytes:
    """Encode ``value`` into a NUL-terminated, NUL-padded slot of ``size`` bytes."""
    raw = value.encode(TEXT_ENCODING)[: size - 1]
    return raw.ljust(size, b"\x00")


def unpack_text(raw: bytes) -> str:
    """Decode the text before the first NUL of a slot.

    Raises:
        CorruptDataError: If that text is not valid UTF-8.
    """
    text = raw.split(b"\x00", 1)[0]
    try:
        return text.decode(TEXT_ENCODING)
    except UnicodeDecodeError as e:
        raise CorruptDataError(f"Text field {text!r} is not valid {TEXT_ENCODING}") from e


# ==============================================================================
# Encoding
# ==============================================================================


def check_store(store: DataStore) -> None:
    """Verify the rules the decoder enforces on a tree.

    Entities changed directly (for example ``Subgroup.update_name``) bypass the
    checks ``DataStore`` makes, so the tree is checked again before encoding.

    Raises:
        DuplicateEntityError: If an id is used twice for the same kind, or two
            subgroups of a category share a name (case-insensitive).
        InvalidEntityError: If a back-reference disagrees with its owner or a
            count exceeds what the decoder accepts.
    """
    seen_categories: Set[int] = set()
    seen_subgroups: Set[int] = set()
    seen_products: Set[int] = set()

    if store.category_count > MAX_RECORD_COUNT:
        raise InvalidEntityError(f"Too many categories to store ({store.category_count})")
    for category in store.categories:
        if category.id in seen_categories:
            raise DuplicateEntityError(f"Duplicate category id {category.id}")
        seen_categories.add(category.id)
        if category.subgroup_count > MAX_RECORD_COUNT:
            raise InvalidEntityError(f"Too many subgroups in category {category.id}")

        names: Set[str] = set()
        for subgroup in category.subgroups:
            if subgroup.id in seen_subgroups:
                raise DuplicateEntityError(f"Duplicate subgroup id {subgroup.id}")
            seen_subgroups.add(subgroup.id)
            if subgroup.category_id != category.id:
                raise InvalidEntityError(
                    f"Subgroup {subgroup.id} belongs to category {subgroup.category_id}, not {category.id}"
                )
            if subgroup.name_key in names:
                raise DuplicateEntityError(f"Subgroup '{subgroup.name}' appears twice in category {category.id}")
            names.add(subgroup.name_key)
            if subgroup.product_count > MAX_RECORD_COUNT:
                raise InvalidEntityError(f"Too many products in subgroup {subgroup.id}")

            for product in subgroup.products:
                if product.id in seen_products:
                    raise DuplicateEntityError(f"Duplicate product id {product.id}")
                seen_products.add(product.id)
                if product.subgroup_id != subgroup.id:
                    raise InvalidEntityError(
                        f"Product {product.id} belongs to subgroup {product.subgroup_id}, not {subgroup.id}"
                    )


def encode_product(product: Product) -> bytes:
    return PRODUCT.pack(
        product.id,
        product.subgroup_id,
        pack_text(product.code, CODE_SIZE),
        pack_text(product.name, PRODUCT_NAME_SIZE),
        pack_text(product.description, DESCRIPTION_SIZE),
        product.price,
        product.quantity,
        pack_text(format_timestamp(product.created_at), TIMESTAMP_SIZE),
        pack_text(format_timestamp(product.updated_at), TIMESTAMP_SIZE),
    )


def encode_store(store: DataStore) -> bytes:
    """Serialize the whole tree into the binary layout described in the module docstring.

    Raises:
        DuplicateEntityError: If the tree breaks a uniqueness rule (see ``check_store``).
        InvalidEntityError: If a back-reference or count would not decode.
    """
    check_store(store)
    chunks: List[bytes] = [
        HEADER.pack(store.category_count, store.next_category_id, store.next_subgroup_id, store.next_product_id)
    ]
    for category in store.categories:
        chunks.append(
            CATEGORY.pack(
                category.id,
                pack_text(category.name, GROUP_NAME_SIZE),
                pack_text(category.description, DESCRIPTION_SIZE),
                category.subgroup_count,
            )
        )
        for subgroup in category.subgroups:
            chunks.append(
                SUBGROUP.pack(
                    subgroup.id,
                    subgroup.category_id,
                    pack_text(subgroup.name, GROUP_NAME_SIZE),
                    pack_text(subgroup.description, DESCRIPTION_SIZE),
                    subgroup.product_count,
                )
            )
            chunks.extend(encode_product(product) for product in subgroup.products)
    return b"".join(chunks)


# ==============================================================================
# Decoding
# ==============================================================================


class _Reader:
    """Cursor over the raw file contents that refuses to read past the end."""

    def __init__(self, data: bytes) -> None:
        self._data = memoryview(data)
        self.offset = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self.offset

    def read(self, layout: struct.Struct, what: str) -> Tuple:
        if self.remaining < layout.size:
            raise CorruptDataError(
                f"Unexpected end of data while reading {what} at offset {self.offset} "
                f"({layout.size} bytes needed, {self.remaining} available)"
            )
        values = layout.unpack_from(self._data, self.offset)
        self.offset += layout.size
        return values

    def check_count(self, count: int, record: struct.Struct, what: str) -> None:
        """Reject a count that is negative, absurd, or cannot fit in the bytes left."""
        if count < 0:
            raise CorruptDataError(f"Negative {what} count {count} at offset {self.offset}")
        if count > MAX_RECORD_COUNT:
            raise CorruptDataError(f"Implausible {what} count {count} at offset {self.offset}")
        if count * record.size > self.remaining:
            raise CorruptDataError(
                f"{what.capitalize()} count {count} needs at least {count * record.size} bytes, "
                f"only {self.remaining} left"
            )


def _decode_timestamp(raw: bytes, what: str) -> datetime:
    text = unpack_text(raw)
    try:
        return parse_timestamp(text)
    except ValueError as e:
        raise CorruptDataError(f"Invalid {what} timestamp {text!r}") from e


def _decode_product(reader: _Reader) -> Product:
    (
        product_id,
        subgroup_id,
        code,
        name,
        description,
        price,
        quantity,
        created_at,
        updated_at,
    ) = reader.read(PRODUCT, "product")
    return Product(
        id=product_id,
        subgroup_id=subgroup_id,
        code=unpack_text(code),
        name=unpack_text(name),
        description=unpack_text(description),
        price=price,
        quantity=quantity,
        created_at=_decode_timestamp(created_at, "created_at"),
        updated_at=_decode_timestamp(updated_at, "updated_at"),
    )


def _decode_tree(reader: _Reader, store: DataStore) -> Tuple[int, int, int]:
    """Read every category record into ``store``; return the largest id seen per kind."""
    (category_count, store.next_category_id, store.next_subgroup_id, store.next_product_id) = reader.read(
        HEADER, "header"
    )
    reader.check_count(category_count, CATEGORY, "category")

    seen_subgroups: Set[int] = set()
    seen_products: Set[int] = set()
    max_ids = [0, 0, 0]

    for _ in range(category_count):
        category_id, name, description, subgroup_count = reader.read(CATEGORY, "category")
        category = Category(id=category_id, name=unpack_text(name), description=unpack_text(description))
        reader.check_count(subgroup_count, SUBGROUP, "subgroup")

        for _ in range(subgroup_count):
            subgroup_id, owner_id, name, description, product_count = reader.read(SUBGROUP, "subgroup")
            subgroup = Subgroup(
                id=subgroup_id,
                category_id=owner_id,
                name=unpack_text(name),
                description=unpack_text(description),
            )
            reader.check_count(product_count, PRODUCT, "product")
            if subgroup.id in seen_subgroups:
                raise CorruptDataError(f"Duplicate subgroup id {subgroup.id}")
            seen_subgroups.add(subgroup.id)

            for _ in range(product_count):
                product = _decode_product(reader)
                if product.id in seen_products:
                    raise CorruptDataError(f"Duplicate product id {product.id}")
                seen_products.add(product.id)
                subgroup.add_product(product)
                max_ids[2] = max(max_ids[2], product.id)

            category.add_subgroup(subgroup)
            max_ids[1] = max(max_ids[1], subgroup.id)

        store.categories.add(category)
        max_ids[0] = max(max_ids[0], category.id)

    return max_ids[0], max_ids[1], max_ids[2]


def decode_store(data: bytes) -> DataStore:
    """Rebuild a fresh ``DataStore`` from bytes produced by ``encode_store``.

    Nothing is returned unless the whole input decodes cleanly; a partially
    built tree is released before the error propagates.

    Raises:
        CorruptDataError: On truncation, trailing bytes, bad counts, invalid
            records, duplicate ids or back-references that disagree with their owner.
    """
    reader = _Reader(data)
    store = DataStore()
    try:
        max_category_id, max_subgroup_id, max_product_id = _decode_tree(reader, store)
        if reader.remaining:
            raise CorruptDataError(f"{reader.remaining} unexpected trailing bytes after the last record")
    except CorruptDataError:
        store.clear()
        raise
    except (ValidationError, InventoryError) as e:
        store.clear()
        raise CorruptDataError(f"Invalid record in data: {e}") from e

    counters = (
        ("next_category_id", max_category_id),
        ("next_subgroup_id", max_subgroup_id),
        ("next_product_id", max_product_id),
    )
    for attribute, max_id in counters:
        if getattr(store, attribute) <= max_id:
            logger.warning(
                "%s=%d is not above the largest stored id %d; raising it", attribute, getattr(store, attribute), max_id
            )
            setattr(store, attribute, max_id + 1)

    store.is_modified = False
    return store
