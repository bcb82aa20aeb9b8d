"""Saving and loading the inventory data file.

Saves never modify the existing file in place. The tree is encoded in memory,
the previous file is copied to the backup path, and the new contents are
written to a temporary file next to the target which then atomically replaces
it. If anything fails before that final replace, the previous file is
untouched.
"""

import logging
import os
import shutil
import struct
import tempfile
from datetime import datetime
from pathlib import Path
from typing import (
    Optional,
    Union,
)

from .codec import (
    decode_store,
    encode_store,
)
from .errors import (
    CorruptDataError,
    StorageError,
)
from .models import now
from .store import DataStore


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

DEFAULT_DATA_FILE = Path("data") / "products.dat"
DEFAULT_BACKUP_FILE = Path("data") / "products.bak"


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Write ``data`` to ``path`` through a temporary file and an atomic replace.

    Raises:
        OSError: If writing or replacing fails. The temporary file is removed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(mode="wb", dir=path.parent, prefix=f".{path.name}.", delete=False) as tmp:
        tmp_path = Path(tmp.name)
        try:
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        except OSError:
            tmp.close()
            tmp_path.unlink(missing_ok=True)
            raise
    try:
        tmp_path.replace(path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise


def save_store(store: DataStore, path: PathLike, backup_path: Optional[PathLike] = None) -> Path:
    """Write ``store`` to ``path``, keeping the previous file as ``backup_path``.

    ``last_saved`` is set and ``is_modified`` cleared only once the new file is
    in place.

    Args:
        store: Store to save.
        path: Destination data file. Parent directories are created as needed.
        backup_path: Where the previous data file is copied first. ``None`` skips the backup.

    Returns:
        The path written.

    Raises:
        StorageError: If the tree would not load back (see ``codec.check_store``),
            or writing, backing up or replacing fails. An inconsistent tree is
            refused before the backup is touched.
    """
    target = Path(path)
    try:
        data = encode_store(store)
    except (struct.error, ValueError, OverflowError) as e:
        logger.error("Refusing to save %s: %s", target, e)
        raise StorageError(f"Cannot encode store: {e}") from e

    try:
        if backup_path is not None and target.exists():
            backup = Path(backup_path)
            backup.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(target, backup)
            logger.debug("Backed up %s to %s", target, backup)
        atomic_write_bytes(target, data)
    except OSError as e:
        logger.error("Error saving data to %s: %s", target, e)
        raise StorageError(f"Cannot save data to {target}: {e}") from e

    store.last_saved = now()
    store.is_modified = False
    logger.info("Saved %d categories (%d bytes) to %s", store.category_count, len(data), target)
    return target


def load_store(path: PathLike) -> DataStore:
    """Read a store from ``path``.

    A missing file is not an error: it means first run, and an empty store is
    returned. Any other failure raises and no store is produced.

    Raises:
        StorageError: If the file exists but cannot be read.
        CorruptDataError: If the contents are truncated or inconsistent.
    """
    source = Path(path)
    if not source.exists():
        logger.info("No data file at %s; starting with an empty store", source)
        return DataStore()

    try:
        data = source.read_bytes()
        modified_at = datetime.fromtimestamp(source.stat().st_mtime).replace(microsecond=0)
    except OSError as e:
        logger.error("Error reading %s: %s", source, e)
        raise StorageError(f"Cannot read {source}: {e}") from e

    try:
        store = decode_store(data)
    except CorruptDataError as e:
        logger.error("Corrupt data file %s: %s", source, e)
        raise

    store.last_saved = modified_at
    logger.info(
        "Loaded %d categories from %s (next ids: category %d, subgroup %d, product %d)",
        store.category_count,
        source,
        store.next_category_id,
        store.next_subgroup_id,
        store.next_product_id,
    )
    return store
