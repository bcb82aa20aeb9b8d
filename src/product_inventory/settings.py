"""Runtime configuration.

Settings come from environment variables, optionally loaded from a ``.env``
file found by python-dotenv:

    PMS_DATA_FILE            data file (default data/products.dat)
    PMS_BACKUP_FILE          backup of the previous data file (default data/products.bak)
    PMS_REPORT_FILE          text report destination (default data/report.txt)
    PMS_LOW_STOCK_THRESHOLD  quantity below which a product counts as low stock (default 10)
    PMS_LOG_LEVEL            logging level name (default WARNING)
"""

import os
from pathlib import Path
from typing import (
    Any,
    Dict,
    Mapping,
    Optional,
)

from dotenv import (
    find_dotenv,
    load_dotenv,
)
from pydantic import (
    BaseModel,
    Field,
    field_validator,
)


ENV_PREFIX = "PMS_"


class InventorySettings(BaseModel):
    """File locations and tunables for the inventory tools."""

    data_file: Path = Field(default=Path("data") / "products.dat", description="Binary data file")
    backup_file: Path = Field(default=Path("data") / "products.bak", description="Backup of the previous data file")
    report_file: Path = Field(default=Path("data") / "report.txt", description="Text report destination")
    low_stock_threshold: int = Field(default=10, ge=0, description="Quantity below which stock is low")
    log_level: str = Field(default="WARNING", description="Logging level name")

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid logging level: {value}")
        return level

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "InventorySettings":
        """Create settings from a dictionary of field values.

        Examples:
            >>> settings = InventorySettings.from_dict({"data_file": "/tmp/products.dat"})
        """
        return cls.model_validate(config_dict)

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None, dotenv: bool = True
    ) -> "InventorySettings":
        """Create settings from ``PMS_*`` environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``.
            dotenv: Load a ``.env`` file into ``os.environ`` first (ignored when ``environ`` is given).

        Raises:
            pydantic.ValidationError: If a variable holds an invalid value.
        """
        if environ is None:
            if dotenv:
                load_dotenv(find_dotenv(usecwd=True))
            environ = os.environ

        values: Dict[str, Any] = {}
        for field_name in cls.model_fields:
            raw = environ.get(f"{ENV_PREFIX}{field_name.upper()}")
            if raw is not None and raw.strip():
                values[field_name] = raw.strip()
        return cls.model_validate(values)
