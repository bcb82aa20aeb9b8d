"""Tests for InventorySettings."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from product_inventory import InventorySettings


class TestDefaults:
    """Tests for default settings."""

    def test_defaults(self) -> None:
        """Test the default file locations and tunables."""
        settings = InventorySettings()

        assert settings.data_file == Path("data/products.dat")
        assert settings.backup_file == Path("data/products.bak")
        assert settings.report_file == Path("data/report.txt")
        assert settings.low_stock_threshold == 10
        assert settings.log_level == "WARNING"

    def test_from_dict(self) -> None:
        """Test building settings from a dictionary."""
        settings = InventorySettings.from_dict({"data_file": "/tmp/inventory.dat", "log_level": "info"})

        assert settings.data_file == Path("/tmp/inventory.dat")
        assert settings.log_level == "INFO"

    def test_invalid_values(self) -> None:
        """Test validation of threshold and log level."""
        with pytest.raises(ValidationError):
            InventorySettings.from_dict({"low_stock_threshold": -1})
        with pytest.raises(ValidationError):
            InventorySettings.from_dict({"log_level": "LOUD"})


class TestFromEnv:
    """Tests for reading PMS_* variables."""

    def test_from_mapping(self) -> None:
        """Test reading from an explicit environment mapping."""
        settings = InventorySettings.from_env(
            {
                "PMS_DATA_FILE": "/srv/inventory/products.dat",
                "PMS_LOW_STOCK_THRESHOLD": "5",
                "PMS_LOG_LEVEL": "debug",
                "UNRELATED": "ignored",
            }
        )

        assert settings.data_file == Path("/srv/inventory/products.dat")
        assert settings.backup_file == Path("data/products.bak")
        assert settings.low_stock_threshold == 5
        assert settings.log_level == "DEBUG"

    def test_blank_values_ignored(self) -> None:
        """Test that empty variables fall back to defaults."""
        settings = InventorySettings.from_env({"PMS_REPORT_FILE": "  "})
        assert settings.report_file == Path("data/report.txt")

    def test_invalid_number(self) -> None:
        """Test that a non-numeric threshold is rejected."""
        with pytest.raises(ValidationError):
            InventorySettings.from_env({"PMS_LOW_STOCK_THRESHOLD": "many"})

    def test_reads_os_environ(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """Test that os.environ is used when no mapping is given."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("PMS_BACKUP_FILE", str(tmp_path / "old.bak"))

        settings = InventorySettings.from_env()

        assert settings.backup_file == tmp_path / "old.bak"

    def test_reads_dotenv_file(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """Test that a .env file in the working directory is loaded."""
        (tmp_path / ".env").write_text("PMS_REPORT_FILE=reports/weekly.txt\n")
        monkeypatch.chdir(tmp_path)
        # Register the variable so monkeypatch restores it after load_dotenv sets it
        monkeypatch.setenv("PMS_REPORT_FILE", "placeholder")
        monkeypatch.delenv("PMS_REPORT_FILE")

        settings = InventorySettings.from_env()

        assert settings.report_file == Path("reports/weekly.txt")
