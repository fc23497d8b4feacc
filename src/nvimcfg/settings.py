"""Shared settings loaded from environment / .env file."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuration for the nvimcfg core and its command-line entry point.

    Values are read from environment variables and from a ``.env`` file
    in the working directory.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Shared
    log_level: str = "INFO"

    # Configuration tree
    config_root: Path = Path("~/.config/nvim")
    catalog_path: Path | None = None  # falls back to the bundled catalog

    # Syntax model recognition
    option_tables: list[str] = ["options"]
    plugin_functions: list[str] = ["use", "Plug"]
    max_document_size: int = 2_000_000  # characters

    # Apply
    backup_dir: Path | None = None  # None = next to the edited file
    default_dry_run: bool = False

    @property
    def expanded_config_root(self) -> Path:
        """Return ``config_root`` with ``~`` expanded."""
        return self.config_root.expanduser()
