from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .parser import Photo


DEFAULT_HOST = "http://localhost:41184"
DEFAULT_NOTEBOOK = "44538ac414c340af8eba12fef4066446"
DEFAULT_TIMEOUT = 30.0
ENTRIES_FILENAME = "AllEntries.json"
PHOTOS_DIRNAME = "photos"


class ConfigurationError(RuntimeError):
    """Raised when required configuration is missing or malformed."""


@dataclass
class ImportConfig:
    '''Settings for a single import run'''

    journal_folder: Path
    token: str
    host: str = DEFAULT_HOST
    notebook: str = DEFAULT_NOTEBOOK
    timeout: float = DEFAULT_TIMEOUT
    fail_fast: bool = False

    @property
    def entries_path(self) -> Path:
        return self.journal_folder / ENTRIES_FILENAME

    def photo_path(self, photo: "Photo") -> Path:
        return self.journal_folder / PHOTOS_DIRNAME / photo.filename


def build_config(
    journal_folder: str
    ,token: str
    ,*
    ,host: str = DEFAULT_HOST
    ,notebook: str = DEFAULT_NOTEBOOK
    ,timeout: float = DEFAULT_TIMEOUT
    ,fail_fast: bool = False
) -> ImportConfig:
    """Validate raw CLI values and return a structured ImportConfig."""

    if not journal_folder:
        raise ConfigurationError("Missing journal folder: pass -journalFolder.")
    if not token:
        raise ConfigurationError("Missing API token: pass -token.")
    if timeout <= 0:
        raise ConfigurationError(f"Timeout must be positive, got {timeout}.")

    folder = Path(journal_folder).expanduser()
    if not folder.is_dir():
        raise ConfigurationError(f"Journal folder does not exist: {folder}")

    return ImportConfig(
        journal_folder=folder
        ,token=token
        ,host=host.rstrip("/")
        ,notebook=notebook
        ,timeout=timeout
        ,fail_fast=fail_fast
    )
