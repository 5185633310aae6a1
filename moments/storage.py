"""
Store ports used by the moment handlers, plus in-memory backends.

The tabular store holds rows addressed by store id and table name. The blob
store holds binary files in folders and can share them publicly. Concrete
backends live in sql_store.py (SQLAlchemy) and google_store.py (Sheets/Drive).
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

from moments.errors import StoreAccessError

logger = logging.getLogger(__name__)


# =============================================================================
# Tabular Store Port
# =============================================================================

class Table(Protocol):
    """A single named table: an ordered list of rows."""

    def append_row(self, values: list[Any]) -> None:
        ...

    def get_values(self) -> list[list[Any]]:
        ...


class Spreadsheet(Protocol):
    """An opened tabular store holding named tables."""

    def get_table(self, name: str) -> Optional[Table]:
        ...

    def create_table(self, name: str, header: list[str]) -> Table:
        ...


class TabularStore(Protocol):
    def open(self, store_id: str) -> Spreadsheet:
        """Open a store by identifier, raising StoreAccessError if missing."""
        ...


# =============================================================================
# Blob Store Port
# =============================================================================

class StoredFile(Protocol):
    id: str

    def share_publicly(self) -> None:
        """Let anyone with the link view the file."""
        ...


class Folder(Protocol):
    def create_file(self, data: bytes, mime_type: str, name: str) -> StoredFile:
        ...


class BlobStore(Protocol):
    def get_folder(self, folder_id: str) -> Folder:
        """Resolve a folder by identifier, raising StoreAccessError if missing."""
        ...


# =============================================================================
# In-Memory Backends
# =============================================================================

@dataclass
class InMemoryTable:
    """Test double for a table."""

    name: str
    rows: list = field(default_factory=list)

    def append_row(self, values: list[Any]) -> None:
        self.rows.append(list(values))

    def get_values(self) -> list[list[Any]]:
        return [list(row) for row in self.rows]


@dataclass
class InMemorySpreadsheet:
    """Test double for an opened tabular store."""

    store_id: str
    tables: dict = field(default_factory=dict)

    def get_table(self, name: str) -> Optional[InMemoryTable]:
        return self.tables.get(name)

    def create_table(self, name: str, header: list[str]) -> InMemoryTable:
        table = InMemoryTable(name=name)
        table.append_row(header)
        self.tables[name] = table
        return table


@dataclass
class InMemoryTabularStore:
    """
    In-process tabular store.

    With create_missing set, any id opens and gets a fresh store on first
    use. Otherwise only ids already present in spreadsheets can be opened.
    """

    create_missing: bool = True
    spreadsheets: dict = field(default_factory=dict)

    def open(self, store_id: str) -> InMemorySpreadsheet:
        spreadsheet = self.spreadsheets.get(store_id)
        if spreadsheet is None:
            if not self.create_missing:
                raise StoreAccessError(f"Spreadsheet not found: {store_id}")
            spreadsheet = InMemorySpreadsheet(store_id=store_id)
            self.spreadsheets[store_id] = spreadsheet
        return spreadsheet


@dataclass
class InMemoryFile:
    id: str
    name: str
    mime_type: str
    data: bytes
    public: bool = False

    def share_publicly(self) -> None:
        self.public = True


@dataclass
class InMemoryFolder:
    folder_id: str
    files: dict = field(default_factory=dict)

    def create_file(self, data: bytes, mime_type: str, name: str) -> InMemoryFile:
        stored = InMemoryFile(id=uuid.uuid4().hex, name=name, mime_type=mime_type, data=data)
        self.files[stored.id] = stored
        logger.debug(f"Stored in-memory file {name} ({len(data)} bytes) as {stored.id}")
        return stored


@dataclass
class InMemoryBlobStore:
    """In-process blob store; folders are created on first lookup unless disabled."""

    create_missing: bool = True
    folders: dict = field(default_factory=dict)

    def get_folder(self, folder_id: str) -> InMemoryFolder:
        folder = self.folders.get(folder_id)
        if folder is None:
            if not self.create_missing:
                raise StoreAccessError(f"Folder not found: {folder_id}")
            folder = InMemoryFolder(folder_id=folder_id)
            self.folders[folder_id] = folder
        return folder
