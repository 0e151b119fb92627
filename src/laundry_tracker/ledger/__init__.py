"""Ledger of confirmed orders: persistence, grouping, selection and export.

Modules:
- blobstore: named-blob persistence (SQLite)
- store: in-memory ledger mirrored to a blob after each mutation
- aggregate: month → service hierarchy with totals
- selection: multi-select and confirmed batch deletion
- export: CSV serialization of the ledger
"""

from .aggregate import group
from .blobstore import BlobStore, SqliteBlobStore
from .export import EXPORT_MIME_TYPE, export_csv, export_filename, write_export
from .selection import SelectionController, SelectionMode, delete_prompt
from .store import DEFAULT_LEDGER_KEY, LedgerStore

__all__ = [
    "BlobStore",
    "SqliteBlobStore",
    "LedgerStore",
    "DEFAULT_LEDGER_KEY",
    "group",
    "SelectionController",
    "SelectionMode",
    "delete_prompt",
    "EXPORT_MIME_TYPE",
    "export_csv",
    "export_filename",
    "write_export",
]
