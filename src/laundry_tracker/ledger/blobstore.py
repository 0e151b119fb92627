"""Named-blob persistence for the ledger (get/set one serialized document)."""

from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from typing import Iterator, Optional, Protocol

from ..logging import get_logger
from ..paths import find_project_root, var_dir

LOG = get_logger("ledger-blobstore")

DB_FOLDERNAME = "laundry_tracker"
DB_FILENAME = "ledger.sqlite3"
TABLE_NAME = "blobs"


class BlobStore(Protocol):
    def get(self, name: str) -> Optional[str]:
        ...

    def set(self, name: str, content: str) -> None:
        ...


class SqliteBlobStore:
    """Key/value blobs in `<root>/var/laundry_tracker/ledger.sqlite3`.

    root_dir defaults to the detected project root.
    """

    def __init__(self, root_dir: Optional[str] = None, *, db_path: Optional[str] = None) -> None:
        if db_path is None:
            root = os.path.abspath(root_dir) if root_dir else find_project_root()
            folder = os.path.join(var_dir(root), DB_FOLDERNAME)
            os.makedirs(folder, exist_ok=True)
            db_path = os.path.join(folder, DB_FILENAME)
        self.db_path = os.path.abspath(db_path)
        self._ensure_schema()
        LOG.info(f"Ledger blob store ready at {self.db_path}")

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path)
        try:
            yield conn
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self.connect() as conn:
            cur = conn.cursor()
            try:
                cur.execute("PRAGMA journal_mode=WAL;")
                cur.execute("PRAGMA synchronous=NORMAL;")
            except sqlite3.DatabaseError:
                # Non-fatal; plain journal mode still works
                pass
            cur.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
                    name TEXT PRIMARY KEY,
                    content TEXT NOT NULL,
                    updated_at TEXT DEFAULT (datetime('now'))
                );
                """
            )
            conn.commit()

    def get(self, name: str) -> Optional[str]:
        with self.connect() as conn:
            cur = conn.cursor()
            cur.execute(f"SELECT content FROM {TABLE_NAME} WHERE name=?", (name,))
            row = cur.fetchone()
        return None if row is None else row[0]

    def set(self, name: str, content: str) -> None:
        with self.connect() as conn:
            cur = conn.cursor()
            cur.execute(
                f"""
                INSERT INTO {TABLE_NAME} (name, content) VALUES (?, ?)
                ON CONFLICT(name) DO UPDATE SET
                    content=excluded.content,
                    updated_at=datetime('now');
                """,
                (name, content),
            )
            conn.commit()
        LOG.debug(f"Stored blob '{name}' ({len(content)} chars)")
