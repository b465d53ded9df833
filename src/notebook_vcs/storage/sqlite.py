"""
SQLite persistence gateway.

All collections share one table; a batch is applied inside a single SQLite
transaction, which gives all-or-nothing writes for free.
"""

import logging
import sqlite3
from pathlib import Path
from typing import List, Optional

from ..errors import StorageError
from .gateway import Batch, PersistenceGateway, check_collection

logger = logging.getLogger(__name__)


class SqliteGateway(PersistenceGateway):
    """Gateway backed by a single SQLite database file."""

    def __init__(self, db_path):
        self.db_path = Path(db_path)
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self.conn = sqlite3.connect(str(self.db_path))
            self._init_tables()
        except (OSError, sqlite3.Error) as e:
            raise StorageError("open", str(self.db_path), e)

    def _init_tables(self):
        self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS entries (
                collection TEXT NOT NULL,
                key TEXT NOT NULL,
                value BLOB NOT NULL,
                PRIMARY KEY (collection, key)
            );
        """)

    def get(self, collection: str, key: str) -> Optional[bytes]:
        check_collection(collection)
        try:
            row = self.conn.execute(
                "SELECT value FROM entries WHERE collection = ? AND key = ?",
                (collection, key),
            ).fetchone()
        except sqlite3.Error as e:
            raise StorageError("get", f"{collection}/{key}", e)
        return bytes(row[0]) if row else None

    def keys(self, collection: str) -> List[str]:
        check_collection(collection)
        try:
            rows = self.conn.execute(
                "SELECT key FROM entries WHERE collection = ?", (collection,)
            ).fetchall()
        except sqlite3.Error as e:
            raise StorageError("keys", collection, e)
        return [row[0] for row in rows]

    def apply(self, batch: Batch) -> None:
        rows = []
        for collection, items in batch.items():
            check_collection(collection)
            rows.extend((collection, key, value) for key, value in items.items())

        if not rows:
            return

        try:
            with self.conn:
                self.conn.executemany(
                    "INSERT OR REPLACE INTO entries (collection, key, value) VALUES (?, ?, ?)",
                    rows,
                )
        except sqlite3.Error as e:
            raise StorageError("apply", str(self.db_path), e)

        logger.debug("Committed %d entries to %s", len(rows), self.db_path)

    def close(self) -> None:
        self.conn.close()

    def __repr__(self) -> str:
        return f"SqliteGateway(path={self.db_path})"
