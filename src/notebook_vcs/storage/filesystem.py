"""
Filesystem persistence gateway.

Every file is written atomically (temp file + rename). A batch spanning
several files is first recorded in a write-ahead journal; the journal is
removed once every file of the batch is in place, and a journal left behind
by an interrupted write is replayed the next time the store is opened.
"""

import base64
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import List, Optional

from ..errors import StorageError
from ..integrity.hashing import looks_like_hash
from .gateway import Batch, PersistenceGateway, check_collection
from .layout import StorageLayout

logger = logging.getLogger(__name__)


class FileSystemGateway(PersistenceGateway):
    """Gateway storing each entry as one file under a StorageLayout."""

    def __init__(self, store_path):
        self.layout = StorageLayout(Path(store_path))
        self.layout.initialize()
        self.recover()

    def get(self, collection: str, key: str) -> Optional[bytes]:
        path = self.layout.get_path(collection, key)
        if not path.exists():
            return None
        try:
            return path.read_bytes()
        except OSError as e:
            raise StorageError("read_file", str(path), e)

    def keys(self, collection: str) -> List[str]:
        return self.layout.list_keys(collection)

    def apply(self, batch: Batch) -> None:
        for collection in batch:
            check_collection(collection)

        entries = [
            (collection, key, value)
            for collection, items in batch.items()
            for key, value in items.items()
        ]
        if not entries:
            return

        self._write_journal(batch)
        self._apply_entries(entries)
        self._clear_journal()

    def recover(self) -> bool:
        """
        Replay a journal left behind by an interrupted batch.

        Returns True if a journal was replayed.
        """
        journal_path = self.layout.journal_path
        if not journal_path.exists():
            return False

        try:
            journal = json.loads(journal_path.read_text(encoding='utf-8'))
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError("read_journal", str(journal_path), e)

        entries = [
            (collection, key, base64.b64decode(value))
            for collection, items in journal.items()
            for key, value in items.items()
        ]
        logger.warning(
            "Replaying interrupted write of %d entries from %s", len(entries), journal_path
        )
        self._apply_entries(entries)
        self._clear_journal()
        return True

    def _apply_entries(self, entries) -> None:
        for collection, key, value in entries:
            path = self.layout.get_path(collection, key)
            # Content-addressed entries never change once written
            if looks_like_hash(key) and path.exists():
                continue
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StorageError("mkdir", str(path.parent), e)
            self._write_file_atomic(path, value)

    def _write_journal(self, batch: Batch) -> None:
        journal = {
            collection: {
                key: base64.b64encode(value).decode('ascii')
                for key, value in items.items()
            }
            for collection, items in batch.items()
        }
        data = json.dumps(journal, sort_keys=True).encode('utf-8')
        self._write_file_atomic(self.layout.journal_path, data)

    def _clear_journal(self) -> None:
        try:
            self.layout.journal_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageError("clear_journal", str(self.layout.journal_path), e)

    def _write_file_atomic(self, path: Path, data: bytes) -> None:
        """
        Write a file atomically.

        Uses temp file + rename for atomicity.
        """
        fd = None
        temp_path = None
        try:
            fd, temp_path = tempfile.mkstemp(dir=str(path.parent), prefix='.tmp_')

            os.write(fd, data)
            os.fsync(fd)
            os.close(fd)
            fd = None

            os.replace(temp_path, path)
            temp_path = None

        except OSError as e:
            raise StorageError("write_file", str(path), e)

        finally:
            if fd is not None:
                os.close(fd)
            if temp_path is not None and os.path.exists(temp_path):
                os.unlink(temp_path)

    def __repr__(self) -> str:
        return f"FileSystemGateway(path={self.layout.store_root})"
