"""
Filesystem layout for the notebook collections.

Implements content-addressed storage with directory sharding.
"""

from pathlib import Path

from ..errors import StorageError
from ..integrity.hashing import get_hash_prefix, looks_like_hash
from .gateway import COLLECTIONS, check_collection


class StorageLayout:
    """
    Manages filesystem layout for the notebook collections.

    Layout:
        store_root/
            notebooks/
                index            # list of notebook refs
            commits/ trees/ pages/ boxes/ tags/
                <prefix>/
                    <hash>       # record file
            journal.json         # pending batch, only present mid-write
    """

    JOURNAL_NAME = 'journal.json'

    def __init__(self, store_root: Path):
        """Initialize storage layout at given root."""
        self.store_root = Path(store_root).resolve()
        self.journal_path = self.store_root / self.JOURNAL_NAME

    def initialize(self) -> None:
        """
        Initialize storage directory structure.

        Creates all necessary directories.
        Idempotent - safe to call multiple times.
        """
        try:
            self.store_root.mkdir(parents=True, exist_ok=True)
            for collection in COLLECTIONS:
                (self.store_root / collection).mkdir(exist_ok=True)
        except OSError as e:
            raise StorageError("initialize", str(self.store_root), e)

    def collection_dir(self, collection: str) -> Path:
        check_collection(collection)
        return self.store_root / collection

    def get_path(self, collection: str, key: str) -> Path:
        """
        Get filesystem path for an entry.

        Hash keys use a 2-character prefix for directory sharding; other keys
        (the notebook index) live directly in the collection directory.
        """
        if looks_like_hash(key):
            prefix = get_hash_prefix(key, 2)
            return self.collection_dir(collection) / prefix / key
        return self.collection_dir(collection) / self._sanitize_name(key)

    def list_keys(self, collection: str) -> list[str]:
        """
        List all keys of a collection.

        Scans all prefix directories.
        """
        keys = []
        root = self.collection_dir(collection)

        if not root.exists():
            return keys

        try:
            for entry in root.iterdir():
                if entry.name.startswith('.'):
                    continue
                if entry.is_file():
                    keys.append(entry.name)
                    continue
                for obj_file in entry.iterdir():
                    if obj_file.is_file() and not obj_file.name.startswith('.'):
                        keys.append(obj_file.name)

        except OSError as e:
            raise StorageError("list_keys", str(root), e)

        return keys

    @staticmethod
    def _sanitize_name(name: str) -> str:
        """
        Sanitize a name for safe filesystem use.

        Prevents directory traversal and hidden files.
        """
        name = name.replace('/', '_').replace('\\', '_')
        name = name.lstrip('.')
        if not name:
            raise ValueError("Name cannot be empty after sanitization")
        return name
