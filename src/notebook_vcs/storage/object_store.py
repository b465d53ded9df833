"""
Content-addressed object storage.

Provides append-only record storage on top of a persistence gateway.
"""

import copy
import logging
from contextlib import contextmanager
from typing import Dict, List, Optional

from ..errors import (
    ObjectNotFoundError,
    InvalidObjectError,
)
from ..integrity.canonical import canonical_json, decode_canonical
from ..integrity.hashing import compute_object_hash
from ..integrity.verification import (
    RECORD_KINDS,
    verify_record_integrity,
    verify_record_structure,
)
from ..cache import DEFAULT_CACHE_SIZE, LRUCache
from .gateway import Batch, NOTEBOOK_INDEX_KEY, PersistenceGateway

logger = logging.getLogger(__name__)


class ObjectStore:
    """
    Content-addressed store with immutable records.

    Records are stored by their content hash in one of five collections
    (trees, pages, boxes, commits, tags). Once written, records never
    change and are never deleted.

    Writes issued inside ``unit_of_work()`` are staged and handed to the
    gateway as one atomic batch when the unit completes.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        verify_reads: bool = True,
        cache_size: int = DEFAULT_CACHE_SIZE,
    ):
        """
        Initialize object store.

        Args:
            gateway: persistence gateway holding the collections
            verify_reads: recompute hashes of records read from the gateway
            cache_size: number of decoded records kept in memory
        """
        self.gateway = gateway
        self.verify_reads = verify_reads
        self._cache = LRUCache(cache_size)
        self._pending: Optional[Batch] = None

    # ========== Records ==========

    def put(self, kind: str, record: dict) -> str:
        """
        Store a record and return its hash.

        - Hash is computed from the canonical representation
        - If the hash already exists, no action (idempotent)

        Returns the content hash.
        """
        verify_record_structure(kind, record)

        data = canonical_json(record)
        obj_hash = compute_object_hash(record)

        if self.has(kind, obj_hash):
            logger.debug("%s/%s already in store, skipped", kind, obj_hash[:8])
            return obj_hash

        self._write(kind, obj_hash, data)
        if self._pending is None:
            # Decoded copy, so later caller mutations cannot leak in
            self._cache[(kind, obj_hash)] = decode_canonical(data)
        logger.debug("Stored %s/%s (%d bytes)", kind, obj_hash[:8], len(data))

        return obj_hash

    def put_record(self, record) -> str:
        """Store a model record (BoxRecord, TreeRecord, ...) under its kind."""
        return self.put(record.kind, record.to_dict())

    def get(self, kind: str, obj_hash: str) -> dict:
        """
        Retrieve a record by its hash.

        Raises ObjectNotFoundError if the record doesn't exist.
        Raises ObjectCorruptedError if verification fails.
        """
        record = self._load(kind, obj_hash)
        if record is None:
            raise ObjectNotFoundError(obj_hash, kind)
        return copy.deepcopy(record)

    def has(self, kind: str, obj_hash: str) -> bool:
        """Check if a record exists in the store."""
        return self._load(kind, obj_hash) is not None

    def keys(self, kind: str) -> List[str]:
        """List all hashes of a collection, staged writes included."""
        self._check_kind(kind)
        keys = set(self.gateway.keys(kind))
        if self._pending is not None:
            keys.update(self._pending.get(kind, {}))
        return sorted(keys)

    def dump(self, kind: str) -> Dict[str, dict]:
        """Return every record of a collection keyed by hash."""
        return {obj_hash: self.get(kind, obj_hash) for obj_hash in self.keys(kind)}

    # ========== Notebook index ==========

    def load_notebook_index(self) -> List[dict]:
        """Load the list of notebook refs, empty if none was saved yet."""
        data = None
        if self._pending is not None:
            data = self._pending.get('notebooks', {}).get(NOTEBOOK_INDEX_KEY)
        if data is None:
            data = self.gateway.get('notebooks', NOTEBOOK_INDEX_KEY)
        if data is None:
            return []

        index = decode_canonical(data)
        if not isinstance(index, list):
            raise InvalidObjectError("Notebook index must be a list")
        return index

    def save_notebook_index(self, notebooks: List[dict]) -> None:
        self._write('notebooks', NOTEBOOK_INDEX_KEY, canonical_json(notebooks))

    # ========== Units of work ==========

    @contextmanager
    def unit_of_work(self):
        """
        Group writes into one atomic batch.

        Nested units join the outermost one. If the block raises, the staged
        writes are discarded. Staged records are read from the batch itself
        and only reach the cache once they are read back from the gateway.
        """
        if self._pending is not None:
            yield
            return

        self._pending = {}
        try:
            yield
            batch = self._pending
            if batch:
                self.gateway.apply(batch)
                logger.debug(
                    "Flushed batch of %d entries",
                    sum(len(items) for items in batch.values()),
                )
        finally:
            self._pending = None

    # ========== Internals ==========

    def _write(self, collection: str, key: str, data: bytes) -> None:
        if self._pending is not None:
            self._pending.setdefault(collection, {})[key] = data
        else:
            self.gateway.put_all(collection, {key: data})

    def _load(self, kind: str, obj_hash: str) -> Optional[dict]:
        self._check_kind(kind)

        if self._pending is not None:
            staged = self._pending.get(kind, {}).get(obj_hash)
            if staged is not None:
                return decode_canonical(staged)

        cached = self._cache.get((kind, obj_hash))
        if cached is not None:
            return cached

        data = self.gateway.get(kind, obj_hash)
        if data is None:
            return None

        try:
            record = decode_canonical(data)
        except ValueError as e:
            raise InvalidObjectError(f"undecodable {kind} record: {e}", obj_hash)

        if self.verify_reads:
            verify_record_structure(kind, record)
            verify_record_integrity(record, obj_hash)

        self._cache[(kind, obj_hash)] = record
        return record

    @staticmethod
    def _check_kind(kind: str) -> None:
        if kind not in RECORD_KINDS:
            raise InvalidObjectError(f"Invalid record kind: {kind}")

    def get_stats(self) -> dict:
        """Get per-collection record counts."""
        return {kind: len(self.keys(kind)) for kind in RECORD_KINDS}
