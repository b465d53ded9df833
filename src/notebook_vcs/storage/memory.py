"""
In-memory persistence gateway.

Used for tests and for throwaway notebooks.
"""

from typing import Dict, List, Optional

from .gateway import COLLECTIONS, Batch, PersistenceGateway, check_collection


class MemoryGateway(PersistenceGateway):
    """Gateway keeping every collection in a dictionary."""

    def __init__(self):
        self.collections: Dict[str, Dict[str, bytes]] = {c: {} for c in COLLECTIONS}

    def get(self, collection: str, key: str) -> Optional[bytes]:
        check_collection(collection)
        return self.collections[collection].get(key)

    def keys(self, collection: str) -> List[str]:
        check_collection(collection)
        return list(self.collections[collection])

    def apply(self, batch: Batch) -> None:
        # Validate everything before touching any collection
        for collection, items in batch.items():
            check_collection(collection)
            for key, value in items.items():
                if not isinstance(value, bytes):
                    raise TypeError(f"Value for {collection}/{key} must be bytes")

        for collection, items in batch.items():
            self.collections[collection].update(items)
