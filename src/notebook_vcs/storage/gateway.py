"""
Persistence gateway interface.

The version control core does not own its storage medium. It talks to a
gateway offering blocking key-value access over a fixed set of collections.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

COLLECTIONS = ('notebooks', 'commits', 'trees', 'pages', 'boxes', 'tags')

NOTEBOOK_INDEX_KEY = 'index'

Batch = Dict[str, Dict[str, bytes]]


def check_collection(collection: str) -> None:
    if collection not in COLLECTIONS:
        raise ValueError(f"Unknown collection: {collection}")


class PersistenceGateway(ABC):
    """
    Blocking key-value storage over the notebook collections.

    Implementations must make ``apply`` all-or-nothing: after it returns or
    raises, either every entry of the batch is stored or none is.
    """

    @abstractmethod
    def get(self, collection: str, key: str) -> Optional[bytes]:
        """Return the value stored under key, or None when absent."""

    @abstractmethod
    def keys(self, collection: str) -> List[str]:
        """List every key of a collection."""

    @abstractmethod
    def apply(self, batch: Batch) -> None:
        """Write a multi-collection batch atomically."""

    def put_all(self, collection: str, items: Dict[str, bytes]) -> None:
        """Write several entries of a single collection."""
        self.apply({collection: items})

    def close(self) -> None:
        """Release resources held by the gateway."""
