"""
Box record model.

Boxes hold the opaque editor payload of a page.
"""

from typing import Any
from ..integrity.hashing import compute_object_hash


class BoxRecord:
    """
    Immutable box record containing an editor payload.

    Boxes are leaf records - they contain no references. The payload is
    opaque to version control; it only has to be JSON-serializable so its
    hash is stable.
    """

    kind = 'boxes'

    def __init__(self, payload: Any):
        self.payload = payload

    def to_dict(self) -> dict:
        return {'payload': self.payload}

    @classmethod
    def from_dict(cls, data: dict) -> 'BoxRecord':
        """
        Reconstruct box from stored dictionary.

        Raises ValueError if data is invalid.
        """
        if 'payload' not in data:
            raise ValueError("Box missing payload field")
        return cls(data['payload'])

    def compute_hash(self) -> str:
        """Compute content hash of this box."""
        return compute_object_hash(self.to_dict())

    def __repr__(self) -> str:
        return f"BoxRecord(hash={self.compute_hash()[:8]}...)"
