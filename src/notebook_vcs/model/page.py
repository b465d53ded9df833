"""
Page record model.

Pages are ordered sequences of box references.
"""

from typing import List
from ..integrity.hashing import compute_object_hash


class PageRecord:
    """
    Immutable page record.

    The order of ``boxes`` is significant: two pages holding the same boxes
    in a different order hash differently.
    """

    kind = 'pages'

    def __init__(self, boxes: List[str]):
        self.boxes = list(boxes)

    def to_dict(self) -> dict:
        return {'boxes': self.boxes}

    @classmethod
    def from_dict(cls, data: dict) -> 'PageRecord':
        """
        Reconstruct page from stored dictionary.

        Raises ValueError if data is invalid.
        """
        if 'boxes' not in data:
            raise ValueError("Page missing boxes field")

        boxes = data['boxes']
        if not isinstance(boxes, list):
            raise ValueError("Page boxes must be a list")

        return cls(boxes)

    def compute_hash(self) -> str:
        """Compute content hash of this page."""
        return compute_object_hash(self.to_dict())

    def __repr__(self) -> str:
        return f"PageRecord(boxes={len(self.boxes)}, hash={self.compute_hash()[:8]}...)"
