"""
Commit record model.

Commits snapshot a root category at a point in time.
"""

from typing import Optional
from ..integrity.hashing import compute_object_hash


class CommitRecord:
    """
    Immutable commit record.

    A commit references:
    - The root category tree of the notebook at commit time
    - Optional previous commit hash

    The first commit of a notebook has no previous commit. Absence is
    represented by omitting the field, never by a reserved hash value.
    Commits form a linear chain per branch through previous references.
    """

    kind = 'commits'

    def __init__(
        self,
        timestamp: str,
        root_category: str,
        previous: Optional[str] = None,
    ):
        """
        Create a commit.

        Args:
            timestamp: ISO-8601 creation time
            root_category: hash of the root tree
            previous: optional previous commit hash
        """
        self.timestamp = timestamp
        self.root_category = root_category
        self.previous = previous

    def to_dict(self) -> dict:
        """
        Convert commit to storable dictionary representation.

        Returns canonical dict that can be hashed and stored.
        """
        obj = {
            'timestamp': self.timestamp,
            'root_category': self.root_category,
        }

        if self.previous:
            obj['previous'] = self.previous

        return obj

    @classmethod
    def from_dict(cls, data: dict) -> 'CommitRecord':
        """
        Reconstruct commit from stored dictionary.

        Raises ValueError if data is invalid.
        """
        if 'timestamp' not in data:
            raise ValueError("Commit missing timestamp field")

        if 'root_category' not in data:
            raise ValueError("Commit missing root_category field")

        return cls(
            data['timestamp'],
            data['root_category'],
            data.get('previous'),
        )

    def compute_hash(self) -> str:
        """Compute content hash of this commit."""
        return compute_object_hash(self.to_dict())

    def has_previous(self) -> bool:
        """Check if this commit has a previous commit."""
        return self.previous is not None

    def __repr__(self) -> str:
        hash_preview = self.compute_hash()[:8]
        previous_preview = self.previous[:8] + "..." if self.previous else "None"
        return f"CommitRecord(previous={previous_preview}, hash={hash_preview}...)"
