"""
Tag record model.

Tags give a commit a permanent, immutable name.
"""

from ..integrity.hashing import compute_object_hash


class TagRecord:
    """
    Immutable tag record.

    Unlike branches, tags never move once created.
    """

    kind = 'tags'

    def __init__(self, name: str, description: str, timestamp: str, target: str):
        self.name = name
        self.description = description
        self.timestamp = timestamp
        self.target = target

    def to_dict(self) -> dict:
        return {
            'name': self.name,
            'description': self.description,
            'timestamp': self.timestamp,
            'target': self.target,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'TagRecord':
        """
        Reconstruct tag from stored dictionary.

        Raises ValueError if data is invalid.
        """
        for field in ('name', 'timestamp', 'target'):
            if field not in data:
                raise ValueError(f"Tag missing {field} field")

        return cls(
            data['name'],
            data.get('description', ''),
            data['timestamp'],
            data['target'],
        )

    def compute_hash(self) -> str:
        """Compute content hash of this tag."""
        return compute_object_hash(self.to_dict())

    def __repr__(self) -> str:
        return f"TagRecord(name={self.name!r}, target={self.target[:8]}...)"
