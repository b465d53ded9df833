"""
Tree record model.

Trees are the categories of a notebook: a name, its pages and its child
categories.
"""

from typing import List
from ..integrity.hashing import compute_object_hash


class TreeRecord:
    """
    Immutable category tree record.

    A tree references:
    - An ordered list of page hashes
    - An ordered list of child tree hashes

    Trees are acyclic by construction: a tree's hash cannot be computed
    before the hashes of its children exist, so no tree can reference an
    ancestor.
    """

    kind = 'trees'

    def __init__(
        self,
        name: str,
        pages: List[str],
        children: List[str],
    ):
        """
        Create a tree.

        Args:
            name: category name
            pages: ordered list of page hashes
            children: ordered list of child tree hashes
        """
        self.name = name
        self.pages = list(pages)  # Copy to ensure immutability
        self.children = list(children)

    def to_dict(self) -> dict:
        """
        Convert tree to storable dictionary representation.

        Returns canonical dict that can be hashed and stored.
        """
        return {
            'name': self.name,
            'pages': self.pages,
            'children': self.children,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'TreeRecord':
        """
        Reconstruct tree from stored dictionary.

        Raises ValueError if data is invalid.
        """
        for field in ('name', 'pages', 'children'):
            if field not in data:
                raise ValueError(f"Tree missing {field} field")

        if not isinstance(data['pages'], list):
            raise ValueError("Tree pages must be a list")
        if not isinstance(data['children'], list):
            raise ValueError("Tree children must be a list")

        return cls(data['name'], data['pages'], data['children'])

    def compute_hash(self) -> str:
        """Compute content hash of this tree."""
        return compute_object_hash(self.to_dict())

    def __repr__(self) -> str:
        return (
            f"TreeRecord(name={self.name!r}, pages={len(self.pages)}, "
            f"children={len(self.children)}, hash={self.compute_hash()[:8]}...)"
        )
