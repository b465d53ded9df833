"""
Notebook model.

A notebook has two representations:
- NotebookRef, the serializable ref state persisted in the notebook index
- HydratedState, the materialized objects rebuilt from the refs on load

The hydrated state is absent until the engine prepares the notebook.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..errors import NotebookNotPreparedError
from .views import CommitView
from .working import WorkingCategory

NOTEBOOK_TYPE = 'BCP'


class NotebookRef:
    """
    Serializable ref state of a notebook.

    ``head`` is either the name of a branch (attached HEAD) or a literal
    commit hash (detached HEAD).
    """

    def __init__(
        self,
        uuid: str,
        name: str,
        branches: Dict[str, str],
        head: str,
        working_tree: str,
        tags: Optional[List[str]] = None,
        type: str = NOTEBOOK_TYPE,
    ):
        self.uuid = uuid
        self.name = name
        self.type = type
        self.branches = dict(branches)
        self.head = head
        self.working_tree = working_tree
        self.tags = list(tags or [])

    def to_dict(self) -> dict:
        return {
            'uuid': self.uuid,
            'name': self.name,
            'type': self.type,
            'branches': dict(self.branches),
            'head': self.head,
            'working_tree': self.working_tree,
            'tags': list(self.tags),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'NotebookRef':
        """
        Reconstruct ref state from the notebook index.

        Raises ValueError if data is invalid.
        """
        for field_name in ('uuid', 'name', 'branches', 'head', 'working_tree'):
            if field_name not in data:
                raise ValueError(f"Notebook missing {field_name} field")

        if not isinstance(data['branches'], dict):
            raise ValueError("Notebook branches must be a mapping")

        return cls(
            uuid=data['uuid'],
            name=data['name'],
            branches=data['branches'],
            head=data['head'],
            working_tree=data['working_tree'],
            tags=data.get('tags', []),
            type=data.get('type', NOTEBOOK_TYPE),
        )

    def copy(self) -> 'NotebookRef':
        return NotebookRef.from_dict(self.to_dict())

    def __eq__(self, other) -> bool:
        if not isinstance(other, NotebookRef):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"NotebookRef(uuid={self.uuid}, name={self.name!r}, head={self.head[:12]})"


@dataclass
class HydratedState:
    """Materialized objects mirroring a NotebookRef."""

    branches: Dict[str, CommitView] = field(default_factory=dict)
    head: Optional[CommitView] = None
    working_tree: Optional[WorkingCategory] = None

    def snapshot(self) -> 'HydratedState':
        """
        Copy for rollback.

        Views are immutable and the working tree object itself is kept, so
        callers holding it still see the restored tree.
        """
        return HydratedState(
            branches=dict(self.branches),
            head=self.head,
            working_tree=self.working_tree,
        )


class Notebook:
    """
    A notebook under version control.

    Mutate it only through NotebookVcsEngine operations, except for the
    working tree, which callers edit in place before committing.
    """

    def __init__(self, ref: NotebookRef):
        self.ref = ref
        self._state: Optional[HydratedState] = None

    @property
    def uuid(self) -> str:
        return self.ref.uuid

    @property
    def name(self) -> str:
        return self.ref.name

    @property
    def prepared(self) -> bool:
        return self._state is not None

    @property
    def state(self) -> HydratedState:
        if self._state is None:
            raise NotebookNotPreparedError(self.ref.uuid)
        return self._state

    @property
    def working_tree(self) -> WorkingCategory:
        return self.state.working_tree

    @property
    def head_commit(self) -> CommitView:
        return self.state.head

    @property
    def branch_commits(self) -> Dict[str, CommitView]:
        return self.state.branches

    def attach_state(self, state: Optional[HydratedState]) -> None:
        self._state = state

    def __repr__(self) -> str:
        return f"Notebook(uuid={self.ref.uuid}, name={self.ref.name!r}, prepared={self.prepared})"
