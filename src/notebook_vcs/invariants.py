"""
Notebook invariants and their verification.

Defines and checks the guarantees every notebook must keep.
"""

from typing import Callable, List

from .errors import InvariantViolationError, NotebookVcsError
from .export.traverser import ReachabilityTraverser
from .integrity.hashing import looks_like_hash
from .integrity.verification import verify_record_integrity
from .model.commit import CommitRecord
from .model.working import WorkingBox, WorkingCategory, WorkingPage
from .refs import resolve_head


class Invariant:
    """
    Represents a notebook invariant that must always hold.
    """

    def __init__(self, name: str, description: str, check_func: Callable[[], None]):
        """
        Define an invariant.

        Args:
            name: short invariant name
            description: detailed description of the invariant
            check_func: function raising InvariantViolationError when violated
        """
        self.name = name
        self.description = description
        self.check_func = check_func

    def verify(self) -> bool:
        """
        Verify this invariant holds.

        Returns True if holds, raises InvariantViolationError if not.
        """
        try:
            self.check_func()
            return True
        except InvariantViolationError:
            raise
        except NotebookVcsError as e:
            raise InvariantViolationError(self.name, f"{e}\n{self.description}")


class InvariantRegistry:
    """
    Registry of invariants.

    Provides centralized management and verification of invariants.
    """

    def __init__(self):
        self.invariants: List[Invariant] = []

    def register(self, name: str, description: str, check_func: Callable[[], None]) -> None:
        """Register a new invariant."""
        self.invariants.append(Invariant(name, description, check_func))

    def verify_all(self) -> dict:
        """
        Verify all registered invariants.

        Returns dict with:
            - passed: list of invariant names that passed
            - failed: list of (name, error) tuples for failed invariants
            - all_passed: bool indicating if all passed
        """
        result = {
            'passed': [],
            'failed': [],
            'all_passed': True,
        }

        for invariant in self.invariants:
            try:
                invariant.verify()
                result['passed'].append(invariant.name)
            except InvariantViolationError as e:
                result['failed'].append((invariant.name, str(e)))
                result['all_passed'] = False

        return result

    def list_invariants(self) -> List[tuple]:
        return [(inv.name, inv.description) for inv in self.invariants]


def create_notebook_invariants(engine, notebook) -> InvariantRegistry:
    """
    Create the invariants of one notebook in an engine's store.
    """
    registry = InvariantRegistry()
    store = engine.store
    ref = notebook.ref

    def check_content_addressing():
        traverser = ReachabilityTraverser(store, full_history=False)
        traverser.include_notebook(ref)
        for records in traverser.collected.values():
            for obj_hash, record in records.items():
                verify_record_integrity(record, obj_hash)

    registry.register(
        "content_addressing",
        "Every record the notebook reaches is stored under its own hash",
        check_content_addressing,
    )

    def check_unique_names():
        names = [store.get('tags', h)['name'] for h in ref.tags]
        duplicates = {n for n in names if names.count(n) > 1}
        if duplicates:
            raise InvariantViolationError(
                "unique_names", f"duplicate tag names: {sorted(duplicates)}"
            )
        hash_like = [b for b in ref.branches if looks_like_hash(b)]
        if hash_like:
            raise InvariantViolationError(
                "unique_names", f"branch names shadow commit hashes: {hash_like}"
            )

    registry.register(
        "unique_names",
        "Tag names are unique and branch names cannot be mistaken for hashes",
        check_unique_names,
    )

    def check_history_terminates():
        tips = set(ref.branches.values())
        tips.add(resolve_head(ref.head, ref))
        for tip in tips:
            seen = set()
            current = tip
            # A missing ancestor means shallow history, which still terminates
            while current and store.has('commits', current):
                if current in seen:
                    raise InvariantViolationError(
                        "history_terminates", f"cycle through commit {current}"
                    )
                seen.add(current)
                current = CommitRecord.from_dict(store.get('commits', current)).previous

    registry.register(
        "history_terminates",
        "Every previous-commit chain ends at a commit without parent",
        check_history_terminates,
    )

    def check_head_validity():
        head = resolve_head(ref.head, ref)
        if not store.has('commits', head):
            raise InvariantViolationError("head_validity", f"HEAD resolves to {head}")
        for name, commit_hash in ref.branches.items():
            if not store.has('commits', commit_hash):
                raise InvariantViolationError(
                    "head_validity", f"branch {name!r} points at missing {commit_hash}"
                )

    registry.register(
        "head_validity",
        "HEAD and every branch resolve to stored commits",
        check_head_validity,
    )

    def check_working_tree_isolation():
        if not store.has('trees', ref.working_tree):
            raise InvariantViolationError(
                "working_tree_isolation", f"working tree {ref.working_tree} is not stored"
            )

        own = _working_node_ids(notebook.working_tree)
        for other in engine.notebooks:
            if other is notebook or not other.prepared:
                continue
            shared = own & _working_node_ids(other.working_tree)
            if shared:
                raise InvariantViolationError(
                    "working_tree_isolation",
                    f"{len(shared)} nodes shared with notebook {other.uuid}",
                )

    registry.register(
        "working_tree_isolation",
        "The working tree is stored, mutable, and shares no nodes with other notebooks",
        check_working_tree_isolation,
    )

    return registry


def _working_node_ids(category) -> set:
    """Collect ids of every working node and container payload in a tree."""
    ids = set()
    for node in category.walk():
        if not isinstance(node, WorkingCategory):
            raise InvariantViolationError(
                "working_tree_isolation", f"unexpected node type {type(node).__name__}"
            )
        ids.add(id(node))
        for page in node.pages:
            if not isinstance(page, WorkingPage):
                raise InvariantViolationError(
                    "working_tree_isolation", f"unexpected page type {type(page).__name__}"
                )
            ids.add(id(page))
            for box in page.boxes:
                if not isinstance(box, WorkingBox):
                    raise InvariantViolationError(
                        "working_tree_isolation", f"unexpected box type {type(box).__name__}"
                    )
                ids.add(id(box))
                if isinstance(box.payload, (dict, list)):
                    ids.add(id(box.payload))
    return ids


def verify_notebook_invariants(engine, notebook) -> dict:
    """
    Verify all invariants of a notebook.

    Returns dict with verification results.
    """
    registry = create_notebook_invariants(engine, notebook)
    return registry.verify_all()
