"""
Notebook VCS Engine.

Main entry point coordinating all components.
"""

import logging
import uuid as uuid_lib
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from .cache import LRUCache
from .config import VcsConfig, open_gateway
from .errors import (
    BranchNameTakenError,
    DetachedHeadError,
    ImportVerificationError,
    InvalidObjectError,
    InvariantViolationError,
    NameConflictError,
    NoSuchBranchError,
    NoSuchCommitError,
    NoSuchNotebookError,
    NoSuchTagError,
    TagNameTakenError,
    WorkingTreeDirtyError,
)
from .export.envelope import build_envelope, parse_envelope
from .export.traverser import ReachabilityTraverser
from .hydration import (
    ViewCache,
    compute_tree_hash,
    dehydrate,
    hydrate_commit,
    hydrate_copy,
    hydrate_shared,
    hydrate_tag,
)
from .integrity.verification import RECORD_KINDS, verify_bundle
from .invariants import verify_notebook_invariants
from .model.commit import CommitRecord
from .model.notebook import HydratedState, Notebook, NotebookRef
from .model.tag import TagRecord
from .model.tree import TreeRecord
from .model.views import CommitView, TagView, TreeView
from .refs import current_branch, is_detached, resolve_head, validate_ref_name
from .storage.gateway import PersistenceGateway
from .storage.object_store import ObjectStore

logger = logging.getLogger(__name__)


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class NotebookVcsEngine:
    """
    Main engine for notebook version control.

    This is the primary interface for:
    - Creating, listing and renaming notebooks
    - Saving the working tree and committing it
    - Creating and checking out branches and tags
    - Inspecting history through read-only views
    - Exporting and importing notebooks

    Every mutating operation applies all of its store writes or none of
    them. If an operation fails, the notebook's in-memory state is restored
    to what it was before the call.

    The engine is not thread-safe; a notebook must be driven by one caller
    at a time.
    """

    def __init__(
        self,
        config: Optional[VcsConfig] = None,
        gateway: Optional[PersistenceGateway] = None,
        clock: Optional[Callable[[], str]] = None,
    ):
        """
        Open the notebook store and prepare every notebook in it.

        Args:
            config: store configuration (defaults to VcsConfig())
            gateway: persistence gateway; built from config when omitted
            clock: callable returning ISO-8601 timestamps for new records
        """
        self.config = config or VcsConfig()
        self.gateway = gateway if gateway is not None else open_gateway(self.config)
        self.store = ObjectStore(
            self.gateway,
            verify_reads=self.config.verify_reads,
            cache_size=self.config.cache_size,
        )
        self.clock = clock or utc_timestamp
        self._views: ViewCache = LRUCache(self.config.cache_size)

        self.notebooks: List[Notebook] = [
            Notebook(NotebookRef.from_dict(data))
            for data in self.store.load_notebook_index()
        ]
        for notebook in self.notebooks:
            self.prepare_notebook(notebook)

        logger.info("Opened notebook store with %d notebooks", len(self.notebooks))

    def close(self) -> None:
        self.gateway.close()

    # ========== Notebooks ==========

    def create_notebook(self, name: str) -> Notebook:
        """
        Create a new notebook with an empty root category.

        The notebook starts with one commit on the default branch, HEAD
        attached to that branch.
        """
        with self._transaction():
            tree_hash = self.store.put_record(
                TreeRecord(self.config.root_category_name, [], [])
            )
            commit_hash = self.store.put_record(CommitRecord(self.clock(), tree_hash))

            branch = self.config.default_branch
            notebook = Notebook(NotebookRef(
                uuid=str(uuid_lib.uuid4()),
                name=name,
                branches={branch: commit_hash},
                head=branch,
                working_tree=tree_hash,
            ))

            self.notebooks.append(notebook)
            self.prepare_notebook(notebook)
            self._persist_notebooks()

        logger.info("Created notebook %s (%r)", notebook.uuid, name)
        return notebook

    def list_notebooks(self) -> List[Notebook]:
        return list(self.notebooks)

    def get_notebook(self, uuid: str) -> Notebook:
        """Find a notebook by uuid. Raises NoSuchNotebookError."""
        for notebook in self.notebooks:
            if notebook.uuid == uuid:
                return notebook
        raise NoSuchNotebookError(uuid)

    def rename_notebook(self, notebook: Notebook, name: str) -> None:
        notebook = self.get_notebook(notebook.uuid)
        with self._transaction(notebook):
            notebook.ref.name = name
            self._persist_notebooks()
        logger.info("Renamed notebook %s to %r", notebook.uuid, name)

    def prepare_notebook(self, notebook: Notebook) -> None:
        """
        Load a notebook's hydrated state from its refs.

        Branch tips and HEAD are hydrated as shared read-only views; the
        working tree is copy-hydrated so it can be edited freely.
        """
        ref = notebook.ref
        state = HydratedState(
            branches={
                name: self._commit_view(commit_hash)
                for name, commit_hash in ref.branches.items()
            },
            head=self._commit_view(resolve_head(ref.head, ref)),
            working_tree=hydrate_copy(self.store, ref.working_tree),
        )
        notebook.attach_state(state)

    # ========== Working tree ==========

    def persist_working_tree(self, notebook: Notebook) -> str:
        """
        Save uncommitted changes without committing them.

        Returns the hash of the stored working tree.
        """
        with self._transaction(notebook):
            tree_hash = self._store_working_tree(notebook)
            self._persist_notebooks()
        return tree_hash

    def is_dirty(self, notebook: Notebook) -> bool:
        """
        Check whether the working tree differs from the HEAD commit's tree.

        The working tree's hash is recomputed, so edits that were never
        persisted count as changes too.
        """
        head = self._head_record(notebook)
        return compute_tree_hash(notebook.working_tree) != head.root_category

    def status(self, notebook: Notebook) -> Dict[str, object]:
        ref = notebook.ref
        return {
            'branch': current_branch(ref),
            'detached': is_detached(ref),
            'head': resolve_head(ref.head, ref),
            'working_tree': ref.working_tree,
            'dirty': self.is_dirty(notebook),
        }

    # ========== Commits ==========

    def commit(
        self,
        notebook: Notebook,
        persist_working_tree: bool = True,
        allow_detached: bool = False,
    ) -> str:
        """
        Commit the working tree on HEAD.

        On an attached HEAD the branch advances to the new commit. On a
        detached HEAD (only with ``allow_detached``) HEAD itself moves and no
        branch is touched.

        Args:
            notebook: the notebook to commit
            persist_working_tree: store the working tree first; when False
                the last persisted working tree is committed
            allow_detached: allow committing on a detached HEAD

        Returns:
            str: hash of the new commit
        """
        ref = notebook.ref

        with self._transaction(notebook):
            if persist_working_tree:
                self._store_working_tree(notebook)

            if is_detached(ref) and not allow_detached:
                raise DetachedHeadError()

            commit = CommitRecord(
                timestamp=self.clock(),
                root_category=ref.working_tree,
                previous=resolve_head(ref.head, ref),
            )
            commit_hash = self.store.put_record(commit)
            view = self._commit_view(commit_hash)

            branch = current_branch(ref)
            if branch is None:
                ref.head = commit_hash
            else:
                ref.branches[branch] = commit_hash
                notebook.state.branches[branch] = view
            notebook.state.head = view

            self._persist_notebooks()

        logger.info(
            "Committed %s on %s of notebook %s",
            commit_hash[:8], branch or "detached HEAD", notebook.uuid,
        )
        return commit_hash

    def history(
        self,
        notebook: Notebook,
        start: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[str]:
        """
        List commit hashes from ``start`` (default: HEAD) back to the first commit.

        Newest first. Stops early at a commit whose ancestors are not in the
        store, as after importing a shallow export.
        """
        ref = notebook.ref
        current = start if start is not None else resolve_head(ref.head, ref)
        if not self.store.has('commits', current):
            raise NoSuchCommitError(current)

        hashes = []
        while current:
            if limit is not None and len(hashes) >= limit:
                break
            if not self.store.has('commits', current):
                logger.debug("History truncated at missing commit %s", current[:8])
                break
            hashes.append(current)
            current = CommitRecord.from_dict(self.store.get('commits', current)).previous

        return hashes

    def get_commit(self, commit_hash: str) -> CommitRecord:
        if not self.store.has('commits', commit_hash):
            raise NoSuchCommitError(commit_hash)
        return CommitRecord.from_dict(self.store.get('commits', commit_hash))

    # ========== Branches ==========

    def create_branch(
        self,
        notebook: Notebook,
        name: str,
        source_commit_hash: str,
        checkout: bool = False,
    ) -> None:
        """
        Create a branch pointing at an existing commit.

        No commit is created. With ``checkout`` HEAD attaches to the new
        branch, but the working tree is left as it is; use checkout_branch
        to materialize the branch's content.
        """
        validate_ref_name(name)
        ref = notebook.ref

        if name in ref.branches:
            raise BranchNameTakenError(name)

        if not self.store.has('commits', source_commit_hash):
            raise NoSuchCommitError(source_commit_hash)

        with self._transaction(notebook):
            view = self._commit_view(source_commit_hash)
            ref.branches[name] = source_commit_hash
            notebook.state.branches[name] = view

            if checkout:
                ref.head = name
                notebook.state.head = view

            self._persist_notebooks()

        logger.info(
            "Created branch %r at %s in notebook %s",
            name, source_commit_hash[:8], notebook.uuid,
        )

    def checkout_branch(self, notebook: Notebook, name: str, force: bool = False) -> None:
        """
        Check out a branch, replacing the working tree with its content.

        If the working tree contains uncommitted changes, the checkout fails
        unless ``force`` is set, in which case the changes are discarded.
        """
        ref = notebook.ref

        if name not in ref.branches:
            raise NoSuchBranchError(name)

        self._guard_dirty(notebook, force)

        with self._transaction(notebook):
            ref.head = name
            self._replace_working_tree(notebook, ref.branches[name])
            self._persist_notebooks()

        logger.info("Checked out branch %r in notebook %s", name, notebook.uuid)

    def branch_view(self, notebook: Notebook, name: str) -> CommitView:
        if name not in notebook.ref.branches:
            raise NoSuchBranchError(name)
        return self._commit_view(notebook.ref.branches[name])

    # ========== Tags ==========

    def create_tag(
        self,
        notebook: Notebook,
        name: str,
        description: str,
        target_commit_hash: str,
        checkout: bool = False,
    ) -> str:
        """
        Create an immutable tag on an existing commit.

        With ``checkout`` HEAD becomes detached at the tagged commit; the
        working tree is left as it is.

        Returns:
            str: hash of the new tag
        """
        validate_ref_name(name)
        ref = notebook.ref

        if self._find_tag(notebook, name) is not None:
            raise TagNameTakenError(name)

        if not self.store.has('commits', target_commit_hash):
            raise NoSuchCommitError(target_commit_hash)

        with self._transaction(notebook):
            tag_hash = self.store.put_record(
                TagRecord(name, description, self.clock(), target_commit_hash)
            )
            ref.tags.append(tag_hash)

            if checkout:
                ref.head = target_commit_hash
                notebook.state.head = self._commit_view(target_commit_hash)

            self._persist_notebooks()

        logger.info(
            "Created tag %r at %s in notebook %s",
            name, target_commit_hash[:8], notebook.uuid,
        )
        return tag_hash

    def checkout_tag(self, notebook: Notebook, tag: str, force: bool = False) -> None:
        """
        Check out a tag by hash or name, leaving HEAD detached at its commit.

        The tag must belong to the notebook. The dirty-tree guard is the same
        as for checkout_branch.
        """
        tag_hash = self._find_tag(notebook, tag)
        if tag_hash is None:
            raise NoSuchTagError(tag)

        self._guard_dirty(notebook, force)

        target = TagRecord.from_dict(self.store.get('tags', tag_hash)).target
        with self._transaction(notebook):
            notebook.ref.head = target
            self._replace_working_tree(notebook, target)
            self._persist_notebooks()

        logger.info("Checked out tag %r in notebook %s", tag, notebook.uuid)

    def list_tags(self, notebook: Notebook) -> List[TagView]:
        return [hydrate_tag(self.store, h, self._views) for h in notebook.ref.tags]

    def tag_view(self, notebook: Notebook, tag: str) -> TagView:
        tag_hash = self._find_tag(notebook, tag)
        if tag_hash is None:
            raise NoSuchTagError(tag)
        return hydrate_tag(self.store, tag_hash, self._views)

    # ========== Read-only inspection ==========

    def commit_view(self, commit_hash: str) -> CommitView:
        """Hydrate any stored commit as a read-only view."""
        return self._commit_view(commit_hash)

    def tree_view(self, tree_hash: str) -> TreeView:
        return hydrate_shared(self.store, tree_hash, self._views)

    # ========== Export / import ==========

    def export_flat(self, notebook: Notebook, current_only: bool = True) -> dict:
        """
        Export one notebook with every record needed to rebuild it.

        With ``current_only`` only the commits the notebook points at are
        included; otherwise their whole history is included as well.
        """
        notebook = self.get_notebook(notebook.uuid)
        traverser = ReachabilityTraverser(self.store, full_history=not current_only)
        traverser.include_notebook(notebook.ref)

        content = {'notebook': notebook.ref.to_dict()}
        content.update(traverser.collected)

        logger.info(
            "Exported notebook %s (%s)",
            notebook.uuid, "current" if current_only else "full history",
        )
        return build_envelope('flat', content, self.clock())

    def export_dump(self) -> dict:
        """Export the whole store without any traversal."""
        content = {'notebooks': [n.ref.to_dict() for n in self.notebooks]}
        for kind in RECORD_KINDS:
            content[kind] = self.store.dump(kind)

        logger.info("Exported full store dump")
        return build_envelope('dump', content, self.clock())

    def import_flat(self, envelope: dict) -> Notebook:
        """
        Rebuild a notebook from a flat export.

        Every record is checked against its hash and every reference must
        resolve inside the export or the store before anything is written.

        Raises ImportVerificationError if the export is inconsistent.
        Raises NameConflictError if the notebook already exists.
        """
        metadata, content = parse_envelope(envelope)
        if metadata['exportType'] != 'flat':
            raise InvalidObjectError("Only flat exports can be imported")

        try:
            ref = NotebookRef.from_dict(content.get('notebook') or {})
        except ValueError as e:
            raise InvalidObjectError(f"invalid notebook in export: {e}")

        if any(n.uuid == ref.uuid for n in self.notebooks):
            raise NameConflictError(ref.uuid)

        collections = {kind: content.get(kind, {}) for kind in RECORD_KINDS}
        for kind, records in collections.items():
            if not isinstance(records, dict):
                raise InvalidObjectError(f"export {kind} must be a mapping of hash to record")

        problems = verify_bundle(collections, self.store.has, full_history=False)
        problems.extend(self._missing_notebook_refs(ref, collections))
        if problems:
            raise ImportVerificationError(problems)

        notebook = Notebook(ref)
        with self._transaction():
            for kind in RECORD_KINDS:
                for record in collections[kind].values():
                    self.store.put(kind, record)
            self.notebooks.append(notebook)
            self.prepare_notebook(notebook)
            self._persist_notebooks()

        logger.info("Imported notebook %s (%r)", ref.uuid, ref.name)
        return notebook

    # ========== Diagnostics ==========

    def verify_notebook(self, notebook: Notebook) -> dict:
        """Check the notebook invariants. See invariants.py."""
        return verify_notebook_invariants(self, notebook)

    def get_statistics(self) -> Dict[str, int]:
        stats = self.store.get_stats()
        stats['notebooks'] = len(self.notebooks)
        return stats

    # ========== Internals ==========

    @contextmanager
    def _transaction(self, notebook: Optional[Notebook] = None):
        """
        Run an operation as one unit of work.

        On failure the staged writes are dropped, and the notebook list and
        the notebook's refs and hydrated state are restored.
        """
        saved_notebooks = list(self.notebooks)
        saved_ref = notebook.ref.copy() if notebook is not None else None
        saved_state = (
            notebook.state.snapshot()
            if notebook is not None and notebook.prepared else None
        )

        try:
            with self.store.unit_of_work():
                yield
        except BaseException:
            self.notebooks[:] = saved_notebooks
            if notebook is not None:
                notebook.ref = saved_ref
                notebook.attach_state(saved_state)
            self._views.clear()
            raise

    def _persist_notebooks(self) -> None:
        self.store.save_notebook_index([n.ref.to_dict() for n in self.notebooks])

    def _store_working_tree(self, notebook: Notebook) -> str:
        tree_hash = dehydrate(self.store, notebook.working_tree)
        notebook.ref.working_tree = tree_hash
        return tree_hash

    def _replace_working_tree(self, notebook: Notebook, commit_hash: str) -> None:
        view = self._commit_view(commit_hash)
        root_hash = view.root.hash

        working_tree = hydrate_copy(self.store, root_hash)
        tree_hash = dehydrate(self.store, working_tree)
        if tree_hash != root_hash:
            raise InvariantViolationError(
                "working_tree_round_trip",
                f"checked out tree {root_hash} was stored as {tree_hash}",
            )

        notebook.ref.working_tree = tree_hash
        notebook.state.working_tree = working_tree
        notebook.state.head = view

    def _guard_dirty(self, notebook: Notebook, force: bool) -> None:
        if not self.is_dirty(notebook):
            return
        if not force:
            raise WorkingTreeDirtyError()
        logger.warning("Discarding uncommitted changes in notebook %s", notebook.uuid)

    def _head_record(self, notebook: Notebook) -> CommitRecord:
        ref = notebook.ref
        return self.get_commit(resolve_head(ref.head, ref))

    def _commit_view(self, commit_hash: str) -> CommitView:
        if not self.store.has('commits', commit_hash):
            raise NoSuchCommitError(commit_hash)
        return hydrate_commit(self.store, commit_hash, self._views)

    def _find_tag(self, notebook: Notebook, tag: str) -> Optional[str]:
        """Resolve a tag hash or name among the notebook's tags."""
        if tag in notebook.ref.tags:
            return tag
        for tag_hash in notebook.ref.tags:
            if self.store.get('tags', tag_hash)['name'] == tag:
                return tag_hash
        return None

    def _missing_notebook_refs(self, ref: NotebookRef, collections: dict) -> List[str]:
        def present(kind, obj_hash):
            return obj_hash in collections[kind] or self.store.has(kind, obj_hash)

        problems = []
        for name, commit_hash in ref.branches.items():
            if not present('commits', commit_hash):
                problems.append(f"branch {name!r} points at missing commit {commit_hash}")
        if not present('trees', ref.working_tree):
            problems.append(f"working tree {ref.working_tree} is missing")
        head = resolve_head(ref.head, ref)
        if not present('commits', head):
            problems.append(f"HEAD points at missing commit {head}")
        for tag_hash in ref.tags:
            if not present('tags', tag_hash):
                problems.append(f"tag {tag_hash} is missing")
        return problems

    def __repr__(self) -> str:
        return (
            f"NotebookVcsEngine("
            f"backend={self.config.backend}, "
            f"notebooks={len(self.notebooks)})"
        )
