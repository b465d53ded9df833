"""
Reachability traversal for notebook export.

Collects the minimal set of records needed to rebuild a notebook without
the rest of the store.
"""

import logging
from typing import Dict

from ..integrity.verification import RECORD_KINDS
from ..model.commit import CommitRecord
from ..model.notebook import NotebookRef
from ..model.page import PageRecord
from ..model.tag import TagRecord
from ..model.tree import TreeRecord
from ..refs import is_detached, resolve_head
from ..storage.object_store import ObjectStore

logger = logging.getLogger(__name__)


class ReachabilityTraverser:
    """
    Collects records reachable from a set of seeds.

    Every ``include_*`` method is idempotent: a hash that was already
    collected is skipped, so shared sub-trees and shared history are visited
    once.

    With ``full_history`` each commit pulls in its previous commits back to
    the first commit; otherwise only the seeded commits themselves are kept.
    """

    def __init__(self, store: ObjectStore, full_history: bool = False):
        self.store = store
        self.full_history = full_history
        self.collected: Dict[str, Dict[str, dict]] = {kind: {} for kind in RECORD_KINDS}

    def include_tree(self, tree_hash: str) -> None:
        """Include a tree, its pages, their boxes, and all descendant trees."""
        if tree_hash in self.collected['trees']:
            return

        record = self.store.get('trees', tree_hash)
        self.collected['trees'][tree_hash] = record
        tree = TreeRecord.from_dict(record)

        for page_hash in tree.pages:
            self.include_page(page_hash)

        for child_hash in tree.children:
            self.include_tree(child_hash)

    def include_page(self, page_hash: str) -> None:
        if page_hash in self.collected['pages']:
            return

        record = self.store.get('pages', page_hash)
        self.collected['pages'][page_hash] = record

        for box_hash in PageRecord.from_dict(record).boxes:
            if box_hash not in self.collected['boxes']:
                self.collected['boxes'][box_hash] = self.store.get('boxes', box_hash)

    def include_commit(self, commit_hash: str) -> None:
        """
        Include a commit and its root tree.

        History is followed iteratively so long chains do not hit the
        recursion limit. It stops at the first ancestor missing from the
        store, as in a notebook imported from a shallow export; the commit
        itself must exist.
        """
        current = commit_hash
        while current and current not in self.collected['commits']:
            if current != commit_hash and not self.store.has('commits', current):
                logger.debug("History truncated at missing commit %s", current[:8])
                break
            record = self.store.get('commits', current)
            self.collected['commits'][current] = record
            commit = CommitRecord.from_dict(record)
            self.include_tree(commit.root_category)

            if not self.full_history:
                break
            current = commit.previous

    def include_tag(self, tag_hash: str) -> None:
        if tag_hash in self.collected['tags']:
            return

        record = self.store.get('tags', tag_hash)
        self.collected['tags'][tag_hash] = record
        self.include_commit(TagRecord.from_dict(record).target)

    def include_notebook(self, notebook: NotebookRef) -> None:
        """
        Seed the traversal from a notebook's refs.

        Seeds: every branch tip, the working tree, the HEAD commit when
        detached, and every tag of the notebook.
        """
        for commit_hash in notebook.branches.values():
            self.include_commit(commit_hash)

        self.include_tree(notebook.working_tree)

        if is_detached(notebook):
            self.include_commit(resolve_head(notebook.head, notebook))

        for tag_hash in notebook.tags:
            self.include_tag(tag_hash)

        logger.debug(
            "Collected %s for notebook %s",
            ", ".join(f"{len(v)} {k}" for k, v in self.collected.items()),
            notebook.uuid,
        )
