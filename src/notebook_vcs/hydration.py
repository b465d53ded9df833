"""
Conversion between stored records and materialized notebook content.

Two read modes turn a tree hash into a materialized graph:

- Shared hydration builds read-only views. Views of the same hash are
  cached and reused, so several hydrations alias the same nodes; the views
  are frozen, which makes the aliasing safe.
- Copy hydration builds fresh mutable working nodes at every level. It is
  used only for the working tree, so edits can never reach stored history.

Dehydration goes the other way. It walks a working tree in strict
post-order (boxes, then their page, then child categories, then the
category itself), storing each node once its references are known. Any
sub-tree whose content already exists anywhere in the store collapses onto
the existing record.
"""

import copy
import logging
from typing import MutableMapping, Optional, Tuple

from .model.box import BoxRecord
from .model.commit import CommitRecord
from .model.page import PageRecord
from .model.tag import TagRecord
from .model.tree import TreeRecord
from .model.views import BoxView, CommitView, PageView, TagView, TreeView, freeze
from .model.working import WorkingBox, WorkingCategory, WorkingPage
from .storage.object_store import ObjectStore

logger = logging.getLogger(__name__)

ViewCache = MutableMapping[Tuple[str, str], object]


# ========== Shared hydration ==========

def hydrate_shared(
    store: ObjectStore,
    tree_hash: str,
    cache: Optional[ViewCache] = None,
) -> TreeView:
    """
    Materialize a stored tree as read-only views.

    Views found in ``cache`` are reused instead of rebuilt, and new views
    are added to it.
    """
    if cache is None:
        cache = {}

    key = ('trees', tree_hash)
    if key in cache:
        return cache[key]

    tree = TreeRecord.from_dict(store.get('trees', tree_hash))
    view = TreeView(
        hash=tree_hash,
        name=tree.name,
        pages=tuple(_page_view(store, h, cache) for h in tree.pages),
        children=tuple(hydrate_shared(store, h, cache) for h in tree.children),
    )
    cache[key] = view
    return view


def _page_view(store: ObjectStore, page_hash: str, cache: ViewCache) -> PageView:
    key = ('pages', page_hash)
    if key in cache:
        return cache[key]

    page = PageRecord.from_dict(store.get('pages', page_hash))
    view = PageView(
        hash=page_hash,
        boxes=tuple(_box_view(store, h, cache) for h in page.boxes),
    )
    cache[key] = view
    return view


def _box_view(store: ObjectStore, box_hash: str, cache: ViewCache) -> BoxView:
    key = ('boxes', box_hash)
    if key in cache:
        return cache[key]

    box = BoxRecord.from_dict(store.get('boxes', box_hash))
    view = BoxView(hash=box_hash, payload=freeze(box.payload))
    cache[key] = view
    return view


def hydrate_commit(
    store: ObjectStore,
    commit_hash: str,
    cache: Optional[ViewCache] = None,
) -> CommitView:
    """Materialize a commit and its root category as read-only views."""
    if cache is None:
        cache = {}

    key = ('commits', commit_hash)
    if key in cache:
        return cache[key]

    commit = CommitRecord.from_dict(store.get('commits', commit_hash))
    view = CommitView(
        hash=commit_hash,
        timestamp=commit.timestamp,
        previous=commit.previous,
        root=hydrate_shared(store, commit.root_category, cache),
    )
    cache[key] = view
    return view


def hydrate_tag(
    store: ObjectStore,
    tag_hash: str,
    cache: Optional[ViewCache] = None,
) -> TagView:
    tag = TagRecord.from_dict(store.get('tags', tag_hash))
    return TagView(
        hash=tag_hash,
        name=tag.name,
        description=tag.description,
        timestamp=tag.timestamp,
        commit=hydrate_commit(store, tag.target, cache),
    )


# ========== Copy hydration ==========

def hydrate_copy(store: ObjectStore, tree_hash: str) -> WorkingCategory:
    """
    Materialize a stored tree as a fresh, independently mutable working tree.

    Nothing in the result is shared with the store, its caches, or any
    other hydration.
    """
    tree = TreeRecord.from_dict(store.get('trees', tree_hash))

    pages = []
    for page_hash in tree.pages:
        page = PageRecord.from_dict(store.get('pages', page_hash))
        boxes = [
            WorkingBox(copy.deepcopy(BoxRecord.from_dict(store.get('boxes', h)).payload))
            for h in page.boxes
        ]
        pages.append(WorkingPage(boxes))

    children = [hydrate_copy(store, h) for h in tree.children]

    return WorkingCategory(tree.name, pages, children)


# ========== Dehydration ==========

def dehydrate_box(store: ObjectStore, box: WorkingBox) -> str:
    return store.put_record(BoxRecord(box.payload))


def dehydrate_page(store: ObjectStore, page: WorkingPage) -> str:
    """Store a page's boxes, then the page itself. Returns the page hash."""
    box_hashes = [dehydrate_box(store, box) for box in page.boxes]
    return store.put_record(PageRecord(box_hashes))


def dehydrate(store: ObjectStore, category: WorkingCategory) -> str:
    """
    Store a working tree bottom-up and return the hash of its root.

    The working tree itself is left untouched.
    """
    page_hashes = [dehydrate_page(store, page) for page in category.pages]
    child_hashes = [dehydrate(store, child) for child in category.children]

    tree_hash = store.put_record(TreeRecord(category.name, page_hashes, child_hashes))
    logger.debug(
        "Dehydrated category %r to %s (%d pages, %d children)",
        category.name, tree_hash[:8], len(page_hashes), len(child_hashes),
    )
    return tree_hash


def compute_tree_hash(category: WorkingCategory) -> str:
    """
    Compute the hash a working tree would be stored under, without storing it.
    """
    page_hashes = [
        PageRecord([BoxRecord(box.payload).compute_hash() for box in page.boxes]).compute_hash()
        for page in category.pages
    ]
    child_hashes = [compute_tree_hash(child) for child in category.children]
    return TreeRecord(category.name, page_hashes, child_hashes).compute_hash()
