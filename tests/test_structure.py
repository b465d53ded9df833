"""
Test package structure and exports.

Verifies that the package is correctly structured and exposes the right API.
"""

import notebook_vcs
from notebook_vcs import (
    NotebookVcsEngine,
    Notebook,
    TreeView,
    WorkingCategory,
    NotebookVcsError,
    VcsConfig,
)


def test_package_exports():
    """Verify that the package exposes the expected classes."""
    assert NotebookVcsEngine is not None
    assert Notebook is not None
    assert TreeView is not None
    assert WorkingCategory is not None
    assert NotebookVcsError is not None
    for name in notebook_vcs.__all__:
        assert hasattr(notebook_vcs, name)


def test_engine_initialization(tmp_path):
    """Verify that the engine creates its store layout."""
    engine = NotebookVcsEngine(VcsConfig(store_path=tmp_path))

    for collection in ('notebooks', 'commits', 'trees', 'pages', 'boxes', 'tags'):
        assert (tmp_path / collection).is_dir()
    assert engine.list_notebooks() == []


def test_subpackage_imports():
    """Verify that subpackages are importable (even if not exposed directly)."""
    import notebook_vcs.storage.object_store
    import notebook_vcs.integrity.hashing
    import notebook_vcs.model.tree
    import notebook_vcs.export.traverser

    assert notebook_vcs.storage.object_store.ObjectStore is not None
    assert notebook_vcs.integrity.hashing.compute_hash is not None
