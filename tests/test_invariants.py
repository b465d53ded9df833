"""
Test notebook invariant checks.
"""

import pytest

from notebook_vcs import InvariantViolationError, NotebookVcsEngine, VcsConfig, resolve_head
from notebook_vcs.invariants import InvariantRegistry


def failed_names(result):
    return [name for name, _ in result['failed']]


class TestNotebookInvariants:

    @pytest.fixture
    def engine(self):
        return NotebookVcsEngine(VcsConfig(backend='memory'))

    @pytest.fixture
    def notebook(self, engine):
        notebook = engine.create_notebook('Notes')
        notebook.working_tree.add_page().add_box({'text': 'a'})
        engine.commit(notebook)
        return notebook

    def test_healthy_notebook_passes(self, engine, notebook):
        result = engine.verify_notebook(notebook)

        assert result['all_passed']
        assert set(result['passed']) == {
            'content_addressing',
            'unique_names',
            'history_terminates',
            'head_validity',
            'working_tree_isolation',
        }

    def test_shared_working_nodes_detected(self, engine, notebook):
        other = engine.create_notebook('Other')
        other.working_tree.pages.append(notebook.working_tree.pages[0])

        result = engine.verify_notebook(other)

        assert failed_names(result) == ['working_tree_isolation']

    def test_dangling_head_detected(self, engine, notebook):
        notebook.ref.head = 'f' * 64

        result = engine.verify_notebook(notebook)

        assert 'head_validity' in failed_names(result)
        assert not result['all_passed']

    def test_duplicate_tag_names_detected(self, engine, notebook):
        head = resolve_head(notebook.ref.head, notebook.ref)
        tag_hash = engine.create_tag(notebook, 'v1', '', head)
        notebook.ref.tags.append(tag_hash)

        result = engine.verify_notebook(notebook)

        assert failed_names(result) == ['unique_names']


class TestInvariantRegistry:

    def test_verify_all_collects_failures(self):
        registry = InvariantRegistry()

        def broken():
            raise InvariantViolationError('broken', 'always fails')

        registry.register('fine', 'always holds', lambda: None)
        registry.register('broken', 'always fails', broken)

        result = registry.verify_all()

        assert result['passed'] == ['fine']
        assert failed_names(result) == ['broken']
        assert result['all_passed'] is False
        assert registry.list_invariants() == [
            ('fine', 'always holds'),
            ('broken', 'always fails'),
        ]
