"""
Test export and import of notebooks.
"""

import copy
import itertools
import json

import pytest

from notebook_vcs import (
    ImportVerificationError,
    InvalidObjectError,
    NameConflictError,
    NotebookVcsEngine,
    ObjectNotFoundError,
    VcsConfig,
    __version__,
    resolve_head,
)
from notebook_vcs.export import EXPORT_VERSION, to_json
from notebook_vcs.integrity.verification import RECORD_KINDS, verify_bundle


def make_clock():
    ticks = itertools.count()
    return lambda: f"2024-01-01T00:00:00.{next(ticks):06d}+00:00"


def memory_engine():
    return NotebookVcsEngine(VcsConfig(backend='memory'), clock=make_clock())


class TestFlatExport:
    """Reachability of the exported closure."""

    @pytest.fixture
    def engine(self):
        return memory_engine()

    @pytest.fixture
    def notebook(self, engine):
        notebook = engine.create_notebook('Notes')
        chapter = notebook.working_tree.add_child('chapter')
        chapter.add_page().add_box({'text': 'hello'})
        engine.commit(notebook)
        return notebook

    def test_envelope_metadata(self, engine, notebook):
        envelope = engine.export_flat(notebook)

        metadata = envelope['metadata']
        assert metadata['exportType'] == 'flat'
        assert metadata['exportVersion'] == EXPORT_VERSION
        assert metadata['version'] == __version__
        assert envelope['content']['notebook'] == notebook.ref.to_dict()
        assert json.loads(to_json(envelope)) == envelope

    def test_current_only_includes_branch_tips(self, engine, notebook):
        c1 = notebook.ref.branches['master']
        c0 = engine.get_commit(c1).previous
        c0_root = engine.get_commit(c0).root_category

        content = engine.export_flat(notebook)['content']

        assert set(content['commits']) == {c1}
        assert c0_root not in content['trees']
        assert notebook.ref.working_tree in content['trees']

    def test_full_history_includes_ancestors(self, engine, notebook):
        c1 = notebook.ref.branches['master']
        c0 = engine.get_commit(c1).previous

        content = engine.export_flat(notebook, current_only=False)['content']

        assert set(content['commits']) == {c0, c1}
        assert engine.get_commit(c0).root_category in content['trees']

    def test_export_has_no_dangling_references(self, engine, notebook):
        engine.create_tag(notebook, 'v1', '', notebook.ref.branches['master'])
        never_exists = lambda kind, obj_hash: False

        full = engine.export_flat(notebook, current_only=False)['content']
        shallow = engine.export_flat(notebook)['content']

        assert verify_bundle(full, never_exists, full_history=True) == []
        assert verify_bundle(shallow, never_exists, full_history=False) == []

    def test_unrelated_content_is_left_out(self, engine, notebook):
        other = engine.create_notebook('Other')
        other.working_tree.add_page().add_box({'text': 'private'})
        engine.commit(other)

        content = engine.export_flat(notebook, current_only=False)['content']

        assert other.ref.branches['master'] not in content['commits']
        assert all(r['payload'] != {'text': 'private'} for r in content['boxes'].values())

    def test_detached_head_and_tags_are_seeds(self, engine, notebook):
        c1 = notebook.ref.branches['master']
        tag_hash = engine.create_tag(notebook, 'v1', '', c1, checkout=True)
        notebook.working_tree.add_page().add_box({'text': 'detached'})
        c3 = engine.commit(notebook, allow_detached=True)

        content = engine.export_flat(notebook)['content']

        assert set(content['commits']) == {c1, c3}
        assert set(content['tags']) == {tag_hash}

    def test_dump_contains_whole_store(self, engine, notebook):
        other = engine.create_notebook('Other')

        envelope = engine.export_dump()

        content = envelope['content']
        assert envelope['metadata']['exportType'] == 'dump'
        assert [n['uuid'] for n in content['notebooks']] == [notebook.uuid, other.uuid]
        for kind in RECORD_KINDS:
            assert set(content[kind]) == set(engine.store.keys(kind))


class TestFlatImport:
    """Rebuilding a notebook from a flat export."""

    @pytest.fixture
    def source(self):
        engine = memory_engine()
        notebook = engine.create_notebook('Notes')
        notebook.working_tree.add_page().add_box({'text': 'exported'})
        engine.commit(notebook)
        return engine, notebook

    def test_import_full_history(self, source):
        engine, notebook = source
        target = memory_engine()

        imported = target.import_flat(engine.export_flat(notebook, current_only=False))

        assert imported.ref == notebook.ref
        assert imported.working_tree == notebook.working_tree
        assert target.history(imported) == engine.history(notebook)
        assert target.get_notebook(notebook.uuid) is imported
        assert target.verify_notebook(imported)['all_passed']

    def test_import_shallow_history(self, source):
        engine, notebook = source
        target = memory_engine()

        imported = target.import_flat(engine.export_flat(notebook))

        head = resolve_head(imported.ref.head, imported.ref)
        assert target.history(imported) == [head]

    def test_full_export_of_shallow_import(self, source):
        """History missing from a shallow import ends the exported history."""
        engine, notebook = source
        target = memory_engine()
        imported = target.import_flat(engine.export_flat(notebook))
        head = resolve_head(imported.ref.head, imported.ref)

        envelope = target.export_flat(imported, current_only=False)

        content = envelope['content']
        assert set(content['commits']) == {head}
        assert content['commits'][head]['previous'] == engine.get_commit(head).previous
        assert verify_bundle(content, lambda kind, obj_hash: False, full_history=False) == []

        third = memory_engine()
        reimported = third.import_flat(envelope)
        assert third.history(reimported) == [head]

    def test_full_export_of_missing_head_fails(self, source):
        engine, notebook = source
        target = memory_engine()
        imported = target.import_flat(engine.export_flat(notebook))
        imported.ref.head = 'f' * 64

        with pytest.raises(ObjectNotFoundError):
            target.export_flat(imported, current_only=False)

    def test_import_is_persisted(self, source, tmp_path):
        engine, notebook = source
        config = VcsConfig(store_path=tmp_path)

        NotebookVcsEngine(config).import_flat(engine.export_flat(notebook))

        reopened = NotebookVcsEngine(config)
        assert reopened.get_notebook(notebook.uuid).working_tree == notebook.working_tree

    def test_import_existing_notebook(self, source):
        engine, notebook = source

        with pytest.raises(NameConflictError):
            engine.import_flat(engine.export_flat(notebook))

    def test_tampered_record_rejected(self, source):
        engine, notebook = source
        envelope = copy.deepcopy(engine.export_flat(notebook))
        box_hash = next(iter(envelope['content']['boxes']))
        envelope['content']['boxes'][box_hash]['payload'] = {'text': 'forged'}
        target = memory_engine()

        with pytest.raises(ImportVerificationError) as exc_info:
            target.import_flat(envelope)

        assert any(box_hash in problem for problem in exc_info.value.problems)
        assert target.list_notebooks() == []
        assert target.store.keys('boxes') == []

    def test_missing_record_rejected(self, source):
        engine, notebook = source
        envelope = copy.deepcopy(engine.export_flat(notebook))
        del envelope['content']['trees'][notebook.ref.working_tree]

        with pytest.raises(ImportVerificationError):
            memory_engine().import_flat(envelope)

    def test_dump_cannot_be_imported(self, source):
        engine, _ = source

        with pytest.raises(InvalidObjectError):
            memory_engine().import_flat(engine.export_dump())

    def test_unsupported_version_rejected(self, source):
        engine, notebook = source
        envelope = engine.export_flat(notebook)
        envelope['metadata']['exportVersion'] = EXPORT_VERSION + 1

        with pytest.raises(InvalidObjectError):
            memory_engine().import_flat(envelope)
