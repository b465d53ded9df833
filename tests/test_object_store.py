"""
Test the object store and its persistence gateways.
"""

import tempfile

import pytest

from notebook_vcs import (
    BoxRecord,
    FileSystemGateway,
    InvalidObjectError,
    MemoryGateway,
    ObjectCorruptedError,
    ObjectNotFoundError,
    ObjectStore,
    SqliteGateway,
    TreeRecord,
)
from notebook_vcs.cache import LRUCache
from notebook_vcs.integrity.canonical import canonical_json


class TestObjectStore:
    """Test put/get semantics of the append-only store."""

    @pytest.fixture
    def store(self):
        return ObjectStore(MemoryGateway())

    def test_get_missing_record_raises(self, store):
        with pytest.raises(ObjectNotFoundError) as exc_info:
            store.get('trees', 'f' * 64)

        assert exc_info.value.object_hash == 'f' * 64
        assert exc_info.value.kind == 'trees'

    def test_put_is_idempotent(self, store):
        """Inserting the same content twice stores one record."""
        hash1 = store.put_record(BoxRecord({'text': 'same'}))
        hash2 = store.put_record(BoxRecord({'text': 'same'}))

        assert hash1 == hash2
        assert store.keys('boxes') == [hash1]
        assert store.gateway.keys('boxes') == [hash1]

    def test_caller_mutation_does_not_reach_store(self, store):
        """Records are copied on the way in and on the way out."""
        record = {'payload': {'text': 'original'}}
        obj_hash = store.put('boxes', record)

        record['payload']['text'] = 'changed'
        fetched = store.get('boxes', obj_hash)
        fetched['payload']['text'] = 'changed again'

        assert store.get('boxes', obj_hash) == {'payload': {'text': 'original'}}

    def test_invalid_kind_rejected(self, store):
        with pytest.raises(InvalidObjectError):
            store.put('blobs', {'payload': 1})

    def test_malformed_record_rejected(self, store):
        with pytest.raises(InvalidObjectError):
            store.put('trees', {'name': 'root', 'pages': []})

    def test_unit_of_work_defers_writes(self, store):
        """Writes inside a unit of work reach the gateway only at the end."""
        with store.unit_of_work():
            obj_hash = store.put_record(TreeRecord('root', [], []))
            assert store.has('trees', obj_hash)
            assert store.gateway.keys('trees') == []

        assert store.gateway.keys('trees') == [obj_hash]

    def test_unit_of_work_discards_on_error(self, store):
        """A failing unit of work leaves no trace in the store."""
        with pytest.raises(RuntimeError):
            with store.unit_of_work():
                obj_hash = store.put_record(TreeRecord('root', [], []))
                raise RuntimeError("interrupted")

        assert not store.has('trees', obj_hash)
        assert store.gateway.keys('trees') == []

    def test_nested_units_join_outer(self, store):
        with store.unit_of_work():
            with store.unit_of_work():
                obj_hash = store.put_record(BoxRecord('inner'))
            assert store.gateway.keys('boxes') == []

        assert store.gateway.keys('boxes') == [obj_hash]

    def test_notebook_index_roundtrip(self, store):
        assert store.load_notebook_index() == []

        store.save_notebook_index([{'uuid': 'abc'}])

        assert store.load_notebook_index() == [{'uuid': 'abc'}]


class TestRecordCache:
    """The decoded-record cache stays bounded."""

    def test_lru_evicts_least_recently_used(self):
        cache = LRUCache(2)
        cache['a'] = 1
        cache['b'] = 2

        assert cache['a'] == 1
        cache['c'] = 3

        assert list(cache) == ['a', 'c']
        assert cache.get('b') is None

    def test_lru_of_size_zero_keeps_nothing(self):
        cache = LRUCache(0)
        cache['a'] = 1

        assert len(cache) == 0

    def test_store_cache_is_bounded(self):
        store = ObjectStore(MemoryGateway(), cache_size=4)
        hashes = [store.put_record(BoxRecord({'n': n})) for n in range(20)]

        for obj_hash in hashes:
            store.get('boxes', obj_hash)
            assert len(store._cache) <= 4

        assert store.get('boxes', hashes[0]) == {'payload': {'n': 0}}

    def test_staged_writes_visible_without_cache(self):
        store = ObjectStore(MemoryGateway(), cache_size=0)

        with store.unit_of_work():
            obj_hash = store.put_record(BoxRecord('staged'))
            assert store.has('boxes', obj_hash)
            assert store.get('boxes', obj_hash) == {'payload': 'staged'}

        assert len(store._cache) == 0
        assert store.get('boxes', obj_hash) == {'payload': 'staged'}


class TestFileSystemGateway:
    """Test on-disk storage and tamper detection."""

    @pytest.fixture
    def gateway(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            yield FileSystemGateway(tmpdir)

    def test_records_are_sharded_by_prefix(self, gateway):
        store = ObjectStore(gateway)
        obj_hash = store.put_record(TreeRecord('root', [], []))

        path = gateway.layout.get_path('trees', obj_hash)

        assert path.exists()
        assert path.parent.name == obj_hash[:2]
        assert gateway.keys('trees') == [obj_hash]

    def test_detect_tampered_record(self, gateway):
        """A record whose content no longer matches its hash is rejected."""
        obj_hash = ObjectStore(gateway).put_record(BoxRecord({'text': 'real'}))

        path = gateway.layout.get_path('boxes', obj_hash)
        path.write_bytes(canonical_json({'payload': {'text': 'forged'}}))

        with pytest.raises(ObjectCorruptedError):
            ObjectStore(gateway).get('boxes', obj_hash)

    def test_unverified_reads_skip_hash_check(self, gateway):
        obj_hash = ObjectStore(gateway).put_record(BoxRecord({'text': 'real'}))
        path = gateway.layout.get_path('boxes', obj_hash)
        path.write_bytes(canonical_json({'payload': {'text': 'forged'}}))

        store = ObjectStore(gateway, verify_reads=False)

        assert store.get('boxes', obj_hash) == {'payload': {'text': 'forged'}}

    def test_garbage_file_is_invalid(self, gateway):
        obj_hash = ObjectStore(gateway).put_record(BoxRecord({'text': 'real'}))
        gateway.layout.get_path('boxes', obj_hash).write_bytes(b'not json')

        with pytest.raises(InvalidObjectError):
            ObjectStore(gateway).get('boxes', obj_hash)


class TestSqliteGateway:
    """Test the SQLite backend."""

    def test_records_survive_reopen(self, tmp_path):
        db_path = tmp_path / 'store.sqlite3'

        gateway = SqliteGateway(db_path)
        obj_hash = ObjectStore(gateway).put_record(TreeRecord('root', [], []))
        gateway.close()

        reopened = SqliteGateway(db_path)
        try:
            assert ObjectStore(reopened).get('trees', obj_hash)['name'] == 'root'
            assert reopened.keys('trees') == [obj_hash]
        finally:
            reopened.close()

    def test_missing_key_returns_none(self, tmp_path):
        gateway = SqliteGateway(tmp_path / 'store.sqlite3')
        try:
            assert gateway.get('boxes', 'a' * 64) is None
        finally:
            gateway.close()
