"""
Integrity verification for stored records and export bundles.

Provides tamper detection and reference extraction.
"""

from typing import Callable, Dict, List, Tuple

from ..errors import (
    ObjectCorruptedError,
    InvalidObjectError,
)
from .hashing import compute_object_hash

RECORD_KINDS = ('trees', 'pages', 'boxes', 'commits', 'tags')

_REQUIRED_FIELDS = {
    'boxes': ('payload',),
    'pages': ('boxes',),
    'trees': ('name', 'pages', 'children'),
    'commits': ('timestamp', 'root_category'),
    'tags': ('name', 'timestamp', 'target'),
}


def verify_record_integrity(record: dict, expected_hash: str) -> None:
    """
    Verify that a record's content matches its hash.

    Raises ObjectCorruptedError if mismatch detected.
    """
    actual_hash = compute_object_hash(record)
    if actual_hash != expected_hash:
        raise ObjectCorruptedError(expected_hash, actual_hash)


def verify_record_structure(kind: str, record: dict) -> None:
    """
    Verify that a record has the fields its kind requires.

    Raises InvalidObjectError if structure is invalid.
    """
    if kind not in _REQUIRED_FIELDS:
        raise InvalidObjectError(f"Invalid record kind: {kind}")

    if not isinstance(record, dict):
        raise InvalidObjectError(f"{kind} record must be a dictionary")

    for field in _REQUIRED_FIELDS[kind]:
        if field not in record:
            raise InvalidObjectError(f"{kind} record missing '{field}' field")

    for field in ('boxes', 'pages', 'children'):
        if field in record and kind != 'boxes' and not isinstance(record[field], list):
            raise InvalidObjectError(f"{kind} record field '{field}' must be a list")


def extract_references(kind: str, record: dict) -> List[Tuple[str, str]]:
    """
    Extract all references from a record as (kind, hash) pairs.

    References are found in:
    - tree: 'pages' and 'children' fields
    - page: 'boxes' field
    - commit: 'root_category' and optional 'previous' fields
    - tag: 'target' field
    - box: no references (leaf record)
    """
    refs = []

    if kind == 'trees':
        refs.extend(('pages', h) for h in record.get('pages', []))
        refs.extend(('trees', h) for h in record.get('children', []))

    elif kind == 'pages':
        refs.extend(('boxes', h) for h in record.get('boxes', []))

    elif kind == 'commits':
        refs.append(('trees', record['root_category']))
        if record.get('previous'):
            refs.append(('commits', record['previous']))

    elif kind == 'tags':
        refs.append(('commits', record['target']))

    return refs


def verify_bundle(
    collections: Dict[str, Dict[str, dict]],
    exists_func: Callable[[str, str], bool],
    full_history: bool = True,
) -> List[str]:
    """
    Verify a set of record collections, as found in an export bundle.

    Every record must be well formed and hash to its key, and every
    reference must resolve either inside the bundle or through
    ``exists_func(kind, hash)``. Without ``full_history`` a commit's
    previous commit may be missing, as in a shallow export.

    Returns list of problems (empty when the bundle is consistent).
    """
    problems = []

    for kind in RECORD_KINDS:
        for obj_hash, record in collections.get(kind, {}).items():
            try:
                verify_record_structure(kind, record)
                verify_record_integrity(record, obj_hash)
            except (InvalidObjectError, ObjectCorruptedError) as e:
                problems.append(f"{kind}/{obj_hash}: {e}")
                continue

            for ref_kind, ref_hash in extract_references(kind, record):
                if not full_history and kind == 'commits' and ref_kind == 'commits':
                    continue
                if ref_hash in collections.get(ref_kind, {}):
                    continue
                if exists_func(ref_kind, ref_hash):
                    continue
                problems.append(
                    f"{kind}/{obj_hash} references missing {ref_kind}/{ref_hash}"
                )

    return problems
