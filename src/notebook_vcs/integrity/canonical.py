"""
Canonical encoding for deterministic hashing.

Ensures structurally identical records always produce the same bytes.
"""

import json
from typing import Any

from ..errors import InvalidObjectError


def canonical_json(obj: Any) -> bytes:
    """
    Encode a dehydrated record to canonical JSON bytes.

    Rules:
    - Keys sorted alphabetically
    - No whitespace
    - UTF-8 encoding
    - No NaN or infinity
    - No trailing newlines

    Only plain JSON types are accepted. A materialized object (a working
    node, a view, a dataclass) anywhere in ``obj`` raises InvalidObjectError,
    so a hash can never be computed over hydrated children.
    """
    try:
        json_str = json.dumps(
            obj,
            sort_keys=True,
            separators=(',', ':'),
            ensure_ascii=False,
            allow_nan=False,
        )
    except (TypeError, ValueError) as e:
        raise InvalidObjectError(f"cannot be canonically encoded: {e}")
    return json_str.encode('utf-8')


def decode_canonical(data: bytes) -> Any:
    """Decode bytes produced by canonical_json."""
    return json.loads(data.decode('utf-8'))
