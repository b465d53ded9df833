"""
Export envelope.

Every export is a JSON-compatible document of the form::

    {
        "metadata": {"version", "exportType", "exportVersion", "date"},
        "content": {...}
    }

``exportType`` is ``"dump"`` (the whole store) or ``"flat"`` (the
reachable closure of one notebook).
"""

import json
from typing import Tuple

from .. import __version__
from ..errors import InvalidObjectError

EXPORT_VERSION = 1
EXPORT_TYPES = ('dump', 'flat')


def build_envelope(export_type: str, content: dict, date: str) -> dict:
    if export_type not in EXPORT_TYPES:
        raise ValueError(f"Unknown export type: {export_type}")

    return {
        'metadata': {
            'version': __version__,
            'exportType': export_type,
            'exportVersion': EXPORT_VERSION,
            'date': date,
        },
        'content': content,
    }


def parse_envelope(envelope: dict) -> Tuple[dict, dict]:
    """
    Validate an envelope and split it into metadata and content.

    Raises InvalidObjectError if the envelope is malformed or was written
    by an unsupported export version.
    """
    if not isinstance(envelope, dict):
        raise InvalidObjectError("Export envelope must be a dictionary")

    metadata = envelope.get('metadata')
    content = envelope.get('content')
    if not isinstance(metadata, dict) or not isinstance(content, dict):
        raise InvalidObjectError("Export envelope requires metadata and content")

    if metadata.get('exportType') not in EXPORT_TYPES:
        raise InvalidObjectError(f"Unknown export type: {metadata.get('exportType')}")

    if metadata.get('exportVersion') != EXPORT_VERSION:
        raise InvalidObjectError(
            f"Unsupported export version: {metadata.get('exportVersion')}"
        )

    return metadata, content


def to_json(envelope: dict) -> str:
    """Serialize an envelope the way exports are written to disk."""
    return json.dumps(envelope, indent=2, sort_keys=True, ensure_ascii=False)
