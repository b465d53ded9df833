"""
HEAD and ref resolution.
"""

import re
from typing import Optional

from .errors import InvalidRefNameError
from .integrity.hashing import looks_like_hash
from .model.notebook import NotebookRef

_REF_NAME_PATTERN = re.compile(r'^[^\s~^:?*\[\\]+$')


def resolve_head(ref: str, notebook: NotebookRef) -> str:
    """
    Resolve a HEAD value to a commit hash.

    A ref naming an existing branch resolves to that branch's commit; any
    other ref is returned unchanged and treated as a literal commit hash.
    Whether the commit exists is not checked here.
    """
    if ref in notebook.branches:
        return notebook.branches[ref]
    return ref


def is_detached(notebook: NotebookRef) -> bool:
    """Check whether HEAD points at a literal commit rather than a branch."""
    return notebook.head not in notebook.branches


def current_branch(notebook: NotebookRef) -> Optional[str]:
    """Return the branch HEAD is attached to, or None when detached."""
    return None if is_detached(notebook) else notebook.head


def validate_ref_name(name: str) -> None:
    """
    Check that a branch or tag name is usable.

    Names that look like a commit hash are rejected: HEAD would no longer
    be able to tell the branch from a detached commit.

    Raises InvalidRefNameError for unusable names.
    """
    if not name or not _REF_NAME_PATTERN.match(name):
        raise InvalidRefNameError(name, "empty or contains reserved characters")
    if looks_like_hash(name):
        raise InvalidRefNameError(name, "looks like a commit hash")
