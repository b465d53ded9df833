"""
Error types for notebook version control operations.

All errors are explicit and never silent. Every error kind carries a fixed,
stable message so callers can match on it; the offending identifier is kept
as an attribute instead of being folded into the message.
"""

from typing import Optional


WORKING_TREE_DIRTY = (
    "The working tree contains uncommitted changes and the force flag was not set"
)
DETACHED_HEAD = "Cannot commit in detached HEAD state"
BRANCH_NAME_TAKEN = "Branch exists already"
TAG_NAME_TAKEN = "Tag exists already"
NOTEBOOK_EXISTS = "Notebook exists already"
NO_SUCH_OBJECT = "The specified object does not exist"
NO_SUCH_COMMIT = "The specified commit does not exist"
NO_SUCH_BRANCH = "The specified branch does not exist"
NO_SUCH_TAG = "The specified tag does not exist"
NO_SUCH_NOTEBOOK = "Notebook not found"
NOTEBOOK_NOT_PREPARED = "The notebook has not been loaded yet"
INVALID_REF_NAME = "Invalid branch or tag name"


class NotebookVcsError(Exception):
    """Base exception for all notebook VCS errors."""
    pass


# ========== NotFound ==========

class ObjectNotFoundError(NotebookVcsError):
    """Raised when a referenced object is absent from the store."""

    message = NO_SUCH_OBJECT

    def __init__(self, object_hash: str, kind: Optional[str] = None):
        self.object_hash = object_hash
        self.kind = kind
        super().__init__(self.message)


class NoSuchCommitError(ObjectNotFoundError):
    """Raised when a commit hash is not present in the commit store."""

    message = NO_SUCH_COMMIT

    def __init__(self, commit_hash: str):
        super().__init__(commit_hash, 'commits')


class NoSuchBranchError(ObjectNotFoundError):
    """Raised when a notebook has no branch of the given name."""

    message = NO_SUCH_BRANCH

    def __init__(self, branch: str):
        self.branch = branch
        super().__init__(branch)


class NoSuchTagError(ObjectNotFoundError):
    """Raised when a tag is not part of the notebook's tag list."""

    message = NO_SUCH_TAG

    def __init__(self, tag: str):
        self.tag = tag
        super().__init__(tag, 'tags')


class NoSuchNotebookError(ObjectNotFoundError):
    """Raised when no notebook with the given uuid is known."""

    message = NO_SUCH_NOTEBOOK

    def __init__(self, uuid: str):
        self.uuid = uuid
        super().__init__(uuid, 'notebooks')


# ========== Conflict ==========

class NameConflictError(NotebookVcsError):
    """Raised when a name that must be unique is already taken."""

    message = NOTEBOOK_EXISTS

    def __init__(self, name: str):
        self.name = name
        super().__init__(self.message)


class BranchNameTakenError(NameConflictError):
    message = BRANCH_NAME_TAKEN


class TagNameTakenError(NameConflictError):
    message = TAG_NAME_TAKEN


class InvalidRefNameError(NotebookVcsError):
    """Raised when a branch or tag name cannot be used as a ref."""

    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(INVALID_REF_NAME)


# ========== InvalidState ==========

class InvalidStateError(NotebookVcsError):
    """Raised when an operation is not allowed in the notebook's current state."""

    message = "Invalid notebook state"

    def __init__(self):
        super().__init__(self.message)


class DetachedHeadError(InvalidStateError):
    """Raised when committing on a detached HEAD without override."""

    message = DETACHED_HEAD


class WorkingTreeDirtyError(InvalidStateError):
    """Raised when checking out over uncommitted changes without force."""

    message = WORKING_TREE_DIRTY


# ========== Precondition ==========

class PreconditionError(NotebookVcsError):
    """Raised when an operation's precondition does not hold."""
    pass


class NotebookNotPreparedError(PreconditionError):
    """Raised when hydrated state is accessed before the notebook was loaded."""

    def __init__(self, uuid: str):
        self.uuid = uuid
        super().__init__(NOTEBOOK_NOT_PREPARED)


# ========== Integrity ==========

class ObjectCorruptedError(NotebookVcsError):
    """Raised when an object's content does not match its hash."""

    def __init__(self, object_hash: str, actual: str):
        self.object_hash = object_hash
        self.actual = actual
        super().__init__(
            f"Object corrupted: {object_hash}\n"
            f"Actual hash: {actual}"
        )


class InvalidObjectError(NotebookVcsError):
    """Raised when an object is malformed or cannot be canonically encoded."""

    def __init__(self, reason: str, object_hash: Optional[str] = None):
        self.reason = reason
        self.object_hash = object_hash
        msg = f"Invalid object: {reason}"
        if object_hash:
            msg += f" (hash: {object_hash})"
        super().__init__(msg)


class InvariantViolationError(NotebookVcsError):
    """Raised when a system invariant is violated."""

    def __init__(self, invariant: str, details: str):
        self.invariant = invariant
        self.details = details
        super().__init__(f"Invariant violation: {invariant}\nDetails: {details}")


class ImportVerificationError(NotebookVcsError):
    """Raised when an imported bundle is not self-consistent."""

    def __init__(self, problems: list):
        self.problems = list(problems)
        super().__init__(
            "Import verification failed:\n" + "\n".join(self.problems)
        )


# ========== Storage / configuration ==========

class StorageError(NotebookVcsError):
    """Raised when the persistence medium fails."""

    def __init__(self, operation: str, path: str, cause: Exception = None):
        self.operation = operation
        self.path = path
        self.cause = cause
        msg = f"Storage error during {operation}: {path}"
        if cause:
            msg += f"\nCause: {cause}"
        super().__init__(msg)


class ConfigError(NotebookVcsError):
    """Raised when a configuration file cannot be used."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid configuration in {path}: {reason}")
