"""Notebook VCS - content-addressed version control for notebook trees."""

__version__ = "0.1.0"

from .engine import NotebookVcsEngine
from .config import VcsConfig, load_config
from .refs import resolve_head, is_detached
from .hydration import hydrate_copy, hydrate_shared, dehydrate
from .model import (
    Notebook,
    NotebookRef,
    BoxRecord,
    PageRecord,
    TreeRecord,
    CommitRecord,
    TagRecord,
    BoxView,
    PageView,
    TreeView,
    CommitView,
    TagView,
    WorkingBox,
    WorkingPage,
    WorkingCategory,
)
from .storage.memory import MemoryGateway
from .storage.filesystem import FileSystemGateway
from .storage.sqlite import SqliteGateway
from .storage.object_store import ObjectStore
from .errors import (
    NotebookVcsError,
    ObjectNotFoundError,
    NoSuchCommitError,
    NoSuchBranchError,
    NoSuchTagError,
    NoSuchNotebookError,
    NameConflictError,
    BranchNameTakenError,
    TagNameTakenError,
    InvalidRefNameError,
    InvalidStateError,
    DetachedHeadError,
    WorkingTreeDirtyError,
    PreconditionError,
    NotebookNotPreparedError,
    ObjectCorruptedError,
    InvalidObjectError,
    InvariantViolationError,
    ImportVerificationError,
    StorageError,
    ConfigError,
)

__all__ = [
    'NotebookVcsEngine',
    'VcsConfig',
    'load_config',
    'resolve_head',
    'is_detached',
    'hydrate_copy',
    'hydrate_shared',
    'dehydrate',
    'Notebook',
    'NotebookRef',
    'BoxRecord',
    'PageRecord',
    'TreeRecord',
    'CommitRecord',
    'TagRecord',
    'BoxView',
    'PageView',
    'TreeView',
    'CommitView',
    'TagView',
    'WorkingBox',
    'WorkingPage',
    'WorkingCategory',
    'MemoryGateway',
    'FileSystemGateway',
    'SqliteGateway',
    'ObjectStore',
    'NotebookVcsError',
    'ObjectNotFoundError',
    'NoSuchCommitError',
    'NoSuchBranchError',
    'NoSuchTagError',
    'NoSuchNotebookError',
    'NameConflictError',
    'BranchNameTakenError',
    'TagNameTakenError',
    'InvalidRefNameError',
    'InvalidStateError',
    'DetachedHeadError',
    'WorkingTreeDirtyError',
    'PreconditionError',
    'NotebookNotPreparedError',
    'ObjectCorruptedError',
    'InvalidObjectError',
    'InvariantViolationError',
    'ImportVerificationError',
    'StorageError',
    'ConfigError',
]
