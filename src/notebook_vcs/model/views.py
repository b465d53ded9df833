"""
Read-only views of historical notebook content.

Views are produced by shared hydration and may be aliased between several
hydrations of the same hash. They are frozen all the way down: attribute
assignment raises FrozenInstanceError and payloads are read-only mappings
and tuples, so a view can never be used to rewrite history.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Optional, Tuple


def freeze(value: Any) -> Any:
    """Recursively convert dicts and lists to read-only equivalents."""
    if isinstance(value, dict):
        return MappingProxyType({k: freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(v) for v in value)
    return value


@dataclass(frozen=True)
class BoxView:
    hash: str
    payload: Any


@dataclass(frozen=True)
class PageView:
    hash: str
    boxes: Tuple[BoxView, ...]


@dataclass(frozen=True)
class TreeView:
    """A category as stored under ``hash``, with its pages and children resolved."""

    hash: str
    name: str
    pages: Tuple[PageView, ...]
    children: Tuple['TreeView', ...]

    def walk(self):
        """Yield this category and every descendant, depth first."""
        yield self
        for child in self.children:
            yield from child.walk()


@dataclass(frozen=True)
class CommitView:
    """
    A commit with its root category resolved.

    The previous commit is left as a hash; callers that need it hydrate it
    explicitly.
    """

    hash: str
    timestamp: str
    previous: Optional[str]
    root: TreeView


@dataclass(frozen=True)
class TagView:
    hash: str
    name: str
    description: str
    timestamp: str
    commit: CommitView

    @property
    def target(self) -> str:
        return self.commit.hash
