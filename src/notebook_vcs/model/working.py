"""
Mutable working tree model.

The working tree is the only mutable content of a notebook. It is owned by
exactly one notebook and never shares nodes with stored history: it is
always produced by copy hydration and turned back into records by
dehydration.
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional


@dataclass
class WorkingBox:
    payload: Any = field(default_factory=dict)


@dataclass
class WorkingPage:
    boxes: List[WorkingBox] = field(default_factory=list)

    def add_box(self, payload: Any) -> WorkingBox:
        box = WorkingBox(payload)
        self.boxes.append(box)
        return box


@dataclass
class WorkingCategory:
    """A category of the working tree: name, ordered pages, ordered children."""

    name: str
    pages: List[WorkingPage] = field(default_factory=list)
    children: List['WorkingCategory'] = field(default_factory=list)

    def add_page(self, page: Optional[WorkingPage] = None) -> WorkingPage:
        page = page if page is not None else WorkingPage()
        self.pages.append(page)
        return page

    def add_child(self, name: str) -> 'WorkingCategory':
        child = WorkingCategory(name)
        self.children.append(child)
        return child

    def walk(self):
        """Yield this category and every descendant, depth first."""
        yield self
        for child in self.children:
            yield from child.walk()
