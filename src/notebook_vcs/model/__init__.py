from .box import BoxRecord
from .page import PageRecord
from .tree import TreeRecord
from .commit import CommitRecord
from .tag import TagRecord
from .notebook import Notebook, NotebookRef, HydratedState, NOTEBOOK_TYPE
from .views import BoxView, PageView, TreeView, CommitView, TagView
from .working import WorkingBox, WorkingPage, WorkingCategory
