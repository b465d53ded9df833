"""
Bounded least-recently-used cache.
"""

from collections import OrderedDict

DEFAULT_CACHE_SIZE = 1024


class LRUCache(OrderedDict):
    """
    Mapping that keeps at most ``maxsize`` entries.

    Reading or writing a key marks it as most recently used; once the cache
    is full the least recently used entry is evicted.
    """

    def __init__(self, maxsize: int = DEFAULT_CACHE_SIZE):
        self.maxsize = maxsize
        super().__init__()

    def __getitem__(self, key):
        value = super().__getitem__(key)
        self.move_to_end(key)
        return value

    def __setitem__(self, key, value):
        super().__setitem__(key, value)
        self.move_to_end(key)
        while len(self) > self.maxsize:
            self.popitem(last=False)

    def get(self, key, default=None):
        if key in self:
            return self[key]
        return default
