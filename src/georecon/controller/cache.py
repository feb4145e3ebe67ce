"""
Handle-indexed storage for reconstructed objects.

Objects shared by several entities (a profile used by many extrusions) are stored
once; later requests with the same key return the identical object.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Generic, Hashable, List, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Handle = int


@dataclass
class Arena(Generic[T]):
    _items: List[T] = field(default_factory=list)
    _handles: Dict[Hashable, Handle] = field(default_factory=dict)

    def add(self, item: T) -> Handle:
        self._items.append(item)
        return len(self._items) - 1

    def get(self, handle: Handle) -> T:
        if not 0 <= handle < len(self._items):
            raise KeyError(f"Invalid arena handle {handle}")
        return self._items[handle]

    def handle_for(self, key: Hashable) -> Handle:
        return self._handles[key]

    def memoize(self, key: Hashable, factory: Callable[[], T]) -> T:
        """
        Return the object stored for `key`, creating it with `factory` on first use.
        Nothing is stored when the factory raises.
        """
        if key in self._handles:
            return self._items[self._handles[key]]
        item = factory()
        self._handles[key] = self.add(item)
        logger.debug(f"Cached reconstruction for {key!r}")
        return item

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._handles
