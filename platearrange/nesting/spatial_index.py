"""Bounding box index over placed items.

Entries are (box, index) pairs. The index is cleared, refilled and built
before every placement step and only queried afterwards. Queries never
change the index, so they are safe from several threads at once.
"""

from typing import Iterator, List, Optional, Tuple

from shapely.strtree import STRtree

from platearrange.nesting.geometry import Box

SpatElement = Tuple[Box, int]


class SpatialIndex:
    """Range-intersection index keyed by bounding box."""

    def __init__(self):
        self._entries: List[SpatElement] = []
        self._tree: Optional[STRtree] = None

    def insert(self, box: Box, index: int) -> None:
        self._entries.append((box, index))
        self._tree = None

    def clear(self) -> None:
        self._entries = []
        self._tree = None

    def build(self) -> None:
        """Build the STRtree over the current entries."""
        if self._entries:
            self._tree = STRtree([bb.to_polygon() for bb, _ in self._entries])
        else:
            self._tree = None

    @property
    def built(self) -> bool:
        return self._tree is not None

    def query(self, box: Box) -> List[SpatElement]:
        """Entries whose box intersects (or touches) the given box.

        Scans the entries when the tree is not built.
        """
        if not self._entries:
            return []
        tree = self._tree
        if tree is None:
            return [entry for entry in self._entries if entry[0].intersects(box)]
        hits = tree.query(box.to_polygon(), predicate="intersects")
        return [self._entries[i] for i in sorted(int(h) for h in hits)]

    def bounds(self) -> Optional[Box]:
        """Box enclosing all entries, None when empty."""
        result = None
        for bb, _ in self._entries:
            result = bb if result is None else result.merge(bb)
        return result

    @property
    def empty(self) -> bool:
        return not self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[SpatElement]:
        return iter(list(self._entries))
