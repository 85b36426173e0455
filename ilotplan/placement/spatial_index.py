from __future__ import annotations

import math
from typing import Dict, Hashable, Iterator, List, Optional, Tuple

from ilotplan.geometry.primitives import Bounds, Rect


CellKey = Tuple[int, int]


class SpatialIndex:
    """
    Uniform grid bucket index over a floor plan's bounds.

    A broad-phase filter only: ``query_rect`` returns every key whose cells
    meet the query's cell range, so callers must re-check exact geometry.
    """

    def __init__(self, bounds: Bounds, cell_size: float = 5.0) -> None:
        if not (cell_size > 0.0 and math.isfinite(cell_size)):
            raise ValueError(f"cell_size must be positive, got {cell_size}")
        self.bounds = bounds
        self.cell_size = float(cell_size)
        self.cols = max(1, math.ceil(bounds.width / self.cell_size))
        self.rows = max(1, math.ceil(bounds.height / self.cell_size))
        self._cells: Dict[CellKey, List[Hashable]] = {}
        self._rects: Dict[Hashable, Rect] = {}

    def _cell_range(self, rect: Rect) -> Iterator[CellKey]:
        c1 = math.floor((rect.x1 - self.bounds.min_x) / self.cell_size)
        c2 = math.floor((rect.x2 - self.bounds.min_x) / self.cell_size)
        r1 = math.floor((rect.y1 - self.bounds.min_y) / self.cell_size)
        r2 = math.floor((rect.y2 - self.bounds.min_y) / self.cell_size)
        for c in range(c1, c2 + 1):
            for r in range(r1, r2 + 1):
                yield (c, r)

    def insert(self, key: Hashable, rect: Rect) -> None:
        if key in self._rects:
            self.remove(key)
        self._rects[key] = rect
        for cell in self._cell_range(rect):
            self._cells.setdefault(cell, []).append(key)

    def remove(self, key: Hashable) -> None:
        rect = self._rects.pop(key, None)
        if rect is None:
            return
        for cell in self._cell_range(rect):
            bucket = self._cells.get(cell)
            if not bucket:
                continue
            bucket.remove(key)
            if not bucket:
                del self._cells[cell]

    def update(self, key: Hashable, rect: Rect) -> None:
        self.insert(key, rect)

    def query_rect(self, rect: Rect, padding: float = 0.0) -> List[Hashable]:
        """Keys in first-seen order whose cells intersect the padded rect."""
        if not rect.is_finite():
            return []
        if padding:
            rect = rect.expanded(padding)
        seen: Dict[Hashable, None] = {}
        for cell in self._cell_range(rect):
            for key in self._cells.get(cell, ()):
                seen.setdefault(key, None)
        return list(seen)

    def rect_of(self, key: Hashable) -> Optional[Rect]:
        return self._rects.get(key)

    def clear(self) -> None:
        self._cells.clear()
        self._rects.clear()

    def __len__(self) -> int:
        return len(self._rects)

    def __contains__(self, key: object) -> bool:
        return key in self._rects


__all__ = ["SpatialIndex"]
