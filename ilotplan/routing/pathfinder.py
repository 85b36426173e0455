"""
Occupancy-grid shortest paths.

The floor plan bounds are rasterised into a boolean numpy grid at a fixed
resolution. Obstacles mark every cell whose centre lies inside a polygon or
within a padding distance of it. ``find_path`` runs an 8-connected A* with a
Euclidean heuristic and no corner cutting, and returns world-coordinate cell
centres.
"""

from __future__ import annotations

import heapq
import itertools
import math
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import shapely
from loguru import logger
from shapely.errors import GEOSException
from shapely.geometry import Polygon

from ilotplan.exceptions import RoutingError
from ilotplan.geometry.primitives import Bounds, Point, point_in_polygon, point_segment_distance, polygon_is_valid_input


Cell = Tuple[int, int]

_SQRT2 = math.sqrt(2.0)
_NEIGHBOURS: Tuple[Tuple[int, int, float], ...] = tuple(
    (dr, dc, _SQRT2 if dr and dc else 1.0)
    for dr in (-1, 0, 1)
    for dc in (-1, 0, 1)
    if dr or dc
)


class GridPathfinder:
    def __init__(
        self,
        bounds: Bounds,
        resolution: float = 0.5,
        snap_radius: int = 5,
        max_cells: int = 4_000_000,
    ) -> None:
        if not bounds.is_usable():
            raise RoutingError("Cannot rasterise unusable bounds", {"bounds": str(bounds)})
        if not (resolution > 0.0 and math.isfinite(resolution)):
            raise RoutingError("Grid resolution must be positive", {"resolution": str(resolution)})
        self.bounds = bounds
        self.resolution = float(resolution)
        self.snap_radius = int(snap_radius)
        self.cols = max(1, math.ceil(bounds.width / self.resolution))
        self.rows = max(1, math.ceil(bounds.height / self.resolution))
        if self.cols * self.rows > max_cells:
            raise RoutingError(
                "Pathfinder grid too large",
                {"cells": str(self.cols * self.rows), "max_cells": str(max_cells)},
            )
        self.grid = np.zeros((self.rows, self.cols), dtype=bool)
        self._xs = bounds.min_x + (np.arange(self.cols) + 0.5) * self.resolution
        self._ys = bounds.min_y + (np.arange(self.rows) + 0.5) * self.resolution

    # -- coordinates -------------------------------------------------------

    def to_cell(self, x: float, y: float) -> Cell:
        """World point to (row, col), clamped onto the grid."""
        col = math.floor((x - self.bounds.min_x) / self.resolution)
        row = math.floor((y - self.bounds.min_y) / self.resolution)
        return (min(self.rows - 1, max(0, row)), min(self.cols - 1, max(0, col)))

    def cell_center(self, cell: Cell) -> Point:
        return (float(self._xs[cell[1]]), float(self._ys[cell[0]]))

    def is_free(self, cell: Cell) -> bool:
        r, c = cell
        return 0 <= r < self.rows and 0 <= c < self.cols and not self.grid[r, c]

    @property
    def occupied_cells(self) -> int:
        return int(self.grid.sum())

    # -- obstacles ---------------------------------------------------------

    def mark_obstacle(self, polygon: Sequence[Point], padding: float = 0.0) -> int:
        """Mark cells covered by ``polygon`` grown by ``padding``; returns newly occupied cells."""
        if not polygon_is_valid_input(polygon):
            return 0
        pad = max(0.0, float(padding or 0.0))
        xs = [float(p[0]) for p in polygon]
        ys = [float(p[1]) for p in polygon]
        r0, c0 = self.to_cell(min(xs) - pad, min(ys) - pad)
        r1, c1 = self.to_cell(max(xs) + pad, max(ys) + pad)

        gx, gy = np.meshgrid(self._xs[c0 : c1 + 1], self._ys[r0 : r1 + 1])
        ring = list(zip(xs, ys))
        shape = Polygon(ring)
        if shape.is_valid:
            try:
                hits = shapely.distance(shape, shapely.points(gx, gy)) <= pad
            except GEOSException as exc:
                logger.debug("Obstacle rasterised without GEOS: {}", exc)
                hits = self._planar_hits(ring, gx, gy, pad)
        else:
            hits = self._planar_hits(ring, gx, gy, pad)

        window = self.grid[r0 : r1 + 1, c0 : c1 + 1]
        added = int(np.count_nonzero(hits & ~window))
        window |= hits
        return added

    @staticmethod
    def _planar_hits(poly: List[Point], gx: np.ndarray, gy: np.ndarray, pad: float) -> np.ndarray:
        hits = np.zeros(gx.shape, dtype=bool)
        n = len(poly)
        for idx in np.ndindex(gx.shape):
            pt = (float(gx[idx]), float(gy[idx]))
            if point_in_polygon(pt, poly):
                hits[idx] = True
            elif pad > 0.0 and any(point_segment_distance(pt, poly[i], poly[(i + 1) % n]) <= pad for i in range(n)):
                hits[idx] = True
        return hits

    # -- search ------------------------------------------------------------

    def nearest_free(self, cell: Cell, radius: int | None = None) -> Optional[Cell]:
        """The cell itself if free, else the first free cell on expanding square rings."""
        if radius is None:
            radius = self.snap_radius
        if self.is_free(cell):
            return cell
        r0, c0 = cell
        for ring in range(1, radius + 1):
            for dr in range(-ring, ring + 1):
                for dc in range(-ring, ring + 1):
                    if abs(dr) != ring and abs(dc) != ring:
                        continue
                    candidate = (r0 + dr, c0 + dc)
                    if self.is_free(candidate):
                        return candidate
        return None

    def find_cell_path(self, start: Cell, goal: Cell) -> Optional[List[Cell]]:
        start_cell = self.nearest_free(start)
        goal_cell = self.nearest_free(goal)
        if start_cell is None or goal_cell is None:
            return None

        gr, gc = goal_cell

        def heuristic(r: int, c: int) -> float:
            return math.hypot(r - gr, c - gc)

        counter = itertools.count()
        g_score: Dict[Cell, float] = {start_cell: 0.0}
        came_from: Dict[Cell, Cell] = {}
        closed = np.zeros_like(self.grid)
        open_heap: List[Tuple[float, int, Cell]] = [(heuristic(*start_cell), next(counter), start_cell)]

        while open_heap:
            _, _, current = heapq.heappop(open_heap)
            r, c = current
            if closed[r, c]:
                continue
            if current == goal_cell:
                path = [current]
                while current in came_from:
                    current = came_from[current]
                    path.append(current)
                path.reverse()
                return path
            closed[r, c] = True
            base = g_score[current]

            for dr, dc, cost in _NEIGHBOURS:
                nr, nc = r + dr, c + dc
                if not (0 <= nr < self.rows and 0 <= nc < self.cols):
                    continue
                if self.grid[nr, nc] or closed[nr, nc]:
                    continue
                if dr and dc and (self.grid[r + dr, c] or self.grid[r, c + dc]):
                    continue
                tentative = base + cost
                if tentative < g_score.get((nr, nc), math.inf):
                    g_score[(nr, nc)] = tentative
                    came_from[(nr, nc)] = current
                    heapq.heappush(open_heap, (tentative + heuristic(nr, nc), next(counter), (nr, nc)))
        return None

    def find_path(self, start: Point, goal: Point) -> Optional[List[Point]]:
        """World-coordinate path of cell centres from ``start`` to ``goal``, or None."""
        cells = self.find_cell_path(self.to_cell(*start), self.to_cell(*goal))
        if cells is None:
            return None
        return [self.cell_center(cell) for cell in cells]


def path_length(path: Sequence[Point]) -> float:
    return sum(math.dist(a, b) for a, b in zip(path, path[1:]))


__all__ = ["GridPathfinder", "path_length"]
