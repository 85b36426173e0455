"""
Rectangle/polygon predicates behind a small capability interface.

Two implementations are provided: one backed by shapely (prepared
geometries, GEOS) and a hand-written planar one (separating-axis test for
convex polygons, point/edge tests otherwise). ``FallbackPredicates`` chains
them so an error or an invalid geometry in the accelerated path falls
through to the planar path instead of failing the placement.

Degenerate input (fewer than three vertices, non-finite coordinates) never
raises: overlap tests report ``False`` and distances report ``inf``.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Sequence

import shapely
from loguru import logger
from shapely.errors import GEOSException
from shapely.geometry import Polygon, box

from ilotplan.exceptions import GeometryError
from ilotplan.geometry.primitives import (
    Point,
    Rect,
    is_convex,
    point_in_polygon,
    polygon_is_valid_input,
    segment_intersects_rect_edges,
    segment_rect_distance,
)


class GeometryPredicates(ABC):
    """Capability interface for the rect-vs-polygon tests used by placement."""

    name = "abstract"

    @abstractmethod
    def rect_overlaps_polygon(self, rect: Rect, polygon: Sequence[Point]) -> bool:
        """True if the rectangle and polygon share any point (touching included)."""

    @abstractmethod
    def rect_polygon_distance(self, rect: Rect, polygon: Sequence[Point]) -> float:
        """Minimum distance between rectangle and polygon (0 when they meet)."""


class PlanarPredicates(GeometryPredicates):
    """Pure-Python predicates with no third-party geometry kernel."""

    name = "planar"

    def rect_overlaps_polygon(self, rect: Rect, polygon: Sequence[Point]) -> bool:
        if not rect.is_finite() or not polygon_is_valid_input(polygon):
            return False
        poly = [(float(x), float(y)) for x, y in polygon]
        if is_convex(poly):
            return self._sat_overlap(rect, poly)
        return self._point_edge_overlap(rect, poly)

    def rect_polygon_distance(self, rect: Rect, polygon: Sequence[Point]) -> float:
        if not rect.is_finite() or not polygon_is_valid_input(polygon):
            return math.inf
        poly = [(float(x), float(y)) for x, y in polygon]
        if self._point_edge_overlap(rect, poly):
            return 0.0
        n = len(poly)
        return min(segment_rect_distance(poly[i], poly[(i + 1) % n], rect) for i in range(n))

    @staticmethod
    def _sat_overlap(rect: Rect, poly: list[Point]) -> bool:
        rect_pts = list(rect.corners())
        axes: list[Point] = [(1.0, 0.0), (0.0, 1.0)]
        n = len(poly)
        for i in range(n):
            ex = poly[(i + 1) % n][0] - poly[i][0]
            ey = poly[(i + 1) % n][1] - poly[i][1]
            if ex == 0.0 and ey == 0.0:
                continue
            axes.append((-ey, ex))
        for ax, ay in axes:
            a_proj = [px * ax + py * ay for px, py in rect_pts]
            b_proj = [px * ax + py * ay for px, py in poly]
            # strict: shared boundary counts as contact
            if max(a_proj) < min(b_proj) or max(b_proj) < min(a_proj):
                return False
        return True

    @staticmethod
    def _point_edge_overlap(rect: Rect, poly: list[Point]) -> bool:
        for corner in rect.corners():
            if point_in_polygon(corner, poly):
                return True
        for vx, vy in poly:
            if rect.x1 <= vx <= rect.x2 and rect.y1 <= vy <= rect.y2:
                return True
        n = len(poly)
        for i in range(n):
            if segment_intersects_rect_edges(poly[i], poly[(i + 1) % n], rect):
                return True
        return False


class ShapelyPredicates(GeometryPredicates):
    """GEOS-backed predicates with a per-instance prepared polygon cache."""

    name = "shapely"

    def __init__(self) -> None:
        self._cache: dict[tuple[Point, ...], Polygon] = {}

    def _shape_for(self, polygon: Sequence[Point]) -> Polygon:
        key = tuple((float(x), float(y)) for x, y in polygon)
        shape = self._cache.get(key)
        if shape is None:
            shape = Polygon(key)
            if shape.is_empty or not shape.is_valid:
                raise GeometryError("Polygon is not valid for GEOS predicates", {"vertices": str(len(key))})
            shapely.prepare(shape)
            self._cache[key] = shape
        return shape

    def rect_overlaps_polygon(self, rect: Rect, polygon: Sequence[Point]) -> bool:
        if not rect.is_finite() or not polygon_is_valid_input(polygon):
            return False
        shape = self._shape_for(polygon)
        return bool(shape.intersects(box(rect.x1, rect.y1, rect.x2, rect.y2)))

    def rect_polygon_distance(self, rect: Rect, polygon: Sequence[Point]) -> float:
        if not rect.is_finite() or not polygon_is_valid_input(polygon):
            return math.inf
        shape = self._shape_for(polygon)
        return float(shape.distance(box(rect.x1, rect.y1, rect.x2, rect.y2)))


class FallbackPredicates(GeometryPredicates):
    """Try the accelerated implementation, fall through to the planar one."""

    name = "fallback"

    def __init__(
        self,
        primary: GeometryPredicates | None = None,
        fallback: GeometryPredicates | None = None,
    ) -> None:
        self.primary = primary or ShapelyPredicates()
        self.fallback = fallback or PlanarPredicates()
        self.fallback_calls = 0

    def _fall_through(self, exc: Exception) -> None:
        self.fallback_calls += 1
        if self.fallback_calls == 1:
            logger.debug("Geometry predicate fell back to {}: {}", self.fallback.name, exc)

    def rect_overlaps_polygon(self, rect: Rect, polygon: Sequence[Point]) -> bool:
        try:
            return self.primary.rect_overlaps_polygon(rect, polygon)
        except (GeometryError, GEOSException, ValueError, TypeError) as exc:
            self._fall_through(exc)
            return self.fallback.rect_overlaps_polygon(rect, polygon)

    def rect_polygon_distance(self, rect: Rect, polygon: Sequence[Point]) -> float:
        try:
            return self.primary.rect_polygon_distance(rect, polygon)
        except (GeometryError, GEOSException, ValueError, TypeError) as exc:
            self._fall_through(exc)
            return self.fallback.rect_polygon_distance(rect, polygon)


def interior_vertex_count(rect: Rect, polygon: Sequence[Point], limit: int | None = None) -> int:
    """Count polygon vertices strictly inside the rectangle, stopping at ``limit``."""
    count = 0
    for vx, vy in polygon:
        if rect.x1 < vx < rect.x2 and rect.y1 < vy < rect.y2:
            count += 1
            if limit is not None and count >= limit:
                break
    return count


def segment_crosses_rect_interior(rect: Rect, a: Point, b: Point) -> bool:
    """True if a segment passes through the open interior of the rectangle.

    Liang-Barsky clipping against the rectangle; a segment lying on an edge
    clips to zero interior length and does not count.
    """
    if not rect.is_finite() or not all(math.isfinite(v) for v in (*a, *b)):
        return False
    x0, y0 = a
    dx, dy = b[0] - x0, b[1] - y0
    if dx == 0.0 and dy == 0.0:
        return False
    t0, t1 = 0.0, 1.0
    for p, q in ((-dx, x0 - rect.x1), (dx, rect.x2 - x0), (-dy, y0 - rect.y1), (dy, rect.y2 - y0)):
        if p == 0.0:
            if q <= 0.0:
                return False
            continue
        r = q / p
        if p < 0.0:
            t0 = max(t0, r)
        else:
            t1 = min(t1, r)
        if t0 >= t1:
            return False
    mx = x0 + dx * (t0 + t1) / 2.0
    my = y0 + dy * (t0 + t1) / 2.0
    return rect.x1 < mx < rect.x2 and rect.y1 < my < rect.y2


def default_predicates() -> GeometryPredicates:
    return FallbackPredicates(ShapelyPredicates(), PlanarPredicates())


__all__ = [
    "GeometryPredicates",
    "PlanarPredicates",
    "ShapelyPredicates",
    "FallbackPredicates",
    "interior_vertex_count",
    "segment_crosses_rect_interior",
    "default_predicates",
]
