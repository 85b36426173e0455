from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence, Tuple

Point = Tuple[float, float]
PolygonCoords = Tuple[Point, ...]

DEFAULT_BOUNDS = (0.0, 0.0, 100.0, 100.0)


def is_finite_point(point: Sequence[float] | None) -> bool:
    if point is None or len(point) < 2:
        return False
    try:
        return math.isfinite(float(point[0])) and math.isfinite(float(point[1]))
    except (TypeError, ValueError):
        return False


@dataclass(frozen=True)
class Segment:
    """Straight edge derived from a drawing entity."""
    start: Point
    end: Point
    layer: str = ""
    color: int = 0
    kind: str = "line"

    @property
    def length(self) -> float:
        return math.hypot(self.end[0] - self.start[0], self.end[1] - self.start[1])

    @property
    def is_degenerate(self) -> bool:
        return not (is_finite_point(self.start) and is_finite_point(self.end)) or self.length <= 0.0

    def to_dict(self) -> dict:
        return {
            "start": list(self.start),
            "end": list(self.end),
            "layer": self.layer,
            "color": self.color,
            "kind": self.kind,
        }


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle view used by the placement predicates."""
    x1: float
    y1: float
    x2: float
    y2: float

    @classmethod
    def from_xywh(cls, x: float, y: float, width: float, height: float) -> "Rect":
        return cls(x, y, x + width, y + height)

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1

    @property
    def area(self) -> float:
        return max(0.0, self.width) * max(0.0, self.height)

    @property
    def center(self) -> Point:
        return ((self.x1 + self.x2) / 2.0, (self.y1 + self.y2) / 2.0)

    def corners(self) -> tuple[Point, Point, Point, Point]:
        return ((self.x1, self.y1), (self.x2, self.y1), (self.x2, self.y2), (self.x1, self.y2))

    def expanded(self, margin: float) -> "Rect":
        return Rect(self.x1 - margin, self.y1 - margin, self.x2 + margin, self.y2 + margin)

    def translated(self, dx: float, dy: float) -> "Rect":
        return Rect(self.x1 + dx, self.y1 + dy, self.x2 + dx, self.y2 + dy)

    def is_finite(self) -> bool:
        return all(math.isfinite(v) for v in (self.x1, self.y1, self.x2, self.y2))


@dataclass(frozen=True)
class Bounds:
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @classmethod
    def default(cls) -> "Bounds":
        return cls(*DEFAULT_BOUNDS)

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def center(self) -> Point:
        return ((self.min_x + self.max_x) / 2.0, (self.min_y + self.max_y) / 2.0)

    def is_usable(self) -> bool:
        values = (self.min_x, self.min_y, self.max_x, self.max_y)
        return all(math.isfinite(v) for v in values) and self.width > 0.0 and self.height > 0.0

    def contains_rect(self, rect: Rect, eps: float = 0.0) -> bool:
        return (
            rect.x1 >= self.min_x - eps
            and rect.y1 >= self.min_y - eps
            and rect.x2 <= self.max_x + eps
            and rect.y2 <= self.max_y + eps
        )

    def as_rect(self) -> Rect:
        return Rect(self.min_x, self.min_y, self.max_x, self.max_y)

    def to_dict(self) -> dict:
        return {
            "minX": self.min_x,
            "minY": self.min_y,
            "maxX": self.max_x,
            "maxY": self.max_y,
            "width": self.width,
            "height": self.height,
            "area": self.area,
            "centerX": self.center[0],
            "centerY": self.center[1],
        }


class BoundsAccumulator:
    """Running min/max over every finite coordinate seen."""

    def __init__(self) -> None:
        self.min_x = math.inf
        self.min_y = math.inf
        self.max_x = -math.inf
        self.max_y = -math.inf

    def add(self, x: float, y: float) -> None:
        if not (math.isfinite(x) and math.isfinite(y)):
            return
        self.min_x = min(self.min_x, x)
        self.min_y = min(self.min_y, y)
        self.max_x = max(self.max_x, x)
        self.max_y = max(self.max_y, y)

    @property
    def empty(self) -> bool:
        return self.min_x == math.inf

    def build(self) -> Bounds:
        if self.empty:
            return Bounds.default()
        return Bounds(self.min_x, self.min_y, self.max_x, self.max_y)


def polygon_is_valid_input(polygon: Sequence[Point] | None) -> bool:
    """At least three finite vertices."""
    if not polygon or len(polygon) < 3:
        return False
    return all(is_finite_point(p) for p in polygon)


def signed_area(polygon: Sequence[Point]) -> float:
    total = 0.0
    n = len(polygon)
    for i in range(n):
        x1, y1 = polygon[i]
        x2, y2 = polygon[(i + 1) % n]
        total += x1 * y2 - x2 * y1
    return total / 2.0


def shoelace_area(polygon: Sequence[Point]) -> float:
    if not polygon or len(polygon) < 3:
        return 0.0
    return abs(signed_area(polygon))


def polygon_centroid(polygon: Sequence[Point]) -> Point:
    """Area centroid, falling back to the vertex mean for degenerate rings."""
    n = len(polygon)
    area = signed_area(polygon) if n >= 3 else 0.0
    if abs(area) < 1e-10:
        return (sum(p[0] for p in polygon) / n, sum(p[1] for p in polygon) / n)
    cx = cy = 0.0
    for i in range(n):
        x1, y1 = polygon[i]
        x2, y2 = polygon[(i + 1) % n]
        cross = x1 * y2 - x2 * y1
        cx += (x1 + x2) * cross
        cy += (y1 + y2) * cross
    return (cx / (6.0 * area), cy / (6.0 * area))


def bounds_of(points: Iterable[Point]) -> Bounds:
    acc = BoundsAccumulator()
    for x, y in points:
        acc.add(x, y)
    return acc.build()


def is_convex(polygon: Sequence[Point]) -> bool:
    n = len(polygon)
    if n < 3:
        return False
    sign = 0
    for i in range(n):
        ax, ay = polygon[i]
        bx, by = polygon[(i + 1) % n]
        cx, cy = polygon[(i + 2) % n]
        cross = (bx - ax) * (cy - by) - (by - ay) * (cx - bx)
        if abs(cross) < 1e-12:
            continue
        current = 1 if cross > 0 else -1
        if sign == 0:
            sign = current
        elif current != sign:
            return False
    return sign != 0


def point_in_polygon(point: Point, polygon: Sequence[Point]) -> bool:
    """Ray casting; boundary points may land on either side."""
    x, y = point
    inside = False
    n = len(polygon)
    j = n - 1
    for i in range(n):
        xi, yi = polygon[i]
        xj, yj = polygon[j]
        if (yi > y) != (yj > y) and x < (xj - xi) * (y - yi) / (yj - yi) + xi:
            inside = not inside
        j = i
    return inside


def point_segment_distance(point: Point, a: Point, b: Point) -> float:
    px, py = point
    x1, y1 = a
    x2, y2 = b
    dx, dy = x2 - x1, y2 - y1
    if dx == 0 and dy == 0:
        return math.hypot(px - x1, py - y1)
    t = ((px - x1) * dx + (py - y1) * dy) / (dx * dx + dy * dy)
    t = max(0.0, min(1.0, t))
    return math.hypot(px - (x1 + t * dx), py - (y1 + t * dy))


def _orient(a: Point, b: Point, c: Point) -> float:
    return (b[0] - a[0]) * (c[1] - a[1]) - (b[1] - a[1]) * (c[0] - a[0])


def _on_segment(a: Point, b: Point, c: Point) -> bool:
    return (
        min(a[0], c[0]) <= b[0] <= max(a[0], c[0])
        and min(a[1], c[1]) <= b[1] <= max(a[1], c[1])
    )


def segments_intersect(p1: Point, p2: Point, p3: Point, p4: Point) -> bool:
    """Closed segment intersection, collinear overlaps and touching included."""
    o1 = _orient(p1, p2, p3)
    o2 = _orient(p1, p2, p4)
    o3 = _orient(p3, p4, p1)
    o4 = _orient(p3, p4, p2)

    if o1 == 0 and _on_segment(p1, p3, p2):
        return True
    if o2 == 0 and _on_segment(p1, p4, p2):
        return True
    if o3 == 0 and _on_segment(p3, p1, p4):
        return True
    if o4 == 0 and _on_segment(p3, p2, p4):
        return True

    return (o1 > 0) != (o2 > 0) and (o3 > 0) != (o4 > 0)


def point_to_rect_distance(point: Point, rect: Rect) -> float:
    dx = max(rect.x1 - point[0], 0.0, point[0] - rect.x2)
    dy = max(rect.y1 - point[1], 0.0, point[1] - rect.y2)
    return math.hypot(dx, dy)


def rect_edges(rect: Rect) -> list[tuple[Point, Point]]:
    c = rect.corners()
    return [(c[0], c[1]), (c[1], c[2]), (c[2], c[3]), (c[3], c[0])]


def segment_intersects_rect_edges(a: Point, b: Point, rect: Rect) -> bool:
    return any(segments_intersect(a, b, e0, e1) for e0, e1 in rect_edges(rect))


def segment_rect_distance(a: Point, b: Point, rect: Rect) -> float:
    if point_to_rect_distance(a, rect) == 0.0 or point_to_rect_distance(b, rect) == 0.0:
        return 0.0
    if segment_intersects_rect_edges(a, b, rect):
        return 0.0
    candidates = [point_to_rect_distance(a, rect), point_to_rect_distance(b, rect)]
    candidates.extend(point_segment_distance(corner, a, b) for corner in rect.corners())
    return min(candidates)


def rect_overlap_area(a: Rect, b: Rect) -> float:
    x_overlap = max(0.0, min(a.x2, b.x2) - max(a.x1, b.x1))
    y_overlap = max(0.0, min(a.y2, b.y2) - max(a.y1, b.y1))
    return x_overlap * y_overlap


def rects_closer_than(r1: Rect, r2: Rect, min_dist: float) -> bool:
    """True when r1 grown by min_dist strictly overlaps r2; touching at exactly min_dist passes."""
    e = r1.expanded(min_dist)
    return not (e.x2 <= r2.x1 or e.x1 >= r2.x2 or e.y2 <= r2.y1 or e.y1 >= r2.y2)


def rect_gap(a: Rect, b: Rect) -> float:
    """Euclidean clearance between two rectangles (0 when they touch or overlap)."""
    dx = max(0.0, max(a.x1, b.x1) - min(a.x2, b.x2))
    dy = max(0.0, max(a.y1, b.y1) - min(a.y2, b.y2))
    return math.hypot(dx, dy)


__all__ = [
    "Point",
    "PolygonCoords",
    "Segment",
    "Rect",
    "Bounds",
    "BoundsAccumulator",
    "DEFAULT_BOUNDS",
    "is_finite_point",
    "polygon_is_valid_input",
    "signed_area",
    "shoelace_area",
    "polygon_centroid",
    "bounds_of",
    "is_convex",
    "point_in_polygon",
    "point_segment_distance",
    "segments_intersect",
    "point_to_rect_distance",
    "rect_edges",
    "segment_intersects_rect_edges",
    "segment_rect_distance",
    "rect_overlap_area",
    "rects_closer_than",
    "rect_gap",
]
