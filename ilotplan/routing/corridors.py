from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple

from shapely.geometry import LineString, Polygon

from ilotplan.geometry.primitives import Point, Rect, bounds_of, shoelace_area


class CorridorType(str, Enum):
    MAIN = "main"
    CONNECTING = "connecting"
    ROUTED = "routed"


@dataclass(frozen=True)
class Corridor:
    """Circulation space between units. ``path`` is the centre line when known."""
    id: int
    type: CorridorType
    polygon: Tuple[Point, ...]
    width: float
    connects: Tuple[int, ...] = ()
    path: Optional[Tuple[Point, ...]] = None

    @property
    def area(self) -> float:
        return shoelace_area(self.polygon)

    @property
    def length(self) -> float:
        if self.path and len(self.path) > 1:
            return sum(math.dist(a, b) for a, b in zip(self.path, self.path[1:]))
        b = bounds_of(self.polygon)
        return max(b.width, b.height)

    @property
    def bbox(self) -> Rect:
        b = bounds_of(self.polygon)
        return Rect(b.min_x, b.min_y, b.max_x, b.max_y)

    def to_shape(self) -> Polygon:
        return Polygon(self.polygon)

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "type": self.type.value,
            "polygon": [list(p) for p in self.polygon],
            "width": self.width,
            "area": self.area,
            "length": self.length,
            "connects": list(self.connects),
        }
        if self.path is not None:
            data["path"] = [list(p) for p in self.path]
        return data


def rect_polygon(rect: Rect) -> Tuple[Point, ...]:
    return rect.corners()


def _dedupe(points: Sequence[Point]) -> list[Point]:
    out: list[Point] = []
    for p in points:
        if not out or math.dist(out[-1], p) > 1e-9:
            out.append((float(p[0]), float(p[1])))
    return out


def buffer_path(path: Sequence[Point], width: float) -> Tuple[Point, ...]:
    """Outline of a centre line widened to ``width`` (flat ends, mitred joins)."""
    points = _dedupe(path)
    if len(points) < 2:
        return ()
    shape = LineString(points).buffer(width / 2.0, cap_style="flat", join_style="mitre")
    if shape.is_empty or shape.geom_type != "Polygon":
        shape = shape.convex_hull
    coords = list(shape.exterior.coords)[:-1]
    return tuple((float(x), float(y)) for x, y in coords)


def connector_path(lower: Rect, upper: Rect) -> Tuple[Point, ...]:
    """
    Centre line of the fallback connector: up from the lower unit's top face
    to the midline between the units, along it, then up to the upper unit's
    bottom face.
    """
    ax = lower.center[0]
    bx = upper.center[0]
    mid_y = (lower.y2 + upper.y1) / 2.0
    return tuple(_dedupe([(ax, lower.y2), (ax, mid_y), (bx, mid_y), (bx, upper.y1)]))


__all__ = ["CorridorType", "Corridor", "rect_polygon", "buffer_path", "connector_path"]
