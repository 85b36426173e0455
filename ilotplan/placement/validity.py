from __future__ import annotations

from dataclasses import dataclass
from typing import Hashable, List, Optional, Tuple

from ilotplan.geometry.predicates import (
    GeometryPredicates,
    default_predicates,
    interior_vertex_count,
    segment_crosses_rect_interior,
)
from ilotplan.geometry.primitives import Point, Rect, bounds_of, rect_gap, rects_closer_than, segment_rect_distance
from ilotplan.layout_config import PlacementConfig
from ilotplan.placement.spatial_index import SpatialIndex
from ilotplan.reconstruct.floor_plan import FloorPlan, Zone


_BOUNDS_EPS = 1e-9


@dataclass(frozen=True)
class _PreparedZone:
    polygon: Optional[Tuple[Point, ...]]
    segment: Optional[Tuple[Point, Point]]
    bbox: Rect


def _prepare(zones: Tuple[Zone, ...]) -> List[_PreparedZone]:
    prepared: List[_PreparedZone] = []
    for zone in zones:
        points = zone.points
        if not points:
            continue
        b = bounds_of(points)
        bbox = Rect(b.min_x, b.min_y, b.max_x, b.max_y)
        if zone.polygon is not None:
            prepared.append(_PreparedZone(zone.polygon, None, bbox))
        elif zone.segment is not None:
            prepared.append(_PreparedZone(None, (zone.segment.start, zone.segment.end), bbox))
    return prepared


class PlacementValidator:
    """
    Hard placement constraints for a candidate rectangle.

    ``check`` returns the first violated rule name (or None), ``is_valid``
    the boolean form. Neighbour clearance is evaluated against the keys in
    the spatial index, optionally excluding the unit being moved.
    """

    def __init__(
        self,
        floor_plan: FloorPlan,
        index: SpatialIndex,
        config: PlacementConfig | None = None,
        predicates: GeometryPredicates | None = None,
    ) -> None:
        self.bounds = floor_plan.bounds
        self.index = index
        self.config = config or PlacementConfig()
        self.predicates = predicates or default_predicates()
        self._forbidden = _prepare(floor_plan.forbidden_zones)
        self._entrances = _prepare(floor_plan.entrances)
        self._walls = [z for z in _prepare(floor_plan.walls) if z.polygon is not None]

    def check(self, rect: Rect, exclude: Hashable | None = None) -> Optional[str]:
        if not rect.is_finite() or rect.width <= 0.0 or rect.height <= 0.0:
            return "degenerate"
        if not self.bounds.contains_rect(rect, _BOUNDS_EPS):
            return "out_of_bounds"

        for zone in self._forbidden:
            if rect_gap(rect, zone.bbox) > 0.0:
                continue
            if zone.polygon is not None:
                if self.predicates.rect_overlaps_polygon(rect, zone.polygon):
                    return "forbidden"
            elif segment_crosses_rect_interior(rect, *zone.segment):
                return "forbidden"

        min_entrance = self.config.min_entrance_distance
        for zone in self._entrances:
            if rect_gap(rect, zone.bbox) >= min_entrance:
                continue
            if zone.polygon is not None:
                distance = self.predicates.rect_polygon_distance(rect, zone.polygon)
            else:
                distance = segment_rect_distance(zone.segment[0], zone.segment[1], rect)
            if distance < min_entrance:
                return "entrance"

        for zone in self._walls:
            if rect_gap(rect, zone.bbox) > 0.0:
                continue
            if interior_vertex_count(rect, zone.polygon, limit=2) > 1 and self.predicates.rect_overlaps_polygon(
                rect, zone.polygon
            ):
                return "wall"

        min_gap = self.config.min_ilot_distance
        for key in self.index.query_rect(rect, padding=min_gap):
            if exclude is not None and key == exclude:
                continue
            other = self.index.rect_of(key)
            if other is not None and rects_closer_than(rect, other, min_gap):
                return "clearance"
        return None

    def is_valid(self, rect: Rect, exclude: Hashable | None = None) -> bool:
        return self.check(rect, exclude) is None


__all__ = ["PlacementValidator"]
