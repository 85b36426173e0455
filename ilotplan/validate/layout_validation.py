"""
Layout Validation

Re-checks a finished layout against its hard geometric rules with exact
shapely geometry, so consumers can verify results independently of how
they were produced.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Sequence

import shapely
from loguru import logger
from shapely.geometry import LineString, Polygon, box

from ilotplan.geometry.predicates import interior_vertex_count, segment_crosses_rect_interior
from ilotplan.geometry.primitives import rect_gap, rect_overlap_area
from ilotplan.layout_config import LayoutConfig
from ilotplan.placement.engine import Unit
from ilotplan.reconstruct.floor_plan import FloorPlan, Zone
from ilotplan.routing.corridors import Corridor, CorridorType


_AREA_EPS = 1e-6
_DIST_EPS = 1e-6


@dataclass
class LayoutValidationResult:
    """Result of layout validation."""

    is_valid: bool
    warnings: list[str]
    errors: list[str]
    statistics: dict[str, Any]

    def has_critical_issues(self) -> bool:
        """Check if there are critical issues that should block consumers."""
        return len(self.errors) > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "warnings": list(self.warnings),
            "errors": list(self.errors),
            "statistics": dict(self.statistics),
        }


def _zone_shape(zone: Zone):
    if zone.polygon is not None:
        shape = Polygon(zone.polygon)
        return shape if shape.is_valid else shapely.make_valid(shape)
    return LineString([zone.segment.start, zone.segment.end])


def validate_layout(
    floor_plan: FloorPlan,
    units: Sequence[Unit],
    corridors: Sequence[Corridor] = (),
    config: LayoutConfig | None = None,
) -> LayoutValidationResult:
    """
    Validate a generated layout.

    Checks:
    - Unit rectangles inside the floor plan bounds
    - No area overlap with forbidden zones
    - Entrance clearance
    - Pairwise unit overlap and clearance
    - Wall geometry drawn inside a unit (warning only)
    - Main corridors never cut into a unit
    """
    if config is None:
        config = LayoutConfig.default()
    placement = config.placement

    warnings: list[str] = []
    errors: list[str] = []
    stats: dict[str, Any] = {
        "units": len(units),
        "corridors": len(corridors),
        "corridors_by_type": {},
        "out_of_bounds": 0,
        "forbidden_overlaps": 0,
        "entrance_violations": 0,
        "unit_overlaps": 0,
        "clearance_violations": 0,
        "wall_overlaps": 0,
        "corridor_intrusions": 0,
        "min_unit_gap": None,
        "min_entrance_distance": None,
        "placed_area": sum(u.area for u in units),
    }

    bounds = floor_plan.bounds
    boxes = [box(u.x, u.y, u.x + u.width, u.y + u.height) for u in units]

    for unit in units:
        if not bounds.contains_rect(unit.rect, _DIST_EPS):
            stats["out_of_bounds"] += 1
            errors.append(f"Unit {unit.id}: outside floor plan bounds")

    for zone in floor_plan.forbidden_zones:
        shape = _zone_shape(zone)
        for unit, unit_box in zip(units, boxes):
            if zone.polygon is not None:
                hit = unit_box.intersection(shape).area > _AREA_EPS
            else:
                hit = segment_crosses_rect_interior(unit.rect, zone.segment.start, zone.segment.end)
            if hit:
                stats["forbidden_overlaps"] += 1
                errors.append(f"Unit {unit.id}: overlaps forbidden zone on layer {zone.layer or '?'}")

    min_entrance = math.inf
    for zone in floor_plan.entrances:
        shape = _zone_shape(zone)
        for unit, unit_box in zip(units, boxes):
            distance = float(unit_box.distance(shape))
            min_entrance = min(min_entrance, distance)
            if distance < placement.min_entrance_distance - _DIST_EPS:
                stats["entrance_violations"] += 1
                errors.append(
                    f"Unit {unit.id}: {distance:.3f} from entrance, minimum is {placement.min_entrance_distance}"
                )
    if math.isfinite(min_entrance):
        stats["min_entrance_distance"] = min_entrance

    for zone in floor_plan.walls:
        if zone.polygon is None:
            continue
        shape = _zone_shape(zone)
        for unit, unit_box in zip(units, boxes):
            if interior_vertex_count(unit.rect, zone.polygon, limit=2) < 2:
                continue
            if unit_box.intersection(shape).area > _AREA_EPS:
                stats["wall_overlaps"] += 1
                warnings.append(f"Unit {unit.id}: overlaps wall on layer {zone.layer or '?'}")

    min_gap = math.inf
    for i in range(len(units)):
        ri = units[i].rect
        for j in range(i + 1, len(units)):
            rj = units[j].rect
            if rect_overlap_area(ri, rj) > _AREA_EPS:
                stats["unit_overlaps"] += 1
                errors.append(f"Units {units[i].id} and {units[j].id} overlap")
                continue
            gap = rect_gap(ri, rj)
            min_gap = min(min_gap, gap)
            if gap < placement.min_ilot_distance - _DIST_EPS:
                stats["clearance_violations"] += 1
                errors.append(
                    f"Units {units[i].id} and {units[j].id}: clearance {gap:.3f} below {placement.min_ilot_distance}"
                )
    if math.isfinite(min_gap):
        stats["min_unit_gap"] = min_gap

    for corridor in corridors:
        by_type = stats["corridors_by_type"]
        by_type[corridor.type.value] = by_type.get(corridor.type.value, 0) + 1
        shape = corridor.to_shape()
        if not shape.is_valid:
            warnings.append(f"Corridor {corridor.id}: invalid polygon")
            continue
        for unit, unit_box in zip(units, boxes):
            if shape.intersection(unit_box).area <= _AREA_EPS:
                continue
            stats["corridor_intrusions"] += 1
            message = f"Corridor {corridor.id} ({corridor.type.value}) cuts into unit {unit.id}"
            if corridor.type is CorridorType.MAIN:
                errors.append(message)
            else:
                warnings.append(message)

    is_valid = len(errors) == 0
    if not is_valid:
        logger.warning("Layout validation found {} errors and {} warnings", len(errors), len(warnings))
    else:
        logger.debug("Layout validation passed with {} warnings", len(warnings))

    return LayoutValidationResult(is_valid=is_valid, warnings=warnings, errors=errors, statistics=stats)


__all__ = ["LayoutValidationResult", "validate_layout"]
