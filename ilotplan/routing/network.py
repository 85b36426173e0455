"""Corridor network clean-up: drop covered corridors and merge aligned main spans."""

from __future__ import annotations

from dataclasses import replace
from typing import List, Sequence

from loguru import logger
from shapely.geometry import Polygon
from shapely.ops import unary_union

from ilotplan.routing.corridors import Corridor, CorridorType


_MERGE_TOLERANCE = 0.1


def remove_redundant_corridors(corridors: Sequence[Corridor], tolerance: float = 1e-6) -> List[Corridor]:
    """Drop every corridor whose polygon lies inside a larger (or earlier, equal) one."""
    shapes = [c.to_shape() for c in corridors]
    keep: List[Corridor] = []
    for i, corridor in enumerate(corridors):
        shape = shapes[i]
        covered = False
        for j, other in enumerate(shapes):
            if i == j or not other.is_valid or not shape.is_valid:
                continue
            larger = other.area > shape.area or (other.area == shape.area and j < i)
            if larger and other.buffer(tolerance).covers(shape):
                covered = True
                break
        if covered:
            logger.debug("Corridor {} is covered by another corridor; removed", corridor.id)
        else:
            keep.append(corridor)
    return keep


def _can_merge(a: Corridor, b: Corridor) -> bool:
    if a.type is not CorridorType.MAIN or b.type is not CorridorType.MAIN:
        return False
    ra, rb = a.bbox, b.bbox
    same_band = abs(ra.y1 - rb.y1) < _MERGE_TOLERANCE and abs(ra.y2 - rb.y2) < _MERGE_TOLERANCE
    abutting = abs(ra.x2 - rb.x1) < _MERGE_TOLERANCE or abs(rb.x2 - ra.x1) < _MERGE_TOLERANCE
    return same_band and abutting


def merge_adjacent_corridors(corridors: Sequence[Corridor]) -> List[Corridor]:
    """Fuse main corridors that share a horizontal band and abut end to end."""
    items = list(corridors)
    merged = True
    while merged:
        merged = False
        for i in range(len(items) - 1):
            for j in range(i + 1, len(items)):
                a, b = items[i], items[j]
                if not _can_merge(a, b):
                    continue
                envelope = unary_union([a.to_shape(), b.to_shape()]).envelope
                if not isinstance(envelope, Polygon):
                    continue
                polygon = tuple((float(x), float(y)) for x, y in list(envelope.exterior.coords)[:-1])
                items[i] = replace(
                    a,
                    polygon=polygon,
                    width=min(a.width, b.width),
                    connects=tuple(dict.fromkeys(a.connects + b.connects)),
                )
                del items[j]
                merged = True
                break
            if merged:
                break
    return items


def optimize_corridor_network(corridors: Sequence[Corridor]) -> List[Corridor]:
    """Remove redundant corridors, merge aligned main spans and renumber ids from 1."""
    cleaned = merge_adjacent_corridors(remove_redundant_corridors(corridors))
    return [replace(c, id=i) for i, c in enumerate(cleaned, start=1)]


__all__ = ["remove_redundant_corridors", "merge_adjacent_corridors", "optimize_corridor_network"]
