"""
Floor plan reconstruction.

Turns a list of already-decoded drawing entities into an immutable
``FloorPlan``: chordal segments are chained into closed polygons, polygons
and leftover segments are classified into walls, forbidden zones and
entrances, and closed polygons above the minimum area become rooms.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger

from ilotplan.exceptions import InvalidBoundsError, ReconstructionError
from ilotplan.geometry.primitives import Bounds, Point, Segment, polygon_is_valid_input
from ilotplan.layout_config import ReconstructionConfig
from ilotplan.metrics.layout_metrics import ParseDiagnostics
from ilotplan.reconstruct.chaining import chain_polygons
from ilotplan.reconstruct.classify import Classification, ZoneClassifier
from ilotplan.reconstruct.rooms import Room, extract_rooms
from ilotplan.vector.entities import parse_entities


@dataclass(frozen=True)
class Zone:
    """Classified region: a closed polygon, or a single lone segment."""
    classification: Classification
    layer: str = ""
    color: int = 0
    polygon: Optional[Tuple[Point, ...]] = None
    segment: Optional[Segment] = None

    @property
    def is_polygon(self) -> bool:
        return self.polygon is not None

    @property
    def points(self) -> Tuple[Point, ...]:
        if self.polygon is not None:
            return self.polygon
        if self.segment is not None:
            return (self.segment.start, self.segment.end)
        return ()

    def to_dict(self) -> dict:
        data: Dict[str, Any] = {
            "classification": self.classification.value,
            "layer": self.layer,
            "color": self.color,
        }
        if self.polygon is not None:
            data["polygon"] = [list(p) for p in self.polygon]
        if self.segment is not None:
            data["segment"] = [list(self.segment.start), list(self.segment.end)]
        return data


@dataclass(frozen=True)
class FloorPlan:
    walls: Tuple[Zone, ...] = ()
    forbidden_zones: Tuple[Zone, ...] = ()
    entrances: Tuple[Zone, ...] = ()
    bounds: Bounds = field(default_factory=Bounds.default)
    rooms: Tuple[Room, ...] = ()
    layers: Mapping[str, int] = field(default_factory=dict)
    diagnostics: ParseDiagnostics = field(default_factory=ParseDiagnostics, compare=False)

    @classmethod
    def empty(cls, bounds: Bounds | Tuple[float, float, float, float] | None = None) -> "FloorPlan":
        """Obstacle-free plan over the given bounds."""
        if bounds is None:
            bounds = Bounds.default()
        elif not isinstance(bounds, Bounds):
            bounds = Bounds(*(float(v) for v in bounds))
        return cls(bounds=bounds)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FloorPlan":
        """
        Build a plan from pre-classified plain data.

        Accepts ``walls``, ``forbidden_zones`` and ``entrances`` as lists of
        vertex lists (or ``{"polygon": [...]}``/``{"segment": [a, b]}``
        mappings) and ``bounds`` as ``{minX, minY, maxX, maxY}``. Missing
        bounds are derived from the zone coordinates.
        """
        groups: Dict[Classification, List[Zone]] = {c: [] for c in Classification}
        keys = (
            ("walls", Classification.WALL),
            ("forbidden_zones", Classification.FORBIDDEN),
            ("entrances", Classification.ENTRANCE),
        )
        for key, classification in keys:
            for raw in data.get(key) or []:
                zone = _zone_from_raw(raw, classification)
                if zone is not None:
                    groups[classification].append(zone)

        raw_bounds = data.get("bounds")
        if raw_bounds:
            try:
                bounds = Bounds(
                    float(raw_bounds["minX"]),
                    float(raw_bounds["minY"]),
                    float(raw_bounds["maxX"]),
                    float(raw_bounds["maxY"]),
                )
            except (KeyError, TypeError, ValueError) as exc:
                raise InvalidBoundsError("Floor plan bounds are malformed", {"bounds": str(raw_bounds)}) from exc
        else:
            points = [p for zones in groups.values() for z in zones for p in z.points]
            bounds = _bounds_or_default(points)

        rooms = extract_rooms((z.polygon, z.layer) for zones in groups.values() for z in zones if z.polygon)
        return cls(
            walls=tuple(groups[Classification.WALL]),
            forbidden_zones=tuple(groups[Classification.FORBIDDEN]),
            entrances=tuple(groups[Classification.ENTRANCE]),
            bounds=bounds,
            rooms=tuple(rooms),
        )

    def zones(self) -> Tuple[Zone, ...]:
        return self.walls + self.forbidden_zones + self.entrances

    def to_dict(self) -> dict:
        return {
            "walls": [z.to_dict() for z in self.walls],
            "forbidden_zones": [z.to_dict() for z in self.forbidden_zones],
            "entrances": [z.to_dict() for z in self.entrances],
            "bounds": self.bounds.to_dict(),
            "rooms": [r.to_dict() for r in self.rooms],
            "layers": dict(self.layers),
            "diagnostics": self.diagnostics.to_dict(),
        }


def _zone_from_raw(raw: Any, classification: Classification) -> Optional[Zone]:
    layer = ""
    color = 0
    try:
        if isinstance(raw, Mapping):
            layer = str(raw.get("layer") or "").upper()
            try:
                color = int(raw.get("color") or 0)
            except (TypeError, ValueError):
                color = 0
            if raw.get("segment"):
                a, b = raw["segment"][0], raw["segment"][1]
                seg = Segment(start=(float(a[0]), float(a[1])), end=(float(b[0]), float(b[1])), layer=layer, color=color)
                if seg.is_degenerate:
                    return None
                return Zone(classification, layer, color, segment=seg)
            raw = raw.get("polygon")
        if not raw:
            return None
        ring = tuple((float(p[0]), float(p[1])) for p in raw)
    except (TypeError, ValueError, IndexError, KeyError) as exc:
        logger.debug("Ignoring malformed {} record: {}", classification.value, exc)
        return None
    if not polygon_is_valid_input(ring):
        logger.debug("Ignoring degenerate {} polygon with {} vertices", classification.value, len(ring))
        return None
    return Zone(classification, layer, color, polygon=ring)


def _bounds_or_default(points: List[Point]) -> Bounds:
    finite = [p for p in points if math.isfinite(p[0]) and math.isfinite(p[1])]
    if not finite:
        return Bounds.default()
    xs = [p[0] for p in finite]
    ys = [p[1] for p in finite]
    return Bounds(min(xs), min(ys), max(xs), max(ys))


def build_floor_plan(
    entities: Iterable[Mapping[str, Any]] | None,
    config: ReconstructionConfig | None = None,
) -> FloorPlan:
    """Reconstruct a classified floor plan from drawing entities."""
    if config is None:
        config = ReconstructionConfig()
    if entities is None:
        entities = []
    if isinstance(entities, (str, bytes, Mapping)) or not isinstance(entities, Iterable):
        raise ReconstructionError(
            "Entities must be an iterable of entity mappings",
            {"type": type(entities).__name__},
        )

    parsed = parse_entities(entities, config)
    segments = parsed.segments
    diagnostics = parsed.diagnostics

    chained = chain_polygons(segments, config.snap_tolerance, config.max_chain_length)
    diagnostics.polygons_closed = len(chained.polygons)
    diagnostics.chains_abandoned = chained.abandoned_chains

    classifier = ZoneClassifier(config)
    groups: Dict[Classification, List[Zone]] = {c: [] for c in Classification}

    for poly in chained.polygons:
        classification = classifier.classify(poly.layer, poly.color)
        groups[classification].append(
            Zone(classification, poly.layer, poly.color, polygon=poly.vertices)
        )

    leftover = chained.leftover(segments)
    diagnostics.lone_segments = len(leftover)
    for i in leftover:
        seg = segments[i]
        classification = classifier.classify(seg.layer, seg.color)
        groups[classification].append(Zone(classification, seg.layer, seg.color, segment=seg))

    rooms = extract_rooms(((p.vertices, p.layer) for p in chained.polygons), config.min_room_area)

    diagnostics.walls = len(groups[Classification.WALL])
    diagnostics.forbidden_zones = len(groups[Classification.FORBIDDEN])
    diagnostics.entrances = len(groups[Classification.ENTRANCE])
    diagnostics.rooms = len(rooms)
    diagnostics.default_bounds_used = parsed.bounds.empty

    bounds = parsed.bounds.build()
    if diagnostics.default_bounds_used:
        logger.warning("No finite coordinates in drawing; using default bounds {}", bounds.to_dict())

    logger.info(
        "Floor plan reconstructed: {} entities ({} skipped), {} segments, {} polygons, "
        "{} walls, {} forbidden, {} entrances, {} rooms",
        diagnostics.entities_total,
        diagnostics.entities_skipped,
        diagnostics.segments_total,
        diagnostics.polygons_closed,
        diagnostics.walls,
        diagnostics.forbidden_zones,
        diagnostics.entrances,
        diagnostics.rooms,
    )

    return FloorPlan(
        walls=tuple(groups[Classification.WALL]),
        forbidden_zones=tuple(groups[Classification.FORBIDDEN]),
        entrances=tuple(groups[Classification.ENTRANCE]),
        bounds=bounds,
        rooms=tuple(rooms),
        layers=dict(diagnostics.layers),
        diagnostics=diagnostics,
    )


__all__ = ["Zone", "FloorPlan", "build_floor_plan"]
