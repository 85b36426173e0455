"""Parsers for already-decoded CAD entity records."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from loguru import logger

from ilotplan.geometry.primitives import BoundsAccumulator, Point, Segment
from ilotplan.layout_config import ReconstructionConfig
from ilotplan.metrics.layout_metrics import ParseDiagnostics
from ilotplan.vector.arcs import arc_to_chords, bulge_to_chords, circle_to_chords


class MalformedEntity(ValueError):
    """Raised internally for a single entity that cannot be converted."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


@dataclass
class ParsedEntities:
    segments: List[Segment]
    bounds: BoundsAccumulator
    diagnostics: ParseDiagnostics


def _number(value: Any, reason: str) -> float:
    if value is None or isinstance(value, bool):
        raise MalformedEntity(reason)
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise MalformedEntity(reason) from exc
    if not math.isfinite(number):
        raise MalformedEntity(reason)
    return number


def _point(value: Any, reason: str = "bad_coordinates") -> Point:
    """Accept ``[x, y]``, ``(x, y, ...)`` or ``{"x": .., "y": ..}``."""
    if isinstance(value, Mapping):
        return (_number(value.get("x"), reason), _number(value.get("y"), reason))
    if isinstance(value, (list, tuple)) and len(value) >= 2:
        return (_number(value[0], reason), _number(value[1], reason))
    raise MalformedEntity(reason)


def _vertex(value: Any) -> Tuple[float, float, float]:
    if isinstance(value, Mapping):
        bulge = value.get("bulge", 0.0)
    elif isinstance(value, (list, tuple)) and len(value) >= 3:
        bulge = value[2]
    else:
        bulge = 0.0
    x, y = _point(value, "bad_vertex")
    try:
        b = float(bulge or 0.0)
    except (TypeError, ValueError):
        b = 0.0
    return x, y, b if math.isfinite(b) else 0.0


def _layer_of(entity: Mapping[str, Any]) -> str:
    return str(entity.get("layer") or "").strip().upper()


def _color_of(entity: Mapping[str, Any]) -> int:
    try:
        return int(entity.get("color") or 0)
    except (TypeError, ValueError):
        return 0


def _line_chords(entity: Mapping[str, Any]) -> List[Tuple[Point, Point]]:
    if "start" in entity or "end" in entity:
        return [(_point(entity.get("start")), _point(entity.get("end")))]
    start = (_number(entity.get("x1"), "bad_coordinates"), _number(entity.get("y1"), "bad_coordinates"))
    end = (_number(entity.get("x2"), "bad_coordinates"), _number(entity.get("y2"), "bad_coordinates"))
    return [(start, end)]


def _radius(entity: Mapping[str, Any]) -> float:
    radius = _number(entity.get("radius"), "bad_radius")
    if radius <= 0.0:
        raise MalformedEntity("bad_radius")
    return radius


def _arc_chords(entity: Mapping[str, Any], config: ReconstructionConfig) -> List[Tuple[Point, Point]]:
    center = _point(entity.get("center"))
    radius = _radius(entity)
    start = _number(entity.get("start_angle"), "bad_angle")
    end = _number(entity.get("end_angle"), "bad_angle")
    return arc_to_chords(center, radius, start, end, config.arc_segment_angle_deg)


def _circle_chords(entity: Mapping[str, Any], config: ReconstructionConfig) -> List[Tuple[Point, Point]]:
    return circle_to_chords(_point(entity.get("center")), _radius(entity), config.circle_segments)


def _polyline_chords(
    entity: Mapping[str, Any],
    config: ReconstructionConfig,
) -> List[Tuple[Point, Point, str]]:
    raw = entity.get("vertices")
    if not isinstance(raw, (list, tuple)):
        raise MalformedEntity("bad_vertex")
    vertices = [_vertex(v) for v in raw]
    if len(vertices) < 2:
        raise MalformedEntity("too_few_vertices")
    closed = bool(entity.get("closed", False))
    pairs = list(zip(vertices, vertices[1:]))
    if closed and (vertices[0][0], vertices[0][1]) != (vertices[-1][0], vertices[-1][1]):
        pairs.append((vertices[-1], vertices[0]))

    chords: List[Tuple[Point, Point, str]] = []
    for (x1, y1, bulge), (x2, y2, _) in pairs:
        if abs(bulge) < 1e-6:
            chords.append(((x1, y1), (x2, y2), "line"))
            continue
        for a, b in bulge_to_chords((x1, y1), (x2, y2), bulge, config.arc_segment_angle_deg):
            chords.append((a, b, "bulge"))
    return chords


def parse_entity(
    entity: Mapping[str, Any],
    config: ReconstructionConfig,
) -> Optional[List[Segment]]:
    """Convert one entity into segments.

    Returns None for unsupported entity types; raises MalformedEntity for
    records that are supported but unusable.
    """
    entity_type = str(entity.get("type") or "").strip().upper()
    layer = _layer_of(entity)
    color = _color_of(entity)

    if entity_type == "LINE":
        chords = [(a, b, "line") for a, b in _line_chords(entity)]
    elif entity_type == "ARC":
        chords = [(a, b, "arc") for a, b in _arc_chords(entity, config)]
    elif entity_type == "CIRCLE":
        chords = [(a, b, "circle") for a, b in _circle_chords(entity, config)]
    elif entity_type in ("LWPOLYLINE", "POLYLINE"):
        chords = _polyline_chords(entity, config)
    else:
        return None

    segments = [Segment(start=a, end=b, layer=layer, color=color, kind=kind) for a, b, kind in chords]
    segments = [s for s in segments if s.length > 0.0]
    if not segments:
        raise MalformedEntity("zero_length")
    return segments


def parse_entities(
    entities: Iterable[Mapping[str, Any]],
    config: ReconstructionConfig | None = None,
) -> ParsedEntities:
    """Parse a list of entity records into segments, skipping bad records one by one."""
    if config is None:
        config = ReconstructionConfig()

    diagnostics = ParseDiagnostics()
    bounds = BoundsAccumulator()
    segments: List[Segment] = []

    for index, entity in enumerate(entities or []):
        diagnostics.entities_total += 1
        if not isinstance(entity, Mapping):
            diagnostics.skip("not_a_mapping")
            logger.debug("Entity {} skipped: not a mapping", index)
            continue
        try:
            parsed = parse_entity(entity, config)
        except MalformedEntity as exc:
            diagnostics.skip(exc.reason)
            logger.debug("Entity {} ({}) skipped: {}", index, entity.get("type"), exc.reason)
            continue
        if parsed is None:
            entity_type = str(entity.get("type") or "UNKNOWN").upper()
            diagnostics.unsupported(entity_type)
            logger.debug("Entity {} skipped: unsupported type {}", index, entity_type)
            continue

        diagnostics.entities_parsed += 1
        diagnostics.track_layer(parsed[0].layer)
        for segment in parsed:
            segments.append(segment)
            diagnostics.track_segment(segment.kind)
            bounds.add(*segment.start)
            bounds.add(*segment.end)

    return ParsedEntities(segments=segments, bounds=bounds, diagnostics=diagnostics)


__all__ = ["MalformedEntity", "ParsedEntities", "parse_entity", "parse_entities"]
