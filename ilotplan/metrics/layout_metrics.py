"""
Layout Metrics Collection

Collects counters and timings while a layout is reconstructed, packed and
routed, for monitoring and for reporting alongside the generated layout.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ParseDiagnostics:
    """
    Counts gathered while reconstructing a floor plan from drawing entities.

    Diagnostics are informational only; nothing recorded here fails a parse.
    """

    entities_total: int = 0
    entities_parsed: int = 0
    skipped_by_reason: dict[str, int] = field(default_factory=dict)
    unsupported_types: dict[str, int] = field(default_factory=dict)

    segments_total: int = 0
    segments_by_kind: dict[str, int] = field(default_factory=dict)
    polygons_closed: int = 0
    chains_abandoned: int = 0
    lone_segments: int = 0

    walls: int = 0
    forbidden_zones: int = 0
    entrances: int = 0
    rooms: int = 0
    layers: dict[str, int] = field(default_factory=dict)
    default_bounds_used: bool = False

    @property
    def entities_skipped(self) -> int:
        return sum(self.skipped_by_reason.values()) + sum(self.unsupported_types.values())

    def skip(self, reason: str) -> None:
        self.skipped_by_reason[reason] = self.skipped_by_reason.get(reason, 0) + 1

    def unsupported(self, entity_type: str) -> None:
        self.unsupported_types[entity_type] = self.unsupported_types.get(entity_type, 0) + 1

    def track_layer(self, layer: str) -> None:
        if layer:
            self.layers[layer] = self.layers.get(layer, 0) + 1

    def track_segment(self, kind: str) -> None:
        self.segments_total += 1
        self.segments_by_kind[kind] = self.segments_by_kind.get(kind, 0) + 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "entities": {
                "total": self.entities_total,
                "parsed": self.entities_parsed,
                "skipped": self.entities_skipped,
                "skipped_by_reason": dict(self.skipped_by_reason),
                "unsupported_types": dict(self.unsupported_types),
            },
            "segments": {
                "total": self.segments_total,
                "by_kind": dict(self.segments_by_kind),
                "lone": self.lone_segments,
            },
            "chains": {
                "closed": self.polygons_closed,
                "abandoned": self.chains_abandoned,
            },
            "zones": {
                "walls": self.walls,
                "forbidden": self.forbidden_zones,
                "entrances": self.entrances,
            },
            "rooms": self.rooms,
            "layers": dict(self.layers),
            "default_bounds_used": self.default_bounds_used,
        }


@dataclass
class LayoutMetrics:
    """
    Metrics collected during placement and routing.

    Tracks demand vs. outcome, search behaviour, routing fallbacks and
    per-stage timings.
    """

    # Demand
    requested_units: int = 0
    generated_candidates: int = 0
    placed_units: int = 0
    dropped_units: int = 0
    placed_by_scan: int = 0
    placed_by_random: int = 0

    # Refinement
    overlapping_pairs: int = 0
    refinement_moves: int = 0
    refinement_nudges: int = 0
    unresolved_overlaps: int = 0

    # Routing
    rows_detected: int = 0
    corridors_by_type: dict[str, int] = field(default_factory=dict)
    paths_found: int = 0
    path_fallbacks: int = 0
    corridors_removed: int = 0

    # Coverage
    floor_area: float = 0.0
    placed_area: float = 0.0

    # Performance metrics (in seconds)
    time_reconstruction: float = 0.0
    time_placement: float = 0.0
    time_refinement: float = 0.0
    time_routing: float = 0.0
    time_total: float = 0.0

    warnings: list[str] = field(default_factory=list)
    warnings_by_category: dict[str, int] = field(default_factory=dict)

    def add_warning(self, message: str, category: str = "general") -> None:
        """Add a warning message and update category count."""
        self.warnings.append(message)
        self.warnings_by_category[category] = self.warnings_by_category.get(category, 0) + 1

    def count_corridor(self, corridor_type: str) -> None:
        self.corridors_by_type[corridor_type] = self.corridors_by_type.get(corridor_type, 0) + 1

    def fill_ratio(self) -> float:
        if self.requested_units <= 0:
            return 0.0
        return self.placed_units / self.requested_units

    def coverage_ratio(self) -> float:
        if self.floor_area <= 0.0:
            return 0.0
        return self.placed_area / self.floor_area

    def to_dict(self) -> dict[str, Any]:
        """Convert metrics to dictionary for serialization."""
        return {
            "placement": {
                "requested": self.requested_units,
                "candidates": self.generated_candidates,
                "placed": self.placed_units,
                "dropped": self.dropped_units,
                "by_scan": self.placed_by_scan,
                "by_random": self.placed_by_random,
            },
            "refinement": {
                "overlapping_pairs": self.overlapping_pairs,
                "moves": self.refinement_moves,
                "nudges": self.refinement_nudges,
                "unresolved": self.unresolved_overlaps,
            },
            "routing": {
                "rows": self.rows_detected,
                "corridors": dict(self.corridors_by_type),
                "paths_found": self.paths_found,
                "path_fallbacks": self.path_fallbacks,
                "removed": self.corridors_removed,
            },
            "coverage": {
                "floor_area": self.floor_area,
                "placed_area": self.placed_area,
                "ratio": self.coverage_ratio(),
            },
            "performance": {
                "reconstruction": self.time_reconstruction,
                "placement": self.time_placement,
                "refinement": self.time_refinement,
                "routing": self.time_routing,
                "total": self.time_total,
            },
            "warnings": {
                "total": len(self.warnings),
                "by_category": dict(self.warnings_by_category),
                "list": list(self.warnings),
            },
        }

    def get_summary(self) -> dict[str, Any]:
        """Get a summary of key metrics."""
        return {
            "fill_ratio": self.fill_ratio(),
            "coverage_ratio": self.coverage_ratio(),
            "placed_units": self.placed_units,
            "total_corridors": sum(self.corridors_by_type.values()),
            "path_fallbacks": self.path_fallbacks,
            "total_time_seconds": self.time_total,
            "total_warnings": len(self.warnings),
        }
