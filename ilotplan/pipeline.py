"""
Layout pipeline: reconstruction, placement and routing in one call.
"""

from __future__ import annotations

import time
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, List, Mapping, Tuple

from loguru import logger

from ilotplan.layout_config import LayoutConfig
from ilotplan.logging_config import get_logger
from ilotplan.metrics.layout_metrics import LayoutMetrics
from ilotplan.placement.engine import PlacementResult, Unit, place_units
from ilotplan.reconstruct.floor_plan import FloorPlan, build_floor_plan
from ilotplan.routing.corridors import Corridor
from ilotplan.routing.rows import RowRouter


@dataclass
class LayoutResult:
    floor_plan: FloorPlan
    units: Tuple[Unit, ...]
    corridors: List[Corridor]
    metrics: LayoutMetrics
    placement: PlacementResult

    def to_dict(self) -> dict[str, Any]:
        return {
            "bounds": self.floor_plan.bounds.to_dict(),
            "units": [u.to_dict() for u in self.units],
            "corridors": [c.to_dict() for c in self.corridors],
            "metrics": self.metrics.to_dict(),
            "summary": self.metrics.get_summary(),
            "diagnostics": self.floor_plan.diagnostics.to_dict(),
        }


def generate_layout(
    floor_plan_or_entities: FloorPlan | Iterable[Mapping[str, Any]],
    distribution: Mapping[str, Any],
    config: LayoutConfig | None = None,
    total_units: int | None = None,
) -> LayoutResult:
    """Reconstruct (if given raw entities), place units and route corridors."""
    if config is None:
        config = LayoutConfig.default()
    started = time.perf_counter()

    if isinstance(floor_plan_or_entities, FloorPlan):
        floor_plan = floor_plan_or_entities
        reconstruction_time = 0.0
    else:
        t0 = time.perf_counter()
        with logger.contextualize(stage="reconstruct"):
            floor_plan = build_floor_plan(floor_plan_or_entities, config.reconstruction)
        reconstruction_time = time.perf_counter() - t0

    with logger.contextualize(stage="placement"):
        placement = place_units(floor_plan, distribution, total_units, config.placement)
    metrics = placement.metrics
    metrics.time_reconstruction = reconstruction_time
    if floor_plan.diagnostics.default_bounds_used:
        metrics.add_warning("Floor plan had no finite coordinates; default bounds used", "reconstruction")

    with logger.contextualize(stage="routing"):
        corridors = RowRouter(floor_plan, config.routing, metrics).generate(placement.units)
    metrics.time_total = time.perf_counter() - started

    get_logger("pipeline").info(
        "Layout generated: {} units, {} corridors in {:.3f}s",
        len(placement.units),
        len(corridors),
        metrics.time_total,
    )
    return LayoutResult(
        floor_plan=floor_plan,
        units=placement.units,
        corridors=corridors,
        metrics=metrics,
        placement=placement,
    )


__all__ = ["LayoutResult", "generate_layout"]
