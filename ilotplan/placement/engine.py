"""
Constrained unit placement.

Candidates drawn from the size distribution are packed largest first: a
deterministic grid scan ordered by distance to the centre of the floor plan
is tried before a seeded random fallback, and a candidate that fits nowhere
is dropped. A refinement pass then resolves any remaining overlaps.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

import numpy as np
from loguru import logger

from ilotplan.exceptions import InvalidBoundsError
from ilotplan.geometry.predicates import GeometryPredicates, default_predicates
from ilotplan.geometry.primitives import Bounds, Rect
from ilotplan.layout_config import LayoutConfig, PlacementConfig
from ilotplan.metrics.layout_metrics import LayoutMetrics
from ilotplan.placement.distribution import (
    DistributionPlan,
    UnitCandidate,
    order_largest_first,
    plan_distribution,
    sample_candidates,
)
from ilotplan.placement.refinement import refine_positions
from ilotplan.placement.rng import DeterministicSequence
from ilotplan.placement.spatial_index import SpatialIndex
from ilotplan.placement.validity import PlacementValidator
from ilotplan.reconstruct.floor_plan import FloorPlan


# (upper bound exclusive, unit type)
_UNIT_TYPES: Tuple[Tuple[float, str], ...] = (
    (1.0, "single"),
    (3.0, "double"),
    (5.0, "team"),
)


def unit_type_for_area(area: float) -> str:
    for limit, name in _UNIT_TYPES:
        if area < limit:
            return name
    return "meeting"


def capacity_for_area(area: float, area_per_person: float = 6.0) -> int:
    return max(1, math.ceil(area / area_per_person))


@dataclass(frozen=True)
class Unit:
    """A placed îlot. ``id`` is stable; only ``x``/``y`` change during refinement."""
    id: int
    x: float
    y: float
    width: float
    height: float
    type: str
    capacity: int
    range_label: str = ""

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def rect(self) -> Rect:
        return Rect.from_xywh(self.x, self.y, self.width, self.height)

    def moved_to(self, x: float, y: float) -> "Unit":
        return replace(self, x=x, y=y)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "area": self.area,
            "type": self.type,
            "capacity": self.capacity,
            "range": self.range_label,
        }


class UnitArena:
    """Insertion-ordered store of units addressed by id."""

    def __init__(self) -> None:
        self._units: Dict[int, Unit] = {}

    def add(self, unit: Unit) -> None:
        self._units[unit.id] = unit

    def get(self, unit_id: int) -> Unit:
        return self._units[unit_id]

    def apply(self, updates: Mapping[int, Tuple[float, float]]) -> None:
        for unit_id, (x, y) in updates.items():
            self._units[unit_id] = self._units[unit_id].moved_to(x, y)

    def rects(self) -> Dict[int, Rect]:
        return {uid: u.rect for uid, u in self._units.items()}

    def freeze(self) -> Tuple[Unit, ...]:
        return tuple(self._units.values())

    def __iter__(self) -> Iterator[Unit]:
        return iter(self._units.values())

    def __len__(self) -> int:
        return len(self._units)


@dataclass
class PlacementResult:
    units: Tuple[Unit, ...]
    metrics: LayoutMetrics
    plan: DistributionPlan
    seed: int
    rejections: Dict[str, int] = field(default_factory=dict)

    @property
    def requested(self) -> int:
        return self.plan.total

    def to_dict(self) -> dict:
        return {
            "units": [u.to_dict() for u in self.units],
            "requested": self.requested,
            "placed": len(self.units),
            "seed": self.seed,
            "distribution": self.plan.to_dict(),
            "metrics": self.metrics.to_dict(),
        }


def _axis_count(lo: float, hi: float, size: float, step: float) -> int:
    span = hi - size - lo
    if span < -1e-9:
        return 0
    return int(math.floor((span + 1e-9) / step)) + 1


def _axis_positions(lo: float, hi: float, size: float, step: float) -> np.ndarray:
    n = _axis_count(lo, hi, size, step)
    if n == 0:
        return np.empty(0)
    positions = lo + np.arange(n) * step
    return np.minimum(positions, hi - size)


def scan_positions(
    bounds: Bounds,
    width: float,
    height: float,
    max_positions: int | None = None,
) -> np.ndarray:
    """
    Candidate origins on a half-footprint lattice, nearest to the centred
    position first (ties by x, then y). Returns an ``(n, 2)`` array.

    When the lattice would hold more than ``max_positions`` origins, both
    steps are widened by the same factor until it fits.
    """
    step_x = max(0.5, width / 2.0)
    step_y = max(0.5, height / 2.0)
    if max_positions is not None:
        limit = max(int(max_positions), 1)
        count = _axis_count(bounds.min_x, bounds.max_x, width, step_x) * _axis_count(
            bounds.min_y, bounds.max_y, height, step_y
        )
        if count > limit:
            scale = math.sqrt(count / limit)
            step_x *= scale
            step_y *= scale
            while (
                _axis_count(bounds.min_x, bounds.max_x, width, step_x)
                * _axis_count(bounds.min_y, bounds.max_y, height, step_y)
                > limit
            ):
                step_x *= 1.25
                step_y *= 1.25
    xs = _axis_positions(bounds.min_x, bounds.max_x, width, step_x)
    ys = _axis_positions(bounds.min_y, bounds.max_y, height, step_y)
    if xs.size == 0 or ys.size == 0:
        return np.empty((0, 2))

    gx, gy = np.meshgrid(xs, ys, indexing="ij")
    gx = gx.ravel()
    gy = gy.ravel()
    cx = bounds.center[0] - width / 2.0
    cy = bounds.center[1] - height / 2.0
    dist = np.hypot(gx - cx, gy - cy)
    order = np.lexsort((gy, gx, dist))
    return np.column_stack((gx[order], gy[order]))


class PlacementEngine:
    def __init__(
        self,
        floor_plan: FloorPlan,
        config: PlacementConfig | None = None,
        predicates: GeometryPredicates | None = None,
    ) -> None:
        if not floor_plan.bounds.is_usable():
            raise InvalidBoundsError(
                "Floor plan has no finite, positive-extent bounds",
                {"bounds": str(floor_plan.bounds)},
            )
        self.floor_plan = floor_plan
        self.bounds = floor_plan.bounds
        self.config = config or PlacementConfig()
        self.predicates = predicates or default_predicates()

    def _find_position(
        self,
        candidate: UnitCandidate,
        validator: PlacementValidator,
        rng: DeterministicSequence,
        rejections: Dict[str, int],
    ) -> Optional[Tuple[float, float, str]]:
        w, h = candidate.width, candidate.height
        for x, y in scan_positions(self.bounds, w, h, self.config.max_scan_positions):
            reason = validator.check(Rect.from_xywh(float(x), float(y), w, h))
            if reason is None:
                return float(x), float(y), "scan"
            rejections[reason] = rejections.get(reason, 0) + 1

        free_x = max(0.0, self.bounds.width - w)
        free_y = max(0.0, self.bounds.height - h)
        for _ in range(self.config.max_attempts_per_ilot):
            x = self.bounds.min_x + rng.next_float() * free_x
            y = self.bounds.min_y + rng.next_float() * free_y
            reason = validator.check(Rect.from_xywh(x, y, w, h))
            if reason is None:
                return x, y, "random"
            rejections[reason] = rejections.get(reason, 0) + 1
        return None

    def place(self, distribution: Mapping[str, Any], total_units: int | None = None) -> PlacementResult:
        cfg = self.config
        if total_units is None:
            total_units = cfg.total_units
        metrics = LayoutMetrics(floor_area=self.bounds.area)
        started = time.perf_counter()

        rng = DeterministicSequence(cfg.effective_seed)
        plan = plan_distribution(distribution, total_units)
        for message in plan.warnings:
            metrics.add_warning(message, "distribution")
        candidates = order_largest_first(sample_candidates(plan, rng, cfg))
        metrics.requested_units = plan.total
        metrics.generated_candidates = len(candidates)

        avg_area = sum(c.area for c in candidates) / max(1, len(candidates))
        index = SpatialIndex(self.bounds, max(1.0, math.sqrt(avg_area) * 1.2))
        validator = PlacementValidator(self.floor_plan, index, cfg, self.predicates)

        arena = UnitArena()
        rejections: Dict[str, int] = {}
        for candidate in candidates:
            found = self._find_position(candidate, validator, rng, rejections)
            if found is None:
                metrics.dropped_units += 1
                logger.debug(
                    "Dropped unit {} ({:.2f} x {:.2f}): no valid position",
                    candidate.id,
                    candidate.width,
                    candidate.height,
                )
                continue
            x, y, method = found
            if method == "scan":
                metrics.placed_by_scan += 1
            else:
                metrics.placed_by_random += 1
            unit = Unit(
                id=candidate.id,
                x=x,
                y=y,
                width=candidate.width,
                height=candidate.height,
                type=unit_type_for_area(candidate.area),
                capacity=capacity_for_area(candidate.area, cfg.area_per_person),
                range_label=candidate.range_label,
            )
            arena.add(unit)
            index.insert(unit.id, unit.rect)
        metrics.time_placement = time.perf_counter() - started

        if cfg.refine and len(arena) > 1:
            refine_started = time.perf_counter()
            outcome = refine_positions(arena.rects(), index, validator, self.bounds, rng)
            arena.apply(outcome.updates)
            metrics.overlapping_pairs = outcome.overlapping_pairs
            metrics.refinement_moves = outcome.moves
            metrics.refinement_nudges = outcome.nudges
            metrics.unresolved_overlaps = outcome.unresolved
            if outcome.unresolved:
                metrics.add_warning(f"{outcome.unresolved} overlapping pairs left unresolved", "refinement")
            metrics.time_refinement = time.perf_counter() - refine_started

        units = arena.freeze()
        metrics.placed_units = len(units)
        metrics.placed_area = sum(u.area for u in units)
        if metrics.dropped_units:
            metrics.add_warning(
                f"Placed {metrics.placed_units} of {metrics.requested_units} requested units",
                "placement",
            )

        logger.info(
            "Placed {}/{} units (scan={}, random={}, dropped={})",
            metrics.placed_units,
            metrics.requested_units,
            metrics.placed_by_scan,
            metrics.placed_by_random,
            metrics.dropped_units,
        )
        return PlacementResult(
            units=units,
            metrics=metrics,
            plan=plan,
            seed=cfg.effective_seed,
            rejections=rejections,
        )


def place_units(
    floor_plan: FloorPlan,
    distribution: Mapping[str, Any],
    total_units: int | None = None,
    config: PlacementConfig | LayoutConfig | None = None,
    predicates: GeometryPredicates | None = None,
) -> PlacementResult:
    """Pack units drawn from ``distribution`` into ``floor_plan``."""
    if isinstance(config, LayoutConfig):
        config = config.placement
    return PlacementEngine(floor_plan, config, predicates).place(distribution, total_units)


__all__ = [
    "Unit",
    "UnitArena",
    "PlacementResult",
    "PlacementEngine",
    "scan_positions",
    "unit_type_for_area",
    "capacity_for_area",
    "place_units",
]
