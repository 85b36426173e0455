"""
Row detection and corridor synthesis.

Units are grouped into horizontal rows by vertical centre. Each pair of
vertically adjacent rows is joined by one rectangular main corridor when the
gap between them is wide enough, or otherwise by per-pair connectors routed
on an occupancy grid.
"""

from __future__ import annotations

import time
from typing import List, Optional, Sequence, Tuple

from loguru import logger

from ilotplan.exceptions import RoutingError
from ilotplan.geometry.primitives import Bounds, Rect, rect_overlap_area
from ilotplan.layout_config import LayoutConfig, RoutingConfig
from ilotplan.metrics.layout_metrics import LayoutMetrics
from ilotplan.placement.engine import Unit
from ilotplan.reconstruct.floor_plan import FloorPlan
from ilotplan.routing.corridors import Corridor, CorridorType, buffer_path, connector_path, rect_polygon
from ilotplan.routing.network import optimize_corridor_network
from ilotplan.routing.pathfinder import GridPathfinder


_INTRUSION_EPS = 1e-9


def row_tolerance(bounds: Bounds, config: RoutingConfig) -> float:
    return max(bounds.height * config.row_tolerance_ratio, config.min_row_tolerance)


def detect_rows(units: Sequence[Unit], tolerance: float) -> List[List[Unit]]:
    """Group units whose vertical centres stay within ``tolerance`` of the row's running mean."""
    if not units:
        return []
    ordered = sorted(units, key=lambda u: (u.y + u.height / 2.0, u.x))
    rows: List[List[Unit]] = []
    current = [ordered[0]]
    mean = ordered[0].y + ordered[0].height / 2.0
    for unit in ordered[1:]:
        center = unit.y + unit.height / 2.0
        if abs(center - mean) <= tolerance:
            current.append(unit)
            mean += (center - mean) / len(current)
        else:
            rows.append(sorted(current, key=lambda u: u.x))
            current = [unit]
            mean = center
    rows.append(sorted(current, key=lambda u: u.x))
    return rows


def _row_span(row: Sequence[Unit]) -> Tuple[float, float]:
    return min(u.x for u in row), max(u.x + u.width for u in row)


class RowRouter:
    def __init__(
        self,
        floor_plan: FloorPlan,
        config: RoutingConfig | None = None,
        metrics: LayoutMetrics | None = None,
    ) -> None:
        self.floor_plan = floor_plan
        self.bounds = floor_plan.bounds
        self.config = config or RoutingConfig()
        self.metrics = metrics if metrics is not None else LayoutMetrics()
        self.rows: List[List[Unit]] = []
        self._pathfinder: Optional[GridPathfinder] = None
        self._units: Tuple[Unit, ...] = ()

    def _grid(self) -> Optional[GridPathfinder]:
        """Occupancy grid with every unit marked, built on first use."""
        if self._pathfinder is None:
            cfg = self.config
            try:
                finder = GridPathfinder(self.bounds, cfg.grid_resolution, cfg.snap_radius, cfg.max_grid_cells)
            except RoutingError as exc:
                logger.warning("Pathfinder unavailable, using fallback connectors: {}", exc.message)
                self.metrics.add_warning(exc.message, "routing")
                return None
            for unit in self._units:
                finder.mark_obstacle(unit.rect.corners(), cfg.corridor_width / 2.0)
            self._pathfinder = finder
        return self._pathfinder

    def _main_corridor(self, lower: Sequence[Unit], upper: Sequence[Unit]) -> Optional[Rect]:
        width = self.config.corridor_width
        y1 = max(u.y + u.height for u in lower)
        y2 = min(u.y for u in upper)
        if y2 - y1 < width:
            return None

        lo_left, lo_right = _row_span(lower)
        up_left, up_right = _row_span(upper)
        left = max(lo_left, up_left)
        right = min(lo_right, up_right)
        if right - left <= _INTRUSION_EPS:
            return None

        max_height = self.config.main_corridor_max_height
        if max_height is not None and y2 - y1 > max_height:
            mid = (y1 + y2) / 2.0
            y1, y2 = mid - max_height / 2.0, mid + max_height / 2.0

        rect = Rect(left, y1, right, y2)
        for unit in self._units:
            if rect_overlap_area(rect, unit.rect) > _INTRUSION_EPS:
                logger.debug("Main corridor between rows would cut unit {}; routing pairs instead", unit.id)
                return None
        return rect

    def _connect_pair(self, a: Unit, b: Unit) -> Tuple[CorridorType, Tuple, Tuple]:
        width = self.config.corridor_width
        lower, upper = a.rect, b.rect
        finder = self._grid()
        if finder is not None:
            start = (lower.center[0], lower.y2 + 0.001)
            goal = (upper.center[0], upper.y1 - 0.001)
            path = finder.find_path(start, goal)
            if path and len(path) > 1:
                polygon = buffer_path(path, width)
                if polygon:
                    self.metrics.paths_found += 1
                    return CorridorType.ROUTED, polygon, tuple(path)

        self.metrics.path_fallbacks += 1
        logger.debug("No grid path between units {} and {}; using connector", a.id, b.id)
        path = connector_path(lower, upper)
        polygon = buffer_path(path, width)
        if not polygon:
            cx, cy = path[0]
            polygon = Rect(cx - width / 2.0, cy - width / 2.0, cx + width / 2.0, cy + width / 2.0).corners()
        return CorridorType.CONNECTING, polygon, path

    def generate(self, units: Sequence[Unit]) -> List[Corridor]:
        started = time.perf_counter()
        self._units = tuple(units)
        self._pathfinder = None
        self.rows = detect_rows(self._units, row_tolerance(self.bounds, self.config))
        self.metrics.rows_detected = len(self.rows)

        corridors: List[Corridor] = []
        for lower, upper in zip(self.rows, self.rows[1:]):
            rect = self._main_corridor(lower, upper)
            if rect is not None:
                corridors.append(
                    Corridor(
                        id=len(corridors) + 1,
                        type=CorridorType.MAIN,
                        polygon=rect_polygon(rect),
                        width=rect.height,
                        connects=tuple(u.id for u in (*lower, *upper)),
                    )
                )
                continue
            for a in lower:
                for b in upper:
                    kind, polygon, path = self._connect_pair(a, b)
                    corridors.append(
                        Corridor(
                            id=len(corridors) + 1,
                            type=kind,
                            polygon=polygon,
                            width=self.config.corridor_width,
                            connects=(a.id, b.id),
                            path=path,
                        )
                    )

        if self.config.optimize_network:
            before = len(corridors)
            corridors = optimize_corridor_network(corridors)
            self.metrics.corridors_removed += before - len(corridors)

        for corridor in corridors:
            self.metrics.count_corridor(corridor.type.value)
        self.metrics.time_routing = time.perf_counter() - started
        logger.info(
            "Generated {} corridors across {} rows ({} routed, {} fallback)",
            len(corridors),
            len(self.rows),
            self.metrics.paths_found,
            self.metrics.path_fallbacks,
        )
        return corridors


def generate_corridors(
    floor_plan: FloorPlan,
    units: Sequence[Unit],
    config: RoutingConfig | LayoutConfig | None = None,
    metrics: LayoutMetrics | None = None,
) -> List[Corridor]:
    """Connect the rows of ``units`` with corridors."""
    if isinstance(config, LayoutConfig):
        config = config.routing
    return RowRouter(floor_plan, config, metrics).generate(units)


__all__ = ["RowRouter", "detect_rows", "row_tolerance", "generate_corridors"]
