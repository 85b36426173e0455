"""Tests for the placement engine, constraint checks and overlap refinement."""

from __future__ import annotations

import pytest

from ilotplan.exceptions import DistributionError, InvalidBoundsError
from ilotplan.geometry.predicates import PlanarPredicates
from ilotplan.geometry.primitives import Bounds, Rect, rect_overlap_area, segment_rect_distance
from ilotplan.layout_config import LayoutConfig, PlacementConfig
from ilotplan.placement.engine import (
    PlacementEngine,
    Unit,
    UnitArena,
    capacity_for_area,
    place_units,
    scan_positions,
    unit_type_for_area,
)
from ilotplan.placement.refinement import find_overlapping_pairs, refine_positions
from ilotplan.placement.rng import DeterministicSequence
from ilotplan.placement.spatial_index import SpatialIndex
from ilotplan.placement.validity import PlacementValidator
from ilotplan.reconstruct.floor_plan import FloorPlan
from tests.utils_layout import assert_units_clear, assert_units_inside


DISTRIBUTION = {"0-1": 10, "1-3": 25, "3-5": 30, "5-10": 35}


@pytest.fixture
def open_plan() -> FloorPlan:
    return FloorPlan.empty((0, 0, 100, 50))


class TestUnitTypes:
    @pytest.mark.parametrize(
        "area, expected",
        [(0.5, "single"), (1.0, "double"), (2.99, "double"), (3.0, "team"), (4.9, "team"), (5.0, "meeting")],
    )
    def test_unit_type_for_area(self, area, expected):
        assert unit_type_for_area(area) == expected

    def test_capacity(self):
        assert capacity_for_area(0.1) == 1
        assert capacity_for_area(7.0) == 2
        assert capacity_for_area(12.0) == 2
        assert capacity_for_area(12.0, area_per_person=4.0) == 3

    def test_arena_applies_updates_by_id(self):
        arena = UnitArena()
        arena.add(Unit(id=1, x=0, y=0, width=1, height=1, type="double", capacity=1))
        arena.add(Unit(id=2, x=5, y=5, width=1, height=1, type="double", capacity=1))
        arena.apply({2: (7.0, 8.0)})
        assert arena.get(2).x == 7.0
        assert arena.get(1).x == 0.0
        assert [u.id for u in arena] == [1, 2]


class TestScanPositions:
    def test_centre_first(self):
        positions = scan_positions(Bounds(0, 0, 10, 10), 2.0, 2.0)
        assert tuple(positions[0]) == (4.0, 4.0)
        assert positions.shape[1] == 2

    def test_positions_stay_inside(self):
        positions = scan_positions(Bounds(0, 0, 10, 5), 3.0, 1.5)
        assert (positions[:, 0] >= 0.0).all() and (positions[:, 0] <= 7.0).all()
        assert (positions[:, 1] >= 0.0).all() and (positions[:, 1] <= 3.5).all()

    def test_footprint_larger_than_bounds(self):
        assert scan_positions(Bounds(0, 0, 2, 2), 3.0, 1.0).shape == (0, 2)

    def test_cap_not_reached_keeps_lattice(self):
        bounds = Bounds(0, 0, 10, 10)
        capped = scan_positions(bounds, 2.0, 2.0, max_positions=1000)
        assert capped.tolist() == scan_positions(bounds, 2.0, 2.0).tolist()

    def test_large_plan_is_coarsened_to_the_cap(self):
        # millimetre drawing with square-metre units: ~8e8 origins uncapped
        bounds = Bounds(0, 0, 20000, 10000)
        positions = scan_positions(bounds, 1.5, 1.0, max_positions=10_000)
        assert 0 < len(positions) <= 10_000
        assert (positions[:, 0] >= 0.0).all() and (positions[:, 0] <= 19998.5).all()
        assert (positions[:, 1] >= 0.0).all() and (positions[:, 1] <= 9999.0).all()
        centre = (9999.25, 4999.5)
        dist = [((x - centre[0]) ** 2 + (y - centre[1]) ** 2) ** 0.5 for x, y in positions[:50]]
        assert all(b >= a - 1e-6 for a, b in zip(dist, dist[1:]))

    def test_cap_has_a_config_default(self):
        assert PlacementConfig().max_scan_positions == 250_000
        with pytest.raises(ValueError):
            PlacementConfig(max_scan_positions=0)


class TestPlacementValidator:
    def _validator(self, **plan) -> PlacementValidator:
        plan.setdefault("bounds", {"minX": 0, "minY": 0, "maxX": 20, "maxY": 20})
        floor_plan = FloorPlan.from_dict(plan)
        return PlacementValidator(floor_plan, SpatialIndex(floor_plan.bounds, 5.0), PlacementConfig())

    def test_bounds_and_degenerate(self):
        validator = self._validator()
        assert validator.check(Rect(0, 0, 20, 20)) is None
        assert validator.check(Rect(19, 19, 21, 20)) == "out_of_bounds"
        assert validator.check(Rect(1, 1, 1, 2)) == "degenerate"

    def test_forbidden_touching_is_rejected(self):
        validator = self._validator(forbidden_zones=[[[8, 8], [12, 8], [12, 12], [8, 12]]])
        assert validator.check(Rect(9, 9, 10, 10)) == "forbidden"
        assert validator.check(Rect(12, 8, 13, 9)) == "forbidden"
        assert validator.check(Rect(12.1, 8, 13, 9)) is None

    def test_entrance_clearance(self):
        validator = self._validator(entrances=[{"segment": [[0, 5], [0, 7]]}])
        assert validator.check(Rect(0.5, 5, 1.5, 6)) == "entrance"
        assert validator.check(Rect(1.0, 5, 2.0, 6)) is None

    def test_room_outline_walls_allow_units_inside(self):
        validator = self._validator(walls=[[[0, 0], [20, 0], [20, 20], [0, 20]]])
        assert validator.check(Rect(1, 1, 5, 5)) is None

    def test_wall_inside_unit_is_rejected(self):
        validator = self._validator(walls=[[[2, 2], [3, 2], [3, 3], [2, 3]]])
        assert validator.check(Rect(1, 1, 5, 5)) == "wall"

    def test_neighbour_clearance_and_exclusion(self):
        validator = self._validator()
        validator.index.insert(1, Rect(5, 5, 7, 7))
        assert validator.check(Rect(7.1, 5, 8, 6)) == "clearance"
        assert validator.check(Rect(7.2, 5, 8, 6)) is None
        assert validator.check(Rect(5, 5, 7, 7), exclude=1) is None


class TestPlacementEngine:
    def test_seeded_layout_respects_constraints(self, open_plan):
        config = PlacementConfig(seed=42)
        result = place_units(open_plan, DISTRIBUTION, total_units=50, config=config)
        assert result.requested == 50
        assert len(result.units) == 50
        assert result.metrics.placed_units == 50
        assert_units_inside(result.units, open_plan.bounds)
        assert_units_clear(result.units, config.min_ilot_distance)
        assert len({u.id for u in result.units}) == 50

    def test_same_seed_same_layout(self, open_plan):
        config = PlacementConfig(seed=42)
        first = place_units(open_plan, DISTRIBUTION, total_units=50, config=config)
        second = place_units(open_plan, DISTRIBUTION, total_units=50, config=config)
        assert first.units == second.units

    def test_layout_config_is_accepted(self, open_plan):
        config = LayoutConfig.default().with_overrides(placement={"seed": 3})
        result = place_units(open_plan, {"1-3": 100}, total_units=5, config=config)
        assert result.seed == 3
        assert len(result.units) == 5

    def test_units_avoid_forbidden_zones_and_entrances(self):
        forbidden = [[40, 20], [60, 20], [60, 30], [40, 30]]
        plan = FloorPlan.from_dict(
            {
                "forbidden_zones": [forbidden],
                "entrances": [{"segment": [[0, 20], [0, 30]]}],
                "bounds": {"minX": 0, "minY": 0, "maxX": 100, "maxY": 50},
            }
        )
        config = PlacementConfig(seed=7)
        result = place_units(plan, DISTRIBUTION, total_units=60, config=config)
        assert result.units
        predicates = PlanarPredicates()
        polygon = tuple(tuple(p) for p in forbidden)
        for unit in result.units:
            assert not predicates.rect_overlaps_polygon(unit.rect, polygon)
            assert segment_rect_distance((0, 20), (0, 30), unit.rect) >= config.min_entrance_distance
        assert_units_clear(result.units, config.min_ilot_distance)

    def test_crowded_plan_drops_units(self):
        plan = FloorPlan.empty((0, 0, 6, 6))
        result = place_units(plan, {"5-10": 100}, total_units=20, config=PlacementConfig(max_attempts_per_ilot=50))
        assert 0 < len(result.units) < 20
        assert result.metrics.dropped_units == 20 - len(result.units)
        assert result.metrics.warnings
        assert_units_clear(result.units, 0.2)

    def test_invalid_bounds(self):
        with pytest.raises(InvalidBoundsError):
            PlacementEngine(FloorPlan.empty((0, 0, 0, 10)))

    def test_invalid_distribution(self, open_plan):
        with pytest.raises(DistributionError):
            place_units(open_plan, {"nonsense": 5}, total_units=10)

    def test_to_dict(self, open_plan):
        data = place_units(open_plan, {"1-3": 100}, total_units=3).to_dict()
        assert data["placed"] == 3
        assert data["seed"] == 1
        assert {"id", "x", "y", "width", "height", "type", "capacity"} <= set(data["units"][0])


class TestRefinement:
    def test_small_overlap_is_resolved(self):
        bounds = Bounds(0, 0, 20, 20)
        rects = {1: Rect(5, 5, 7, 7), 2: Rect(6.9, 5, 8.9, 7)}
        index = SpatialIndex(bounds, 5.0)
        for key, rect in rects.items():
            index.insert(key, rect)
        validator = PlacementValidator(FloorPlan.empty(bounds), index, PlacementConfig())

        assert [p[1:] for p in find_overlapping_pairs(rects, index)] == [(1, 2)]
        outcome = refine_positions(rects, index, validator, bounds, DeterministicSequence(1))
        assert outcome.overlapping_pairs == 1
        assert outcome.moves == 1
        assert outcome.unresolved == 0
        x, y = outcome.updates[1]
        moved = Rect.from_xywh(x, y, 2, 2)
        assert rect_overlap_area(moved, rects[2]) == 0.0
        assert index.rect_of(1) == moved

    def test_no_overlaps_no_updates(self):
        bounds = Bounds(0, 0, 20, 20)
        rects = {1: Rect(0, 0, 1, 1), 2: Rect(5, 5, 6, 6)}
        index = SpatialIndex(bounds, 5.0)
        for key, rect in rects.items():
            index.insert(key, rect)
        validator = PlacementValidator(FloorPlan.empty(bounds), index, PlacementConfig())
        outcome = refine_positions(rects, index, validator, bounds, DeterministicSequence(1))
        assert outcome.updates == {}
        assert outcome.overlapping_pairs == 0
