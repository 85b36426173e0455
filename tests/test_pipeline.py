"""End-to-end tests: drawing entities in, validated layout out."""

from __future__ import annotations

import pytest

import ilotplan
from ilotplan import FloorPlan, LayoutConfig, generate_layout, validate_layout
from ilotplan.exceptions import DistributionError
from tests.utils_layout import assert_units_clear, assert_units_inside, line, rectangle_lines


DISTRIBUTION = {"1-3": 50, "3-5": 50}


@pytest.fixture
def office_entities() -> list[dict]:
    return (
        rectangle_lines(0, 0, 40, 20, layer="WALLS")
        + rectangle_lines(18, 8, 22, 12, layer="STAIRS")
        + [line(0, 9, 0, 11, layer="DOOR")]
        + [{"type": "TEXT", "text": "Level 1"}]
    )


class TestGenerateLayout:
    def test_entities_to_layout(self, office_entities):
        config = LayoutConfig.default().with_overrides(placement={"seed": 42})
        result = generate_layout(office_entities, DISTRIBUTION, config, total_units=20)

        assert len(result.floor_plan.forbidden_zones) == 1
        assert len(result.floor_plan.entrances) == 1
        assert 0 < len(result.units) <= 20
        assert_units_inside(result.units, result.floor_plan.bounds)
        assert_units_clear(result.units, config.placement.min_ilot_distance)

        report = validate_layout(result.floor_plan, result.units, result.corridors, config)
        assert report.is_valid, report.errors
        assert result.metrics.placed_units == len(result.units)
        assert sum(result.metrics.corridors_by_type.values()) == len(result.corridors)

    def test_same_seed_same_layout(self, office_entities):
        config = LayoutConfig.default().with_overrides(placement={"seed": 11})
        first = generate_layout(office_entities, DISTRIBUTION, config, total_units=15)
        second = generate_layout(office_entities, DISTRIBUTION, config, total_units=15)
        assert first.units == second.units
        assert [c.to_dict() for c in first.corridors] == [c.to_dict() for c in second.corridors]

    def test_floor_plan_input(self):
        plan = FloorPlan.empty((0, 0, 30, 30))
        result = generate_layout(plan, {"1-3": 100}, total_units=6)
        assert result.floor_plan is plan
        assert len(result.units) == 6
        assert result.metrics.time_reconstruction == 0.0

    def test_default_bounds_warning(self):
        result = generate_layout([], {"1-3": 100}, total_units=2)
        assert result.floor_plan.bounds.width == 100.0
        assert result.metrics.warnings_by_category["reconstruction"] == 1

    def test_to_dict(self, office_entities):
        data = generate_layout(office_entities, DISTRIBUTION, total_units=5).to_dict()
        assert set(data) == {"bounds", "units", "corridors", "metrics", "summary", "diagnostics"}
        bounds = data["bounds"]
        corners = {k: bounds[k] for k in ("minX", "minY", "maxX", "maxY")}
        assert corners == {"minX": 0.0, "minY": 0.0, "maxX": 40.0, "maxY": 20.0}
        assert bounds["area"] == 800.0
        assert data["diagnostics"]["entities"]["unsupported_types"] == {"TEXT": 1}

    def test_bad_distribution(self, office_entities):
        with pytest.raises(DistributionError):
            generate_layout(office_entities, {"big": 3}, total_units=5)


def test_public_api():
    for name in ilotplan.__all__:
        assert hasattr(ilotplan, name)
