"""Tests for polygon chaining, classification, rooms and floor plan assembly."""

from __future__ import annotations

import pytest

from ilotplan.exceptions import InvalidBoundsError, ReconstructionError
from ilotplan.geometry.primitives import Segment, shoelace_area
from ilotplan.layout_config import ReconstructionConfig
from ilotplan.reconstruct.chaining import build_endpoint_index, chain_polygons, snap_key
from ilotplan.reconstruct.classify import Classification, ZoneClassifier
from ilotplan.reconstruct.floor_plan import FloorPlan, build_floor_plan
from ilotplan.reconstruct.rooms import extract_rooms, infer_room_type
from tests.utils_layout import line, rectangle_lines


def _seg(a, b, layer="0", color=0):
    return Segment(start=a, end=b, layer=layer, color=color)


class TestChaining:
    def test_snap_key_rounds_to_millimetres(self):
        assert snap_key((1.00049, 2.0004)) == (1.0, 2.0)
        assert snap_key((1.0006, 0.0)) == (1.001, 0.0)

    def test_endpoint_index(self):
        segments = [_seg((0, 0), (1, 0)), _seg((1, 0), (1, 1))]
        index = build_endpoint_index(segments)
        assert index[(1.0, 0.0)] == [0, 1]
        assert index[(0.0, 0.0)] == [0]

    def test_unit_square_in_arbitrary_order(self):
        segments = [
            _seg((1, 1), (0, 1)),
            _seg((0, 0), (1, 0)),
            _seg((0, 1), (0, 0)),
            _seg((1, 0), (1, 1)),
        ]
        result = chain_polygons(segments)
        assert len(result.polygons) == 1
        polygon = result.polygons[0]
        assert len(polygon.vertices) == 4
        assert shoelace_area(polygon.vertices) == pytest.approx(1.0)
        assert result.used == {0, 1, 2, 3}

    def test_reversed_segments_still_chain(self):
        segments = [
            _seg((0, 0), (1, 0)),
            _seg((1, 1), (1, 0)),
            _seg((1, 1), (0, 1)),
            _seg((0, 0), (0, 1)),
        ]
        result = chain_polygons(segments)
        assert len(result.polygons) == 1
        assert shoelace_area(result.polygons[0].vertices) == pytest.approx(1.0)

    def test_tolerant_endpoint_matching(self):
        segments = [
            _seg((0, 0), (2, 0)),
            _seg((2.0002, 0.0001), (2, 2)),
            _seg((2, 2), (0, 2)),
            _seg((0, 2), (0.0001, -0.0002)),
        ]
        result = chain_polygons(segments)
        assert len(result.polygons) == 1

    def test_open_chain_leaves_segments_unused(self):
        segments = [_seg((0, 0), (1, 0)), _seg((1, 0), (1, 1)), _seg((1, 1), (0, 1))]
        result = chain_polygons(segments)
        assert result.polygons == []
        assert result.leftover(segments) == [0, 1, 2]
        assert result.abandoned_chains >= 1

    def test_iteration_cap(self):
        segments = [_seg((0, 0), (1, 0)), _seg((1, 0), (1, 1)), _seg((1, 1), (0, 1)), _seg((0, 1), (0, 0))]
        result = chain_polygons(segments, max_chain_length=3)
        assert len(result.polygons) == 1
        capped = chain_polygons(segments, max_chain_length=2)
        assert capped.polygons == []

    def test_polygon_keeps_first_segment_style(self):
        segments = [
            _seg((0, 0), (1, 0), "STAIRS", 5),
            _seg((1, 0), (0, 1), "OTHER", 1),
            _seg((0, 1), (0, 0), "OTHER", 1),
        ]
        polygon = chain_polygons(segments).polygons[0]
        assert polygon.layer == "STAIRS"
        assert polygon.color == 5
        assert len(polygon.vertices) == 3


class TestClassification:
    def test_entrance_beats_forbidden(self):
        classifier = ZoneClassifier()
        assert classifier.classify("STAIR_DOOR", 0) == Classification.ENTRANCE
        assert classifier.classify("STAIRS", 1) == Classification.ENTRANCE

    def test_colors_and_keywords(self):
        classifier = ZoneClassifier()
        assert classifier.classify("0", 3) == Classification.ENTRANCE
        assert classifier.classify("0", 4) == Classification.FORBIDDEN
        assert classifier.classify("ELEVATOR_CORE", 0) == Classification.FORBIDDEN
        assert classifier.classify("A-WALL", 7) == Classification.WALL

    def test_configurable_rules(self):
        config = ReconstructionConfig(entrance_colors=(), entrance_keywords=["GATE"], forbidden_colors=(9,))
        classifier = ZoneClassifier(config)
        assert classifier.classify("0", 1) == Classification.WALL
        assert classifier.classify("MAIN_GATE", 0) == Classification.ENTRANCE
        assert classifier.classify("0", 9) == Classification.FORBIDDEN


class TestRooms:
    @pytest.mark.parametrize(
        "layer, area, expected",
        [
            ("OFFICE_A", 100.0, "office"),
            ("CONFERENCE", 2.0, "meeting"),
            ("STORE", 2.0, "storage"),
            ("HALLWAY", 2.0, "corridor"),
            ("WC", 2.0, "restroom"),
            ("BREAK", 2.0, "break_room"),
            ("0", 4.0, "small_office"),
            ("0", 10.0, "office"),
            ("0", 20.0, "large_office"),
            ("0", 40.0, "open_space"),
        ],
    )
    def test_infer_room_type(self, layer, area, expected):
        assert infer_room_type(layer, area) == expected

    def test_small_polygons_are_not_rooms(self):
        square = ((0.0, 0.0), (0.5, 0.0), (0.5, 0.5), (0.0, 0.5))
        big = ((0.0, 0.0), (4.0, 0.0), (4.0, 3.0), (0.0, 3.0))
        rooms = extract_rooms([(square, "0"), (big, "0")])
        assert len(rooms) == 1
        room = rooms[0]
        assert room.id == "room_1"
        assert room.area == pytest.approx(12.0)
        assert room.centroid == pytest.approx((2.0, 1.5))
        assert room.type == "office"


class TestBuildFloorPlan:
    def test_classified_zones(self):
        entities = (
            rectangle_lines(0, 0, 20, 10, layer="WALLS")
            + rectangle_lines(2, 2, 4, 4, layer="STAIRS")
            + [line(10, 0, 12, 0, layer="DOOR")]
            + [line(30, 30, 31, 30, layer="0")]
        )
        plan = build_floor_plan(entities)
        assert len(plan.walls) == 2  # outline polygon and the lone stray line
        assert len(plan.forbidden_zones) == 1
        assert len(plan.entrances) == 1
        assert plan.entrances[0].segment is not None
        assert plan.forbidden_zones[0].polygon is not None
        assert plan.bounds.max_x == 31.0
        assert len(plan.rooms) == 2
        assert plan.diagnostics.polygons_closed == 2
        assert plan.diagnostics.lone_segments == 2

    def test_empty_input_uses_default_bounds(self):
        plan = build_floor_plan([])
        assert plan.bounds.width == 100.0
        assert plan.diagnostics.default_bounds_used is True

    def test_bad_skips_do_not_abort(self):
        entities = rectangle_lines(0, 0, 1, 1) + [{"type": "LINE", "start": [None, 0], "end": [1, 1]}]
        plan = build_floor_plan(entities)
        assert len(plan.walls) == 1
        assert plan.diagnostics.entities_skipped == 1

    def test_rejects_non_iterable(self):
        with pytest.raises(ReconstructionError):
            build_floor_plan({"type": "LINE"})

    def test_to_dict(self):
        plan = build_floor_plan(rectangle_lines(0, 0, 2, 2))
        data = plan.to_dict()
        assert data["bounds"]["maxX"] == 2.0
        assert data["walls"][0]["classification"] == "wall"
        assert data["diagnostics"]["chains"]["closed"] == 1


class TestFloorPlanFromDict:
    def test_pre_classified_input(self):
        plan = FloorPlan.from_dict(
            {
                "forbidden_zones": [[[10, 10], [12, 10], [12, 12], [10, 12]]],
                "entrances": [{"segment": [[0, 5], [0, 7]]}],
                "bounds": {"minX": 0, "minY": 0, "maxX": 50, "maxY": 20},
            }
        )
        assert len(plan.forbidden_zones) == 1
        assert plan.entrances[0].segment.length == pytest.approx(2.0)
        assert plan.bounds.max_x == 50

    def test_malformed_records_are_skipped(self):
        square = [[10, 10], [12, 10], [12, 12], [10, 12]]
        plan = FloorPlan.from_dict(
            {
                "walls": [
                    {"polygon": [[0, 0], [5, 0], [5, 5], [0, 5]], "color": "bylayer", "layer": "walls"},
                ],
                "forbidden_zones": [square, [[0, 0], [1, None], [1, 1]], [[0, 0], [1]]],
                "entrances": [{"segment": [[0, 5]]}, {"segment": [[0, 5], ["x", 7]]}],
                "bounds": {"minX": 0, "minY": 0, "maxX": 50, "maxY": 20},
            }
        )
        assert len(plan.walls) == 1
        assert plan.walls[0].color == 0
        assert plan.walls[0].layer == "WALLS"
        assert len(plan.forbidden_zones) == 1
        assert plan.forbidden_zones[0].polygon == tuple((float(x), float(y)) for x, y in square)
        assert plan.entrances == ()

    def test_bad_bounds(self):
        with pytest.raises(InvalidBoundsError):
            FloorPlan.from_dict({"bounds": {"minX": 0}})

    def test_empty_plan(self):
        plan = FloorPlan.empty((0, 0, 10, 5))
        assert plan.bounds.area == 50.0
        assert plan.zones() == ()
