from __future__ import annotations

from typing import Sequence

from ilotplan.geometry.primitives import rect_gap, rect_overlap_area


def line(x1: float, y1: float, x2: float, y2: float, layer: str = "0", color: int = 0) -> dict:
    return {"type": "LINE", "start": [x1, y1], "end": [x2, y2], "layer": layer, "color": color}


def rectangle_lines(x1: float, y1: float, x2: float, y2: float, layer: str = "0", color: int = 0) -> list[dict]:
    """Four LINE entities outlining an axis-aligned rectangle."""
    return [
        line(x1, y1, x2, y1, layer, color),
        line(x2, y1, x2, y2, layer, color),
        line(x2, y2, x1, y2, layer, color),
        line(x1, y2, x1, y1, layer, color),
    ]


def assert_units_clear(units: Sequence, min_distance: float, eps: float = 1e-9) -> None:
    for i, a in enumerate(units):
        for b in units[i + 1 :]:
            assert rect_overlap_area(a.rect, b.rect) == 0.0, f"units {a.id} and {b.id} overlap"
            assert rect_gap(a.rect, b.rect) >= min_distance - eps, f"units {a.id} and {b.id} too close"


def assert_units_inside(units: Sequence, bounds, eps: float = 1e-9) -> None:
    for unit in units:
        assert bounds.contains_rect(unit.rect, eps), f"unit {unit.id} leaves the bounds"
