"""Chordal approximation of curved drawing entities."""

from __future__ import annotations

import math
from typing import List, Tuple

from ilotplan.geometry.primitives import Point

Chord = Tuple[Point, Point]


def arc_to_chords(
    center: Point,
    radius: float,
    start_angle_deg: float,
    end_angle_deg: float,
    max_segment_angle_deg: float = 10.0,
) -> List[Chord]:
    """Split a counter-clockwise arc into chords of at most ``max_segment_angle_deg``.

    Angles are normalised into [0, 360); an end angle at or before the start
    wraps through zero, so equal angles describe a full turn.
    """
    sa = start_angle_deg % 360.0
    ea = end_angle_deg % 360.0
    sweep = ea - sa
    if sweep <= 0.0:
        sweep += 360.0

    n = max(1, math.ceil(sweep / max_segment_angle_deg))
    cx, cy = center
    points: list[Point] = []
    for i in range(n + 1):
        a = math.radians(sa + (i * sweep) / n)
        points.append((cx + radius * math.cos(a), cy + radius * math.sin(a)))
    return [(points[i], points[i + 1]) for i in range(n)]


def circle_to_chords(center: Point, radius: float, segments: int = 36) -> List[Chord]:
    cx, cy = center
    chords: list[Chord] = []
    for i in range(segments):
        a1 = math.radians(i * 360.0 / segments)
        a2 = math.radians((i + 1) * 360.0 / segments)
        p1 = (cx + radius * math.cos(a1), cy + radius * math.sin(a1))
        p2 = (cx + radius * math.cos(a2), cy + radius * math.sin(a2))
        chords.append((p1, p2))
    return chords


def bulge_to_chords(
    v1: Point,
    v2: Point,
    bulge: float,
    max_segment_angle_deg: float = 10.0,
) -> List[Chord]:
    """Approximate the polyline arc between two vertices.

    ``bulge = tan(theta / 4)`` where theta is the included angle; a positive
    bulge turns counter-clockwise from ``v1`` to ``v2``.
    """
    chord = math.hypot(v2[0] - v1[0], v2[1] - v1[1])
    if chord == 0.0 or bulge == 0.0:
        return [(v1, v2)]

    theta = 4.0 * math.atan(bulge)
    radius = chord / (2.0 * math.sin(abs(theta) / 2.0))
    mx = (v1[0] + v2[0]) / 2.0
    my = (v1[1] + v2[1]) / 2.0
    direction = math.atan2(v2[1] - v1[1], v2[0] - v1[0])
    # signed distance from the chord midpoint to the centre, positive to the left
    offset = math.sqrt(max(0.0, radius * radius - (chord * chord) / 4.0))
    if abs(theta) > math.pi:
        offset = -offset
    side = 1.0 if bulge > 0 else -1.0
    cx = mx - offset * math.sin(direction) * side
    cy = my + offset * math.cos(direction) * side

    start = math.degrees(math.atan2(v1[1] - cy, v1[0] - cx))
    end = math.degrees(math.atan2(v2[1] - cy, v2[0] - cx))
    if bulge > 0:
        chords = arc_to_chords((cx, cy), radius, start, end, max_segment_angle_deg)
    else:
        reversed_chords = arc_to_chords((cx, cy), radius, end, start, max_segment_angle_deg)
        chords = [(b, a) for a, b in reversed(reversed_chords)]

    # pin the exact vertices so neighbouring segments chain on the same keys
    if chords:
        first_end = chords[0][1]
        chords[0] = (v1, first_end)
        last_start = chords[-1][0]
        chords[-1] = (last_start, v2)
        if len(chords) == 1:
            chords[0] = (v1, v2)
    return chords


__all__ = ["Chord", "arc_to_chords", "circle_to_chords", "bulge_to_chords"]
