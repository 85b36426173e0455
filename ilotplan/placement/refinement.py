"""
Deterministic overlap refinement.

Runs after greedy placement: every overlapping pair is resolved, largest
overlap first, by stepping the smaller unit along one of eight compass
directions in an order drawn from the layout's DeterministicSequence.
Positions are reported back as updates keyed by unit id.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Tuple

from loguru import logger

from ilotplan.geometry.primitives import Bounds, Rect, rect_overlap_area
from ilotplan.placement.rng import DeterministicSequence
from ilotplan.placement.spatial_index import SpatialIndex
from ilotplan.placement.validity import PlacementValidator


OVERLAP_EPS = 1e-6

COMPASS: Tuple[Tuple[int, int], ...] = (
    (-1, 0),
    (1, 0),
    (0, -1),
    (0, 1),
    (-1, -1),
    (1, -1),
    (-1, 1),
    (1, 1),
)


@dataclass
class RefinementOutcome:
    updates: Dict[int, Tuple[float, float]] = field(default_factory=dict)
    overlapping_pairs: int = 0
    moves: int = 0
    nudges: int = 0
    unresolved: int = 0


def find_overlapping_pairs(rects: Mapping[int, Rect], index: SpatialIndex) -> List[Tuple[float, int, int]]:
    """``(area, a, b)`` for each pair with positive overlap, largest first."""
    pairs: List[Tuple[float, int, int]] = []
    for a, rect_a in rects.items():
        for b in index.query_rect(rect_a):
            if not isinstance(b, int) or b <= a or b not in rects:
                continue
            area = rect_overlap_area(rect_a, rects[b])
            if area > OVERLAP_EPS:
                pairs.append((area, a, b))
    pairs.sort(key=lambda p: (-p[0], p[1], p[2]))
    return pairs


def _collides(candidate: Rect, mover: int, index: SpatialIndex) -> bool:
    for key in index.query_rect(candidate):
        if key == mover:
            continue
        other = index.rect_of(key)
        if other is not None and rect_overlap_area(other, candidate) > OVERLAP_EPS:
            return True
    return False


def refine_positions(
    rects: Mapping[int, Rect],
    index: SpatialIndex,
    validator: PlacementValidator,
    bounds: Bounds,
    rng: DeterministicSequence,
) -> RefinementOutcome:
    """
    Resolve overlaps among ``rects`` (unit id -> rect).

    ``index`` must hold the same ids and is kept in sync as units move.
    """
    outcome = RefinementOutcome()
    if len(rects) <= 1:
        return outcome

    current: Dict[int, Rect] = dict(rects)
    pairs = find_overlapping_pairs(current, index)
    outcome.overlapping_pairs = len(pairs)

    for _, a, b in pairs:
        rect_a, rect_b = current[a], current[b]
        if rect_overlap_area(rect_a, rect_b) <= OVERLAP_EPS:
            continue

        mover = a if rect_a.area <= rect_b.area else b
        mover_rect = current[mover]
        step = max(0.5, min(mover_rect.width, mover_rect.height) / 4.0)

        directions = rng.shuffle(list(COMPASS))
        moved = False
        for dx, dy in directions:
            candidate = mover_rect.translated(dx * step, dy * step)
            if not bounds.contains_rect(candidate):
                continue
            if _collides(candidate, mover, index):
                continue
            if validator.is_valid(candidate, exclude=mover):
                current[mover] = candidate
                index.update(mover, candidate)
                outcome.updates[mover] = (candidate.x1, candidate.y1)
                outcome.moves += 1
                moved = True
                break

        if moved:
            continue

        cx = mover_rect.center[0]
        direction = 1.0 if bounds.center[0] >= cx else -1.0
        candidate = mover_rect.translated(direction * step, 0.0)
        if bounds.contains_rect(candidate) and validator.is_valid(candidate, exclude=mover):
            current[mover] = candidate
            index.update(mover, candidate)
            outcome.updates[mover] = (candidate.x1, candidate.y1)
            outcome.nudges += 1
            continue

        outcome.unresolved += 1
        logger.debug("Overlap between units {} and {} left unresolved", a, b)

    return outcome


__all__ = ["COMPASS", "OVERLAP_EPS", "RefinementOutcome", "find_overlapping_pairs", "refine_positions"]
