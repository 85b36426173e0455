from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Set, Tuple

from loguru import logger

from ilotplan.geometry.primitives import Point, Segment


EndpointKey = Tuple[float, float]


@dataclass
class ChainedPolygon:
    """Closed ring produced by walking connected segments."""
    vertices: Tuple[Point, ...]
    layer: str
    color: int
    segment_indices: Tuple[int, ...]


@dataclass
class ChainResult:
    polygons: List[ChainedPolygon] = field(default_factory=list)
    used: Set[int] = field(default_factory=set)
    abandoned_chains: int = 0

    def leftover(self, segments: Sequence[Segment]) -> List[int]:
        return [i for i in range(len(segments)) if i not in self.used]


def snap_key(point: Point, tolerance: float = 1e-3) -> EndpointKey:
    """Snap a coordinate to the endpoint grid (``round(v / tol) * tol``)."""
    scale = 1.0 / tolerance
    return (round(point[0] * scale) / scale, round(point[1] * scale) / scale)


def build_endpoint_index(segments: Sequence[Segment], tolerance: float = 1e-3) -> Dict[EndpointKey, List[int]]:
    index: Dict[EndpointKey, List[int]] = {}
    for i, seg in enumerate(segments):
        for pt in (seg.start, seg.end):
            bucket = index.setdefault(snap_key(pt, tolerance), [])
            if i not in bucket:
                bucket.append(i)
    return index


def _close_enough(a: Point, b: Point, tolerance: float) -> bool:
    return math.hypot(a[0] - b[0], a[1] - b[1]) <= tolerance


def chain_polygons(
    segments: Sequence[Segment],
    tolerance: float = 1e-3,
    max_chain_length: int = 1000,
) -> ChainResult:
    """
    Greedily chain segments that share endpoints into closed polygons.

    Each unused segment seeds a walk that follows the first unused segment
    (in index order) touching the current tip. A walk succeeds when the tip
    comes back within ``tolerance`` of the seed start with at least three
    vertices; otherwise its segments stay available for lone classification.
    """
    result = ChainResult()
    if not segments:
        return result

    index = build_endpoint_index(segments, tolerance)

    for seed in range(len(segments)):
        if seed in result.used:
            continue

        first = segments[seed]
        vertices: List[Point] = [first.start, first.end]
        chain: List[int] = [seed]
        in_chain: Set[int] = {seed}
        tip = first.end
        closed = False

        for _ in range(max_chain_length):
            if len(vertices) > 3 and _close_enough(tip, vertices[0], tolerance):
                closed = True
                break

            nxt = -1
            for candidate in index.get(snap_key(tip, tolerance), []):
                if candidate in result.used or candidate in in_chain:
                    continue
                nxt = candidate
                break
            if nxt < 0:
                break

            seg = segments[nxt]
            # orient the segment so it continues from the current tip
            if snap_key(seg.start, tolerance) == snap_key(tip, tolerance):
                tip = seg.end
            else:
                tip = seg.start
            vertices.append(tip)
            chain.append(nxt)
            in_chain.add(nxt)

        if not closed and len(vertices) > 3 and _close_enough(tip, vertices[0], tolerance):
            closed = True

        if closed:
            ring = tuple(vertices[:-1])
            result.polygons.append(
                ChainedPolygon(
                    vertices=ring,
                    layer=first.layer,
                    color=first.color,
                    segment_indices=tuple(chain),
                )
            )
            result.used.update(chain)
        elif len(chain) > 1:
            result.abandoned_chains += 1

    logger.debug(
        "Chained {} segments into {} polygons ({} open chains)",
        len(segments),
        len(result.polygons),
        result.abandoned_chains,
    )
    return result


__all__ = [
    "ChainedPolygon",
    "ChainResult",
    "EndpointKey",
    "snap_key",
    "build_endpoint_index",
    "chain_polygons",
]
