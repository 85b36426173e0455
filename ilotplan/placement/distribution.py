"""
Size distribution handling.

A distribution maps ``"min-max"`` area range labels to weights. Weights that
sum to 1 or 100 are percentages of the requested total; otherwise positive
integers are explicit counts and anything else is a proportional share.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Tuple

from loguru import logger

from ilotplan.exceptions import DistributionError
from ilotplan.layout_config import PlacementConfig
from ilotplan.placement.rng import DeterministicSequence


_RANGE_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*-\s*(\d+(?:\.\d+)?)\s*$")
_PERCENT_EPS = 1e-6


@dataclass(frozen=True)
class SizeRange:
    label: str
    min_area: float
    max_area: float
    weight: float


@dataclass(frozen=True)
class UnitCandidate:
    id: int
    range_label: str
    width: float
    height: float

    @property
    def area(self) -> float:
        return self.width * self.height


@dataclass
class DistributionPlan:
    ranges: List[SizeRange]
    counts: List[int]
    mode: str
    warnings: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(self.counts)

    def to_dict(self) -> dict:
        return {
            "mode": self.mode,
            "counts": {r.label: c for r, c in zip(self.ranges, self.counts)},
            "total": self.total,
            "warnings": list(self.warnings),
        }


def parse_range(label: Any) -> Optional[Tuple[float, float]]:
    """``"1-3"`` -> ``(1.0, 3.0)``; anything malformed or inverted -> None."""
    if not isinstance(label, str):
        return None
    match = _RANGE_RE.match(label)
    if not match:
        return None
    lo, hi = float(match.group(1)), float(match.group(2))
    if hi < lo:
        return None
    return lo, hi


def _weight(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        w = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(w) or w < 0.0:
        return None
    return w


def parse_distribution(distribution: Mapping[str, Any]) -> Tuple[List[SizeRange], List[str]]:
    if not isinstance(distribution, Mapping):
        raise DistributionError(
            "Size distribution must be a mapping of 'min-max' labels to weights",
            {"type": type(distribution).__name__},
        )
    ranges: List[SizeRange] = []
    warnings: List[str] = []
    for label, value in distribution.items():
        bounds = parse_range(label)
        if bounds is None:
            warnings.append(f"Ignoring invalid range label {label!r}")
            continue
        weight = _weight(value)
        if weight is None:
            warnings.append(f"Ignoring range {label!r} with invalid weight {value!r}")
            continue
        ranges.append(SizeRange(label=label, min_area=bounds[0], max_area=bounds[1], weight=weight))

    for message in warnings:
        logger.warning(message)
    if not ranges:
        raise DistributionError(
            "Size distribution has no valid ranges",
            {"labels": ", ".join(str(k) for k in distribution.keys())},
        )
    return ranges, warnings


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _largest_remainder(weights: List[float], total_weight: float, total_units: int) -> List[int]:
    quotas = [w / total_weight * total_units for w in weights]
    counts = [int(math.floor(q)) for q in quotas]
    remaining = total_units - sum(counts)
    order = sorted(range(len(quotas)), key=lambda i: (-(quotas[i] - counts[i]), i))
    for i in order[:remaining]:
        counts[i] += 1
    return counts


def apportion(ranges: List[SizeRange], total_units: int) -> Tuple[List[int], str]:
    """Return per-range unit counts and the interpretation used."""
    weights = [r.weight for r in ranges]
    total_weight = sum(weights)
    if total_weight <= 0.0:
        return [0] * len(ranges), "empty"

    if abs(total_weight - 1.0) < _PERCENT_EPS or abs(total_weight - 100.0) < _PERCENT_EPS:
        return _largest_remainder(weights, total_weight, total_units), "percentage"

    counts: List[int] = []
    for w in weights:
        if w > 0.0 and float(w).is_integer():
            counts.append(int(w))
        else:
            counts.append(round_half_up(w / total_weight * total_units))
    return counts, "counts"


def plan_distribution(distribution: Mapping[str, Any], total_units: int) -> DistributionPlan:
    ranges, warnings = parse_distribution(distribution)
    counts, mode = apportion(ranges, max(0, int(total_units)))
    return DistributionPlan(ranges=ranges, counts=counts, mode=mode, warnings=warnings)


def sample_candidates(
    plan: DistributionPlan,
    rng: DeterministicSequence,
    config: PlacementConfig | None = None,
) -> List[UnitCandidate]:
    """Draw one footprint per requested unit, in range order."""
    if config is None:
        config = PlacementConfig()
    aspect_span = config.aspect_ratio_max - config.aspect_ratio_min
    min_dim = config.min_dimension

    candidates: List[UnitCandidate] = []
    for size_range, count in zip(plan.ranges, plan.counts):
        spread = max(0.5, size_range.max_area - size_range.min_area)
        for _ in range(count):
            area = max(0.5, size_range.min_area + rng.next_float() * spread)
            aspect = config.aspect_ratio_min + rng.next_float() * aspect_span
            width = max(min_dim, math.sqrt(area * aspect))
            height = max(min_dim, area / width)
            candidates.append(
                UnitCandidate(
                    id=len(candidates) + 1,
                    range_label=size_range.label,
                    width=width,
                    height=height,
                )
            )
    return candidates


def order_largest_first(candidates: List[UnitCandidate]) -> List[UnitCandidate]:
    return sorted(candidates, key=lambda c: -c.area)


__all__ = [
    "SizeRange",
    "UnitCandidate",
    "DistributionPlan",
    "parse_range",
    "parse_distribution",
    "round_half_up",
    "apportion",
    "plan_distribution",
    "sample_candidates",
    "order_largest_first",
]
