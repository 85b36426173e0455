"""Zone classification as an ordered, first-match-wins rule table."""

from __future__ import annotations

from enum import Enum
from typing import Callable, List, Sequence, Tuple

from ilotplan.layout_config import ReconstructionConfig


class Classification(str, Enum):
    WALL = "wall"
    FORBIDDEN = "forbidden"
    ENTRANCE = "entrance"


Predicate = Callable[[str, int], bool]
Rule = Tuple[Predicate, Classification]


def _layer_has_keyword(keywords: Sequence[str]) -> Predicate:
    def match(layer: str, color: int) -> bool:
        upper = (layer or "").upper()
        return any(k in upper for k in keywords)

    return match


def _color_in(colors: Sequence[int]) -> Predicate:
    palette = frozenset(colors)

    def match(layer: str, color: int) -> bool:
        return color in palette

    return match


def build_rules(config: ReconstructionConfig | None = None) -> List[Rule]:
    """Entrance before forbidden; anything unmatched is a wall."""
    if config is None:
        config = ReconstructionConfig()
    return [
        (_color_in(config.entrance_colors), Classification.ENTRANCE),
        (_layer_has_keyword(config.entrance_keywords), Classification.ENTRANCE),
        (_color_in(config.forbidden_colors), Classification.FORBIDDEN),
        (_layer_has_keyword(config.forbidden_keywords), Classification.FORBIDDEN),
    ]


class ZoneClassifier:
    def __init__(self, config: ReconstructionConfig | None = None) -> None:
        self.rules = build_rules(config)

    def classify(self, layer: str, color: int) -> Classification:
        for predicate, classification in self.rules:
            if predicate(layer, color):
                return classification
        return Classification.WALL


def classify_zone(layer: str, color: int, config: ReconstructionConfig | None = None) -> Classification:
    return ZoneClassifier(config).classify(layer, color)


__all__ = ["Classification", "ZoneClassifier", "build_rules", "classify_zone"]
