"""Seeded pseudo-random stream (Mulberry32) threaded explicitly through placement."""

from __future__ import annotations

from typing import MutableSequence, TypeVar

T = TypeVar("T")

_MASK = 0xFFFFFFFF


def _imul(a: int, b: int) -> int:
    return (a * b) & _MASK


class DeterministicSequence:
    """
    Mulberry32 generator producing floats in [0, 1).

    Two instances created with the same seed yield bit-identical streams.
    An instance is not meant to be shared between concurrent layouts.
    """

    def __init__(self, seed: int = 1) -> None:
        self.seed = int(seed) & _MASK
        self._state = self.seed
        self.draws = 0

    def next_float(self) -> float:
        self._state = (self._state + 0x6D2B79F5) & _MASK
        s = self._state
        t = _imul(s ^ (s >> 15), 1 | s)
        t = ((t + _imul(t ^ (t >> 7), 61 | t)) & _MASK) ^ t
        self.draws += 1
        return ((t ^ (t >> 14)) & _MASK) / 4294967296.0

    def shuffle(self, items: MutableSequence[T]) -> MutableSequence[T]:
        """Fisher-Yates shuffle in place, walking from the end."""
        for i in range(len(items) - 1, 0, -1):
            j = int(self.next_float() * (i + 1))
            items[i], items[j] = items[j], items[i]
        return items


__all__ = ["DeterministicSequence"]
