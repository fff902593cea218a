"""Seeded PCG32 random source (PCG-XSH-RR, 64-bit state, 32-bit output).

A direct port of the reference generator: ``PCG32(seed, seq)`` yields the
same stream as the C ``pcg32_srandom_r``/``pcg32_random_r`` pair. ``choice``
is the only addition. Used for rolling ground types and picking frontier
slots, so a seed reproduces the same world on every client.
Reference: https://www.pcg-random.org/
"""

from __future__ import annotations

from typing import Sequence, TypeVar

T = TypeVar("T")

MASK32 = 0xFFFFFFFF
MASK64 = 0xFFFFFFFFFFFFFFFF
MULTIPLIER = 6364136223846793005


def _rotr32(value: int, rot: int) -> int:
    return ((value >> rot) | (value << (-rot & 31))) & MASK32


class PCG32:
    def __init__(self, seed: int, seq: int = 0) -> None:
        self._inc = ((seq << 1) | 1) & MASK64
        self._state = self._inc
        self._state = (self._state + seed) & MASK64
        self._step()

    def _step(self) -> None:
        self._state = (self._state * MULTIPLIER + self._inc) & MASK64

    def next_u32(self) -> int:
        old = self._state
        self._step()
        return _rotr32((((old >> 18) ^ old) >> 27) & MASK32, old >> 59)

    def next_float(self) -> float:
        """Uniform float in [0, 1)."""
        return self.next_u32() / (MASK32 + 1)

    def next_int(self, lo: int, hi: int) -> int:
        """Integer in [lo, hi] inclusive. Raises ValueError if hi < lo."""
        if hi < lo:
            raise ValueError(f"Empty range [{lo}, {hi}]")
        return lo + self.next_u32() % (hi - lo + 1)

    def choice(self, items: Sequence[T]) -> T:
        if not items:
            raise ValueError("Cannot choose from an empty sequence")
        return items[self.next_int(0, len(items) - 1)]
