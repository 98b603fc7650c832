# /// script
# requires-python = ">=3.12"
# dependencies = []
# ///
"""Deterministic xorshift128+ random number generator.

Every random decision in the league is drawn from one of these. The
sequence is a pure function of the two 64-bit seed words and the number of
draws, so a persisted universe resumes bit-identically as long as the bit
recipe below never changes.

State is externally represented as two decimal strings so it survives JSON
consumers that cannot hold a full 64-bit integer.
"""

from __future__ import annotations

import struct

STATE_MASK = 0xFFFFFFFFFFFFFFFF
_EXPONENT_ONE = 0x3FF0000000000000  # exponent bits of a double in [1, 2)


def xs128p(state0: int, state1: int) -> tuple[int, int]:
    """Advance the two state words by one xorshift128+ step."""
    s1 = state0 & STATE_MASK
    s0 = state1 & STATE_MASK
    s1 ^= (s1 << 23) & STATE_MASK
    s1 ^= s1 >> 17
    s1 ^= s0
    s1 ^= s0 >> 26
    return s0, s1 & STATE_MASK


def state_to_double(state0: int) -> float:
    """Map the high 52 bits of a state word onto a double in [0, 1)."""
    bits = (state0 >> 12) | _EXPONENT_ONE
    return struct.unpack(">d", struct.pack(">Q", bits))[0] - 1.0


class Rng:
    """Seeded xorshift128+ stream of floats in [0, 1)."""

    def __init__(self, seed0: int, seed1: int):
        self.state0 = seed0 & STATE_MASK
        self.state1 = seed1 & STATE_MASK

    def next(self) -> float:
        self.state0, self.state1 = xs128p(self.state0, self.state1)
        return state_to_double(self.state0)

    def to_dict(self) -> dict:
        return {"s0": str(self.state0), "s1": str(self.state1)}

    @classmethod
    def from_dict(cls, raw: dict) -> Rng:
        return cls(int(raw["s0"]), int(raw["s1"]))

    def __repr__(self) -> str:
        return f"Rng(s0={self.state0}, s1={self.state1})"
