"""Keyed response curves sampled by animation progress.

A curve is a list of `(t, value)` keys sorted by `t`. Sampling interpolates
linearly between neighbouring keys and holds the first/last value outside the
keyed range.
"""
from __future__ import annotations

from bisect import bisect_right
from typing import Iterable


class ResponseCurve:
    def __init__(self, keys: Iterable[tuple[float, float]]) -> None:
        ordered = sorted((float(t), float(v)) for t, v in keys)
        if not ordered:
            ordered = [(0.0, 0.0)]
        self._ts = [t for t, _ in ordered]
        self._vs = [v for _, v in ordered]

    @property
    def keys(self) -> tuple[tuple[float, float], ...]:
        return tuple(zip(self._ts, self._vs))

    def evaluate(self, t: float) -> float:
        x = float(t)
        if x <= self._ts[0]:
            return self._vs[0]
        if x >= self._ts[-1]:
            return self._vs[-1]
        i = bisect_right(self._ts, x)
        t0, t1 = self._ts[i - 1], self._ts[i]
        v0, v1 = self._vs[i - 1], self._vs[i]
        if t1 - t0 <= 1e-12:
            return v1
        return v0 + (v1 - v0) * ((x - t0) / (t1 - t0))

    @classmethod
    def constant(cls, value: float) -> "ResponseCurve":
        return cls([(0.0, float(value))])


__all__ = ["ResponseCurve"]
