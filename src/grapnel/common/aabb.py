from __future__ import annotations

from dataclasses import dataclass

from panda3d.core import LPoint3f, LVector3f


@dataclass(frozen=True)
class AABB:
    minimum: LVector3f
    maximum: LVector3f

    @classmethod
    def around(cls, *, center: LVector3f, half_extents: LVector3f) -> "AABB":
        c = LVector3f(center)
        h = LVector3f(abs(float(half_extents.x)), abs(float(half_extents.y)), abs(float(half_extents.z)))
        return cls(minimum=c - h, maximum=c + h)

    def closest_point(self, point: LVector3f) -> LPoint3f:
        """Point of the box nearest to `point` (the point itself when inside)."""

        return LPoint3f(
            min(float(self.maximum.x), max(float(self.minimum.x), float(point.x))),
            min(float(self.maximum.y), max(float(self.minimum.y), float(point.y))),
            min(float(self.maximum.z), max(float(self.minimum.z), float(point.z))),
        )
