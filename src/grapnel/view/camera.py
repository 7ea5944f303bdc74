from __future__ import annotations

import math
from dataclasses import dataclass

from panda3d.core import LPoint3f, LQuaternionf, LVector3f

from grapnel.common.vecmath import normalized, rotate
from grapnel.physics.queries import Ray


@dataclass(frozen=True)
class CameraView:
    """
    Immutable camera snapshot published once per frame.

    Camera space follows Panda3D: +Y looks forward, +X is right, +Z is up.
    Screen coordinates are pixels with the origin at the bottom-left corner;
    viewport coordinates are the same normalized to [0, 1].
    """

    pos: LPoint3f
    quat: LQuaternionf
    fov_deg: float
    near_clip: float
    screen_width: int
    screen_height: int

    @property
    def aspect(self) -> float:
        return float(self.screen_width) / float(max(1, int(self.screen_height)))

    def forward(self) -> LVector3f:
        return rotate(self.quat, LVector3f(0.0, 1.0, 0.0))

    def right(self) -> LVector3f:
        return rotate(self.quat, LVector3f(1.0, 0.0, 0.0))

    def up(self) -> LVector3f:
        return rotate(self.quat, LVector3f(0.0, 0.0, 1.0))

    def near_box(self) -> LVector3f:
        """Full size of the near clip plane as (width, depth, height); depth is the near distance."""

        near = float(self.near_clip)
        height = math.tan(0.5 * math.radians(float(self.fov_deg))) * near * 2.0
        width = height * self.aspect
        return LVector3f(width, near, height)

    def near_plane_origin(self) -> LPoint3f:
        return LPoint3f(self.pos + self.forward() * float(self.near_clip))

    def world_to_screen(self, point: LPoint3f) -> LVector3f:
        """Project a world point to (x_px, y_px, depth). Depth is negative behind the camera."""

        d = LVector3f(LPoint3f(point) - self.pos)
        depth = float(d.dot(self.forward()))
        x = float(d.dot(self.right()))
        z = float(d.dot(self.up()))
        tan_half = math.tan(0.5 * math.radians(float(self.fov_deg)))
        denom = depth if abs(depth) > 1e-9 else (1e-9 if depth >= 0.0 else -1e-9)
        ndc_x = x / (denom * tan_half * self.aspect)
        ndc_y = z / (denom * tan_half)
        return LVector3f(
            (ndc_x + 1.0) * 0.5 * float(self.screen_width),
            (ndc_y + 1.0) * 0.5 * float(self.screen_height),
            depth,
        )

    def screen_to_viewport(self, screen: LVector3f) -> LVector3f:
        return LVector3f(
            float(screen.x) / float(max(1, int(self.screen_width))),
            float(screen.y) / float(max(1, int(self.screen_height))),
            float(screen.z),
        )

    def viewport_contains(self, point: LPoint3f) -> bool:
        vp = self.screen_to_viewport(self.world_to_screen(point))
        if float(vp.z) <= 0.0:
            return False
        return 0.0 <= float(vp.x) <= 1.0 and 0.0 <= float(vp.y) <= 1.0

    def screen_point_to_ray(self, x: float, y: float) -> Ray:
        tan_half = math.tan(0.5 * math.radians(float(self.fov_deg)))
        ndc_x = (float(x) / float(max(1, int(self.screen_width)))) * 2.0 - 1.0
        ndc_y = (float(y) / float(max(1, int(self.screen_height)))) * 2.0 - 1.0
        through = (
            self.right() * (ndc_x * tan_half * self.aspect)
            + self.forward()
            + self.up() * (ndc_y * tan_half)
        )
        # `through` has unit depth, so scaling by the near distance lands on the near plane.
        origin = LPoint3f(self.pos + through * float(self.near_clip))
        return Ray(origin=origin, direction=normalized(through))


__all__ = ["CameraView"]
