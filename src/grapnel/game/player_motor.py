from __future__ import annotations

import logging

from panda3d.core import LPoint3f, LVector3f

from grapnel.common.aabb import AABB
from grapnel.common.vecmath import UP, forward_from_yaw, normalized, project, reject, right_from_yaw
from grapnel.physics.queries import PhysicsQueries
from grapnel.tuning import PlayerTuning

logger = logging.getLogger(__name__)

_GROUND_SKIN = 0.02


class PlayerMotor:
    """
    Minimal kinematic player: camera-relative movement, ground check and jump timers.

    Jumping follows three countdowns: the jump buffer keeps a press alive for a
    short window, coyote time keeps the ground "valid" briefly after leaving it,
    and jump sleep blocks the ground check from re-arming coyote time right after
    take-off.
    """

    def __init__(self, *, tuning: PlayerTuning) -> None:
        self.tuning = tuning
        self.pos = LPoint3f(*tuning.spawn_pos)
        self.vel = LVector3f(0.0, 0.0, 0.0)
        self.grounded = False
        self._jump_buffer_timer = 0.0
        self._coyote_timer = 0.0
        self._jump_sleep_timer = 0.0

    @property
    def jump_buffer_left(self) -> float:
        return self._jump_buffer_timer

    @property
    def coyote_left(self) -> float:
        return self._coyote_timer

    @property
    def jump_sleep_left(self) -> float:
        return self._jump_sleep_timer

    def wish_direction(self, *, move_x: int, move_y: int, yaw_deg: float) -> LVector3f:
        wish = right_from_yaw(yaw_deg) * float(move_x) + forward_from_yaw(yaw_deg) * float(move_y)
        return normalized(reject(wish, UP))

    def physics_tick(
        self,
        dt: float,
        *,
        move_x: int,
        move_y: int,
        yaw_deg: float,
        physics: PhysicsQueries | None,
    ) -> None:
        step = max(0.0, float(dt))
        wish = self.wish_direction(move_x=move_x, move_y=move_y, yaw_deg=yaw_deg)
        gravity = LVector3f(0.0, 0.0, -float(self.tuning.gravity))
        self.vel = wish * float(self.tuning.move_speed) + project(self.vel, UP) + gravity * step

        ground_z = self._find_ground(physics)
        self.grounded = ground_z is not None
        if self.grounded:
            if self._jump_sleep_timer <= 0.0:
                self._coyote_timer = float(self.tuning.jump_coyote_time)
        else:
            self._coyote_timer -= step
        self._jump_sleep_timer -= step

        self.pos = LPoint3f(self.pos + self.vel * step)
        if ground_z is not None and float(self.vel.z) <= 0.0:
            rest_z = ground_z + float(self.tuning.half_height)
            if float(self.pos.z) < rest_z:
                self.pos.z = rest_z
                self.vel.z = 0.0

    def render_tick(self, dt: float, *, jump_pressed: bool) -> bool:
        if jump_pressed:
            self._jump_buffer_timer = float(self.tuning.jump_buffer_time)
        jumped = False
        if self._jump_buffer_timer > 0.0:
            jumped = self._try_jump()
        self._jump_buffer_timer -= max(0.0, float(dt))
        return jumped

    def reset(self, rig) -> None:
        self.vel = LVector3f(0.0, 0.0, 0.0)
        self.pos = LPoint3f(*self.tuning.spawn_pos)
        rig.reset_look()

    def bounds(self) -> AABB:
        r = float(self.tuning.radius)
        return AABB.around(center=LVector3f(self.pos), half_extents=LVector3f(r, r, float(self.tuning.half_height)))

    def _try_jump(self) -> bool:
        if self._coyote_timer <= 0.0:
            return False
        self._jump_buffer_timer = 0.0
        self._coyote_timer = 0.0
        self._jump_sleep_timer = float(self.tuning.jump_sleep_time)
        self.vel = self.vel - project(self.vel, UP) + UP * float(self.tuning.jump_power)
        logger.debug("jump at z=%.3f", float(self.pos.z))
        return True

    def _find_ground(self, physics: PhysicsQueries | None) -> float | None:
        if physics is None:
            return None
        r = float(self.tuning.radius)
        bottom_center = LPoint3f(self.pos - UP * (float(self.tuning.half_height) - r))
        origin = LPoint3f(bottom_center + UP * r)
        hit = physics.spherecast(
            origin,
            -UP,
            max(1e-3, r - _GROUND_SKIN),
            r + 2.0 * _GROUND_SKIN,
            layer_mask=int(self.tuning.jump_layers),
            ignore_triggers=True,
        )
        if hit is None:
            return None
        return float(hit.point.z)


__all__ = ["PlayerMotor"]
