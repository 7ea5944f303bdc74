from __future__ import annotations

import pytest
from panda3d.core import LPoint3f

from grapnel.game.camera_rig import CameraRig
from grapnel.game.player_motor import PlayerMotor
from grapnel.physics.queries import Hit
from grapnel.tuning import LensTuning, PlayerTuning, RigTuning

DT = 1.0 / 60.0


class _FakeGround:
    """Infinite floor at `z`; sphere casts connect when their sweep reaches it."""

    def __init__(self, z: float = 0.0) -> None:
        self.z = z
        self.casts = 0

    def spherecast(self, origin, direction, radius, max_distance, *, layer_mask, ignore_triggers=True):
        self.casts += 1
        bottom = float(origin.z) - float(radius)
        if bottom - float(max_distance) > self.z:
            return None
        return Hit(
            point=LPoint3f(float(origin.x), float(origin.y), self.z),
            distance=max(0.0, bottom - self.z),
            surface=1,
        )


def test_standing_player_stays_on_ground_with_coyote_armed() -> None:
    motor = PlayerMotor(tuning=PlayerTuning())
    ground = _FakeGround()
    for _ in range(10):
        motor.physics_tick(DT, move_x=0, move_y=0, yaw_deg=0.0, physics=ground)

    assert motor.grounded
    assert motor.pos.z == pytest.approx(1.0)
    assert motor.vel.z == 0.0
    assert motor.coyote_left == pytest.approx(0.1)


def test_jump_consumes_coyote_and_sleeps_ground_check() -> None:
    motor = PlayerMotor(tuning=PlayerTuning())
    ground = _FakeGround()
    motor.physics_tick(DT, move_x=0, move_y=0, yaw_deg=0.0, physics=ground)

    assert motor.render_tick(DT, jump_pressed=True) is True
    assert motor.vel.z == pytest.approx(10.0)
    assert motor.coyote_left == 0.0

    motor.physics_tick(DT, move_x=0, move_y=0, yaw_deg=0.0, physics=ground)
    # Still touching the ground, but the jump sleep keeps coyote time from re-arming.
    assert motor.coyote_left == 0.0
    assert motor.render_tick(DT, jump_pressed=True) is False


def test_jump_press_in_air_is_buffered_until_landing() -> None:
    motor = PlayerMotor(tuning=PlayerTuning())
    motor.physics_tick(DT, move_x=0, move_y=0, yaw_deg=0.0, physics=None)
    assert motor.render_tick(DT, jump_pressed=True) is False
    assert motor.jump_buffer_left > 0.0

    motor.physics_tick(DT, move_x=0, move_y=0, yaw_deg=0.0, physics=_FakeGround())
    assert motor.render_tick(DT, jump_pressed=False) is True


def test_coyote_time_allows_late_jump_only_briefly() -> None:
    early = PlayerMotor(tuning=PlayerTuning())
    early.physics_tick(DT, move_x=0, move_y=0, yaw_deg=0.0, physics=_FakeGround())
    for _ in range(3):
        early.physics_tick(DT, move_x=0, move_y=0, yaw_deg=0.0, physics=None)
    assert early.render_tick(DT, jump_pressed=True) is True

    late = PlayerMotor(tuning=PlayerTuning())
    late.physics_tick(DT, move_x=0, move_y=0, yaw_deg=0.0, physics=_FakeGround())
    for _ in range(7):
        late.physics_tick(DT, move_x=0, move_y=0, yaw_deg=0.0, physics=None)
    assert late.render_tick(DT, jump_pressed=True) is False


def test_movement_is_relative_to_camera_yaw() -> None:
    motor = PlayerMotor(tuning=PlayerTuning(move_speed=10.0))
    motor.physics_tick(DT, move_x=0, move_y=1, yaw_deg=90.0, physics=_FakeGround())
    assert motor.vel.x == pytest.approx(10.0, abs=1e-4)
    assert motor.vel.y == pytest.approx(0.0, abs=1e-4)

    wish = motor.wish_direction(move_x=1, move_y=1, yaw_deg=0.0)
    assert (wish.x, wish.y, wish.z) == pytest.approx((2**-0.5, 2**-0.5, 0.0), abs=1e-5)


def test_reset_returns_to_spawn_and_resets_look() -> None:
    motor = PlayerMotor(tuning=PlayerTuning(spawn_pos=(1.0, 2.0, 3.0)))
    rig = CameraRig(tuning=RigTuning(), lens=LensTuning())
    rig.apply_look(100.0, 50.0)
    motor.physics_tick(DT, move_x=1, move_y=0, yaw_deg=0.0, physics=None)

    motor.reset(rig)

    assert (motor.pos.x, motor.pos.y, motor.pos.z) == (1.0, 2.0, 3.0)
    assert motor.vel.length() == 0.0
    assert (rig.yaw, rig.pitch) == (0.0, 0.0)


def test_bounds_wrap_the_capsule() -> None:
    motor = PlayerMotor(tuning=PlayerTuning(radius=0.5, half_height=1.0))
    box = motor.bounds()
    assert (box.minimum.x, box.minimum.z) == pytest.approx((-0.5, 0.0))
    assert (box.maximum.y, box.maximum.z) == pytest.approx((0.5, 2.0))
