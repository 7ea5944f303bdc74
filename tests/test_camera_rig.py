from __future__ import annotations

import pytest
from panda3d.core import LPoint3f, LVector3f

from grapnel.common.aabb import AABB
from grapnel.game.camera_rig import CameraRig
from grapnel.physics.queries import Hit
from grapnel.tuning import LensTuning, RigTuning


class _FakeCasts:
    def __init__(self, hits: list[Hit | None] | None = None) -> None:
        self._hits = list(hits or [])
        self.calls: list[dict] = []

    def boxcast(self, origin, half_extents, direction, orientation, max_distance, *, layer_mask, ignore_triggers=True):
        self.calls.append(
            {
                "origin": LPoint3f(origin),
                "direction": LVector3f(direction),
                "distance": float(max_distance),
                "ignore_triggers": ignore_triggers,
            }
        )
        if not self._hits:
            return None
        return self._hits.pop(0)


def _rig(**overrides) -> CameraRig:
    return CameraRig(tuning=RigTuning(**overrides), lens=LensTuning())


def _hit(distance: float) -> Hit:
    return Hit(point=LPoint3f(0.0, 0.0, 0.0), distance=distance, surface=1)


def test_zoom_is_clamped_to_range() -> None:
    rig = _rig()
    assert rig.zoom == 6.0
    assert rig.set_zoom(100.0) == 16.0
    assert rig.set_zoom(-100.0) == 0.0


def test_look_wraps_yaw_and_clamps_pitch() -> None:
    rig = _rig(look_sensitivity=0.2)
    rig.apply_look(100.0, 0.0)
    assert rig.yaw == pytest.approx(10.0)
    rig.apply_look(-200.0, 0.0)
    assert rig.yaw == pytest.approx(350.0)
    rig.apply_look(0.0, 10_000.0)
    assert rig.pitch == 90.0
    rig.apply_look(0.0, -50_000.0)
    assert rig.pitch == -90.0


def test_zero_look_delta_is_idempotent() -> None:
    rig = _rig()
    rig.apply_look(37.0, -12.0)
    yaw, pitch = rig.yaw, rig.pitch
    rig.apply_look(0.0, 0.0)
    rig.apply_look(0.0, 0.0)
    assert (rig.yaw, rig.pitch) == (yaw, pitch)


def test_free_look_requires_use_camera_unless_locked() -> None:
    rig = _rig()
    rig.handle_pointer_delta(50.0, 0.0)
    assert rig.yaw == 0.0

    rig.set_use_camera(True)
    rig.handle_pointer_delta(50.0, 0.0)
    assert rig.yaw == pytest.approx(5.0)

    rig.set_use_camera(False)
    rig.toggle_lock()
    rig.handle_pointer_delta(50.0, 0.0)
    assert rig.yaw == pytest.approx(10.0)

    rig.reset_look()
    assert (rig.yaw, rig.pitch) == (0.0, 0.0)


def test_toggle_lock_flips_cursor_and_crosshair() -> None:
    rig = _rig()
    assert rig.cursor_visible and not rig.lock_crosshair_visible
    assert rig.toggle_lock() is True
    assert not rig.cursor_visible and rig.lock_crosshair_visible


def test_unobstructed_camera_eases_toward_zoom() -> None:
    rig = _rig()
    pivot = LPoint3f(0.0, 0.0, 2.0)
    view = rig.update(1.0 / 60.0, pivot_pos=pivot, physics=None)
    assert view.pos.y == pytest.approx(-6.0, abs=1e-4)
    assert view.pos.z == pytest.approx(2.0, abs=1e-4)

    rig.set_zoom(4.0)
    rig.update(1.0 / 60.0, pivot_pos=pivot, physics=None)
    assert -10.0 < rig.local_offset.y < -6.0
    for _ in range(120):
        rig.update(1.0 / 60.0, pivot_pos=pivot, physics=None)
    assert rig.local_offset.y == pytest.approx(-10.0, abs=1e-3)


def test_obstructed_camera_snaps_in_front_of_hit() -> None:
    casts = _FakeCasts([_hit(2.0)])
    rig = _rig()
    view = rig.update(1.0 / 60.0, pivot_pos=LPoint3f(0.0, 0.0, 0.0), physics=casts)

    # Hit distance plus a 1.5x near-clip pull.
    assert view.pos.y == pytest.approx(-(2.0 + 0.45), abs=1e-4)
    call = casts.calls[0]
    assert call["direction"].y == pytest.approx(-1.0, abs=1e-5)
    assert call["distance"] == pytest.approx(6.0 - 0.45, abs=1e-5)
    assert call["ignore_triggers"] is True


def test_collision_disabled_skips_casts() -> None:
    casts = _FakeCasts([_hit(1.0)])
    rig = _rig(collision_enabled=False)
    rig.update(1.0 / 60.0, pivot_pos=LPoint3f(0.0, 0.0, 0.0), physics=casts)
    assert casts.calls == []


def test_locked_camera_collapses_to_pivot_when_offset_blocked() -> None:
    casts = _FakeCasts([_hit(0.4)])
    rig = _rig()
    rig.toggle_lock()
    view = rig.update(1.0 / 60.0, pivot_pos=LPoint3f(1.0, 2.0, 3.0), physics=casts)

    assert len(casts.calls) == 1
    assert casts.calls[0]["direction"].x == pytest.approx(1.0, abs=1e-5)
    assert rig.local_offset.length() == pytest.approx(0.0)
    assert (view.pos.x, view.pos.y, view.pos.z) == pytest.approx((1.0, 2.0, 3.0), abs=1e-5)


def test_locked_camera_eases_toward_lock_offset() -> None:
    casts = _FakeCasts()
    rig = _rig()
    rig.toggle_lock()
    rig.update(1.0 / 60.0, pivot_pos=LPoint3f(0.0, 0.0, 0.0), physics=casts)
    assert len(casts.calls) == 2
    assert 0.0 < rig.local_offset.x < 1.0

    for _ in range(120):
        rig.update(1.0 / 60.0, pivot_pos=LPoint3f(0.0, 0.0, 0.0), physics=casts)
    assert rig.local_offset.x == pytest.approx(1.0, abs=1e-3)
    assert rig.local_offset.y == pytest.approx(-6.0, abs=1e-3)


def test_locked_camera_at_zero_zoom_skips_offset() -> None:
    casts = _FakeCasts()
    rig = _rig(initial_zoom=0.0)
    rig.toggle_lock()
    rig.update(1.0 / 60.0, pivot_pos=LPoint3f(0.0, 0.0, 0.0), physics=casts)
    assert casts.calls == []


def test_player_alpha_fades_when_near_plane_is_inside_player() -> None:
    rig = _rig()
    pivot = LPoint3f(0.0, 0.0, 0.0)
    rig.update(1.0 / 60.0, pivot_pos=pivot, physics=None)
    assert rig.player_alpha == 1.0

    far = AABB.around(center=LVector3f(0.0, 0.0, 0.0), half_extents=LVector3f(0.5, 0.5, 1.0))
    rig.update(1.0 / 60.0, pivot_pos=pivot, physics=None, player_bounds=far)
    assert rig.player_alpha == 1.0

    around_camera = AABB.around(center=LVector3f(0.0, -6.0, 0.0), half_extents=LVector3f(1.0, 1.0, 1.0))
    rig.update(1.0 / 60.0, pivot_pos=pivot, physics=None, player_bounds=around_camera)
    assert rig.player_alpha == 0.0
