from __future__ import annotations

import logging

from panda3d.core import LPoint3f, LQuaternionf, LVector3f

from grapnel.common.aabb import AABB
from grapnel.common.vecmath import (
    clamp,
    exp_decay_blend,
    inverse_lerp,
    look_quat,
    project,
    rotate,
    wrap_degrees,
)
from grapnel.physics.queries import Hit, PhysicsQueries
from grapnel.tuning import LensTuning, RigTuning
from grapnel.view.camera import CameraView

logger = logging.getLogger(__name__)

_BACK_AXIS = LVector3f(0.0, 1.0, 0.0)


class CameraRig:
    """
    Third-person follow camera orbiting a pivot.

    Owns the look angles, the zoom distance and the free/locked look mode. The
    camera sits in pivot-local space at `local_offset`; each frame it is pulled
    in front of any geometry between it and the pivot, and otherwise eases back
    out to the zoom distance.
    """

    def __init__(self, *, tuning: RigTuning, lens: LensTuning) -> None:
        self.tuning = tuning
        self.lens = lens
        self._yaw = 0.0
        self._pitch = 0.0
        self._zoom = clamp(float(tuning.initial_zoom), 0.0, max(0.0, float(tuning.max_zoom)))
        self._locked = False
        self._use_camera = False
        self._local = LVector3f(0.0, -self._zoom, 0.0)
        self._player_alpha = 1.0
        self._view: CameraView | None = None

    @property
    def yaw(self) -> float:
        return self._yaw

    @property
    def pitch(self) -> float:
        return self._pitch

    @property
    def zoom(self) -> float:
        return self._zoom

    @property
    def locked(self) -> bool:
        return self._locked

    @property
    def cursor_visible(self) -> bool:
        return not self._locked

    @property
    def lock_crosshair_visible(self) -> bool:
        return self._locked

    @property
    def local_offset(self) -> LVector3f:
        return LVector3f(self._local)

    @property
    def player_alpha(self) -> float:
        return self._player_alpha

    @property
    def view(self) -> CameraView | None:
        return self._view

    def set_zoom(self, delta: float) -> float:
        self._zoom = clamp(self._zoom + float(delta), 0.0, max(0.0, float(self.tuning.max_zoom)))
        return self._zoom

    def apply_look(self, dx: float, dy: float) -> None:
        k = float(self.tuning.look_sensitivity) * 0.5
        self._yaw = wrap_degrees(self._yaw + float(dx) * k)
        self._pitch = clamp(self._pitch + float(dy) * k, -90.0, 90.0)

    def reset_look(self) -> None:
        self._yaw = 0.0
        self._pitch = 0.0
        self.apply_look(0.0, 0.0)

    def set_use_camera(self, held: bool) -> None:
        self._use_camera = bool(held)

    def handle_pointer_delta(self, dx: float, dy: float) -> None:
        # Free-look only turns the camera while the use-camera button is held.
        if not self._locked and not self._use_camera:
            return
        self.apply_look(dx, dy)

    def toggle_lock(self) -> bool:
        self._locked = not self._locked
        logger.debug("camera lock %s", "on" if self._locked else "off")
        return self._locked

    def orientation(self) -> LQuaternionf:
        return look_quat(yaw_deg=self._yaw, pitch_deg=self._pitch)

    def update(
        self,
        dt: float,
        *,
        pivot_pos: LPoint3f,
        physics: PhysicsQueries | None,
        player_bounds: AABB | None = None,
    ) -> CameraView:
        q = self.orientation()
        pivot = LPoint3f(pivot_pos)
        forward = rotate(q, _BACK_AXIS)
        near = float(self.lens.near_clip)
        half_box = self._lens_view(pos=pivot, quat=q).near_box() * 0.5
        pull = 1.5 * near
        keep = exp_decay_blend(dt=dt, tau=float(self.tuning.zoom_smoothing_tau))

        base = LVector3f(0.0, 0.0, 0.0)
        if self._locked and self._zoom > 0.0:
            base = LVector3f(*self.tuning.lock_offset)
            skin = float(self.tuning.contact_offset)
            lock_dir = rotate(q, base)
            blocked = self._cast(
                physics,
                origin=pivot,
                half_extents=half_box + LVector3f(skin, skin, skin),
                direction=lock_dir,
                quat=q,
                distance=float(base.length()),
            )
            if blocked is not None:
                self._local = LVector3f(0.0, 0.0, 0.0)
                return self._publish(pivot=pivot, quat=q, player_bounds=player_bounds)

        lateral = self._local - project(self._local, _BACK_AXIS)
        hit = self._cast(
            physics,
            origin=LPoint3f(pivot + rotate(q, lateral)),
            half_extents=half_box,
            direction=-forward,
            quat=q,
            distance=self._zoom - pull,
        )
        if hit is not None:
            self._local = base - _BACK_AXIS * (float(hit.distance) + pull)
        else:
            target = base - _BACK_AXIS * self._zoom
            self._local = target + (self._local - target) * keep
        return self._publish(pivot=pivot, quat=q, player_bounds=player_bounds)

    def _cast(
        self,
        physics: PhysicsQueries | None,
        *,
        origin: LPoint3f,
        half_extents: LVector3f,
        direction: LVector3f,
        quat: LQuaternionf,
        distance: float,
    ) -> Hit | None:
        if physics is None or not self.tuning.collision_enabled or distance <= 0.0:
            return None
        return physics.boxcast(
            origin,
            half_extents,
            direction,
            quat,
            float(distance),
            layer_mask=int(self.tuning.collision_layers),
            ignore_triggers=True,
        )

    def _lens_view(self, *, pos: LPoint3f, quat: LQuaternionf) -> CameraView:
        return CameraView(
            pos=LPoint3f(pos),
            quat=LQuaternionf(quat),
            fov_deg=float(self.lens.fov_deg),
            near_clip=float(self.lens.near_clip),
            screen_width=int(self.lens.screen_width),
            screen_height=int(self.lens.screen_height),
        )

    def _publish(self, *, pivot: LPoint3f, quat: LQuaternionf, player_bounds: AABB | None) -> CameraView:
        view = self._lens_view(pos=LPoint3f(pivot + rotate(quat, self._local)), quat=quat)
        if player_bounds is not None:
            near_point = view.near_plane_origin()
            gap = (LPoint3f(player_bounds.closest_point(near_point)) - near_point).length()
            self._player_alpha = inverse_lerp(0.0, float(view.near_box().length()), float(gap))
        else:
            self._player_alpha = 1.0
        self._view = view
        return view


__all__ = ["CameraRig"]
