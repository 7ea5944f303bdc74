from __future__ import annotations

import logging
from dataclasses import dataclass

from panda3d.core import LPoint3f

from grapnel.app_config import SimConfig
from grapnel.common.error_log import ErrorLog
from grapnel.common.vecmath import UP, clamp
from grapnel.game.camera_rig import CameraRig
from grapnel.game.grapple_state import GrappleStateMachine, GrappleVisual
from grapnel.game.grapple_targeting import GrappleTargeting, TargetingResult
from grapnel.game.input_system import InputFrame
from grapnel.game.player_motor import PlayerMotor
from grapnel.physics.queries import PhysicsQueries
from grapnel.tuning import Tuning
from grapnel.view.camera import CameraView

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrameSnapshot:
    frame: int
    tick: int
    camera: CameraView
    cursor_visible: bool
    lock_crosshair_visible: bool
    crosshair_visible: bool
    crosshair_pos: tuple[float, float]
    player_alpha: float
    player_pos: LPoint3f
    targeting: TargetingResult
    grapple: GrappleVisual


class GrappleSim:
    """
    Headless frame loop wiring the player, camera rig, targeting and grapple line.

    Player movement runs on a fixed-rate accumulator; everything camera-facing
    runs once per render frame in the order camera -> targeting -> grapple so the
    targeting pass always sees this frame's camera.
    """

    def __init__(self, tuning: Tuning, physics: PhysicsQueries, *, config: SimConfig | None = None) -> None:
        self.tuning = tuning
        self.physics = physics
        self.config = config if config is not None else SimConfig()
        self.rig = CameraRig(tuning=tuning.rig, lens=tuning.lens)
        self.targeting = GrappleTargeting(tuning=tuning.grapple, rig_tuning=tuning.rig, physics=physics)
        self.grapple = GrappleStateMachine(tuning=tuning.grapple, physics=physics)
        self.motor = PlayerMotor(tuning=tuning.player)
        self.error_log = ErrorLog(persist_path=self.config.error_log_path)

        self._fixed_dt = 1.0 / float(max(1, int(self.config.tick_rate_hz)))
        self._accumulator = 0.0
        self._tick = 0
        self._frame = 0
        self._snapshot: FrameSnapshot | None = None

    @property
    def tick_count(self) -> int:
        return self._tick

    @property
    def frame_count(self) -> int:
        return self._frame

    @property
    def last_snapshot(self) -> FrameSnapshot | None:
        return self._snapshot

    def pivot(self) -> LPoint3f:
        return LPoint3f(self.motor.pos + UP * float(self.tuning.rig.pivot_height))

    def frame(self, dt: float, inp: InputFrame) -> FrameSnapshot | None:
        """Advance one render frame. A failing frame is recorded and the previous snapshot is returned."""

        try:
            self._snapshot = self._run_frame(dt, inp)
        except Exception as exc:
            if self.config.raise_errors:
                raise
            self.error_log.log_exception(context="sim.frame", exc=exc)
        return self._snapshot

    def _run_frame(self, dt: float, inp: InputFrame) -> FrameSnapshot:
        frame_dt = clamp(dt, 0.0, float(self.config.max_frame_dt))
        self._frame += 1

        if inp.zoom_delta:
            self.rig.set_zoom(float(inp.zoom_delta))
        if inp.lock_toggle_pressed:
            self.rig.toggle_lock()
        self.rig.set_use_camera(inp.use_camera_held)
        self.rig.handle_pointer_delta(inp.look_dx, inp.look_dy)
        if inp.reset_pressed:
            self.motor.reset(self.rig)
            logger.info("player reset to spawn")

        self._accumulator = min(float(self.config.max_frame_dt), self._accumulator + frame_dt)
        while self._accumulator >= self._fixed_dt:
            self.motor.physics_tick(
                self._fixed_dt,
                move_x=inp.move_x,
                move_y=inp.move_y,
                yaw_deg=self.rig.yaw,
                physics=self.physics,
            )
            self.physics.step(self._fixed_dt)
            self._accumulator -= self._fixed_dt
            self._tick += 1

        self.motor.render_tick(frame_dt, jump_pressed=inp.jump_pressed)

        pivot = self.pivot()
        camera = self.rig.update(
            frame_dt,
            pivot_pos=pivot,
            physics=self.physics,
            player_bounds=self.motor.bounds(),
        )
        result = self.targeting.update(
            camera=camera,
            pointer=(inp.pointer_x, inp.pointer_y),
            cursor_locked=self.rig.locked,
            zoom=self.rig.zoom,
            pivot_pos=pivot,
            player_pos=self.motor.pos,
            yaw_deg=self.rig.yaw,
        )
        visual = self.grapple.tick(
            frame_dt,
            fire_pressed=inp.fire_pressed,
            anchor=self.targeting.anchor,
            line_origin=self.motor.pos,
            camera=camera,
        )
        return FrameSnapshot(
            frame=self._frame,
            tick=self._tick,
            camera=camera,
            cursor_visible=self.rig.cursor_visible,
            lock_crosshair_visible=self.rig.lock_crosshair_visible,
            crosshair_visible=result.crosshair_visible,
            crosshair_pos=result.crosshair_pos,
            player_alpha=self.rig.player_alpha,
            player_pos=LPoint3f(self.motor.pos),
            targeting=result,
            grapple=visual,
        )


__all__ = ["FrameSnapshot", "GrappleSim"]
