from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass

from panda3d.core import LPoint3f, LQuaternionf, LVecBase3f, LVector3f, lookAt

from grapnel.common.vecmath import UP, clamp, clamp01, inverse_lerp, normalized, reject
from grapnel.game.grapple_targeting import LockedAnchor
from grapnel.game.response_curves import ResponseCurve
from grapnel.physics.queries import PhysicsQueries
from grapnel.tuning import GrappleTuning
from grapnel.view.camera import CameraView

logger = logging.getLogger(__name__)

_LENGTH_EPS = 1e-5


class GrappleState(enum.Enum):
    RETRACTED = "retracted"
    EXTENDING = "extending"
    DEPLOYED = "deployed"
    RETRACTING = "retracting"


@dataclass(frozen=True)
class SegmentPose:
    pos: LPoint3f
    quat: LQuaternionf
    scale: LVecBase3f


@dataclass(frozen=True)
class GrappleVisual:
    """Everything the renderer needs to draw the line for one frame."""

    state: GrappleState
    line_length: float
    target_distance: float
    line: SegmentPose
    base: SegmentPose
    tip: SegmentPose
    frequency: float
    compensate: float
    offset: float
    scale: float
    color: tuple[float, float, float, float]


def _facing(direction: LVector3f, up: LVector3f | None = None) -> LQuaternionf:
    q = LQuaternionf()
    fwd = normalized(direction)
    if fwd.lengthSquared() <= 1e-12:
        q.setHpr(LVecBase3f(0.0, 0.0, 0.0))
        return q
    hint = LVector3f(up) if up is not None else LVector3f(UP)
    if reject(hint, fwd).lengthSquared() <= 1e-12:
        hint = LVector3f(UP)
    if reject(hint, fwd).lengthSquared() <= 1e-12:
        hint = LVector3f(1.0, 0.0, 0.0)
    lookAt(q, fwd, hint)
    return q


class GrappleStateMachine:
    """
    Deploy/retract machine for the grapple line.

    The line length moves toward the live anchor distance (or zero) at a constant
    speed every frame. Reaching a bound settles `EXTENDING -> DEPLOYED` and
    `RETRACTING -> RETRACTED`; fire presses only start a deploy from a fully
    retracted line and only start a retract from a fully extended one. A press
    that cannot toggle yet keeps retrying while its buffer timer is positive.
    """

    def __init__(self, *, tuning: GrappleTuning, physics: PhysicsQueries) -> None:
        self.tuning = tuning
        self.physics = physics
        self._state = GrappleState.RETRACTED
        self._length = 0.0
        self._target_distance = 0.0
        self._progress = 0.0
        self._offset = 0.0
        self._buffer = 0.0
        self._target: LockedAnchor | None = None
        self._target_world: LPoint3f | None = None
        self._frozen = False
        self._curves = self._build_curves(tuning)
        self._visual: GrappleVisual | None = None

    @staticmethod
    def _build_curves(tuning: GrappleTuning) -> dict[str, ResponseCurve]:
        return {
            "frequency": ResponseCurve(tuning.frequency_curve),
            "compensate": ResponseCurve(tuning.thickness_compensation_curve),
            "ripple": ResponseCurve(tuning.ripple_speed_curve),
            "scale": ResponseCurve(tuning.scale_curve),
        }

    @property
    def state(self) -> GrappleState:
        return self._state

    @property
    def length(self) -> float:
        return self._length

    @property
    def target_distance(self) -> float:
        return self._target_distance

    @property
    def progress(self) -> float:
        return self._progress

    @property
    def buffer_left(self) -> float:
        return self._buffer

    @property
    def target(self) -> LockedAnchor | None:
        return self._target

    @property
    def visual(self) -> GrappleVisual | None:
        return self._visual

    def tick(
        self,
        dt: float,
        *,
        fire_pressed: bool,
        anchor: LockedAnchor | None,
        line_origin: LPoint3f,
        camera: CameraView,
    ) -> GrappleVisual:
        frame_dt = max(0.0, float(dt))
        origin = LPoint3f(line_origin)

        if fire_pressed:
            self._buffer = float(self.tuning.buffer_time)
        if self._buffer > 0.0:
            self._toggle(anchor=anchor)

        target_world = self._resolve_target(origin=origin)
        to_point = LVector3f(target_world - origin)
        self._target_distance = float(to_point.length())

        extending = self._state in (GrappleState.EXTENDING, GrappleState.DEPLOYED)
        step = float(self.tuning.grapple_speed) * frame_dt * (1.0 if extending else -1.0)
        self._length = clamp(self._length + step, 0.0, self._target_distance)
        self._settle()

        self._progress = clamp01(self._progress + float(self.tuning.animation_speed) * frame_dt)
        self._offset += frame_dt * self._curves["ripple"].evaluate(self._progress)

        self._buffer -= frame_dt
        self._visual = self._build_visual(origin=origin, to_point=to_point, camera=camera)
        return self._visual

    def _toggle(self, *, anchor: LockedAnchor | None) -> bool:
        if self._state == GrappleState.RETRACTED:
            if anchor is None or self._length != 0.0:
                return False
            world = self.physics.surface_to_world(anchor.surface, anchor.local_point)
            if world is None:
                return False
            self._buffer = 0.0
            self._progress = 0.0
            self._target = anchor
            self._target_world = LPoint3f(world)
            self._frozen = False
            self._transition(GrappleState.EXTENDING)
            return True
        if self._state == GrappleState.DEPLOYED:
            if self._length < self._target_distance - _LENGTH_EPS:
                return False
            self._buffer = 0.0
            self._transition(GrappleState.RETRACTING)
            return True
        return False

    def _resolve_target(self, *, origin: LPoint3f) -> LPoint3f:
        if self._target is None or self._target_world is None:
            return LPoint3f(origin)
        if self._frozen:
            return LPoint3f(self._target_world)
        world = self.physics.surface_to_world(self._target.surface, self._target.local_point)
        if world is None:
            self._freeze(reason=f"anchor surface {self._target.surface} vanished")
            return LPoint3f(self._target_world)
        self._target_world = LPoint3f(world)
        limit = float(self.tuning.break_distance)
        if limit > 0.0 and float((LPoint3f(world) - origin).length()) > limit:
            self._freeze(reason=f"anchor beyond break distance {limit:.2f}")
        return LPoint3f(world)

    def _freeze(self, *, reason: str) -> None:
        # Anchor loss auto-retracts toward the last resolved point.
        self._frozen = True
        if self._state in (GrappleState.EXTENDING, GrappleState.DEPLOYED):
            logger.debug("grapple auto-retract: %s", reason)
            self._transition(GrappleState.RETRACTING)

    def _settle(self) -> None:
        if self._state == GrappleState.EXTENDING and self._length >= self._target_distance - _LENGTH_EPS:
            self._length = self._target_distance
            self._transition(GrappleState.DEPLOYED)
        elif self._state == GrappleState.RETRACTING and self._length <= 0.0:
            self._length = 0.0
            self._transition(GrappleState.RETRACTED)

    def _transition(self, state: GrappleState) -> None:
        if state == self._state:
            return
        logger.debug("grapple %s -> %s", self._state.value, state.value)
        self._state = state

    def _build_visual(self, *, origin: LPoint3f, to_point: LVector3f, camera: CameraView) -> GrappleVisual:
        direction = normalized(to_point)
        cam_diff = LVector3f(camera.pos - origin)
        rejected = reject(cam_diff, direction)

        line_quat = _facing(direction, rejected)
        tip_pos = LPoint3f(origin + direction * self._length)
        line = SegmentPose(pos=LPoint3f(origin), quat=line_quat, scale=LVecBase3f(1.0, self._length, 1.0))
        base = SegmentPose(pos=LPoint3f(origin), quat=_facing(LVector3f(camera.pos - origin)), scale=LVecBase3f(1, 1, 1))
        tip = SegmentPose(pos=tip_pos, quat=_facing(LVector3f(camera.pos - tip_pos)), scale=LVecBase3f(1, 1, 1))

        r, g, b, _ = self.tuning.line_color
        alpha = 1.0
        if (
            float(cam_diff.length()) - float(camera.near_clip) <= self._target_distance
            and float(cam_diff.dot(to_point)) >= 0.0
        ):
            fade_span = float(self.tuning.line_thickness) + float(camera.near_box().length())
            alpha = inverse_lerp(0.0, fade_span, float(rejected.length()))

        return GrappleVisual(
            state=self._state,
            line_length=self._length,
            target_distance=self._target_distance,
            line=line,
            base=base,
            tip=tip,
            frequency=self._curves["frequency"].evaluate(self._progress),
            compensate=self._curves["compensate"].evaluate(self._progress),
            offset=self._offset,
            scale=self._curves["scale"].evaluate(self._progress),
            color=(float(r), float(g), float(b), float(alpha) if math.isfinite(alpha) else 1.0),
        )


__all__ = ["GrappleState", "GrappleStateMachine", "GrappleVisual", "SegmentPose"]
