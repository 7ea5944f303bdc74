from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable

from panda3d.core import LVector3f

from grapnel.game.input_system import InputFrame
from grapnel.physics.collision_world import CollisionWorld
from grapnel.physics.queries import LAYER_GRAPPLE, LAYER_WORLD, SurfaceHandle
from grapnel.sim import FrameSnapshot, GrappleSim

logger = logging.getLogger(__name__)


@dataclass
class _MovingSurface:
    surface: SurfaceHandle
    base_center: LVector3f
    axis: LVector3f
    amplitude: float
    speed_hz: float
    phase: float = 0.0


@dataclass
class GrayboxScene:
    world: CollisionWorld
    floor: SurfaceHandle
    wall: SurfaceHandle
    pillars: list[SurfaceHandle]
    platform: SurfaceHandle
    trigger: SurfaceHandle
    moving: list[_MovingSurface] = field(default_factory=list)

    def tick(self, *, now: float) -> None:
        """Deterministic sinusoid motion for the moving surfaces."""

        for m in self.moving:
            phase = (float(now) * float(m.speed_hz) * math.tau) + float(m.phase)
            offset = float(math.sin(phase)) * float(m.amplitude)
            self.world.move_surface(m.surface, pos=LVector3f(m.base_center + (m.axis * offset)))


def build_graybox_world() -> GrayboxScene:
    """
    Small deterministic grapple scene around a spawn at the origin facing +Y.

    Flat ground, a grapple wall straight ahead, two grapple pillars to the sides,
    a moving grapple platform and a trigger volume the aim ray passes through.
    """

    world = CollisionWorld()
    floor = world.add_box(half_extents=LVector3f(28.0, 28.0, 0.5), pos=LVector3f(0.0, 0.0, -0.5), layers=LAYER_WORLD, name="floor")
    wall = world.add_box(half_extents=LVector3f(4.0, 0.5, 3.0), pos=LVector3f(0.0, 10.0, 3.0), layers=LAYER_GRAPPLE, name="wall")
    pillars = [
        world.add_cylinder(radius=0.5, height=6.0, pos=LVector3f(-5.0, 6.0, 3.0), layers=LAYER_GRAPPLE, name="pillar-left"),
        world.add_cylinder(radius=0.5, height=6.0, pos=LVector3f(5.0, 6.0, 3.0), layers=LAYER_GRAPPLE, name="pillar-right"),
    ]
    platform_center = LVector3f(9.0, 12.0, 4.0)
    platform = world.add_box(
        half_extents=LVector3f(1.0, 1.0, 0.25),
        pos=platform_center,
        layers=LAYER_GRAPPLE,
        name="platform",
    )
    trigger = world.add_trigger(half_extents=LVector3f(1.0, 1.0, 1.0), pos=LVector3f(0.0, 4.0, 1.0), name="trigger")
    scene = GrayboxScene(
        world=world,
        floor=floor,
        wall=wall,
        pillars=pillars,
        platform=platform,
        trigger=trigger,
        moving=[
            _MovingSurface(
                surface=platform,
                base_center=platform_center,
                axis=LVector3f(1.0, 0.0, 0.0),
                amplitude=2.0,
                speed_hz=0.25,
            )
        ],
    )
    world.step(1.0 / 60.0)
    return scene


def run_scripted(
    sim: GrappleSim,
    *,
    frames: int,
    dt: float = 1.0 / 60.0,
    fire_at: Iterable[int] = (),
    lock_at: Iterable[int] = (),
    pointer: tuple[float, float] | None = None,
    scene: GrayboxScene | None = None,
) -> list[FrameSnapshot]:
    """Drive `sim` for `frames` frames; `fire_at`/`lock_at` hold 0-based frame indices of button presses."""

    fire = {int(i) for i in fire_at}
    lock = {int(i) for i in lock_at}
    if pointer is None:
        lens = sim.tuning.lens
        pointer = (0.5 * float(lens.screen_width), 0.5 * float(lens.screen_height))

    out: list[FrameSnapshot] = []
    prev_state = sim.grapple.state
    for i in range(max(0, int(frames))):
        if scene is not None:
            scene.tick(now=float(i) * float(dt))
        snap = sim.frame(
            dt,
            InputFrame(
                pointer_x=float(pointer[0]),
                pointer_y=float(pointer[1]),
                fire_pressed=i in fire,
                lock_toggle_pressed=i in lock,
            ),
        )
        if snap is None:
            continue
        if snap.grapple.state != prev_state:
            logger.info("frame %d: grapple %s -> %s", i, prev_state.value, snap.grapple.state.value)
            prev_state = snap.grapple.state
        out.append(snap)
    return out


__all__ = ["GrayboxScene", "build_graybox_world", "run_scripted"]
