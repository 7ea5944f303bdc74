from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from panda3d.core import LPoint3f, LVector3f

from grapnel.common.vecmath import forward_from_yaw, reject
from grapnel.physics.queries import Hit, PhysicsQueries, Ray, SurfaceHandle
from grapnel.tuning import GrappleTuning, RigTuning
from grapnel.view.camera import CameraView

logger = logging.getLogger(__name__)

MAX_ASSIST_ITERATIONS = 32


@dataclass(frozen=True)
class LockedAnchor:
    """Grapple point stored in its surface's local frame so it follows the surface."""

    surface: SurfaceHandle
    local_point: LPoint3f


@dataclass(frozen=True)
class SearchOutcome:
    hit: Hit | None
    radius: float | None
    queries: int


@dataclass(frozen=True)
class TargetingResult:
    anchor: LockedAnchor | None
    world_point: LPoint3f | None
    crosshair_visible: bool
    crosshair_pos: tuple[float, float]
    # "direct" | "assisted" | "retained" | "none"
    source: str
    queries: int


def assisted_radius_search(
    cast: Callable[[float], Hit | None],
    *,
    assist_radius: float,
    iterations: int,
    in_range: Callable[[LPoint3f], bool],
    in_front: Callable[[LPoint3f], bool],
) -> SearchOutcome:
    """
    Bisect the sphere-cast radius in [0, assist_radius] for the tightest usable hit.

    The range is tracked as integer bounds over `[0, 2**iterations]` so every step
    halves it exactly; each iteration costs one cast, and the last accepted hit wins.
    Widening is needed after a miss, a zero-distance graze or an out-of-range hit
    (the sphere slipped through a gap); narrowing after a hit behind the player or
    an accepted hit (a smaller radius stays closer to the aim ray).
    """

    steps = max(0, min(MAX_ASSIST_ITERATIONS, int(iterations)))
    total = 1 << steps
    lo = 0
    hi = total
    best: Hit | None = None
    best_radius: float | None = None
    for _ in range(steps):
        radius = 0.5 * float(assist_radius) * float(hi + lo) / float(total)
        hit = cast(radius)
        if hit is None or float(hit.distance) == 0.0 or not in_range(hit.point):
            lo = hi - ((hi - lo) >> 1)
        elif not in_front(hit.point):
            hi = lo + ((hi - lo) >> 1)
        else:
            best = hit
            best_radius = radius
            hi = lo + ((hi - lo) >> 1)
    return SearchOutcome(hit=best, radius=best_radius, queries=steps)


class GrappleTargeting:
    """Resolves, every frame, the grapple point nearest the cursor."""

    def __init__(self, *, tuning: GrappleTuning, rig_tuning: RigTuning, physics: PhysicsQueries) -> None:
        self.tuning = tuning
        self.rig_tuning = rig_tuning
        self.physics = physics
        self._anchor: LockedAnchor | None = None
        self._last = TargetingResult(
            anchor=None,
            world_point=None,
            crosshair_visible=False,
            crosshair_pos=(0.0, 0.0),
            source="none",
            queries=0,
        )

    @property
    def anchor(self) -> LockedAnchor | None:
        return self._anchor

    @property
    def last_result(self) -> TargetingResult:
        return self._last

    def clear(self) -> None:
        self._anchor = None

    @staticmethod
    def aim_ray(*, camera: CameraView, pointer: tuple[float, float], cursor_locked: bool) -> Ray:
        if cursor_locked:
            return Ray(origin=camera.near_plane_origin(), direction=camera.forward())
        return camera.screen_point_to_ray(float(pointer[0]), float(pointer[1]))

    def update(
        self,
        *,
        camera: CameraView,
        pointer: tuple[float, float],
        cursor_locked: bool,
        zoom: float,
        pivot_pos: LPoint3f,
        player_pos: LPoint3f,
        yaw_deg: float,
    ) -> TargetingResult:
        ray = self.aim_ray(camera=camera, pointer=pointer, cursor_locked=cursor_locked)
        reach = float(self.tuning.grapple_distance)
        max_cast = reach + max(0.0, float(zoom))
        mask = int(self.tuning.grapple_layers)
        pivot = LPoint3f(pivot_pos)
        player = LPoint3f(player_pos)
        facing = forward_from_yaw(yaw_deg)

        def in_range(point: LPoint3f) -> bool:
            return float((LPoint3f(point) - pivot).length()) <= reach

        def in_front(point: LPoint3f) -> bool:
            return float((LPoint3f(point) - player).dot(facing)) > 0.0

        queries = 1
        source = "direct"
        hit = self.physics.raycast(ray.origin, ray.direction, max_cast, layer_mask=mask, ignore_triggers=True)
        if hit is None or float(hit.distance) == 0.0 or not in_range(hit.point) or not in_front(hit.point):
            outcome = assisted_radius_search(
                lambda radius: self.physics.spherecast(
                    ray.origin,
                    ray.direction,
                    radius,
                    max_cast,
                    layer_mask=mask,
                    ignore_triggers=True,
                ),
                assist_radius=float(self.tuning.assist_radius),
                iterations=int(self.tuning.assist_iterations),
                in_range=in_range,
                in_front=in_front,
            )
            hit = outcome.hit
            queries += outcome.queries
            source = "assisted"

        if hit is not None and camera.viewport_contains(hit.point):
            local = self.physics.surface_to_local(hit.surface, hit.point)
            if local is not None:
                if self._anchor is None or self._anchor.surface != hit.surface:
                    logger.debug("grapple target locked on surface %d via %s", hit.surface, source)
                self._anchor = LockedAnchor(surface=hit.surface, local_point=LPoint3f(local))
                return self._publish(camera=camera, world_point=LPoint3f(hit.point), source=source, queries=queries)

        retained, overlap_queries = self._retained_point(ray=ray)
        queries += overlap_queries
        if retained is not None:
            return self._publish(camera=camera, world_point=retained, source="retained", queries=queries)

        if self._anchor is not None:
            logger.debug("grapple target lost on surface %d", self._anchor.surface)
        self._anchor = None
        self._last = TargetingResult(
            anchor=None,
            world_point=None,
            crosshair_visible=False,
            crosshair_pos=(float(pointer[0]), float(pointer[1])),
            source="none",
            queries=queries,
        )
        return self._last

    def _retained_point(self, *, ray: Ray) -> tuple[LPoint3f | None, int]:
        """Keep the previous anchor while it still hugs the aim ray and its geometry.

        Returns the retained world point (or None) and how many overlap queries ran.
        """

        anchor = self._anchor
        if anchor is None:
            return None, 0
        world = self.physics.surface_to_world(anchor.surface, anchor.local_point)
        if world is None:
            return None, 0
        lateral = reject(LVector3f(world - ray.origin), ray.direction)
        radius = float(self.tuning.assist_radius)
        if float(lateral.lengthSquared()) > radius * radius:
            return None, 0
        check_radius = float(self.tuning.retain_radius_mult) * float(self.rig_tuning.contact_offset)
        if not self.physics.overlap_sphere(
            world,
            check_radius,
            layer_mask=int(self.tuning.grapple_layers),
            ignore_triggers=True,
        ):
            return None, 1
        return LPoint3f(world), 1

    def _publish(self, *, camera: CameraView, world_point: LPoint3f, source: str, queries: int) -> TargetingResult:
        screen = camera.world_to_screen(world_point)
        self._last = TargetingResult(
            anchor=self._anchor,
            world_point=LPoint3f(world_point),
            crosshair_visible=True,
            crosshair_pos=(float(screen.x), float(screen.y)),
            source=source,
            queries=queries,
        )
        return self._last


__all__ = [
    "GrappleTargeting",
    "LockedAnchor",
    "MAX_ASSIST_ITERATIONS",
    "SearchOutcome",
    "TargetingResult",
    "assisted_radius_search",
]
