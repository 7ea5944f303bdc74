from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from panda3d.core import LPoint3f, LQuaternionf, LVector3f

SurfaceHandle = int

LAYER_WORLD = 1 << 0
LAYER_GRAPPLE = 1 << 1
# Trigger volumes live on this bit only; queries that ignore triggers drop it.
LAYER_TRIGGER = 1 << 31
LAYER_ALL = 0xFFFFFFFF


def query_mask(layer_mask: int, *, ignore_triggers: bool) -> int:
    mask = int(layer_mask) & LAYER_ALL
    if ignore_triggers:
        mask &= ~LAYER_TRIGGER
    return mask


@dataclass(frozen=True)
class Ray:
    origin: LPoint3f
    direction: LVector3f

    def point_at(self, distance: float) -> LPoint3f:
        return LPoint3f(self.origin + self.direction * float(distance))


@dataclass(frozen=True)
class Hit:
    """
    Result of a single collision query.

    A `distance` of exactly 0.0 means the cast started in contact with the
    surface; the point carries no useful information and callers must treat it
    as an ambiguous hit.
    """

    point: LPoint3f
    distance: float
    surface: SurfaceHandle
    normal: LVector3f = field(default_factory=lambda: LVector3f(0.0, 0.0, 0.0))


class PhysicsQueries(Protocol):
    def raycast(
        self,
        origin: LPoint3f,
        direction: LVector3f,
        max_distance: float,
        *,
        layer_mask: int,
        ignore_triggers: bool = True,
    ) -> Hit | None: ...

    def spherecast(
        self,
        origin: LPoint3f,
        direction: LVector3f,
        radius: float,
        max_distance: float,
        *,
        layer_mask: int,
        ignore_triggers: bool = True,
    ) -> Hit | None: ...

    def boxcast(
        self,
        origin: LPoint3f,
        half_extents: LVector3f,
        direction: LVector3f,
        orientation: LQuaternionf,
        max_distance: float,
        *,
        layer_mask: int,
        ignore_triggers: bool = True,
    ) -> Hit | None: ...

    def overlap_sphere(
        self,
        point: LPoint3f,
        radius: float,
        *,
        layer_mask: int,
        ignore_triggers: bool = True,
    ) -> bool: ...

    def surface_to_world(self, surface: SurfaceHandle, local_point: LPoint3f) -> LPoint3f | None: ...

    def surface_to_local(self, surface: SurfaceHandle, world_point: LPoint3f) -> LPoint3f | None: ...

    def step(self, dt: float) -> None: ...


__all__ = [
    "LAYER_ALL",
    "LAYER_GRAPPLE",
    "LAYER_TRIGGER",
    "LAYER_WORLD",
    "Hit",
    "PhysicsQueries",
    "Ray",
    "SurfaceHandle",
    "query_mask",
]
