from __future__ import annotations

import logging

from panda3d.bullet import (
    BulletBoxShape,
    BulletCylinderShape,
    BulletGhostNode,
    BulletRigidBodyNode,
    BulletSphereShape,
    BulletWorld,
    ZUp,
)
from panda3d.core import BitMask32, LPoint3f, LQuaternionf, LVecBase3f, LVector3f, NodePath, TransformState

from grapnel.physics.queries import LAYER_TRIGGER, LAYER_WORLD, Hit, SurfaceHandle, query_mask

logger = logging.getLogger(__name__)

_MIN_SWEEP_RADIUS = 1e-4
_SURFACE_TAG = "grapnel_surface"


class CollisionWorld:
    """Bullet world used for collision queries (rays, convex sweeps, overlaps) over static surfaces."""

    def __init__(self, *, root: NodePath | None = None) -> None:
        self._bworld = BulletWorld()
        # Bodies are static; the world is only stepped so moved bodies refresh their broadphase bounds.
        self._bworld.setGravity(LVector3f(0, 0, 0))
        self._root = root if root is not None else NodePath("collision-root")
        self._surfaces: dict[SurfaceHandle, NodePath] = {}
        self._next_handle: SurfaceHandle = 1

    @property
    def root(self) -> NodePath:
        return self._root

    def add_box(
        self,
        *,
        half_extents: LVector3f,
        pos: LVector3f,
        hpr: LVecBase3f | None = None,
        layers: int = LAYER_WORLD,
        name: str = "box",
    ) -> SurfaceHandle:
        shape = BulletBoxShape(LVector3f(float(half_extents.x), float(half_extents.y), float(half_extents.z)))
        return self._attach_static(shape=shape, pos=pos, hpr=hpr, layers=layers, name=name)

    def add_cylinder(
        self,
        *,
        radius: float,
        height: float,
        pos: LVector3f,
        layers: int = LAYER_WORLD,
        name: str = "cylinder",
    ) -> SurfaceHandle:
        shape = BulletCylinderShape(max(_MIN_SWEEP_RADIUS, float(radius)), max(_MIN_SWEEP_RADIUS, float(height)), ZUp)
        return self._attach_static(shape=shape, pos=pos, hpr=None, layers=layers, name=name)

    def add_trigger(self, *, half_extents: LVector3f, pos: LVector3f, name: str = "trigger") -> SurfaceHandle:
        ghost = BulletGhostNode(name)
        ghost.addShape(BulletBoxShape(LVector3f(float(half_extents.x), float(half_extents.y), float(half_extents.z))))
        ghost.setIntoCollideMask(BitMask32(LAYER_TRIGGER))
        np = self._root.attachNewNode(ghost)
        np.setPos(LVector3f(pos))
        self._bworld.attachGhost(ghost)
        return self._register(np)

    def move_surface(
        self,
        surface: SurfaceHandle,
        *,
        pos: LVector3f | None = None,
        hpr: LVecBase3f | None = None,
    ) -> bool:
        np = self._surfaces.get(int(surface))
        if np is None or np.isEmpty():
            return False
        if pos is not None:
            np.setPos(LVector3f(pos))
        if hpr is not None:
            np.setHpr(LVecBase3f(hpr))
        return True

    def remove_surface(self, surface: SurfaceHandle) -> bool:
        np = self._surfaces.pop(int(surface), None)
        if np is None:
            return False
        node = np.node()
        if isinstance(node, BulletGhostNode):
            self._bworld.removeGhost(node)
        else:
            self._bworld.removeRigidBody(node)
        np.removeNode()
        logger.debug("removed surface %d", int(surface))
        return True

    def has_surface(self, surface: SurfaceHandle) -> bool:
        np = self._surfaces.get(int(surface))
        return np is not None and not np.isEmpty()

    def step(self, dt: float) -> None:
        frame_dt = float(dt)
        if frame_dt <= 0.0:
            return
        self._bworld.doPhysics(frame_dt, 1, frame_dt)

    def raycast(
        self,
        origin: LPoint3f,
        direction: LVector3f,
        max_distance: float,
        *,
        layer_mask: int,
        ignore_triggers: bool = True,
    ) -> Hit | None:
        segment = self._segment(origin, direction, max_distance)
        if segment is None:
            return None
        start, end, length = segment
        mask = query_mask(layer_mask, ignore_triggers=ignore_triggers)
        if mask == 0:
            return None
        result = self._bworld.rayTestAll(start, end, BitMask32(mask))
        best = None
        for hit in result.getHits():
            handle = self._handle_of(hit.getNode())
            if handle is None:
                continue
            if best is None or float(hit.getHitFraction()) < float(best[0].getHitFraction()):
                best = (hit, handle)
        if best is None:
            return None
        hit, handle = best
        return Hit(
            point=LPoint3f(hit.getHitPos()),
            distance=float(hit.getHitFraction()) * length,
            surface=handle,
            normal=LVector3f(hit.getHitNormal()),
        )

    def spherecast(
        self,
        origin: LPoint3f,
        direction: LVector3f,
        radius: float,
        max_distance: float,
        *,
        layer_mask: int,
        ignore_triggers: bool = True,
    ) -> Hit | None:
        shape = BulletSphereShape(max(_MIN_SWEEP_RADIUS, float(radius)))
        return self._sweep(shape, origin, direction, LQuaternionf.identQuat(), max_distance, layer_mask, ignore_triggers)

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
    ) -> Hit | None:
        shape = BulletBoxShape(
            LVector3f(
                max(_MIN_SWEEP_RADIUS, abs(float(half_extents.x))),
                max(_MIN_SWEEP_RADIUS, abs(float(half_extents.y))),
                max(_MIN_SWEEP_RADIUS, abs(float(half_extents.z))),
            )
        )
        return self._sweep(shape, origin, direction, orientation, max_distance, layer_mask, ignore_triggers)

    def overlap_sphere(
        self,
        point: LPoint3f,
        radius: float,
        *,
        layer_mask: int,
        ignore_triggers: bool = True,
    ) -> bool:
        mask = query_mask(layer_mask, ignore_triggers=ignore_triggers)
        if mask == 0:
            return False
        ghost = BulletGhostNode("overlap-sphere")
        ghost.addShape(BulletSphereShape(max(_MIN_SWEEP_RADIUS, float(radius))))
        np = self._root.attachNewNode(ghost)
        try:
            np.setPos(LVector3f(point))
            result = self._bworld.contactTest(ghost)
            wanted = BitMask32(mask)
            for contact in result.getContacts():
                other = contact.getNode1()
                if self._handle_of(other) is None:
                    other = contact.getNode0()
                if self._handle_of(other) is None:
                    continue
                if not (other.getIntoCollideMask() & wanted).isZero():
                    return True
            return False
        finally:
            np.removeNode()

    def surface_to_world(self, surface: SurfaceHandle, local_point: LPoint3f) -> LPoint3f | None:
        np = self._surfaces.get(int(surface))
        if np is None or np.isEmpty():
            return None
        return LPoint3f(self._root.getRelativePoint(np, LPoint3f(local_point)))

    def surface_to_local(self, surface: SurfaceHandle, world_point: LPoint3f) -> LPoint3f | None:
        np = self._surfaces.get(int(surface))
        if np is None or np.isEmpty():
            return None
        return LPoint3f(np.getRelativePoint(self._root, LPoint3f(world_point)))

    def _attach_static(
        self,
        *,
        shape,
        pos: LVector3f,
        hpr: LVecBase3f | None,
        layers: int,
        name: str,
    ) -> SurfaceHandle:
        body = BulletRigidBodyNode(name)
        body.setMass(0.0)
        body.addShape(shape)
        body.setIntoCollideMask(BitMask32(int(layers) & ~LAYER_TRIGGER & 0xFFFFFFFF))
        np = self._root.attachNewNode(body)
        np.setPos(LVector3f(pos))
        if hpr is not None:
            np.setHpr(LVecBase3f(hpr))
        self._bworld.attachRigidBody(body)
        return self._register(np)

    def _register(self, np: NodePath) -> SurfaceHandle:
        handle = self._next_handle
        self._next_handle += 1
        np.node().setPythonTag(_SURFACE_TAG, handle)
        self._surfaces[handle] = np
        logger.debug("added surface %d (%s)", handle, np.getName())
        return handle

    def _handle_of(self, node) -> SurfaceHandle | None:
        if node is None:
            return None
        handle = node.getPythonTag(_SURFACE_TAG)
        if handle is None or int(handle) not in self._surfaces:
            return None
        return int(handle)

    @staticmethod
    def _segment(origin: LPoint3f, direction: LVector3f, max_distance: float):
        length = float(max_distance)
        d = LVector3f(direction)
        if length <= 0.0 or d.lengthSquared() <= 1e-12:
            return None
        d.normalize()
        start = LPoint3f(origin)
        return start, LPoint3f(start + d * length), length

    def _sweep(
        self,
        shape,
        origin: LPoint3f,
        direction: LVector3f,
        orientation: LQuaternionf,
        max_distance: float,
        layer_mask: int,
        ignore_triggers: bool,
    ) -> Hit | None:
        segment = self._segment(origin, direction, max_distance)
        if segment is None:
            return None
        start, end, length = segment
        mask = query_mask(layer_mask, ignore_triggers=ignore_triggers)
        if mask == 0:
            return None
        unit = LVecBase3f(1.0, 1.0, 1.0)
        result = self._bworld.sweepTestClosest(
            shape,
            TransformState.makePosQuatScale(start, LQuaternionf(orientation), unit),
            TransformState.makePosQuatScale(end, LQuaternionf(orientation), unit),
            BitMask32(mask),
            0.0,
        )
        if not result.hasHit():
            return None
        handle = self._handle_of(result.getNode())
        if handle is None:
            return None
        return Hit(
            point=LPoint3f(result.getHitPos()),
            distance=float(result.getHitFraction()) * length,
            surface=handle,
            normal=LVector3f(result.getHitNormal()),
        )


__all__ = ["CollisionWorld"]
