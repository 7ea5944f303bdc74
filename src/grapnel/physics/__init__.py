"""Collision query contracts and the Bullet-backed query service."""

from grapnel.physics.queries import (
    LAYER_ALL,
    LAYER_GRAPPLE,
    LAYER_TRIGGER,
    LAYER_WORLD,
    Hit,
    PhysicsQueries,
    Ray,
    SurfaceHandle,
    query_mask,
)

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
