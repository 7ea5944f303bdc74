from __future__ import annotations

import math

from panda3d.core import LQuaternionf, LVecBase3f, LVector3f

# Z is up. Yaw is measured clockwise from +Y when seen from above, so a positive
# horizontal look delta turns right; Panda3D headings turn the other way.
UP = LVector3f(0.0, 0.0, 1.0)


def clamp(value: float, lo: float, hi: float) -> float:
    return max(float(lo), min(float(hi), float(value)))


def clamp01(value: float) -> float:
    return clamp(value, 0.0, 1.0)


def inverse_lerp(a: float, b: float, value: float) -> float:
    """Position of `value` between `a` and `b`, clamped to [0, 1]."""

    span = float(b) - float(a)
    if abs(span) <= 1e-12:
        return 0.0
    return clamp01((float(value) - float(a)) / span)


def wrap_degrees(angle: float) -> float:
    wrapped = float(angle) % 360.0
    # Tiny negative inputs round up to exactly 360.0.
    if wrapped >= 360.0:
        return 0.0
    return wrapped


def exp_decay_blend(*, dt: float, tau: float) -> float:
    """Weight kept by the old value after `dt` of exponential decay with time constant `tau`."""

    if float(tau) <= 0.0:
        return 0.0
    return math.exp(-max(0.0, float(dt)) / float(tau))


def forward_from_yaw(yaw_deg: float) -> LVector3f:
    rad = math.radians(float(yaw_deg))
    return LVector3f(math.sin(rad), math.cos(rad), 0.0)


def right_from_yaw(yaw_deg: float) -> LVector3f:
    rad = math.radians(float(yaw_deg))
    return LVector3f(math.cos(rad), -math.sin(rad), 0.0)


def look_quat(*, yaw_deg: float, pitch_deg: float) -> LQuaternionf:
    q = LQuaternionf()
    q.setHpr(LVecBase3f(-float(yaw_deg), float(pitch_deg), 0.0))
    return q


def rotate(q: LQuaternionf, v: LVector3f) -> LVector3f:
    return LVector3f(q.xform(LVector3f(v)))


def project(v: LVector3f, onto: LVector3f) -> LVector3f:
    denom = float(onto.lengthSquared())
    if denom <= 1e-12:
        return LVector3f(0.0, 0.0, 0.0)
    return LVector3f(onto) * (float(v.dot(onto)) / denom)


def reject(v: LVector3f, onto: LVector3f) -> LVector3f:
    """Component of `v` perpendicular to `onto`."""

    return LVector3f(v) - project(v, onto)


def normalized(v: LVector3f) -> LVector3f:
    out = LVector3f(v)
    if out.lengthSquared() <= 1e-12:
        return LVector3f(0.0, 0.0, 0.0)
    out.normalize()
    return out


__all__ = [
    "UP",
    "clamp",
    "clamp01",
    "exp_decay_blend",
    "forward_from_yaw",
    "inverse_lerp",
    "look_quat",
    "normalized",
    "project",
    "reject",
    "right_from_yaw",
    "rotate",
    "wrap_degrees",
]
