from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path

from grapnel.physics.queries import LAYER_GRAPPLE, LAYER_WORLD

logger = logging.getLogger(__name__)

CurveKeys = tuple[tuple[float, float], ...]


@dataclass
class LensTuning:
    # Vertical field of view in degrees.
    fov_deg: float = 60.0
    # Near clip distance; also sizes the camera collision box and the aim ray origin.
    near_clip: float = 0.3
    # Render target size in pixels; aspect ratio derives from these.
    screen_width: int = 1920
    screen_height: int = 1080


@dataclass
class RigTuning:
    # Zoom distance at startup, in world units behind the pivot.
    initial_zoom: float = 6.0
    # Upper bound for accumulated zoom (scroll input).
    max_zoom: float = 16.0
    # Exponential time constant (seconds) for easing toward the zoom distance when unobstructed.
    zoom_smoothing_tau: float = 1.0 / 32.0
    # Degrees of look rotation per unit of pointer delta (halved internally).
    look_sensitivity: float = 0.2
    # Height of the camera pivot above the player origin.
    pivot_height: float = 0.75
    # Pivot-local offset used while the cursor is locked ("shift lock" aiming).
    lock_offset: tuple[float, float, float] = (1.0, 0.0, 0.0)
    # Pull the camera in front of geometry between it and the pivot.
    collision_enabled: bool = True
    # Layers the camera collision casts test against.
    collision_layers: int = LAYER_WORLD | LAYER_GRAPPLE
    # Contact skin added to the camera box for the lock-offset cast; also sizes the anchor retention overlap.
    contact_offset: float = 0.01


@dataclass
class GrappleTuning:
    # Maximum distance from the camera pivot to a grapple point.
    grapple_distance: float = 16.0
    # Largest sphere radius the assisted search may widen the aim ray to.
    assist_radius: float = 1.0
    # Bisection steps (and physics queries) of the assisted search; at least 8 is recommended.
    assist_iterations: int = 12
    # Layers that can be grappled onto.
    grapple_layers: int = LAYER_GRAPPLE
    # Line travel speed in world units per second.
    grapple_speed: float = 256.0
    # Ripple animation progress per second; progress saturates at 1.
    animation_speed: float = 0.5
    # Seconds a fire press keeps retrying before it is dropped.
    buffer_time: float = 0.1
    # Line thickness, used by the camera proximity fade.
    line_thickness: float = 0.05
    # Line RGBA; alpha is replaced by the proximity fade every frame.
    line_color: tuple[float, float, float, float] = (0.85, 0.72, 0.45, 1.0)
    # Sinewave width of the ripple over animation progress.
    frequency_curve: CurveKeys = ((0.0, 6.0), (1.0, 1.0))
    # Thickness compensation for steep ripple gradients over animation progress.
    thickness_compensation_curve: CurveKeys = ((0.0, 1.0), (1.0, 0.0))
    # Ripple scroll speed over animation progress.
    ripple_speed_curve: CurveKeys = ((0.0, 4.0), (0.6, 1.0), (1.0, 0.0))
    # Ripple height over animation progress.
    scale_curve: CurveKeys = ((0.0, 0.35), (0.5, 0.1), (1.0, 0.0))
    # Retained anchors must still overlap geometry within this many contact offsets.
    retain_radius_mult: float = 2.0
    # Auto-retract when the live anchor distance exceeds this; 0 disables.
    break_distance: float = 0.0


@dataclass
class PlayerTuning:
    move_speed: float = 10.0
    jump_power: float = 10.0
    # Gravity acceleration along -Z.
    gravity: float = 9.81
    # Seconds a jump press keeps retrying before it is dropped.
    jump_buffer_time: float = 0.1
    # Grace window after leaving the ground during which a jump is still accepted.
    jump_coyote_time: float = 0.1
    # Ground contact is ignored for this long after a jump so take-off cannot refresh coyote time.
    jump_sleep_time: float = 0.1
    radius: float = 0.5
    half_height: float = 1.0
    # Layers that count as ground for jumping.
    jump_layers: int = LAYER_WORLD | LAYER_GRAPPLE
    spawn_pos: tuple[float, float, float] = (0.0, 0.0, 1.0)


@dataclass
class Tuning:
    lens: LensTuning = field(default_factory=LensTuning)
    rig: RigTuning = field(default_factory=RigTuning)
    grapple: GrappleTuning = field(default_factory=GrappleTuning)
    player: PlayerTuning = field(default_factory=PlayerTuning)


_SECTIONS = ("lens", "rig", "grapple", "player")


def _coerce(default, value):
    """Return `value` shaped like `default`, or None when it does not fit."""

    if isinstance(default, bool):
        return value if isinstance(value, bool) else None
    if isinstance(default, int):
        if isinstance(value, bool) or not isinstance(value, int):
            return None
        return int(value)
    if isinstance(default, float):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return float(value)
    if isinstance(default, tuple):
        if not isinstance(value, (list, tuple)):
            return None
        if default and isinstance(default[0], tuple):
            keys: list[tuple[float, float]] = []
            for pair in value:
                if not isinstance(pair, (list, tuple)) or len(pair) != 2:
                    return None
                t, v = pair
                if isinstance(t, bool) or isinstance(v, bool):
                    return None
                if not isinstance(t, (int, float)) or not isinstance(v, (int, float)):
                    return None
                keys.append((float(t), float(v)))
            return tuple(keys) if keys else None
        if len(value) != len(default):
            return None
        if any(isinstance(x, bool) or not isinstance(x, (int, float)) for x in value):
            return None
        return tuple(float(x) for x in value)
    return None


def apply_overrides(tuning: Tuning, overrides: dict) -> Tuning:
    """Return a copy of `tuning` with per-section overrides applied; bad entries are skipped."""

    sections: dict[str, object] = {}
    for name in _SECTIONS:
        current = getattr(tuning, name)
        raw = overrides.get(name) if isinstance(overrides, dict) else None
        if raw is None:
            sections[name] = replace(current)
            continue
        if not isinstance(raw, dict):
            logger.warning("tuning section %r is not an object; ignored", name)
            sections[name] = replace(current)
            continue
        known = {f.name for f in fields(current)}
        changes: dict[str, object] = {}
        for key, value in raw.items():
            if key not in known:
                logger.warning("unknown tuning key %s.%s; ignored", name, key)
                continue
            coerced = _coerce(getattr(current, key), value)
            if coerced is None:
                logger.warning("tuning key %s.%s has unusable value %r; ignored", name, key, value)
                continue
            changes[key] = coerced
        sections[name] = replace(current, **changes)
    if isinstance(overrides, dict):
        for name in overrides:
            if name not in _SECTIONS:
                logger.warning("unknown tuning section %r; ignored", name)
    return Tuning(**sections)


def load_tuning(path: Path | None) -> Tuning:
    """
    Load tuning overrides from a JSON document.

    A missing or unreadable file falls back to defaults; the document only needs
    to name the fields it changes, e.g. `{"grapple": {"assist_radius": 1.5}}`.
    """

    if path is None:
        return Tuning()
    p = Path(path)
    if not p.exists():
        return Tuning()
    try:
        payload = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        logger.warning("could not read tuning file %s; using defaults", p, exc_info=True)
        return Tuning()
    if not isinstance(payload, dict):
        logger.warning("tuning file %s is not a JSON object; using defaults", p)
        return Tuning()
    return apply_overrides(Tuning(), payload)


def tuning_to_dict(tuning: Tuning) -> dict:
    return asdict(tuning)


__all__ = [
    "CurveKeys",
    "GrappleTuning",
    "LensTuning",
    "PlayerTuning",
    "RigTuning",
    "Tuning",
    "apply_overrides",
    "load_tuning",
    "tuning_to_dict",
]
