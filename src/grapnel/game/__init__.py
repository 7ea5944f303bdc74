"""
Per-frame gameplay components.

Components are updated in a fixed order each frame: the camera rig first, then
grapple targeting (reads the rig's published camera), then the grapple state
machine (reads the targeting result).
"""

from grapnel.game.camera_rig import CameraRig
from grapnel.game.grapple_state import GrappleState, GrappleStateMachine, GrappleVisual, SegmentPose
from grapnel.game.grapple_targeting import (
    GrappleTargeting,
    LockedAnchor,
    SearchOutcome,
    TargetingResult,
    assisted_radius_search,
)
from grapnel.game.input_system import InputBindings, InputFrame, InputSampler, MouseWatcherButtons, PriorityAxis
from grapnel.game.player_motor import PlayerMotor
from grapnel.game.response_curves import ResponseCurve

__all__ = [
    "CameraRig",
    "GrappleState",
    "GrappleStateMachine",
    "GrappleTargeting",
    "GrappleVisual",
    "InputBindings",
    "InputFrame",
    "InputSampler",
    "LockedAnchor",
    "MouseWatcherButtons",
    "PlayerMotor",
    "PriorityAxis",
    "ResponseCurve",
    "SearchOutcome",
    "SegmentPose",
    "TargetingResult",
    "assisted_radius_search",
]
