"""Camera projection contract shared by the rig, targeting and renderer."""

from grapnel.view.camera import CameraView

__all__ = ["CameraView"]
