from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from panda3d.core import ButtonHandle, KeyboardButton


@dataclass(frozen=True)
class InputFrame:
    """Input consumed by one simulation frame; edges are already resolved."""

    pointer_x: float = 0.0
    pointer_y: float = 0.0
    look_dx: float = 0.0
    look_dy: float = 0.0
    zoom_delta: float = 0.0
    fire_pressed: bool = False
    lock_toggle_pressed: bool = False
    use_camera_held: bool = False
    jump_pressed: bool = False
    reset_pressed: bool = False
    move_x: int = 0
    move_y: int = 0


@dataclass(frozen=True)
class InputBindings:
    fire: str = "mouse1"
    use_camera: str = "mouse3"
    lock_toggle: str = "lshift"
    jump: str = "space"
    reset: str = "r"
    up: str = "w"
    down: str = "s"
    left: str = "a"
    right: str = "d"


class ButtonSource(Protocol):
    def is_down(self, name: str) -> bool: ...


class PriorityAxis:
    """Two opposing buttons folded into -1/0/+1; with both held, the later press wins."""

    def __init__(self) -> None:
        self._neg_since: int | None = None
        self._pos_since: int | None = None

    def update(self, *, negative: bool, positive: bool, tick: int) -> int:
        if negative:
            if self._neg_since is None:
                self._neg_since = int(tick)
        else:
            self._neg_since = None
        if positive:
            if self._pos_since is None:
                self._pos_since = int(tick)
        else:
            self._pos_since = None

        if self._neg_since is not None and self._pos_since is not None:
            return 1 if self._pos_since > self._neg_since else -1
        if self._neg_since is not None:
            return -1
        if self._pos_since is not None:
            return 1
        return 0


class InputSampler:
    """Turns held-button levels into per-frame edge events and priority movement axes."""

    def __init__(self, buttons: ButtonSource, *, bindings: InputBindings | None = None) -> None:
        self._buttons = buttons
        self.bindings = bindings if bindings is not None else InputBindings()
        self._tick = 0
        self._prev_fire_down = False
        self._prev_lock_down = False
        self._prev_jump_down = False
        self._prev_reset_down = False
        self._axis_x = PriorityAxis()
        self._axis_y = PriorityAxis()

    def sample(
        self,
        *,
        pointer: tuple[float, float] = (0.0, 0.0),
        pointer_delta: tuple[float, float] = (0.0, 0.0),
        wheel: float = 0.0,
    ) -> InputFrame:
        self._tick += 1
        b = self.bindings
        down = self._buttons.is_down
        fire_down = down(b.fire)
        lock_down = down(b.lock_toggle)
        jump_down = down(b.jump)
        reset_down = down(b.reset)
        use_camera = down(b.use_camera)

        move_x = self._axis_x.update(
            negative=down(b.left),
            positive=down(b.right),
            tick=self._tick,
        )
        move_y = self._axis_y.update(
            negative=down(b.down),
            positive=down(b.up),
            tick=self._tick,
        )

        frame = InputFrame(
            pointer_x=float(pointer[0]),
            pointer_y=float(pointer[1]),
            look_dx=float(pointer_delta[0]),
            look_dy=float(pointer_delta[1]),
            zoom_delta=float(wheel),
            fire_pressed=fire_down and not self._prev_fire_down,
            lock_toggle_pressed=lock_down and not self._prev_lock_down,
            use_camera_held=use_camera,
            jump_pressed=jump_down and not self._prev_jump_down,
            reset_pressed=reset_down and not self._prev_reset_down,
            move_x=move_x,
            move_y=move_y,
        )
        self._prev_fire_down = fire_down
        self._prev_lock_down = lock_down
        self._prev_jump_down = jump_down
        self._prev_reset_down = reset_down
        return frame


class MouseWatcherButtons:
    """`ButtonSource` over a Panda3D mouse watcher node."""

    def __init__(self, mouse_watcher) -> None:
        self._watcher = mouse_watcher

    def is_down(self, name: str) -> bool:
        if self._watcher is None:
            return False
        k = (name or "").lower().strip()
        if not k:
            return False
        if k in {"space", "spacebar"}:
            return bool(self._watcher.isButtonDown(KeyboardButton.space()))
        if len(k) == 1 and ord(k) < 128:
            # ASCII key (layout-dependent) + raw key (layout-independent).
            if self._watcher.isButtonDown(KeyboardButton.ascii_key(k)):
                return True
            return bool(self._watcher.isButtonDown(ButtonHandle(f"raw-{k}")))
        return bool(self._watcher.isButtonDown(ButtonHandle(k)))


__all__ = [
    "ButtonSource",
    "InputBindings",
    "InputFrame",
    "InputSampler",
    "MouseWatcherButtons",
    "PriorityAxis",
]
