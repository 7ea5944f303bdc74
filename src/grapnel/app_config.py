from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class SimConfig:
    # Fixed physics tick rate; render frames run at whatever rate `frame(dt, ...)` is called.
    tick_rate_hz: int = 60
    # Longest frame step fed to the fixed-tick accumulator (avoids a spiral after a stall).
    max_frame_dt: float = 0.25
    # Propagate frame exceptions instead of recording them in the error feed. Tests enable this.
    raise_errors: bool = False
    # Optional append-only file for recorded frame failures.
    error_log_path: Path | None = None
