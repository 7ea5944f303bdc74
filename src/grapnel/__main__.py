from __future__ import annotations

import argparse
import logging
from pathlib import Path

from grapnel.app_config import SimConfig
from grapnel.harness import build_graybox_world, run_scripted
from grapnel.sim import GrappleSim
from grapnel.tuning import load_tuning


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="grapnel", description="Headless grapple camera/targeting sim")
    parser.add_argument(
        "--ticks",
        type=int,
        default=120,
        help="Number of 60 Hz frames to simulate (default: 120).",
    )
    parser.add_argument(
        "--tuning",
        default=None,
        help='Optional JSON file with tuning overrides, e.g. {"grapple": {"assist_radius": 1.5}}.',
    )
    parser.add_argument(
        "--fire-at",
        type=int,
        action="append",
        default=None,
        help="Frame index at which fire is pressed. Repeatable (default: 10 and 60).",
    )
    parser.add_argument(
        "--locked",
        action="store_true",
        help="Toggle the locked (centered crosshair) camera mode on the first frame.",
    )
    parser.add_argument(
        "--error-log",
        default=None,
        help="Optional file that frame failures are appended to.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log state transitions and targeting changes.",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    tuning = load_tuning(Path(args.tuning) if args.tuning else None)
    scene = build_graybox_world()
    sim = GrappleSim(
        tuning,
        scene.world,
        config=SimConfig(error_log_path=Path(args.error_log) if args.error_log else None),
    )
    fire_at = args.fire_at if args.fire_at is not None else [10, 60]
    snaps = run_scripted(
        sim,
        frames=int(args.ticks),
        fire_at=fire_at,
        lock_at=[0] if args.locked else [],
        scene=scene,
    )

    if not snaps:
        print("no frames simulated")
        return
    last = snaps[-1]
    anchor = last.targeting.anchor
    print(f"frames: {last.frame} ticks: {last.tick}")
    print(f"grapple: {last.grapple.state.value} length={last.grapple.line_length:.3f}")
    if anchor is None:
        print("anchor: none")
    else:
        p = last.targeting.world_point
        print(f"anchor: surface={anchor.surface} via {last.targeting.source} at ({p.x:.3f}, {p.y:.3f}, {p.z:.3f})")
    errors = sim.error_log.items()
    if errors:
        print(f"errors: {len(errors)}")
        for item in errors:
            print(f"  {item.summary_line()}")


if __name__ == "__main__":
    main()
