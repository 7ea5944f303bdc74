from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from grapnel.tuning import Tuning, apply_overrides, load_tuning, tuning_to_dict


def test_load_tuning_defaults_for_missing_or_none(tmp_path: Path) -> None:
    assert load_tuning(None) == Tuning()
    assert load_tuning(tmp_path / "missing.json") == Tuning()


def test_load_tuning_applies_known_overrides(tmp_path: Path) -> None:
    path = tmp_path / "tuning.json"
    path.write_text(
        json.dumps(
            {
                "grapple": {"assist_radius": 1.5, "assist_iterations": 8, "grapple_distance": 20},
                "rig": {"lock_offset": [0.5, 0.0, 0.25], "collision_enabled": False},
                "lens": {"screen_width": 1280, "screen_height": 720},
            }
        ),
        encoding="utf-8",
    )

    t = load_tuning(path)

    assert t.grapple.assist_radius == 1.5
    assert t.grapple.assist_iterations == 8
    assert t.grapple.grapple_distance == 20.0
    assert isinstance(t.grapple.grapple_distance, float)
    assert t.rig.lock_offset == (0.5, 0.0, 0.25)
    assert t.rig.collision_enabled is False
    assert (t.lens.screen_width, t.lens.screen_height) == (1280, 720)


def test_bad_json_and_non_object_fall_back_to_defaults(tmp_path: Path) -> None:
    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    assert load_tuning(bad) == Tuning()

    listing = tmp_path / "list.json"
    listing.write_text("[1, 2]", encoding="utf-8")
    assert load_tuning(listing) == Tuning()


def test_unusable_entries_are_skipped_with_warnings(caplog: pytest.LogCaptureFixture) -> None:
    overrides = {
        "grapple": {
            "nope": 1,
            "assist_iterations": "many",
            "assist_radius": True,
            "buffer_time": 0.2,
        },
        "rig": {"lock_offset": [1.0, 2.0]},
        "camera": {},
        "player": "fast",
    }
    with caplog.at_level(logging.WARNING, logger="grapnel.tuning"):
        t = apply_overrides(Tuning(), overrides)

    assert t.grapple.buffer_time == 0.2
    assert t.grapple.assist_iterations == Tuning().grapple.assist_iterations
    assert t.grapple.assist_radius == Tuning().grapple.assist_radius
    assert t.rig.lock_offset == Tuning().rig.lock_offset
    messages = " ".join(r.getMessage() for r in caplog.records)
    assert "grapple.nope" in messages
    assert "'camera'" in messages
    assert "'player'" in messages


def test_curve_overrides_become_key_tuples() -> None:
    t = apply_overrides(Tuning(), {"grapple": {"scale_curve": [[0, 1], [1, 2]]}})
    assert t.grapple.scale_curve == ((0.0, 1.0), (1.0, 2.0))

    kept = apply_overrides(Tuning(), {"grapple": {"scale_curve": [[0, 1, 2]]}})
    assert kept.grapple.scale_curve == Tuning().grapple.scale_curve


def test_apply_overrides_does_not_mutate_input() -> None:
    base = Tuning()
    out = apply_overrides(base, {"grapple": {"grapple_speed": 64.0}})
    assert out.grapple.grapple_speed == 64.0
    assert base.grapple.grapple_speed == 256.0
    assert out.rig is not base.rig


def test_tuning_to_dict_lists_sections() -> None:
    d = tuning_to_dict(Tuning())
    assert set(d) == {"lens", "rig", "grapple", "player"}
    assert d["grapple"]["assist_iterations"] == 12
