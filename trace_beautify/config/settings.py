"""
User settings — the options every beautify / transition pass reads.

Settings are stored as a flat JSON object.  Loading merges the stored
values over the defaults, so a file written by an older version (missing
keys) still loads, and unknown keys are reported and dropped.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any

from trace_beautify.pipeline.smoother import RadiusPolicy


log = logging.getLogger(__name__)


class SettingsError(ValueError):
    """A setting has a value the engine cannot work with."""


@dataclass
class BeautifySettings:
    # ── corners ────────────────────────────────────────────────────
    corner_radius_ratio: float = 3.0        # radius = widest adjacent width × ratio
    corner_radius: float | None = None      # fixed radius; overrides the ratio when set
    force_arc: bool = True                  # keep arcs whose radius had to be clamped
    merge_transition_segments: bool = False  # merge U-turn corner pairs into one arc

    # ── design-rule feedback ───────────────────────────────────────
    enable_drc: bool = True
    drc_retry_count: int = 4
    drc_ignore_copper_pour: bool = True
    drc_clearance: float = 0.2

    # ── width transitions ──────────────────────────────────────────
    sync_width_transition: bool = False     # run transitions after every beautify
    width_transition_ratio: float = 3.0     # taper length = width delta × ratio
    width_transition_segments: int = 25     # max pieces per taper
    width_transition_min_segments: int = 5
    width_transition_balance: float = 50.0  # 0 = narrow side only, 100 = wide side only

    debug: bool = False

    def validate(self) -> BeautifySettings:
        """Raise SettingsError for unusable values.  Clamps the balance."""
        if not (self.corner_radius_ratio > 0 and math.isfinite(self.corner_radius_ratio)):
            raise SettingsError(
                f"corner_radius_ratio must be positive, got {self.corner_radius_ratio}")
        if self.corner_radius is not None and not self.corner_radius > 0:
            raise SettingsError(f"corner_radius must be positive, got {self.corner_radius}")
        if self.drc_retry_count < 0:
            raise SettingsError(f"drc_retry_count must be ≥ 0, got {self.drc_retry_count}")
        if self.drc_clearance < 0:
            raise SettingsError(f"drc_clearance must be ≥ 0, got {self.drc_clearance}")
        if not self.width_transition_ratio > 0:
            raise SettingsError(
                f"width_transition_ratio must be positive, got {self.width_transition_ratio}")
        if self.width_transition_min_segments < 1:
            raise SettingsError("width_transition_min_segments must be ≥ 1, got "
                                f"{self.width_transition_min_segments}")
        if self.width_transition_segments < self.width_transition_min_segments:
            raise SettingsError(
                f"width_transition_segments ({self.width_transition_segments}) is below "
                f"width_transition_min_segments ({self.width_transition_min_segments})")
        if not 0 <= self.width_transition_balance <= 100:
            clamped = min(100.0, max(0.0, self.width_transition_balance))
            log.warning("Settings: width_transition_balance %.1f out of range, using %.1f",
                        self.width_transition_balance, clamped)
            self.width_transition_balance = clamped
        return self

    @property
    def radius_policy(self) -> RadiusPolicy:
        return RadiusPolicy(ratio=self.corner_radius_ratio, fixed=self.corner_radius)

    def updated(self, **changes: Any) -> BeautifySettings:
        """Copy with *changes* applied and validated."""
        unknown = set(changes) - _FIELD_NAMES
        if unknown:
            raise SettingsError(f"unknown setting(s): {', '.join(sorted(unknown))}")
        return replace(self, **changes).validate()

    def to_dict(self) -> dict:
        return asdict(self)


_FIELD_NAMES = {f.name for f in fields(BeautifySettings)}


def settings_from_dict(data: dict | None) -> BeautifySettings:
    """Defaults merged with *data*; unknown keys are logged and ignored."""
    data = dict(data or {})
    unknown = sorted(set(data) - _FIELD_NAMES)
    if unknown:
        log.warning("Settings: ignoring unknown key(s) %s", ", ".join(unknown))
        for k in unknown:
            data.pop(k)
    try:
        settings = BeautifySettings(**data)
    except TypeError as e:
        raise SettingsError(str(e)) from e
    return settings.validate()


def load_settings(path: Path) -> BeautifySettings:
    """Load settings from *path*; a missing file gives the defaults."""
    if not path.exists():
        return BeautifySettings()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise SettingsError(f"{path}: invalid JSON ({e})") from e
    if not isinstance(data, dict):
        raise SettingsError(f"{path}: expected a JSON object")
    return settings_from_dict(data)


def save_settings(settings: BeautifySettings, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(settings.to_dict(), indent=2), encoding="utf-8")
    return path


def apply_debug_logging(settings: BeautifySettings) -> None:
    """Raise the package logger to DEBUG when the ``debug`` setting is on."""
    pkg_log = logging.getLogger("trace_beautify")
    pkg_log.setLevel(logging.DEBUG if settings.debug else logging.NOTSET)
