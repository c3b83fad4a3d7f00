"""Editor configuration.

Thresholds and sensitivities used by the tools live in one validated model so
a JSON file can tune the interaction feel without touching code.
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from pydantic import BaseModel, Field, model_validator

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "PARACAD_EDITOR_CONFIG"


class EditorConfig(BaseModel):
    snap_threshold: float = Field(0.5, gt=0.0, description="World-space radius inside which snap points attract the cursor.")
    move_threshold_px: float = Field(5.0, ge=0.0, description="Pointer travel in pixels that turns a click into a drag.")
    click_threshold_ms: float = Field(150.0, ge=0.0, description="Press duration in milliseconds still treated as a quick click.")
    default_line_length: float = Field(2.0, gt=0.0, description="Length of a line segment created by a quick click.")
    line_hit_threshold: float = Field(0.1, gt=0.0, description="World distance from the pick ray that still hits a line.")
    handle_pixel_radius: float = Field(8.0, gt=0.0, description="Screen radius of endpoint and center handles.")
    handle_world_threshold: float = Field(0.2, gt=0.0, description="World-distance fallback for handles smaller than a pixel.")
    rotation_sensitivity: float = Field(0.01, gt=0.0, description="Radians of shape rotation per pixel of pointer travel.")
    orbit_sensitivity: float = Field(0.005, gt=0.0, description="Radians of camera orbit per pixel of pointer travel.")
    orbit_radius: float = Field(15.0, gt=0.0, description="Distance of the orbiting camera from the origin.")
    elevation_margin: float = Field(0.1, gt=0.0, lt=1.5, description="Keeps orbit elevation this far from the poles.")
    zoom_speed: float = Field(0.1, gt=0.0, lt=1.0, description="Relative frustum change per wheel step.")
    min_frustum_size: float = Field(1.0, gt=0.0, description="Smallest visible world height.")
    max_frustum_size: float = Field(100.0, gt=0.0, description="Largest visible world height.")
    arc_segments: int = Field(32, ge=4, le=1024, description="Polyline segments used to sample arcs.")
    circle_segments: int = Field(64, ge=8, le=4096, description="Polyline segments used to sample circles.")

    @model_validator(mode="after")
    def _check_frustum_range(self) -> "EditorConfig":
        if self.min_frustum_size > self.max_frustum_size:
            raise ValueError("min_frustum_size must not exceed max_frustum_size")
        return self


def load_config(path: str | Path | None = None) -> EditorConfig:
    """Load an :class:`EditorConfig` from JSON.

    ``path`` falls back to the ``PARACAD_EDITOR_CONFIG`` environment variable.
    A missing or unreadable file yields the defaults; values that fail
    validation raise ``pydantic.ValidationError``.
    """
    if path is None:
        path = os.getenv(CONFIG_ENV_VAR)
    if not path:
        return EditorConfig()
    config_path = Path(path)
    if not config_path.exists():
        logger.warning("Config file %s not found; using defaults", config_path)
        return EditorConfig()
    try:
        with config_path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Could not read config %s (%s); using defaults", config_path, exc)
        return EditorConfig()
    if not isinstance(data, dict):
        logger.warning("Config %s must hold a JSON object; using defaults", config_path)
        return EditorConfig()
    return EditorConfig.model_validate(data)


__all__ = ["CONFIG_ENV_VAR", "EditorConfig", "load_config"]
