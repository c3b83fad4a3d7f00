"""Orthographic camera used for picking and view navigation.

Screen coordinates are pixels with the origin at the top-left of the viewport
and y growing downwards. ``frustum_size`` is the visible world height.
"""
from __future__ import annotations

import math
from typing import Protocol, Sequence, Tuple

import numpy as np

from .geometry import normalize
from .model import as_point

HOME_POSITION = (0.0, 0.0, 15.0)
HOME_TARGET = (0.0, 0.0, 0.0)
HOME_UP = (0.0, 1.0, 0.0)


class Camera(Protocol):
    position: np.ndarray
    look_at: np.ndarray
    up: np.ndarray
    frustum_size: float
    viewport: Tuple[int, int]

    @property
    def view_direction(self) -> np.ndarray: ...

    def ray(self, screen_x: float, screen_y: float) -> Tuple[np.ndarray, np.ndarray]: ...

    def project(self, point: Sequence[float]) -> Tuple[float, float]: ...

    def set_frustum_size(self, size: float) -> None: ...

    def set_pose(self, position: Sequence[float], look_at: Sequence[float], up: Sequence[float] = HOME_UP) -> None: ...

    def reset(self) -> None: ...


class OrthographicCamera:
    def __init__(
        self,
        viewport: Tuple[int, int] = (800, 600),
        frustum_size: float = 20.0,
        position: Sequence[float] = HOME_POSITION,
        look_at: Sequence[float] = HOME_TARGET,
        up: Sequence[float] = HOME_UP,
    ):
        width, height = viewport
        if width <= 0 or height <= 0:
            raise ValueError("Viewport dimensions must be positive")
        self.viewport = (int(width), int(height))
        self.frustum_size = float(frustum_size)
        self.position = as_point(position)
        self.look_at = as_point(look_at)
        self.up = as_point(up)

    # ------------------------------------------------------------------
    @property
    def aspect(self) -> float:
        return self.viewport[0] / self.viewport[1]

    @property
    def view_direction(self) -> np.ndarray:
        direction = normalize(self.look_at - self.position)
        if direction is None:
            return np.array([0.0, 0.0, -1.0])
        return direction

    def basis(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Return ``(right, true_up, forward)`` unit vectors."""
        forward = self.view_direction
        right = normalize(np.cross(forward, self.up))
        if right is None:
            # up parallel to the view; pick any perpendicular
            right = normalize(np.cross(forward, np.array([1.0, 0.0, 0.0])))
            if right is None:
                right = np.array([0.0, 1.0, 0.0])
        true_up = np.cross(right, forward)
        return right, true_up, forward

    def world_per_pixel(self) -> float:
        return self.frustum_size / self.viewport[1]

    # ------------------------------------------------------------------
    def ray(self, screen_x: float, screen_y: float) -> Tuple[np.ndarray, np.ndarray]:
        width, height = self.viewport
        ndc_x = (screen_x / width) * 2.0 - 1.0
        ndc_y = 1.0 - (screen_y / height) * 2.0
        half_h = self.frustum_size / 2.0
        half_w = half_h * self.aspect
        right, true_up, forward = self.basis()
        origin = self.position + right * (ndc_x * half_w) + true_up * (ndc_y * half_h)
        return origin, forward.copy()

    def project(self, point: Sequence[float]) -> Tuple[float, float]:
        width, height = self.viewport
        half_h = self.frustum_size / 2.0
        half_w = half_h * self.aspect
        right, true_up, _ = self.basis()
        rel = as_point(point) - self.position
        x = float(np.dot(rel, right)) / half_w
        y = float(np.dot(rel, true_up)) / half_h
        return ((x + 1.0) / 2.0 * width, (1.0 - y) / 2.0 * height)

    # ------------------------------------------------------------------
    def set_frustum_size(self, size: float) -> None:
        if size <= 0.0:
            raise ValueError("Frustum size must be positive")
        self.frustum_size = float(size)

    def set_pose(self, position: Sequence[float], look_at: Sequence[float], up: Sequence[float] = HOME_UP) -> None:
        self.position = as_point(position)
        self.look_at = as_point(look_at)
        self.up = as_point(up)

    def reset(self) -> None:
        self.set_pose(HOME_POSITION, HOME_TARGET, HOME_UP)

    # ------------------------------------------------------------------
    # Orbit helpers
    def orbit_angles(self) -> Tuple[float, float]:
        """Azimuth and elevation of the camera as seen from its target."""
        d = self.view_direction
        azimuth = math.atan2(-d[0], -d[2])
        elevation = math.asin(max(-1.0, min(1.0, -d[1])))
        return azimuth, elevation

    def place_on_sphere(self, azimuth: float, elevation: float, radius: float, target: Sequence[float] = HOME_TARGET) -> None:
        center = as_point(target)
        offset = np.array(
            [
                math.cos(elevation) * math.sin(azimuth),
                math.sin(elevation),
                math.cos(elevation) * math.cos(azimuth),
            ]
        )
        self.set_pose(center + offset * radius, center, HOME_UP)


__all__ = ["HOME_POSITION", "HOME_TARGET", "HOME_UP", "Camera", "OrthographicCamera"]
