"""
Pinhole projection of world-space points through a look-at camera.
"""

from typing import Tuple

import numpy as np

from ..types import CameraPose

WORLD_UP = np.array([0.0, 1.0, 0.0])
NEAR_PLANE = 0.1


def camera_basis(camera: CameraPose) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Right, up and forward unit vectors for a look-at camera."""
    forward = np.asarray(camera.target, dtype=float) - np.asarray(camera.position, dtype=float)
    norm = np.linalg.norm(forward)
    forward = forward / norm if norm > 1e-9 else np.array([0.0, 0.0, -1.0])

    right = np.cross(forward, WORLD_UP)
    norm = np.linalg.norm(right)
    # Looking straight up or down
    right = right / norm if norm > 1e-9 else np.array([1.0, 0.0, 0.0])
    up = np.cross(right, forward)
    return right, up, forward


def focal_length(fov_deg: float, height: int) -> float:
    """Focal length in pixels for a vertical field of view."""
    return (height / 2.0) / np.tan(np.radians(fov_deg) / 2.0)


def project_points(points: np.ndarray, camera: CameraPose,
                   width: int, height: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Project (n, 3) world points to pixel coordinates.

    Returns:
        (xy, depth, visible): (n, 2) float pixels, (n,) view depth, and a
        mask of points in front of the near plane
    """
    points = np.atleast_2d(np.asarray(points, dtype=float))
    right, up, forward = camera_basis(camera)
    rel = points - np.asarray(camera.position, dtype=float)

    depth = rel @ forward
    visible = depth > NEAR_PLANE
    safe_depth = np.where(visible, depth, 1.0)

    f = focal_length(camera.fov, height)
    x = width / 2.0 + f * (rel @ right) / safe_depth
    y = height / 2.0 - f * (rel @ up) / safe_depth
    return np.stack([x, y], axis=1), depth, visible


def projected_radius(world_radius: np.ndarray, depth: np.ndarray, fov_deg: float, height: int) -> np.ndarray:
    """Pixel radius of a sphere of world_radius at each depth."""
    f = focal_length(fov_deg, height)
    return f * np.asarray(world_radius, dtype=float) / np.maximum(depth, NEAR_PLANE)
