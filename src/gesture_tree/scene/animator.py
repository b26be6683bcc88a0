"""
Frame Animator
===============

Runs once per render tick and turns (mode, entities, hand position, grabbed
photo) into a render buffer:

    - positions: exponentially filtered toward each entity's mode target,
      with a procedural bob/wobble layered on top of the filtered value
    - rotations: deterministic spin in TREE, billboard toward the camera
      otherwise
    - emissive: baseline, glowing, or grabbed-photo highlight
    - camera: orbit (TREE), hand-steered (SCATTERED), or cinematic zoom
      that keeps the approach angle (PHOTO_ZOOM)

The filter uses a fixed factor per tick, so motion speed follows the frame
rate. Set frame_rate_independent to scale the factor by the tick duration.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np

from ..types import (
    CameraPose, Entity, Gesture, HandPosition, SceneMode, hex_to_rgb,
)
from .layout import photo_entities

logger = logging.getLogger(__name__)

ZOOM_FALLBACK_AXIS = np.array([0.0, 0.0, 1.0])
WORLD_UP = np.array([0.0, 1.0, 0.0])

ORNAMENT_GLOW_COLOR = hex_to_rgb("#FFAA00")
ORNAMENT_BASE_COLOR = hex_to_rgb("#330000")
PHOTO_EMISSIVE_COLOR = hex_to_rgb("#222222")
GRABBED_EMISSIVE_COLOR = hex_to_rgb("#FFFFFF")
STAR_COLOR = hex_to_rgb("#FFD700")


@dataclass
class AnimationConfig:
    """Animation and camera tuning."""
    lerp_speed: float = 0.05
    frame_rate_independent: bool = False
    reference_fps: float = 60.0
    scatter_bob_amplitude: float = 0.5
    tree_wobble_amplitude: float = 0.1
    # Camera
    initial_camera_position: Tuple[float, float, float] = (0.0, 5.0, 25.0)
    fov: float = 60.0
    orbit_radius: float = 20.0
    orbit_height: float = 2.0
    orbit_speed: float = 0.15
    orbit_smoothing: float = 0.02
    hand_steer_scale: float = 5.0
    camera_smoothing: float = 0.1
    zoom_distance: float = 2.5
    zoom_smoothing: float = 0.05
    degenerate_epsilon: float = 1e-3
    # Emissive intensity
    ornament_base_emissive: float = 0.3
    photo_base_emissive: float = 0.5
    glow_emissive: float = 2.0
    grabbed_emissive: float = 4.0

    @classmethod
    def from_dict(cls, config: dict) -> "AnimationConfig":
        """Create config from dictionary."""
        defaults = cls()
        values = {
            name: config.get(name, getattr(defaults, name))
            for name in cls.__dataclass_fields__
        }
        values["initial_camera_position"] = tuple(values["initial_camera_position"])
        return cls(**values)


@dataclass
class StarTransform:
    """Tree-top star: spins and pulses independently of the mode."""
    position: np.ndarray
    rotation: np.ndarray  # Euler XYZ radians
    scale: float
    color: Tuple[int, int, int] = STAR_COLOR


@dataclass
class SparkleField:
    """Ambient sparkle volume around the scene."""
    extent: Tuple[float, float, float]
    color: Tuple[int, int, int]
    count: int = 300


@dataclass
class FrameOutput:
    """Per-tick render buffer, indexed like the entity set."""
    elapsed: float
    mode: SceneMode
    ids: np.ndarray
    positions: np.ndarray
    rotations: np.ndarray
    scales: np.ndarray
    emissive_intensity: np.ndarray
    emissive_colors: np.ndarray
    camera: CameraPose
    star: StarTransform
    sparkles: SparkleField
    grabbed_entity_id: Optional[int] = None
    gesture: Gesture = Gesture.NONE
    entities: List[Entity] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.ids)


# =============================================================================
# Rotation helpers
# =============================================================================

def euler_to_matrices(angles: np.ndarray) -> np.ndarray:
    """Convert (n, 3) XYZ Euler angles into (n, 3, 3) rotation matrices."""
    angles = np.atleast_2d(angles)
    n = len(angles)
    cx, cy, cz = np.cos(angles).T
    sx, sy, sz = np.sin(angles).T
    zeros, ones = np.zeros(n), np.ones(n)

    rx = np.stack([ones, zeros, zeros,
                   zeros, cx, -sx,
                   zeros, sx, cx], axis=-1).reshape(n, 3, 3)
    ry = np.stack([cy, zeros, sy,
                   zeros, ones, zeros,
                   -sy, zeros, cy], axis=-1).reshape(n, 3, 3)
    rz = np.stack([cz, -sz, zeros,
                   sz, cz, zeros,
                   zeros, zeros, ones], axis=-1).reshape(n, 3, 3)
    return rx @ ry @ rz


def billboard_matrices(positions: np.ndarray, eye: np.ndarray) -> np.ndarray:
    """Rotations whose +Z axis points from each position toward eye."""
    forward = eye - positions
    norms = np.linalg.norm(forward, axis=1, keepdims=True)
    degenerate = norms[:, 0] < 1e-9
    forward = np.where(degenerate[:, None], ZOOM_FALLBACK_AXIS, forward / np.maximum(norms, 1e-9))

    right = np.cross(WORLD_UP, forward)
    right_norms = np.linalg.norm(right, axis=1, keepdims=True)
    parallel = right_norms[:, 0] < 1e-9
    right = np.where(parallel[:, None], np.array([1.0, 0.0, 0.0]), right / np.maximum(right_norms, 1e-9))

    up = np.cross(forward, right)
    return np.stack([right, up, forward], axis=-1)


# =============================================================================
# Animator
# =============================================================================

class FrameAnimator:
    """
    Per-frame transform and camera generator.

    Holds one frame of hidden state: the filtered position of every entity
    and the camera pose.

    Example:
        >>> animator = FrameAnimator(AnimationConfig(), tree_height=12.0)
        >>> animator.reset(entities)
        >>> while running:
        ...     out = animator.step(clock.elapsed, mode, entities, hand, grabbed)
        ...     surface.draw(out, status)
    """

    def __init__(self, config: Optional[AnimationConfig] = None, tree_height: float = 12.0):
        self.config = config or AnimationConfig()
        self._tree_height = tree_height
        self._positions = np.zeros((0, 3))
        self._camera = CameraPose(
            position=np.array(self.config.initial_camera_position, dtype=float),
            target=np.zeros(3),
            fov=self.config.fov,
        )

    def reset(self, entities: Sequence[Entity]) -> None:
        """Restart the position filter for a new entity set at the tree layout."""
        if entities:
            self._positions = np.array([e.tree_position for e in entities], dtype=float)
        else:
            self._positions = np.zeros((0, 3))

    @property
    def camera(self) -> CameraPose:
        return self._camera.copy()

    def _factor(self, alpha: float, dt: Optional[float]) -> float:
        if not self.config.frame_rate_independent or dt is None:
            return alpha
        return 1.0 - (1.0 - alpha) ** (max(dt, 0.0) * self.config.reference_fps)

    def step(self,
             elapsed: float,
             mode: SceneMode,
             entities: Sequence[Entity],
             hand: Optional[HandPosition] = None,
             grabbed_index: Optional[int] = None,
             dt: Optional[float] = None) -> FrameOutput:
        """
        Advance one render tick.

        Args:
            elapsed: Seconds since the scene started
            mode: Active scene mode
            entities: Current entity set
            hand: Steering position in [-1, 1], or None without a hand
            grabbed_index: Selected photo (modulo the photo count)
            dt: Seconds since the previous tick (frame-rate independent mode)

        Returns:
            FrameOutput for the render surface
        """
        cfg = self.config
        if len(self._positions) != len(entities):
            self.reset(entities)

        ids = np.array([e.id for e in entities], dtype=int)
        is_photo = np.array([e.is_photo for e in entities], dtype=bool)
        grabbed = self._grabbed_photo(mode, entities, grabbed_index)

        self._update_camera(elapsed, mode, hand, grabbed, dt)

        # Positions: filter toward the target, then layer procedural motion
        if entities:
            attr = "tree_position" if mode is SceneMode.TREE else "scatter_position"
            targets = np.array([getattr(e, attr) for e in entities], dtype=float)
            self._positions += (targets - self._positions) * self._factor(cfg.lerp_speed, dt)

        positions = self._positions.copy()
        if mode is SceneMode.SCATTERED:
            positions[:, 1] += cfg.scatter_bob_amplitude * np.sin(elapsed + ids)
        else:
            positions[:, 1] += cfg.tree_wobble_amplitude * np.sin(elapsed * 2 + ids)

        rotations = self._rotations(elapsed, mode, entities, ids, is_photo, positions)
        intensity, colors = self._emissive(mode, ids, is_photo, grabbed)

        return FrameOutput(
            elapsed=elapsed,
            mode=mode,
            ids=ids,
            positions=positions,
            rotations=rotations,
            scales=np.array([e.scale for e in entities], dtype=float),
            emissive_intensity=intensity,
            emissive_colors=colors,
            camera=self._camera.copy(),
            star=self._star(elapsed),
            sparkles=self._sparkles(mode),
            grabbed_entity_id=grabbed.id if grabbed is not None else None,
            entities=list(entities),
        )

    @staticmethod
    def _grabbed_photo(mode: SceneMode, entities: Sequence[Entity],
                       grabbed_index: Optional[int]) -> Optional[Entity]:
        if mode is not SceneMode.PHOTO_ZOOM or grabbed_index is None:
            return None
        photos = photo_entities(entities)
        if not photos:
            return None
        return photos[grabbed_index % len(photos)]

    def _rotations(self, elapsed, mode, entities, ids, is_photo, positions) -> np.ndarray:
        if not entities:
            return np.zeros((0, 3, 3))
        if mode is not SceneMode.TREE:
            return billboard_matrices(positions, self._camera.position)

        rates = np.array([e.rotation_rate for e in entities], dtype=float)
        breath = self.config.tree_wobble_amplitude * np.sin(elapsed * 2 + ids)
        angles = np.column_stack([
            elapsed * rates[:, 0] + breath,
            elapsed * rates[:, 1],
            elapsed * rates[:, 2],
        ])
        # Photos turn slowly about the vertical axis only
        photo_spin = np.column_stack([np.zeros(len(ids)), ids * 0.1 + elapsed * 0.5, np.zeros(len(ids))])
        angles = np.where(is_photo[:, None], photo_spin, angles)
        return euler_to_matrices(angles)

    def _emissive(self, mode, ids, is_photo, grabbed) -> Tuple[np.ndarray, np.ndarray]:
        cfg = self.config
        glowing = mode is not SceneMode.TREE

        if glowing:
            intensity = np.full(len(ids), cfg.glow_emissive)
        else:
            intensity = np.where(is_photo, cfg.photo_base_emissive, cfg.ornament_base_emissive)

        ornament_color = ORNAMENT_GLOW_COLOR if glowing else ORNAMENT_BASE_COLOR
        colors = np.where(is_photo[:, None], PHOTO_EMISSIVE_COLOR, ornament_color).astype(float)
        colors = colors.reshape(len(ids), 3)

        if grabbed is not None:
            mask = ids == grabbed.id
            intensity = np.where(mask, cfg.grabbed_emissive, intensity)
            colors[mask] = GRABBED_EMISSIVE_COLOR
        return intensity.astype(float), colors

    def _update_camera(self, elapsed, mode, hand, grabbed, dt) -> None:
        cfg = self.config
        cam = self._camera

        if mode is SceneMode.TREE:
            goal = np.array([
                math.sin(elapsed * cfg.orbit_speed) * cfg.orbit_radius,
                cfg.orbit_height,
                math.cos(elapsed * cfg.orbit_speed) * cfg.orbit_radius,
            ])
            cam.position += (goal - cam.position) * self._factor(cfg.orbit_smoothing, dt)
            cam.target = np.zeros(3)

        elif mode is SceneMode.SCATTERED:
            if hand is not None:
                goal = np.array([hand.x, hand.y]) * cfg.hand_steer_scale
                cam.position[:2] += (goal - cam.position[:2]) * self._factor(cfg.camera_smoothing, dt)
            cam.target = np.zeros(3)

        elif grabbed is not None:
            photo_pos = np.asarray(grabbed.scatter_position, dtype=float)
            direction = cam.position - photo_pos
            length = np.linalg.norm(direction)
            if length * length < cfg.degenerate_epsilon:
                direction = ZOOM_FALLBACK_AXIS.copy()
            else:
                direction = direction / length
            goal = photo_pos + direction * cfg.zoom_distance
            cam.position += (goal - cam.position) * self._factor(cfg.zoom_smoothing, dt)
            cam.target = photo_pos.copy()
        # PHOTO_ZOOM without a photo: hold the last pose

    def _star(self, elapsed: float) -> StarTransform:
        return StarTransform(
            position=np.array([0.0, self._tree_height / 2, 0.0]),
            rotation=np.array([0.0, elapsed * 0.8, math.sin(elapsed * 2) * 0.1]),
            scale=1 + math.sin(elapsed * 3) * 0.1,
        )

    @staticmethod
    def _sparkles(mode: SceneMode) -> SparkleField:
        if mode is SceneMode.TREE:
            return SparkleField(extent=(12.0, 16.0, 12.0), color=STAR_COLOR)
        return SparkleField(extent=(30.0, 30.0, 30.0), color=(255, 255, 255))
