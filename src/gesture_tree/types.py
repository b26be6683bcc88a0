"""
Shared domain types for the Gesture Tree scene.

Centralizes enums and data classes used across modules to eliminate
circular imports and ensure type consistency.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

import numpy as np


# =============================================================================
# Gesture / Mode Types
# =============================================================================

class Gesture(Enum):
    """Discrete hand pose classes, recomputed every sensor frame."""
    NONE = "none"
    FIST = "fist"
    OPEN_PALM = "open_palm"
    PINCH = "pinch"
    POINTING = "pointing"


class SceneMode(Enum):
    """Global visual configuration the entities animate toward."""
    TREE = "tree"
    SCATTERED = "scattered"
    PHOTO_ZOOM = "photo_zoom"


class EntityKind(Enum):
    """Visual particle kinds."""
    ORNAMENT_SPHERE = "sphere"
    ORNAMENT_CUBE = "cube"
    ORNAMENT_CANDY = "candy"
    PHOTO = "photo"

    @property
    def is_photo(self) -> bool:
        return self is EntityKind.PHOTO


ORNAMENT_KINDS = (
    EntityKind.ORNAMENT_SPHERE,
    EntityKind.ORNAMENT_CUBE,
    EntityKind.ORNAMENT_CANDY,
)


# =============================================================================
# Colors (RGB, 0-255)
# =============================================================================

Color = Tuple[int, int, int]


def hex_to_rgb(value: str) -> Color:
    """Parse '#RRGGBB' into an RGB triple."""
    value = value.lstrip("#")
    return (int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16))


MATTE_GREEN: Color = hex_to_rgb("#2D5A27")
METALLIC_GOLD: Color = hex_to_rgb("#FFD700")
CHRISTMAS_RED: Color = hex_to_rgb("#C41E3A")
WHITE: Color = hex_to_rgb("#FFFFFF")


# =============================================================================
# Data Containers
# =============================================================================

@dataclass(frozen=True, eq=False)
class Entity:
    """One visual particle.

    All fields are fixed at construction by the layout engine. The live
    transform is derived every frame by the animator and never stored here.
    """
    id: int
    kind: EntityKind
    tree_position: np.ndarray
    scatter_position: np.ndarray
    scale: float
    base_color: Color
    rotation_rate: np.ndarray
    image_ref: Optional[object] = None

    @property
    def is_photo(self) -> bool:
        return self.kind.is_photo


@dataclass(frozen=True)
class HandPosition:
    """Hand location for camera steering, both axes in [-1, 1]."""
    x: float
    y: float


@dataclass
class CameraPose:
    """Camera position plus the point it looks at."""
    position: np.ndarray = field(default_factory=lambda: np.array([0.0, 5.0, 25.0]))
    target: np.ndarray = field(default_factory=lambda: np.zeros(3))
    fov: float = 60.0

    def copy(self) -> "CameraPose":
        return CameraPose(self.position.copy(), self.target.copy(), self.fov)


@dataclass(frozen=True)
class SceneStatus:
    """Read-only status snapshot for overlays."""
    mode: SceneMode
    last_gesture: Gesture
    grabbed_index: Optional[int]
    transition_locked: bool
    photo_count: int
    entity_count: int
