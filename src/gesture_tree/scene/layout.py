"""
Particle Layout Engine
=======================

Builds the entity set and assigns every entity its two target positions:

    - tree:    a spiral cone, apex up, ~12.5 turns from apex to base
    - scatter: a uniform random cloud inside an axis-aligned cube

Photos are generated first so they take the lowest indices and therefore
sit nearest the apex of the tree.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from ..types import (
    CHRISTMAS_RED, MATTE_GREEN, METALLIC_GOLD, ORNAMENT_KINDS, WHITE,
    Color, Entity, EntityKind,
)
from ..utils.logger import log_timing

logger = logging.getLogger(__name__)

SPIRAL_TURNS_FACTOR = 25 * math.pi  # angle = t * 25pi


@dataclass
class LayoutConfig:
    """Layout geometry settings."""
    ornament_count: int = 150
    tree_height: float = 12.0
    tree_radius: float = 5.0
    tree_jitter: float = 1.5
    scatter_radius: float = 15.0      # ornament cube half-extent
    photo_scatter_ratio: float = 0.5  # photo half-extent / ornament half-extent
    photo_scale: float = 1.5
    ornament_scale_min: float = 0.3
    ornament_scale_range: float = 0.5
    max_rotation_rate: float = 0.02
    gold_threshold: float = 0.6       # first draw above this -> gold
    red_threshold: float = 0.5        # second draw above this -> red, else green

    @classmethod
    def from_dict(cls, config: dict) -> "LayoutConfig":
        """Create config from dictionary."""
        defaults = cls()
        return cls(**{
            name: config.get(name, getattr(defaults, name))
            for name in cls.__dataclass_fields__
        })


def draw_ornament_color(rng: np.random.Generator, config: LayoutConfig) -> Color:
    """Two-stage palette draw: ~40% gold, then the rest split red/green."""
    if rng.random() > config.gold_threshold:
        return METALLIC_GOLD
    if rng.random() > config.red_threshold:
        return CHRISTMAS_RED
    return MATTE_GREEN


def _uniform_cube(rng: np.random.Generator, half_extent: float) -> np.ndarray:
    return (rng.random(3) - 0.5) * 2 * half_extent


def tree_position(index: int, total: int, config: LayoutConfig, jitter: float) -> np.ndarray:
    """
    Spiral-cone position for one index.

    Args:
        index: Position in the construction order
        total: Size of the whole entity set
        config: Tree geometry
        jitter: Random draw in [0, 1) for the radial variation

    Returns:
        (x, y, z) with the apex at +height/2 and the base at -height/2
    """
    t = index / total
    angle = t * SPIRAL_TURNS_FACTOR
    radius = t * config.tree_radius + jitter * config.tree_jitter * (1 - t)
    height = (1 - t) * config.tree_height - config.tree_height / 2
    return np.array([math.cos(angle) * radius, height, math.sin(angle) * radius])


@log_timing
def build_entity_set(photo_refs: Sequence[object],
                     config: Optional[LayoutConfig] = None,
                     rng: Optional[np.random.Generator] = None) -> List[Entity]:
    """
    Construct a fresh entity set.

    Args:
        photo_refs: Ordered opaque image handles, one PHOTO entity each
        config: Layout geometry; defaults to LayoutConfig()
        rng: Random source; a new unseeded generator when omitted

    Returns:
        Photos first (ids 0..k-1), then config.ornament_count ornaments
    """
    config = config or LayoutConfig()
    rng = rng if rng is not None else np.random.default_rng()

    if config.ornament_count < 0:
        raise ValueError(f"ornament_count must be >= 0, got {config.ornament_count}")

    photo_extent = config.scatter_radius * config.photo_scatter_ratio
    drafts = []

    for ref in photo_refs:
        drafts.append(dict(
            kind=EntityKind.PHOTO,
            scatter_position=_uniform_cube(rng, photo_extent),
            scale=config.photo_scale,
            base_color=WHITE,
            rotation_rate=np.array([rng.random() * config.max_rotation_rate,
                                    rng.random() * config.max_rotation_rate,
                                    0.0]),
            image_ref=ref,
        ))

    for _ in range(config.ornament_count):
        color = draw_ornament_color(rng, config)
        kind = ORNAMENT_KINDS[int(rng.integers(len(ORNAMENT_KINDS)))]
        drafts.append(dict(
            kind=kind,
            scatter_position=_uniform_cube(rng, config.scatter_radius),
            scale=float(rng.random() * config.ornament_scale_range + config.ornament_scale_min),
            base_color=color,
            rotation_rate=rng.random(3) * config.max_rotation_rate,
            image_ref=None,
        ))

    total = len(drafts)
    entities = []
    for i, draft in enumerate(drafts):
        entity = Entity(id=i, tree_position=tree_position(i, total, config, float(rng.random())), **draft)
        for arr in (entity.tree_position, entity.scatter_position, entity.rotation_rate):
            arr.flags.writeable = False
        entities.append(entity)

    logger.debug("Built entity set: %d photos, %d ornaments", len(photo_refs), config.ornament_count)
    return entities


def photo_entities(entities: Sequence[Entity]) -> List[Entity]:
    """The PHOTO entities, in construction order."""
    return [e for e in entities if e.is_photo]
