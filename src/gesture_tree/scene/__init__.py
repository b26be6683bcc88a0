"""Particle scene: layout, animation, and the scene state holder."""
from .animator import AnimationConfig, FrameAnimator, FrameOutput
from .channel import SensorChannel, SensorUpdate
from .layout import LayoutConfig, build_entity_set
from .scene import TreeScene

__all__ = [
    "AnimationConfig",
    "FrameAnimator",
    "FrameOutput",
    "LayoutConfig",
    "SensorChannel",
    "SensorUpdate",
    "TreeScene",
    "build_entity_set",
]
