"""
Preview Renderer
================

OpenCV window that draws a FrameOutput: depth-sorted particles, the star,
ambient sparkles and a status HUD. Photo entities are drawn as image
cards from their image_ref. Also serves as the keyboard source for the
gesture fallback.
"""

import logging
import os
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Sequence, Tuple

import cv2
import numpy as np

from ..scene.animator import FrameOutput, SparkleField
from ..types import Entity, SceneStatus
from .projection import project_points, projected_radius

logger = logging.getLogger(__name__)


@dataclass
class PreviewConfig:
    """Preview window settings."""
    window_name: str = "Gesture Tree"
    width: int = 960
    height: int = 720
    show_hud: bool = True
    show_camera: bool = False
    camera_inset_scale: float = 0.25
    # BGR
    background: Tuple[int, int, int] = (20, 10, 5)
    text_color: Tuple[int, int, int] = (200, 230, 255)
    font_scale: float = 0.6
    emissive_mix: float = 0.2

    @classmethod
    def from_dict(cls, config: dict) -> "PreviewConfig":
        """Create config from dictionary."""
        return cls(
            window_name=config.get("window_name", "Gesture Tree"),
            width=config.get("width", 960),
            height=config.get("height", 720),
            show_hud=config.get("show_hud", True),
            show_camera=config.get("show_camera", False),
            camera_inset_scale=config.get("camera_inset_scale", 0.25),
            background=tuple(config.get("background", (20, 10, 5))),
            text_color=tuple(config.get("text_color", (200, 230, 255))),
            font_scale=config.get("font_scale", 0.6),
            emissive_mix=config.get("emissive_mix", 0.2),
        )


def load_texture(image_ref) -> Optional[np.ndarray]:
    """
    Resolve a photo handle to a BGR image.

    Accepts a file path or an already decoded (h, w, 3) array. Anything
    else, or a file OpenCV cannot read, gives None.
    """
    if isinstance(image_ref, np.ndarray):
        if image_ref.ndim == 3 and image_ref.shape[2] == 3:
            return image_ref
        return None
    if isinstance(image_ref, (str, os.PathLike)):
        image = cv2.imread(os.fspath(image_ref), cv2.IMREAD_COLOR)
        if image is None:
            logger.warning("Photo not readable: %s (drawn as a plain card)", image_ref)
        return image
    return None


def paste_texture(canvas: np.ndarray, image: np.ndarray,
                  top_left: Tuple[int, int], size: int) -> bool:
    """Resize image to a size x size card and paste it, clipped to the canvas."""
    x0, y0 = top_left
    cx0, cy0 = max(x0, 0), max(y0, 0)
    cx1 = min(x0 + size, canvas.shape[1])
    cy1 = min(y0 + size, canvas.shape[0])
    if size <= 0 or cx0 >= cx1 or cy0 >= cy1:
        return False
    # Near-plane cards fall back to a flat fill
    if size > 4 * max(canvas.shape[:2]):
        return False
    card = cv2.resize(image, (size, size), interpolation=cv2.INTER_AREA)
    canvas[cy0:cy1, cx0:cx1] = card[cy0 - y0:cy1 - y0, cx0 - x0:cx1 - x0]
    return True


class PreviewRenderer:
    """
    Render surface backed by an OpenCV window.

    Example:
        >>> surface = PreviewRenderer(PreviewConfig(), fps_source=lambda: monitor.fps)
        >>> surface.draw(output, scene.status)
        >>> key = surface.poll_key()
        >>> surface.close()
    """

    def __init__(self, config: Optional[PreviewConfig] = None,
                 fps_source: Optional[Callable[[], float]] = None,
                 frame_source: Optional[Callable[[], Optional[np.ndarray]]] = None):
        self.config = config or PreviewConfig()
        self._fps_source = fps_source
        self._frame_source = frame_source
        self._sparkle_key = None
        self._sparkle_points = np.zeros((0, 3))
        self._sparkle_rng = np.random.default_rng(7)
        self._window_open = False
        # entity id -> (image_ref, decoded image or None)
        self._textures: Dict[int, Tuple[object, Optional[np.ndarray]]] = {}

    def render(self, output: FrameOutput, status: SceneStatus,
               fps: float = 0.0, camera_image: Optional[np.ndarray] = None) -> np.ndarray:
        """Rasterize one frame into a BGR image."""
        cfg = self.config
        canvas = np.empty((cfg.height, cfg.width, 3), dtype=np.uint8)
        canvas[:] = cfg.background

        self._draw_sparkles(canvas, output)
        self._draw_entities(canvas, output)
        self._draw_star(canvas, output)

        if cfg.show_camera and camera_image is not None:
            self._draw_camera_inset(canvas, camera_image)
        if cfg.show_hud:
            self._draw_hud(canvas, output, status, fps)
        return canvas

    def draw(self, output: FrameOutput, status: SceneStatus) -> None:
        """Render and show one frame."""
        fps = self._fps_source() if self._fps_source else 0.0
        camera_image = self._frame_source() if self._frame_source else None
        cv2.imshow(self.config.window_name, self.render(output, status, fps, camera_image))
        self._window_open = True

    def poll_key(self) -> Optional[str]:
        """Pump the window event loop; returns the pressed key, if any."""
        key = cv2.waitKey(1) & 0xFF
        if key == 255:
            return None
        if key == 27:
            return "esc"
        return chr(key).lower()

    def close(self) -> None:
        if self._window_open:
            cv2.destroyWindow(self.config.window_name)
            self._window_open = False

    # ------------------------------------------------------------------

    def _sync_textures(self, entities: Sequence[Entity]) -> None:
        """Reload the texture cache when the photo set changes."""
        photos = {e.id: e.image_ref for e in entities if e.is_photo}
        unchanged = photos.keys() == self._textures.keys() and all(
            self._textures[i][0] is ref for i, ref in photos.items())
        if unchanged:
            return
        self._textures = {i: (ref, load_texture(ref)) for i, ref in photos.items()}
        logger.debug("Texture cache rebuilt: %d photos, %d readable",
                     len(photos), sum(1 for _, img in self._textures.values() if img is not None))

    def _shade(self, base_rgb: np.ndarray, emissive_rgb: np.ndarray, intensity: np.ndarray) -> np.ndarray:
        lit = base_rgb + emissive_rgb * (intensity[:, None] * self.config.emissive_mix)
        return np.clip(lit, 0, 255)[:, ::-1].astype(int)  # RGB -> BGR

    def _draw_entities(self, canvas: np.ndarray, output: FrameOutput) -> None:
        if len(output) == 0:
            return
        cfg = self.config
        self._sync_textures(output.entities)
        xy, depth, visible = project_points(output.positions, output.camera, cfg.width, cfg.height)
        radii = projected_radius(output.scales * 0.5, depth, output.camera.fov, cfg.height)

        base = np.array([e.base_color for e in output.entities], dtype=float)
        colors = self._shade(base, output.emissive_colors.astype(float), output.emissive_intensity)

        # Painter's order: far to near
        for i in np.argsort(-depth):
            if not visible[i]:
                continue
            center = (int(xy[i, 0]), int(xy[i, 1]))
            radius = max(1, int(radii[i]))
            color = tuple(int(c) for c in colors[i])
            if output.entities[i].is_photo:
                top_left = (center[0] - radius, center[1] - radius)
                bottom_right = (center[0] + radius, center[1] + radius)
                texture = self._textures.get(int(output.ids[i]), (None, None))[1]
                if texture is None or not paste_texture(canvas, texture, top_left, 2 * radius):
                    cv2.rectangle(canvas, top_left, bottom_right, color, -1)
                border = (255, 255, 255) if output.ids[i] == output.grabbed_entity_id else (60, 60, 60)
                cv2.rectangle(canvas, top_left, bottom_right, border, 2)
            else:
                cv2.circle(canvas, center, radius, color, -1, lineType=cv2.LINE_AA)

    def _draw_star(self, canvas: np.ndarray, output: FrameOutput) -> None:
        cfg = self.config
        star = output.star
        xy, depth, visible = project_points(star.position, output.camera, cfg.width, cfg.height)
        if not visible[0]:
            return
        radius = max(2, int(projected_radius(0.8 * star.scale, depth, output.camera.fov, cfg.height)[0]))
        cx, cy = xy[0]
        spin = star.rotation[1]
        angles = spin + np.arange(10) * np.pi / 5
        lengths = np.where(np.arange(10) % 2 == 0, radius, radius * 0.45)
        pts = np.stack([cx + lengths * np.sin(angles), cy - lengths * np.cos(angles)], axis=1)
        color = tuple(int(c) for c in star.color[::-1])
        cv2.fillPoly(canvas, [pts.astype(np.int32)], color, lineType=cv2.LINE_AA)

    def _sparkle_cloud(self, sparkles: SparkleField) -> np.ndarray:
        key = (sparkles.extent, sparkles.count)
        if key != self._sparkle_key:
            extent = np.array(sparkles.extent, dtype=float)
            self._sparkle_points = (self._sparkle_rng.random((sparkles.count, 3)) - 0.5) * extent
            self._sparkle_key = key
        return self._sparkle_points

    def _draw_sparkles(self, canvas: np.ndarray, output: FrameOutput) -> None:
        cfg = self.config
        points = self._sparkle_cloud(output.sparkles).copy()
        points[:, 1] += 0.3 * np.sin(output.elapsed * 0.5 + np.arange(len(points)))
        xy, _, visible = project_points(points, output.camera, cfg.width, cfg.height)
        color = tuple(int(c * 0.6) for c in output.sparkles.color[::-1])
        for (x, y), ok in zip(xy, visible):
            if ok:
                cv2.circle(canvas, (int(x), int(y)), 1, color, -1)

    def _draw_camera_inset(self, canvas: np.ndarray, image: np.ndarray) -> None:
        cfg = self.config
        w = int(cfg.width * cfg.camera_inset_scale)
        h = int(image.shape[0] * w / max(image.shape[1], 1))
        if w <= 0 or h <= 0 or h > cfg.height:
            return
        inset = cv2.resize(cv2.flip(image, 1), (w, h))
        canvas[cfg.height - h:, cfg.width - w:] = inset

    def _draw_hud(self, canvas: np.ndarray, output: FrameOutput, status: SceneStatus, fps: float) -> None:
        cfg = self.config
        lines = [
            "Mode: {}".format(status.mode.name),
            "Gesture: {}".format(status.last_gesture.name),
            "Photo: {} / {}".format(
                "-" if status.grabbed_index is None else status.grabbed_index + 1, status.photo_count),
            "FPS: {:.0f}".format(fps),
        ]
        if status.transition_locked:
            lines.append("(cooldown)")
        for row, text in enumerate(lines):
            cv2.putText(canvas, text, (12, 28 + row * 24), cv2.FONT_HERSHEY_SIMPLEX,
                        cfg.font_scale, cfg.text_color, 1, cv2.LINE_AA)

        help_text = "fist: tree  palm: scatter  pinch: photo  n: next  q: quit"
        cv2.putText(canvas, help_text, (12, cfg.height - 12), cv2.FONT_HERSHEY_SIMPLEX,
                    cfg.font_scale * 0.8, cfg.text_color, 1, cv2.LINE_AA)
