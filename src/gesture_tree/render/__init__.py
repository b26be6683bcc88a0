"""Render surfaces. The OpenCV preview is imported on demand."""
from .projection import camera_basis, project_points, projected_radius

__all__ = ["camera_basis", "project_points", "projected_radius"]
