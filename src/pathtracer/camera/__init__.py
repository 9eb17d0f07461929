"""Camera module for view and ray generation.

Components:
    camera: Thin-lens camera with look-at positioning and depth of field

Pixel coordinates are integer (i, j) with (0, 0) at the top-left of the
image. get_ray(i, j, state) jitters the sample inside the pixel for
anti-aliasing; the same generator state always gives the same ray.
"""

from .camera import (
    MAX_IMAGE_HEIGHT,
    MAX_IMAGE_WIDTH,
    Camera,
    get_camera_info,
    get_ray,
    is_camera_initialized,
    reset_camera,
    setup_camera,
)

__all__ = [
    "Camera",
    "MAX_IMAGE_WIDTH",
    "MAX_IMAGE_HEIGHT",
    "setup_camera",
    "is_camera_initialized",
    "reset_camera",
    "get_ray",
    "get_camera_info",
]
