"""Positionable thin-lens camera with depth of field.

The camera builds an orthonormal basis (u, v, w) from its view parameters:
- w: points from look_at toward look_from (opposite view direction)
- u: points right in the image plane
- v: points up in the image plane

The viewport sits at focus_dist in front of the camera center. Pixel (0, 0)
is the top-left pixel; i grows to the right and j grows downward. Rays start
on a defocus disk around the center (or at the center itself when the
defocus angle is zero) and pass through a jittered point inside the pixel.

All ray generation is Taichi-compatible; setup runs on the Python side with
NumPy and copies the derived geometry into Taichi fields.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.camera.camera import Camera, setup_camera, get_ray
    >>> from pathtracer.core.sampler import seed_rng
    >>> camera = Camera(image_width=400, vfov=20.0, look_from=(13.0, 2.0, 3.0))
    >>> setup_camera(camera)
    >>>
    >>> @ti.kernel
    ... def trace_corner():
    ...     rng = seed_rng(ti.u32(0), 0, 0, 0)
    ...     ray = get_ray(0, 0, rng)  # Jittered ray through the top-left pixel
"""

import math
from dataclasses import dataclass

import numpy as np
import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import Ray, make_ray, vec3
from pathtracer.core.sampler import pixel_sample_offset, random_in_unit_disk
from pathtracer.errors import ConfigurationError

# Maximum supported image dimensions (the render target is preallocated)
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

# Vectors shorter than this cannot define a direction
_DEGENERATE_LENGTH = 1e-8


# =============================================================================
# Camera Configuration
# =============================================================================


@dataclass(frozen=True)
class Camera:
    """Configuration for a thin-lens camera.

    Attributes:
        aspect_ratio: Ideal ratio of image width over height.
        image_width: Rendered image width in pixels.
        samples_per_pixel: Number of random samples for each pixel.
        max_depth: Maximum number of ray bounces into the scene.
        vfov: Vertical view angle (field of view) in degrees.
        look_from: Point the camera is looking from.
        look_at: Point the camera is looking at.
        vup: Camera-relative "up" direction.
        defocus_angle: Variation angle of rays through each pixel, in degrees.
            0 gives a pinhole camera with everything in focus.
        focus_dist: Distance from look_from to the plane of perfect focus.
    """

    aspect_ratio: float = 16.0 / 9.0
    image_width: int = 400
    samples_per_pixel: int = 10
    max_depth: int = 10
    vfov: float = 90.0
    look_from: tuple[float, float, float] = (0.0, 0.0, 0.0)
    look_at: tuple[float, float, float] = (0.0, 0.0, -1.0)
    vup: tuple[float, float, float] = (0.0, 1.0, 0.0)
    defocus_angle: float = 0.0
    focus_dist: float = 10.0

    def __post_init__(self) -> None:
        for name in ("look_from", "look_at", "vup"):
            value = getattr(self, name)
            if len(value) != 3:
                raise ConfigurationError(f"{name} must have 3 components, got {len(value)}")
            object.__setattr__(self, name, tuple(float(c) for c in value))

        if self.aspect_ratio <= 0.0:
            raise ConfigurationError(f"aspect_ratio must be positive, got {self.aspect_ratio}")
        if self.image_width <= 0 or self.image_width > MAX_IMAGE_WIDTH:
            raise ConfigurationError(
                f"image_width must be in [1, {MAX_IMAGE_WIDTH}], got {self.image_width}"
            )
        if self.image_height > MAX_IMAGE_HEIGHT:
            raise ConfigurationError(
                f"image height {self.image_height} exceeds the maximum {MAX_IMAGE_HEIGHT}"
            )
        if self.samples_per_pixel < 1:
            raise ConfigurationError(
                f"samples_per_pixel must be at least 1, got {self.samples_per_pixel}"
            )
        if self.max_depth < 0:
            raise ConfigurationError(f"max_depth must be non-negative, got {self.max_depth}")
        if not 0.0 < self.vfov < 180.0:
            raise ConfigurationError(f"vfov must be in (0, 180) degrees, got {self.vfov}")
        if self.defocus_angle < 0.0:
            raise ConfigurationError(
                f"defocus_angle must be non-negative, got {self.defocus_angle}"
            )
        if self.focus_dist <= 0.0:
            raise ConfigurationError(f"focus_dist must be positive, got {self.focus_dist}")

        view = np.subtract(self.look_from, self.look_at)
        if np.linalg.norm(view) < _DEGENERATE_LENGTH:
            raise ConfigurationError("look_from and look_at must be different points")
        if np.linalg.norm(np.cross(self.vup, view)) < _DEGENERATE_LENGTH:
            raise ConfigurationError("vup must not be parallel to the view direction")

    @property
    def image_height(self) -> int:
        """Rendered image height, at least 1 pixel."""
        return max(1, int(self.image_width / self.aspect_ratio))


# =============================================================================
# Taichi Fields for Camera State
# =============================================================================

_camera_center = ti.Vector.field(3, dtype=ti.f32, shape=())

# Orthonormal basis vectors
_camera_u = ti.Vector.field(3, dtype=ti.f32, shape=())  # Right
_camera_v = ti.Vector.field(3, dtype=ti.f32, shape=())  # Up
_camera_w = ti.Vector.field(3, dtype=ti.f32, shape=())  # Backward (opposite view)

# Location of pixel (0, 0) and offsets to the neighboring pixels
_pixel00_loc = ti.Vector.field(3, dtype=ti.f32, shape=())
_pixel_delta_u = ti.Vector.field(3, dtype=ti.f32, shape=())
_pixel_delta_v = ti.Vector.field(3, dtype=ti.f32, shape=())

# Defocus disk horizontal and vertical radius vectors
_defocus_disk_u = ti.Vector.field(3, dtype=ti.f32, shape=())
_defocus_disk_v = ti.Vector.field(3, dtype=ti.f32, shape=())
_defocus_angle = ti.field(dtype=ti.f32, shape=())

_camera_initialized = ti.field(dtype=ti.i32, shape=())


# =============================================================================
# Camera Setup (Python-side)
# =============================================================================


def setup_camera(camera: Camera) -> None:
    """Derive the camera geometry and copy it into the Taichi fields.

    Must be called before any kernel calls get_ray().

    Args:
        camera: The camera configuration.
    """
    image_height = camera.image_height

    theta = math.radians(camera.vfov)
    h = math.tan(theta / 2.0)
    viewport_height = 2.0 * h * camera.focus_dist
    # Use the real pixel ratio rather than the ideal aspect_ratio
    viewport_width = viewport_height * (camera.image_width / image_height)

    center = np.array(camera.look_from, dtype=np.float64)
    look_at = np.array(camera.look_at, dtype=np.float64)
    vup = np.array(camera.vup, dtype=np.float64)

    w = center - look_at
    w = w / np.linalg.norm(w)
    u = np.cross(vup, w)
    u = u / np.linalg.norm(u)
    v = np.cross(w, u)

    viewport_u = viewport_width * u
    viewport_v = viewport_height * -v

    pixel_delta_u = viewport_u / camera.image_width
    pixel_delta_v = viewport_v / image_height

    viewport_upper_left = center - camera.focus_dist * w - viewport_u / 2.0 - viewport_v / 2.0
    pixel00_loc = viewport_upper_left + 0.5 * (pixel_delta_u + pixel_delta_v)

    defocus_radius = camera.focus_dist * math.tan(math.radians(camera.defocus_angle / 2.0))

    _camera_center[None] = center.tolist()
    _camera_u[None] = u.tolist()
    _camera_v[None] = v.tolist()
    _camera_w[None] = w.tolist()
    _pixel00_loc[None] = pixel00_loc.tolist()
    _pixel_delta_u[None] = pixel_delta_u.tolist()
    _pixel_delta_v[None] = pixel_delta_v.tolist()
    _defocus_disk_u[None] = (u * defocus_radius).tolist()
    _defocus_disk_v[None] = (v * defocus_radius).tolist()
    _defocus_angle[None] = camera.defocus_angle
    _camera_initialized[None] = 1


def is_camera_initialized() -> bool:
    """Check whether setup_camera() has been called."""
    return bool(_camera_initialized[None])


def reset_camera() -> None:
    """Mark the camera as not set up."""
    _camera_initialized[None] = 0


# =============================================================================
# Ray Generation (Taichi-compatible)
# =============================================================================


@ti.func
def defocus_disk_sample(rng: ti.u32) -> vec3:
    """Random point on the camera defocus disk."""
    p, _ = random_in_unit_disk(rng)
    return _camera_center[None] + p.x * _defocus_disk_u[None] + p.y * _defocus_disk_v[None]


@ti.func
def get_ray(i: ti.i32, j: ti.i32, rng: ti.u32) -> Ray:
    """Generate a camera ray for pixel (i, j).

    The ray starts on the defocus disk (or at the camera center when the
    defocus angle is zero) and points at a random sample inside the pixel.
    The direction is not normalized.

    Args:
        i: Pixel column (0 = left).
        j: Pixel row (0 = top).
        rng: Generator state for this camera sample. The same state always
            gives the same ray.
    """
    offset, lens_rng = pixel_sample_offset(rng)
    pixel_sample = (
        _pixel00_loc[None]
        + (ti.cast(i, ti.f32) + offset.x) * _pixel_delta_u[None]
        + (ti.cast(j, ti.f32) + offset.y) * _pixel_delta_v[None]
    )

    origin = _camera_center[None]
    if _defocus_angle[None] > 0.0:
        origin = defocus_disk_sample(lens_rng)

    return make_ray(origin, pixel_sample - origin)


# =============================================================================
# Utility Functions
# =============================================================================


def get_camera_info() -> dict[str, tuple[float, float, float]]:
    """Get current camera state for debugging.

    Returns:
        Dictionary with center, u, v, w, pixel00, pixel_delta_u,
        pixel_delta_v, defocus_disk_u and defocus_disk_v.
    """
    fields = {
        "center": _camera_center,
        "u": _camera_u,
        "v": _camera_v,
        "w": _camera_w,
        "pixel00": _pixel00_loc,
        "pixel_delta_u": _pixel_delta_u,
        "pixel_delta_v": _pixel_delta_v,
        "defocus_disk_u": _defocus_disk_u,
        "defocus_disk_v": _defocus_disk_v,
    }
    info = {}
    for name, field in fields.items():
        value = field[None]
        info[name] = (float(value[0]), float(value[1]), float(value[2]))
    return info
