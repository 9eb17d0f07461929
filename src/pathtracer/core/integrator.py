"""Path tracing integrator for Monte Carlo light transport.

Each camera sample follows one path through the scene. At every bounce the
closest hit is found, the material of the hit sphere decides whether the ray
scatters (and how much light survives), and a ray that escapes the scene
picks up the sky gradient. The bounce sequence runs as an explicit loop that
carries the path throughput, so its depth is bounded by max_depth:

    ray_color(ray, depth) = 0                                  if depth <= 0
                          = attenuation * ray_color(scattered, depth - 1)
                          = 0                                  if absorbed
                          = sky(ray)                           on a miss

Samples are summed per pixel into a preallocated accumulation buffer and
averaged when the image is read back. Sample k of pixel (i, j) draws its
random numbers from a generator state hashed from (seed, i, j, k), which
makes a render a pure function of the seed.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.camera import Camera, setup_camera
    >>> from pathtracer.core.integrator import (
    ...     get_image_numpy, render_samples, setup_render_target
    ... )
    >>> camera = Camera()
    >>> setup_camera(camera)
    >>> setup_render_target(camera.image_width, camera.image_height)
    >>> render_samples(num_samples=10, max_depth=10)
    >>> image = get_image_numpy()
"""

from typing import Sequence

import numpy as np
import taichi as ti
import taichi.math as tm

from pathtracer.camera.camera import (
    MAX_IMAGE_HEIGHT,
    MAX_IMAGE_WIDTH,
    get_ray,
    is_camera_initialized,
)
from pathtracer.core.ray import Ray, make_ray
from pathtracer.core.sampler import fork_rng, seed_rng
from pathtracer.errors import ConfigurationError
from pathtracer.geometry.sphere import HitRecord
from pathtracer.materials.dielectric import scatter_dielectric_by_id
from pathtracer.materials.lambertian import scatter_lambertian_by_id
from pathtracer.materials.metal import scatter_metal_by_id
from pathtracer.scene.intersection import T_MAX, T_MIN, closest_hit
from pathtracer.scene.manager import (
    MaterialType,
    get_material_type,
    get_material_type_index,
)

# Type alias for 3D vectors
vec3 = tm.vec3

# =============================================================================
# Sky
# =============================================================================

SKY_WHITE = vec3(1.0, 1.0, 1.0)
SKY_BLUE = vec3(0.5, 0.7, 1.0)


@ti.func
def sky_color(direction: vec3) -> vec3:
    """Background color for a ray that escapes the scene.

    Blends white at the horizon into light blue overhead, driven by the y
    component of the normalized direction.
    """
    unit_dir = tm.normalize(direction)
    a = 0.5 * (unit_dir.y + 1.0)
    return (1.0 - a) * SKY_WHITE + a * SKY_BLUE


# =============================================================================
# Render Target (Accumulation Buffer)
# =============================================================================

# Image dimensions (actual active size)
_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Sum of all sample colors per pixel (preallocated to max size)
_color_sum = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

# Sample count per pixel (preallocated to max size)
_sample_count = ti.field(dtype=ti.i32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

# Flag to track if render target is initialized
_render_target_initialized = ti.field(dtype=ti.i32, shape=())

# Seed of the per-sample random streams
_render_seed = ti.field(dtype=ti.u32, shape=())

# Stream number of the path (bounce) draws, forked from the camera stream
_PATH_STREAM = 1


def setup_render_target(width: int, height: int) -> None:
    """Initialize the render target buffers.

    Sets the active image dimensions and clears the buffers. The buffers are
    preallocated to MAX_IMAGE_WIDTH x MAX_IMAGE_HEIGHT so changing the image
    size never recompiles the kernels.

    Raises:
        ConfigurationError: If the dimensions are not positive or exceed the
            maximum supported size.
    """
    if width <= 0 or height <= 0:
        raise ConfigurationError(f"Image dimensions ({width}x{height}) must be positive")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ConfigurationError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1

    clear_render_target()


def clear_render_target() -> None:
    """Clear the render target buffers to zero."""
    _color_sum.fill(0.0)
    _sample_count.fill(0)


def reset_render_target() -> None:
    """Forget the render target so it must be set up again."""
    _render_target_initialized[None] = 0
    _image_width[None] = 0
    _image_height[None] = 0


def set_seed(seed: int) -> None:
    """Set the seed of the per-sample random streams.

    Sample k of pixel (i, j) always draws from the stream hashed from
    (seed, i, j, k), so the same seed reproduces the same image whatever the
    thread count or batch size.
    """
    _render_seed[None] = seed % 2**32


def get_seed() -> int:
    """Get the seed of the per-sample random streams."""
    return int(_render_seed[None])


def get_image_dimensions() -> tuple[int, int]:
    """Get the current render target dimensions as (width, height)."""
    return int(_image_width[None]), int(_image_height[None])


def _check_render_target_initialized() -> None:
    """Check if render target is initialized and raise if not."""
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


def _check_camera_initialized() -> None:
    if not is_camera_initialized():
        raise RuntimeError("Camera not set up. Call setup_camera() first.")


# =============================================================================
# Material Dispatch
# =============================================================================


@ti.func
def _scatter_material(material_id: ti.i32, ray_in: Ray, rec: HitRecord, rng: ti.u32):
    """Dispatch to the scatter function of the material's type.

    Args:
        material_id: The unified material id from the hit record.
        ray_in: The incoming ray.
        rec: The hit record at the scattering point.
        rng: Generator state of the path.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter, rng).
        Unknown material ids absorb the ray.
    """
    mat_type = get_material_type(material_id)
    type_index = get_material_type_index(material_id)

    # Default values
    scattered_direction = vec3(0.0, 0.0, 0.0)
    attenuation = vec3(0.0, 0.0, 0.0)
    did_scatter = 0
    new_rng = rng

    if mat_type == int(MaterialType.LAMBERTIAN):
        scattered_direction, attenuation, did_scatter, new_rng = scatter_lambertian_by_id(
            type_index, ray_in, rec, rng
        )

    elif mat_type == int(MaterialType.METAL):
        scattered_direction, attenuation, did_scatter, new_rng = scatter_metal_by_id(
            type_index, ray_in, rec, rng
        )

    elif mat_type == int(MaterialType.DIELECTRIC):
        scattered_direction, attenuation, did_scatter, new_rng = scatter_dielectric_by_id(
            type_index, ray_in, rec, rng
        )

    return scattered_direction, attenuation, did_scatter, new_rng


# =============================================================================
# Path Tracing Core
# =============================================================================


@ti.func
def ray_color(ray: Ray, max_depth: ti.i32, rng: ti.u32) -> vec3:
    """Estimate the light arriving along a ray.

    Args:
        ray: The ray to trace.
        max_depth: Maximum number of surface interactions. A path that is
            still bouncing when the budget runs out contributes black.
        rng: Generator state for the scatter draws along the path.

    Returns:
        The estimated color (RGB) for this ray.
    """
    origin = ray.origin
    direction = ray.direction
    path_rng = rng

    color = vec3(0.0, 0.0, 0.0)
    throughput = vec3(1.0, 1.0, 1.0)

    # Active flag for path continuation (no break inside ti.func loops)
    active = 1

    for _ in range(max_depth):
        if active == 1:
            current = make_ray(origin, direction)
            rec = closest_hit(current, T_MIN, T_MAX)

            if rec.hit == 0:
                color = throughput * sky_color(direction)
                active = 0
            else:
                scattered_direction, attenuation, did_scatter, path_rng = _scatter_material(
                    rec.material_id, current, rec, path_rng
                )

                if did_scatter == 0:
                    # Absorbed
                    active = 0
                else:
                    throughput *= attenuation
                    origin = rec.point
                    direction = scattered_direction

    return color


@ti.func
def pixel_sample(i: ti.i32, j: ti.i32, sample: ti.i32, max_depth: ti.i32) -> vec3:
    """Trace camera sample number `sample` of pixel (i, j).

    The camera jitter and the path draw from two streams forked from the
    state hashed out of (seed, i, j, sample).
    """
    camera_rng = seed_rng(_render_seed[None], i, j, sample)
    path_rng = fork_rng(camera_rng, _PATH_STREAM)
    return ray_color(get_ray(i, j, camera_rng), max_depth, path_rng)


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _render_pass(width: ti.i32, height: ti.i32, num_samples: ti.i32, max_depth: ti.i32):
    """Add num_samples samples to every pixel of the accumulation buffer.

    The outer loop over pixels is parallelized; each pixel only writes its
    own buffer cell. Sample indices continue from the pixel's current count,
    so splitting a render into batches does not change the result.
    """
    for i, j in ti.ndrange(width, height):
        first_sample = _sample_count[i, j]
        total = vec3(0.0, 0.0, 0.0)
        for s in range(num_samples):
            color = pixel_sample(i, j, first_sample + s, max_depth)

            # Drop NaN/Inf samples (numerical errors)
            for c in ti.static(range(3)):
                if tm.isnan(color[c]) or tm.isinf(color[c]):
                    color[c] = 0.0

            total += color

        _color_sum[i, j] += total
        _sample_count[i, j] += num_samples


@ti.kernel
def _render_single_pixel(pixel_i: ti.i32, pixel_j: ti.i32, max_depth: ti.i32) -> vec3:
    """Render the pixel's next sample without accumulating it."""
    return pixel_sample(pixel_i, pixel_j, _sample_count[pixel_i, pixel_j], max_depth)


@ti.kernel
def _trace_ray(origin: vec3, direction: vec3, max_depth: ti.i32, seed: ti.u32) -> vec3:
    """Trace one explicit ray through the uploaded scene."""
    return ray_color(make_ray(origin, direction), max_depth, seed_rng(seed, 0, 0, 0))


# =============================================================================
# Public Rendering API
# =============================================================================


def render_samples(num_samples: int = 1, max_depth: int = 10) -> None:
    """Render num_samples more samples for every pixel.

    Samples accumulate; calling this repeatedly refines the same image.

    Raises:
        RuntimeError: If the camera or the render target has not been set up.
    """
    _check_render_target_initialized()
    _check_camera_initialized()

    if num_samples <= 0:
        return

    width, height = get_image_dimensions()
    _render_pass(width, height, num_samples, max_depth)


def render_pixel(pixel_i: int, pixel_j: int, max_depth: int = 10) -> tuple[float, float, float]:
    """Render a single sample for one pixel without touching the buffers.

    Args:
        pixel_i: Pixel column (0 = left).
        pixel_j: Pixel row (0 = top).
        max_depth: Maximum number of bounces.

    Returns:
        Tuple of (R, G, B) linear color values.

    Raises:
        RuntimeError: If the camera or the render target has not been set up.
    """
    _check_render_target_initialized()
    _check_camera_initialized()

    width, height = get_image_dimensions()
    if not (0 <= pixel_i < width and 0 <= pixel_j < height):
        raise IndexError(f"Pixel ({pixel_i}, {pixel_j}) is outside the {width}x{height} image")

    color = _render_single_pixel(pixel_i, pixel_j, max_depth)
    return (float(color[0]), float(color[1]), float(color[2]))


def trace_ray(
    origin: Sequence[float],
    direction: Sequence[float],
    max_depth: int = 10,
    seed: int = 0,
) -> tuple[float, float, float]:
    """Trace a single ray through the uploaded scene and return its color.

    The scatter draws come from a generator seeded with `seed`, so equal
    arguments give equal colors.
    """
    color = _trace_ray(vec3(*origin), vec3(*direction), max_depth, seed % 2**32)
    return (float(color[0]), float(color[1]), float(color[2]))


def get_total_samples() -> int:
    """Get the number of samples accumulated per pixel so far.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    return int(_sample_count[0, 0])


def get_image_numpy() -> np.ndarray:
    """Get the averaged linear image as a NumPy array.

    Row 0 of the result is the top row of the image. Values are not clamped
    or gamma corrected.

    Returns:
        NumPy array of shape (height, width, 3) with dtype float32.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    width, height = get_image_dimensions()

    color_sum = _color_sum.to_numpy()[:width, :height, :]
    counts = _sample_count.to_numpy()[:width, :height]

    image = color_sum / np.maximum(counts, 1)[:, :, np.newaxis]

    # Transpose from (width, height, 3) to (height, width, 3); j = 0 is already the top row
    image = np.transpose(image, (1, 0, 2))

    return image.astype(np.float32)
