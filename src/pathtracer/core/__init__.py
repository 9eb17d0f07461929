"""Core rendering module.

Components:
    ray: Ray data structure, reflection, refraction and Schlick reflectance
    sampler: Seedable generator state, random draws in the unit sphere and disk,
        pixel jitter
    integrator: Path tracing loop, material dispatch and accumulation buffer
    renderer: Python-facing render loop with progress reporting

All compute-intensive operations run in Taichi kernels.
"""

from .ray import (
    Ray,
    length_squared,
    make_ray,
    ray_at,
    reflect,
    refract,
    schlick_reflectance,
    unit_direction,
    vec3,
)
from .sampler import (
    fork_rng,
    hash_u32,
    near_zero,
    next_float,
    pixel_sample_offset,
    random_float,
    random_in_unit_disk,
    random_in_unit_sphere,
    random_unit_vector,
    seed_rng,
)

# Note: integrator and renderer are NOT imported here to avoid circular imports.
# Import directly from pathtracer.core.integrator or pathtracer.core.renderer.

__all__ = [
    "Ray",
    "ray_at",
    "make_ray",
    "unit_direction",
    "vec3",
    "length_squared",
    "reflect",
    "refract",
    "schlick_reflectance",
    "fork_rng",
    "hash_u32",
    "near_zero",
    "next_float",
    "seed_rng",
    "pixel_sample_offset",
    "random_float",
    "random_in_unit_sphere",
    "random_unit_vector",
    "random_in_unit_disk",
]
