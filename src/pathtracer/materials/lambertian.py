"""Lambertian (ideal diffuse) material implementation.

A Lambertian surface scatters light around the surface normal. The scatter
direction is the normal plus a random unit vector, which yields a
cosine-weighted distribution over the hemisphere without building a local
frame. Because the sampling already follows the cosine term, the attenuation
for every scattered ray is simply the albedo.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.materials.lambertian import scatter_lambertian
    >>> # Inside a @ti.kernel or @ti.func:
    >>> # direction, attenuation, did_scatter, rng = scatter_lambertian(albedo, ray_in, rec, rng)
"""

from dataclasses import dataclass
from typing import Sequence

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import Ray
from pathtracer.core.sampler import near_zero, random_unit_vector
from pathtracer.errors import ConfigurationError
from pathtracer.geometry.sphere import MAX_SPHERES, HitRecord


vec3 = tm.vec3


def validate_albedo(albedo: Sequence[float]) -> tuple[float, float, float]:
    """Check an RGB albedo and return it as a float triple.

    Raises:
        ConfigurationError: If the albedo does not have three components or any
            component lies outside [0, 1].
    """
    if len(albedo) != 3:
        raise ConfigurationError(f"Albedo must have 3 components, got {len(albedo)}")
    for i, component in enumerate(albedo):
        if not 0.0 <= component <= 1.0:
            raise ConfigurationError(
                f"Albedo component {i} = {component} is outside [0, 1]. "
                "This would violate energy conservation."
            )
    return (float(albedo[0]), float(albedo[1]), float(albedo[2]))


@dataclass(frozen=True)
class Lambertian:
    """Lambertian (ideal diffuse) material.

    Attributes:
        albedo: The diffuse reflectance color (RGB, each component in [0, 1]).
    """

    albedo: tuple[float, float, float]

    def __post_init__(self) -> None:
        object.__setattr__(self, "albedo", validate_albedo(self.albedo))


@ti.func
def scatter_lambertian(albedo: vec3, ray_in: Ray, rec: HitRecord, rng: ti.u32):
    """Scatter a ray off a Lambertian surface.

    The scattered ray starts at rec.point and travels along
    rec.normal + (random unit vector). If that sum is degenerate (every
    component near zero) the normal itself is used instead.

    Args:
        albedo: The diffuse reflectance color (RGB).
        ray_in: The incoming ray. Unused; diffuse scattering ignores it.
        rec: The hit record at the scattering point.
        rng: Generator state.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter, rng) where
        attenuation equals albedo, did_scatter is always 1 and rng is the
        advanced generator state.
    """
    unit, new_rng = random_unit_vector(rng)
    scattered_direction = rec.normal + unit

    # Catch degenerate scatter direction
    if near_zero(scattered_direction) == 1:
        scattered_direction = rec.normal

    # Diffuse surfaces never absorb
    did_scatter = 1

    return scattered_direction, albedo, did_scatter, new_rng


# =============================================================================
# Registry (parameters read by kernels through a type-local index)
# =============================================================================

# Registry capacity: at most one material per sphere
MAX_LAMBERTIAN_MATERIALS = MAX_SPHERES

# Parameter storage
lambertian_albedos = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LAMBERTIAN_MATERIALS)
num_lambertian_materials = ti.field(dtype=ti.i32, shape=())


def clear_lambertian_materials() -> None:
    """Empty the Lambertian registry.

    Only the count is reset; stale entries are overwritten by later
    registrations.
    """
    num_lambertian_materials[None] = 0


def add_lambertian_material(albedo: Sequence[float]) -> int:
    """Register Lambertian material parameters.

    Args:
        albedo: The diffuse reflectance color as (R, G, B).

    Returns:
        The type-local index of the added material.

    Raises:
        RuntimeError: If the registry is full.
        ConfigurationError: If any albedo component is outside [0, 1].
    """
    r, g, b = validate_albedo(albedo)

    idx = num_lambertian_materials[None]
    if idx >= MAX_LAMBERTIAN_MATERIALS:
        raise RuntimeError(
            f"Maximum number of Lambertian materials ({MAX_LAMBERTIAN_MATERIALS}) exceeded"
        )

    lambertian_albedos[idx] = vec3(r, g, b)
    num_lambertian_materials[None] = idx + 1
    return idx


def get_lambertian_material_count() -> int:
    """Number of registered Lambertian materials."""
    return int(num_lambertian_materials[None])


@ti.func
def get_lambertian_albedo(material_idx: ti.i32) -> vec3:
    """Get the albedo for a Lambertian material by index."""
    return lambertian_albedos[material_idx]


@ti.func
def scatter_lambertian_by_id(material_idx: ti.i32, ray_in: Ray, rec: HitRecord, rng: ti.u32):
    """Scatter off the registered Lambertian material at material_idx."""
    return scatter_lambertian(get_lambertian_albedo(material_idx), ray_in, rec, rng)
