"""Dielectric (glass/water) material implementation.

This module implements transparent materials that both reflect and refract.

Key physics:
    - Snell's law for refraction: n1 * sin(theta1) = n2 * sin(theta2)
    - Schlick's approximation for Fresnel reflectance
    - Total internal reflection when ratio * sin(theta) > 1

The material randomly chooses between reflection and refraction based on
the Schlick reflectance, which grows toward grazing angles. Dielectrics never
absorb: the attenuation is always white.

A refractive index below 1 is allowed; it models a bubble of a thinner medium
(for example air inside water) when used on an inner surface.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.materials.dielectric import scatter_dielectric
    >>> # Inside a @ti.kernel or @ti.func:
    >>> # direction, attenuation, did_scatter, rng = scatter_dielectric(ior, ray_in, rec, rng)
"""

from dataclasses import dataclass

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import Ray, reflect, refract, schlick_reflectance, unit_direction
from pathtracer.core.sampler import next_float
from pathtracer.errors import ConfigurationError
from pathtracer.geometry.sphere import MAX_SPHERES, HitRecord


vec3 = tm.vec3


def validate_refractive_index(refractive_index: float) -> float:
    """Check that a refractive index is strictly positive."""
    if not refractive_index > 0.0:
        raise ConfigurationError(
            f"Refractive index = {refractive_index} must be greater than 0."
        )
    return float(refractive_index)


@dataclass(frozen=True)
class Dielectric:
    """Dielectric (glass/water) material.

    Attributes:
        refractive_index: Index of refraction relative to the surrounding
            medium. Common values: water 1.33, glass 1.5, diamond 2.4.
    """

    refractive_index: float = 1.5

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "refractive_index", validate_refractive_index(self.refractive_index)
        )


@ti.func
def _refraction_ratio(ior: ti.f32, front_face: ti.i32) -> ti.f32:
    """Entering the medium divides by its index, leaving it multiplies."""
    ratio = ior
    if front_face == 1:
        ratio = 1.0 / ior
    return ratio


@ti.func
def _cos_theta(ray_in: Ray, rec: HitRecord) -> ti.f32:
    return tm.min(tm.dot(-unit_direction(ray_in), rec.normal), 1.0)


@ti.func
def will_reflect(ior: ti.f32, ray_in: Ray, rec: HitRecord) -> ti.i32:
    """Determine if total internal reflection will occur.

    Returns:
        1 if no refraction is possible at this hit, 0 otherwise.
    """
    cos_theta = _cos_theta(ray_in, rec)
    sin_theta = ti.sqrt(1.0 - cos_theta * cos_theta)

    result = 0
    if _refraction_ratio(ior, rec.front_face) * sin_theta > 1.0:
        result = 1
    return result


@ti.func
def fresnel_reflectance(ior: ti.f32, ray_in: Ray, rec: HitRecord) -> ti.f32:
    """Schlick reflectance for this hit, the probability of choosing reflection."""
    return schlick_reflectance(_cos_theta(ray_in, rec), ior)


@ti.func
def scatter_dielectric(ior: ti.f32, ray_in: Ray, rec: HitRecord, rng: ti.u32):
    """Compute the scattered direction for a dielectric surface.

    Reflects when refraction is impossible (will_reflect) or when a uniform
    draw falls below the Schlick reflectance (fresnel_reflectance); refracts
    otherwise.

    Args:
        ior: Index of refraction of the material.
        ray_in: The incoming ray.
        rec: The hit record at the scattering point. Its front_face flag
            decides the direction of the refraction ratio.
        rng: Generator state.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter, rng) where:
        - scattered_direction: The reflected or refracted direction.
        - attenuation: White; the medium does not absorb.
        - did_scatter: Always 1.
        - rng: The advanced generator state.
    """
    attenuation = vec3(1.0, 1.0, 1.0)
    unit_dir = unit_direction(ray_in)

    # One draw per scatter, whichever way the ray goes
    u, new_rng = next_float(rng)

    scattered_direction = vec3(0.0, 0.0, 0.0)
    if will_reflect(ior, ray_in, rec) == 1 or u < fresnel_reflectance(ior, ray_in, rec):
        scattered_direction = reflect(unit_dir, rec.normal)
    else:
        refraction_ratio = _refraction_ratio(ior, rec.front_face)
        scattered_direction = refract(unit_dir, rec.normal, refraction_ratio)

    did_scatter = 1

    return scattered_direction, attenuation, did_scatter, new_rng


# =============================================================================
# Registry (parameters read by kernels through a type-local index)
# =============================================================================

# Registry capacity: at most one material per sphere
MAX_DIELECTRIC_MATERIALS = MAX_SPHERES

# Parameter storage
dielectric_iors = ti.field(dtype=ti.f32, shape=MAX_DIELECTRIC_MATERIALS)
num_dielectric_materials = ti.field(dtype=ti.i32, shape=())


def clear_dielectric_materials() -> None:
    """Empty the dielectric registry.

    Only the count is reset; stale entries are overwritten by later
    registrations.
    """
    num_dielectric_materials[None] = 0


def add_dielectric_material(refractive_index: float = 1.5) -> int:
    """Register dielectric material parameters.

    Args:
        refractive_index: Index of refraction. Default is 1.5 (typical glass).

    Returns:
        The type-local index of the added material.

    Raises:
        RuntimeError: If the registry is full.
        ConfigurationError: If the refractive index is not positive.
    """
    ior = validate_refractive_index(refractive_index)

    idx = num_dielectric_materials[None]
    if idx >= MAX_DIELECTRIC_MATERIALS:
        raise RuntimeError(
            f"Maximum number of dielectric materials ({MAX_DIELECTRIC_MATERIALS}) exceeded"
        )

    dielectric_iors[idx] = ior
    num_dielectric_materials[None] = idx + 1
    return idx


def get_dielectric_material_count() -> int:
    """Number of registered dielectric materials."""
    return int(num_dielectric_materials[None])


@ti.func
def get_dielectric_ior(material_idx: ti.i32) -> ti.f32:
    """Get the index of refraction for a dielectric material by index."""
    return dielectric_iors[material_idx]


@ti.func
def scatter_dielectric_by_id(material_idx: ti.i32, ray_in: Ray, rec: HitRecord, rng: ti.u32):
    """Scatter off the registered dielectric material at material_idx."""
    return scatter_dielectric(get_dielectric_ior(material_idx), ray_in, rec, rng)
