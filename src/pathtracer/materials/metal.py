"""Metal (specular reflective) material implementation.

Metals reflect the incoming direction about the surface normal:

    R = I - 2(I . N)N

and then perturb the reflected direction by ``fuzz`` times a random unit
vector. A fuzz of 0 gives a perfect mirror. Rays whose perturbed direction
ends up below the surface are absorbed.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.materials.metal import scatter_metal
    >>> # Inside a @ti.kernel or @ti.func:
    >>> # direction, attenuation, did_scatter, rng = scatter_metal(albedo, fuzz, ray_in, rec, rng)
"""

from dataclasses import dataclass
from typing import Sequence

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import Ray, reflect, unit_direction
from pathtracer.core.sampler import random_unit_vector
from pathtracer.geometry.sphere import MAX_SPHERES, HitRecord
from pathtracer.materials.lambertian import validate_albedo


vec3 = tm.vec3


def clamp_fuzz(fuzz: float) -> float:
    """Clamp a fuzz value into [0, 1]."""
    return min(max(float(fuzz), 0.0), 1.0)


@dataclass(frozen=True)
class Metal:
    """Metal (specular reflective) material.

    Attributes:
        albedo: The reflective color (RGB, each component in [0, 1]).
        fuzz: Size of the random perturbation of the reflected ray, clamped
            to [0, 1] at construction. 0 = perfect mirror.
    """

    albedo: tuple[float, float, float]
    fuzz: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "albedo", validate_albedo(self.albedo))
        object.__setattr__(self, "fuzz", clamp_fuzz(self.fuzz))


@ti.func
def scatter_metal(albedo: vec3, fuzz: ti.f32, ray_in: Ray, rec: HitRecord, rng: ti.u32):
    """Compute the scattered direction for a metal surface.

    Args:
        albedo: The reflective color (RGB).
        fuzz: The reflection fuzz in [0, 1].
        ray_in: The incoming ray (its direction is normalized before reflecting).
        rec: The hit record at the scattering point.
        rng: Generator state.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter, rng) where:
        - scattered_direction: reflected + fuzz * (random unit vector), not
          normalized.
        - attenuation: The albedo.
        - did_scatter: 1 if the direction points away from the surface,
          0 if the ray is absorbed.
        - rng: The advanced generator state.
    """
    reflected = reflect(unit_direction(ray_in), rec.normal)
    unit, new_rng = random_unit_vector(rng)
    scattered_direction = reflected + fuzz * unit

    did_scatter = 0
    if tm.dot(scattered_direction, rec.normal) > 0.0:
        did_scatter = 1

    return scattered_direction, albedo, did_scatter, new_rng


# =============================================================================
# Registry (parameters read by kernels through a type-local index)
# =============================================================================

# Registry capacity: at most one material per sphere
MAX_METAL_MATERIALS = MAX_SPHERES

# Parameter storage
metal_albedos = ti.Vector.field(3, dtype=ti.f32, shape=MAX_METAL_MATERIALS)
metal_fuzzes = ti.field(dtype=ti.f32, shape=MAX_METAL_MATERIALS)
num_metal_materials = ti.field(dtype=ti.i32, shape=())


def clear_metal_materials() -> None:
    """Empty the metal registry.

    Only the count is reset; stale entries are overwritten by later
    registrations.
    """
    num_metal_materials[None] = 0


def add_metal_material(albedo: Sequence[float], fuzz: float = 0.0) -> int:
    """Register metal material parameters.

    Args:
        albedo: The reflective color as (R, G, B). Each component must be in [0, 1].
        fuzz: The reflection fuzz. Values outside [0, 1] are clamped.

    Returns:
        The type-local index of the added material.

    Raises:
        RuntimeError: If the registry is full.
        ConfigurationError: If any albedo component is outside [0, 1].
    """
    r, g, b = validate_albedo(albedo)

    idx = num_metal_materials[None]
    if idx >= MAX_METAL_MATERIALS:
        raise RuntimeError(f"Maximum number of metal materials ({MAX_METAL_MATERIALS}) exceeded")

    metal_albedos[idx] = vec3(r, g, b)
    metal_fuzzes[idx] = clamp_fuzz(fuzz)
    num_metal_materials[None] = idx + 1
    return idx


def get_metal_material_count() -> int:
    """Number of registered metal materials."""
    return int(num_metal_materials[None])


def get_metal_fuzz_value(material_idx: int) -> float:
    """Read back the stored fuzz of a metal material from Python."""
    return float(metal_fuzzes[material_idx])


@ti.func
def get_metal_albedo(material_idx: ti.i32) -> vec3:
    """Get the albedo for a metal material by index."""
    return metal_albedos[material_idx]


@ti.func
def get_metal_fuzz(material_idx: ti.i32) -> ti.f32:
    """Get the fuzz for a metal material by index."""
    return metal_fuzzes[material_idx]


@ti.func
def scatter_metal_by_id(material_idx: ti.i32, ray_in: Ray, rec: HitRecord, rng: ti.u32):
    """Scatter off the registered metal material at material_idx.

    Convenience function that looks up the albedo and fuzz from the
    material registry and calls scatter_metal.
    """
    albedo = get_metal_albedo(material_idx)
    fuzz = get_metal_fuzz(material_idx)
    return scatter_metal(albedo, fuzz, ray_in, rec, rng)
