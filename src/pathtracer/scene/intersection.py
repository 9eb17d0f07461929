"""Scene-level closest-hit query.

The scene stores its spheres in Taichi fields using a Structure-of-Arrays
layout. Each sphere carries the unified material id of the material it owns.
closest_hit() scans every sphere once, shrinking the search interval each time
a nearer hit is found; there is no acceleration structure.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.scene.intersection import add_sphere, clear_scene, closest_hit
    >>> clear_scene()
    >>> add_sphere(vec3(0, 0, -1), 0.5, material_id=0)
    >>> # Use closest_hit within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import Ray
from pathtracer.geometry.sphere import MAX_SPHERES, HitRecord, Sphere, hit_sphere


vec3 = tm.vec3

# Lower bound of accepted hits; keeps scattered rays from re-hitting the
# surface they start on (shadow acne).
T_MIN = 0.001

# Stand-in for +infinity (largest finite f32)
T_MAX = 3.4e38

# Sphere storage: Structure of Arrays layout
sphere_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=ti.f32, shape=MAX_SPHERES)
sphere_material_ids = ti.field(dtype=ti.i32, shape=MAX_SPHERES)
num_spheres = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Clear all spheres from the scene.

    Resets the sphere count to zero. The field data is not cleared but will
    be overwritten when new spheres are added.
    """
    num_spheres[None] = 0


def add_sphere(center: vec3, radius: float, material_id: int = 0) -> int:
    """Add a sphere to the scene storage.

    Args:
        center: The center point of the sphere.
        radius: The radius of the sphere (negative for inward-facing shells).
        material_id: The unified material id the sphere owns.

    Returns:
        The index of the added sphere.

    Raises:
        RuntimeError: If the maximum number of spheres is exceeded.
    """
    idx = num_spheres[None]
    if idx >= MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")
    sphere_centers[idx] = center
    sphere_radii[idx] = radius
    sphere_material_ids[idx] = material_id
    num_spheres[None] = idx + 1
    return idx


def get_sphere_count() -> int:
    """Get the number of spheres in the scene."""
    return int(num_spheres[None])


@ti.func
def _with_material(rec: HitRecord, material_id: ti.i32) -> HitRecord:
    """Copy a hit record, tagging it with the material id of the hit sphere."""
    return HitRecord(
        hit=rec.hit,
        t=rec.t,
        point=rec.point,
        normal=rec.normal,
        front_face=rec.front_face,
        material_id=material_id,
    )


@ti.func
def _make_miss_record() -> HitRecord:
    """Create a HitRecord indicating no intersection."""
    return HitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        front_face=0,
        material_id=-1,
    )


@ti.func
def closest_hit(ray: Ray, t_min: ti.f32, t_max: ti.f32) -> HitRecord:
    """Find the nearest sphere hit by the ray within (t_min, t_max).

    Args:
        ray: The ray to trace.
        t_min: Hits at or below this distance are ignored.
        t_max: Hits at or beyond this distance are ignored.

    Returns:
        The HitRecord of the closest intersection (with material_id set), or a
        miss record (hit == 0, material_id == -1).
    """
    closest_t = t_max
    result = _make_miss_record()

    for i in range(num_spheres[None]):
        sphere = Sphere(center=sphere_centers[i], radius=sphere_radii[i])
        rec = hit_sphere(ray, sphere, t_min, closest_t)
        if rec.hit == 1:
            closest_t = rec.t
            result = _with_material(rec, sphere_material_ids[i])

    return result

