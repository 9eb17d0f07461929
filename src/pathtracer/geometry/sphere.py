"""Sphere primitive and ray-sphere intersection.

The intersection solves the ray-sphere quadratic in its half-b form:

    a = dot(d, d)
    half_b = dot(oc, d)
    c = dot(oc, oc) - radius^2
    discriminant = half_b^2 - a * c

where oc = origin - center. The nearer root is tried first and the farther
one only when the nearer root falls outside the open interval (t_min, t_max).

A negative radius is allowed: it flips the outward normal so the sphere acts
as an inward-facing surface, which is how hollow glass shells are modelled.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.geometry.sphere import Sphere, hit_sphere
    >>> # Use hit_sphere within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import Ray, ray_at, vec3

# Maximum number of spheres in a scene. Every sphere owns one material, so the
# material registries share this capacity.
MAX_SPHERES = 1024


@ti.dataclass
class Sphere:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere (vec3).
        radius: The radius of the sphere. Negative radii produce an
            inward-facing surface.
    """

    center: vec3
    radius: ti.f32


@ti.dataclass
class HitRecord:
    """Record of a ray-sphere intersection.

    Attributes:
        hit: Whether the ray intersected the sphere (1 if hit, 0 if miss).
        t: The parameter value along the ray where intersection occurred.
        point: The 3D point where the ray intersected the sphere.
        normal: The unit surface normal at the hit point, always oriented
            against the incoming ray.
        front_face: 1 if the ray struck the outward-facing side, 0 otherwise.
        material_id: The scene material id of the surface that was hit, or -1
            when the record did not come from a scene query.

    All fields other than ``hit`` are only meaningful when hit == 1.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32
    material_id: ti.i32


@ti.func
def hit_sphere(ray: Ray, sphere: Sphere, t_min: ti.f32, t_max: ti.f32) -> HitRecord:
    """Test for ray-sphere intersection within the open interval (t_min, t_max).

    Args:
        ray: The ray to test. Its direction need not be normalized.
        sphere: The sphere to test intersection against.
        t_min: Lower bound (exclusive) of accepted t values.
        t_max: Upper bound (exclusive) of accepted t values.

    Returns:
        A HitRecord. Check the hit field to determine if an intersection
        occurred.
    """
    oc = ray.origin - sphere.center
    a = tm.dot(ray.direction, ray.direction)
    half_b = tm.dot(oc, ray.direction)
    c = tm.dot(oc, oc) - sphere.radius * sphere.radius
    discriminant = half_b * half_b - a * c

    # Taichi requires outer-scope declaration of branch results
    did_hit = 0
    hit_t = 0.0
    hit_point = vec3(0.0, 0.0, 0.0)
    hit_normal = vec3(0.0, 0.0, 0.0)
    is_front_face = 0

    if discriminant >= 0.0:
        sqrt_d = ti.sqrt(discriminant)

        # Nearest root first
        root = (-half_b - sqrt_d) / a
        valid = (root > t_min) and (root < t_max)
        if not valid:
            root = (-half_b + sqrt_d) / a
            valid = (root > t_min) and (root < t_max)

        if valid:
            did_hit = 1
            hit_t = root
            hit_point = ray_at(ray, root)
            outward_normal = (hit_point - sphere.center) / sphere.radius

            if tm.dot(ray.direction, outward_normal) < 0.0:
                is_front_face = 1
                hit_normal = outward_normal
            else:
                is_front_face = 0
                hit_normal = -outward_normal

    return HitRecord(
        hit=did_hit,
        t=hit_t,
        point=hit_point,
        normal=hit_normal,
        front_face=is_front_face,
        material_id=-1,
    )


@ti.func
def make_sphere(center: vec3, radius: ti.f32) -> Sphere:
    """Create a sphere from center and radius inside a kernel."""
    return Sphere(center=center, radius=radius)
