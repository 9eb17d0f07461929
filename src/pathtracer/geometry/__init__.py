"""Geometry module for the sphere primitive.

Components:
    sphere: Sphere data, hit records and ray-sphere intersection

Intersection routines are Taichi functions returning a HitRecord whose hit
flag is 0 on a miss.
"""

from .sphere import HitRecord, Sphere, hit_sphere, make_sphere

__all__ = [
    "Sphere",
    "HitRecord",
    "hit_sphere",
    "make_sphere",
]
