"""Scene module for scene description, storage and queries.

Components:
    intersection: Taichi sphere storage and the closest-hit query
    manager: Scene container, material registration and serialization
    presets: Ready-made scenes with matching cameras

Scene data is organized for kernel access:
    - Structure-of-Arrays layout for sphere data
    - Unified material ids mapped to (material type, type-local index)
"""

from .intersection import (
    MAX_SPHERES,
    T_MAX,
    T_MIN,
    add_sphere,
    clear_scene,
    closest_hit,
    get_sphere_count,
)
from .manager import (
    MAX_MATERIALS,
    MaterialType,
    Scene,
    SceneConfig,
    SphereInfo,
    clear_all,
    get_material_count,
    get_material_type,
    get_material_type_index,
    material_from_dict,
    material_to_dict,
    register_material,
)
from .presets import PRESETS, defocus, final, get_preset, materials, two_spheres

__all__ = [
    # Intersection module
    "add_sphere",
    "clear_scene",
    "closest_hit",
    "get_sphere_count",
    "MAX_SPHERES",
    "T_MIN",
    "T_MAX",
    # Manager module
    "Scene",
    "SceneConfig",
    "SphereInfo",
    "MaterialType",
    "MAX_MATERIALS",
    "clear_all",
    "register_material",
    "get_material_count",
    "get_material_type",
    "get_material_type_index",
    "material_to_dict",
    "material_from_dict",
    # Presets module
    "PRESETS",
    "get_preset",
    "two_spheres",
    "materials",
    "defocus",
    "final",
]
