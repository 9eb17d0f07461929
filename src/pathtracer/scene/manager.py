"""Scene container coordinating spheres and the materials they own.

A Scene is an ordered, caller-owned list of spheres. Each sphere owns exactly
one material value (Lambertian, Metal or Dielectric). Before rendering, the
scene is uploaded into the Taichi storage used by the kernels:

- every sphere's material is registered in its type-specific registry,
- a unified material id is assigned and mapped to (material_type, type_index),
- the sphere is appended to the sphere storage with that material id.

The path tracer dispatches on the material type of the id carried by each
hit record (a tagged union over the closed set of material variants).

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.materials import Lambertian
    >>> from pathtracer.scene.manager import Scene
    >>> scene = Scene()
    >>> scene.add_sphere((0, 0, -1), 0.5, Lambertian((0.8, 0.3, 0.3)))
    >>> scene.upload()
"""

import json
import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Any, Sequence

import taichi as ti
import taichi.math as tm

from pathtracer.errors import ConfigurationError
from pathtracer.materials import Material
from pathtracer.materials.dielectric import (
    MAX_DIELECTRIC_MATERIALS,
    Dielectric,
    add_dielectric_material,
    clear_dielectric_materials,
)
from pathtracer.materials.lambertian import (
    MAX_LAMBERTIAN_MATERIALS,
    Lambertian,
    add_lambertian_material,
    clear_lambertian_materials,
)
from pathtracer.materials.metal import (
    MAX_METAL_MATERIALS,
    Metal,
    add_metal_material,
    clear_metal_materials,
)
from pathtracer.scene.intersection import (
    MAX_SPHERES,
    add_sphere,
    clear_scene,
    get_sphere_count,
)

logger = logging.getLogger(__name__)

# Type alias for 3D vectors
vec3 = tm.vec3


class MaterialType(IntEnum):
    """Enumeration of supported material types.

    Used for material dispatch in the path tracer to determine which
    scattering function to call.
    """

    LAMBERTIAN = 0
    METAL = 1
    DIELECTRIC = 2


# Maximum number of materials across all types
MAX_MATERIALS = MAX_SPHERES

# Capacity of each type registry, checked when spheres are added to a Scene
REGISTRY_CAPACITY = {
    Lambertian: MAX_LAMBERTIAN_MATERIALS,
    Metal: MAX_METAL_MATERIALS,
    Dielectric: MAX_DIELECTRIC_MATERIALS,
}

# material_types[i] stores the MaterialType for material_id i
material_types = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
# material_type_indices[i] stores the type-local index for material_id i
# (e.g., if material_id 5 is the 2nd metal material, material_type_indices[5] = 1)
material_type_indices = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def _clear_material_tracking() -> None:
    """Clear the material tracking fields."""
    num_materials[None] = 0


def clear_all() -> None:
    """Clear sphere storage, every material registry and the id mapping."""
    clear_scene()
    clear_lambertian_materials()
    clear_metal_materials()
    clear_dielectric_materials()
    _clear_material_tracking()


@ti.func
def get_material_type(material_id: ti.i32) -> ti.i32:
    """Get the material type for a given material id.

    Returns:
        The material type as an integer (see MaterialType), or -1 for
        invalid material ids.
    """
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_types[material_id]
    return result


@ti.func
def get_material_type_index(material_id: ti.i32) -> ti.i32:
    """Get the type-local index for a given material id.

    This is the index into the type-specific material arrays
    (e.g., lambertian_albedos[type_index]).

    Returns:
        The type-local index, or -1 for invalid material ids.
    """
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_type_indices[material_id]
    return result


def register_material(material: Material) -> int:
    """Register a material in its type registry and assign a unified id.

    Args:
        material: A Lambertian, Metal or Dielectric value.

    Returns:
        The unified material id.

    Raises:
        RuntimeError: If a registry is full.
        ConfigurationError: If material is not a known material type.
    """
    material_id = num_materials[None]
    if material_id >= MAX_MATERIALS:
        raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

    if isinstance(material, Lambertian):
        material_type = MaterialType.LAMBERTIAN
        type_index = add_lambertian_material(material.albedo)
    elif isinstance(material, Metal):
        material_type = MaterialType.METAL
        type_index = add_metal_material(material.albedo, material.fuzz)
    elif isinstance(material, Dielectric):
        material_type = MaterialType.DIELECTRIC
        type_index = add_dielectric_material(material.refractive_index)
    else:
        raise ConfigurationError(f"Unsupported material: {material!r}")

    material_types[material_id] = int(material_type)
    material_type_indices[material_id] = type_index
    num_materials[None] = material_id + 1
    return material_id


def get_material_count() -> int:
    """Get the number of registered materials."""
    return int(num_materials[None])


# =============================================================================
# Material Serialization
# =============================================================================


def material_to_dict(material: Material) -> dict[str, Any]:
    """Export a material to a JSON-friendly dictionary."""
    if isinstance(material, Lambertian):
        return {"type": "lambertian", "albedo": list(material.albedo)}
    if isinstance(material, Metal):
        return {"type": "metal", "albedo": list(material.albedo), "fuzz": material.fuzz}
    if isinstance(material, Dielectric):
        return {"type": "dielectric", "refractive_index": material.refractive_index}
    raise ConfigurationError(f"Unsupported material: {material!r}")


def material_from_dict(data: dict[str, Any]) -> Material:
    """Build a material from a dictionary produced by material_to_dict().

    Raises:
        ConfigurationError: If the type is unknown or a parameter is invalid.
    """
    mat_type = str(data.get("type", "")).lower()
    if mat_type == "lambertian":
        return Lambertian(tuple(data.get("albedo", (0.5, 0.5, 0.5))))
    if mat_type == "metal":
        return Metal(tuple(data.get("albedo", (0.8, 0.8, 0.8))), data.get("fuzz", 0.0))
    if mat_type == "dielectric":
        return Dielectric(data.get("refractive_index", 1.5))
    raise ConfigurationError(f"Unknown material type: {mat_type!r}")


# =============================================================================
# Scene Description
# =============================================================================


def _as_point(values: Sequence[float], name: str) -> tuple[float, float, float]:
    if len(values) != 3:
        raise ConfigurationError(f"{name} must have 3 components, got {len(values)}")
    return (float(values[0]), float(values[1]), float(values[2]))


@dataclass(frozen=True)
class SphereInfo:
    """A sphere in the scene together with the material it owns.

    Attributes:
        center: The center of the sphere.
        radius: The radius of the sphere. Negative radii flip the normal to
            build hollow shells; zero is rejected.
        material: The material of the sphere.
    """

    center: tuple[float, float, float]
    radius: float
    material: Material

    def __post_init__(self) -> None:
        object.__setattr__(self, "center", _as_point(self.center, "Sphere center"))
        if self.radius == 0.0:
            raise ConfigurationError("Sphere radius must be non-zero")
        if not isinstance(self.material, (Lambertian, Metal, Dielectric)):
            raise ConfigurationError(f"Unsupported material: {self.material!r}")
        object.__setattr__(self, "radius", float(self.radius))


@dataclass
class SceneConfig:
    """Configuration for scene serialization.

    Attributes:
        spheres: List of sphere configurations, each with an inline material.
    """

    spheres: list[dict[str, Any]] = field(default_factory=list)


class Scene:
    """Ordered collection of spheres, each owning its material.

    The scene is plain Python data until upload() copies it into the Taichi
    storage read by the kernels. Rendering never modifies it.

    Example:
        >>> scene = Scene()
        >>> scene.add_lambertian_sphere((0, -100.5, -1), 100, (0.8, 0.8, 0.0))
        >>> scene.add_dielectric_sphere((-1, 0, -1), 0.5, 1.5)
        >>> scene.add_metal_sphere((1, 0, -1), 0.5, (0.8, 0.6, 0.2), fuzz=0.3)
    """

    def __init__(self, spheres: Iterable[SphereInfo] = ()) -> None:
        """Initialize a scene, optionally from existing spheres."""
        self.spheres: list[SphereInfo] = []
        for sphere in spheres:
            self.add(sphere)

    def __len__(self) -> int:
        return len(self.spheres)

    def __iter__(self) -> Iterator[SphereInfo]:
        return iter(self.spheres)

    def __repr__(self) -> str:
        return f"Scene(spheres={len(self.spheres)})"

    def add(self, sphere: SphereInfo) -> int:
        """Append a sphere and return its index.

        Raises:
            RuntimeError: If the scene would no longer fit the sphere storage or
                the registry of the sphere's material type.
        """
        if len(self.spheres) >= MAX_SPHERES:
            raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")

        material_type = type(sphere.material)
        capacity = REGISTRY_CAPACITY[material_type]
        same_type = sum(1 for s in self.spheres if type(s.material) is material_type)
        if same_type >= capacity:
            raise RuntimeError(
                f"Maximum number of {material_type.__name__} materials ({capacity}) exceeded"
            )
        self.spheres.append(sphere)
        return len(self.spheres) - 1

    def add_sphere(
        self,
        center: Sequence[float],
        radius: float,
        material: Material,
    ) -> int:
        """Add a sphere with the given material.

        Returns:
            The index of the added sphere.

        Raises:
            ConfigurationError: If the sphere parameters are invalid.
        """
        return self.add(SphereInfo(tuple(center), radius, material))

    def add_lambertian_sphere(
        self,
        center: Sequence[float],
        radius: float,
        albedo: Sequence[float],
    ) -> int:
        """Add a sphere with a new Lambertian material."""
        return self.add_sphere(center, radius, Lambertian(tuple(albedo)))

    def add_metal_sphere(
        self,
        center: Sequence[float],
        radius: float,
        albedo: Sequence[float],
        fuzz: float = 0.0,
    ) -> int:
        """Add a sphere with a new metal material."""
        return self.add_sphere(center, radius, Metal(tuple(albedo), fuzz))

    def add_dielectric_sphere(
        self,
        center: Sequence[float],
        radius: float,
        refractive_index: float = 1.5,
    ) -> int:
        """Add a sphere with a new dielectric material."""
        return self.add_sphere(center, radius, Dielectric(refractive_index))

    def clear(self) -> None:
        """Remove every sphere from the scene."""
        self.spheres.clear()

    # =========================================================================
    # GPU Upload
    # =========================================================================

    def upload(self) -> None:
        """Copy the scene into the Taichi storage used by the kernels.

        Clears whatever scene was uploaded before, so the storage always
        mirrors exactly this scene, in order.
        """
        clear_all()
        for sphere in self.spheres:
            material_id = register_material(sphere.material)
            add_sphere(vec3(*sphere.center), sphere.radius, material_id)
        logger.debug(
            "Uploaded %d spheres with %d materials", get_sphere_count(), get_material_count()
        )

    # =========================================================================
    # Scene Serialization
    # =========================================================================

    def to_config(self) -> SceneConfig:
        """Export the scene to a configuration object."""
        config = SceneConfig()
        for sphere in self.spheres:
            config.spheres.append(
                {
                    "center": list(sphere.center),
                    "radius": sphere.radius,
                    "material": material_to_dict(sphere.material),
                }
            )
        return config

    @classmethod
    def from_config(cls, config: SceneConfig) -> "Scene":
        """Build a scene from a configuration object.

        Raises:
            ConfigurationError: If the configuration contains invalid data.
        """
        scene = cls()
        for sphere_config in config.spheres:
            if "material" not in sphere_config:
                raise ConfigurationError(f"Sphere entry has no material: {sphere_config!r}")
            scene.add_sphere(
                sphere_config.get("center", (0.0, 0.0, 0.0)),
                sphere_config.get("radius", 1.0),
                material_from_dict(sphere_config["material"]),
            )
        return scene

    def to_dict(self) -> dict[str, Any]:
        """Export the scene to a dictionary (for JSON serialization)."""
        return {"spheres": self.to_config().spheres}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Scene":
        """Build a scene from a dictionary with a 'spheres' key."""
        return cls.from_config(SceneConfig(spheres=list(data.get("spheres", []))))

    def save_json(self, path: str | Path) -> None:
        """Write the scene description to a JSON file."""
        Path(path).write_text(json.dumps(self.to_dict(), indent=2))

    @classmethod
    def load_json(cls, path: str | Path) -> "Scene":
        """Read a scene description from a JSON file."""
        return cls.from_dict(json.loads(Path(path).read_text()))
