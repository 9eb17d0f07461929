"""Monte Carlo path tracer for scenes of spheres, built on Taichi.

This package renders a static image by firing many jittered rays per pixel
into a scene of analytic spheres, bouncing them off diffuse, metal and glass
materials, and averaging the results.

Subpackages:
    core: Rays, random sampling, the path tracing integrator and the renderer
    geometry: Sphere primitive and hit records
    materials: Lambertian, metal and dielectric scattering
    scene: Scene storage, closest-hit query, serialization and presets
    camera: Thin-lens camera with depth of field
    output: Gamma encoding and PPM/PNG writers

Modules that declare Taichi fields must be imported after ``ti.init()``
(see pathtracer.cli.init_taichi), so this package does not import them.
"""

__version__ = "0.1.0"
