"""Exceptions raised by the path tracer.

Intersection misses and absorbed rays are ordinary results inside the
kernels and never raise. The only errors are configuration problems, which
are detected once on the Python side before anything is uploaded to Taichi.
"""


class ConfigurationError(ValueError):
    """Raised when a camera, scene, or material is configured with invalid values.

    Subclasses ValueError so callers that already guard scene setup with
    ``except ValueError`` keep working.
    """
