"""Output module for writing rendered images.

Components:
    export: Gamma encoding, 8-bit quantization, PPM and PNG writers
"""

from .export import (
    compute_rmse,
    format_ppm,
    image_to_uint8,
    linear_to_gamma,
    save_image,
    save_png,
    save_ppm,
    write_ppm,
)

__all__ = [
    "linear_to_gamma",
    "image_to_uint8",
    "format_ppm",
    "write_ppm",
    "save_ppm",
    "save_png",
    "save_image",
    "compute_rmse",
]
