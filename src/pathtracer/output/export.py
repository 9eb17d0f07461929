"""Image export utilities for rendered images.

Rendered images are linear float arrays of shape (height, width, 3), row 0
at the top. Before writing, every channel goes through the same pipeline:

1. Gamma 2 encoding (x -> sqrt(x), negatives treated as 0)
2. Clamp to [0, 0.999]
3. Scale by 256 and truncate to an integer in [0, 255]

Supported formats:
    - PPM (plain-text P3)
    - PNG (8-bit RGB via Pillow)

Example:
    >>> import sys
    >>> from pathtracer.output.export import save_png, write_ppm
    >>> write_ppm(image, sys.stdout)
    >>> save_png(image, "output.png")
"""

from pathlib import Path
from typing import TextIO

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

# Upper clamp before quantization, so 1.0 maps to 255 rather than 256
INTENSITY_MAX = 0.999


def linear_to_gamma(image: npt.ArrayLike) -> npt.NDArray[np.float64]:
    """Apply gamma 2 encoding, treating negative values as black."""
    return np.sqrt(np.maximum(np.asarray(image, dtype=np.float64), 0.0))


def image_to_uint8(image: npt.ArrayLike) -> npt.NDArray[np.uint8]:
    """Convert a linear image to 8-bit values.

    Args:
        image: Linear image array of shape (H, W, 3).

    Returns:
        8-bit image array of the same shape with dtype uint8.
    """
    encoded = np.clip(linear_to_gamma(image), 0.0, INTENSITY_MAX)
    return (encoded * 256.0).astype(np.uint8)


def _check_rgb_image(image: npt.NDArray) -> None:
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected an image of shape (H, W, 3), got {image.shape}")


def format_ppm(image: npt.ArrayLike) -> str:
    """Format a linear image as a plain-text (P3) PPM document.

    The header is followed by a blank line, then one "r g b" line per pixel,
    row by row starting at the top.
    """
    pixels = image_to_uint8(image)
    _check_rgb_image(pixels)
    height, width, _ = pixels.shape

    lines = [f"P3\n{width} {height}\n255\n"]
    lines.extend(f"{r} {g} {b}" for r, g, b in pixels.reshape(-1, 3).tolist())
    return "\n".join(lines) + "\n"


def write_ppm(image: npt.ArrayLike, stream: TextIO) -> None:
    """Write a linear image to a text stream as a P3 PPM."""
    stream.write(format_ppm(image))


def save_ppm(image: npt.ArrayLike, filepath: str | Path) -> None:
    """Save a linear image to a P3 PPM file."""
    with open(filepath, "w", encoding="ascii") as f:
        write_ppm(image, f)


def save_png(image: npt.ArrayLike, filepath: str | Path) -> None:
    """Save a linear image as an 8-bit RGB PNG file.

    Uses the same quantization as the PPM writer.
    """
    image_uint8 = image_to_uint8(image)
    _check_rgb_image(image_uint8)

    pil_image = PILImage.fromarray(image_uint8)
    pil_image.save(filepath)


def save_image(image: npt.ArrayLike, filepath: str | Path) -> None:
    """Save a linear image, choosing the format from the file extension.

    ``.png`` writes a PNG; ``.ppm`` (or no extension) writes a P3 PPM.

    Raises:
        ValueError: If the extension is not supported.
    """
    suffix = Path(filepath).suffix.lower()
    if suffix == ".png":
        save_png(image, filepath)
    elif suffix in (".ppm", ""):
        save_ppm(image, filepath)
    else:
        raise ValueError(f"Unsupported image format: {suffix!r} (use .ppm or .png)")


def compute_rmse(image_a: npt.ArrayLike, image_b: npt.ArrayLike) -> float:
    """Root-mean-square difference between two images of the same shape.

    Raises:
        ValueError: If the shapes differ.
    """
    a = np.asarray(image_a, dtype=np.float64)
    b = np.asarray(image_b, dtype=np.float64)
    if a.shape != b.shape:
        raise ValueError(f"Image shapes differ: {a.shape} vs {b.shape}")
    diff = a - b
    return float(np.sqrt(np.mean(diff**2)))
