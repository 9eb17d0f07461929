"""Renderer tying a camera, a scene and the integrator together.

The Renderer owns the render loop seen from Python:
- uploads the scene and sets up camera and render target,
- renders the camera's samples_per_pixel in batches,
- reports progress through a callback (or a generator),
- hands back the averaged linear image and writes it out.

Camera, scene and render-target state live in module-level Taichi fields, so
only one render runs at a time. Each render call re-applies its own camera
and target before drawing samples.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.core.renderer import Renderer
    >>> from pathtracer.scene.presets import two_spheres
    >>>
    >>> scene, camera = two_spheres()
    >>> renderer = Renderer(camera)
    >>> image = renderer.render(scene)
    >>> renderer.save("image.png")
"""

import logging
import time
from collections.abc import Callable, Generator
from pathlib import Path
from typing import TextIO

import numpy as np
import numpy.typing as npt

from pathtracer.camera.camera import Camera, setup_camera
from pathtracer.core.integrator import (
    clear_render_target,
    get_image_numpy,
    get_total_samples,
    render_pixel,
    render_samples,
    set_seed,
    setup_render_target,
)
from pathtracer.output.export import image_to_uint8, save_image, write_ppm
from pathtracer.scene.manager import Scene

logger = logging.getLogger(__name__)

# Type alias for progress callback
# Callback receives (current_samples, total_target_samples)
ProgressCallback = Callable[[int, int], None]

# Samples rendered per kernel launch when no batch size is given
DEFAULT_BATCH_SIZE = 1


class Renderer:
    """Renders scenes through a fixed camera.

    Attributes:
        camera: The camera configuration used for every render.
        seed: Seed of the per-sample random streams. Renders with the same
            seed, camera and scene produce identical images.
    """

    def __init__(self, camera: Camera, seed: int = 0) -> None:
        """Initialize the renderer and set up camera state and render target.

        Args:
            camera: Camera configuration. Its image size, samples_per_pixel
                and max_depth drive the render.
            seed: Seed of the per-sample random streams.
        """
        self.camera = camera
        self.seed = seed
        self._activate()

    @property
    def width(self) -> int:
        """Get the image width."""
        return self.camera.image_width

    @property
    def height(self) -> int:
        """Get the image height."""
        return self.camera.image_height

    @property
    def sample_count(self) -> int:
        """Get the current number of accumulated samples per pixel."""
        return get_total_samples()

    def _activate(self) -> None:
        setup_camera(self.camera)
        setup_render_target(self.width, self.height)
        set_seed(self.seed)

    def reset(self) -> None:
        """Clear the accumulated samples without touching the camera."""
        clear_render_target()

    def render(
        self,
        scene: Scene,
        batch_size: int | None = None,
        callback: ProgressCallback | None = None,
    ) -> npt.NDArray[np.float32]:
        """Render the scene with the camera's samples_per_pixel.

        Args:
            scene: The scene to render. It is uploaded before rendering and
                never modified.
            batch_size: Number of samples per pixel rendered between progress
                reports. Defaults to DEFAULT_BATCH_SIZE.
            callback: Optional callback called after each batch with
                (samples_done, samples_target).

        Returns:
            The averaged linear image, shape (height, width, 3), float32.
        """
        for done, target in self.render_progressive(scene, batch_size):
            if callback is not None:
                callback(done, target)
        return self.get_image_numpy()

    def render_progressive(
        self,
        scene: Scene,
        batch_size: int | None = None,
    ) -> Generator[tuple[int, int], None, None]:
        """Render the scene, yielding progress after each batch.

        Generator-based alternative to render() with callbacks.

        Yields:
            Tuple of (samples_done, samples_target).
        """
        if batch_size is None:
            batch_size = DEFAULT_BATCH_SIZE
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")

        self._activate()
        scene.upload()

        target = self.camera.samples_per_pixel
        logger.info(
            "Rendering %dx%d, %d spheres, %d samples per pixel, max depth %d",
            self.width,
            self.height,
            len(scene),
            target,
            self.camera.max_depth,
        )

        start = time.perf_counter()
        remaining = target
        while remaining > 0:
            batch = min(batch_size, remaining)
            render_samples(batch, self.camera.max_depth)
            remaining -= batch

            done = self.sample_count
            logger.debug("Samples %d/%d (%.2fs)", done, target, time.perf_counter() - start)
            yield (done, target)

        logger.info("Render finished in %.2fs", time.perf_counter() - start)

    def render_pixel(self, i: int, j: int) -> tuple[float, float, float]:
        """Render a single sample for pixel (i, j) of the last uploaded scene."""
        return render_pixel(i, j, self.camera.max_depth)

    def get_image_numpy(self) -> npt.NDArray[np.float32]:
        """Get the averaged linear image, shape (height, width, 3)."""
        return get_image_numpy()

    def get_image_uint8(self) -> npt.NDArray[np.uint8]:
        """Get the gamma-encoded 8-bit image, shape (height, width, 3)."""
        return image_to_uint8(self.get_image_numpy())

    def write_ppm(self, stream: TextIO) -> None:
        """Write the image to a text stream as a P3 PPM."""
        write_ppm(self.get_image_numpy(), stream)

    def save(self, filepath: str | Path) -> None:
        """Save the image as PPM or PNG, chosen by the file extension."""
        save_image(self.get_image_numpy(), filepath)
        logger.info("Saved image to %s", filepath)

    def __repr__(self) -> str:
        """Return a string representation of the renderer state."""
        return (
            f"Renderer(width={self.width}, height={self.height}, "
            f"samples_per_pixel={self.camera.samples_per_pixel})"
        )
