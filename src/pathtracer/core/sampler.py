"""Random sampling utilities for Monte Carlo path tracing.

Randomness is an explicit value: a 32-bit generator state (``ti.u32``) that
is passed into every sampling function and returned advanced, next to the
sample. Each camera sample starts from a state derived by hashing
``(seed, i, j, sample_index)``, so a pixel's result depends only on the seed
and never on how Taichi schedules pixels across threads.

The generator is a 32-bit LCG step followed by the PCG RXS-M-XS output
permutation.

Example:
    >>> @ti.kernel
    ... def draw(out: ti.template()):
    ...     for i in range(out.shape[0]):
    ...         rng = seed_rng(ti.u32(7), i, 0, 0)
    ...         value, rng = random_float(0.0, 1.0, rng)
    ...         out[i] = value
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import length_squared, vec3

# Rejection sampling accepts ~52% (sphere) or ~79% (disk) of candidates, so
# hitting this cap is practically impossible.
MAX_REJECTION_ATTEMPTS = 100

# Components smaller than this count as zero in near_zero().
NEAR_ZERO_EPSILON = 1e-8

# PCG constants (all below 2^31 so they fit Taichi integer literals)
_LCG_MULTIPLIER = 747796405
_LCG_INCREMENT = 1442695041
_RXS_M_XS_MULTIPLIER = 277803737

# 2^-24: maps the top 24 bits of a draw to [0, 1)
_FLOAT_SCALE = 1.0 / 16777216.0


@ti.func
def _lcg_step(state: ti.u32) -> ti.u32:
    return state * ti.u32(_LCG_MULTIPLIER) + ti.u32(_LCG_INCREMENT)


@ti.func
def _permute(state: ti.u32) -> ti.u32:
    """PCG RXS-M-XS output permutation."""
    shift = (state >> ti.u32(28)) + ti.u32(4)
    word = ((state >> shift) ^ state) * ti.u32(_RXS_M_XS_MULTIPLIER)
    return (word >> ti.u32(22)) ^ word


@ti.func
def hash_u32(value: ti.u32) -> ti.u32:
    """Scramble a 32-bit value (one PCG step plus output permutation)."""
    return _permute(_lcg_step(value))


@ti.func
def seed_rng(seed: ti.u32, i: ti.i32, j: ti.i32, sample: ti.i32) -> ti.u32:
    """Generator state for one camera sample of pixel (i, j).

    Nearby pixels and consecutive sample indices get unrelated streams.
    """
    state = hash_u32(seed)
    state = hash_u32(state ^ ti.cast(i, ti.u32))
    state = hash_u32(state ^ ti.cast(j, ti.u32))
    state = hash_u32(state ^ ti.cast(sample, ti.u32))
    return state


@ti.func
def fork_rng(state: ti.u32, stream: ti.i32) -> ti.u32:
    """Derive an independent stream from a state, selected by a stream number."""
    return hash_u32(state ^ hash_u32(ti.cast(stream, ti.u32)))


@ti.func
def next_float(state: ti.u32):
    """Uniform float in [0, 1).

    Returns:
        A tuple of (value, advanced_state).
    """
    new_state = _lcg_step(state)
    value = ti.cast(_permute(new_state) >> ti.u32(8), ti.f32) * _FLOAT_SCALE
    return value, new_state


@ti.func
def random_float(low: ti.f32, high: ti.f32, state: ti.u32):
    """Uniform random float in [low, high).

    Returns:
        A tuple of (value, advanced_state).
    """
    u, new_state = next_float(state)
    return low + (high - low) * u, new_state


@ti.func
def _random_in_cube(state: ti.u32):
    x, s1 = random_float(-1.0, 1.0, state)
    y, s2 = random_float(-1.0, 1.0, s1)
    z, s3 = random_float(-1.0, 1.0, s2)
    return vec3(x, y, z), s3


@ti.func
def random_in_unit_sphere(state: ti.u32):
    """Generate a random point inside the unit sphere.

    Uses rejection sampling to generate uniformly distributed points
    within the unit sphere.

    Returns:
        A tuple of (point, advanced_state) with length(point) < 1.
    """
    p = vec3(0.0, 0.0, 0.0)
    rng = state
    found = 0
    for _ in range(MAX_REJECTION_ATTEMPTS):
        if found == 0:
            candidate, rng = _random_in_cube(rng)
            if length_squared(candidate) < 1.0:
                p = candidate
                found = 1
    return p, rng


@ti.func
def random_unit_vector(state: ti.u32):
    """Generate a random unit vector uniformly distributed on the sphere.

    Normalizes a point drawn from the unit ball. Candidates too close to the
    origin are rejected so the normalization never divides by zero.

    Returns:
        A tuple of (unit_vector, advanced_state).
    """
    p = vec3(0.0, 0.0, 1.0)
    rng = state
    found = 0
    for _ in range(MAX_REJECTION_ATTEMPTS):
        if found == 0:
            candidate, rng = _random_in_cube(rng)
            lensq = length_squared(candidate)
            if 1e-20 < lensq < 1.0:
                p = candidate / ti.sqrt(lensq)
                found = 1
    return p, rng


@ti.func
def random_in_unit_disk(state: ti.u32):
    """Generate a random point inside the unit disk in the xy-plane.

    Used to sample ray origins on the camera's defocus disk.

    Returns:
        A tuple of (point, advanced_state), point = (x, y, 0) with
        x^2 + y^2 < 1.
    """
    p = vec3(0.0, 0.0, 0.0)
    rng = state
    found = 0
    for _ in range(MAX_REJECTION_ATTEMPTS):
        if found == 0:
            x, s1 = random_float(-1.0, 1.0, rng)
            y, s2 = random_float(-1.0, 1.0, s1)
            rng = s2
            if x * x + y * y < 1.0:
                p = vec3(x, y, 0.0)
                found = 1
    return p, rng


@ti.func
def pixel_sample_offset(state: ti.u32):
    """Random sub-pixel offset, each coordinate uniform in [-0.5, 0.5).

    Returns:
        A tuple of (offset, advanced_state).
    """
    dx, s1 = next_float(state)
    dy, s2 = next_float(s1)
    return tm.vec2(dx - 0.5, dy - 0.5), s2


@ti.func
def near_zero(v: vec3) -> ti.i32:
    """Check if a vector is near zero in all components.

    Args:
        v: The vector to check.

    Returns:
        1 if every component is smaller than NEAR_ZERO_EPSILON in magnitude,
        0 otherwise.
    """
    s = NEAR_ZERO_EPSILON
    result = 0
    if ti.abs(v.x) < s and ti.abs(v.y) < s and ti.abs(v.z) < s:
        result = 1
    return result
