"""Counter-based random streams for reproducible Monte Carlo sampling.

Every (pixel, sample) pair owns an independent stream whose starting state is
derived from the render seed by hashing. Device functions never touch a
shared generator: the state is a ``u32`` value that is passed in and returned
alongside each draw, so a render is a pure function of its seed no matter how
Taichi schedules the parallel loop.

Example:
    >>> @ti.kernel
    ... def draw() -> ti.f32:
    ...     state = init_rng(ti.u32(7), ti.u32(0), ti.u32(0))
    ...     state, x = next_float(state)
    ...     return x
"""

import taichi as ti

# 2^-24: maps the top 24 bits of a u32 to [0, 1)
_INV_2_24 = 1.0 / 16777216.0


@ti.func
def wang_hash(value: ti.u32) -> ti.u32:
    """Scramble a 32-bit integer (Thomas Wang's integer hash).

    Args:
        value: The input value.

    Returns:
        A well-mixed 32-bit value.
    """
    h = (value ^ ti.u32(61)) ^ (value >> ti.u32(16))
    h = h * ti.u32(9)
    h = h ^ (h >> ti.u32(4))
    h = h * ti.u32(0x27D4EB2D)
    h = h ^ (h >> ti.u32(15))
    return h


@ti.func
def xorshift32(state: ti.u32) -> ti.u32:
    """Advance a xorshift32 generator by one step.

    The state must be non-zero; zero is a fixed point of the generator.
    """
    x = state
    x = x ^ (x << ti.u32(13))
    x = x ^ (x >> ti.u32(17))
    x = x ^ (x << ti.u32(5))
    return x


@ti.func
def init_rng(seed: ti.u32, pixel_index: ti.u32, sample_index: ti.u32) -> ti.u32:
    """Derive the starting state of the stream for one pixel sample.

    Args:
        seed: The render seed.
        pixel_index: Linear index of the pixel (row * width + column).
        sample_index: Absolute sample number within the pixel.

    Returns:
        A non-zero generator state.
    """
    state = wang_hash(seed + wang_hash(pixel_index + wang_hash(sample_index)))
    if state == ti.u32(0):
        state = ti.u32(1)
    return state


@ti.func
def next_float(state: ti.u32):
    """Draw a uniform float in [0, 1).

    Args:
        state: The current generator state.

    Returns:
        A tuple of (new_state, value).
    """
    new_state = xorshift32(state)
    value = ti.cast(new_state >> ti.u32(8), ti.f32) * _INV_2_24
    return new_state, value
