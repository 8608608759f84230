"""
Numba JIT compilation backend for escape-time iteration.

This module provides JIT-compiled per-point kernels and a row-block kernel
built on them. All are compiled with nogil, so worker threads evaluate whole
bands of rows concurrently without touching the interpreter.
"""

import math
import logging

import numba
from numba import jit

logger = logging.getLogger(__name__)
logger.debug(f"Numba available: {numba.__version__}")

BAILOUT_RADIUS_SQ = 4.0


@jit(nopython=True, nogil=True, cache=True)
def escape_orbit(c_real, c_imag, max_iter, period, epsilon):
    """
    JIT-compiled Mandelbrot orbit kernel.

    Args:
        c_real: Real component of c
        c_imag: Imaginary component of c
        max_iter: Maximum iterations
        period: Iterations between periodicity checkpoints (0 disables)
        epsilon: Squared distance below which the orbit counts as repeating

    Returns:
        Tuple of (iteration index, |z|^2 at exit); the index is max_iter
        when the point did not escape
    """
    zr = 0.0
    zi = 0.0
    saved_r = 0.0
    saved_i = 0.0

    for n in range(max_iter):
        zr_sq = zr * zr
        zi_sq = zi * zi

        # z = z^2 + c
        zi = 2.0 * zr * zi + c_imag
        zr = zr_sq - zi_sq + c_real

        mag_sq = zr * zr + zi * zi
        if mag_sq > BAILOUT_RADIUS_SQ:
            return n, mag_sq

        if period > 0 and (n + 1) % period == 0:
            dr = zr - saved_r
            di = zi - saved_i
            if dr * dr + di * di < epsilon:
                return max_iter, mag_sq
            saved_r = zr
            saved_i = zi

    return max_iter, zr * zr + zi * zi


@jit(nopython=True, nogil=True, cache=True)
def escape_count(c_real, c_imag, max_iter, period, epsilon):
    """Discrete escape count in [0, max_iter]."""
    n, _ = escape_orbit(c_real, c_imag, max_iter, period, epsilon)
    return n


@jit(nopython=True, nogil=True, cache=True)
def smooth_escape(c_real, c_imag, max_iter, period, epsilon):
    """
    Continuous iteration value mu = n + 1 - ln(ln|z|) / ln 2.

    The result is clamped to [0, max_iter]; non-escaping points return
    max_iter.
    """
    n, mag_sq = escape_orbit(c_real, c_imag, max_iter, period, epsilon)
    if n >= max_iter:
        return float(max_iter)

    log_abs_z = 0.5 * math.log(mag_sq)
    mu = n + 1.0 - math.log(log_abs_z) / math.log(2.0)
    if mu < 0.0:
        return 0.0
    if mu > max_iter:
        return float(max_iter)
    return mu


@jit(nopython=True, nogil=True, cache=True)
def escape_rows(reals, imags, max_iter, period, epsilon, smooth, out, progress, slot):
    """
    JIT-compiled kernel for a block of rows.

    Args:
        reals: Real part of c for every column
        imags: Imaginary part of c for every row of the block
        max_iter: Maximum iterations
        period: Iterations between periodicity checkpoints (0 disables)
        epsilon: Squared distance below which the orbit counts as repeating
        smooth: Store smoothed values instead of escape counts
        out: Result array of shape (len(imags), len(reals))
        progress: Progress slots; progress[slot] grows by one per pixel
        slot: The caller's own progress slot
    """
    width = reals.shape[0]
    for row in range(imags.shape[0]):
        c_imag = imags[row]
        for col in range(width):
            if smooth:
                out[row, col] = smooth_escape(reals[col], c_imag, max_iter, period, epsilon)
            else:
                out[row, col] = escape_count(reals[col], c_imag, max_iter, period, epsilon)
            progress[slot] += 1
