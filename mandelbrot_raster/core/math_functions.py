"""
Core mathematical functions for escape-time iteration.

This module provides the view window mapping from pixel coordinates onto the
complex plane and the per-point escape-time evaluator, supporting both
discrete iteration counts and continuous (smoothed) iteration values.
"""

import math
from dataclasses import dataclass
from typing import Optional, Tuple, Union
import logging

import numpy as np

from ..acceleration.numba_backend import escape_count, escape_rows, smooth_escape

logger = logging.getLogger(__name__)

IterationValue = Union[int, float]


def in_set(result, max_iter: int):
    """Whether a result (scalar or array) is the in-set sentinel."""
    return result >= max_iter


@dataclass(frozen=True)
class Axis:
    """One axis of the complex plane region being sampled."""

    min: float
    max: float

    def __post_init__(self):
        """Validate axis bounds."""
        if not (math.isfinite(self.min) and math.isfinite(self.max)):
            raise ValueError(f"Axis bounds must be finite, got ({self.min}, {self.max})")
        if self.max - self.min == 0:
            raise ValueError(f"Degenerate axis: min and max are both {self.min}")

    @property
    def range(self) -> float:
        return self.max - self.min

    def map(self, t: float) -> float:
        """Map a normalized coordinate t in [0, 1] onto the axis."""
        return self.min + t * (self.max - self.min)

    def samples(self, count: int) -> np.ndarray:
        """Axis values at t = i / count for i in 0..count-1."""
        return self.min + (np.arange(count) / count) * (self.max - self.min)


@dataclass(frozen=True)
class ViewWindow:
    """Represents a complex plane region with coordinate mapping utilities."""

    real: Axis
    imag: Axis

    @classmethod
    def from_bounds(cls, bounds: Tuple[float, float, float, float]) -> 'ViewWindow':
        """
        Create a view window from (xmin, xmax, ymin, ymax) bounds.

        Raises:
            ValueError: If bounds are malformed or either axis is degenerate
        """
        if len(bounds) != 4:
            raise ValueError("bounds must be (xmin, xmax, ymin, ymax)")
        xmin, xmax, ymin, ymax = (float(b) for b in bounds)
        return cls(Axis(xmin, xmax), Axis(ymin, ymax))

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        return (self.real.min, self.real.max, self.imag.min, self.imag.max)

    @property
    def aspect_ratio(self) -> float:
        """Width-to-height ratio of the region."""
        return abs(self.real.range) / abs(self.imag.range)

    def height_for(self, width: int) -> int:
        """
        Derive the raster height that preserves the region's aspect ratio.

        Args:
            width: Raster width in pixels

        Returns:
            Raster height in pixels (at least 1)
        """
        if width <= 0:
            raise ValueError("width must be positive")
        return max(1, int(round(width / self.aspect_ratio)))

    def pixel_to_complex(self, px: int, py: int, width: int, height: int) -> Tuple[float, float]:
        """Convert pixel coordinates to a (real, imag) pair."""
        return self.real.map(px / width), self.imag.map(py / height)

    def pixel_grid(self, width: int, height: int) -> Tuple[np.ndarray, np.ndarray]:
        """Real parts for every column and imaginary parts for every row."""
        return self.real.samples(width), self.imag.samples(height)


@dataclass(frozen=True)
class EscapeEvaluator:
    """
    Escape-time evaluator for the quadratic map z -> z^2 + c.

    Points whose orbit stays within the bailout radius for max_iter
    iterations, or whose orbit is caught repeating by the periodicity check,
    evaluate to the sentinel value max_iter.

    Attributes:
        max_iter: Iteration budget, also the in-set sentinel
        smooth: Return continuous iteration values instead of counts
        periodicity_interval: Iterations between orbit checkpoints (0 disables)
        periodicity_epsilon: Squared distance under which an orbit is bounded
    """

    max_iter: int = 1000
    smooth: bool = False
    periodicity_interval: int = 20
    periodicity_epsilon: float = 1e-12

    def __post_init__(self):
        """Validate evaluator parameters."""
        if self.max_iter < 1:
            raise ValueError("max_iter must be at least 1")
        if self.periodicity_interval < 0:
            raise ValueError("periodicity_interval must be non-negative")
        if self.periodicity_epsilon < 0:
            raise ValueError("periodicity_epsilon must be non-negative")

    def evaluate(self, c_real: float, c_imag: float) -> IterationValue:
        """
        Evaluate a single point of the complex plane.

        Args:
            c_real: Real part of c
            c_imag: Imaginary part of c

        Returns:
            Escape count (int) or smoothed value mu (float), in [0, max_iter]
        """
        if self.smooth:
            return smooth_escape(float(c_real), float(c_imag), self.max_iter,
                                 self.periodicity_interval, self.periodicity_epsilon)
        return escape_count(float(c_real), float(c_imag), self.max_iter,
                            self.periodicity_interval, self.periodicity_epsilon)

    def evaluate_rows(self, reals: np.ndarray, imags: np.ndarray,
                      progress: Optional[np.ndarray] = None, slot: int = 0) -> np.ndarray:
        """
        Evaluate a block of rows in one compiled call.

        Args:
            reals: Real part of c for every column
            imags: Imaginary part of c for every row
            progress: Progress slots, bumped once per pixel
            slot: Slot of progress owned by the caller

        Returns:
            float64 array of shape (len(imags), len(reals))
        """
        reals = np.ascontiguousarray(reals, dtype=np.float64)
        imags = np.ascontiguousarray(imags, dtype=np.float64)
        out = np.empty((imags.shape[0], reals.shape[0]), dtype=np.float64)
        if progress is None:
            progress, slot = np.zeros(1, dtype=np.int64), 0
        escape_rows(reals, imags, self.max_iter, self.periodicity_interval,
                    self.periodicity_epsilon, self.smooth, out, progress, slot)
        return out

    def is_inside(self, result: IterationValue) -> bool:
        """Whether a result is the in-set sentinel."""
        return in_set(result, self.max_iter)
