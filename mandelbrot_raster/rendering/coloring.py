"""
Coloring algorithms and palette management for escape-time rendering.

This module turns iteration results into fixed-depth RGB colors. Palettes
are pure functions of a normalized ratio t in [0, 1]; the in-set sentinel
always maps to the palette's designated inside color, bypassing the
gradient math. A precomputed PaletteTable turns per-pixel coloring into a
single index operation.
"""

import numpy as np
from typing import Dict, List, Tuple, Union, Optional
from dataclasses import dataclass, field
from abc import ABC, abstractmethod
import logging

from ..core.math_functions import in_set

logger = logging.getLogger(__name__)

ColorLike = Union['ColorRGB', Tuple[float, float, float]]


@dataclass(frozen=True)
class ColorRGB:
    """RGB color representation with unit-interval components."""
    r: float
    g: float
    b: float

    def __post_init__(self):
        """Validate RGB values."""
        for component in [self.r, self.g, self.b]:
            if not 0 <= component <= 1:
                raise ValueError("RGB components must be between 0 and 1")

    def to_tuple(self) -> Tuple[float, float, float]:
        """Convert to RGB tuple."""
        return (self.r, self.g, self.b)

    @classmethod
    def coerce(cls, color: ColorLike) -> 'ColorRGB':
        """Accept a ColorRGB or an (r, g, b) sequence."""
        if isinstance(color, ColorRGB):
            return color
        if isinstance(color, (tuple, list)) and len(color) == 3:
            return cls(*(float(c) for c in color))
        raise ValueError(f"Invalid color format: {color}")

    @classmethod
    def from_hex(cls, value: str) -> 'ColorRGB':
        """Parse '#rrggbb' or 'rrggbb'."""
        text = value.strip().lstrip('#')
        if len(text) != 6:
            raise ValueError(f"Invalid hex color '{value}', expected #rrggbb")
        try:
            r, g, b = (int(text[i:i + 2], 16) for i in (0, 2, 4))
        except ValueError:
            raise ValueError(f"Invalid hex color '{value}', expected #rrggbb") from None
        return cls(r / 255.0, g / 255.0, b / 255.0)


BLACK = ColorRGB(0.0, 0.0, 0.0)
WHITE = ColorRGB(1.0, 1.0, 1.0)


@dataclass(frozen=True)
class ChannelDepth:
    """
    Storage depth for raster channels.

    Integer depths scale unit values by the channel maximum and truncate
    toward zero (no rounding), so 0.999 * 255 stores 254.
    """
    name: str
    dtype: np.dtype
    scale: float

    def quantize(self, unit: np.ndarray) -> np.ndarray:
        """Scale unit-interval channel values to this depth."""
        unit = np.clip(unit, 0.0, 1.0)
        if self.scale == 1.0:
            return unit.astype(self.dtype)
        return (unit * self.scale).astype(self.dtype)


CHANNEL_DEPTHS: Dict[str, ChannelDepth] = {
    'uint8': ChannelDepth('uint8', np.dtype(np.uint8), 255.0),
    'uint16': ChannelDepth('uint16', np.dtype(np.uint16), 65535.0),
    'float': ChannelDepth('float', np.dtype(np.float32), 1.0),
}

_DEPTH_ALIASES = {'8': 'uint8', '16': 'uint16', 'float32': 'float'}


def get_channel_depth(name: Union[str, int, ChannelDepth]) -> ChannelDepth:
    """Look up a channel depth by name ('uint8', 'uint16', 'float', 8, 16)."""
    if isinstance(name, ChannelDepth):
        return name
    key = _DEPTH_ALIASES.get(str(name), str(name))
    if key not in CHANNEL_DEPTHS:
        available = ', '.join(CHANNEL_DEPTHS.keys())
        raise ValueError(f"Unknown channel depth '{name}'. Available: {available}")
    return CHANNEL_DEPTHS[key]


class GradientPalette(ABC):
    """Abstract base class for palettes over a normalized ratio."""

    inside: ColorRGB

    @abstractmethod
    def unit_colors(self, t: np.ndarray) -> np.ndarray:
        """
        Map normalized ratios to colors.

        Args:
            t: 1-D array of ratios in [0, 1]

        Returns:
            Array of shape (len(t), 3) with unit-interval channels
        """


@dataclass(frozen=True)
class LinearGradient(GradientPalette):
    """Per-channel interpolation between two endpoint colors."""

    base: ColorRGB = BLACK
    target: ColorRGB = WHITE
    inside: ColorRGB = WHITE

    def unit_colors(self, t: np.ndarray) -> np.ndarray:
        base = np.array(self.base.to_tuple())
        target = np.array(self.target.to_tuple())
        return base + (target - base) * t[:, np.newaxis]


@dataclass(frozen=True)
class HueCycle(GradientPalette):
    """
    Cyclic rainbow over the HSV hue circle.

    The hue wraps modulo 360 degrees, so cycles > 1 repeats the rainbow
    band across the iteration range.
    """

    cycles: float = 1.0
    inside: ColorRGB = BLACK

    def __post_init__(self):
        if self.cycles <= 0:
            raise ValueError("cycles must be positive")

    def unit_colors(self, t: np.ndarray) -> np.ndarray:
        hue = np.mod(360.0 * t * self.cycles, 360.0)
        return hsv_to_rgb(hue, 1.0, 1.0)


def hsv_to_rgb(hue: np.ndarray, saturation: float, value: float) -> np.ndarray:
    """
    Standard 60-degree sector HSV to RGB conversion.

    Args:
        hue: Array of hues in degrees, [0, 360)
        saturation: Saturation in [0, 1]
        value: Value in [0, 1]

    Returns:
        Array of shape (len(hue), 3)
    """
    chroma = value * saturation
    h_prime = np.asarray(hue, dtype=np.float64) / 60.0
    x = chroma * (1.0 - np.abs(np.mod(h_prime, 2.0) - 1.0))
    zero = np.zeros_like(h_prime)
    c = np.full_like(h_prime, chroma)
    sector = np.floor(h_prime).astype(int)

    conditions = [sector == k for k in range(6)]
    r = np.select(conditions, [c, x, zero, zero, x, c], default=c)
    g = np.select(conditions, [x, c, c, x, zero, zero], default=zero)
    b = np.select(conditions, [zero, zero, x, c, c, x], default=x)

    m = value - chroma
    return np.stack([r + m, g + m, b + m], axis=-1)


@dataclass(frozen=True)
class PaletteTable:
    """Precomputed colors indexed by rounded iteration value 0..max_iter."""

    entries: np.ndarray
    max_iter: int

    def color(self, result: float) -> np.ndarray:
        """O(1) color lookup for one iteration result."""
        if in_set(result, self.max_iter):
            return self.entries[self.max_iter]
        index = min(int(round(result)), self.max_iter - 1)
        return self.entries[max(index, 0)]

    def colors(self, results: np.ndarray) -> np.ndarray:
        """Vectorized lookup."""
        results = np.asarray(results, dtype=np.float64)
        indices = np.clip(np.rint(results), 0, self.max_iter - 1).astype(np.intp)
        indices = np.where(in_set(results, self.max_iter), self.max_iter, indices)
        return self.entries[indices]


@dataclass(frozen=True)
class ColorMapper:
    """
    Maps iteration results to fixed-depth colors.

    Attributes:
        palette: Gradient palette to apply to escaped points
        max_iter: Iteration budget used for normalization and as sentinel
        depth: Channel storage depth
        exponent: Applied to the normalized ratio; values below 1 bias
            toward lighter tones
    """

    palette: GradientPalette
    max_iter: int
    depth: ChannelDepth = field(default_factory=lambda: CHANNEL_DEPTHS['uint8'])
    exponent: float = 1.0

    def __post_init__(self):
        if self.max_iter < 1:
            raise ValueError("max_iter must be at least 1")
        if self.exponent <= 0:
            raise ValueError("exponent must be positive")

    def colors(self, results: np.ndarray) -> np.ndarray:
        """
        Color an array of iteration results.

        Args:
            results: Array of iteration results, any shape

        Returns:
            Array of shape results.shape + (3,) in the mapper's channel depth
        """
        results = np.asarray(results, dtype=np.float64)
        shape = results.shape
        results = results.reshape(-1)
        inside = in_set(results, self.max_iter)

        t = np.clip(results / self.max_iter, 0.0, 1.0) ** self.exponent
        colored = self.depth.quantize(self.palette.unit_colors(t))

        if np.any(inside):
            colored[inside] = self.depth.quantize(np.array(self.palette.inside.to_tuple()))
        return colored.reshape(shape + (3,))

    def color(self, result: float) -> np.ndarray:
        """Color a single iteration result."""
        return self.colors(np.array([result]))[0]

    def build_table(self) -> PaletteTable:
        """Precompute colors for every integer iteration value."""
        entries = self.colors(np.arange(self.max_iter + 1, dtype=np.float64))
        entries.setflags(write=False)
        logger.debug(f"Built palette table with {len(entries)} entries")
        return PaletteTable(entries, self.max_iter)


_PALETTES = {
    'linear': LinearGradient,
    'gray': LinearGradient,
    'hue': HueCycle,
    'rainbow': HueCycle,
}


def get_palette(name: str, base: Optional[ColorLike] = None, target: Optional[ColorLike] = None,
                inside: Optional[ColorLike] = None, cycles: float = 1.0) -> GradientPalette:
    """
    Create a palette by name.

    Args:
        name: Palette name (see list_palettes)
        base, target: Endpoint colors for linear gradients
        inside: Color for in-set points (palette default if None)
        cycles: Rainbow repetitions for hue palettes

    Returns:
        Configured palette
    """
    palette_class = _PALETTES.get(name.lower())
    if palette_class is None:
        available = ', '.join(list_palettes())
        raise ValueError(f"Unknown color palette '{name}'. Available: {available}")

    kwargs = {}
    if inside is not None:
        kwargs['inside'] = ColorRGB.coerce(inside)

    if palette_class is LinearGradient:
        if base is not None:
            kwargs['base'] = ColorRGB.coerce(base)
        if target is not None:
            kwargs['target'] = ColorRGB.coerce(target)
        return LinearGradient(**kwargs)

    return HueCycle(cycles=cycles, **kwargs)


def list_palettes() -> List[str]:
    """Get list of available color palettes."""
    return list(_PALETTES.keys())
