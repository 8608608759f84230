"""
Escape-time Mandelbrot set rendering library.

This library maps a rectangular region of the complex plane onto a pixel
grid, evaluates the escape time of every point in parallel and colors the
results into a raster ready for image export.

Key Features:
- Discrete and continuous (smoothed) iteration counts
- Periodicity detection for fast interior rendering
- Linear gradient and cyclic hue palettes with precomputed color tables
- 8-bit, 16-bit and floating point channel depths
- Thread or process based parallel sampling with live progress output

Example usage:
    >>> from mandelbrot_raster import FractalRenderer, RenderConfig
    >>> renderer = FractalRenderer(RenderConfig(width=400, max_iterations=200))
    >>> raster = renderer.render("mandelbrot.png")
"""

__version__ = "1.0.0"
__author__ = "Mandelbrot Raster Team"

from mandelbrot_raster.core.math_functions import Axis, ViewWindow, EscapeEvaluator
from mandelbrot_raster.rendering.coloring import (ColorMapper, ColorRGB, HueCycle, LinearGradient,
                                                  PaletteTable)
from mandelbrot_raster.rendering.image_output import ImageExporter, RenderMetadata
from mandelbrot_raster.acceleration.parallel import ParallelSampler
from mandelbrot_raster.acceleration.progress import ProgressCounter, ProgressMonitor
from mandelbrot_raster.io.config import ConfigManager

# Main API classes
from mandelbrot_raster.api import FractalRenderer, RenderConfig

__all__ = [
    "FractalRenderer",
    "RenderConfig",
    "Axis",
    "ViewWindow",
    "EscapeEvaluator",
    "ColorMapper",
    "ColorRGB",
    "HueCycle",
    "LinearGradient",
    "PaletteTable",
    "ImageExporter",
    "RenderMetadata",
    "ParallelSampler",
    "ProgressCounter",
    "ProgressMonitor",
    "ConfigManager",
]
