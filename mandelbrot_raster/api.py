"""
Main API classes for Mandelbrot rendering.

This module provides the high-level interface, combining the view window,
escape evaluator, color mapper and parallel sampler into a single render
call driven by an immutable configuration.
"""

import numpy as np
from typing import Optional, Dict, Any, Tuple, TextIO, Union
from dataclasses import dataclass, asdict, fields, replace
from pathlib import Path
import logging
import time

from . import __version__
from .core.math_functions import EscapeEvaluator, ViewWindow
from .rendering.coloring import (ColorMapper, ColorRGB, get_channel_depth, get_palette,
                                 list_palettes)
from .rendering.image_output import ImageExporter, RenderMetadata
from .acceleration.parallel import BACKENDS, ParallelSampler, SampleResult
from .io.config import ConfigManager

logger = logging.getLogger(__name__)

ColorSpec = Union[str, Tuple[float, float, float]]


@dataclass(frozen=True)
class RenderConfig:
    """Configuration for a single render."""

    # Region and raster
    bounds: Tuple[float, float, float, float] = (-2.0, 1.0, -1.0, 1.0)  # xmin, xmax, ymin, ymax
    width: int = 800
    height: Optional[int] = None  # derived from the aspect ratio when None

    # Iteration
    max_iterations: int = 1000
    smooth: bool = False
    periodicity_interval: int = 20
    periodicity_epsilon: float = 1e-12

    # Coloring
    palette: str = 'linear'
    base_color: Optional[ColorSpec] = None
    target_color: Optional[ColorSpec] = None
    inside_color: Optional[ColorSpec] = None
    hue_cycles: float = 1.0
    color_exponent: float = 1.0
    channel_depth: str = 'uint8'
    use_palette_table: bool = True

    # Performance
    num_workers: Optional[int] = None
    backend: str = 'thread'
    bands_per_worker: int = 4

    # Output
    progress_interval: Optional[float] = 1.0
    output: str = 'mandelbrot.png'
    save_metadata: bool = True
    jpeg_quality: int = 95

    def validate(self):
        """Validate configuration parameters."""
        ViewWindow.from_bounds(self.bounds)

        if self.width <= 0:
            raise ValueError("width must be positive")
        if self.height is not None and self.height <= 0:
            raise ValueError("height must be positive")

        if self.max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        if self.periodicity_interval < 0:
            raise ValueError("periodicity_interval must be non-negative")
        if self.periodicity_epsilon < 0:
            raise ValueError("periodicity_epsilon must be non-negative")

        if self.palette.lower() not in list_palettes():
            available = ', '.join(list_palettes())
            raise ValueError(f"Unknown color palette '{self.palette}'. Available: {available}")
        if self.hue_cycles <= 0:
            raise ValueError("hue_cycles must be positive")
        if self.color_exponent <= 0:
            raise ValueError("color_exponent must be positive")
        get_channel_depth(self.channel_depth)
        for color in (self.base_color, self.target_color, self.inside_color):
            if color is not None:
                parse_color(color)

        if self.num_workers is not None and self.num_workers < 1:
            raise ValueError("num_workers must be positive")
        if self.backend not in BACKENDS:
            raise ValueError(f"Unknown backend '{self.backend}'. Available: {', '.join(BACKENDS)}")
        if self.bands_per_worker < 1:
            raise ValueError("bands_per_worker must be positive")
        if self.progress_interval is not None and self.progress_interval <= 0:
            raise ValueError("progress_interval must be positive")

    @property
    def window(self) -> ViewWindow:
        return ViewWindow.from_bounds(self.bounds)

    @property
    def resolved_height(self) -> int:
        """Explicit height, or the height matching the window's aspect ratio."""
        if self.height is not None:
            return self.height
        return self.window.height_for(self.width)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RenderConfig':
        """Create configuration from a dictionary, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
        data = dict(data)
        if 'bounds' in data:
            data['bounds'] = tuple(float(b) for b in data['bounds'])
        for key in ('base_color', 'target_color', 'inside_color'):
            if isinstance(data.get(key), list):
                data[key] = tuple(data[key])
        return cls(**data)

    @classmethod
    def from_file(cls, path: Union[str, Path], preset: Optional[str] = None,
                  **overrides) -> 'RenderConfig':
        """Load configuration from a JSON/YAML file and apply overrides."""
        manager = ConfigManager()
        data = manager.load_render_section(path, preset)
        data.update({k: v for k, v in overrides.items() if v is not None})
        return cls.from_dict(data)

    def with_overrides(self, **overrides) -> 'RenderConfig':
        """Copy with non-None overrides applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def parse_color(value: ColorSpec) -> ColorRGB:
    """Parse '#rrggbb', 'r,g,b' (unit floats) or an (r, g, b) sequence."""
    if isinstance(value, str):
        if ',' in value:
            try:
                parts = tuple(float(p.strip()) for p in value.split(','))
            except ValueError:
                raise ValueError(f"Invalid color '{value}', expected 'r,g,b' or '#rrggbb'") from None
            return ColorRGB.coerce(parts)
        return ColorRGB.from_hex(value)
    return ColorRGB.coerce(value)


class FractalRenderer:
    """Main rendering engine."""

    def __init__(self, config: Optional[RenderConfig] = None):
        """
        Initialize renderer.

        Args:
            config: Rendering configuration (uses defaults if None)
        """
        self.config = config or RenderConfig()
        self.config.validate()

        self.window = self.config.window
        self.width = self.config.width
        self.height = self.config.resolved_height

        self.evaluator = EscapeEvaluator(
            max_iter=self.config.max_iterations,
            smooth=self.config.smooth,
            periodicity_interval=self.config.periodicity_interval,
            periodicity_epsilon=self.config.periodicity_epsilon,
        )
        self.color_mapper = self._create_color_mapper()
        self.sampler = ParallelSampler(self.config.num_workers, self.config.backend,
                                       self.config.bands_per_worker)
        self.image_exporter = ImageExporter()

        logger.info(f"FractalRenderer initialized: {self.width}x{self.height}, "
                    f"max_iter={self.config.max_iterations}, palette={self.config.palette}")

    def _create_color_mapper(self) -> ColorMapper:
        cfg = self.config
        palette = get_palette(
            cfg.palette,
            base=parse_color(cfg.base_color) if cfg.base_color is not None else None,
            target=parse_color(cfg.target_color) if cfg.target_color is not None else None,
            inside=parse_color(cfg.inside_color) if cfg.inside_color is not None else None,
            cycles=cfg.hue_cycles,
        )
        return ColorMapper(palette, cfg.max_iterations, get_channel_depth(cfg.channel_depth),
                           cfg.color_exponent)

    def sample(self, stream: Optional[TextIO] = None) -> SampleResult:
        """
        Compute the raster without persisting it.

        Args:
            stream: Progress output stream (stdout if None)

        Returns:
            SampleResult with the raster and the final progress count
        """
        if self.config.use_palette_table:
            colorizer = self.color_mapper.build_table()
        else:
            colorizer = self.color_mapper

        return self.sampler.sample(
            self.window, self.width, self.height, self.evaluator, colorizer,
            self.color_mapper.depth,
            progress_interval=self.config.progress_interval,
            stream=stream,
        )

    def render(self, output_path: Optional[Union[str, Path]] = None,
               stream: Optional[TextIO] = None) -> np.ndarray:
        """
        Render the configured region.

        Args:
            output_path: Optional output file path
            stream: Progress output stream

        Returns:
            RGB raster of shape (height, width, 3)
        """
        start_time = time.time()
        logger.info(f"Starting render: bounds={self.window.bounds}")

        result = self.sample(stream)

        if output_path:
            self._save_image(result.raster, Path(output_path), time.time() - start_time)

        total_time = time.time() - start_time
        logger.info(f"Render complete: {total_time:.2f}s")
        return result.raster

    def build_metadata(self, render_time: float) -> RenderMetadata:
        return RenderMetadata(
            bounds=self.window.bounds,
            resolution=(self.width, self.height),
            max_iterations=self.config.max_iterations,
            smooth=self.config.smooth,
            palette=self.config.palette,
            channel_depth=self.color_mapper.depth.name,
            render_time_seconds=render_time,
            num_workers=self.sampler.num_workers,
            backend=self.sampler.backend,
            software_version=__version__,
        )

    def _save_image(self, raster: np.ndarray, output_path: Path, render_time: float) -> Path:
        """Save rendered raster with metadata."""
        metadata = self.build_metadata(render_time) if self.config.save_metadata else None
        return self.image_exporter.save_image(raster, output_path, metadata,
                                              self.config.jpeg_quality)
