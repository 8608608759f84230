"""
Image export and format handling for rendered rasters.

This module persists finished rasters. Image formats (PNG, TIFF, JPEG) are
written through Pillow at 8 bits per channel; the .npy raw format keeps the
raster at its full channel depth. Render parameters are embedded as JSON
metadata where the format allows it, or written to a companion JSON file.
"""

import numpy as np
from typing import Dict, Any, Optional, Tuple
from pathlib import Path
from dataclasses import dataclass, asdict
import json
import logging
from datetime import datetime

from PIL import Image, PngImagePlugin

logger = logging.getLogger(__name__)

METADATA_KEY = "mandelbrot_metadata"


@dataclass
class RenderMetadata:
    """Metadata for a rendered raster."""

    bounds: Tuple[float, float, float, float]  # xmin, xmax, ymin, ymax
    resolution: Tuple[int, int]  # width, height
    max_iterations: int
    smooth: bool

    # Coloring
    palette: str
    channel_depth: str

    # Timing and performance
    render_time_seconds: float = 0.0
    num_workers: int = 1
    backend: str = "thread"

    # Generation info
    timestamp: str = ""
    software_version: str = "1.0.0"

    def __post_init__(self):
        """Set default timestamp if not provided."""
        if not self.timestamp:
            self.timestamp = datetime.now().isoformat()

    def to_dict(self) -> Dict[str, Any]:
        """Convert metadata to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RenderMetadata':
        """Create metadata from dictionary."""
        data = dict(data)
        data['bounds'] = tuple(data['bounds'])
        data['resolution'] = tuple(data['resolution'])
        return cls(**data)

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, json_str: str) -> 'RenderMetadata':
        """Create metadata from JSON string."""
        return cls.from_dict(json.loads(json_str))


def to_uint8(raster: np.ndarray) -> np.ndarray:
    """
    Reduce a raster to 8 bits per channel by truncation.

    uint16 channels keep their high byte; float channels are clipped to
    [0, 1] and scaled by 255.
    """
    if raster.dtype == np.uint8:
        return raster
    if raster.dtype == np.uint16:
        return (raster >> 8).astype(np.uint8)
    if np.issubdtype(raster.dtype, np.floating):
        return (np.clip(raster, 0.0, 1.0) * 255).astype(np.uint8)
    raise ValueError(f"Unsupported raster dtype {raster.dtype}")


class ImageExporter:
    """Image export with metadata support."""

    def __init__(self):
        """Initialize image exporter."""
        self.supported_formats = {
            '.png': self._save_png,
            '.tiff': self._save_tiff,
            '.tif': self._save_tiff,
            '.jpg': self._save_jpeg,
            '.jpeg': self._save_jpeg,
            '.npy': self._save_npy,
        }

    def save_image(self, raster: np.ndarray, filepath: Path,
                   metadata: Optional[RenderMetadata] = None,
                   quality: int = 95) -> Path:
        """
        Save an RGB raster to file with metadata.

        Args:
            raster: RGB raster (height, width, 3) of uint8, uint16 or float
            filepath: Output file path; the suffix selects the format
            metadata: Render metadata to embed
            quality: JPEG quality (1-100)

        Returns:
            The path written

        Raises:
            ValueError: Unsupported suffix or raster shape
            OSError: The file could not be written
        """
        filepath = Path(filepath)
        suffix = filepath.suffix.lower()

        if suffix not in self.supported_formats:
            supported = ', '.join(self.supported_formats.keys())
            raise ValueError(f"Unsupported format '{suffix}'. Supported: {supported}")

        if raster.ndim != 3 or raster.shape[2] != 3:
            raise ValueError(f"Expected RGB raster (H, W, 3), got {raster.shape}")

        self.supported_formats[suffix](raster, filepath, metadata, quality)
        logger.info(f"Saved image: {filepath} ({raster.shape[1]}x{raster.shape[0]})")
        return filepath

    def _save_png(self, raster: np.ndarray, filepath: Path,
                  metadata: Optional[RenderMetadata], quality: int) -> None:
        """Save as PNG with metadata text chunks."""
        pnginfo = PngImagePlugin.PngInfo()

        if metadata:
            pnginfo.add_text("Software", f"mandelbrot-raster v{metadata.software_version}")
            pnginfo.add_text("Creation Time", metadata.timestamp)
            pnginfo.add_text(METADATA_KEY, metadata.to_json())

        Image.fromarray(to_uint8(raster)).save(filepath, "PNG", pnginfo=pnginfo)

    def _save_tiff(self, raster: np.ndarray, filepath: Path,
                   metadata: Optional[RenderMetadata], quality: int) -> None:
        """Save as LZW-compressed TIFF, metadata in the ImageDescription tag."""
        save_kwargs = {'format': 'TIFF', 'compression': 'tiff_lzw'}
        if metadata:
            save_kwargs['description'] = metadata.to_json()
        Image.fromarray(to_uint8(raster)).save(filepath, **save_kwargs)

    def _save_jpeg(self, raster: np.ndarray, filepath: Path,
                   metadata: Optional[RenderMetadata], quality: int) -> None:
        """Save as JPEG with a companion JSON metadata file."""
        Image.fromarray(to_uint8(raster)).save(filepath, "JPEG", quality=quality, optimize=True)

        if metadata:
            self._write_sidecar(filepath, metadata)

    def _save_npy(self, raster: np.ndarray, filepath: Path,
                  metadata: Optional[RenderMetadata], quality: int) -> None:
        """Save the raw raster at full channel depth."""
        np.save(filepath, raster)

        if metadata:
            self._write_sidecar(filepath, metadata)

    def _write_sidecar(self, filepath: Path, metadata: RenderMetadata) -> None:
        json_path = filepath.with_suffix('.json')
        with open(json_path, 'w') as f:
            f.write(metadata.to_json())
        logger.info(f"Saved metadata: {json_path}")

    def load_raw_data(self, filepath: Path) -> Tuple[np.ndarray, Optional[RenderMetadata]]:
        """
        Load raw raster data and metadata.

        Args:
            filepath: Input file path (.npy)

        Returns:
            Tuple of (raster, metadata)
        """
        filepath = Path(filepath)
        raster = np.load(filepath)

        metadata = None
        metadata_path = filepath.with_suffix('.json')
        if metadata_path.exists():
            with open(metadata_path, 'r') as f:
                metadata = RenderMetadata.from_json(f.read())

        return raster, metadata

    def extract_metadata_from_image(self, filepath: Path) -> Optional[RenderMetadata]:
        """
        Extract render metadata from a saved image.

        Args:
            filepath: Path to image file

        Returns:
            Extracted metadata or None
        """
        filepath = Path(filepath)

        if filepath.suffix.lower() in ('.jpg', '.jpeg', '.npy'):
            json_path = filepath.with_suffix('.json')
            if json_path.exists():
                with open(json_path, 'r') as f:
                    return RenderMetadata.from_json(f.read())
            return None

        with Image.open(filepath) as img:
            text = getattr(img, 'text', {})
            if METADATA_KEY in text:
                return RenderMetadata.from_json(text[METADATA_KEY])

            description = img.tag_v2.get(270) if hasattr(img, 'tag_v2') else None
            if description:
                try:
                    return RenderMetadata.from_json(description)
                except (ValueError, TypeError, KeyError) as e:
                    logger.warning(f"Could not parse metadata in {filepath}: {e}")

        return None
