"""
Parallel backend for raster sampling.

This module provides band-based parallel rendering. The raster is split into
contiguous row bands; each band is one task that owns its rows of the raster
and its slot of the progress counter, so no writes are ever shared between
workers. Threads are used by default (the escape kernel releases the GIL);
a process backend places the raster and counter in shared memory.
"""

import numpy as np
from typing import List, Optional, Protocol, TextIO, Tuple
import multiprocessing as mp
from multiprocessing import shared_memory
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor
import logging
import time
from dataclasses import dataclass

from ..core.math_functions import EscapeEvaluator, ViewWindow
from ..rendering.coloring import ChannelDepth
from .progress import ProgressCounter, ProgressMonitor

logger = logging.getLogger(__name__)

BACKENDS = ('thread', 'process')


class Colorizer(Protocol):
    """Anything that maps an array of iteration results to channel triples."""

    def colors(self, results: np.ndarray) -> np.ndarray:
        ...


@dataclass(frozen=True)
class RowBand:
    """Specification for a contiguous block of raster rows."""
    band_id: int
    y_start: int
    y_end: int

    @property
    def height(self) -> int:
        return self.y_end - self.y_start


@dataclass(frozen=True)
class SharedArraySpec:
    """Location of a numpy array inside a shared memory block."""
    name: str
    shape: Tuple[int, ...]
    dtype: str


@dataclass
class SampleResult:
    """Result of a complete sampling run."""
    raster: np.ndarray
    completed: int
    elapsed: float


def create_row_bands(height: int, num_bands: int) -> List[RowBand]:
    """
    Partition rows into contiguous, disjoint bands.

    Args:
        height: Total raster height
        num_bands: Requested number of bands (capped at height)

    Returns:
        List of RowBand objects covering every row exactly once
    """
    if height <= 0:
        raise ValueError("height must be positive")
    num_bands = max(1, min(num_bands, height))
    base, extra = divmod(height, num_bands)

    bands = []
    y = 0
    for band_id in range(num_bands):
        rows = base + (1 if band_id < extra else 0)
        bands.append(RowBand(band_id=band_id, y_start=y, y_end=y + rows))
        y += rows

    logger.debug(f"Created {len(bands)} row bands for height {height}")
    return bands


def sample_band(band: RowBand, reals: np.ndarray, imags: np.ndarray,
                evaluator: EscapeEvaluator, colorizer: Colorizer,
                raster: np.ndarray, progress: np.ndarray) -> int:
    """
    Compute every pixel of one band.

    The escape loop for the whole band runs in one compiled call that
    releases the GIL and bumps progress[band.band_id] once per pixel; the band
    is then colored in a single vectorized lookup. Writes only rows
    [band.y_start, band.y_end) of the raster.

    Returns:
        Number of pixels written
    """
    results = evaluator.evaluate_rows(reals, imags[band.y_start:band.y_end], progress, band.band_id)
    raster[band.y_start:band.y_end] = colorizer.colors(results)
    return results.size


def _sample_band_shared(band: RowBand, reals: np.ndarray, imags: np.ndarray,
                        evaluator: EscapeEvaluator, colorizer: Colorizer,
                        raster_spec: SharedArraySpec, progress_spec: SharedArraySpec) -> int:
    """Process-pool entry point: attach to shared memory and sample a band."""
    raster_shm = shared_memory.SharedMemory(name=raster_spec.name)
    progress_shm = shared_memory.SharedMemory(name=progress_spec.name)
    try:
        raster = np.ndarray(raster_spec.shape, dtype=raster_spec.dtype, buffer=raster_shm.buf)
        progress = np.ndarray(progress_spec.shape, dtype=progress_spec.dtype, buffer=progress_shm.buf)
        written = sample_band(band, reals, imags, evaluator, colorizer, raster, progress)
        del raster, progress
        return written
    finally:
        raster_shm.close()
        progress_shm.close()


class ParallelSampler:
    """Parallel computation of a colored raster over a view window."""

    def __init__(self, num_workers: Optional[int] = None, backend: str = 'thread',
                 bands_per_worker: int = 4):
        """
        Initialize parallel sampler.

        Args:
            num_workers: Number of workers (None for CPU count)
            backend: 'thread' or 'process'
            bands_per_worker: Row bands per worker, for load balancing
        """
        if backend not in BACKENDS:
            raise ValueError(f"Unknown backend '{backend}'. Available: {', '.join(BACKENDS)}")
        if bands_per_worker < 1:
            raise ValueError("bands_per_worker must be positive")

        if num_workers is None:
            self.num_workers = mp.cpu_count()
        else:
            self.num_workers = max(1, num_workers)

        self.backend = backend
        self.bands_per_worker = bands_per_worker
        logger.info(f"Parallel sampler: {self.num_workers} {backend} workers")

    def sample(self, window: ViewWindow, width: int, height: int,
               evaluator: EscapeEvaluator, colorizer: Colorizer, depth: ChannelDepth,
               progress_interval: Optional[float] = None,
               stream: Optional[TextIO] = None) -> SampleResult:
        """
        Compute a color for every pixel of a width x height grid.

        Args:
            window: Region of the complex plane to sample
            width: Raster width in pixels
            height: Raster height in pixels
            evaluator: Escape-time evaluator
            colorizer: ColorMapper or PaletteTable
            depth: Channel depth of the colorizer's output
            progress_interval: Seconds between progress lines (None disables)
            stream: Progress output stream

        Returns:
            SampleResult with a fully populated (height, width, 3) raster
        """
        if width <= 0 or height <= 0:
            raise ValueError("Width and height must be positive")

        start_time = time.time()
        total = width * height
        bands = create_row_bands(height, self.num_workers * self.bands_per_worker)
        shared = self.backend == 'process'
        reals, imags = window.pixel_grid(width, height)

        counter = ProgressCounter(len(bands), shared=shared)
        monitor = None
        if progress_interval is not None:
            monitor = ProgressMonitor(counter, total, progress_interval, stream)
            monitor.start()

        logger.info(f"Sampling {width}x{height} in {len(bands)} bands")
        try:
            if shared:
                raster = self._sample_processes(bands, reals, imags, evaluator, colorizer,
                                                depth, counter)
            else:
                raster = np.empty((height, width, 3), dtype=depth.dtype)
                with ThreadPoolExecutor(max_workers=self.num_workers) as executor:
                    futures = [executor.submit(sample_band, band, reals, imags, evaluator,
                                               colorizer, raster, counter.slots)
                               for band in bands]
                    self._collect(futures)
        finally:
            if monitor is not None:
                monitor.stop()
                monitor.join()
            counter.close()

        completed = counter.value
        elapsed = time.time() - start_time
        logger.info(f"Sampling complete: {completed} pixels in {elapsed:.2f}s "
                    f"({completed / max(elapsed, 1e-9):.0f} pixels/s)")
        return SampleResult(raster=raster, completed=completed, elapsed=elapsed)

    def _sample_processes(self, bands: List[RowBand], reals: np.ndarray, imags: np.ndarray,
                          evaluator: EscapeEvaluator, colorizer: Colorizer, depth: ChannelDepth,
                          counter: ProgressCounter) -> np.ndarray:
        shape = (len(imags), len(reals), 3)
        nbytes = int(np.prod(shape)) * depth.dtype.itemsize
        raster_shm = shared_memory.SharedMemory(create=True, size=nbytes)
        try:
            raster_spec = SharedArraySpec(raster_shm.name, shape, depth.dtype.str)
            progress_spec = SharedArraySpec(counter.shm_name, counter.slots.shape,
                                            counter.slots.dtype.str)

            with ProcessPoolExecutor(max_workers=self.num_workers) as executor:
                futures = [executor.submit(_sample_band_shared, band, reals, imags, evaluator,
                                           colorizer, raster_spec, progress_spec)
                           for band in bands]
                self._collect(futures)

            view = np.ndarray(shape, dtype=depth.dtype, buffer=raster_shm.buf)
            raster = view.copy()
            del view
            return raster
        finally:
            raster_shm.close()
            raster_shm.unlink()

    @staticmethod
    def _collect(futures) -> int:
        # result() re-raises worker exceptions in the caller
        written = 0
        for future in futures:
            written += future.result()
        return written
