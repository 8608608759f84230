"""
Progress tracking for parallel rendering.

Workers record completed pixels in a slotted counter, one slot per row band,
so every slot has a single writer and no lock is required. A background
monitor thread periodically sums the slots and rewrites a status line in
place. The counter is advisory only and never used to synchronize raster
data.
"""

import logging
import sys
import threading
from multiprocessing import shared_memory
from typing import Optional, TextIO

import click
import numpy as np

logger = logging.getLogger(__name__)


class ProgressCounter:
    """
    Monotonic count of completed pixels, split into single-writer slots.

    Workers add to slots[slot] for the slot they own; the compiled band
    kernel does this once per finished pixel.
    """

    def __init__(self, num_slots: int, shared: bool = False):
        """
        Initialize the counter at zero.

        Args:
            num_slots: Number of independent writers
            shared: Allocate the slots in shared memory so that worker
                processes can update them
        """
        if num_slots < 1:
            raise ValueError("num_slots must be positive")

        self.num_slots = num_slots
        self._shm: Optional[shared_memory.SharedMemory] = None
        if shared:
            nbytes = num_slots * np.dtype(np.int64).itemsize
            self._shm = shared_memory.SharedMemory(create=True, size=nbytes)
            self.slots = np.ndarray((num_slots,), dtype=np.int64, buffer=self._shm.buf)
            self.slots[:] = 0
        else:
            self.slots = np.zeros(num_slots, dtype=np.int64)

    @property
    def shm_name(self) -> Optional[str]:
        return self._shm.name if self._shm is not None else None

    @property
    def value(self) -> int:
        """Current total; may lag concurrent increments."""
        return int(self.slots.sum())

    def close(self) -> None:
        """Release shared memory, keeping the last observed counts."""
        if self._shm is None:
            return
        self.slots = self.slots.copy()
        self._shm.close()
        self._shm.unlink()
        self._shm = None


class ProgressMonitor:
    """Background thread that reports render progress as a percentage."""

    def __init__(self, counter: ProgressCounter, total: int, interval: float = 1.0,
                 stream: Optional[TextIO] = None):
        """
        Initialize progress monitor.

        Args:
            counter: Counter to observe
            total: Value at which the run is complete
            interval: Seconds between status updates
            stream: Output stream (stdout if None)
        """
        if interval <= 0:
            raise ValueError("interval must be positive")

        self.counter = counter
        self.total = total
        self.interval = interval
        self.stream = stream
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name="progress-monitor", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        """Ask the monitor to print a final line and exit at its next wake."""
        self._stop.set()

    def join(self, timeout: Optional[float] = None) -> None:
        self._thread.join(timeout)

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def _run(self) -> None:
        while True:
            value = self.counter.value
            finished = value >= self.total or self._stop.is_set()
            self._emit(value, final=finished)
            if finished:
                return
            self._stop.wait(self.interval)

    def _emit(self, value: int, final: bool) -> None:
        percent = value / self.total * 100 if self.total else 100.0
        line = f"\rRendering: {percent:5.1f}% ({value}/{self.total} pixels)"
        try:
            click.echo(line, file=self.stream or sys.stdout, nl=final)
        except (OSError, ValueError) as e:
            logger.warning(f"Progress update failed: {e}")
