import io
import logging

import pytest

from mandelbrot_raster.acceleration.progress import ProgressCounter, ProgressMonitor


class BrokenStream(io.StringIO):
    def write(self, s):
        raise OSError("stream closed")


def test_counter_sums_slots():
    counter = ProgressCounter(3)
    assert counter.value == 0
    for slot in (0, 1, 1, 2, 2, 2):
        counter.slots[slot] += 1
    assert counter.value == 6
    assert list(counter.slots) == [1, 2, 3]


def test_shared_counter_keeps_value_after_close():
    counter = ProgressCounter(2, shared=True)
    assert counter.shm_name is not None
    counter.slots[0] += 1
    counter.slots[1] += 1
    counter.close()
    assert counter.shm_name is None
    assert counter.value == 2


def test_counter_requires_a_slot():
    with pytest.raises(ValueError):
        ProgressCounter(0)


def test_monitor_leaves_final_line_visible():
    counter = ProgressCounter(1)
    for _ in range(10):
        counter.slots[0] += 1
    stream = io.StringIO()

    monitor = ProgressMonitor(counter, total=10, interval=0.01, stream=stream)
    monitor.start()
    monitor.join(timeout=5)

    assert not monitor.is_alive()
    assert stream.getvalue() == "\rRendering: 100.0% (10/10 pixels)\n"


def test_monitor_overwrites_lines_in_place():
    counter = ProgressCounter(1)
    stream = io.StringIO()

    monitor = ProgressMonitor(counter, total=4, interval=0.01, stream=stream)
    monitor.start()
    for _ in range(4):
        counter.slots[0] += 1
    monitor.join(timeout=5)

    output = stream.getvalue()
    assert not monitor.is_alive()
    assert output.endswith("(4/4 pixels)\n")
    assert output.count("\n") == 1
    assert output.startswith("\rRendering:")


def test_monitor_stops_on_request():
    counter = ProgressCounter(1)
    stream = io.StringIO()

    monitor = ProgressMonitor(counter, total=100, interval=10.0, stream=stream)
    monitor.start()
    monitor.stop()
    monitor.join(timeout=5)

    assert not monitor.is_alive()
    assert stream.getvalue().endswith("0.0% (0/100 pixels)\n")


def test_monitor_swallows_output_errors(caplog):
    caplog.set_level(logging.WARNING)
    counter = ProgressCounter(1)
    counter.slots[0] += 1

    monitor = ProgressMonitor(counter, total=1, interval=0.01, stream=BrokenStream())
    monitor.start()
    monitor.join(timeout=5)

    assert not monitor.is_alive()
    assert "Progress update failed" in caplog.text


def test_monitor_rejects_bad_interval():
    with pytest.raises(ValueError):
        ProgressMonitor(ProgressCounter(1), total=1, interval=0)
