"""
Unit tests for the partitioned thread-pool executor.
"""

import threading

import numpy as np
import pytest

from snow_sim import ExecutionError, ParallelExecutor
from snow_sim.parallel import default_workers, row_partitions


def test_row_partitions_cover_lattice():
    parts = row_partitions(10, 3)
    assert len(parts) == 3
    assert parts[0][0] == 0
    assert parts[-1][1] == 100
    for (_, stop), (start, _) in zip(parts, parts[1:]):
        assert stop == start
    for start, stop in parts:
        assert start % 10 == 0 and stop % 10 == 0
        assert stop > start


def test_more_workers_than_rows():
    parts = row_partitions(4, 8)
    assert len(parts) == 4
    assert [stop - start for start, stop in parts] == [4, 4, 4, 4]


def test_default_workers_bounded():
    assert 1 <= default_workers() <= 8


def test_run_touches_every_cell_once():
    size = 13
    counts = np.zeros(size * size, dtype=np.int64)

    def mark(start, stop, out):
        out[start:stop] += 1

    with ParallelExecutor(size, workers=4) as executor:
        executor.run(mark, counts)
    assert np.all(counts == 1)


def test_run_is_a_barrier():
    """Every partition has finished by the time run() returns."""
    finished = []
    lock = threading.Lock()

    def slow(start, stop):
        threading.Event().wait(0.01 * (start % 3))
        with lock:
            finished.append(start)

    with ParallelExecutor(9, workers=3) as executor:
        executor.run(slow)
        assert sorted(finished) == [start for start, _ in executor.partitions]


def test_worker_failure_raises_execution_error():
    def fail_first(start, stop):
        if start == 0:
            raise ValueError("bad partition")

    with ParallelExecutor(8, workers=2) as executor:
        with pytest.raises(ExecutionError) as excinfo:
            executor.run(fail_first)
        assert isinstance(excinfo.value.__cause__, ValueError)
        # the pool survives a failed pass
        executor.run(lambda start, stop: None)


def test_dispatch_failure_waits_for_submitted_work(monkeypatch):
    """A pass that cannot be fully dispatched still lets started partitions finish."""
    finished = []

    def slow(start, stop):
        threading.Event().wait(0.05)
        finished.append(start)

    with ParallelExecutor(6, workers=3) as executor:
        submit = executor._pool.submit
        calls = []

        def flaky_submit(*args, **kwargs):
            calls.append(args)
            if len(calls) == 2:
                raise RuntimeError("cannot schedule new futures")
            return submit(*args, **kwargs)

        monkeypatch.setattr(executor._pool, "submit", flaky_submit)
        with pytest.raises(ExecutionError) as excinfo:
            executor.run(slow)
        assert isinstance(excinfo.value.__cause__, RuntimeError)
        # the first partition was submitted and had finished before the error surfaced
        assert finished == [executor.partitions[0][0]]


def test_run_after_shutdown():
    executor = ParallelExecutor(5, workers=2)
    executor.shutdown()
    with pytest.raises(ExecutionError):
        executor.run(lambda start, stop: None)
    # shutting down twice is harmless
    executor.shutdown()


def test_invalid_worker_count():
    with pytest.raises(ValueError):
        ParallelExecutor(5, workers=0)
