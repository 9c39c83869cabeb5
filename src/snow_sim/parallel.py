"""
Bulk-synchronous execution of lattice passes on a fixed thread pool.

The lattice's flat index space is cut into contiguous, row-aligned
partitions, one per worker. ``run`` submits the same pass over every
partition and returns only once all of them have finished, which makes
each call a barrier. The numba kernels release the GIL, so the threads do
run concurrently.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Any, Callable, List, Optional, Tuple

import numpy as np

from .errors import ExecutionError

logger = logging.getLogger(__name__)

Partition = Tuple[int, int]


def default_workers() -> int:
    return max(1, min(8, os.cpu_count() or 1))


def row_partitions(size: int, parts: int) -> List[Partition]:
    """Split ``size`` rows of ``size`` cells into at most ``parts`` disjoint ranges."""
    parts = max(1, min(parts, size))
    edges = np.linspace(0, size, parts + 1).astype(np.int64)
    return [
        (int(edges[k]) * size, int(edges[k + 1]) * size)
        for k in range(parts)
        if edges[k + 1] > edges[k]
    ]


class ParallelExecutor:
    """Runs ``fn(start, stop, *args)`` over every partition of a lattice."""

    def __init__(self, size: int, workers: Optional[int] = None) -> None:
        self.workers = default_workers() if workers is None else int(workers)
        if self.workers < 1:
            raise ValueError(f"workers must be >= 1, got {self.workers}")
        self.partitions = row_partitions(size, self.workers)
        self._pool: Optional[ThreadPoolExecutor] = ThreadPoolExecutor(
            max_workers=self.workers, thread_name_prefix="snow-sim"
        )
        logger.debug("executor ready: %d workers, %d partitions", self.workers, len(self.partitions))

    def run(self, fn: Callable[..., Any], *args: Any) -> None:
        if self._pool is None:
            raise ExecutionError("Executor has been shut down")
        # every partition must be finished before the caller touches the buffer,
        # including when dispatch or one of the workers failed
        futures = []
        try:
            for start, stop in self.partitions:
                futures.append(self._pool.submit(fn, start, stop, *args))
        except RuntimeError as exc:
            wait(futures)
            raise ExecutionError(f"Could not dispatch {getattr(fn, '__name__', fn)}") from exc

        wait(futures)
        for future in futures:
            exc = future.exception()
            if exc is not None:
                raise ExecutionError(
                    f"Worker failed in {getattr(fn, '__name__', fn)}: {exc}"
                ) from exc

    def shutdown(self) -> None:
        if self._pool is not None:
            self._pool.shutdown(wait=True)
            self._pool = None

    def __enter__(self) -> "ParallelExecutor":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.shutdown()


__all__ = ["ParallelExecutor", "row_partitions", "default_workers"]
