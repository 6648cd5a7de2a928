"""
Work Sharding

Splits a batch of examples into contiguous, disjoint ranges and runs one
range per worker thread.
"""

import logging
import os
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)


def default_num_threads() -> int:
    return os.cpu_count() or 1


def shard_ranges(batch_size: int, num_shards: int) -> List[Tuple[int, int]]:
    """
    Split [0, batch_size) into at most ``num_shards`` contiguous ranges

    Returns:
    --------
    ranges : list of (start, end)
        Non-empty, disjoint, covering the batch in order
    """
    if batch_size <= 0:
        return []
    num_shards = max(1, min(num_shards, batch_size))
    base, extra = divmod(batch_size, num_shards)
    ranges = []
    start = 0
    for shard in range(num_shards):
        end = start + base + (1 if shard < extra else 0)
        ranges.append((start, end))
        start = end
    return ranges


def shard(batch_size: int,
          work: Callable[[int, int], None],
          num_threads: Optional[int] = None,
          executor: Optional[Executor] = None) -> None:
    """
    Run ``work(start, end)`` over the batch and wait for every range

    Parameters:
    -----------
    batch_size : int
        Number of examples
    work : callable
        Processes examples [start, end); must only write its own rows
    num_threads : int, optional
        Number of ranges; defaults to the CPU count
    executor : Executor, optional
        Caller-owned pool; a temporary ThreadPoolExecutor is used otherwise

    Raises:
    -------
    Exception
        The first failure among the ranges, in range order
    """
    num_threads = num_threads or default_num_threads()
    ranges = shard_ranges(batch_size, num_threads)
    if not ranges:
        return
    logger.debug("Sharding %d examples into %d ranges", batch_size, len(ranges))

    if len(ranges) == 1:
        work(*ranges[0])
        return

    if executor is not None:
        _run(executor, work, ranges)
    else:
        with ThreadPoolExecutor(max_workers=len(ranges)) as pool:
            _run(pool, work, ranges)


def _run(executor: Executor, work: Callable[[int, int], None], ranges: List[Tuple[int, int]]) -> None:
    futures = [executor.submit(work, start, end) for start, end in ranges]
    errors = []
    for future in futures:
        exc = future.exception()
        if exc is not None:
            errors.append(exc)
    if errors:
        raise errors[0]
