"""
Per-sector parallel execution.

Sector analyses share no state, so they can be mapped over a process pool.
Results always come back in input order.

Usage:
    from labor_ts.utils.parallel import run_parallel

    results = run_parallel(analyze_sector, jobs)                 # auto-tuned
    results = run_parallel(analyze_sector, jobs, max_workers=4)  # capped
"""

from __future__ import annotations

import multiprocessing as mp
import os
from typing import Callable, List, Optional, Sequence, TypeVar

from .logging import get_logger

T = TypeVar("T")
R = TypeVar("R")

logger = get_logger(__name__)

# Minimum items required to justify parallelization (per worker)
MIN_ITEMS_PER_WORKER = 2


def get_cpu_count() -> int:
    """Number of available CPUs, minimum 1."""
    return os.cpu_count() or 1


def get_optimal_workers(max_workers: Optional[int] = None) -> int:
    """
    Calculate the number of workers for this machine.

    Heuristics:
    - 1-2 CPUs: 1 worker (serial execution)
    - 3-4 CPUs: 2 workers
    - 5+ CPUs: cpu_count - 2 (leave headroom for system)

    Args:
        max_workers: Optional maximum to cap the result.

    Returns:
        Number of workers (>= 1).
    """
    cpu = get_cpu_count()

    if cpu <= 2:
        optimal = 1
    elif cpu <= 4:
        optimal = 2
    else:
        optimal = max(1, cpu - 2)

    if max_workers is not None:
        optimal = min(optimal, max_workers)

    return max(1, optimal)


def should_use_parallel(n_items: int, max_workers: Optional[int] = None) -> bool:
    """True when a pool is worth its start-up cost for n_items."""
    workers = get_optimal_workers(max_workers)

    if workers <= 1:
        return False

    # Small job guard - typical panels carry only a handful of sectors
    if n_items < workers * MIN_ITEMS_PER_WORKER:
        return False

    return True


def run_parallel(
    fn: Callable[[T], R],
    items: Sequence[T],
    max_workers: Optional[int] = None,
    force_serial: bool = False,
) -> List[R]:
    """
    Apply fn to every item, in a process pool when it pays off.

    Args:
        fn: Function to apply to each item. Must be picklable
            (defined at module level).
        items: Sequence of items to process.
        max_workers: Optional cap on number of workers.
        force_serial: If True, always use serial execution.

    Returns:
        List of results in same order as input items.
    """
    items_list = list(items)
    n_items = len(items_list)

    if n_items == 0:
        return []

    use_parallel = not force_serial and should_use_parallel(n_items, max_workers)

    if not use_parallel:
        return [fn(item) for item in items_list]

    workers = get_optimal_workers(max_workers)
    logger.debug(f"Running {n_items} items on {workers} workers")

    try:
        with mp.Pool(processes=workers) as pool:
            results = pool.map(fn, items_list)
        return list(results)
    except (OSError, mp.ProcessError) as e:
        logger.warning(f"Process pool unavailable ({e}); running serially")
        return [fn(item) for item in items_list]
