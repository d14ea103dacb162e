"""
Parallel processing utilities for storm/satellite correlation.

Track fixes are independent units of work, so they are spread across a
pool of worker processes. Each worker receives the read-only correlator
once, through the pool initializer, and returns one event list per fix.
"""

from concurrent.futures import ProcessPoolExecutor, as_completed
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging
import multiprocessing as mp
import os

logger = logging.getLogger(__name__)

# Correlator installed in each worker process by _init_worker
_worker_correlator: Optional[Any] = None


def get_optimal_workers(max_workers: Optional[int] = None, num_fixes: int = 0) -> int:
    """
    Determine optimal number of worker processes.

    Args:
        max_workers: Maximum number of workers (None = auto-detect)
        num_fixes: Number of track fixes to process

    Returns:
        Number of workers, never more than CPU cores or fixes
    """
    cpu_count = os.cpu_count() or 4

    if max_workers is not None:
        workers = min(max_workers, cpu_count)
    else:
        workers = cpu_count

    # Don't spawn more workers than fixes
    if num_fixes > 0:
        workers = min(workers, num_fixes)

    return max(1, workers)


def _get_mp_context() -> Optional[Any]:
    """Prefer 'fork' so workers inherit loaded inputs without pickling."""
    try:
        return mp.get_context('fork')
    except ValueError:
        logger.debug("'fork' context not available, using default 'spawn'")
        return None


def _init_worker(correlator: Any) -> None:
    global _worker_correlator
    _worker_correlator = correlator


def _correlate_fix_worker(fix_index: int) -> Tuple[int, List[Any]]:
    """
    Worker function to correlate a single track fix.

    Runs in a pool process; the correlator comes from _init_worker.
    """
    return fix_index, _worker_correlator.correlate_fix(fix_index)


def correlate_in_parallel(
    correlator: Any,
    max_workers: int,
    progress_callback: Optional[Callable[[int, int], None]] = None
) -> List[Any]:
    """
    Correlate all fixes of a track across worker processes.

    Args:
        correlator: StormPassCorrelator with the loaded inputs
        max_workers: Number of worker processes
        progress_callback: Optional callback(completed, total) for progress

    Returns:
        Events flattened in fix order
    """
    num_fixes = len(correlator.track)
    results: Dict[int, List[Any]] = {}
    completed = 0

    logger.info(f"Correlating {num_fixes} fixes using {max_workers} workers")

    with ProcessPoolExecutor(
        max_workers=max_workers,
        mp_context=_get_mp_context(),
        initializer=_init_worker,
        initargs=(correlator,),
    ) as executor:
        future_to_fix = {
            executor.submit(_correlate_fix_worker, fix_index): fix_index
            for fix_index in range(num_fixes)
        }

        for future in as_completed(future_to_fix):
            fix_index = future_to_fix[future]

            try:
                _, events = future.result()
                results[fix_index] = events
            except Exception as e:
                # One bad fix must not abort the batch
                logger.error(f"Error correlating fix {fix_index}: {e}")
                results[fix_index] = []

            completed += 1
            logger.debug(f"Completed {completed}/{num_fixes}: fix {fix_index} "
                         f"({len(results[fix_index])} events)")

            if progress_callback:
                progress_callback(completed, num_fixes)

    return [event for fix_index in sorted(results) for event in results[fix_index]]
