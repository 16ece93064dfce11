from __future__ import annotations

import logging
import time

from ..constants import DEFAULT_MAX_ITEMS, Solver
from ..problem import Problem
from .generator import generate_instance, series_seed
from .trace import SeriesStats, TraceSink, TrialRecord
from .verify import verify_solution

logger = logging.getLogger(__name__)

DEFAULT_TRIALS = 10


def run_series(
    n: int,
    r: int,
    pct: int,
    trials: int = DEFAULT_TRIALS,
    solver: Solver | str = Solver.BNB,
    solver_options=None,
    trace: TraceSink | None = None,
    max_items: int = DEFAULT_MAX_ITEMS,
) -> SeriesStats:
    """
    Generate, solve and verify `trials` instances of the series (n, r, pct).

    Trial v (1-based) uses seed v + n + r + pct, so a series is reproducible.
    Solve times are process CPU times.

    Raises:
        InvalidInstance: If the series parameters are invalid
        VerificationError: If any reported solution fails verification
    """
    if trials < 1:
        raise ValueError(f"trials must be positive, got {trials}")

    trace = trace or TraceSink()
    stats = SeriesStats(n=n, r=r, pct=pct)
    trace.begin_series(n, r, pct)
    logger.info(f"QUADKNAP {n}, {r}, {pct}")

    for v in range(1, trials + 1):
        instance = generate_instance(n, r, pct, seed=series_seed(v, n, r, pct), max_items=max_items)

        start = time.process_time()
        result = Problem(instance).solve(solver=solver, solver_options=solver_options)
        elapsed = time.process_time() - start

        record = TrialRecord(trial=v, capacity=instance.capacity, value=result.value, time=elapsed)
        trace.record_trial(record)
        verify_solution(instance, result.x, result.value)
        stats.add(record)

    trace.end_series(stats)
    return stats
