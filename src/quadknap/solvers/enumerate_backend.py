from __future__ import annotations

import logging
import time
from typing import Dict

import numpy as np

from ..constants import DEFAULT_ENUMERATE_MAX_ITEMS
from ..instance import Instance
from .base import SolverResult, SolverStats, SolverStatus

logger = logging.getLogger(__name__)


class EnumerationBackend:
    """
    Exhaustive enumeration of all 2**n selections.

    Only practical for small instances; serves as an independent reference
    for the branch-and-bound backend. Selections are enumerated as bit masks
    (bit i selects item i) in increasing order and the first maximum wins.
    """

    CHUNK_BITS = 14

    def solve(
        self,
        instance: Instance,
        solver: str,
        solver_options: Dict[str, object],
    ) -> SolverResult:
        options = dict(solver_options)
        max_items = int(options.pop("max_items", DEFAULT_ENUMERATE_MAX_ITEMS))
        verbose = bool(options.pop("verbose", False))
        if options:
            raise ValueError(
                f"Unknown enumerate solver option(s): {', '.join(sorted(options))}"
            )

        n = instance.n
        if n > max_items:
            raise ValueError(
                f"Enumeration is limited to {max_items} items, instance has {n}"
            )

        start_time = time.time()
        profit = instance.profit
        weights = instance.weights
        capacity = instance.capacity

        best_value = 0
        best_mask = 0
        total = 1 << n
        chunk = 1 << min(n, self.CHUNK_BITS)
        shifts = np.arange(n, dtype=np.int64)

        for start in range(0, total, chunk):
            masks = np.arange(start, min(start + chunk, total), dtype=np.int64)
            x = (masks[:, None] >> shifts[None, :]) & 1
            load = x @ weights
            values = np.einsum("bi,ij,bj->b", x, profit, x)
            values = np.where(load <= capacity, values, -1)
            pos = int(np.argmax(values))
            if values[pos] > best_value:
                best_value = int(values[pos])
                best_mask = int(masks[pos])

        x_best = np.array([(best_mask >> i) & 1 for i in range(n)], dtype=bool)
        solve_time = time.time() - start_time

        if verbose:
            logger.info(f"Enumerated {total} selections in {solve_time:.3f}s, optimum {best_value}")

        return SolverResult(
            x=x_best,
            value=best_value,
            status=SolverStatus.OPTIMAL,
            stats=SolverStats(
                solver_name="enumerate",
                solve_time=solve_time,
                setup_time=0.0,
                num_iters=total,
            ),
        )
