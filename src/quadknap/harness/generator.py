"""
Random QKP instance generator.

Instances follow the classical Gallo-Hammer-Simeone scheme used in the QKP
literature: each profit p[i, j] = p[j, i] is nonzero with probability
pct / 100 and then uniform in [1, r]; weights are uniform in [1, r / 2];
the capacity is uniform in [50, sum(w) - 1].
"""

from __future__ import annotations

import logging

import numpy as np

from ..constants import DEFAULT_MAX_ITEMS
from ..errors import InvalidInstance
from ..instance import Instance

logger = logging.getLogger(__name__)

# Smallest capacity drawn by the generator
MIN_CAPACITY = 50


def series_seed(trial: int, n: int, r: int, pct: int) -> int:
    """Seed of trial `trial` (1-based) in the series (n, r, pct)."""
    return trial + n + r + pct


def generate_instance(
    n: int,
    r: int,
    pct: int,
    seed: int | None = None,
    max_items: int = DEFAULT_MAX_ITEMS,
) -> Instance:
    """
    Generate a random QKP instance.

    Args:
        n: Number of items
        r: Coefficient range, profits in [1, r] and weights in [1, r / 2]
        pct: Density in percent, the expected share of nonzero profits
        seed: Seed for numpy's random generator
        max_items: Largest accepted n

    Returns:
        A validated Instance

    Raises:
        InvalidInstance: If the parameters are out of range or the weight
            sum is too small to draw a capacity
    """
    if n < 0:
        raise InvalidInstance(f"n must be nonnegative, got {n}")
    if n > max_items:
        raise InvalidInstance(f"table too small: n={n} exceeds max_items={max_items}")
    if r < 1:
        raise InvalidInstance(f"r must be at least 1, got {r}")
    if not 0 <= pct <= 100:
        raise InvalidInstance(f"pct must be within [0, 100], got {pct}")

    rng = np.random.default_rng(seed)

    draws = rng.integers(0, 100, size=(n, n))
    values = rng.integers(1, r + 1, size=(n, n))
    lower = np.tril(np.where(draws < pct, values, 0))
    profit = lower + lower.T - np.diag(np.diagonal(lower))

    weights = rng.integers(1, max(r // 2, 1) + 1, size=n)

    weight_sum = int(weights.sum())
    if weight_sum - MIN_CAPACITY <= 0:
        raise InvalidInstance(f"too small weight sum: {weight_sum}")

    capacity = int(rng.integers(MIN_CAPACITY, weight_sum))
    if pct == 0:
        logger.warning("Density 0 generates an all-zero profit matrix")

    return Instance(profit, weights, capacity, max_items=max_items)
