"""
Lagrangian Multipliers for the Upper Plane Bound

Linearizing the objective with y[i, j] = x[i] x[j] and relaxing the
constraints y[i, j] == y[j, i] with multipliers mu[i, j] moves profit between
the two rows of every pair:

    split[i, j] = p[i, j] + mu[i, j],    split[j, i] = p[i, j] - mu[i, j]

The upper plane bound is valid for every such split (see `bounds`). This
module minimizes it over integer splits with subgradient steps. The
subgradient with respect to mu[i, j] is x[i] y[i, j] - x[j] y[j, i], where x is
the fractional outer knapsack solution and y[i] the fractional solution of
row i. Steps follow Polyak's rule towards the incumbent value, and the step
factor is halved whenever the bound stalls.

Splits are clipped to [0, 2 p[i, j]] and rounded to integers, so every
evaluated bound keeps the exact integer arithmetic of `bounds`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from ...constants import (
    DEFAULT_MULTIPLIER_ITERATIONS,
    MULTIPLIER_MIN_STEP,
    MULTIPLIER_STALL_LIMIT,
    MULTIPLIER_STEP,
)
from ...instance import Instance
from .bounds import UpperPlane, compute_bound, fill_sorted_rows, fractional_fill, row_ratio_order
from .node import SearchNode

logger = logging.getLogger(__name__)


@dataclass
class MultiplierResult:
    """Outcome of a multiplier optimization at one node."""

    plane: UpperPlane
    bound: int
    initial_bound: int
    iterations: int

    @property
    def improved(self) -> bool:
        return self.bound < self.initial_bound


def split_from_multipliers(pair_profit: np.ndarray, mu: np.ndarray) -> np.ndarray:
    """Integer split for the upper-triangular multipliers `mu`.

    `pair_profit` must have a zero diagonal. The lower triangle of the result
    is determined by the upper one, so split + split.T == 2 * pair_profit.
    """
    upper = np.triu(np.clip(np.rint(pair_profit + mu), 0, 2 * pair_profit), 1).astype(np.int64)
    return upper + (np.triu(2 * pair_profit, 1) - upper).T


def _relaxation(
    linear: np.ndarray,
    split: np.ndarray,
    weights: np.ndarray,
    residual: int,
) -> tuple[int, np.ndarray, np.ndarray]:
    """Floor of the plane LP value with its fractional outer and row solutions."""
    m = weights.shape[0]
    capacities = residual - weights

    order = row_ratio_order(split, weights)
    qs = np.take_along_axis(split, order, axis=1)
    ws = weights[order]
    pi, k, used = fill_sorted_rows(qs, ws, capacities)

    value, critical, outer = fractional_fill(linear + pi, weights, residual)

    x = np.zeros(m)
    if critical is None:
        x[:] = 1.0
    else:
        pos = int(np.flatnonzero(outer == critical)[0])
        x[outer[:pos]] = 1.0
        x[critical] = (residual - int(weights[outer[:pos]].sum())) / int(weights[critical])

    y_sorted = (np.arange(m)[None, :] < k[:, None]).astype(float)
    rows = np.flatnonzero(k < m)
    y_sorted[rows, k[rows]] = (capacities[rows] - used[rows]) / ws[rows, k[rows]]
    y = np.zeros((m, m))
    np.put_along_axis(y, order, y_sorted, axis=1)
    np.fill_diagonal(y, 0.0)

    return value, x, y


def optimize_multipliers(
    instance: Instance,
    node: SearchNode,
    lower_bound: int,
    max_iterations: int = DEFAULT_MULTIPLIER_ITERATIONS,
    start: UpperPlane | None = None,
) -> MultiplierResult:
    """
    Minimize the upper plane bound of `node` over the profit split.

    Args:
        instance: The QKP instance
        node: Node whose bound is minimized (usually the root)
        lower_bound: Value of the best known solution; optimization stops
            once the bound reaches it
        max_iterations: Largest number of subgradient steps
        start: Split to start from (default: the symmetric split)

    Returns:
        MultiplierResult with the best split found. Entries of the split
        outside the node's candidate items are taken from `start`.
    """
    if start is None:
        start = UpperPlane.symmetric(instance)

    weights = instance.weights
    free = node.free
    candidates = free[weights[free] <= node.residual]
    w = weights[candidates]

    initial = compute_bound(instance, node, start).bound
    if max_iterations <= 0 or candidates.size < 2 or int(w.sum()) <= node.residual:
        return MultiplierResult(plane=start, bound=initial, initial_bound=initial, iterations=0)

    pair_profit = instance.profit[np.ix_(candidates, candidates)].copy()
    np.fill_diagonal(pair_profit, 0)
    linear = np.diagonal(instance.profit)[candidates] + 2 * node.link[candidates]
    active = np.triu(pair_profit > 0, 1)

    block = start.split[np.ix_(candidates, candidates)]
    mu = np.triu(block - pair_profit, 1).astype(float)

    best_value = initial
    best_split = block
    theta = MULTIPLIER_STEP
    stall = 0
    iterations = 0

    while iterations < max_iterations and best_value > lower_bound and theta >= MULTIPLIER_MIN_STEP:
        iterations += 1
        split = split_from_multipliers(pair_profit, mu)
        value, x, y = _relaxation(linear, split, w, node.residual)
        value += node.partial

        if value < best_value:
            best_value = value
            best_split = split
            stall = 0
        else:
            stall += 1
            if stall >= MULTIPLIER_STALL_LIMIT:
                theta /= 2
                stall = 0

        xy = x[:, None] * y
        g = np.where(active, xy - xy.T, 0.0)
        norm = float(np.sum(g * g))
        if norm == 0.0:
            break
        mu -= theta * max(value - lower_bound, 1) / norm * g

    if best_value == initial:
        plane = start
    else:
        full = np.array(start.split)
        full[np.ix_(candidates, candidates)] = best_split
        plane = UpperPlane.from_split(instance, full)

    logger.debug(
        f"Multipliers: bound {initial} -> {best_value} in {iterations} iteration(s), "
        f"target {lower_bound}"
    )
    return MultiplierResult(
        plane=plane, bound=best_value, initial_bound=initial, iterations=iterations
    )
