"""
Primal Heuristics for Finding Feasible Solutions

This module implements the heuristics that seed and improve the incumbent
of the QKP branch-and-bound search:

- Density greedy: static order by total profit per unit weight
- Marginal greedy: repeatedly add the item with the best marginal gain per
  unit weight
- Exchange: fill-up and 1-for-1 swap local search

Every heuristic respects a node's fixed items: fixed-in items are always
selected and fixed-out items are never selected.
"""

from __future__ import annotations

import logging
from typing import Tuple

import numpy as np

from ...constants import FREE, IN, GreedyStrategy
from ...instance import Instance

logger = logging.getLogger(__name__)


def _fixed_state(instance: Instance, state: np.ndarray | None) -> np.ndarray:
    if state is None:
        return np.full(instance.n, FREE, dtype=np.int8)
    return state


def density_greedy(
    instance: Instance,
    state: np.ndarray | None = None,
) -> Tuple[int, np.ndarray] | None:
    """Insert items in order of (p[i, i] + sum_j p[i, j]) / w[i], skipping those that do not fit.

    Returns None if the fixed-in items alone exceed the capacity.
    """
    state = _fixed_state(instance, state)
    weights = instance.weights
    profit = instance.profit

    x = state == IN
    residual = instance.capacity - int(weights[x].sum())
    if residual < 0:
        return None

    free = np.flatnonzero(state == FREE)
    density = profit[free].sum(axis=1) / weights[free]
    for item in free[np.argsort(-density, kind="stable")]:
        if weights[item] <= residual:
            x[item] = True
            residual -= int(weights[item])

    return instance.objective(x), x


def marginal_greedy(
    instance: Instance,
    state: np.ndarray | None = None,
) -> Tuple[int, np.ndarray] | None:
    """Repeatedly insert the fitting item with the largest gain per unit weight.

    The gain of item i given selection S is p[i, i] + 2 * sum_{k in S} p[i, k].
    Ties go to the lowest index. Returns None if the fixed-in items alone
    exceed the capacity.
    """
    state = _fixed_state(instance, state)
    weights = instance.weights
    profit = instance.profit

    x = state == IN
    residual = instance.capacity - int(weights[x].sum())
    if residual < 0:
        return None

    link = profit[:, x].sum(axis=1)
    available = state == FREE
    diag = np.diagonal(profit)

    while True:
        fits = available & (weights <= residual)
        if not np.any(fits):
            break
        score = np.where(fits, (diag + 2 * link) / weights, -np.inf)
        item = int(np.argmax(score))
        x[item] = True
        available[item] = False
        residual -= int(weights[item])
        link += profit[:, item]

    return instance.objective(x), x


def exchange_improvement(
    instance: Instance,
    x: np.ndarray,
    state: np.ndarray | None = None,
) -> Tuple[int, np.ndarray]:
    """
    Improve a feasible selection by fill-up and 1-for-1 swap moves.

    Each step applies the best strictly improving move: adding a free item
    that fits, or swapping a selected (not fixed-in) item for an unselected
    free item. Stops at a local optimum.

    Args:
        instance: The QKP instance
        x: Feasible boolean selection consistent with `state`
        state: Optional item states (fixed items are never moved)

    Returns:
        Tuple of (objective, improved selection)
    """
    state = _fixed_state(instance, state)
    weights = instance.weights
    profit = instance.profit
    diag = np.diagonal(profit)
    movable = state == FREE

    x = np.asarray(x, dtype=bool).copy()
    value = instance.objective(x)
    residual = instance.capacity - int(weights[x].sum())
    link = profit[:, x].sum(axis=1)
    moves = 0

    while True:
        outside = np.flatnonzero(movable & ~x)
        inside = np.flatnonzero(movable & x)
        if outside.size == 0:
            break

        # Fill-up: gain of adding j is p[j, j] + 2 * link[j]
        add_gain = diag[outside] + 2 * link[outside]
        add_gain = np.where(weights[outside] <= residual, add_gain, -1)
        best_add = int(np.argmax(add_gain))
        if add_gain[best_add] > 0:
            item = int(outside[best_add])
            x[item] = True
            residual -= int(weights[item])
            link += profit[:, item]
            value += int(add_gain[best_add])
            moves += 1
            continue

        if inside.size == 0:
            break

        # Swap i (inside) for j (outside):
        # delta = p[j, j] + 2 link[j] - 2 p[i, j] - (2 link[i] - p[i, i])
        remove_loss = 2 * link[inside] - diag[inside]
        delta = (
            (diag[outside] + 2 * link[outside])[None, :]
            - 2 * profit[np.ix_(inside, outside)]
            - remove_loss[:, None]
        )
        feasible = weights[outside][None, :] <= residual + weights[inside][:, None]
        delta = np.where(feasible, delta, -1)
        flat = int(np.argmax(delta))
        a, b = divmod(flat, outside.size)
        if delta[a, b] <= 0:
            break

        out_item, in_item = int(inside[a]), int(outside[b])
        x[out_item] = False
        link -= profit[:, out_item]
        x[in_item] = True
        link += profit[:, in_item]
        residual += int(weights[out_item]) - int(weights[in_item])
        value += int(delta[a, b])
        moves += 1

    logger.debug(f"Exchange improvement applied {moves} move(s), value {value}")
    return value, x


def run_initial_heuristics(
    instance: Instance,
    state: np.ndarray | None = None,
    strategy: GreedyStrategy = GreedyStrategy.MARGINAL,
    use_exchange: bool = True,
) -> Tuple[int, np.ndarray] | None:
    """Build a feasible solution consistent with `state` to seed the incumbent."""
    if strategy == GreedyStrategy.DENSITY:
        seed = density_greedy(instance, state)
    else:
        seed = marginal_greedy(instance, state)

    if seed is None:
        return None

    value, x = seed
    if use_exchange:
        value, x = exchange_improvement(instance, x, state)
    return value, x
