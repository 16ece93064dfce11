"""
Upper Plane Relaxation Bounds

This module computes the upper bound used to prune search nodes.

For a node with fixed-in set I, residual capacity r and free items F that
still fit, every feasible completion S of F has objective

    z(I) + sum_{i in S} (p[i, i] + 2 * link[i]) + sum_{i in S} sum_{j in S, j != i} p[i, j]

where link[i] = sum_{k in I} p[i, k]. For each free item i the inner sum is at
most pi[i], the fractional knapsack bound over the other free items with
profits p[i, j] and capacity r - w[i]. Giving each item the effective profit

    p_eff[i] = p[i, i] + 2 * link[i] + pi[i]

turns the completion problem into a linear knapsack, whose fractional (LP)
bound over capacity r is a valid upper bound on the node. Each free pair
appears twice in the p_eff sum, matching its two occurrences in the
objective.

The two occurrences need not be credited equally. With an `UpperPlane`
split, row i uses split[i, j] in place of p[i, j], where
split[i, j] + split[j, i] == 2 * p[i, j]. The sum over S is unchanged, so the
bound stays valid for every split, while a well chosen split (the Lagrangian
multipliers of the constraints y[i, j] == y[j, i]) makes it much tighter.

All values are integers. Fractional terms are floored with exact integer
division and item orders by profit/weight ratio are checked by integer
cross-multiplication, so no bound is ever rounded below its true value.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from fractions import Fraction
from typing import Tuple

import numpy as np

from ...errors import InternalConsistencyError
from ...instance import Instance
from .node import SearchNode

logger = logging.getLogger(__name__)


@dataclass
class BoundResult:
    """
    Upper bound for a search node.

    Attributes:
        bound: No feasible completion of the node exceeds this value
        exact: True when all fitting free items fit together; the bound is
            then attained by selecting all of them
        critical: Item split by the fractional fill (branching candidate),
            None when the bound is exact
        candidates: Free items whose weight does not exceed the residual
            capacity (global indices)
        order: Candidates in fill order (global indices)
        effective_profit: p_eff of each candidate, aligned with `candidates`
    """

    bound: int
    exact: bool
    critical: int | None
    candidates: np.ndarray
    order: np.ndarray
    effective_profit: np.ndarray


def _exact_order(profits: np.ndarray, weights: np.ndarray, items) -> list[int]:
    """Sort `items` by profit/weight descending with exact rationals, ties by position."""
    return sorted(
        items,
        key=lambda t: (-Fraction(int(profits[t]), int(weights[t])), t),
    )


def ratio_order(profits: np.ndarray, weights: np.ndarray) -> np.ndarray:
    """Positions of `profits` sorted by profit/weight descending, ties by position.

    Correctly rounded float ratios never invert two distinct rationals, but
    they can tie them. The float order is checked pairwise with integer
    arithmetic and replaced by an exact sort if any adjacent pair is out of
    order.
    """
    m = profits.shape[0]
    if m <= 1:
        return np.arange(m)

    order = np.argsort(-(profits / weights), kind="stable")
    ps = profits[order]
    ws = weights[order]
    cross = ps[:-1] * ws[1:] - ps[1:] * ws[:-1]
    if np.any(cross < 0):
        logger.debug("Float ratio order tied distinct ratios, using exact order")
        order = np.array(_exact_order(profits, weights, range(m)), dtype=np.intp)
    return order


def fractional_fill(
    profits: np.ndarray,
    weights: np.ndarray,
    capacity: int,
) -> Tuple[int, int | None, np.ndarray]:
    """
    Solve the linear relaxation of a 0-1 knapsack by the greedy ratio fill.

    Args:
        profits: Nonnegative integer profits
        weights: Positive integer weights
        capacity: Nonnegative integer capacity

    Returns:
        Tuple of (floor of the LP value, position of the critical item or
        None if everything fits, fill order as positions)
    """
    m = profits.shape[0]
    order = ratio_order(profits, weights)
    if m == 0:
        return 0, None, order

    ps = profits[order]
    ws = weights[order]
    cumw = np.cumsum(ws)
    k = int(np.searchsorted(cumw, capacity, side="right"))

    value = int(ps[:k].sum())
    if k == m:
        return value, None, order

    remaining = capacity - (int(cumw[k - 1]) if k > 0 else 0)
    value += int(ps[k]) * remaining // int(ws[k])
    return value, int(order[k]), order


def row_ratio_order(pair_profit: np.ndarray, weights: np.ndarray) -> np.ndarray:
    """Per-row fill order of the pairwise profits, ratio descending, ties by position.

    The row's own item always goes last. The diagonal of `pair_profit` must
    be zero. Rows whose float order ties distinct ratios are re-sorted exactly.
    """
    m = weights.shape[0]
    if m == 0:
        return np.zeros((0, 0), dtype=np.intp)

    ratios = pair_profit / weights[None, :]
    np.fill_diagonal(ratios, -1.0)
    order = np.argsort(-ratios, axis=1, kind="stable")

    if m > 1:
        qs = np.take_along_axis(pair_profit, order, axis=1)
        ws = weights[order]
        cross = qs[:, :-1] * ws[:, 1:] - qs[:, 1:] * ws[:, :-1]
        for row in np.flatnonzero(np.any(cross < 0, axis=1)):
            others = [j for j in range(m) if j != row]
            order[row] = _exact_order(pair_profit[row], weights, others) + [int(row)]
    return order


def fill_sorted_rows(
    qs: np.ndarray,
    ws: np.ndarray,
    capacities: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Fractional fill of every row of presorted profits and weights.

    Columns with zero weight (and zero profit) are skipped over, so masked
    rows can be filled in place.

    Returns:
        Tuple of (floor of each row's LP value, number of leading columns
        taken whole, weight of those columns)
    """
    rows_n, width = qs.shape
    cumw = np.cumsum(ws, axis=1)
    cump = np.cumsum(qs, axis=1)
    k = np.sum(cumw <= capacities[:, None], axis=1)

    rows = np.arange(rows_n)
    last = np.maximum(k - 1, 0)
    used = np.where(k > 0, cumw[rows, last], 0)
    full = np.where(k > 0, cump[rows, last], 0)

    split = k < width
    nxt = np.minimum(k, width - 1)
    divisor = np.where(split, ws[rows, nxt], 1)
    frac = np.where(split, qs[rows, nxt] * (capacities - used) // divisor, 0)
    return full + frac, k, used


def pairwise_fill(
    pair_profit: np.ndarray,
    weights: np.ndarray,
    capacities: np.ndarray,
    order: np.ndarray | None = None,
) -> np.ndarray:
    """
    Row-wise fractional knapsack bounds for the pairwise profits.

    Row i is the LP knapsack over items j != i with profit pair_profit[i, j],
    weight weights[j] and capacity capacities[i]. The diagonal of
    `pair_profit` must be zero.

    Returns:
        Integer array with the floor of each row's LP value
    """
    m = weights.shape[0]
    if m == 0:
        return np.zeros(0, dtype=np.int64)

    if order is None:
        order = row_ratio_order(pair_profit, weights)
    qs = np.take_along_axis(pair_profit, order, axis=1)
    ws = weights[order]
    values, _, _ = fill_sorted_rows(qs, ws, capacities)
    return values


@dataclass(frozen=True)
class UpperPlane:
    """
    Split of the pairwise profits between the two rows of every pair.

    Row i is credited split[i, j] for the pair (i, j) and row j is credited
    split[j, i], where split[i, j] + split[j, i] == 2 * profit[i, j] and both
    are nonnegative. Every such split yields a valid bound; the symmetric
    split credits profit[i, j] to both rows. Tighter splits are found by
    `quadknap.solvers.bnb.multipliers.optimize_multipliers`.

    Attributes:
        split: n x n int64 matrix with a zero diagonal
        row_order: Row i lists all items by split[i, j] / w[j] descending,
            item i itself last
    """

    split: np.ndarray
    row_order: np.ndarray

    @classmethod
    def from_split(cls, instance: Instance, split: np.ndarray) -> "UpperPlane":
        split = np.array(split, dtype=np.int64)
        n = instance.n
        if split.shape != (n, n):
            raise InternalConsistencyError(f"Profit split must have shape ({n}, {n})")

        pair_total = 2 * instance.profit
        np.fill_diagonal(pair_total, 0)
        if np.any(np.diagonal(split) != 0) or np.any(split < 0):
            raise InternalConsistencyError("Profit split must be nonnegative with a zero diagonal")
        if not np.array_equal(split + split.T, pair_total):
            raise InternalConsistencyError("Profit split does not add up to the pair profits")

        split.setflags(write=False)
        row_order = row_ratio_order(split, instance.weights)
        row_order.setflags(write=False)
        return cls(split=split, row_order=row_order)

    @classmethod
    def symmetric(cls, instance: Instance) -> "UpperPlane":
        split = instance.profit.copy()
        np.fill_diagonal(split, 0)
        return cls.from_split(instance, split)


def plane_row_bounds(
    plane: UpperPlane,
    weights: np.ndarray,
    candidates: np.ndarray,
    residual: int,
) -> np.ndarray:
    """Row bounds pi[i] of the candidates, filled along the plane's precomputed row orders."""
    mask = np.zeros(weights.shape[0], dtype=bool)
    mask[candidates] = True

    order = plane.row_order[candidates]
    keep = mask[order] & (order != candidates[:, None])
    ws = np.where(keep, weights[order], 0)
    qs = np.where(keep, plane.split[candidates[:, None], order], 0)
    values, _, _ = fill_sorted_rows(qs, ws, residual - weights[candidates])
    return values


def compute_bound(
    instance: Instance,
    node: SearchNode,
    plane: UpperPlane | None = None,
) -> BoundResult:
    """Compute the upper plane bound of a search node.

    Without a plane the symmetric split is used, sorted on the candidates only.
    """
    weights = instance.weights
    free = node.free
    candidates = free[weights[free] <= node.residual]

    if candidates.size == 0:
        return BoundResult(
            bound=node.partial,
            exact=True,
            critical=None,
            candidates=candidates,
            order=candidates,
            effective_profit=np.zeros(0, dtype=np.int64),
        )

    w = weights[candidates]
    pair_profit = instance.profit[np.ix_(candidates, candidates)]
    diag = np.diagonal(pair_profit).copy()
    linear = diag + 2 * node.link[candidates]

    if int(w.sum()) <= node.residual:
        pairs = int(pair_profit.sum()) - int(diag.sum())
        return BoundResult(
            bound=node.partial + int(linear.sum()) + pairs,
            exact=True,
            critical=None,
            candidates=candidates,
            order=candidates,
            effective_profit=linear + (pair_profit.sum(axis=1) - diag),
        )

    if plane is None:
        np.fill_diagonal(pair_profit, 0)
        pi = pairwise_fill(pair_profit, w, node.residual - w)
    else:
        pi = plane_row_bounds(plane, weights, candidates, node.residual)
    effective = linear + pi

    value, critical_pos, order = fractional_fill(effective, w, node.residual)
    return BoundResult(
        bound=node.partial + value,
        exact=False,
        critical=int(candidates[critical_pos]),
        candidates=candidates,
        order=candidates[order],
        effective_profit=effective,
    )
