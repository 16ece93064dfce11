from __future__ import annotations

from typing import Sequence

import numpy as np

from .constants import DEFAULT_MAX_ITEMS, INT64_SAFE_LIMIT
from .errors import InvalidInstance


def _as_integer_array(values, name: str, ndim: int) -> np.ndarray:
    """Convert input coefficients to a read-only int64 array or raise InvalidInstance."""
    arr = np.asarray(values)
    if arr.size == 0:
        arr = arr.reshape((0,) * ndim)

    if arr.ndim != ndim:
        raise InvalidInstance(f"{name} must be {ndim}-dimensional, got shape {arr.shape}")

    if arr.dtype.kind == "b":
        arr = arr.astype(np.int64)
    elif arr.dtype.kind in "iu":
        if arr.dtype.kind == "u" and arr.size and int(arr.max()) > np.iinfo(np.int64).max:
            raise InvalidInstance(f"{name} has entries outside the 64-bit range")
        arr = arr.astype(np.int64)
    elif arr.dtype.kind == "f":
        if not np.all(np.isfinite(arr)) or not np.all(arr == np.round(arr)):
            raise InvalidInstance(f"{name} must contain integers")
        if arr.size and np.max(np.abs(arr)) >= 2.0**62:
            raise InvalidInstance(f"{name} has entries outside the 64-bit range")
        arr = arr.astype(np.int64)
    elif arr.dtype.kind == "O":
        raise InvalidInstance(f"{name} has entries outside the 64-bit range")
    else:
        raise InvalidInstance(f"{name} must contain integers, got dtype {arr.dtype}")

    arr.setflags(write=False)
    return arr


class Instance:
    """
    A Quadratic Knapsack instance.

    Maximize sum_i sum_j profit[i, j] x_i x_j subject to
    sum_i weights[i] x_i <= capacity with x binary. The profit matrix is
    symmetric, so an off-diagonal pair (i, j) contributes 2 * profit[i, j]
    when both items are selected.

    Instances are immutable: the stored arrays are read-only and shared by
    every component of the solver.

    Example:
        inst = Instance(
            profit=[[5, 2, 1], [2, 6, 3], [1, 3, 8]],
            weights=[2, 3, 4],
            capacity=5,
        )
        inst.objective([True, True, False])  # 15
    """

    __slots__ = ("_profit", "_weights", "_capacity", "_max_items")

    def __init__(
        self,
        profit,
        weights,
        capacity: int,
        max_items: int = DEFAULT_MAX_ITEMS,
    ):
        """
        Create and validate an instance.

        Args:
            profit: Symmetric n x n matrix of nonnegative integers
            weights: Length-n vector of positive integers
            capacity: Nonnegative integer knapsack capacity
            max_items: Largest accepted n

        Raises:
            InvalidInstance: If any of the above does not hold
        """
        weights_arr = _as_integer_array(weights, "weights", 1)
        n = weights_arr.shape[0]

        if n > max_items:
            raise InvalidInstance(f"table too small: n={n} exceeds max_items={max_items}")

        profit_arr = _as_integer_array(profit, "profit", 2)
        if n == 0 and profit_arr.size == 0:
            profit_arr = np.zeros((0, 0), dtype=np.int64)
            profit_arr.setflags(write=False)
        if profit_arr.shape != (n, n):
            raise InvalidInstance(
                f"profit must have shape ({n}, {n}), got {profit_arr.shape}"
            )

        if isinstance(capacity, (bool, np.bool_)) or not isinstance(
            capacity, (int, np.integer)
        ):
            if isinstance(capacity, (float, np.floating)) and float(capacity).is_integer():
                capacity = int(capacity)
            else:
                raise InvalidInstance(f"capacity must be an integer, got {capacity!r}")
        capacity = int(capacity)

        if capacity < 0:
            raise InvalidInstance(f"capacity must be nonnegative, got {capacity}")
        if n and int(weights_arr.min()) <= 0:
            bad = int(np.argmin(weights_arr))
            raise InvalidInstance(
                f"weights must be positive, item {bad} has weight {int(weights_arr[bad])}"
            )
        if n and int(profit_arr.min()) < 0:
            i, j = np.unravel_index(int(np.argmin(profit_arr)), profit_arr.shape)
            raise InvalidInstance(
                f"profits must be nonnegative, profit[{i}, {j}] = {int(profit_arr[i, j])}"
            )
        if not np.array_equal(profit_arr, profit_arr.T):
            raise InvalidInstance("profit matrix must be symmetric")

        total_profit = sum(int(v) for v in profit_arr.sum(axis=1))
        total_weight = sum(int(v) for v in weights_arr)
        if max(total_profit, 1) * max(total_weight, 1) >= INT64_SAFE_LIMIT:
            raise InvalidInstance(
                "coefficients too large: total profit times total weight must stay below 2**62"
            )

        self._profit = profit_arr
        self._weights = weights_arr
        self._capacity = capacity
        self._max_items = max_items

    @property
    def n(self) -> int:
        """Number of items."""
        return int(self._weights.shape[0])

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def weights(self) -> np.ndarray:
        """Read-only int64 weight vector."""
        return self._weights

    @property
    def profit(self) -> np.ndarray:
        """Read-only symmetric int64 profit matrix."""
        return self._profit

    @property
    def max_items(self) -> int:
        return self._max_items

    def weight(self, i: int) -> int:
        return int(self._weights[i])

    def profit_of(self, i: int, j: int) -> int:
        return int(self._profit[i, j])

    @property
    def total_weight(self) -> int:
        return int(self._weights.sum())

    @property
    def effective_capacity(self) -> int:
        """Capacity clipped to the total weight; every selection fits below it."""
        return min(self._capacity, self.total_weight)

    def _as_selection(self, x) -> np.ndarray:
        sel = np.asarray(x, dtype=bool).reshape(-1)
        if sel.shape[0] != self.n:
            raise ValueError(f"Selection must have length {self.n}, got {sel.shape[0]}")
        return sel

    def objective(self, x: Sequence[bool] | np.ndarray) -> int:
        """Return sum_i sum_j profit[i, j] x_i x_j for a selection x."""
        sel = self._as_selection(x)
        idx = np.flatnonzero(sel)
        return int(self._profit[np.ix_(idx, idx)].sum())

    def selection_weight(self, x: Sequence[bool] | np.ndarray) -> int:
        sel = self._as_selection(x)
        return int(self._weights[sel].sum())

    def is_feasible(self, x: Sequence[bool] | np.ndarray) -> bool:
        return self.selection_weight(x) <= self._capacity

    def __repr__(self):
        return f"Instance(n={self.n}, capacity={self._capacity})"
