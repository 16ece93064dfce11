from __future__ import annotations

import time
from typing import Tuple

import numpy as np

from .constants import DEFAULT_MAX_ITEMS, Solver
from .errors import InvalidInstance
from .instance import Instance
from .solvers import SolverResult, get_solver_backend


class Problem:
    """A Quadratic Knapsack problem bound to one instance."""

    def __init__(self, instance: Instance):
        if not isinstance(instance, Instance):
            raise TypeError(f"Problem expects an Instance, got {type(instance).__name__}")

        self.instance = instance
        self.value: int | None = None
        self.x: np.ndarray | None = None
        self.status = None
        self.solver_stats = None

    @classmethod
    def from_data(
        cls,
        profit,
        weights,
        capacity: int,
        max_items: int = DEFAULT_MAX_ITEMS,
    ) -> "Problem":
        return cls(Instance(profit, weights, capacity, max_items=max_items))

    def solve(self, solver=None, solver_options=None, verbose=False) -> SolverResult:
        """
        Solve the problem to optimality.

        Args:
            solver: Solver name or `Solver` member (default: BnB)
            solver_options: Options passed to the backend
            verbose: Log solver progress at INFO level

        Returns:
            SolverResult with the optimal selection and value
        """
        options = dict(solver_options or {})
        if verbose and "verbose" not in options:
            options["verbose"] = True

        if solver is None:
            solver = Solver.BNB

        backend = get_solver_backend(solver)
        solver_name = solver.value if isinstance(solver, Solver) else str(solver)

        start_time = time.time()
        result = backend.solve(self.instance, solver_name, options)
        if result.stats.solve_time is None:
            result.stats.solve_time = time.time() - start_time

        self.value = result.value
        self.x = result.x
        self.status = result.status
        self.solver_stats = result.stats

        return result


def solve(
    n: int,
    capacity: int,
    profit,
    weights,
    solver: Solver | str = Solver.BNB,
    solver_options=None,
    max_items: int = DEFAULT_MAX_ITEMS,
) -> Tuple[int, np.ndarray]:
    """
    Solve a Quadratic Knapsack Problem exactly.

    Args:
        n: Number of items
        capacity: Knapsack capacity (>= 0)
        profit: Symmetric n x n matrix of nonnegative integers
        weights: Length-n vector of positive integers
        solver: Backend to use (default: branch-and-bound)
        solver_options: Options passed to the backend
        max_items: Largest accepted n

    Returns:
        Tuple of (optimal value, boolean selection vector of length n)

    Raises:
        InvalidInstance: If the data does not describe a valid instance
    """
    problem = Problem.from_data(profit, weights, capacity, max_items=max_items)
    if problem.instance.n != n:
        raise InvalidInstance(f"Expected {n} items, got {problem.instance.n}")

    result = problem.solve(solver=solver, solver_options=solver_options)
    return result.value, result.x
