"""
Branch-and-Bound QKP Solver

This package implements the components of the exact branch-and-bound
algorithm for the Quadratic Knapsack Problem.

Modules:
- node: Search node, incumbent and statistics dataclasses
- bounds: Upper plane relaxation bounds
- multipliers: Subgradient optimization of the pair profit split
- reduction: Variable fixing by bound reduction
- heuristics: Greedy and exchange heuristics for the incumbent
- utils: Shared node manipulation functions

The search loop itself lives in `quadknap.solvers.bnb_backend`.
"""

from .node import BBStats, Incumbent, SearchNode, make_root
from .bounds import BoundResult, UpperPlane, compute_bound, fractional_fill
from .multipliers import MultiplierResult, optimize_multipliers
from .reduction import ReductionResult, reduce_node
from .heuristics import (
    density_greedy,
    exchange_improvement,
    marginal_greedy,
    run_initial_heuristics,
)

__all__ = [
    "BBStats",
    "BoundResult",
    "Incumbent",
    "MultiplierResult",
    "ReductionResult",
    "SearchNode",
    "UpperPlane",
    "compute_bound",
    "density_greedy",
    "exchange_improvement",
    "fractional_fill",
    "make_root",
    "marginal_greedy",
    "optimize_multipliers",
    "reduce_node",
    "run_initial_heuristics",
]
