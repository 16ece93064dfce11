"""
Branch-and-Bound Node, Incumbent and Statistics Dataclasses

This module contains the core data structures used by the QKP
branch-and-bound search: search nodes, the incumbent solution and the
statistics collected during a solve.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from ...constants import FREE, IN
from ...instance import Instance


@dataclass
class SearchNode:
    """
    A node in the branch-and-bound tree.

    Item state semantics:
    - `state[i]` is IN, OUT or FREE for every item.
    - `residual` is the capacity left after the fixed-in items.
    - `partial` is the objective contributed by the fixed-in items, pairwise
      terms among themselves included.
    - `link[i]` is sum(profit[i, k] for k fixed in); including a free item i
      adds profit[i, i] + 2 * link[i] to the partial objective.
    - `reduced_at` is the incumbent value the node's subtree was last reduced
      against. Children inherit it from their parent.

    A node is owned by the stack entry that holds it; expanding it creates
    fresh copies for its children.
    """

    node_id: int
    depth: int
    state: np.ndarray
    residual: int
    partial: int
    link: np.ndarray
    reduced_at: int = -1

    @property
    def free(self) -> np.ndarray:
        """Indices of items still free at this node."""
        return np.flatnonzero(self.state == FREE)

    @property
    def selection(self) -> np.ndarray:
        """Boolean selection of the fixed-in items."""
        return self.state == IN

    def copy(self, node_id: int) -> "SearchNode":
        return SearchNode(
            node_id=node_id,
            depth=self.depth + 1,
            state=self.state.copy(),
            residual=self.residual,
            partial=self.partial,
            link=self.link.copy(),
            reduced_at=self.reduced_at,
        )


def make_root(instance: Instance) -> SearchNode:
    """Create the root node: every item free, the whole capacity available."""
    n = instance.n
    return SearchNode(
        node_id=0,
        depth=0,
        state=np.full(n, FREE, dtype=np.int8),
        residual=instance.effective_capacity,
        partial=0,
        link=np.zeros(n, dtype=np.int64),
    )


@dataclass
class Incumbent:
    """Best feasible solution found so far. Its value never decreases."""

    value: int
    x: np.ndarray
    updates: int = 0

    @classmethod
    def empty(cls, n: int) -> "Incumbent":
        return cls(value=0, x=np.zeros(n, dtype=bool))

    def offer(self, value: int, x: np.ndarray) -> bool:
        """Replace the incumbent if `value` is strictly better. Returns True on update."""
        if value > self.value:
            self.value = int(value)
            self.x = np.asarray(x, dtype=bool).copy()
            self.updates += 1
            return True
        return False


@dataclass
class BBStats:
    """Statistics from the branch-and-bound solve."""

    nodes_explored: int = 0
    nodes_pruned: int = 0
    nodes_infeasible: int = 0
    leaves: int = 0
    incumbent_updates: int = 0
    heuristic_solutions: int = 0
    bound_evaluations: int = 0
    reduction_passes: int = 0
    root_fixed_in: int = 0
    root_fixed_out: int = 0
    tree_fixed: int = 0
    max_depth: int = 0
    root_bound: int | None = None
    symmetric_root_bound: int | None = None
    multiplier_iterations: int = 0
    root_fathomed: bool = False
    greedy_value: int = 0
