"""
Branch-and-Bound QKP Backend

Implements an exact depth-first branch-and-bound algorithm for the Quadratic
Knapsack Problem.

Features:
- Upper plane bounds (linear knapsack relaxation over effective profits)
- Lagrangian split of the pair profits, optimized at the root by subgradient
  steps and shared by every node
- Greedy incumbent seeding with exchange improvement
- Root reduction as a fixed-point loop with the greedy heuristic and the
  multiplier optimization
- In-tree reduction whenever the incumbent has improved since a subtree
  was last reduced
- Branching on the critical item of the bound, IN child first
- Explicit node stack, so search depth is not limited by recursion
"""

from __future__ import annotations

import logging
import time
from typing import Dict, List, Tuple

from ..constants import (
    DEFAULT_BOUND,
    DEFAULT_EXCHANGE,
    DEFAULT_GREEDY,
    DEFAULT_LOG_EVERY,
    DEFAULT_MULTIPLIER_ITERATIONS,
    DEFAULT_REDUCE,
    DEFAULT_REDUCE_IN_TREE,
    BoundStrategy,
    GreedyStrategy,
)
from ..errors import InternalConsistencyError
from ..instance import Instance
from .base import SolverResult, SolverStats, SolverStatus
from .bnb.bounds import BoundResult, UpperPlane, compute_bound
from .bnb.heuristics import run_initial_heuristics
from .bnb.multipliers import optimize_multipliers
from .bnb.node import BBStats, Incumbent, SearchNode, make_root
from .bnb.reduction import reduce_node
from .bnb.utils import completion_selection, create_child_nodes

logger = logging.getLogger(__name__)


class BranchAndBoundBackend:
    """
    Exact branch-and-bound solver for the Quadratic Knapsack Problem.

    The search is strictly sequential. All mutable state (node stack,
    incumbent, profit split, statistics) lives in local variables of
    `solve`, so one backend object can serve any number of solves.
    """

    def solve(
        self,
        instance: Instance,
        solver: str,
        solver_options: Dict[str, object],
    ) -> SolverResult:
        """
        Solve a QKP instance to proven optimality.

        Args:
            instance: The validated instance
            solver: Ignored (the backend implements one algorithm)
            solver_options: Options:
                - bound: "lagrangian" or "plain" profit split (default: "lagrangian")
                - multiplier_iterations: Subgradient steps per optimization (default: 150)
                - greedy: "marginal" or "density" seed heuristic (default: "marginal")
                - exchange: Improve heuristic solutions by local search (default: True)
                - reduce: Run root reduction (default: True)
                - reduce_in_tree: Reduce subtrees after incumbent updates (default: True)
                - verbose: Log progress at INFO level (default: False)
                - log_every: Nodes between progress rows (default: 1000)

        Returns:
            SolverResult with the optimal selection and value
        """
        start_time = time.time()

        options = dict(solver_options)
        bound_strategy = BoundStrategy(str(options.pop("bound", DEFAULT_BOUND)))
        multiplier_iterations = int(
            options.pop("multiplier_iterations", DEFAULT_MULTIPLIER_ITERATIONS)
        )
        greedy = GreedyStrategy(str(options.pop("greedy", DEFAULT_GREEDY)))
        use_exchange = bool(options.pop("exchange", DEFAULT_EXCHANGE))
        use_reduce = bool(options.pop("reduce", DEFAULT_REDUCE))
        reduce_in_tree = bool(options.pop("reduce_in_tree", DEFAULT_REDUCE_IN_TREE))
        verbose = bool(options.pop("verbose", False))
        log_every = int(options.pop("log_every", DEFAULT_LOG_EVERY))
        if multiplier_iterations < 0:
            raise ValueError(
                f"multiplier_iterations must be nonnegative, got {multiplier_iterations}"
            )
        if log_every <= 0:
            raise ValueError(f"log_every must be positive, got {log_every}")
        if options:
            raise ValueError(f"Unknown BnB solver option(s): {', '.join(sorted(options))}")
        if bound_strategy == BoundStrategy.PLAIN:
            multiplier_iterations = 0

        stats = BBStats()
        incumbent = Incumbent.empty(instance.n)
        root = make_root(instance)

        # Seed the incumbent
        seed = run_initial_heuristics(instance, root.state, greedy, use_exchange)
        if seed is not None and incumbent.offer(*seed):
            stats.heuristic_solutions += 1
        stats.greedy_value = incumbent.value

        if verbose:
            logger.info(
                f"Branch-and-Bound: n={instance.n}, capacity={instance.capacity}, "
                f"bound={bound_strategy.value}, greedy={greedy.value}, "
                f"seed value={incumbent.value}"
            )

        # Profit split shared by every bound of the search
        plane = UpperPlane.symmetric(instance)
        stats.symmetric_root_bound = self._evaluate(instance, root, plane, stats).bound
        plane = self._tighten(instance, root, plane, incumbent, multiplier_iterations, stats)
        stats.root_bound = self._evaluate(instance, root, plane, stats).bound

        if verbose:
            logger.info(
                f"Root bound {stats.root_bound} (symmetric split {stats.symmetric_root_bound}) "
                f"after {stats.multiplier_iterations} multiplier iteration(s)"
            )

        # Root reduction
        root_fathomed = False
        if use_reduce:
            plane, root_fathomed = self._preprocess(
                instance, root, plane, incumbent, greedy, use_exchange,
                multiplier_iterations, stats,
            )
            if verbose:
                logger.info(
                    f"Root reduction fixed {stats.root_fixed_in} in, "
                    f"{stats.root_fixed_out} out; incumbent {incumbent.value}"
                    + (", root fathomed" if root_fathomed else "")
                )
        stats.root_fathomed = root_fathomed
        setup_time = time.time() - start_time

        if verbose:
            logger.info(f"{'Nodes':>10} {'Incumbent':>12} {'Depth':>6} {'Open':>8} {'Time':>8}")
            logger.info("-" * 48)

        stack: List[SearchNode] = []
        if root_fathomed:
            stats.nodes_pruned += 1
        else:
            stack.append(root)
        node_counter = 1

        while stack:
            node = stack.pop()
            stats.nodes_explored += 1
            stats.max_depth = max(stats.max_depth, node.depth)

            bound = self._evaluate(instance, node, plane, stats)

            if self._settle(node, bound, incumbent, stats):
                continue

            if reduce_in_tree and node.reduced_at < incumbent.value:
                reduction = reduce_node(instance, node, incumbent.value, plane)
                node.reduced_at = incumbent.value
                stats.reduction_passes += reduction.passes
                stats.bound_evaluations += reduction.bound_evaluations
                stats.tree_fixed += len(reduction.fixed_in) + len(reduction.fixed_out)
                if reduction.fathomed:
                    stats.nodes_pruned += 1
                    continue
                if reduction.changed:
                    bound = self._evaluate(instance, node, plane, stats)
                    if self._settle(node, bound, incumbent, stats):
                        continue

            in_child, out_child = create_child_nodes(
                instance, node, bound.critical, node_counter
            )
            node_counter += 2

            # LIFO: the IN child is pushed last and explored first
            stack.append(out_child)
            if in_child is None:
                stats.nodes_infeasible += 1
            else:
                stack.append(in_child)

            if verbose and stats.nodes_explored % log_every == 0:
                elapsed = time.time() - start_time
                logger.info(
                    f"{stats.nodes_explored:>10} {incumbent.value:>12} "
                    f"{node.depth:>6} {len(stack):>8} {elapsed:>7.1f}s"
                )

        solve_time = time.time() - start_time
        stats.incumbent_updates = incumbent.updates

        # The incumbent must be a feasible selection with the reported value
        if not instance.is_feasible(incumbent.x):
            raise InternalConsistencyError("Final incumbent exceeds the capacity")
        if instance.objective(incumbent.x) != incumbent.value:
            raise InternalConsistencyError(
                f"Final incumbent value {incumbent.value} does not match its "
                f"objective {instance.objective(incumbent.x)}"
            )

        if verbose:
            logger.info("-" * 48)
            logger.info(f"Status: {SolverStatus.OPTIMAL}")
            logger.info(f"Optimal value: {incumbent.value} (greedy seed {stats.greedy_value})")
            logger.info(f"Nodes explored: {stats.nodes_explored}, pruned: {stats.nodes_pruned}")
            logger.info(f"Root bound: {stats.root_bound}")
            logger.info(f"Solve time: {solve_time:.3f}s")

        solver_stats = SolverStats(
            solver_name="BnB",
            solve_time=solve_time,
            setup_time=setup_time,
            num_iters=stats.nodes_explored,
        )

        return SolverResult(
            x=incumbent.x,
            value=incumbent.value,
            status=SolverStatus.OPTIMAL,
            stats=solver_stats,
            raw_result={
                "bb_stats": stats,
                "root_bound": stats.root_bound,
                "greedy_value": stats.greedy_value,
            },
        )


    # =========================================================================
    # Preprocessing
    # =========================================================================

    def _tighten(
        self,
        instance: Instance,
        root: SearchNode,
        plane: UpperPlane,
        incumbent: Incumbent,
        iterations: int,
        stats: BBStats,
    ) -> UpperPlane:
        """Warm-start the multiplier optimization at the root from `plane`."""
        if iterations <= 0:
            return plane
        result = optimize_multipliers(instance, root, incumbent.value, iterations, start=plane)
        stats.multiplier_iterations += result.iterations
        stats.bound_evaluations += result.iterations
        if result.improved:
            logger.debug(
                f"Multipliers tightened the root bound {result.initial_bound} -> {result.bound}"
            )
        return result.plane

    def _preprocess(
        self,
        instance: Instance,
        root: SearchNode,
        plane: UpperPlane,
        incumbent: Incumbent,
        greedy: GreedyStrategy,
        use_exchange: bool,
        iterations: int,
        stats: BBStats,
    ) -> Tuple[UpperPlane, bool]:
        """
        Alternate root reduction, greedy re-seeding and multiplier updates
        until none of them makes progress.

        Returns:
            The final profit split and whether the reduction fathomed the root
        """
        while True:
            reduction = reduce_node(instance, root, incumbent.value, plane)
            root.reduced_at = incumbent.value
            stats.reduction_passes += reduction.passes
            stats.bound_evaluations += reduction.bound_evaluations
            stats.root_fixed_in += len(reduction.fixed_in)
            stats.root_fixed_out += len(reduction.fixed_out)

            if reduction.fathomed:
                return plane, True
            if not reduction.changed:
                return plane, False

            # A smaller problem can yield a better greedy solution
            progress = False
            seed = run_initial_heuristics(instance, root.state, greedy, use_exchange)
            if seed is not None and incumbent.offer(*seed):
                stats.heuristic_solutions += 1
                progress = True
                logger.debug(f"Greedy on reduced root improved incumbent to {incumbent.value}")

            # ... and a tighter split
            before = compute_bound(instance, root, plane).bound
            plane = self._tighten(instance, root, plane, incumbent, iterations, stats)
            if compute_bound(instance, root, plane).bound < before:
                progress = True

            if not progress:
                return plane, False

    # =========================================================================
    # Node Evaluation
    # =========================================================================

    def _evaluate(
        self,
        instance: Instance,
        node: SearchNode,
        plane: UpperPlane,
        stats: BBStats,
    ) -> BoundResult:
        stats.bound_evaluations += 1
        return compute_bound(instance, node, plane)

    def _settle(
        self,
        node: SearchNode,
        bound: BoundResult,
        incumbent: Incumbent,
        stats: BBStats,
    ) -> bool:
        """Prune the node or resolve it as a leaf. Returns True if the node is terminal."""
        if bound.bound <= incumbent.value:
            stats.nodes_pruned += 1
            return True

        if bound.exact:
            stats.leaves += 1
            x = completion_selection(node, bound.candidates)
            if incumbent.offer(bound.bound, x):
                logger.debug(
                    f"Incumbent improved to {incumbent.value} at node {node.node_id} "
                    f"(depth {node.depth})"
                )
            return True

        return False
