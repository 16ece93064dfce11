"""Examples demonstrating quadknap with its solver backends and options.

Each helper solves the same generated instance with a specific backend or
option set. Execute this module directly to run every example in sequence,
or import the helper functions elsewhere to experiment interactively.
"""

from __future__ import annotations

from quadknap import Problem, Solver, SolverStatus
from quadknap.harness import generate_instance

INSTANCE = generate_instance(40, 100, 50, seed=7)


def _solve(solver: Solver, *, solver_options=None, label: str = ""):
    try:
        result = Problem(INSTANCE).solve(solver=solver, solver_options=solver_options or {})
    except ValueError as exc:
        print(f"{label or solver.value}: failed -> {exc}")
        return

    print(f"{label or solver.value}: status={result.status}, value={result.value}")
    print(f"  selected = {result.selected}")
    print(f"  time     = {result.stats.solve_time:.3f}s")
    if result.raw_result:
        bb = result.raw_result["bb_stats"]
        print(
            f"  nodes    = {bb.nodes_explored}, root bound = {bb.root_bound}, "
            f"greedy = {bb.greedy_value}"
        )
    if result.status != SolverStatus.OPTIMAL:
        print("  Warning: solver did not report optimality")


def solve_with_defaults():
    _solve(Solver.BNB, label="BnB")


def solve_with_density_greedy():
    _solve(Solver.BNB, solver_options={"greedy": "density"}, label="BnB (density greedy)")


def solve_with_plain_bound():
    _solve(Solver.BNB, solver_options={"bound": "plain"}, label="BnB (plain bound)")


def solve_without_reduction():
    _solve(
        Solver.BNB,
        solver_options={"reduce": False, "reduce_in_tree": False},
        label="BnB (no reduction)",
    )


def solve_with_enumeration():
    # 40 items is beyond the enumeration limit; this reports the failure
    _solve(Solver.ENUMERATE, label="enumerate")


EXAMPLES = [
    solve_with_defaults,
    solve_with_density_greedy,
    solve_with_plain_bound,
    solve_without_reduction,
    solve_with_enumeration,
]


def run_all_examples():
    print(f"--- {INSTANCE!r} ---")
    for example in EXAMPLES:
        example()
        print()


if __name__ == "__main__":  # pragma: no cover
    run_all_examples()
