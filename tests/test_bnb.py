"""Tests for the branch-and-bound QKP solver."""
import logging

import numpy as np
import pytest
from scipy.optimize import Bounds, LinearConstraint, milp

import quadknap as qk
from quadknap import solvers
from quadknap.constants import IN
from quadknap.harness import generate_instance
from quadknap.solvers import EnumerationBackend, get_solver_backend, register_solver_backend
from quadknap.solvers import bnb_backend
from quadknap.solvers.bnb import reduction as reduction_module

from conftest import best_completion, brute_force_optimum, make_random_instance

SMALL_PROFIT = [[5, 2, 1], [2, 6, 3], [1, 3, 8]]
SMALL_WEIGHTS = [2, 3, 4]


def milp_optimum(instance):
    """Optimum of the standard linearization y_ij <= x_i, y_ij <= x_j solved by scipy's MILP."""
    n = instance.n
    profit = instance.profit
    pairs = [(i, j) for i in range(n) for j in range(i + 1, n) if profit[i, j] > 0]
    num_vars = n + len(pairs)

    c = np.zeros(num_vars)
    c[:n] = -np.diagonal(profit)
    for k, (i, j) in enumerate(pairs):
        c[n + k] = -2 * profit[i, j]

    A = np.zeros((1 + 2 * len(pairs), num_vars))
    ub = np.zeros(1 + 2 * len(pairs))
    A[0, :n] = instance.weights
    ub[0] = instance.capacity
    for k, (i, j) in enumerate(pairs):
        A[1 + 2 * k, [n + k, i]] = [1, -1]
        A[2 + 2 * k, [n + k, j]] = [1, -1]

    res = milp(
        c,
        constraints=LinearConstraint(A, -np.inf, ub),
        integrality=np.ones(num_vars),
        bounds=Bounds(0, 1),
    )
    assert res.success
    return int(round(-res.fun))


def test_bnb_small_instance():
    """Test the three-item example."""
    value, x = qk.solve(3, 5, SMALL_PROFIT, SMALL_WEIGHTS)
    assert value == 15
    assert list(x) == [True, True, False]


def test_bnb_single_item():
    """Test an item that does not fit and one that fits exactly."""
    value, x = qk.solve(1, 2, [[7]], [3])
    assert value == 0
    assert list(x) == [False]

    value, x = qk.solve(1, 3, [[7]], [3])
    assert value == 7
    assert list(x) == [True]


def test_bnb_no_items():
    value, x = qk.solve(0, 10, np.zeros((0, 0), dtype=int), [])
    assert value == 0
    assert x.shape == (0,)


def test_bnb_zero_capacity():
    value, x = qk.solve(3, 0, SMALL_PROFIT, SMALL_WEIGHTS)
    assert value == 0
    assert not x.any()


def test_bnb_capacity_above_total_weight():
    value, x = qk.solve(3, 100, SMALL_PROFIT, SMALL_WEIGHTS)
    assert value == int(np.sum(SMALL_PROFIT))
    assert x.all()


def test_bnb_zero_profits():
    value, x = qk.solve(3, 5, np.zeros((3, 3), dtype=int), SMALL_WEIGHTS)
    assert value == 0


def test_bnb_item_count_mismatch():
    with pytest.raises(qk.InvalidInstance, match="Expected 4 items"):
        qk.solve(4, 5, SMALL_PROFIT, SMALL_WEIGHTS)


def test_bnb_matches_brute_force(random_instances):
    """Test optimality against exhaustive enumeration."""
    for inst in random_instances:
        result = qk.Problem(inst).solve(solver=qk.BNB)
        assert result.status == qk.SolverStatus.OPTIMAL
        assert result.value == brute_force_optimum(inst)
        assert inst.is_feasible(result.x)
        assert inst.objective(result.x) == result.value


@pytest.mark.parametrize("seed", range(8))
def test_bnb_matches_enumeration(seed):
    """Test against the enumeration backend on slightly larger instances."""
    inst = make_random_instance(100 + seed, 14, pct=(25, 50, 75, 100)[seed % 4])
    bnb = qk.Problem(inst).solve(solver=qk.BNB)
    enum = qk.Problem(inst).solve(solver=qk.ENUMERATE)
    assert bnb.value == enum.value
    assert inst.objective(bnb.x) == bnb.value


@pytest.mark.parametrize("seed", range(4))
def test_bnb_matches_milp(seed):
    """Test against scipy's MILP solver on generated instances."""
    inst = generate_instance(22 + seed, 100, (25, 50, 75, 100)[seed], seed=seed)
    result = qk.Problem(inst).solve()
    assert result.value == milp_optimum(inst)
    assert inst.is_feasible(result.x)


def test_bnb_root_fathomed_by_reduction():
    """Test that a root closed by reduction is counted as pruned and not searched."""
    inst = qk.Instance(SMALL_PROFIT, SMALL_WEIGHTS, 5)
    result = qk.Problem(inst).solve()
    stats = result.raw_result["bb_stats"]
    assert result.value == 15
    assert list(result.x) == [True, True, False]
    assert stats.root_fathomed
    assert stats.nodes_explored == 0
    assert stats.nodes_pruned == 1
    assert stats.leaves == 0

    unreduced = qk.Problem(inst).solve(solver_options={"reduce": False})
    unreduced_stats = unreduced.raw_result["bb_stats"]
    assert unreduced.value == 15
    assert not unreduced_stats.root_fathomed
    assert unreduced_stats.nodes_explored == 1
    assert unreduced_stats.nodes_pruned == 1


def test_bnb_root_fathomed_when_greedy_is_optimal():
    """Test a linear instance whose greedy seed meets the integral root bound."""
    inst = qk.Instance([[5, 0], [0, 3]], [1, 1], 1)
    result = qk.Problem(inst).solve()
    stats = result.raw_result["bb_stats"]
    assert result.value == 5
    assert stats.root_fathomed
    assert stats.nodes_explored == 0


@pytest.mark.parametrize("n, seed", [(18, 0), (18, 1), (19, 2), (20, 3), (20, 4)])
def test_bnb_matches_enumeration_near_limit(n, seed):
    """Test against the enumeration backend close to its item limit."""
    inst = make_random_instance(300 + seed, n, r=50, pct=(25, 50, 75, 100, 40)[seed])
    bnb = qk.Problem(inst).solve()
    enum = qk.Problem(inst).solve(solver=qk.ENUMERATE)
    assert bnb.value == enum.value
    assert inst.is_feasible(bnb.x)
    assert inst.objective(bnb.x) == bnb.value


def test_bnb_hundred_items_recorded_optimum():
    """Test a dense 100-item instance against its recorded optimum within a node budget."""
    inst = generate_instance(100, 100, 100, seed=301)
    result = qk.Problem(inst).solve()
    stats = result.raw_result["bb_stats"]

    assert result.value == 474556
    assert inst.is_feasible(result.x)
    assert inst.objective(result.x) == result.value
    assert stats.symmetric_root_bound == 487078
    assert result.value <= stats.root_bound <= stats.symmetric_root_bound
    assert stats.nodes_explored <= 200_000


def test_bnb_lagrangian_root_bound_not_weaker():
    """Test that the optimized split never loosens the root bound and keeps the optimum."""
    for seed in range(4):
        inst = generate_instance(30, 100, (25, 50, 75, 100)[seed], seed=40 + seed)
        lagrangian = qk.Problem(inst).solve()
        plain = qk.Problem(inst).solve(solver_options={"bound": "plain"})
        lag_stats = lagrangian.raw_result["bb_stats"]
        plain_stats = plain.raw_result["bb_stats"]

        assert lagrangian.value == plain.value
        assert lag_stats.symmetric_root_bound == plain_stats.root_bound
        assert lagrangian.value <= lag_stats.root_bound <= plain_stats.root_bound
        assert plain_stats.multiplier_iterations == 0


def test_bnb_bounds_sound_at_every_node(monkeypatch):
    """Test that every bound computed during a solve dominates the node's best completion."""
    records = []

    def recorder(real):
        def wrapped(instance, node, plane=None):
            result = real(instance, node, plane)
            records.append((node.state.copy(), node.partial, result.bound, result.exact))
            return result
        return wrapped

    monkeypatch.setattr(bnb_backend, "compute_bound", recorder(bnb_backend.compute_bound))
    monkeypatch.setattr(
        reduction_module, "compute_bound", recorder(reduction_module.compute_bound)
    )

    for seed in range(6):
        inst = make_random_instance(200 + seed, 9, pct=70, capacity_ratio=0.45)
        records.clear()
        qk.Problem(inst).solve()
        assert records
        for state, partial, bound, exact in records:
            assert partial == inst.objective(state == IN)
            best = best_completion(inst, state)
            assert bound >= best
            if exact:
                assert bound == best


def test_bnb_monotone_in_capacity():
    """Test that the optimum never decreases as the capacity grows."""
    inst = make_random_instance(5, 10, capacity_ratio=1.0)
    previous = -1
    for capacity in range(0, inst.total_weight + 1, 3):
        value, _ = qk.solve(inst.n, capacity, inst.profit, inst.weights)
        assert value >= previous
        previous = value


def test_bnb_deterministic():
    inst = generate_instance(30, 100, 50, seed=3)
    first = qk.Problem(inst).solve()
    second = qk.Problem(inst).solve()
    assert first.value == second.value
    assert np.array_equal(first.x, second.x)
    assert (
        first.raw_result["bb_stats"].nodes_explored
        == second.raw_result["bb_stats"].nodes_explored
    )


@pytest.mark.parametrize(
    "options",
    [
        {"greedy": "density"},
        {"greedy": qk.GreedyStrategy.MARGINAL},
        {"exchange": False},
        {"reduce": False},
        {"reduce_in_tree": False},
        {"reduce": False, "reduce_in_tree": False, "exchange": False},
        {"bound": "plain"},
        {"bound": qk.BoundStrategy.LAGRANGIAN, "multiplier_iterations": 0},
        {"multiplier_iterations": 3},
    ],
)
def test_bnb_options_keep_optimality(options, random_instances):
    """Test that heuristic and reduction switches change the search but not the optimum."""
    for inst in random_instances:
        result = qk.Problem(inst).solve(solver_options=options)
        assert result.value == brute_force_optimum(inst)


@pytest.mark.parametrize(
    "options, message",
    [
        ({"max_nodes": 10}, "Unknown BnB solver option"),
        ({"greedy": "random"}, "random"),
        ({"log_every": 0}, "log_every"),
        ({"bound": "semidefinite"}, "semidefinite"),
        ({"multiplier_iterations": -1}, "multiplier_iterations"),
    ],
)
def test_bnb_invalid_options(options, message):
    with pytest.raises(ValueError, match=message):
        qk.solve(3, 5, SMALL_PROFIT, SMALL_WEIGHTS, solver_options=options)


def test_bnb_result_stats():
    """Test that B&B returns useful stats."""
    inst = generate_instance(25, 100, 50, seed=11)
    result = qk.Problem(inst).solve()
    stats = result.raw_result["bb_stats"]

    assert result.stats.solver_name == "BnB"
    assert result.stats.num_iters == stats.nodes_explored
    assert stats.nodes_explored >= 1 or stats.root_fathomed
    assert result.stats.solve_time >= result.stats.setup_time >= 0
    assert stats.root_bound >= result.value >= stats.greedy_value
    assert result.raw_result["root_bound"] == stats.root_bound
    assert stats.bound_evaluations >= stats.nodes_explored
    assert stats.nodes_pruned + stats.leaves <= stats.nodes_explored + stats.root_fathomed
    assert stats.symmetric_root_bound >= stats.root_bound


def test_bnb_root_reduction_counts():
    inst = generate_instance(30, 100, 75, seed=4)
    with_reduce = qk.Problem(inst).solve()
    without = qk.Problem(inst).solve(solver_options={"reduce": False})
    assert with_reduce.value == without.value
    assert without.raw_result["bb_stats"].root_fixed_in == 0
    assert without.raw_result["bb_stats"].root_fixed_out == 0


def test_bnb_verbose(caplog):
    """Test B&B with verbose output."""
    inst = make_random_instance(9, 12, pct=80, capacity_ratio=0.4)
    with caplog.at_level(logging.INFO, logger="quadknap"):
        result = qk.Problem(inst).solve(verbose=True, solver_options={"log_every": 1})

    assert "Branch-and-Bound: n=12" in caplog.text
    assert f"Optimal value: {result.value}" in caplog.text
    assert "Nodes explored" in caplog.text


def test_bnb_quiet_by_default(caplog):
    with caplog.at_level(logging.INFO, logger="quadknap"):
        qk.solve(3, 5, SMALL_PROFIT, SMALL_WEIGHTS)
    assert "Optimal value" not in caplog.text


def test_problem_stores_result():
    prob = qk.Problem.from_data(SMALL_PROFIT, SMALL_WEIGHTS, 5)
    result = prob.solve()
    assert prob.value == result.value == 15
    assert prob.status == qk.SolverStatus.OPTIMAL
    assert list(prob.x) == [True, True, False]
    assert list(result.selected) == [0, 1]


def test_enumeration_backend_limits():
    inst = make_random_instance(1, 6)
    with pytest.raises(ValueError, match="limited to 5 items"):
        qk.Problem(inst).solve(solver=qk.ENUMERATE, solver_options={"max_items": 5})
    with pytest.raises(ValueError, match="Unknown enumerate solver option"):
        qk.Problem(inst).solve(solver=qk.ENUMERATE, solver_options={"reduce": True})


def test_unknown_solver():
    with pytest.raises(ValueError, match="No solver backend registered"):
        get_solver_backend("simplex")


def test_register_solver_backend():
    """Test that a registered backend is reachable by name."""
    register_solver_backend("reference", EnumerationBackend())
    try:
        value, x = qk.solve(3, 5, SMALL_PROFIT, SMALL_WEIGHTS, solver="reference")
        assert value == 15
    finally:
        solvers._SOLVER_BACKENDS.pop("reference")
