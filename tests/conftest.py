import itertools

import numpy as np
import pytest

from quadknap.constants import IN
from quadknap.instance import Instance


def make_random_instance(seed, n, r=20, pct=60, capacity_ratio=0.5):
    """Random symmetric instance with capacity set to a share of the weight sum."""
    rng = np.random.default_rng(seed)
    draws = rng.integers(0, 100, size=(n, n))
    values = rng.integers(1, r + 1, size=(n, n))
    lower = np.tril(np.where(draws < pct, values, 0))
    profit = lower + lower.T - np.diag(np.diagonal(lower))
    weights = rng.integers(1, r + 1, size=n)
    capacity = int(weights.sum() * capacity_ratio)
    return Instance(profit, weights, capacity)


def brute_force_optimum(instance):
    """Maximum objective over all feasible selections, by itertools enumeration."""
    best = 0
    for bits in itertools.product([False, True], repeat=instance.n):
        x = np.array(bits, dtype=bool)
        if instance.is_feasible(x):
            best = max(best, instance.objective(x))
    return best


def best_completion(instance, state):
    """Best objective over all feasible completions of a partial assignment."""
    fixed = state == IN
    free = np.flatnonzero(state == -1)
    best = None
    for bits in itertools.product([False, True], repeat=free.size):
        x = fixed.copy()
        x[free[np.array(bits, dtype=bool)]] = True
        if instance.is_feasible(x):
            value = instance.objective(x)
            best = value if best is None else max(best, value)
    return best


@pytest.fixture
def small_instance():
    """Three items where the optimum takes items 0 and 1 for a value of 15."""
    return Instance(
        profit=[[5, 2, 1], [2, 6, 3], [1, 3, 8]],
        weights=[2, 3, 4],
        capacity=5,
    )


@pytest.fixture
def random_instances():
    """A spread of small random instances (n <= 10) with varied density and capacity."""
    instances = []
    for seed in range(12):
        n = 4 + seed % 7
        pct = (25, 60, 100)[seed % 3]
        ratio = (0.3, 0.5, 0.8)[(seed // 3) % 3]
        instances.append(make_random_instance(seed, n, pct=pct, capacity_ratio=ratio))
    return instances
