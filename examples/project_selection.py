"""
Project Selection with Synergies

A budget has to be spent on a set of candidate projects. Every project has a
cost and a stand-alone value, and some pairs of projects are worth more
together than apart (shared infrastructure, common staff, reused tooling).

Choosing the subset of projects with the largest total value is a Quadratic
Knapsack Problem:
- weights[i] is the cost of project i
- profit[i, i] is its stand-alone value
- profit[i, j] = profit[j, i] is half the synergy of running i and j together
"""

import numpy as np

import quadknap as qk

PROJECTS = ["billing", "search", "mobile", "analytics", "sso", "data lake"]

COSTS = [40, 25, 35, 30, 15, 50]
VALUES = [60, 30, 45, 35, 10, 40]

# (a, b, synergy)
SYNERGIES = [
    ("billing", "sso", 20),
    ("search", "analytics", 16),
    ("analytics", "data lake", 40),
    ("mobile", "sso", 12),
    ("mobile", "search", 8),
]

BUDGET = 110


def build_instance() -> qk.Instance:
    n = len(PROJECTS)
    index = {name: i for i, name in enumerate(PROJECTS)}
    profit = np.diag(VALUES)
    for a, b, synergy in SYNERGIES:
        i, j = index[a], index[b]
        profit[i, j] = profit[j, i] = synergy // 2
    return qk.Instance(profit, COSTS, BUDGET, max_items=n)


if __name__ == "__main__":
    instance = build_instance()
    problem = qk.Problem(instance)
    result = problem.solve(verbose=True)

    print(f"Status: {result.status}")
    print(f"Total value: {result.value}")
    print(f"Budget used: {instance.selection_weight(result.x)} / {BUDGET}")
    for i in result.selected:
        print(f"  - {PROJECTS[i]} (cost {COSTS[i]}, value {VALUES[i]})")
