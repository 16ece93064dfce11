from enum import StrEnum


class Solver(StrEnum):
    BNB = "BnB"  # Branch-and-bound with upper plane bounds and reduction
    ENUMERATE = "enumerate"  # Exhaustive enumeration, small instances only


class BoundStrategy(StrEnum):
    PLAIN = "plain"  # Symmetric split of the pair profits
    LAGRANGIAN = "lagrangian"  # Split optimized by subgradient steps at the root


class GreedyStrategy(StrEnum):
    DENSITY = "density"  # Static order by total profit per unit weight
    MARGINAL = "marginal"  # Best marginal gain per unit weight at each step


# Largest instance accepted by default (size of the historical item table)
DEFAULT_MAX_ITEMS = 400

# Largest instance the enumeration backend will attempt
DEFAULT_ENUMERATE_MAX_ITEMS = 22

# Coefficient products in the bound arithmetic must stay below this value
INT64_SAFE_LIMIT = 2**62

DEFAULT_GREEDY = GreedyStrategy.MARGINAL
DEFAULT_EXCHANGE = True
DEFAULT_REDUCE = True
DEFAULT_REDUCE_IN_TREE = True
DEFAULT_LOG_EVERY = 1000
DEFAULT_BOUND = BoundStrategy.LAGRANGIAN

# Subgradient optimization of the profit split
DEFAULT_MULTIPLIER_ITERATIONS = 150
MULTIPLIER_STEP = 1.0
MULTIPLIER_MIN_STEP = 0.005
MULTIPLIER_STALL_LIMIT = 5

# Item states in a search node
FREE = -1
OUT = 0
IN = 1
