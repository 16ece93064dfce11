__all__ = [
    "Instance",
    "Problem",
    "solve",
    "Solver",
    "GreedyStrategy",
    "BoundStrategy",
    "BNB",
    "ENUMERATE",
    "SolverResult",
    "SolverStats",
    "SolverStatus",
    "InvalidInstance",
    "InternalConsistencyError",
    "VerificationError",
]

from .constants import Solver, GreedyStrategy, BoundStrategy
from .errors import InvalidInstance, InternalConsistencyError, VerificationError
from .instance import Instance
from .problem import Problem, solve
from .solvers import SolverResult, SolverStats, SolverStatus

BNB = Solver.BNB
ENUMERATE = Solver.ENUMERATE
