from __future__ import annotations

from typing import Dict

from ..constants import Solver
from .base import (
    SolverBackend,
    SolverResult,
    SolverStats,
    SolverStatus,
)
from .bnb_backend import BranchAndBoundBackend
from .enumerate_backend import EnumerationBackend


_BNB_BACKEND = BranchAndBoundBackend()
_ENUMERATION_BACKEND = EnumerationBackend()


_SOLVER_BACKENDS: Dict[str, SolverBackend] = {
    Solver.BNB.value: _BNB_BACKEND,
    Solver.ENUMERATE.value: _ENUMERATION_BACKEND,
}


def register_solver_backend(solver_name: str, backend: SolverBackend) -> None:
    _SOLVER_BACKENDS[solver_name] = backend


def get_solver_backend(solver: Solver | str) -> SolverBackend:
    solver_name = solver.value if isinstance(solver, Solver) else str(solver)
    if solver_name not in _SOLVER_BACKENDS:
        raise ValueError(f"No solver backend registered for solver '{solver_name}'")
    return _SOLVER_BACKENDS[solver_name]


__all__ = [
    "BranchAndBoundBackend",
    "EnumerationBackend",
    "SolverBackend",
    "SolverResult",
    "SolverStats",
    "SolverStatus",
    "get_solver_backend",
    "register_solver_backend",
]
