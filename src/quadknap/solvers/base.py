from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Dict, Optional, Protocol

import numpy as np

from ..instance import Instance


class SolverStatus(StrEnum):
    OPTIMAL = "optimal"
    ERROR = "error"
    UNKNOWN = "unknown"


@dataclass
class SolverStats:
    solver_name: str
    solve_time: Optional[float] = None
    setup_time: Optional[float] = None
    num_iters: Optional[int] = None


@dataclass
class SolverResult:
    x: np.ndarray
    value: int
    status: SolverStatus
    stats: SolverStats
    raw_result: Optional[object] = None

    @property
    def selected(self) -> list[int]:
        """Indices of the selected items."""
        return [int(i) for i in np.flatnonzero(self.x)]


class SolverBackend(Protocol):
    def solve(
        self,
        instance: Instance,
        solver: str,
        solver_options: Dict[str, object],
    ) -> SolverResult:
        ...
