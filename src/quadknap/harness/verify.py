from __future__ import annotations

import numpy as np

from ..errors import VerificationError
from ..instance import Instance


def verify_solution(instance: Instance, x, value: int) -> None:
    """
    Independently re-check a reported solution.

    Recomputes the weight and the objective of `x` from the instance data.

    Raises:
        VerificationError: On a wrong selection length, excess weight, or
            an objective different from `value`
    """
    sel = np.asarray(x, dtype=bool).reshape(-1)
    if sel.shape[0] != instance.n:
        raise VerificationError(
            f"selection has length {sel.shape[0]}, instance has {instance.n} items"
        )

    weight_sum = 0
    profit_sum = 0
    for i in np.flatnonzero(sel):
        weight_sum += int(instance.weights[i])
        for j in np.flatnonzero(sel):
            profit_sum += int(instance.profit[i, j])

    if weight_sum > instance.capacity:
        raise VerificationError(
            f"excess weight: {weight_sum} exceeds capacity {instance.capacity}"
        )
    if profit_sum != value:
        raise VerificationError(
            f"bad solution: reported value {value}, recomputed {profit_sum}"
        )
