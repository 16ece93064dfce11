"""
Variable Fixing by Bound Reduction

For a free item i of a node, the bound of the node with i forced OUT and the
bound with i forced IN are compared with the incumbent value z:

- OUT-bound <= z: no completion with x_i = 0 beats the incumbent, fix i IN.
- IN-bound <= z (or i does not fit): fix i OUT.
- Both: no completion of the node beats the incumbent, the node is fathomed.

Fixes only discard completions that cannot improve on the incumbent, so the
optimum (or the incumbent itself) is always preserved. Passes repeat until
no further item is fixed, since every fix tightens the bounds of the others.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List

from ...errors import InternalConsistencyError
from ...instance import Instance
from .bounds import UpperPlane, compute_bound
from .node import SearchNode
from .utils import assign_in, assign_out

logger = logging.getLogger(__name__)


@dataclass
class ReductionResult:
    """Outcome of reducing one node."""

    fixed_in: List[int] = field(default_factory=list)
    fixed_out: List[int] = field(default_factory=list)
    fathomed: bool = False
    passes: int = 0
    bound_evaluations: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.fixed_in or self.fixed_out)


def trial_bounds(
    instance: Instance,
    node: SearchNode,
    item: int,
    plane: UpperPlane | None = None,
) -> tuple[int | None, int]:
    """Bounds of the node with `item` forced IN and forced OUT.

    The IN-bound is None when the item does not fit.
    """
    in_node = node.copy(node.node_id)
    in_bound = None
    if assign_in(instance, in_node, item):
        in_bound = compute_bound(instance, in_node, plane).bound

    out_node = node.copy(node.node_id)
    assign_out(out_node, item)
    out_bound = compute_bound(instance, out_node, plane).bound
    return in_bound, out_bound


def reduce_node(
    instance: Instance,
    node: SearchNode,
    incumbent_value: int,
    plane: UpperPlane | None = None,
) -> ReductionResult:
    """
    Fix free items of `node` in place until no further fix applies.

    Args:
        instance: The QKP instance
        node: Node to reduce; its state, residual, partial and link are updated
        incumbent_value: Value of the best known feasible solution
        plane: Profit split used for every bound (default: symmetric)

    Returns:
        ReductionResult listing the fixes; `fathomed` is set when the node
        provably cannot improve on the incumbent

    Raises:
        InternalConsistencyError: If an OUT-bound exceeds the bound of the
            node it was derived from (the bound is not monotone)
    """
    result = ReductionResult()

    changed = True
    while changed:
        changed = False
        result.passes += 1

        node_bound = compute_bound(instance, node, plane)
        result.bound_evaluations += 1
        if node_bound.bound <= incumbent_value:
            result.fathomed = True
            break
        if node_bound.exact:
            break

        for item in node.free:
            item = int(item)
            if instance.weights[item] > node.residual:
                assign_out(node, item)
                result.fixed_out.append(item)
                changed = True
                continue

            in_bound, out_bound = trial_bounds(instance, node, item, plane)
            result.bound_evaluations += 2

            if out_bound > node_bound.bound:
                raise InternalConsistencyError(
                    f"Bound increased from {node_bound.bound} to {out_bound} "
                    f"after fixing item {item} OUT at node {node.node_id}"
                )

            drop_in = in_bound is None or in_bound <= incumbent_value
            drop_out = out_bound <= incumbent_value
            if drop_in and drop_out:
                result.fathomed = True
                break

            if drop_out:
                assign_in(instance, node, item)
                result.fixed_in.append(item)
            elif drop_in:
                assign_out(node, item)
                result.fixed_out.append(item)
            else:
                continue

            changed = True
            # Fixes change the node, later trials must compare against its new bound
            node_bound = compute_bound(instance, node, plane)
            result.bound_evaluations += 1
            if node_bound.bound <= incumbent_value:
                result.fathomed = True
                break
            if node_bound.exact:
                changed = False
                break

        if result.fathomed:
            break

    if result.changed:
        logger.debug(
            f"Reduction at node {node.node_id}: fixed {len(result.fixed_in)} in, "
            f"{len(result.fixed_out)} out in {result.passes} pass(es)"
        )
    return result
