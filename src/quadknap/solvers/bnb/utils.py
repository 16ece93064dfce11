"""
Utility Functions for Branch-and-Bound

This module contains utility functions shared across the B&B implementation:
fixing items in a node, creating child nodes and reading solutions off nodes.
"""

from __future__ import annotations

import logging
from typing import Tuple

import numpy as np

from ...constants import FREE, IN, OUT
from ...errors import InternalConsistencyError
from ...instance import Instance
from .node import SearchNode

logger = logging.getLogger(__name__)


def assign_in(instance: Instance, node: SearchNode, item: int) -> bool:
    """Fix a free item IN, in place.

    Returns False (leaving the node untouched) if the item does not fit the
    residual capacity.
    """
    if node.state[item] != FREE:
        raise InternalConsistencyError(
            f"Cannot fix item {item} IN at node {node.node_id}: it is not free"
        )
    weight = int(instance.weights[item])
    if weight > node.residual:
        return False

    node.state[item] = IN
    node.residual -= weight
    node.partial += int(instance.profit[item, item]) + 2 * int(node.link[item])
    node.link += instance.profit[:, item]
    return True


def assign_out(node: SearchNode, item: int) -> None:
    """Fix a free item OUT, in place."""
    if node.state[item] != FREE:
        raise InternalConsistencyError(
            f"Cannot fix item {item} OUT at node {node.node_id}: it is not free"
        )
    node.state[item] = OUT


def create_child_nodes(
    instance: Instance,
    parent: SearchNode,
    branch_idx: int,
    node_counter: int,
) -> Tuple[SearchNode | None, SearchNode]:
    """Create the IN (x = 1) and OUT (x = 0) children of a node.

    The IN child is None when the branching item does not fit the parent's
    residual capacity.
    """
    in_node: SearchNode | None = parent.copy(node_counter)
    if not assign_in(instance, in_node, branch_idx):
        in_node = None

    out_node = parent.copy(node_counter + 1)
    assign_out(out_node, branch_idx)

    return in_node, out_node


def completion_selection(node: SearchNode, completion: np.ndarray) -> np.ndarray:
    """Selection made of the node's fixed-in items plus `completion` (item indices)."""
    x = node.selection.copy()
    x[completion] = True
    return x
