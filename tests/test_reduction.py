"""Tests for variable fixing by bound reduction."""
import numpy as np
import pytest

from quadknap.constants import FREE, IN, OUT
from quadknap.errors import InternalConsistencyError
from quadknap.solvers.bnb import make_root, reduce_node
from quadknap.solvers.bnb import reduction as reduction_module
from quadknap.solvers.bnb.reduction import trial_bounds
from quadknap.solvers.bnb.utils import assign_in, assign_out, create_child_nodes

from conftest import best_completion, brute_force_optimum


def test_trial_bounds(small_instance):
    """Test the IN and OUT bounds of the first item of the three-item example."""
    root = make_root(small_instance)
    in_bound, out_bound = trial_bounds(small_instance, root, 0)
    assert in_bound == 15
    assert out_bound == 11
    # The node itself is untouched
    assert np.all(root.state == FREE)


def test_reduction_fixes_item_in(small_instance):
    """Test that an item whose OUT-bound cannot beat the incumbent is fixed IN."""
    root = make_root(small_instance)
    result = reduce_node(small_instance, root, 14)
    assert result.fixed_in == [0]
    assert result.fixed_out == []
    assert not result.fathomed
    assert result.changed
    assert root.state[0] == IN
    assert root.residual == 3
    assert root.partial == 5


def test_reduction_fathoms_node(small_instance):
    root = make_root(small_instance)
    result = reduce_node(small_instance, root, 15)
    assert result.fathomed
    assert not result.changed


def test_reduction_without_fixes(small_instance):
    root = make_root(small_instance)
    result = reduce_node(small_instance, root, 0)
    assert not result.changed
    assert not result.fathomed
    assert result.passes == 1
    assert np.all(root.state == FREE)


def test_reduction_preserves_optimum(random_instances):
    """Test that fixes against a weaker incumbent keep an optimal completion."""
    for inst in random_instances:
        optimum = brute_force_optimum(inst)
        root = make_root(inst)
        result = reduce_node(inst, root, optimum - 1)
        assert not result.fathomed
        assert root.partial == inst.objective(root.state == IN)
        assert best_completion(inst, root.state) == optimum


def test_reduction_with_optimal_incumbent(random_instances):
    """Test that reducing against the optimum never removes a better completion."""
    for inst in random_instances:
        optimum = brute_force_optimum(inst)
        root = make_root(inst)
        result = reduce_node(inst, root, optimum)
        if not result.fathomed:
            assert best_completion(inst, root.state) <= optimum


def test_non_monotone_bound_detected(small_instance, monkeypatch):
    """Test that an OUT-bound above its parent's bound raises."""
    real_bound = reduction_module.compute_bound

    def inflated(instance, node, plane=None):
        result = real_bound(instance, node, plane)
        if np.any(node.state == OUT):
            result.bound += 1000
        return result

    monkeypatch.setattr(reduction_module, "compute_bound", inflated)
    with pytest.raises(InternalConsistencyError, match="Bound increased"):
        reduce_node(small_instance, make_root(small_instance), 0)


def test_fixing_non_free_item_raises(small_instance):
    node = make_root(small_instance)
    assign_out(node, 1)
    with pytest.raises(InternalConsistencyError):
        assign_in(small_instance, node, 1)
    with pytest.raises(InternalConsistencyError):
        assign_out(node, 1)


def test_assign_in_overweight(small_instance):
    node = make_root(small_instance)
    assert assign_in(small_instance, node, 2)
    assert not assign_in(small_instance, node, 1)
    assert node.state[1] == FREE
    assert node.residual == 1


def test_create_child_nodes(small_instance):
    """Test that children copy the parent and fix the branching item."""
    root = make_root(small_instance)
    in_node, out_node = create_child_nodes(small_instance, root, 1, 1)
    assert in_node.node_id == 1 and out_node.node_id == 2
    assert in_node.depth == out_node.depth == 1
    assert in_node.state[1] == IN and out_node.state[1] == OUT
    assert in_node.partial == 6 and out_node.partial == 0
    assert list(in_node.link) == [2, 6, 3]
    assert np.all(root.state == FREE)

    full = root.copy(3)
    assign_in(small_instance, full, 2)
    in_node, out_node = create_child_nodes(small_instance, full, 1, 4)
    assert in_node is None
    assert out_node.state[1] == OUT
