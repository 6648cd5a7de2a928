"""
DropoutSelector のテスト
"""

import numpy as np
import pytest

from gbdt_ensemble import DropoutConfig, DropoutPlan, DropoutSelector, protected_trees


def _select(seed, n_trees, probability=0.5, skip=0.0, protected=()):
    selector = DropoutSelector(DropoutConfig(dropout_probability=probability,
                                             probability_of_skipping_dropout=skip))
    weights = [0.1 * (i + 1) for i in range(n_trees)]
    return selector.select(np.random.default_rng(seed), weights, set(protected))


def test_same_seed_same_plan():
    first = _select(seed=123, n_trees=50)
    second = _select(seed=123, n_trees=50)
    assert first.dropped_trees == second.dropped_trees
    assert first.original_weights == second.original_weights


def test_plan_is_ascending_with_original_weights():
    plan = _select(seed=7, n_trees=40)
    assert len(plan) > 0
    assert all(a < b for a, b in zip(plan.dropped_trees, plan.dropped_trees[1:]))
    np.testing.assert_allclose(plan.original_weights, [0.1 * (i + 1) for i in plan.dropped_trees])


@pytest.mark.parametrize("seed", range(20))
def test_protected_trees_are_never_dropped(seed):
    plan = _select(seed=seed, n_trees=6, probability=1.0, protected={0, 5})
    assert plan.dropped_trees == [1, 2, 3, 4]


def test_zero_probability_and_empty_ensemble():
    assert _select(seed=1, n_trees=10, probability=0.0).dropped_trees == []
    assert _select(seed=1, n_trees=0, probability=1.0).dropped_trees == []


def test_certain_skip_disables_dropout():
    assert _select(seed=3, n_trees=10, probability=1.0, skip=1.0).dropped_trees == []


def test_protected_trees_from_ensemble(ensemble_factory):
    assert protected_trees(ensemble_factory(4), center_bias=True) == {0}
    assert protected_trees(ensemble_factory(4, last_finalized=False, growing=True), center_bias=True) == {0, 3}
    assert protected_trees(ensemble_factory(4, growing=True), center_bias=False) == {3}
    assert protected_trees(ensemble_factory(0, growing=True), center_bias=False) == set()


def test_plan_as_matrix():
    info = DropoutPlan(dropped_trees=[2, 5], original_weights=[0.5, 0.25]).as_matrix()
    assert info.shape == (2, 2)
    assert info.dtype == np.float32
    np.testing.assert_array_equal(info, [[2, 5], [0.5, 0.25]])
    assert DropoutPlan().as_matrix().shape == (2, 0)
