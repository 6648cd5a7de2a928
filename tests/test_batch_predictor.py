"""
BatchPredictor のテスト
"""

from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

from gbdt_ensemble import (
    BatchFeatures,
    BatchPredictor,
    DecisionTree,
    DecisionTreeEnsemble,
    DropoutPlan,
    Leaf,
    TreeEvaluator,
)

LEFT_ROWS = [0, 2, 4]
RIGHT_ROWS = [1, 3, 5]


def test_sum_over_trees_without_dropout(ensemble_factory, features):
    ensemble = ensemble_factory(3)
    predictor = BatchPredictor(prediction_vector_size=2, num_threads=2)
    predictions, no_dropout = predictor.predict(ensemble, ensemble.weights_array(), DropoutPlan(), features)

    assert predictions.shape == (6, 2)
    assert predictions.dtype == np.float32
    np.testing.assert_allclose(predictions[LEFT_ROWS], [[6.0, -6.0]] * 3)
    np.testing.assert_allclose(predictions[RIGHT_ROWS], [[60.0, 0.0]] * 3)
    np.testing.assert_array_equal(predictions, no_dropout)


def test_dropped_trees_only_leave_predictions(ensemble_factory, features):
    ensemble = ensemble_factory(3, weights=[1.0, 0.5, 2.0])
    plan = DropoutPlan(dropped_trees=[1], original_weights=[0.5])
    predictions, no_dropout = BatchPredictor(2).predict(ensemble, ensemble.weights_array(), plan, features)

    # left: 1*1 + 0.5*2 + 2*3 = 8, right: 10 + 0.5*20 + 2*30 = 80
    np.testing.assert_allclose(no_dropout[0], [8.0, -8.0])
    np.testing.assert_allclose(no_dropout[1], [80.0, 0.0])
    np.testing.assert_allclose(predictions[0], [7.0, -7.0])
    np.testing.assert_allclose(predictions[1], [70.0, 0.0])


def test_only_finalized_trees_skips_growing_tree(ensemble_factory, features):
    ensemble = ensemble_factory(3, last_finalized=False, growing=True)
    weights = ensemble.weights_array()

    predictions, no_dropout = BatchPredictor(2, only_finalized_trees=True).predict(
        ensemble, weights, DropoutPlan(), features)
    np.testing.assert_allclose(no_dropout[0], [3.0, -3.0])
    np.testing.assert_allclose(predictions[0], [3.0, -3.0])

    _, no_dropout = BatchPredictor(2, only_finalized_trees=False).predict(
        ensemble, weights, DropoutPlan(), features)
    np.testing.assert_allclose(no_dropout[0], [6.0, -6.0])


def test_tree_per_class_sparse_leaves(features):
    ensemble = DecisionTreeEnsemble()
    for column in range(2):
        ensemble.add_tree(DecisionTree(nodes=[Leaf(sparse_index=[column], sparse_value=[column + 1.0])]), 1.0)
    predictions, _ = BatchPredictor(prediction_vector_size=2).predict(
        ensemble, ensemble.weights_array(), DropoutPlan(), features)
    np.testing.assert_allclose(predictions, [[1.0, 2.0]] * 6)


def test_empty_ensemble_gives_zeros(features):
    predictions, no_dropout = BatchPredictor(3).predict(DecisionTreeEnsemble(), [], DropoutPlan(), features)
    assert predictions.shape == (6, 3)
    assert not predictions.any() and not no_dropout.any()


def test_column_out_of_range_aborts_call(features):
    ensemble = DecisionTreeEnsemble()
    ensemble.add_tree(DecisionTree(nodes=[Leaf(sparse_index=[1], sparse_value=[1.0])]), 1.0)
    with pytest.raises(ValueError, match="writes column 1"):
        BatchPredictor(prediction_vector_size=1, num_threads=3).predict(
            ensemble, ensemble.weights_array(), DropoutPlan(), features)


def test_weight_count_mismatch(ensemble_factory, features):
    with pytest.raises(ValueError, match="weights"):
        BatchPredictor(2).predict(ensemble_factory(2), [1.0], DropoutPlan(), features)


class _FailingEvaluator(TreeEvaluator):
    def evaluate(self, tree, example):
        if example.example_idx == 4:
            raise RuntimeError("evaluator failure")
        return super().evaluate(tree, example)


def test_worker_error_propagates_with_shared_executor(ensemble_factory, features):
    ensemble = ensemble_factory(2)
    with ThreadPoolExecutor(max_workers=3) as executor:
        predictor = BatchPredictor(2, evaluator=_FailingEvaluator(), num_threads=3, executor=executor)
        with pytest.raises(RuntimeError, match="evaluator failure"):
            predictor.predict(ensemble, ensemble.weights_array(), DropoutPlan(), features)


def test_thread_count_does_not_change_result(ensemble_factory):
    rng = np.random.default_rng(0)
    features = BatchFeatures.from_dense(rng.random((101, 1)))
    ensemble = ensemble_factory(5, weights=[0.3, 0.7, 1.1, 0.2, 0.9])
    single, _ = BatchPredictor(2, num_threads=1).predict(ensemble, ensemble.weights_array(), DropoutPlan(), features)
    multi, _ = BatchPredictor(2, num_threads=8).predict(ensemble, ensemble.weights_array(), DropoutPlan(), features)
    np.testing.assert_array_equal(single, multi)
