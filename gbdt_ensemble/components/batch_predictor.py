"""
Batch Predictor

This module evaluates every example of a batch against every eligible
tree of the ensemble and accumulates two prediction matrices: one with
the dropout plan applied and one without.
"""

import logging
from concurrent.futures import Executor
from typing import Optional, Sequence, Tuple

import numpy as np

from .batch_features import BatchFeatures
from .dropout import DropoutPlan
from .ensemble import DecisionTreeEnsemble
from .sharding import shard
from .tree_evaluator import TreeEvaluator

logger = logging.getLogger(__name__)


class BatchPredictor:
    """
    バッチ予測クラス

    Attributes:
    -----------
    prediction_vector_size : int
        出力列数 V
    only_finalized_trees : bool
        Trueの場合、構築中の木を予測から除外する
    evaluator : TreeEvaluator
        単一の木の評価器
    num_threads : int or None
        ワーカー数（Noneの場合はCPU数）
    executor : Executor or None
        呼び出し元が所有するスレッドプール
    """

    def __init__(self,
                 prediction_vector_size: int,
                 only_finalized_trees: bool = True,
                 evaluator: Optional[TreeEvaluator] = None,
                 num_threads: Optional[int] = None,
                 executor: Optional[Executor] = None):
        if prediction_vector_size < 1:
            raise ValueError(f"Prediction vector size must be >= 1, got {prediction_vector_size}")
        self.prediction_vector_size = prediction_vector_size
        self.only_finalized_trees = only_finalized_trees
        self.evaluator = evaluator or TreeEvaluator()
        self.num_threads = num_threads
        self.executor = executor

    def predict(self,
                ensemble: DecisionTreeEnsemble,
                weights: Sequence[float],
                dropout_plan: DropoutPlan,
                features: BatchFeatures) -> Tuple[np.ndarray, np.ndarray]:
        """
        Predict the batch with and without dropout

        Parameters:
        -----------
        ensemble : DecisionTreeEnsemble
            Snapshot that stays unchanged for the duration of the call
        weights : sequence of float
            Effective tree weights (averaged when averaging applies)
        dropout_plan : DropoutPlan
            Trees left out of ``predictions``
        features : BatchFeatures
            Batch to score

        Returns:
        --------
        predictions : ndarray, shape=(batch_size, prediction_vector_size)
            Weighted sum over eligible, non-dropped trees
        no_dropout_predictions : ndarray, shape=(batch_size, prediction_vector_size)
            Weighted sum over all eligible trees
        """
        num_trees = ensemble.num_trees
        if len(weights) != num_trees:
            raise ValueError(f"Got {len(weights)} weights for {num_trees} trees")

        batch_size = features.batch_size
        predictions = np.zeros((batch_size, self.prediction_vector_size), dtype=np.float32)
        no_dropout_predictions = np.zeros((batch_size, self.prediction_vector_size), dtype=np.float32)
        if num_trees == 0:
            return predictions, no_dropout_predictions

        tree_indices = [
            i for i in range(num_trees)
            if not (self.only_finalized_trees and not ensemble.tree_metadata[i].is_finalized)
        ]
        tree_weights = [float(w) for w in weights]
        dropped = frozenset(dropout_plan.dropped_trees)
        vector_size = self.prediction_vector_size

        def predict_range(start: int, end: int) -> None:
            for example in features.examples(start, end):
                row = example.example_idx
                for tree_idx in tree_indices:
                    tree_weight = tree_weights[tree_idx]
                    should_drop = tree_idx in dropped
                    for column, value in self.evaluator.evaluate(ensemble.trees[tree_idx], example):
                        if not 0 <= column < vector_size:
                            raise ValueError(
                                f"Tree {tree_idx} writes column {column} but predictions have {vector_size} columns")
                        contribution = tree_weight * value
                        no_dropout_predictions[row, column] += contribution
                        if not should_drop:
                            predictions[row, column] += contribution

        shard(batch_size, predict_range, self.num_threads, self.executor)
        return predictions, no_dropout_predictions
