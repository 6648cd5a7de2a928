"""
Batch Partitioner

Assigns each example of a batch to the node it reaches in the tree that is
currently under construction.
"""

from concurrent.futures import Executor
from typing import Optional

import numpy as np

from .batch_features import BatchFeatures
from .ensemble import DecisionTreeEnsemble
from .sharding import shard
from .tree_evaluator import TreeEvaluator
from .tree_node import DecisionTree


class BatchPartitioner:
    """Routes a batch through the last, non-finalized tree."""

    def __init__(self,
                 evaluator: Optional[TreeEvaluator] = None,
                 num_threads: Optional[int] = None,
                 executor: Optional[Executor] = None):
        self.evaluator = evaluator or TreeEvaluator()
        self.num_threads = num_threads
        self.executor = executor

    @staticmethod
    def tree_to_partition(ensemble: DecisionTreeEnsemble) -> DecisionTree:
        """The growing tree, or an empty tree whose only node is the root."""
        num_trees = ensemble.num_trees
        if num_trees > 0 and not ensemble.tree_metadata[num_trees - 1].is_finalized:
            return ensemble.trees[num_trees - 1]
        return DecisionTree()

    def partition(self, ensemble: DecisionTreeEnsemble, features: BatchFeatures) -> np.ndarray:
        """
        ノードIDへのサンプル割り当て

        Parameters:
        -----------
        ensemble : DecisionTreeEnsemble
            アンサンブルのスナップショット
        features : BatchFeatures
            バッチ特徴量

        Returns:
        --------
        partition_ids : ndarray, shape=(batch_size,), dtype=int32
            各サンプルが到達したノードID
        """
        tree = self.tree_to_partition(ensemble)
        partition_ids = np.zeros(features.batch_size, dtype=np.int32)
        # All examples sit at the root of an empty tree.
        if not tree.nodes:
            return partition_ids

        def partition_range(start: int, end: int) -> None:
            for example in features.examples(start, end):
                partition_ids[example.example_idx] = self.evaluator.traverse(tree, example)

        shard(features.batch_size, partition_range, self.num_threads, self.executor)
        return partition_ids
