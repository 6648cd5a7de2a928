"""
Tree Evaluator

Routes a single example through a single tree. Each node kind has one
routing rule; rules are looked up by node type.
"""

from typing import Callable, Dict, List, Tuple

from .batch_features import Example
from .tree_node import (
    DecisionTree,
    Leaf,
    DenseFloatBinarySplit,
    SparseFloatBinarySplit,
    CategoricalIdBinarySplit,
    CategoricalIdSetMembershipBinarySplit,
)


def _route_dense_float(split: DenseFloatBinarySplit, example: Example) -> int:
    value = example.dense_float_features[split.feature_column][0]
    return split.left_id if value <= split.threshold else split.right_id


def _route_sparse_float(split: SparseFloatBinarySplit, example: Example) -> int:
    values = example.sparse_float_features[split.feature_column]
    if split.dimension_id not in values:
        return split.left_id if split.default_left else split.right_id
    return split.left_id if values[split.dimension_id] <= split.threshold else split.right_id


def _route_categorical_id(split: CategoricalIdBinarySplit, example: Example) -> int:
    ids = example.sparse_int_features[split.feature_column]
    return split.left_id if split.feature_id in ids else split.right_id


def _route_categorical_set(split: CategoricalIdSetMembershipBinarySplit, example: Example) -> int:
    ids = example.sparse_int_features[split.feature_column]
    return split.left_id if any(feature_id in ids for feature_id in split.feature_ids) else split.right_id


ROUTING_RULES: Dict[type, Callable] = {
    DenseFloatBinarySplit: _route_dense_float,
    SparseFloatBinarySplit: _route_sparse_float,
    CategoricalIdBinarySplit: _route_categorical_id,
    CategoricalIdSetMembershipBinarySplit: _route_categorical_set,
}


class TreeEvaluator:
    """
    単一の木と単一サンプルの評価を行うクラス

    木をルートから辿り、到達したリーフのノードIDと、
    そのリーフが各出力列に加算する値を返す。
    """

    def traverse(self, tree: DecisionTree, example: Example, sub_root_id: int = 0) -> int:
        """
        サンプルを木に沿って辿る

        Parameters:
        -----------
        tree : DecisionTree
            評価対象の木
        example : Example
            サンプルの特徴量
        sub_root_id : int, default=0
            探索を開始するノードID

        Returns:
        --------
        node_id : int
            到達したリーフのノードID（木にsub_root_idのノードが無い場合は-1）
        """
        num_nodes = len(tree.nodes)
        if sub_root_id >= num_nodes:
            return -1

        node_id = sub_root_id
        # A valid path visits each node at most once.
        for _ in range(num_nodes):
            node = tree.nodes[node_id]
            if isinstance(node, Leaf):
                return node_id
            rule = ROUTING_RULES.get(type(node))
            if rule is None:
                raise ValueError(f"Unknown node type {type(node).__name__} at node {node_id}")
            try:
                node_id = rule(node, example)
            except (IndexError, KeyError) as e:
                raise ValueError(
                    f"Split at node {node_id} references feature column {node.feature_column} "
                    f"missing from the example") from e
            if not 0 <= node_id < num_nodes:
                raise ValueError(f"Invalid tree: child id {node_id} out of range for {num_nodes} nodes")
        raise ValueError("Invalid tree: routing did not reach a leaf")

    def leaf_contributions(self, tree: DecisionTree, leaf_id: int) -> List[Tuple[int, float]]:
        """
        Column contributions of a leaf

        A dense leaf vector adds to columns 0..len-1 (FULL strategy); a
        sparse leaf vector names its own columns (TREE_PER_CLASS strategy).

        Returns:
        --------
        contributions : list of (column, value)
        """
        if not 0 <= leaf_id < len(tree.nodes):
            raise ValueError(f"Invalid tree: no node with id {leaf_id}")
        leaf = tree.nodes[leaf_id]
        if not isinstance(leaf, Leaf):
            raise ValueError(f"Invalid tree: node {leaf_id} is not a leaf")
        if leaf.is_sparse:
            if len(leaf.sparse_index) != len(leaf.sparse_value):
                raise ValueError(
                    f"Invalid leaf {leaf_id}: {len(leaf.sparse_index)} indices but "
                    f"{len(leaf.sparse_value)} values")
            return list(zip(leaf.sparse_index, leaf.sparse_value))
        return list(enumerate(leaf.vector))

    def evaluate(self, tree: DecisionTree, example: Example) -> List[Tuple[int, float]]:
        leaf_id = self.traverse(tree, example)
        if leaf_id < 0:
            raise ValueError("Invalid tree: tree has no nodes")
        return self.leaf_contributions(tree, leaf_id)
