"""
Decision Tree Node Implementation

This module contains the node kinds of a decision tree and the
DecisionTree container that holds them. Nodes are plain records; the
routing rule for each kind lives in tree_evaluator.
"""

from dataclasses import dataclass, field
from typing import List, Dict, Any, Union


@dataclass
class Leaf:
    """
    リーフノード

    Attributes:
    -----------
    vector : list of float
        密ベクトルの値（列0から順に加算される）
    sparse_index : list of int
        疎ベクトルの列インデックス
    sparse_value : list of float
        疎ベクトルの値
    """
    vector: List[float] = field(default_factory=list)
    sparse_index: List[int] = field(default_factory=list)
    sparse_value: List[float] = field(default_factory=list)

    @property
    def is_sparse(self) -> bool:
        return len(self.sparse_index) > 0 or len(self.sparse_value) > 0


@dataclass
class DenseFloatBinarySplit:
    feature_column: int
    threshold: float
    left_id: int
    right_id: int


@dataclass
class SparseFloatBinarySplit:
    feature_column: int
    threshold: float
    left_id: int
    right_id: int
    # Multivalent columns are indexed by dimension.
    dimension_id: int = 0
    # Examples without a value go left when True.
    default_left: bool = True


@dataclass
class CategoricalIdBinarySplit:
    feature_column: int
    feature_id: int
    left_id: int
    right_id: int


@dataclass
class CategoricalIdSetMembershipBinarySplit:
    feature_column: int
    feature_ids: List[int]
    left_id: int
    right_id: int


TreeNode = Union[
    Leaf,
    DenseFloatBinarySplit,
    SparseFloatBinarySplit,
    CategoricalIdBinarySplit,
    CategoricalIdSetMembershipBinarySplit,
]

NODE_KINDS = {
    "leaf": Leaf,
    "dense_float_binary_split": DenseFloatBinarySplit,
    "sparse_float_binary_split": SparseFloatBinarySplit,
    "categorical_id_binary_split": CategoricalIdBinarySplit,
    "categorical_id_set_membership_binary_split": CategoricalIdSetMembershipBinarySplit,
}

_KIND_NAMES = {kind: name for name, kind in NODE_KINDS.items()}


def node_from_dict(payload: Dict[str, Any]) -> TreeNode:
    """
    Build a node from ``{"<kind name>": {<fields>}}``

    Raises:
    -------
    ValueError
        If the payload does not name exactly one known node kind
    """
    if not isinstance(payload, dict) or len(payload) != 1:
        raise ValueError(f"Node payload must have exactly one kind key, got {payload!r}")
    name, fields = next(iter(payload.items()))
    if name not in NODE_KINDS:
        raise ValueError(f"Unknown node kind: {name}")
    try:
        return NODE_KINDS[name](**fields)
    except TypeError as e:
        raise ValueError(f"Invalid fields for node kind '{name}': {e}") from e


def node_to_dict(node: TreeNode) -> Dict[str, Any]:
    return {_KIND_NAMES[type(node)]: dict(vars(node))}


def child_ids(node: TreeNode) -> List[int]:
    if isinstance(node, Leaf):
        return []
    return [node.left_id, node.right_id]


@dataclass
class DecisionTree:
    """
    決定木クラス

    ノードはリストで保持され、node_idはリスト内のインデックス。
    ルートはノード0。ノードを持たない木は根だけの空の木として扱われる。
    """
    nodes: List[TreeNode] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.nodes)

    def get_depth(self, node_id: int = 0) -> int:
        """
        Depth of the subtree rooted at ``node_id``

        Returns:
        --------
        depth : int
            0 for a leaf or an empty tree
        """
        if node_id >= len(self.nodes):
            return 0
        children = child_ids(self.nodes[node_id])
        if not children:
            return 0
        return 1 + max(self.get_depth(child) for child in children)

    def count_nodes(self) -> int:
        return len(self)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> 'DecisionTree':
        return cls(nodes=[node_from_dict(node) for node in payload.get("nodes", [])])

    def to_dict(self) -> Dict[str, Any]:
        return {"nodes": [node_to_dict(node) for node in self.nodes]}

    def __str__(self) -> str:
        if not self.nodes:
            return "DecisionTree(empty)"
        n_leaves = sum(isinstance(node, Leaf) for node in self.nodes)
        return f"DecisionTree(nodes={len(self.nodes)}, leaves={n_leaves}, depth={self.get_depth()})"

    def __repr__(self) -> str:
        return self.__str__()
