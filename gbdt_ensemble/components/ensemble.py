"""
Decision Tree Ensemble

This module contains the ensemble snapshot read by the prediction ops and
the resource object that owns it together with its read-write lock.
"""

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any

import numpy as np

from .tree_node import DecisionTree


@dataclass
class TreeMetadata:
    is_finalized: bool = True


@dataclass
class GrowingMetadata:
    """Present on an ensemble whose last tree is still being built."""
    num_layers_attempted: int = 0


@dataclass
class DecisionTreeEnsemble:
    """
    決定木アンサンブル

    Attributes:
    -----------
    trees : list of DecisionTree
        木のリスト（挿入順 = 評価順）
    tree_weights : list of float
        各木の重み
    tree_metadata : list of TreeMetadata
        各木のメタデータ
    growing_metadata : GrowingMetadata or None
        最後の木が構築中であることを示す
    """
    trees: List[DecisionTree] = field(default_factory=list)
    tree_weights: List[float] = field(default_factory=list)
    tree_metadata: List[TreeMetadata] = field(default_factory=list)
    growing_metadata: Optional[GrowingMetadata] = None

    @property
    def num_trees(self) -> int:
        return len(self.trees)

    @property
    def has_growing_metadata(self) -> bool:
        return self.growing_metadata is not None

    def weights_array(self) -> np.ndarray:
        return np.asarray(self.tree_weights, dtype=np.float32)

    def validate(self) -> 'DecisionTreeEnsemble':
        """
        Check the structural invariants of the ensemble

        Raises:
        -------
        ValueError
            If weights or metadata do not match the trees, or a tree other
            than the last one is not finalized
        """
        n_trees = len(self.trees)
        if len(self.tree_weights) != n_trees:
            raise ValueError(f"Ensemble has {n_trees} trees but {len(self.tree_weights)} weights")
        if len(self.tree_metadata) != n_trees:
            raise ValueError(f"Ensemble has {n_trees} trees but {len(self.tree_metadata)} metadata entries")
        unfinalized = [i for i, meta in enumerate(self.tree_metadata) if not meta.is_finalized]
        if len(unfinalized) > 1 or (unfinalized and unfinalized[0] != n_trees - 1):
            raise ValueError(f"Only the last tree may be non-finalized, got {unfinalized}")
        return self

    def add_tree(self, tree: DecisionTree, weight: float, is_finalized: bool = True) -> None:
        self.trees.append(tree)
        self.tree_weights.append(float(weight))
        self.tree_metadata.append(TreeMetadata(is_finalized=is_finalized))

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> 'DecisionTreeEnsemble':
        """
        Parse the dict form produced by ``to_dict``

        Raises:
        -------
        ValueError
            If the payload is malformed or breaks the ensemble invariants
        """
        try:
            trees = [DecisionTree.from_dict(tree) for tree in payload.get("trees", [])]
            weights = [float(w) for w in payload.get("tree_weights", [])]
            metadata = [TreeMetadata(**meta) for meta in payload.get("tree_metadata", [{}] * len(trees))]
            growing = payload.get("growing_metadata")
            growing = GrowingMetadata(**growing) if growing is not None else None
        except (AttributeError, TypeError) as e:
            raise ValueError(f"Unable to parse tree ensemble: {e}") from e
        return cls(trees=trees, tree_weights=weights, tree_metadata=metadata,
                   growing_metadata=growing).validate()

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "trees": [tree.to_dict() for tree in self.trees],
            "tree_weights": list(self.tree_weights),
            "tree_metadata": [{"is_finalized": meta.is_finalized} for meta in self.tree_metadata],
        }
        if self.growing_metadata is not None:
            payload["growing_metadata"] = {"num_layers_attempted": self.growing_metadata.num_layers_attempted}
        return payload

    def __str__(self) -> str:
        growing = ", growing" if self.has_growing_metadata else ""
        return f"DecisionTreeEnsemble(trees={self.num_trees}{growing})"


class ReadWriteLock:
    """
    Many readers or one writer.

    Owned by the caller that mutates the ensemble; prediction code only
    acquires it through the resource when asked to.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False

    @contextmanager
    def read_lock(self):
        with self._cond:
            while self._writer:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write_lock(self):
        with self._cond:
            while self._writer or self._readers > 0:
                self._cond.wait()
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class DecisionTreeEnsembleResource:
    """Holds the live ensemble and the lock that guards its mutation."""

    def __init__(self, ensemble: Optional[DecisionTreeEnsemble] = None):
        self._ensemble = (ensemble or DecisionTreeEnsemble()).validate()
        self.lock = ReadWriteLock()

    @property
    def decision_tree_ensemble(self) -> DecisionTreeEnsemble:
        return self._ensemble

    def read_lock(self):
        return self.lock.read_lock()

    def write_lock(self):
        return self.lock.write_lock()

    def set_ensemble(self, ensemble: DecisionTreeEnsemble) -> None:
        """Swap in a new ensemble; callers hold ``write_lock()``."""
        self._ensemble = ensemble.validate()
