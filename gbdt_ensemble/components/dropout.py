"""
Dropout Selection

This module decides which trees are excluded from the stochastic
prediction path of a single call.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Set, Sequence

import numpy as np

from .config import DropoutConfig
from .ensemble import DecisionTreeEnsemble

logger = logging.getLogger(__name__)


@dataclass
class DropoutPlan:
    """
    1回の予測呼び出しのドロップアウト結果

    Attributes:
    -----------
    dropped_trees : list of int
        ドロップされた木のインデックス（昇順）
    original_weights : list of float
        ドロップされた木の元の重み（復元用）
    """
    dropped_trees: List[int] = field(default_factory=list)
    original_weights: List[float] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.dropped_trees)

    def as_matrix(self) -> np.ndarray:
        """
        Dropout info as a [2, D] float32 array

        Row 0 holds the dropped tree indices, row 1 their original weights.
        """
        info = np.zeros((2, len(self.dropped_trees)), dtype=np.float32)
        info[0, :] = self.dropped_trees
        info[1, :] = self.original_weights
        return info


def protected_trees(ensemble: DecisionTreeEnsemble, center_bias: bool) -> Set[int]:
    """
    ドロップアウトの対象外となる木のインデックス

    Parameters:
    -----------
    ensemble : DecisionTreeEnsemble
        アンサンブル
    center_bias : bool
        Trueの場合、バイアス木（インデックス0）を保護する

    Returns:
    --------
    trees_not_to_drop : set of int
    """
    trees_not_to_drop = set()
    if center_bias:
        trees_not_to_drop.add(0)
    if ensemble.has_growing_metadata and ensemble.num_trees > 0:
        # The tree under construction must keep its full weight.
        trees_not_to_drop.add(ensemble.num_trees - 1)
    return trees_not_to_drop


class DropoutSelector:
    """Seeded per-call tree dropout."""

    def __init__(self, dropout_config: DropoutConfig):
        dropout_config.validate()
        self.config = dropout_config

    def select(self,
               rng: np.random.Generator,
               weights: Sequence[float],
               trees_not_to_drop: Set[int]) -> DropoutPlan:
        """
        Draw the set of dropped trees

        Parameters:
        -----------
        rng : numpy.random.Generator
            Generator seeded for this call only
        weights : sequence of float
            Stored tree weights, one per tree
        trees_not_to_drop : set of int
            Protected tree indices

        Returns:
        --------
        plan : DropoutPlan
            Ascending dropped indices with their pre-drop weights
        """
        plan = DropoutPlan()
        num_trees = len(weights)
        if num_trees == 0:
            return plan

        skip_probability = self.config.probability_of_skipping_dropout
        if skip_probability > 0 and rng.random() < skip_probability:
            logger.debug("Dropout skipped for this call")
            return plan

        for tree_idx in range(num_trees):
            if tree_idx in trees_not_to_drop:
                continue
            if rng.random() < self.config.dropout_probability:
                plan.dropped_trees.append(tree_idx)

        plan.original_weights = [float(weights[i]) for i in plan.dropped_trees]
        logger.debug("Dropped %d of %d trees: %s", len(plan), num_trees, plan.dropped_trees)
        return plan
