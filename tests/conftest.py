"""
Shared fixtures for the gbdt_ensemble tests
"""

import numpy as np
import pytest

from gbdt_ensemble import (
    BatchFeatures,
    DecisionTree,
    DecisionTreeEnsemble,
    DenseFloatBinarySplit,
    GrowingMetadata,
    Leaf,
)


def make_stump(threshold: float, left_value, right_value, feature_column: int = 0) -> DecisionTree:
    """Dense split on one column with two vector leaves."""
    return DecisionTree(nodes=[
        DenseFloatBinarySplit(feature_column=feature_column, threshold=threshold, left_id=1, right_id=2),
        Leaf(vector=list(left_value)),
        Leaf(vector=list(right_value)),
    ])


def make_ensemble(n_trees: int, weights=None, n_classes: int = 2,
                  last_finalized: bool = True, growing: bool = False) -> DecisionTreeEnsemble:
    """
    Stump ensemble where tree i adds [i+1, -(i+1)] left of 0.5 and
    [10*(i+1), 0] otherwise
    """
    weights = [1.0] * n_trees if weights is None else weights
    ensemble = DecisionTreeEnsemble()
    for i in range(n_trees):
        left = [float(i + 1), -float(i + 1)] + [0.0] * (n_classes - 2)
        right = [10.0 * (i + 1)] + [0.0] * (n_classes - 1)
        is_finalized = last_finalized or i < n_trees - 1
        ensemble.add_tree(make_stump(0.5, left, right), weights[i], is_finalized=is_finalized)
    if growing:
        ensemble.growing_metadata = GrowingMetadata()
    return ensemble.validate()


@pytest.fixture
def features():
    """Six examples on one dense column, half on each side of 0.5."""
    return BatchFeatures(dense_float_features=[np.array([[0.0], [1.0], [0.2], [0.9], [0.5], [3.0]])])


@pytest.fixture
def stump_factory():
    return make_stump


@pytest.fixture
def ensemble_factory():
    return make_ensemble
