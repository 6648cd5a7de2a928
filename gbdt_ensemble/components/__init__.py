"""
GBDT Ensemble Components Package

This package contains the building blocks of ensemble prediction: the tree
model and evaluator, batch features, the ensemble resource, dropout
selection, weight averaging and the two batch drivers.
"""

from .config import (
    LearnerConfig,
    DropoutConfig,
    AveragingConfig,
    MultiClassStrategy,
    GrowingMode
)
from .tree_node import (
    DecisionTree,
    Leaf,
    DenseFloatBinarySplit,
    SparseFloatBinarySplit,
    CategoricalIdBinarySplit,
    CategoricalIdSetMembershipBinarySplit
)
from .batch_features import BatchFeatures, Example
from .tree_evaluator import TreeEvaluator
from .ensemble import (
    DecisionTreeEnsemble,
    DecisionTreeEnsembleResource,
    TreeMetadata,
    GrowingMetadata,
    ReadWriteLock
)
from .dropout import DropoutPlan, DropoutSelector, protected_trees
from .averaging import AveragingWindow, WeightAverager
from .batch_predictor import BatchPredictor
from .batch_partitioner import BatchPartitioner

__all__ = [
    'LearnerConfig',
    'DropoutConfig',
    'AveragingConfig',
    'MultiClassStrategy',
    'GrowingMode',
    'DecisionTree',
    'Leaf',
    'DenseFloatBinarySplit',
    'SparseFloatBinarySplit',
    'CategoricalIdBinarySplit',
    'CategoricalIdSetMembershipBinarySplit',
    'BatchFeatures',
    'Example',
    'TreeEvaluator',
    'DecisionTreeEnsemble',
    'DecisionTreeEnsembleResource',
    'TreeMetadata',
    'GrowingMetadata',
    'ReadWriteLock',
    'DropoutPlan',
    'DropoutSelector',
    'protected_trees',
    'AveragingWindow',
    'WeightAverager',
    'BatchPredictor',
    'BatchPartitioner'
]
