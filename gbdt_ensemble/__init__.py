"""
gbdt_ensemble

Prediction and example partitioning for boosted decision-tree ensembles.
"""

from .components import *  # noqa: F401,F403
from .components import __all__ as _components_all
from .prediction_ops import (
    GradientTreesPredictionOp,
    GradientTreesPartitionExamplesOp,
    PredictionResult
)

__version__ = "0.1.0"

__all__ = _components_all + [
    'GradientTreesPredictionOp',
    'GradientTreesPartitionExamplesOp',
    'PredictionResult'
]
