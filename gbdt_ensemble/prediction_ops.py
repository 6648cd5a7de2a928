"""
Prediction Ops

This module contains the two entry points of the package. Each op validates
its learner configuration once at construction time and then, per call,
combines dropout selection, weight averaging and the batch drivers over a
snapshot of the ensemble resource.
"""

import logging
import warnings
from concurrent.futures import Executor
from dataclasses import dataclass
from typing import Optional, Union

import numpy as np

from .components.averaging import WeightAverager
from .components.batch_features import BatchFeatures
from .components.batch_partitioner import BatchPartitioner
from .components.batch_predictor import BatchPredictor
from .components.config import LearnerConfig
from .components.dropout import DropoutPlan, DropoutSelector, protected_trees
from .components.ensemble import DecisionTreeEnsemble, DecisionTreeEnsembleResource
from .components.tree_evaluator import TreeEvaluator

logger = logging.getLogger(__name__)


@dataclass
class PredictionResult:
    """
    Outputs of one prediction call

    Attributes:
    -----------
    predictions : ndarray, shape=(n_samples, prediction_vector_size)
        Predictions with dropped trees left out
    no_dropout_predictions : ndarray, shape=(n_samples, prediction_vector_size)
        Predictions from every eligible tree
    dropout_info : ndarray, shape=(2, n_dropped)
        Dropped tree indices and their original weights
    """
    predictions: np.ndarray
    no_dropout_predictions: np.ndarray
    dropout_info: np.ndarray


def _seed_to_rng(seed) -> np.random.Generator:
    if np.ndim(seed) != 0:
        raise ValueError("Seed must be a scalar.")
    seed = np.asarray(seed)
    if seed.dtype == np.bool_ or not np.issubdtype(seed.dtype, np.integer):
        raise ValueError(f"Seed must be an integer, got {seed.dtype}")
    # Negative int64 seeds wrap to uint64.
    return np.random.default_rng(int(seed.astype(np.int64).astype(np.uint64)))


class GradientTreesPredictionOp:
    """
    Predicts a batch with the ensemble held by a resource.

    Parameters:
    -----------
    learner_config : LearnerConfig, dict or str
        Learner configuration; dicts and JSON strings are parsed
    use_locking : bool
        Hold the resource's exclusive lock for the whole call
    center_bias : bool
        Never drop tree 0
    apply_dropout : bool
        Apply the dropout config, if any
    apply_averaging : bool
        Apply the averaging config, if any
    num_threads : int, optional
        Worker count, defaults to the CPU count
    executor : Executor, optional
        Caller-owned thread pool
    """

    def __init__(self,
                 learner_config: Union[LearnerConfig, dict, str],
                 use_locking: bool = False,
                 center_bias: bool = False,
                 apply_dropout: bool = False,
                 apply_averaging: bool = False,
                 num_threads: Optional[int] = None,
                 executor: Optional[Executor] = None,
                 evaluator: Optional[TreeEvaluator] = None):
        self.learner_config = _parse_learner_config(learner_config)
        self.use_locking = use_locking
        self.center_bias = center_bias

        self.has_dropout = self.learner_config.dropout is not None
        if apply_dropout and not self.has_dropout:
            warnings.warn("apply_dropout is set but the learner config has no dropout config; "
                          "dropout will not be applied")
        self.apply_dropout = apply_dropout and self.has_dropout
        self.dropout_selector = DropoutSelector(self.learner_config.dropout) if self.apply_dropout else None

        if apply_averaging and not self.learner_config.has_averaging:
            warnings.warn("apply_averaging is set but the learner config has no averaging config; "
                          "averaging will not be applied")
        self.apply_averaging = apply_averaging and self.learner_config.has_averaging
        self.weight_averager = WeightAverager(self.learner_config.averaging) if self.apply_averaging else None

        self.prediction_vector_size = self.learner_config.prediction_vector_size
        self.only_finalized_trees = self.learner_config.only_finalized_trees
        self.batch_predictor = BatchPredictor(
            prediction_vector_size=self.prediction_vector_size,
            only_finalized_trees=self.only_finalized_trees,
            evaluator=evaluator,
            num_threads=num_threads,
            executor=executor,
        )

    def __call__(self,
                 resource: DecisionTreeEnsembleResource,
                 features: BatchFeatures,
                 seed=0) -> PredictionResult:
        if self.use_locking:
            with resource.write_lock():
                return self.predict(resource.decision_tree_ensemble, features, seed)
        return self.predict(resource.decision_tree_ensemble, features, seed)

    def predict(self,
                ensemble: DecisionTreeEnsemble,
                features: BatchFeatures,
                seed=0) -> PredictionResult:
        """
        Predict with an ensemble snapshot; the caller guarantees it is not
        mutated while this runs.

        Parameters:
        -----------
        ensemble : DecisionTreeEnsemble
            Ensemble snapshot
        features : BatchFeatures
            Batch to score
        seed : int
            Scalar dropout seed; only read when dropout is applied

        Returns:
        --------
        result : PredictionResult
        """
        stored_weights = ensemble.weights_array()

        dropout_plan = DropoutPlan()
        if self.apply_dropout:
            rng = _seed_to_rng(seed)
            dropout_plan = self.dropout_selector.select(
                rng, stored_weights, protected_trees(ensemble, self.center_bias))

        if self.apply_averaging:
            weights = self.weight_averager.average(stored_weights)
        else:
            weights = stored_weights

        predictions, no_dropout_predictions = self.batch_predictor.predict(
            ensemble, weights, dropout_plan, features)

        logger.debug("Predicted %d examples with %d trees (%d dropped)",
                     features.batch_size, ensemble.num_trees, len(dropout_plan))
        return PredictionResult(
            predictions=predictions,
            no_dropout_predictions=no_dropout_predictions,
            dropout_info=dropout_plan.as_matrix(),
        )

    def print_summary(self) -> None:
        print("\n=== GradientTreesPrediction Summary ===")
        print(f"Classes: {self.learner_config.num_classes}")
        print(f"Strategy: {self.learner_config.multi_class_strategy.name}")
        print(f"Prediction vector size: {self.prediction_vector_size}")
        print(f"Only finalized trees: {self.only_finalized_trees}")
        print(f"Dropout: {self.learner_config.dropout if self.apply_dropout else 'off'}")
        print(f"Averaging: {self.learner_config.averaging if self.apply_averaging else 'off'}")
        print(f"Center bias: {self.center_bias}")


class GradientTreesPartitionExamplesOp:
    """Partitions a batch on the tree under construction."""

    def __init__(self,
                 use_locking: bool = False,
                 num_threads: Optional[int] = None,
                 executor: Optional[Executor] = None,
                 evaluator: Optional[TreeEvaluator] = None):
        self.use_locking = use_locking
        self.batch_partitioner = BatchPartitioner(
            evaluator=evaluator, num_threads=num_threads, executor=executor)

    def __call__(self, resource: DecisionTreeEnsembleResource, features: BatchFeatures) -> np.ndarray:
        if self.use_locking:
            with resource.write_lock():
                return self.partition(resource.decision_tree_ensemble, features)
        return self.partition(resource.decision_tree_ensemble, features)

    def partition(self, ensemble: DecisionTreeEnsemble, features: BatchFeatures) -> np.ndarray:
        return self.batch_partitioner.partition(ensemble, features)


def _parse_learner_config(learner_config: Union[LearnerConfig, dict, str]) -> LearnerConfig:
    if isinstance(learner_config, LearnerConfig):
        return learner_config.validate()
    if isinstance(learner_config, str):
        return LearnerConfig.from_json(learner_config)
    if isinstance(learner_config, dict):
        return LearnerConfig.from_dict(learner_config)
    raise ValueError(f"Unable to parse learner config of type {type(learner_config).__name__}")
