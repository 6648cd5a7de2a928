"""
LearnerConfig の検証とパースのテスト
"""

import json

import numpy as np
import pytest

from gbdt_ensemble import (
    AveragingConfig,
    DropoutConfig,
    GrowingMode,
    LearnerConfig,
    MultiClassStrategy,
)


def test_prediction_vector_size():
    """FULL は num_classes 列、TREE_PER_CLASS は num_classes - 1 列"""
    assert LearnerConfig(num_classes=2, multi_class_strategy=MultiClassStrategy.FULL).prediction_vector_size == 2
    assert LearnerConfig(num_classes=2,
                         multi_class_strategy=MultiClassStrategy.TREE_PER_CLASS).prediction_vector_size == 1
    assert LearnerConfig(num_classes=5,
                         multi_class_strategy=MultiClassStrategy.TREE_PER_CLASS).prediction_vector_size == 4


def test_only_finalized_trees_follows_growing_mode():
    assert LearnerConfig(growing_mode=GrowingMode.WHOLE_TREE).only_finalized_trees
    assert not LearnerConfig(growing_mode=GrowingMode.LAYER_BY_LAYER).only_finalized_trees


def test_num_classes_below_two_is_rejected():
    with pytest.raises(ValueError, match="Number of classes"):
        LearnerConfig(num_classes=1).validate()


@pytest.mark.parametrize("averaging, message", [
    (AveragingConfig(average_last_n_trees=0), "positive"),
    (AveragingConfig(average_last_n_trees=-3), "positive"),
    (AveragingConfig(average_last_percent_trees=0.0), r"\(0,1\]"),
    (AveragingConfig(average_last_percent_trees=1.5), r"\(0,1\]"),
    (AveragingConfig(average_last_n_trees=2, average_last_percent_trees=0.5), "Only one"),
])
def test_averaging_bounds(averaging, message):
    with pytest.raises(ValueError, match=message):
        LearnerConfig(averaging=averaging).validate()


def test_dropout_bounds():
    with pytest.raises(ValueError):
        LearnerConfig(dropout=DropoutConfig(dropout_probability=1.2)).validate()
    with pytest.raises(ValueError):
        LearnerConfig(dropout=DropoutConfig(probability_of_skipping_dropout=-0.1)).validate()


def test_from_dict_round_trip():
    config = LearnerConfig(
        num_classes=3,
        multi_class_strategy=MultiClassStrategy.TREE_PER_CLASS,
        growing_mode=GrowingMode.LAYER_BY_LAYER,
        dropout=DropoutConfig(dropout_probability=0.3),
        averaging=AveragingConfig(average_last_percent_trees=0.5),
    )
    parsed = LearnerConfig.from_json(json.dumps(config.to_dict()))
    assert parsed == config
    assert parsed.has_averaging


@pytest.mark.parametrize("payload", [
    "not json",
    "[1, 2]",
    json.dumps({"num_classes": 2, "multi_class_strategy": "DIAGONAL"}),
    json.dumps({"num_classes": 2, "unknown": 1}),
    json.dumps({"dropout": {"rate": 0.1}}),
    json.dumps({"dropout": {"dropout_probability": "0.5"}}),
    json.dumps({"averaging": {"average_last_n_trees": "3"}}),
    json.dumps({"averaging": {"average_last_percent_trees": "0.5"}}),
    json.dumps({"num_classes": "many"}),
])
def test_malformed_payload(payload):
    with pytest.raises(ValueError, match="Unable to parse learner config"):
        LearnerConfig.from_json(payload)


@pytest.mark.parametrize("n_trees", [2.5, True, "3"])
def test_average_last_n_trees_must_be_integer(n_trees):
    """平均化する木の数は bool 以外の整数のみ"""
    with pytest.raises(ValueError, match="must be an integer"):
        AveragingConfig(average_last_n_trees=n_trees).validate()


def test_numpy_integer_window_is_accepted():
    assert LearnerConfig(averaging=AveragingConfig(average_last_n_trees=np.int64(3))).validate().has_averaging


def test_non_numeric_probabilities_are_rejected():
    with pytest.raises(ValueError, match="must be a number"):
        DropoutConfig(dropout_probability="0.5").validate()
    with pytest.raises(ValueError, match="must be a number"):
        AveragingConfig(average_last_percent_trees=True).validate()
