"""
Learner Configuration

This module contains the configuration dataclasses consumed by the
prediction ops, together with their validation and parsing helpers.
"""

import json
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional, Dict, Any

import numpy as np


def _is_integer(value) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool)


def _is_real(value) -> bool:
    return isinstance(value, (int, float, np.integer, np.floating)) and not isinstance(value, bool)


class MultiClassStrategy(Enum):
    FULL = "FULL"
    TREE_PER_CLASS = "TREE_PER_CLASS"


class GrowingMode(Enum):
    WHOLE_TREE = "WHOLE_TREE"
    LAYER_BY_LAYER = "LAYER_BY_LAYER"


@dataclass
class DropoutConfig:
    """
    Dropout設定

    Attributes:
    -----------
    dropout_probability : float
        各木がドロップされる確率
    probability_of_skipping_dropout : float
        呼び出し全体でドロップアウトをスキップする確率
    """
    dropout_probability: float = 0.0
    probability_of_skipping_dropout: float = 0.0

    def validate(self) -> None:
        for name in ("dropout_probability", "probability_of_skipping_dropout"):
            if not _is_real(getattr(self, name)):
                raise ValueError(f"{name} must be a number, got {getattr(self, name)!r}")
        if not 0.0 <= self.dropout_probability <= 1.0:
            raise ValueError(
                f"Dropout probability must be in [0,1] interval, got {self.dropout_probability}")
        if not 0.0 <= self.probability_of_skipping_dropout <= 1.0:
            raise ValueError(
                "Probability of skipping dropout must be in [0,1] interval, "
                f"got {self.probability_of_skipping_dropout}")


@dataclass
class AveragingConfig:
    """
    Trailing-window averaging settings.

    Exactly one of ``average_last_n_trees`` and ``average_last_percent_trees``
    may be set.
    """
    average_last_n_trees: Optional[int] = None
    average_last_percent_trees: Optional[float] = None

    @property
    def is_set(self) -> bool:
        return self.average_last_n_trees is not None or self.average_last_percent_trees is not None

    def validate(self) -> None:
        if self.average_last_n_trees is not None and self.average_last_percent_trees is not None:
            raise ValueError("Only one of average_last_n_trees and average_last_percent_trees can be set")
        if self.average_last_n_trees is not None:
            if not _is_integer(self.average_last_n_trees):
                raise ValueError(
                    f"Average last n trees must be an integer, got {self.average_last_n_trees!r}")
            if self.average_last_n_trees <= 0:
                raise ValueError("Average last n trees must be a positive number")
        elif self.average_last_percent_trees is not None:
            if not _is_real(self.average_last_percent_trees):
                raise ValueError(
                    f"Average last percent must be a number, got {self.average_last_percent_trees!r}")
            if not 0.0 < self.average_last_percent_trees <= 1.0:
                raise ValueError("Average last percent must be in (0,1] interval.")


@dataclass
class LearnerConfig:
    """
    Learner configuration used at prediction time

    Parameters:
    -----------
    num_classes : int
        Number of classes, must be >= 2
    multi_class_strategy : MultiClassStrategy
        FULL (one vector per tree) or TREE_PER_CLASS (one column per tree)
    growing_mode : GrowingMode
        WHOLE_TREE restricts prediction to finalized trees
    dropout : DropoutConfig, optional
        Dropout learning-rate tuner
    averaging : AveragingConfig, optional
        Trailing-window averaging
    """
    num_classes: int = 2
    multi_class_strategy: MultiClassStrategy = MultiClassStrategy.FULL
    growing_mode: GrowingMode = GrowingMode.WHOLE_TREE
    dropout: Optional[DropoutConfig] = None
    averaging: Optional[AveragingConfig] = field(default=None)

    def validate(self) -> 'LearnerConfig':
        if self.num_classes < 2:
            raise ValueError("Number of classes must be >=2")
        if self.dropout is not None:
            self.dropout.validate()
        if self.averaging is not None:
            self.averaging.validate()
        return self

    @property
    def prediction_vector_size(self) -> int:
        if self.multi_class_strategy == MultiClassStrategy.TREE_PER_CLASS:
            return self.num_classes - 1
        return self.num_classes

    @property
    def only_finalized_trees(self) -> bool:
        return self.growing_mode == GrowingMode.WHOLE_TREE

    @property
    def has_averaging(self) -> bool:
        return self.averaging is not None and self.averaging.is_set

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> 'LearnerConfig':
        """
        Parse a plain dict payload into a validated LearnerConfig

        Parameters:
        -----------
        payload : dict
            Keys follow the dataclass fields; enums are given by name

        Returns:
        --------
        config : LearnerConfig
            Parsed and validated configuration

        Raises:
        -------
        ValueError
            If the payload is malformed or any value is out of range
        """
        if not isinstance(payload, dict):
            raise ValueError("Unable to parse learner config: payload must be a mapping")
        unknown = set(payload) - {"num_classes", "multi_class_strategy", "growing_mode", "dropout", "averaging"}
        if unknown:
            raise ValueError(f"Unable to parse learner config: unknown fields {sorted(unknown)}")

        try:
            config = cls(
                num_classes=int(payload.get("num_classes", 2)),
                multi_class_strategy=MultiClassStrategy[payload.get("multi_class_strategy", "FULL")],
                growing_mode=GrowingMode[payload.get("growing_mode", "WHOLE_TREE")],
                dropout=DropoutConfig(**payload["dropout"]) if payload.get("dropout") is not None else None,
                averaging=AveragingConfig(**payload["averaging"]) if payload.get("averaging") is not None else None,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Unable to parse learner config: {e}") from e

        try:
            return config.validate()
        except (TypeError, ValueError) as e:
            raise ValueError(f"Unable to parse learner config: {e}") from e

    @classmethod
    def from_json(cls, text: str) -> 'LearnerConfig':
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"Unable to parse learner config: {e}") from e
        return cls.from_dict(payload)

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["multi_class_strategy"] = self.multi_class_strategy.name
        payload["growing_mode"] = self.growing_mode.name
        return payload
