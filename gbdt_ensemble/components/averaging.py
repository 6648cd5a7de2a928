"""
Trailing Weight Averaging

This module reweights the most recent window of trees with a linear ramp:
the first tree of the window keeps its weight and the last one is scaled
by 1/W.
"""

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .config import AveragingConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AveragingWindow:
    start: int
    length: int


class WeightAverager:
    """
    重み平均化クラス

    average_last_n_trees と average_last_percent_trees のどちらか一方で
    平均化の窓を決める。
    """

    def __init__(self, averaging_config: AveragingConfig):
        if not averaging_config.is_set:
            raise ValueError("Averaging config must set average_last_n_trees or average_last_percent_trees")
        averaging_config.validate()
        self.config = averaging_config

    def window(self, num_trees: int) -> AveragingWindow:
        """
        平均化の窓を計算

        Parameters:
        -----------
        num_trees : int
            アンサンブルの木の数

        Returns:
        --------
        window : AveragingWindow
            start と length（num_trees >= 1 のとき length は [1, num_trees]）
        """
        if self.config.average_last_n_trees is not None:
            start = max(0, num_trees - self.config.average_last_n_trees)
        else:
            start = int(max(0.0, num_trees * (1.0 - self.config.average_last_percent_trees)))
        return AveragingWindow(start=start, length=num_trees - start)

    def average(self, weights: Sequence[float]) -> np.ndarray:
        """
        Adjusted copy of ``weights``

        Parameters:
        -----------
        weights : sequence of float
            Stored tree weights; left untouched

        Returns:
        --------
        adjusted : ndarray, shape=(num_trees,)
        """
        adjusted = np.array(weights, dtype=np.float32)
        window = self.window(len(adjusted))
        if window.length == 0:
            return adjusted

        offsets = np.arange(window.length, dtype=np.float32)
        adjusted[window.start:] *= (window.length - offsets) / window.length
        logger.debug("Averaging window start=%d length=%d", window.start, window.length)
        return adjusted
