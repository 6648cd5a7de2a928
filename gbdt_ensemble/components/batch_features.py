"""
Batch Features

This module holds the per-call feature bundle: dense float columns,
sparse float columns and sparse int (categorical id) columns, and the
per-example view handed to the tree evaluator.
"""

from dataclasses import dataclass
from typing import List, Dict, Set, Sequence, Tuple, Optional

import numpy as np
import pandas as pd
from sklearn.utils.validation import check_array


SparseColumn = Tuple[np.ndarray, np.ndarray, np.ndarray]


@dataclass(frozen=True)
class Example:
    """Feature values of a single example, indexed by column."""
    example_idx: int
    dense_float_features: List[np.ndarray]
    sparse_float_features: List[Dict[int, float]]
    sparse_int_features: List[Set[int]]


def _validate_sparse_column(name: str, column: SparseColumn, value_dtype) -> SparseColumn:
    """
    疎特徴量列の検証

    Parameters:
    -----------
    name : str
        エラーメッセージ用の列名
    column : tuple
        (indices [nnz, 2], values [nnz], shape [2])
    value_dtype : dtype
        値の型

    Returns:
    --------
    column : tuple
        検証・変換済みの列
    """
    try:
        indices, values, shape = column
    except (TypeError, ValueError) as e:
        raise ValueError(f"{name} must be an (indices, values, shape) triple") from e

    indices = np.asarray(indices, dtype=np.int64).reshape(-1, 2) if np.size(indices) else np.zeros((0, 2), np.int64)
    values = np.asarray(values, dtype=value_dtype).reshape(-1)
    shape = np.asarray(shape, dtype=np.int64).reshape(-1)

    if shape.shape != (2,):
        raise ValueError(f"{name} shape must have 2 entries, got {shape.tolist()}")
    if indices.shape[0] != values.shape[0]:
        raise ValueError(f"{name} has {indices.shape[0]} indices but {values.shape[0]} values")
    if indices.shape[0] > 0:
        if np.any(indices < 0) or np.any(indices[:, 0] >= shape[0]) or np.any(indices[:, 1] >= shape[1]):
            raise ValueError(f"{name} has indices outside of shape {shape.tolist()}")
    return indices, values, shape


class BatchFeatures:
    """
    バッチ特徴量クラス

    Attributes:
    -----------
    batch_size : int
        サンプル数
    dense_float_features : list of ndarray, shape=(batch_size, dim)
        密な浮動小数点特徴量列
    sparse_float_features : list of (indices, values, shape)
        疎な浮動小数点特徴量列
    sparse_int_features : list of (indices, values, shape)
        疎な整数（カテゴリID）特徴量列
    """

    def __init__(self,
                 dense_float_features: Sequence[np.ndarray] = (),
                 sparse_float_features: Sequence[SparseColumn] = (),
                 sparse_int_features: Sequence[SparseColumn] = ()):
        self.dense_float_features = []
        for i, column in enumerate(dense_float_features):
            column = np.asarray(column, dtype=np.float32)
            if column.ndim == 1:
                column = column.reshape(-1, 1)
            if column.ndim != 2:
                raise ValueError(f"Dense float feature {i} must be 2D, got {column.ndim}D")
            self.dense_float_features.append(column)

        self.sparse_float_features = [
            _validate_sparse_column(f"Sparse float feature {i}", column, np.float32)
            for i, column in enumerate(sparse_float_features)
        ]
        self.sparse_int_features = [
            _validate_sparse_column(f"Sparse int feature {i}", column, np.int64)
            for i, column in enumerate(sparse_int_features)
        ]

        self.batch_size = self._infer_batch_size()

        # Per-example lookup tables for the sparse columns.
        self._sparse_float_rows = [self._group_rows(indices, values, float)
                                   for indices, values, _ in self.sparse_float_features]
        self._sparse_int_rows = [self._group_rows(indices, values, int)
                                 for indices, values, _ in self.sparse_int_features]

    def _infer_batch_size(self) -> int:
        sizes = [column.shape[0] for column in self.dense_float_features]
        sizes += [int(shape[0]) for _, _, shape in self.sparse_float_features]
        sizes += [int(shape[0]) for _, _, shape in self.sparse_int_features]
        if not sizes:
            raise ValueError("Could not infer batch size due to empty feature set.")
        if any(size != sizes[0] for size in sizes):
            raise ValueError(f"Feature columns have mismatched batch sizes: {sizes}")
        return sizes[0]

    @staticmethod
    def _group_rows(indices: np.ndarray, values: np.ndarray, cast) -> Dict[int, List[Tuple[int, object]]]:
        rows = {}
        for (row, dim), value in zip(indices.tolist(), values.tolist()):
            rows.setdefault(row, []).append((dim, cast(value)))
        return rows

    def example(self, example_idx: int) -> Example:
        """
        単一サンプルの特徴量ビューを取得

        Parameters:
        -----------
        example_idx : int
            サンプルインデックス

        Returns:
        --------
        example : Example
            サンプルの特徴量
        """
        if not 0 <= example_idx < self.batch_size:
            raise IndexError(f"Example index {example_idx} out of range for batch of {self.batch_size}")
        return Example(
            example_idx=example_idx,
            dense_float_features=[column[example_idx] for column in self.dense_float_features],
            sparse_float_features=[dict(rows.get(example_idx, ())) for rows in self._sparse_float_rows],
            sparse_int_features=[{value for _, value in rows.get(example_idx, ())} for rows in self._sparse_int_rows],
        )

    def examples(self, start: int, end: int):
        for example_idx in range(start, end):
            yield self.example(example_idx)

    @classmethod
    def from_dense(cls, X: np.ndarray) -> 'BatchFeatures':
        """
        Build a feature bundle with one dense column per matrix column

        Parameters:
        -----------
        X : array-like, shape=(n_samples, n_features)
            Dense feature matrix, must be finite

        Returns:
        --------
        features : BatchFeatures
        """
        X = check_array(X, dtype=np.float32, ensure_2d=True)
        return cls(dense_float_features=[X[:, [j]] for j in range(X.shape[1])])

    @classmethod
    def from_dataframe(cls, frame: pd.DataFrame, columns: Optional[List[str]] = None) -> 'BatchFeatures':
        """Dense columns from the numeric columns of a DataFrame."""
        if columns is None:
            columns = frame.select_dtypes(include="number").columns.tolist()
        if not columns:
            raise ValueError("DataFrame has no numeric columns to use as dense features")
        return cls.from_dense(frame[columns].to_numpy())

    def __repr__(self) -> str:
        return (f"BatchFeatures(batch_size={self.batch_size}, dense={len(self.dense_float_features)}, "
                f"sparse_float={len(self.sparse_float_features)}, sparse_int={len(self.sparse_int_features)})")
