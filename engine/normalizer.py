"""
Min-max feature normalization.

Rescales every column of a feature matrix into [0, 1] independently with
scikit-learn's MinMaxScaler. A column whose values are all equal gets a
range of 1, so it maps to 0 instead of dividing by zero.
"""

import logging

import numpy as np
from sklearn.preprocessing import MinMaxScaler


logger = logging.getLogger(__name__)


class FeatureNormalizer:
    """Per-column min-max scaler."""

    def __init__(self):
        self._scaler = MinMaxScaler(feature_range=(0, 1))
        self._fitted = False

    def fit(self, features: np.ndarray) -> "FeatureNormalizer":
        features = np.asarray(features, dtype=float)
        if features.ndim != 2:
            raise ValueError(f"features must be a 2-D matrix, got shape {features.shape}")
        if features.shape[0] == 0:
            raise ValueError("cannot fit normalizer on an empty matrix")

        self._scaler.fit(features)
        self._fitted = True

        constant = self._scaler.data_range_ == 0
        if np.any(constant):
            logger.debug(f"{int(constant.sum())} constant feature column(s), range forced to 1")
        return self

    def transform(self, features: np.ndarray) -> np.ndarray:
        if not self._fitted:
            raise RuntimeError("FeatureNormalizer must be fitted before transform()")
        return self._scaler.transform(np.asarray(features, dtype=float))

    def fit_transform(self, features: np.ndarray) -> np.ndarray:
        return self.fit(features).transform(features)
