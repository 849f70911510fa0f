"""
Descriptor matchers.

Two strategies are available:

- ``ratio``: nearest neighbour with Lowe's ratio test, optionally keeping
  only mutual best matches.
- ``hungarian``: optimal one-to-one assignment over descriptor distances.

Usage:
    from matching import get_matcher

    matcher = get_matcher(MatcherConfig(type='ratio', ratio=0.75))
    matches = matcher.match(features_a, descriptors_a, features_b, descriptors_b)
"""

from abc import ABC, abstractmethod
from typing import Dict, Type

import numpy as np
from scipy.optimize import linear_sum_assignment
from scipy.spatial.distance import cdist

from config.config_loader import ConfigurationError, MatcherConfig
from .match_set import MatchSet


def descriptor_distances(desc_a: np.ndarray, desc_b: np.ndarray, metric: str = 'euclidean') -> np.ndarray:
    """
    Compute pairwise descriptor distances.

    Args:
        desc_a: Descriptors ``[n, d]``.
        desc_b: Descriptors ``[m, d]``.
        metric: 'euclidean', 'cosine' or 'hamming'. Hamming distances are
                counted in bits over uint8 (binary) descriptors.

    Returns:
        Distance matrix ``[n, m]``. Undefined distances (e.g. cosine of a
        zero vector) are reported as infinity.
    """
    desc_a = np.atleast_2d(np.asarray(desc_a))
    desc_b = np.atleast_2d(np.asarray(desc_b))

    if metric == 'hamming':
        bits_a = np.unpackbits(desc_a.astype(np.uint8), axis=1)
        bits_b = np.unpackbits(desc_b.astype(np.uint8), axis=1)
        distances = cdist(bits_a, bits_b, metric='hamming') * bits_a.shape[1]
    elif metric == 'cosine':
        a = desc_a.astype(np.float64)
        b = desc_b.astype(np.float64)
        norm_a = np.linalg.norm(a, axis=1, keepdims=True)
        norm_b = np.linalg.norm(b, axis=1, keepdims=True)
        with np.errstate(divide='ignore', invalid='ignore'):
            similarity = (a / norm_a) @ (b / norm_b).T
        distances = 1.0 - np.clip(similarity, -1.0, 1.0)
    elif metric == 'euclidean':
        distances = cdist(desc_a.astype(np.float64), desc_b.astype(np.float64), metric='euclidean')
    else:
        raise ValueError(f"Unknown descriptor metric: {metric}")

    return np.where(np.isnan(distances), np.inf, distances)


class FeatureMatcher(ABC):
    """Base class for matching two frames' features."""

    def __init__(self, config: MatcherConfig):
        self.config = config

    @abstractmethod
    def match(self, features_a, descriptors_a, features_b, descriptors_b) -> MatchSet:
        """
        Match the features of frame A against those of frame B.

        Args:
            features_a: Feature locations of A ``[n, 2]``.
            descriptors_a: Descriptors of A ``[n, d]``.
            features_b: Feature locations of B ``[m, 2]``.
            descriptors_b: Descriptors of B ``[m, d]``.

        Returns:
            MatchSet of (index into A, index into B) pairs.
        """

    def _distances(self, descriptors_a, descriptors_b):
        """Distance matrix, or None when either side has nothing to match."""
        descriptors_a = np.asarray(descriptors_a)
        descriptors_b = np.asarray(descriptors_b)
        if descriptors_a.size == 0 or descriptors_b.size == 0:
            return None
        return descriptor_distances(descriptors_a, descriptors_b, self.config.metric)

    def _within_max_distance(self, distance: float) -> bool:
        if not np.isfinite(distance):
            return False
        max_distance = self.config.max_distance
        return max_distance is None or distance <= max_distance

    def __repr__(self) -> str:
        return f"{type(self).__name__}(metric={self.config.metric!r})"


class RatioTestMatcher(FeatureMatcher):
    """Nearest neighbour matching with Lowe's ratio test."""

    def match(self, features_a, descriptors_a, features_b, descriptors_b) -> MatchSet:
        distances = self._distances(descriptors_a, descriptors_b)
        if distances is None:
            return MatchSet()

        best_in_a = np.argmin(distances, axis=0)
        matches = []

        for i, row in enumerate(distances):
            j = int(np.argmin(row))
            best = row[j]
            if not self._within_max_distance(best):
                continue

            # With a single candidate there is no second neighbour to compare against
            if row.shape[0] > 1:
                second = np.partition(row, 1)[1]
                if not best < self.config.ratio * second:
                    continue

            if self.config.cross_check and best_in_a[j] != i:
                continue

            matches.append((i, j))

        return MatchSet(matches)


class HungarianMatcher(FeatureMatcher):
    """Optimal one-to-one assignment over descriptor distances."""

    def match(self, features_a, descriptors_a, features_b, descriptors_b) -> MatchSet:
        distances = self._distances(descriptors_a, descriptors_b)
        if distances is None:
            return MatchSet()

        finite = np.isfinite(distances)
        if not finite.any():
            return MatchSet()

        # linear_sum_assignment rejects infinite costs
        cost = np.where(finite, distances, distances[finite].max() * 2.0 + 1.0)
        rows, cols = linear_sum_assignment(cost)

        return MatchSet(
            (i, j) for i, j in zip(rows, cols)
            if self._within_max_distance(distances[i, j])
        )


# Registry mapping feature_matcher.type to matcher classes
MATCHER_REGISTRY: Dict[str, Type[FeatureMatcher]] = {
    'ratio': RatioTestMatcher,
    'hungarian': HungarianMatcher,
}


def get_matcher(config: MatcherConfig) -> FeatureMatcher:
    """
    Get the matcher for a feature_matcher configuration.

    Args:
        config: MatcherConfig (or a mapping accepted by MatcherConfig.from_dict).

    Returns:
        FeatureMatcher instance.

    Raises:
        ConfigurationError: If the configuration is invalid.
    """
    if isinstance(config, dict):
        config = MatcherConfig.from_dict(config)

    matcher_cls = MATCHER_REGISTRY.get(config.type)
    if matcher_cls is None:
        raise ConfigurationError(
            f"Matcher type '{config.type}' is not supported. "
            f"Supported types: {list(MATCHER_REGISTRY.keys())}"
        )
    return matcher_cls(config)

