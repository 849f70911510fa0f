"""
Tests for descriptor matchers.
"""

import unittest
import numpy as np

from config.config_loader import ConfigurationError, MatcherConfig
from matching import (
    MatchSet, Match, RatioTestMatcher, HungarianMatcher,
    get_matcher, descriptor_distances
)


class TestMatchSet(unittest.TestCase):
    """Test the match container."""

    def test_basic(self):
        matches = MatchSet([(0, 2), (1, 0)])
        self.assertEqual(matches.size(), 2)
        self.assertEqual(len(matches), 2)
        self.assertEqual(matches[0], Match(0, 2))
        self.assertEqual([tuple(m) for m in matches], [(0, 2), (1, 0)])
        self.assertEqual(matches.matches()[1].first, 1)

    def test_empty(self):
        self.assertEqual(MatchSet().size(), 0)
        self.assertEqual(MatchSet(), MatchSet([]))


class TestDescriptorDistances(unittest.TestCase):
    """Test pairwise distance computation."""

    def test_euclidean(self):
        a = np.array([[0.0, 0.0], [3.0, 4.0]])
        b = np.array([[0.0, 0.0]])
        distances = descriptor_distances(a, b, 'euclidean')
        np.testing.assert_allclose(distances, [[0.0], [5.0]])

    def test_hamming_counts_bits(self):
        a = np.array([[0b00000000, 0b11111111]], dtype=np.uint8)
        b = np.array([[0b00000011, 0b11111111]], dtype=np.uint8)
        distances = descriptor_distances(a, b, 'hamming')
        self.assertAlmostEqual(distances[0, 0], 2.0)

    def test_cosine_zero_vector_is_infinite(self):
        a = np.array([[1.0, 0.0], [0.0, 0.0]])
        b = np.array([[1.0, 0.0]])
        distances = descriptor_distances(a, b, 'cosine')
        self.assertAlmostEqual(distances[0, 0], 0.0)
        self.assertTrue(np.isinf(distances[1, 0]))

    def test_unknown_metric(self):
        with self.assertRaises(ValueError):
            descriptor_distances(np.zeros((1, 2)), np.zeros((1, 2)), 'chebyshev')


class TestRatioTestMatcher(unittest.TestCase):
    """Test nearest neighbour matching with ratio test."""

    def setUp(self):
        """Set up test fixtures."""
        rng = np.random.default_rng(0)
        self.desc_a = rng.normal(size=(20, 32))
        self.perm = rng.permutation(20)
        self.desc_b = self.desc_a[self.perm] + rng.normal(scale=0.01, size=(20, 32))
        self.feat_a = rng.uniform(0, 100, size=(20, 2))
        self.feat_b = self.feat_a[self.perm]
        self.matcher = RatioTestMatcher(MatcherConfig(ratio=0.75))

    def test_recovers_permutation(self):
        """Every feature of A is matched to its copy in B."""
        matches = self.matcher.match(self.feat_a, self.desc_a, self.feat_b, self.desc_b)
        self.assertEqual(matches.size(), 20)
        for i, j in matches:
            self.assertEqual(self.perm[j], i)

    def test_ambiguous_rejected(self):
        """Two equally close candidates fail the ratio test."""
        desc_a = np.array([[0.0, 0.0]])
        desc_b = np.array([[1.0, 0.0], [-1.0, 0.0]])
        matches = self.matcher.match(np.zeros((1, 2)), desc_a, np.zeros((2, 2)), desc_b)
        self.assertEqual(matches.size(), 0)

    def test_single_candidate(self):
        """With one candidate the nearest neighbour is accepted."""
        matches = self.matcher.match(np.zeros((2, 2)), np.eye(2), np.zeros((1, 2)), np.array([[1.0, 0.1]]))
        self.assertIn((0, 0), [tuple(m) for m in matches])

    def test_cross_check(self):
        """Only mutual best matches survive cross checking."""
        desc_a = np.array([[0.0], [0.4]])
        desc_b = np.array([[0.5], [10.0]])
        plain = RatioTestMatcher(MatcherConfig(ratio=1.0))
        checked = RatioTestMatcher(MatcherConfig(ratio=1.0, cross_check=True))

        feats = np.zeros((2, 2))
        self.assertEqual([tuple(m) for m in plain.match(feats, desc_a, feats, desc_b)], [(0, 0), (1, 0)])
        self.assertEqual([tuple(m) for m in checked.match(feats, desc_a, feats, desc_b)], [(1, 0)])

    def test_max_distance(self):
        matcher = RatioTestMatcher(MatcherConfig(max_distance=0.001))
        matches = matcher.match(self.feat_a, self.desc_a, self.feat_b, self.desc_b)
        self.assertEqual(matches.size(), 0)

    def test_empty_inputs(self):
        """Empty frames produce no matches."""
        empty = np.empty((0, 32))
        self.assertEqual(self.matcher.match(np.empty((0, 2)), empty, self.feat_b, self.desc_b).size(), 0)
        self.assertEqual(self.matcher.match(self.feat_a, self.desc_a, np.empty((0, 2)), empty).size(), 0)


class TestHungarianMatcher(unittest.TestCase):
    """Test optimal assignment matching."""

    def test_one_to_one(self):
        desc_a = np.array([[0.0], [1.0], [2.0]])
        desc_b = np.array([[2.1], [0.1], [0.9]])
        matcher = HungarianMatcher(MatcherConfig(type='hungarian'))
        matches = matcher.match(np.zeros((3, 2)), desc_a, np.zeros((3, 2)), desc_b)
        self.assertEqual(sorted(tuple(m) for m in matches), [(0, 1), (1, 2), (2, 0)])

    def test_max_distance(self):
        """Assignments farther than max_distance are dropped."""
        desc_a = np.array([[0.0], [5.0]])
        desc_b = np.array([[0.1], [9.0]])
        matcher = HungarianMatcher(MatcherConfig(type='hungarian', max_distance=1.0))
        matches = matcher.match(np.zeros((2, 2)), desc_a, np.zeros((2, 2)), desc_b)
        self.assertEqual([tuple(m) for m in matches], [(0, 0)])

    def test_unequal_sizes(self):
        desc_a = np.array([[0.0], [1.0], [2.0]])
        desc_b = np.array([[1.0]])
        matcher = HungarianMatcher(MatcherConfig(type='hungarian'))
        matches = matcher.match(np.zeros((3, 2)), desc_a, np.zeros((1, 2)), desc_b)
        self.assertEqual([tuple(m) for m in matches], [(1, 0)])


class TestMatcherFactory(unittest.TestCase):
    """Test get_matcher and configuration checks."""

    def test_get_matcher(self):
        self.assertIsInstance(get_matcher(MatcherConfig()), RatioTestMatcher)
        self.assertIsInstance(get_matcher({'type': 'hungarian'}), HungarianMatcher)

    def test_invalid_config(self):
        with self.assertRaises(ConfigurationError):
            get_matcher({'type': 'flann'})


if __name__ == '__main__':
    unittest.main()
