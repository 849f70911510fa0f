"""Feature matching for loopstitch."""

from .match_set import Match, MatchSet
from .feature_matcher import (
    FeatureMatcher,
    RatioTestMatcher,
    HungarianMatcher,
    get_matcher,
    descriptor_distances
)

__all__ = [
    'Match',
    'MatchSet',
    'FeatureMatcher',
    'RatioTestMatcher',
    'HungarianMatcher',
    'get_matcher',
    'descriptor_distances'
]
