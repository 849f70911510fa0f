"""Track model and frame-to-frame tracking for loopstitch."""

from .track import Track, TrackState
from .track_store import TrackStore
from .track_set import TrackSet
from .feature_tracker import FeatureTracker

__all__ = [
    'Track',
    'TrackState',
    'TrackStore',
    'TrackSet',
    'FeatureTracker'
]
