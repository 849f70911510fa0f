"""
Feature Tracker - builds tracks frame by frame and repairs bad frames.
"""

from typing import Dict, List, Optional

import numpy as np

from config.config_loader import Config
from matching.feature_matcher import FeatureMatcher, get_matcher
from utils.logger import get_logger
from .track import Track
from .track_set import TrackSet
from .track_store import TrackStore

logger = get_logger(__name__)


class FeatureTracker:
    """
    Links per-frame features into tracks.

    Each new frame is matched against the tracks active in the previous
    frame: matched tracks are extended (update), unmatched features start
    new tracks (birth). The resulting track set is then passed through the
    bad-frame loop closer.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        matcher: Optional[FeatureMatcher] = None,
        loop_closer=None
    ):
        """
        Initialize feature tracker.

        Args:
            config: Configuration. Defaults if None.
            matcher: Frame-to-frame matcher. Built from ``config.tracker`` if None.
            loop_closer: Object with ``stitch(frame, tracks)``. A
                :class:`~stitching.close_loops.BadFrameLoopCloser` built
                from ``config.close_loops`` if None.
        """
        self.config = config or Config()
        self.matcher = matcher if matcher is not None else get_matcher(
            self.config.tracker.feature_matcher
        )
        if loop_closer is None:
            from stitching.close_loops import BadFrameLoopCloser
            loop_closer = BadFrameLoopCloser(self.config.close_loops)
        self.loop_closer = loop_closer

        self.reset()

    def reset(self):
        """Reset tracker to initial state."""
        self.store = TrackStore()
        self.track_set = TrackSet(self.store, [])
        self.frame_number = 0
        self.stats = {
            'frames': 0,
            'total_births': 0,
            'total_updates': 0,
            'max_active_tracks': 0
        }

    def track_frame(self, features, descriptors=None) -> TrackSet:
        """
        Add the features of the next frame.

        Args:
            features: Feature locations ``[n, 2]``.
            descriptors: Feature descriptors ``[n, d]``, aligned with ``features``.

        Returns:
            Track set after tracking (and possibly stitching) this frame.
        """
        features = np.asarray(features, dtype=np.float64).reshape(-1, 2)
        if descriptors is not None:
            descriptors = np.asarray(descriptors)
            if len(descriptors) != len(features):
                raise ValueError(
                    f"Got {len(descriptors)} descriptors for {len(features)} features"
                )

        frame = self.frame_number + 1
        matched = set()

        if frame > 1 and len(features):
            prev_frame = frame - 1
            prev_tracks = self.track_set.active_tracks(prev_frame)
            curr_descriptors = descriptors if descriptors is not None else np.empty((len(features), 0))
            matches = self.matcher.match(
                prev_tracks.frame_features(prev_frame),
                prev_tracks.frame_descriptors(prev_frame),
                features,
                curr_descriptors
            )

            prev_list = prev_tracks.tracks()
            for i, j in matches:
                if j in matched:
                    continue
                if prev_list[i].add_state(frame, features[j], None if descriptors is None else descriptors[j]):
                    matched.add(j)
                    self.stats['total_updates'] += 1

        new_ids = []
        for j in range(len(features)):
            if j in matched:
                continue
            track = self.store.new_track()
            track.add_state(frame, features[j], None if descriptors is None else descriptors[j])
            new_ids.append(track.track_id)
            self.stats['total_births'] += 1

        self.frame_number = frame
        self.stats['frames'] += 1
        self.track_set = TrackSet(self.store, list(self.track_set.ids()) + new_ids)
        self.track_set = self.loop_closer.stitch(frame, self.track_set)

        active = self.track_set.active_tracks(frame).size()
        self.stats['max_active_tracks'] = max(self.stats['max_active_tracks'], active)
        logger.debug(f"Frame {frame}: {len(matched)} continued, {len(new_ids)} born, {active} active")

        return self.track_set

    def get_tracks(self, min_length: Optional[int] = None) -> List[Track]:
        """
        Get current tracks.

        Args:
            min_length: Minimum number of observations. If None, uses
                        ``config.tracker.min_track_length``.

        Returns:
            List of Track objects.
        """
        if min_length is None:
            min_length = self.config.tracker.min_track_length
        return [t for t in self.track_set.tracks() if t.size() >= min_length]

    def get_track_by_id(self, track_id: int) -> Optional[Track]:
        """
        Get track by ID.

        Args:
            track_id: Track ID to find.

        Returns:
            Track object or None if not found or absorbed by another track.
        """
        if track_id not in self.track_set:
            return None
        return self.store.get(track_id)

    def get_statistics(self) -> Dict:
        """
        Get tracking statistics.

        Returns:
            Dict with statistics.
        """
        tracks = self.track_set.tracks()
        lengths = [t.size() for t in tracks]

        return {
            **self.stats,
            'total_tracks': len(tracks),
            'long_tracks': len(self.get_tracks()),
            'merged_tracks': len(self.store.retired_ids()),
            'mean_track_length': float(np.mean(lengths)) if lengths else 0.0
        }

    def summarize(self) -> str:
        """
        Get human-readable summary.

        Returns:
            Summary string.
        """
        stats = self.get_statistics()

        lines = [
            "Feature Tracker Summary",
            "=" * 50,
            f"Frames: {stats['frames']}",
            f"Total tracks: {stats['total_tracks']}",
            f"  Long tracks (>= {self.config.tracker.min_track_length}): {stats['long_tracks']}",
            f"  Merged by stitching: {stats['merged_tracks']}",
            f"  Mean length: {stats['mean_track_length']:.2f}",
            f"",
            f"Events:",
            f"  Births: {stats['total_births']}",
            f"  Updates: {stats['total_updates']}",
            f"  Max active: {stats['max_active_tracks']}",
        ]

        return "\n".join(lines)

    def to_dict(self) -> Dict:
        """
        Serialize tracker to dictionary.

        Returns:
            Dictionary representation.
        """
        return {
            'config': self.config.to_dict(),
            'frame_number': self.frame_number,
            'store': self.store.to_dict(),
            'track_ids': list(self.track_set.ids()),
            'stats': self.stats
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'FeatureTracker':
        """
        Deserialize tracker from dictionary.

        Args:
            data: Dictionary representation.

        Returns:
            FeatureTracker instance.
        """
        tracker = cls(config=Config.from_dict(data.get('config')))
        tracker.store = TrackStore.from_dict(data.get('store', {}))
        tracker.track_set = TrackSet(tracker.store, data.get('track_ids', []))
        tracker.frame_number = data.get('frame_number', 0)
        tracker.stats = data.get('stats', tracker.stats)
        return tracker
