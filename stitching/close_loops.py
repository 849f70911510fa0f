"""
Bad-frame loop closure - bridges a single bad frame between two shots.

Each call runs detection, the backward window search and the merge in
sequence. Nothing is kept between calls other than the configuration and
statistics counters.
"""

from typing import Dict, Optional, Union

from config.config_loader import StitchConfig
from matching.feature_matcher import FeatureMatcher, get_matcher
from tracking.track_set import TrackSet
from utils.logger import get_logger
from .bad_frame_detector import BadFrameDetector
from .frame_window_searcher import FrameWindowSearcher
from .track_merger import TrackMerger

logger = get_logger(__name__)


class BadFrameLoopCloser:
    """
    Re-joins tracks split by a single bad frame.

    When the transition into the current shot was weak and the shot has
    been stable for ``new_shot_length`` frames, the first frame of the shot
    is matched against up to ``max_search_length`` earlier frames (nearest
    first, skipping the frame right before the cut). The first frame with a
    dense enough match has its tracks extended with the matched shot tracks.
    """

    def __init__(
        self,
        config: Optional[Union[StitchConfig, Dict]] = None,
        matcher: Optional[FeatureMatcher] = None
    ):
        """
        Initialize loop closer.

        Args:
            config: StitchConfig, or a ``close_loops`` mapping. Defaults if None.
            matcher: Matcher to use. Built from ``config.feature_matcher`` if None.

        Raises:
            ConfigurationError: If the configuration is invalid.
        """
        if config is None:
            config = StitchConfig()
        elif isinstance(config, dict):
            config = StitchConfig.from_dict(config)

        self.config = config
        self.matcher = matcher if matcher is not None else get_matcher(config.feature_matcher)

        self.detector = BadFrameDetector()
        self.searcher = FrameWindowSearcher()
        self.merger = TrackMerger()

        self.reset_statistics()

    def stitch(self, frame_number: int, tracks: TrackSet) -> TrackSet:
        """
        Attempt to bridge a bad frame ending at ``frame_number``.

        Args:
            frame_number: Most recently tracked frame.
            tracks: All tracks up to ``frame_number``.

        Returns:
            A new TrackSet with absorbed tracks removed if a stitch was made,
            otherwise ``tracks`` itself.
        """
        self.stats['calls'] += 1

        with tracks.store.lock:
            detection = self.detector.evaluate(frame_number, tracks, self.config)
            if not detection.required:
                return tracks

            self.stats['detections'] += 1
            logger.debug(f"Frame {frame_number}: bad frame before shot starting at {detection.shot_start}")

            result = self.searcher.search(detection.shot_start, tracks, self.config, self.matcher)
            if result is None:
                self.stats['failed_searches'] += 1
                logger.debug(f"Frame {frame_number}: no past frame matched shot start {detection.shot_start}")
                return tracks

            stitched = self.merger.merge(
                result.candidate_tracks, result.shot_tracks, result.matches, tracks
            )

        merged = len(tracks.ids()) - len(stitched.ids())
        self.stats['stitches'] += 1
        self.stats['tracks_merged'] += merged
        logger.info(
            f"Stitched frame {detection.shot_start} to frame {result.frame}: "
            f"{merged} of {result.matches.size()} matched tracks merged"
        )
        return stitched

    def reset_statistics(self):
        """Reset stitching counters."""
        self.stats = {
            'calls': 0,
            'detections': 0,
            'stitches': 0,
            'failed_searches': 0,
            'tracks_merged': 0
        }

    def get_statistics(self) -> Dict:
        """
        Get stitching statistics.

        Returns:
            Dict with statistics.
        """
        detections = self.stats['detections']
        return {
            **self.stats,
            'success_rate': self.stats['stitches'] / detections if detections else 0.0
        }

    def summarize(self) -> str:
        """
        Get human-readable summary.

        Returns:
            Summary string.
        """
        stats = self.get_statistics()

        lines = [
            "Bad Frame Loop Closer Summary",
            "=" * 50,
            f"Frames processed: {stats['calls']}",
            f"Bad frames detected: {stats['detections']}",
            f"  Stitched: {stats['stitches']}",
            f"  Search failed: {stats['failed_searches']}",
            f"  Success rate: {stats['success_rate']:.2%}",
            f"Tracks merged: {stats['tracks_merged']}",
        ]

        return "\n".join(lines)
