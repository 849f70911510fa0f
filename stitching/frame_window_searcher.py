"""
Backward search for a past frame that re-matches the start of a new shot.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import List, NamedTuple, Optional

from config.config_loader import StitchConfig
from matching.feature_matcher import FeatureMatcher
from matching.match_set import MatchSet
from tracking.track_set import TrackSet
from utils.logger import get_logger

logger = get_logger(__name__)

DENSITY_TOLERANCE = 1e-9


class SearchResult(NamedTuple):
    """Accepted candidate of a window search."""

    frame: int
    """Past frame the shot start was matched against."""

    matches: MatchSet
    """Matches (index into candidate_tracks, index into shot_tracks)."""

    candidate_tracks: TrackSet
    """Tracks active at ``frame``."""

    shot_tracks: TrackSet
    """Tracks active at the shot start."""


def search_window(shot_start: int, max_search_length: int) -> List[int]:
    """
    Candidate frames for a shot start, nearest first.

    The frame right before the shot start is skipped since its transition
    already failed. The window stops strictly above
    ``max(0, shot_start - 2 - max_search_length)``.
    """
    first = shot_start - 2
    lower_bound = max(0, first - max_search_length)
    return list(range(first, lower_bound, -1))


def is_dense_match(num_matches: int, size_a: int, size_b: int, percent_match_req: float) -> bool:
    """
    Match density test against the average size of two track populations.

    Inclusive: ``2 * num_matches >= percent_match_req * (size_a + size_b)``,
    with a small tolerance so products such as ``0.55 * 200`` still hit
    the boundary.
    """
    return 2 * num_matches >= percent_match_req * (size_a + size_b) - DENSITY_TOLERANCE


class FrameWindowSearcher:
    """
    Searches a bounded window of past frames for the nearest acceptable match.

    With more than one worker the matcher runs concurrently over the
    window, but candidates are still resolved nearest first.
    """

    def search(
        self,
        shot_start: int,
        tracks: TrackSet,
        config: StitchConfig,
        matcher: FeatureMatcher
    ) -> Optional[SearchResult]:
        """
        Match the shot start against past frames.

        Args:
            shot_start: First frame of the new shot.
            tracks: All tracks.
            config: Stitching configuration.
            matcher: Feature matcher.

        Returns:
            SearchResult for the nearest accepted frame, or None if the
            window is exhausted.
        """
        window = search_window(shot_start, config.max_search_length)
        if not window:
            return None

        shot_tracks = tracks.active_tracks(shot_start)
        shot_features = shot_tracks.frame_features(shot_start)
        shot_descriptors = shot_tracks.frame_descriptors(shot_start)

        def run_matcher(features, descriptors):
            return matcher.match(features, descriptors, shot_features, shot_descriptors)

        if config.search_workers <= 1 or len(window) == 1:
            for frame in window:
                candidate_tracks = tracks.active_tracks(frame)
                matches = run_matcher(
                    candidate_tracks.frame_features(frame),
                    candidate_tracks.frame_descriptors(frame)
                )
                if self._accept(frame, matches, candidate_tracks, shot_tracks, config):
                    return SearchResult(frame, matches, candidate_tracks, shot_tracks)
            return None

        # Workers only see arrays; track state is read on this thread
        candidates = [(frame, tracks.active_tracks(frame)) for frame in window]

        with ThreadPoolExecutor(max_workers=config.search_workers) as executor:
            futures = [
                executor.submit(
                    run_matcher,
                    candidate_tracks.frame_features(frame),
                    candidate_tracks.frame_descriptors(frame)
                )
                for frame, candidate_tracks in candidates
            ]
            for (frame, candidate_tracks), future in zip(candidates, futures):
                matches = future.result()
                if self._accept(frame, matches, candidate_tracks, shot_tracks, config):
                    for pending in futures:
                        pending.cancel()
                    return SearchResult(frame, matches, candidate_tracks, shot_tracks)
        return None

    @staticmethod
    def _accept(frame, matches, candidate_tracks, shot_tracks, config) -> bool:
        accepted = is_dense_match(
            matches.size(), candidate_tracks.size(), shot_tracks.size(), config.percent_match_req
        )
        logger.debug(
            f"Candidate frame {frame}: {matches.size()} matches for "
            f"{candidate_tracks.size()}+{shot_tracks.size()} tracks -> "
            f"{'accepted' if accepted else 'rejected'}"
        )
        return accepted
