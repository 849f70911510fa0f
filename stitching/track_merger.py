"""
Track merging for an accepted stitch.
"""

from tracking.track_set import TrackSet
from matching.match_set import MatchSet
from utils.logger import get_logger

logger = get_logger(__name__)


class TrackMerger:
    """Appends matched shot tracks onto candidate tracks and drops the absorbed ones."""

    def merge(
        self,
        candidate_tracks: TrackSet,
        shot_tracks: TrackSet,
        matches: MatchSet,
        all_tracks: TrackSet
    ) -> TrackSet:
        """
        Merge matched track pairs.

        Args:
            candidate_tracks: Tracks of the accepted past frame (receivers).
            shot_tracks: Tracks of the shot start (absorbed).
            matches: (candidate index, shot index) pairs.
            all_tracks: Track set the stitch was requested for.

        Returns:
            New TrackSet: ``all_tracks`` minus every absorbed track id. Pairs
            whose histories cannot be joined are skipped.
        """
        store = all_tracks.store
        receivers = candidate_tracks.tracks()
        absorbed = shot_tracks.tracks()
        retired = set()

        with store.lock:
            for i, j in matches:
                receiver = receivers[i]
                other = absorbed[j]
                if store.merge(receiver.track_id, other.track_id):
                    retired.add(other.track_id)
                else:
                    logger.debug(f"Could not append track {other.track_id} to track {receiver.track_id}")

        return all_tracks.without(retired)
