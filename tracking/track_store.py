"""
Track store - single owner of every track in one sequence.

Track sets only hold ids into a store. Merging two tracks is a store
transaction: the receiving track is extended and the absorbed id is
retired, so every track set over the store stops enumerating it.
"""

import threading
from typing import Dict, Iterable, List, Optional, Set

from .track import Track, next_track_id, reserve_track_ids
from utils.logger import get_logger

logger = get_logger(__name__)


class TrackStore:
    """
    Owns tracks by id and records which ids have been retired by a merge.

    ``lock`` is re-entrant and serialises mutation per sequence; callers
    that need a consistent view across several operations (such as a whole
    stitch) hold it for the duration.
    """

    def __init__(self, tracks: Optional[Iterable[Track]] = None):
        """
        Initialize track store.

        Args:
            tracks: Optional tracks to take ownership of.
        """
        self.lock = threading.RLock()
        self._tracks: Dict[int, Track] = {}
        self._retired: Set[int] = set()

        for track in tracks or []:
            self.add(track)

    def new_track(self, **kwargs) -> Track:
        """Create, register and return an empty track with a fresh id."""
        track = Track(track_id=next_track_id(), **kwargs)
        self.add(track)
        return track

    def add(self, track: Track) -> Track:
        """
        Register a track.

        Raises:
            ValueError: If a track with the same id is already stored.
        """
        with self.lock:
            if track.track_id in self._tracks:
                raise ValueError(f"Track id {track.track_id} already present in store")
            self._tracks[track.track_id] = track
            reserve_track_ids(track.track_id)
        return track

    def get(self, track_id: int) -> Track:
        """
        Get track by id.

        Raises:
            KeyError: If the id is unknown to this store.
        """
        return self._tracks[track_id]

    def __contains__(self, track_id: int) -> bool:
        return track_id in self._tracks

    def __len__(self) -> int:
        return len(self._tracks)

    def is_retired(self, track_id: int) -> bool:
        return track_id in self._retired

    def retired_ids(self) -> Set[int]:
        """Ids absorbed into other tracks."""
        with self.lock:
            return set(self._retired)

    def live_ids(self) -> List[int]:
        """Ids of all stored tracks that have not been retired."""
        with self.lock:
            return [tid for tid in self._tracks if tid not in self._retired]

    def merge(self, receiver_id: int, absorbed_id: int) -> bool:
        """
        Append one track onto another and retire the absorbed one.

        Args:
            receiver_id: Track that is extended.
            absorbed_id: Track whose observations move into the receiver.

        Returns:
            True if the append succeeded and ``absorbed_id`` is now retired.
            False if either id is already retired, the ids are equal, or the
            histories cannot be joined; nothing is modified in that case.
        """
        with self.lock:
            if receiver_id == absorbed_id:
                return False
            if receiver_id in self._retired or absorbed_id in self._retired:
                return False

            receiver = self._tracks[receiver_id]
            absorbed = self._tracks[absorbed_id]
            if not receiver.append(absorbed):
                return False

            self._retired.add(absorbed_id)
            logger.debug(f"Merged track {absorbed_id} into track {receiver_id}")
            return True

    def to_dict(self) -> dict:
        """
        Serialize store to dictionary.

        Returns:
            Dictionary representation.
        """
        with self.lock:
            return {
                'tracks': [t.to_dict() for t in self._tracks.values()],
                'retired': sorted(self._retired)
            }

    @classmethod
    def from_dict(cls, data: dict) -> 'TrackStore':
        """
        Deserialize store from dictionary.

        Args:
            data: Dictionary representation.

        Returns:
            TrackStore instance.
        """
        store = cls(Track.from_dict(t) for t in data.get('tracks', []))
        for track_id in data.get('retired', []):
            if track_id not in store:
                raise KeyError(f"Retired track id {track_id} not present in store")
            store._retired.add(track_id)
        return store
