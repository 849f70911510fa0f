"""
Track set - an immutable id-membership view over a TrackStore.
"""

from typing import Iterable, Iterator, List, Optional, Tuple
import numpy as np

from .track import Track
from .track_store import TrackStore


class TrackSet:
    """
    Collection of tracks valid at some point in processing.

    A track set holds ids only. Enumeration resolves them through the store
    and leaves out ids the store has retired, so a merge is reflected in
    every set sharing the store without rebuilding it. The order of
    ``tracks()`` is the insertion order of ids and is the order that
    ``frame_features`` / ``frame_descriptors`` rows follow.
    """

    def __init__(self, store: TrackStore, track_ids: Optional[Iterable[int]] = None):
        """
        Initialize track set.

        Args:
            store: Store owning the tracks.
            track_ids: Member ids. If None, every live track in the store.

        Raises:
            KeyError: If an id is not present in the store.
        """
        self.store = store
        if track_ids is None:
            track_ids = store.live_ids()

        self._ids: Tuple[int, ...] = tuple(dict.fromkeys(track_ids))
        for track_id in self._ids:
            if track_id not in store:
                raise KeyError(f"Track id {track_id} not present in store")

    @classmethod
    def from_tracks(cls, tracks: Iterable[Track], store: Optional[TrackStore] = None) -> 'TrackSet':
        """
        Build a track set over tracks, registering them in a store.

        Args:
            tracks: Tracks to include.
            store: Store to register them in. A new one if None.

        Returns:
            TrackSet containing exactly ``tracks``.
        """
        store = store if store is not None else TrackStore()
        ids = []
        for track in tracks:
            if track.track_id not in store:
                store.add(track)
            ids.append(track.track_id)
        return cls(store, ids)

    def ids(self) -> Tuple[int, ...]:
        """Member ids, including ids retired since this set was built."""
        return self._ids

    def live_ids(self) -> List[int]:
        return [tid for tid in self._ids if not self.store.is_retired(tid)]

    def tracks(self) -> List[Track]:
        """All non-retired member tracks, in member order."""
        return [self.store.get(tid) for tid in self.live_ids()]

    def size(self) -> int:
        return len(self.live_ids())

    def __len__(self) -> int:
        return self.size()

    def __iter__(self) -> Iterator[Track]:
        return iter(self.tracks())

    def __contains__(self, track_id: int) -> bool:
        return track_id in self._ids and not self.store.is_retired(track_id)

    def __eq__(self, other) -> bool:
        if not isinstance(other, TrackSet):
            return NotImplemented
        return self.store is other.store and set(self.live_ids()) == set(other.live_ids())

    __hash__ = None

    def __repr__(self) -> str:
        return f"TrackSet(size={self.size()}, frames={self.first_frame()}-{self.last_frame()})"

    def first_frame(self) -> Optional[int]:
        frames = [t.first_frame() for t in self.tracks() if t.history]
        return min(frames) if frames else None

    def last_frame(self) -> Optional[int]:
        frames = [t.last_frame() for t in self.tracks() if t.history]
        return max(frames) if frames else None

    def active_tracks(self, frame: int) -> 'TrackSet':
        """
        Get the subset of tracks with an observation at a frame.

        Args:
            frame: Frame id.

        Returns:
            New TrackSet over the same store.
        """
        return TrackSet(self.store, [t.track_id for t in self.tracks() if t.is_active(frame)])

    def without(self, track_ids: Iterable[int]) -> 'TrackSet':
        """
        Get a copy of this set with some ids removed.

        Args:
            track_ids: Ids to drop.

        Returns:
            New TrackSet over the same store.
        """
        drop = set(track_ids)
        return TrackSet(self.store, [tid for tid in self._ids if tid not in drop])

    def _states_at(self, frame: int):
        return [
            state for state in (t.state_at(frame) for t in self.tracks())
            if state is not None
        ]

    def frame_features(self, frame: int) -> np.ndarray:
        """
        Get feature locations at a frame.

        Args:
            frame: Frame id.

        Returns:
            Array ``[n, 2]``, row k belonging to the k-th track active at ``frame``.
        """
        states = self._states_at(frame)
        if not states:
            return np.empty((0, 2), dtype=np.float64)
        return np.stack([state.location for state in states])

    def frame_descriptors(self, frame: int) -> np.ndarray:
        """
        Get feature descriptors at a frame, aligned with ``frame_features``.

        Args:
            frame: Frame id.

        Returns:
            Array ``[n, d]``; ``[n, 0]`` when no track carries a descriptor.

        Raises:
            ValueError: If only some observations carry descriptors.
        """
        states = self._states_at(frame)
        descriptors = [state.descriptor for state in states if state.descriptor is not None]
        if not descriptors:
            return np.empty((len(states), 0))
        if len(descriptors) != len(states):
            raise ValueError(f"Frame {frame} has observations without descriptors")
        return np.stack([np.ravel(d) for d in descriptors])

    def percentage_tracked(self, frame_a: int, frame_b: int) -> float:
        """
        Fraction of features carried between two frames.

        Computed as the number of tracks active at both frames over the
        number of tracks active at either frame.

        Args:
            frame_a: First frame id.
            frame_b: Second frame id.

        Returns:
            Value in [0, 1]; 0.0 when neither frame has tracks.
        """
        ids_a = set(self.active_tracks(frame_a).live_ids())
        ids_b = set(self.active_tracks(frame_b).live_ids())

        total = len(ids_a | ids_b)
        if total == 0:
            return 0.0
        return len(ids_a & ids_b) / total
