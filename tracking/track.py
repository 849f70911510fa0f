"""
Track dataclass representing one visual feature followed across frames.
"""

import itertools
import threading
from dataclasses import dataclass, field
from typing import List, NamedTuple, Optional
import numpy as np

_id_lock = threading.Lock()
_id_counter = itertools.count(1)


def next_track_id() -> int:
    """Return a track id that is unique within this process."""
    with _id_lock:
        return next(_id_counter)


def reserve_track_ids(min_id: int):
    """
    Make sure ids handed out by :func:`next_track_id` are above ``min_id``.

    Used when tracks with explicit ids are loaded from disk.
    """
    global _id_counter

    with _id_lock:
        upcoming = next(_id_counter)
        _id_counter = itertools.count(max(upcoming, min_id + 1))


class TrackState(NamedTuple):
    """A single observation of a feature in one frame."""

    frame: int
    """Frame id the observation belongs to."""

    location: np.ndarray
    """Image location of the feature, ``[2]``."""

    descriptor: Optional[np.ndarray] = None
    """Feature descriptor ``[d]``."""


@dataclass(eq=False)
class Track:
    """
    Ordered, append-only history of one feature across frames.

    The history is kept sorted by frame and each frame appears at most once.
    """

    track_id: int
    """Unique identifier for this track."""

    history: List[TrackState] = field(default_factory=list)
    """Observations in increasing frame order."""

    metadata: dict = field(default_factory=dict)
    """Additional metadata."""

    def id(self) -> int:
        return self.track_id

    def add_state(self, frame: int, location, descriptor=None) -> bool:
        """
        Record an observation at a frame later than the last one.

        Args:
            frame: Frame id.
            location: Feature location.
            descriptor: Feature descriptor.

        Returns:
            True if the observation was added, False if ``frame`` does not
            come after the current last frame.
        """
        if self.history and frame <= self.history[-1].frame:
            return False
        self.history.append(TrackState(
            frame,
            np.asarray(location, dtype=np.float64),
            None if descriptor is None else np.asarray(descriptor)
        ))
        return True

    def append(self, other: 'Track') -> bool:
        """
        Extend this track with the observations of another track.

        Only legal when the other track starts after this one ends.

        Args:
            other: Track whose history is appended.

        Returns:
            True on success. On failure neither track is modified.
        """
        if other is self or other.track_id == self.track_id:
            return False
        if self.history and other.history and self.last_frame() >= other.first_frame():
            return False
        self.history.extend(other.history)
        return True

    def first_frame(self) -> Optional[int]:
        return self.history[0].frame if self.history else None

    def last_frame(self) -> Optional[int]:
        return self.history[-1].frame if self.history else None

    def frames(self) -> List[int]:
        """Frame ids this track has observations for."""
        return [state.frame for state in self.history]

    def state_at(self, frame: int) -> Optional[TrackState]:
        """
        Get the observation at a specific frame.

        Args:
            frame: Frame id to query.

        Returns:
            TrackState at that frame, or None if not present.
        """
        for state in self.history:
            if state.frame == frame:
                return state
            if state.frame > frame:
                break
        return None

    def is_active(self, frame: int) -> bool:
        return self.state_at(frame) is not None

    def size(self) -> int:
        """Number of observations."""
        return len(self.history)

    def __len__(self) -> int:
        return len(self.history)

    def __repr__(self) -> str:
        """String representation of track."""
        if not self.history:
            return f"Track(id={self.track_id}, empty)"
        return (
            f"Track(id={self.track_id}, "
            f"frames={self.first_frame()}-{self.last_frame()}, "
            f"length={self.size()})"
        )

    def to_dict(self) -> dict:
        """
        Convert track to dictionary for serialization.

        Returns:
            Dictionary representation.
        """
        return {
            'track_id': self.track_id,
            'history': [
                {
                    'frame': state.frame,
                    'location': state.location.tolist(),
                    'descriptor': None if state.descriptor is None else state.descriptor.tolist()
                }
                for state in self.history
            ],
            'metadata': self.metadata
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Track':
        """
        Create track from dictionary.

        Args:
            data: Dictionary representation.

        Returns:
            Track instance.
        """
        track = cls(track_id=data['track_id'], metadata=data.get('metadata', {}))
        for state in data.get('history', []):
            descriptor = state.get('descriptor')
            track.history.append(TrackState(
                state['frame'],
                np.array(state['location'], dtype=np.float64),
                None if descriptor is None else np.array(descriptor)
            ))
        return track
