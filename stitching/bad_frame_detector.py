"""
Bad-frame detection.

A frame marks the clean end of a repairable bad-frame event when the
transition into the last ``new_shot_length`` frames was weak and every
transition inside that run was strong.
"""

from typing import NamedTuple, Optional

from config.config_loader import StitchConfig
from tracking.track_set import TrackSet
from utils.logger import get_logger

logger = get_logger(__name__)


class Detection(NamedTuple):
    """Outcome of :meth:`BadFrameDetector.evaluate`."""

    required: bool
    """True if a stitch should be attempted."""

    shot_start: Optional[int]
    """First frame of the candidate new shot, None if there is not enough history."""


class BadFrameDetector:
    """Decides whether the current frame ends a clean bad-frame event."""

    def evaluate(self, frame_number: int, tracks: TrackSet, config: StitchConfig) -> Detection:
        """
        Check the tracked-percentage history ending at a frame.

        Args:
            frame_number: Most recently tracked frame.
            tracks: Tracks up to and including ``frame_number``.
            config: Stitching configuration.

        Returns:
            Detection with ``required`` set only when the cut into the shot
            was weak and the shot has been stable for ``new_shot_length`` frames.
        """
        if not config.enabled or frame_number <= config.new_shot_length:
            return Detection(False, None)

        threshold = config.percent_match_req
        shot_start = frame_number - config.new_shot_length + 1

        pt = tracks.percentage_tracked(shot_start - 1, shot_start)
        required = pt < threshold
        logger.debug(f"Frame {frame_number}: cut {shot_start - 1}->{shot_start} tracked {pt:.3f}")

        frame = shot_start + 1
        while required and frame <= frame_number:
            pt = tracks.percentage_tracked(frame - 1, frame)
            required = pt >= threshold
            if not required:
                logger.debug(f"Frame {frame_number}: shot broken at {frame - 1}->{frame} ({pt:.3f})")
            frame += 1

        return Detection(required, shot_start)
