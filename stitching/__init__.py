"""Bad-frame stitching for loopstitch."""

from .bad_frame_detector import BadFrameDetector, Detection
from .frame_window_searcher import FrameWindowSearcher, SearchResult, search_window, is_dense_match
from .track_merger import TrackMerger
from .close_loops import BadFrameLoopCloser

__all__ = [
    'BadFrameDetector',
    'Detection',
    'FrameWindowSearcher',
    'SearchResult',
    'search_window',
    'is_dense_match',
    'TrackMerger',
    'BadFrameLoopCloser'
]
