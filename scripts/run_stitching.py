#!/usr/bin/env python3
"""
Bad-frame stitching runner

Tracks per-frame features stored in an .npz archive and bridges bad
frames between shots. The archive holds ``features_<n>`` ``[k, 2]`` and
``descriptors_<n>`` ``[k, d]`` arrays for frames n = 1, 2, ...
"""

import argparse
import sys
import json
import re
import numpy as np
from pathlib import Path
from tqdm import tqdm

sys.path.insert(0, str(Path(__file__).parent.parent))

from config import load_config
from tracking import FeatureTracker
from utils.logger import get_logger, set_log_level

logger = get_logger("loopstitch.run")

_FRAME_KEY = re.compile(r'^features_(\d+)$')


def load_frames(path: Path):
    """
    Load per-frame features and descriptors from an .npz archive.

    Returns:
        List of (frame, features, descriptors) in frame order. Descriptors
        are None for frames without a descriptors array.
    """
    frames = []
    with np.load(path) as archive:
        numbers = sorted(
            int(m.group(1)) for m in (_FRAME_KEY.match(key) for key in archive.files) if m
        )
        for n in numbers:
            descriptors_key = f'descriptors_{n}'
            descriptors = archive[descriptors_key] if descriptors_key in archive.files else None
            frames.append((n, archive[f'features_{n}'], descriptors))
    return frames


def main():
    parser = argparse.ArgumentParser(description='Track features and stitch across bad frames')
    parser.add_argument('--features', type=str, required=True, help='.npz archive of per-frame features')
    parser.add_argument('--config', type=str, default=None, help='Config file path')
    parser.add_argument('--output', type=str, default='tracks.json', help='Output JSON file for tracks')
    parser.add_argument('--no-stitch', action='store_true', help='Disable bad-frame stitching')
    parser.add_argument('--log-level', type=str, default='INFO', help='Logging level')

    args = parser.parse_args()
    set_log_level(args.log_level)

    config = load_config(args.config)
    if args.no_stitch:
        from dataclasses import replace
        config = replace(config, close_loops=replace(config.close_loops, enabled=False))

    frames = load_frames(Path(args.features))
    logger.info(f"Loaded {len(frames)} frames from {args.features}")

    tracker = FeatureTracker(config)
    expected = 1
    for n, features, descriptors in tqdm(frames, desc="Tracking"):
        if n != expected:
            logger.warning(f"Frame {n} found where frame {expected} was expected; frames are renumbered")
        tracker.track_frame(features, descriptors)
        expected = n + 1

    output = {
        'frames': tracker.frame_number,
        'statistics': tracker.get_statistics(),
        'stitching': tracker.loop_closer.get_statistics(),
        'tracks': [t.to_dict() for t in tracker.get_tracks(min_length=1)]
    }
    with open(args.output, 'w') as f:
        json.dump(output, f, indent=2)

    print(tracker.summarize())
    print()
    print(tracker.loop_closer.summarize())
    logger.info(f"Tracks written to {args.output}")


if __name__ == '__main__':
    main()
