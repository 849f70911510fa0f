"""
Tests for TrackStore and TrackSet.
"""

import unittest
import numpy as np

from tracking.track import Track
from tracking.track_store import TrackStore
from tracking.track_set import TrackSet


def make_track(track_id, frames, d=4):
    track = Track(track_id=track_id)
    for frame in frames:
        track.add_state(frame, [float(frame), float(track_id)], np.full(d, float(track_id)))
    return track


class TestTrackStore(unittest.TestCase):
    """Test the id-keyed track store."""

    def setUp(self):
        """Set up test fixtures."""
        self.store = TrackStore([
            make_track(1, range(1, 4)),
            make_track(2, range(5, 8)),
            make_track(3, range(2, 6)),
        ])

    def test_duplicate_id_rejected(self):
        """Adding the same id twice raises."""
        with self.assertRaises(ValueError):
            self.store.add(make_track(1, [10]))

    def test_new_track_ids_avoid_existing(self):
        """Fresh ids never collide with stored ones."""
        self.store.add(make_track(10_000, [1]))
        track = self.store.new_track()
        self.assertGreater(track.track_id, 10_000)
        self.assertIn(track.track_id, self.store)

    def test_merge_retires_absorbed(self):
        """A successful merge extends the receiver and retires the other id."""
        self.assertTrue(self.store.merge(1, 2))
        self.assertEqual(self.store.get(1).frames(), [1, 2, 3, 5, 6, 7])
        self.assertTrue(self.store.is_retired(2))
        self.assertEqual(self.store.retired_ids(), {2})
        self.assertNotIn(2, self.store.live_ids())

    def test_merge_overlap_fails(self):
        """Overlapping tracks are not merged and nothing is retired."""
        self.assertFalse(self.store.merge(1, 3))
        self.assertEqual(self.store.retired_ids(), set())
        self.assertEqual(self.store.get(1).frames(), [1, 2, 3])

    def test_merge_refuses_retired(self):
        """Retired ids take part in no further merges."""
        self.assertTrue(self.store.merge(1, 2))
        self.store.add(make_track(4, [20]))
        self.assertFalse(self.store.merge(4, 2))
        self.assertFalse(self.store.merge(2, 4))

    def test_merge_same_id(self):
        self.assertFalse(self.store.merge(1, 1))

    def test_serialization_roundtrip(self):
        """Test to_dict / from_dict keeps retirement."""
        self.store.merge(1, 2)
        restored = TrackStore.from_dict(self.store.to_dict())
        self.assertEqual(restored.retired_ids(), {2})
        self.assertEqual(restored.get(1).frames(), [1, 2, 3, 5, 6, 7])


class TestTrackSet(unittest.TestCase):
    """Test TrackSet views over a store."""

    def setUp(self):
        """Set up test fixtures."""
        # Tracks 1-3 cover frames 1-4, track 4 covers 3-6, track 5 covers 5-6
        self.tracks = [make_track(i, range(1, 5)) for i in (1, 2, 3)]
        self.tracks.append(make_track(4, range(3, 7)))
        self.tracks.append(make_track(5, range(5, 7)))
        self.track_set = TrackSet.from_tracks(self.tracks)

    def test_size_and_order(self):
        """Members keep insertion order."""
        self.assertEqual(self.track_set.size(), 5)
        self.assertEqual([t.track_id for t in self.track_set.tracks()], [1, 2, 3, 4, 5])
        self.assertEqual(self.track_set.first_frame(), 1)
        self.assertEqual(self.track_set.last_frame(), 6)

    def test_unknown_id_rejected(self):
        with self.assertRaises(KeyError):
            TrackSet(self.track_set.store, [1, 99])

    def test_active_tracks(self):
        """Test subset active at a frame."""
        active = self.track_set.active_tracks(4)
        self.assertEqual(active.ids(), (1, 2, 3, 4))
        self.assertEqual(self.track_set.active_tracks(6).ids(), (4, 5))
        self.assertEqual(self.track_set.active_tracks(10).size(), 0)

    def test_frame_features_aligned(self):
        """Rows follow the order of active tracks."""
        active = self.track_set.active_tracks(5)
        features = active.frame_features(5)
        descriptors = active.frame_descriptors(5)

        self.assertEqual(features.shape, (2, 2))
        np.testing.assert_array_equal(features[:, 1], [4.0, 5.0])
        np.testing.assert_array_equal(descriptors[:, 0], [4.0, 5.0])

    def test_frame_features_empty(self):
        self.assertEqual(self.track_set.frame_features(42).shape, (0, 2))
        self.assertEqual(self.track_set.frame_descriptors(42).shape[0], 0)

    def test_frame_descriptors_partial_raises(self):
        """Mixing observations with and without descriptors is an error."""
        track = Track(track_id=50)
        track.add_state(4, [0.0, 0.0])
        track_set = TrackSet.from_tracks([track], store=self.track_set.store)
        combined = TrackSet(track_set.store, [1, 50])
        with self.assertRaises(ValueError):
            combined.frame_descriptors(4)

    def test_percentage_tracked(self):
        """Intersection over union of active ids."""
        self.assertAlmostEqual(self.track_set.percentage_tracked(1, 2), 1.0)
        # frame 3: {1,2,3,4}, frame 4: {1,2,3,4}
        self.assertAlmostEqual(self.track_set.percentage_tracked(3, 4), 1.0)
        # frame 4: {1,2,3,4}, frame 5: {4,5}
        self.assertAlmostEqual(self.track_set.percentage_tracked(4, 5), 1.0 / 5.0)
        self.assertEqual(self.track_set.percentage_tracked(20, 21), 0.0)

    def test_percentage_tracked_range(self):
        for a in range(0, 8):
            for b in range(0, 8):
                pt = self.track_set.percentage_tracked(a, b)
                self.assertGreaterEqual(pt, 0.0)
                self.assertLessEqual(pt, 1.0)

    def test_without(self):
        """Filtering returns a new set and leaves the original alone."""
        reduced = self.track_set.without({2, 5})
        self.assertEqual(reduced.ids(), (1, 3, 4))
        self.assertEqual(self.track_set.size(), 5)

    def test_retired_ids_hidden(self):
        """A merge in the store is reflected in every set over it."""
        store = self.track_set.store
        late = make_track(6, range(8, 10))
        store.add(late)
        track_set = TrackSet(store, [1, 2, 6])

        self.assertTrue(store.merge(1, 6))
        self.assertEqual(track_set.ids(), (1, 2, 6))
        self.assertEqual([t.track_id for t in track_set.tracks()], [1, 2])
        self.assertNotIn(6, track_set)
        self.assertEqual(track_set.active_tracks(8).ids(), (1,))

    def test_equality(self):
        """Equal when sharing a store and the same live members."""
        same = TrackSet(self.track_set.store, [5, 4, 3, 2, 1])
        self.assertEqual(self.track_set, same)
        self.assertNotEqual(self.track_set, self.track_set.without([1]))


if __name__ == '__main__':
    unittest.main()
