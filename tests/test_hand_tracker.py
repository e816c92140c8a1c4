import unittest
from unittest.mock import MagicMock
import sys
import os
import threading

import numpy as np

# Add path to source
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from swarm.detectors.hand_tracker import LandmarkRequester


FRAME = np.zeros((48, 64, 3), dtype=np.uint8)
HAND = np.full((21, 2), 0.5)


class TestLandmarkRequester(unittest.TestCase):
    def setUp(self):
        self.requesters = []

    def tearDown(self):
        for requester in self.requesters:
            requester.close()

    def make(self, detect_fn):
        requester = LandmarkRequester(detect_fn)
        self.requesters.append(requester)
        return requester

    def test_result_delivered_on_poll(self):
        requester = self.make(lambda frame: [HAND])
        self.assertIsNone(requester.poll())

        self.assertTrue(requester.submit(FRAME))
        self.assertTrue(requester.wait_idle(2.0))

        hands = requester.poll()
        self.assertEqual(len(hands), 1)
        np.testing.assert_array_equal(hands[0], HAND)
        self.assertEqual(requester.completed_generation, 1)
        # Drained
        self.assertIsNone(requester.poll())

    def test_request_dropped_while_busy(self):
        release = threading.Event()

        def slow_detect(frame):
            release.wait(2.0)
            return []

        requester = self.make(slow_detect)
        self.assertTrue(requester.submit(FRAME))
        self.assertTrue(requester.busy)
        self.assertFalse(requester.submit(FRAME))
        self.assertFalse(requester.submit(FRAME))
        self.assertEqual(requester.dropped, 2)
        self.assertEqual(requester.generation, 1)

        release.set()
        self.assertTrue(requester.wait_idle(2.0))
        self.assertEqual(requester.poll(), [])
        self.assertTrue(requester.submit(FRAME))

    def test_latest_result_wins(self):
        calls = []

        def detect(frame):
            calls.append(frame)
            return [np.full((21, 2), len(calls) / 10.0)]

        requester = self.make(detect)
        for _ in range(2):
            self.assertTrue(requester.submit(FRAME))
            self.assertTrue(requester.wait_idle(2.0))

        hands = requester.poll()
        self.assertAlmostEqual(hands[0][0, 0], 0.2)
        self.assertEqual(requester.completed_generation, 2)

    def test_failure_is_contained(self):
        detect = MagicMock(side_effect=RuntimeError("model crashed"))
        requester = self.make(detect)

        self.assertTrue(requester.submit(FRAME))
        self.assertTrue(requester.wait_idle(2.0))
        self.assertIsNone(requester.poll())
        self.assertEqual(requester.failures, 1)

        # Worker survives and accepts the next request
        self.assertTrue(requester.submit(FRAME))
        self.assertTrue(requester.wait_idle(2.0))
        self.assertEqual(requester.failures, 2)

    def test_worker_owns_a_copy(self):
        seen = []
        requester = self.make(lambda frame: seen.append(frame.copy()) or [])
        frame = FRAME.copy()
        requester.submit(frame)
        frame[:] = 255
        requester.wait_idle(2.0)
        self.assertEqual(int(seen[0].max()), 0)

    def test_close_releases_detector(self):
        detect = MagicMock(return_value=[])
        requester = LandmarkRequester(detect)
        requester.close()
        detect.close.assert_called_once()
        self.assertFalse(requester.submit(FRAME))

    def test_close_can_keep_detector(self):
        detect = MagicMock(return_value=[])
        requester = LandmarkRequester(detect)
        requester.close(close_detector=False)
        detect.close.assert_not_called()


if __name__ == '__main__':
    unittest.main()
