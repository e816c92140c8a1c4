import unittest
import sys
import os
from types import SimpleNamespace

import numpy as np

# Add path to source
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from swarm.utils.math_utils import hsl_to_bgr, landmarks_to_array, rgb_to_bgr


class TestMathUtils(unittest.TestCase):
    def test_landmarks_from_objects(self):
        points = [SimpleNamespace(x=i / 21.0, y=1 - i / 21.0, z=0.0) for i in range(21)]
        arr = landmarks_to_array(points)
        self.assertEqual(arr.shape, (21, 2))
        self.assertAlmostEqual(arr[20, 0], 20 / 21.0)

    def test_landmarks_wrong_count(self):
        with self.assertRaises(ValueError):
            landmarks_to_array([(0.1, 0.1)] * 20)

    def test_hsl_primaries(self):
        self.assertEqual(hsl_to_bgr(0, 1.0, 0.5), (0, 0, 255))
        self.assertEqual(hsl_to_bgr(120, 1.0, 0.5), (0, 255, 0))
        self.assertEqual(hsl_to_bgr(240, 1.0, 0.5), (255, 0, 0))
        # Hue wraps
        self.assertEqual(hsl_to_bgr(360, 1.0, 0.5), hsl_to_bgr(0, 1.0, 0.5))

    def test_swarm_palette_is_light(self):
        b, g, r = hsl_to_bgr(240)
        self.assertEqual(b, 247)
        self.assertTrue(np.all(np.array([b, g, r]) >= 0))

    def test_rgb_to_bgr(self):
        self.assertEqual(rgb_to_bgr([3, 7, 15]), (15, 7, 3))


if __name__ == '__main__':
    unittest.main()
