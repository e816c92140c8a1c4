import unittest
import sys
import os

import numpy as np

# Add path to source
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from swarm.detectors.motion_grid import MotionCell
from swarm.simulation.particles import ParticleField
from swarm.simulation.state import GestureState, SimulationContext


class TestSpawning(unittest.TestCase):
    def setUp(self):
        self.field = ParticleField(640, 480, seed=7)

    def test_count_per_cell_scales_with_strength(self):
        self.assertEqual(self.field.spawn([MotionCell(100, 100, 30)]), 1)
        self.assertEqual(self.field.spawn([MotionCell(100, 100, 100)]), 2)
        self.assertEqual(self.field.spawn([MotionCell(100, 100, 5000)]), 6)
        self.assertEqual(self.field.count, 9)

    def test_only_strongest_cells_spawn(self):
        cells = [MotionCell(i, i, 1000) for i in range(40)]
        self.assertEqual(self.field.spawn(cells), 32 * 6)

    def test_no_motion_spawns_nothing(self):
        self.assertEqual(self.field.spawn([]), 0)
        self.assertEqual(len(self.field), 0)

    def test_spawned_attributes(self):
        self.field.spawn([MotionCell(300, 200, 400)])
        for p in self.field.particles():
            self.assertLessEqual(abs(p.x - 300), 7)
            self.assertLessEqual(abs(p.y - 200), 7)
            self.assertTrue(90 <= p.life < 200)
            self.assertTrue(1.2 <= p.size < 2.8)
            self.assertTrue(180 <= p.hue < 300)
            speed = np.hypot(p.vx, p.vy)
            self.assertTrue(0.4 * 9 - 1e-9 <= speed < 1.2 * 9)

    def test_cap_never_exceeded(self):
        cells = [MotionCell(10 * i, 10 * i, 600) for i in range(32)]
        for _ in range(20):
            self.field.spawn(cells)
            self.assertLessEqual(self.field.count, 1200)
        self.assertEqual(self.field.count, 1200)

    def test_oldest_evicted_first(self):
        self.field.max_particles = 3
        for life in (1, 2, 3, 4, 5):
            self.field.add(0, 0, 0, 0, life)
        self.assertEqual(list(self.field.life), [3, 4, 5])


class TestPhysics(unittest.TestCase):
    def setUp(self):
        self.field = ParticleField(640, 480, seed=11)
        self.ctx = SimulationContext(width=640, height=480)

    def test_life_decreases_until_removed(self):
        self.field.add(100, 100, 0, 0, life=3)
        lives = []
        for _ in range(2):
            self.field.update([], self.ctx)
            lives.append(self.field.life[0])
        self.assertEqual(lives, [2, 1])
        self.field.update([], self.ctx)
        self.assertEqual(self.field.count, 0)

    def test_wraparound(self):
        self.field.add(655, 100, 0, 0, life=50)
        self.field.add(-15, 100, 0, 0, life=50)
        self.field.add(100, 495, 0, 0, life=50)
        self.field.add(100, -15, 0, 0, life=50)
        self.field.update([], self.ctx)
        self.assertEqual(self.field.pos[0, 0], -10)
        self.assertEqual(self.field.pos[1, 0], 650)
        self.assertEqual(self.field.pos[2, 1], -10)
        self.assertEqual(self.field.pos[3, 1], 490)

    def test_inside_margin_not_wrapped(self):
        self.field.add(645, 100, 0, 0, life=50)
        self.field.update([], self.ctx)
        self.assertAlmostEqual(self.field.pos[0, 0], 645, delta=0.1)

    def test_exact_margin_not_wrapped(self):
        self.field.jitter = 0
        self.field.add(650, 100, 0, 0, life=50)
        self.field.add(-10, 100, 0, 0, life=50)
        self.field.add(100, 490, 0, 0, life=50)
        self.field.add(100, -10, 0, 0, life=50)
        self.field.update([], self.ctx)
        np.testing.assert_array_equal(self.field.pos, [[650, 100], [-10, 100], [100, 490], [100, -10]])

    def test_just_past_margin_wraps(self):
        self.field.jitter = 0
        self.field.add(650.5, 100, 0, 0, life=50)
        self.field.add(-10.5, 100, 0, 0, life=50)
        self.field.add(100, 490.5, 0, 0, life=50)
        self.field.add(100, -10.5, 0, 0, life=50)
        self.field.update([], self.ctx)
        np.testing.assert_array_equal(self.field.pos, [[-10, 100], [650, 100], [100, -10], [100, 490]])

    def test_pull_toward_target(self):
        self.field.add(100, 100, 0, 0, life=50)
        self.field.update([MotionCell(500, 100, 480)], self.ctx)
        self.assertGreater(self.field.vel[0, 0], 0.03)

    def test_damping_by_state(self):
        self.ctx.gesture.state = GestureState.FIST
        self.field.add(100, 100, 10, 0, life=50)
        self.field.update([], self.ctx)
        self.assertAlmostEqual(self.field.vel[0, 0], 9.6, delta=0.05)

        self.ctx.gesture.state = GestureState.POINT
        self.field.vel[0] = (10, 0)
        self.field.update([], self.ctx)
        self.assertAlmostEqual(self.field.vel[0, 0], 9.9, delta=0.05)

    def test_triangle_swirls(self):
        self.ctx.gesture.state = GestureState.TRIANGLE
        self.field.add(420, 240, 0, 0, life=50)
        self.field.update([], self.ctx)
        self.assertGreater(self.field.vel[0, 1], 0.03)

    def test_idle_scene_keeps_decaying(self):
        self.field.spawn([MotionCell(320, 240, 300)])
        n = self.field.count
        lives = self.field.life.copy()
        self.assertEqual(self.field.spawn([]), 0)
        self.field.update([], self.ctx)
        self.assertEqual(self.field.count, n)
        np.testing.assert_allclose(self.field.life, lives - 1)


class TestRendering(unittest.TestCase):
    def setUp(self):
        self.field = ParticleField(120, 90, seed=3)

    def test_empty_field_keeps_background(self):
        canvas = self.field.render()
        self.assertEqual(canvas.shape, (90, 120, 3))
        self.assertEqual(canvas.dtype, np.uint8)
        self.assertEqual(tuple(canvas[10, 10]), (15, 7, 3))

    def test_particle_is_drawn(self):
        self.field.add(50, 50, 0, 0, life=200, size=2.8, hue=240)
        canvas = self.field.render()
        # hsl(240, 90%, 70%) is a light blue
        self.assertGreater(canvas[50, 50, 0], 200)
        self.assertEqual(tuple(canvas[5, 5]), (15, 7, 3))

    def test_trails_fade(self):
        self.field.add(50, 50, 0, 0, life=200, size=2.8, hue=240)
        first = int(self.field.render()[50, 50, 0])
        self.field.clear()
        second = int(self.field.render()[50, 50, 0])
        self.assertLess(second, first)
        self.assertGreater(second, 15)

    def test_cleared_field_returns_to_background(self):
        self.field.add(50, 50, 0, 0, life=200, size=2.8, hue=240)
        self.field.render()
        self.field.clear()
        for _ in range(100):
            frame = self.field.render()
        background = np.empty_like(frame)
        background[:] = (15, 7, 3)
        np.testing.assert_array_equal(frame, background)

    def test_fractional_size_changes_footprint(self):
        def footprint(size):
            field = ParticleField(120, 90, seed=3)
            field.add(50, 50, 0, 0, life=200, size=size, hue=240)
            frame = field.render()
            return int(np.any(frame != (15, 7, 3), axis=2).sum())

        self.assertGreater(footprint(2.4), footprint(1.6))

    def test_resize_reallocates_canvas(self):
        self.field.resize(200, 100)
        self.assertEqual(self.field.render().shape, (100, 200, 3))


if __name__ == '__main__':
    unittest.main()
