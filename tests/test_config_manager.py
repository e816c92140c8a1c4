import unittest
import sys
import os
import json
import tempfile

# Add path to source
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from swarm.config.config_manager import (
    Config,
    DEFAULT_CONFIG_PATH,
    config,
    get_attractor_setting,
    get_gesture_setting,
    get_motion_setting,
    get_particle_setting,
)
from swarm.scripts import app_control
from swarm.simulation.particles import ParticleField


class TestConfig(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmpdir.name, 'config.json')

    def tearDown(self):
        Config(str(DEFAULT_CONFIG_PATH))
        self.tmpdir.cleanup()

    def write(self, data):
        with open(self.path, 'w') as f:
            json.dump(data, f)

    def test_singleton(self):
        self.assertIs(Config(), config)

    def test_bundled_config_values(self):
        self.assertEqual(config.get('motion', 'grid_cols'), 24)
        self.assertEqual(config.get('particles', 'background'), [3, 7, 15])
        self.assertEqual(config.get('attractors', 'text'), 'HELLO')
        self.assertIsNone(config.get('particles', 'seed'))

    def test_section_helpers(self):
        self.assertEqual(get_motion_setting('threshold'), 26)
        self.assertEqual(get_gesture_setting('sample_interval'), 3)
        self.assertEqual(get_particle_setting('max_particles'), 1200)
        self.assertEqual(get_attractor_setting('text_strength'), 1050)
        self.assertEqual(get_attractor_setting('missing', default=1), 1)

    def test_value_description_pairs(self):
        self.write({'motion': {'threshold': [30, "Per-cell threshold"], 'grid_cols': 12}})
        cfg = Config(self.path)
        self.assertEqual(cfg.get('motion', 'threshold'), 30)
        self.assertEqual(cfg.get('motion', 'grid_cols'), 12)
        self.assertEqual(cfg.get_with_description('motion', 'threshold'), (30, "Per-cell threshold"))
        self.assertEqual(cfg.get('motion', 'missing', default=5), 5)
        self.assertEqual(cfg.get('nope', 'missing', default='x'), 'x')

    def test_plain_list_values(self):
        self.write({'particles': {'background': [3, 7, 15], 'seed': 4}})
        cfg = Config(self.path)
        self.assertEqual(cfg.get('particles', 'background'), [3, 7, 15])
        self.assertEqual(cfg.get_with_description('particles', 'background'), ([3, 7, 15], ""))

        field = ParticleField(40, 30, cfg)
        self.assertEqual(tuple(field.render()[0, 0]), (15, 7, 3))

        cfg.set('particles', 'background', value=[1, 2, 3])
        self.assertEqual(cfg.data['particles']['background'], [1, 2, 3])

    def test_set_keeps_description(self):
        self.write({'app_control': {'pause': [False, "Pause flag"]}})
        cfg = Config(self.path)
        cfg.set('app_control', 'pause', value=True)
        self.assertEqual(cfg.data['app_control']['pause'], [True, "Pause flag"])
        cfg.set('app_control', 'exit', value=True)
        self.assertTrue(cfg.get('app_control', 'exit'))

    def test_missing_file_uses_defaults(self):
        cfg = Config(os.path.join(self.tmpdir.name, 'absent.json'))
        self.assertEqual(cfg.get('particles', 'max_particles'), 1200)
        self.assertEqual(cfg.get('particles', 'background'), [3, 7, 15])
        self.assertEqual(cfg.mtime(), 0.0)

    def test_malformed_file_uses_defaults(self):
        with open(self.path, 'w') as f:
            f.write("{not json")
        cfg = Config(self.path)
        self.assertEqual(cfg.get('gestures', 'sample_interval'), 3)

    def test_save_round_trip(self):
        self.write({'display': {'show_fps': [True, "FPS readout"]}})
        cfg = Config(self.path)
        cfg.set('display', 'show_fps', value=False)
        cfg.save()
        cfg.reload()
        self.assertFalse(cfg.get('display', 'show_fps'))


class TestAppControl(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmpdir.name, 'config.json')
        with open(self.path, 'w') as f:
            json.dump({'app_control': {'pause': [False, "Pause flag"]}}, f)

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_update_flags(self):
        self.assertTrue(app_control.update_config(self.path, pause_val=True, exit_val=True))
        with open(self.path) as f:
            data = json.load(f)
        self.assertEqual(data['app_control']['pause'], [True, "Pause flag"])
        self.assertEqual(data['app_control']['exit'][0], True)
        self.assertEqual(app_control.read_flags(self.path), (True, True))

    def test_missing_file(self):
        self.assertFalse(app_control.update_config(os.path.join(self.tmpdir.name, 'absent.json'), pause_val=True))

    def test_cli(self):
        self.assertEqual(app_control.main(['--config', self.path, '--pause', 'yes']), 0)
        self.assertEqual(app_control.read_flags(self.path), (True, False))
        self.assertEqual(app_control.main(['--config', self.path, '--status']), 0)
        self.assertEqual(app_control.main(['--config', self.path, '--pause', 'maybe']), 1)
        self.assertEqual(app_control.main(['--config', self.path]), 1)

    def test_str_to_bool(self):
        self.assertTrue(app_control.str_to_bool('On'))
        self.assertFalse(app_control.str_to_bool('0'))
        with self.assertRaises(ValueError):
            app_control.str_to_bool('perhaps')


if __name__ == '__main__':
    unittest.main()
