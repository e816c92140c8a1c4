#!/usr/bin/env python3
"""
SWARM - Motion and gesture driven particle swarm
Main Application

Turns webcam motion into particles and reshapes the swarm with hand gestures.
One tick: read a frame, find motion cells, occasionally ask the landmark worker
for hands, shape targets by the debounced gesture, then spawn, update and render.
"""

import argparse
import sys
import time
from typing import Callable, List, Optional

import cv2
import numpy as np

# SWARM modules
from swarm.config.config_manager import config as default_config
from swarm.detectors.gesture_detectors import GestureClassifier
from swarm.detectors.hand_tracker import LandmarkRequester, MediaPipeHandDetector
from swarm.detectors.motion_grid import MotionCell, MotionGrid
from swarm.simulation.attractors import AttractorBuilder
from swarm.simulation.particles import ParticleField
from swarm.simulation.state import GestureState, SimulationContext


STATUS_IDLE = "Move in front of the camera to drive the particles."
STATUS_MOTION = "Motion detected: more movement spawns more particles."
STATUS_STOPPED = "Camera stopped. Press S to run again."
STATUS_READY = "Camera active. Wave to paint with particles!"


class SwarmApplication:
    """Main SWARM application controller."""

    def __init__(
        self,
        camera_idx: int = 0,
        config=None,
        capture_factory: Callable = cv2.VideoCapture,
        detector: Optional[Callable] = None,
        enable_gestures: bool = True,
    ):
        """
        Initialize SWARM application.

        Args:
            camera_idx: Camera device index
            config: Config instance (defaults to the shared one)
            capture_factory: Builds a cv2.VideoCapture-like object from camera_idx
            detector: Landmark detector callable; MediaPipe is used when None
            enable_gestures: If False, the swarm only follows raw motion
        """
        print("\n" + "=" * 60)
        print("SWARM - Motion and Gesture Particle Swarm")
        print("=" * 60 + "\n")

        self.config = config if config is not None else default_config
        self.camera_idx = camera_idx
        self.capture_factory = capture_factory
        self.last_config_mtime = self.config.mtime()

        # Camera
        self.cap = None
        self._open_capture()

        # Viewport
        width = int(self.config.get('display', 'window_width', default=1280))
        height = int(self.config.get('display', 'window_height', default=720))
        self.ctx = SimulationContext(width=width, height=height)

        # Simulation components
        self.motion = MotionGrid.from_config(self.config)
        self.classifier = GestureClassifier.from_config(self.config)
        self.attractors = AttractorBuilder(self.config)
        self.attractors.rebuild(self.ctx)
        self.particles = ParticleField(width, height, self.config)
        print(f"✓ Simulation initialized ({width}x{height}, "
              f"{len(self.attractors.text_targets)} text / {len(self.attractors.heart_targets)} heart targets)")

        # Gestures
        self.enable_gestures = enable_gestures and self.config.get('gestures', 'enabled', default=True)
        self.detector = detector
        if self.enable_gestures and self.detector is None:
            try:
                self.detector = MediaPipeHandDetector.from_config(self.config)
            except Exception as e:
                print(f"⚠ Hand tracking unavailable: {e}")
                print("  Running with motion only")
                self.enable_gestures = False
        self.requester: Optional[LandmarkRequester] = None

        # Application state
        self.running = False
        self.paused = False
        self.exit_requested = False
        self.show_debug = self.config.get('performance', 'show_debug_info', default=False)
        self.show_fps = self.config.get('display', 'show_fps', default=True)
        self.status_text = STATUS_STOPPED
        self.last_cells: List[MotionCell] = []
        self.tick_failures = 0

        # Statistics
        self.frame_count = 0
        self.fps_time = time.time()
        self.fps = 0.0

        print("\n✓ SWARM application ready!\n")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _open_capture(self):
        camera_width = self.config.get('camera', 'width', default=1280)
        camera_height = self.config.get('camera', 'height', default=720)
        camera_fps = self.config.get('camera', 'fps', default=60)

        cap = self.capture_factory(self.camera_idx)
        if not cap.isOpened():
            raise RuntimeError(f"❌ Could not open camera {self.camera_idx}")

        cap.set(cv2.CAP_PROP_FRAME_WIDTH, camera_width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, camera_height)
        cap.set(cv2.CAP_PROP_FPS, camera_fps)

        actual_width = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        actual_height = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        actual_fps = float(cap.get(cv2.CAP_PROP_FPS))
        print(f"✓ Camera initialized: {actual_width}x{actual_height} @ {actual_fps:.1f} FPS")
        self.cap = cap

    def start(self):
        """Begin ticking. Reopens the camera if stop() released it."""
        if self.running:
            return
        if self.cap is None:
            self._open_capture()
        self.motion.reset()
        if self.enable_gestures and self.requester is None:
            self.requester = LandmarkRequester(self.detector)
        self.running = True
        self.exit_requested = False
        self.status_text = STATUS_READY
        self.fps_time = time.time()
        print("▶ Started")

    def stop(self):
        """Halt ticking, release the camera and shut the landmark worker down."""
        if not self.running and self.cap is None:
            return
        self.running = False
        if self.requester is not None:
            self.requester.close(close_detector=False)
            self.requester = None
        if self.cap is not None:
            try:
                self.cap.release()
            except Exception as e:
                print(f"⚠ Error releasing camera: {e}")
            self.cap = None
        self.status_text = STATUS_STOPPED
        print("⏹ Stopped")

    def cleanup(self):
        """Stop and release the landmark detector."""
        print("\n🧹 Cleaning up...")
        self.stop()
        close_fn = getattr(self.detector, 'close', None)
        if callable(close_fn):
            try:
                close_fn()
            except Exception as e:
                print(f"⚠ Error closing hand landmarker: {e}")
        print("✓ SWARM application stopped\n")

    def resize(self, width: int, height: int):
        """Viewport changed: rebuild attractor clouds and the canvas."""
        width, height = max(1, int(width)), max(1, int(height))
        if (width, height) == (self.ctx.width, self.ctx.height):
            return
        self.ctx.width = width
        self.ctx.height = height
        self.attractors.rebuild(self.ctx)
        self.particles.resize(width, height)

    def toggle_pause(self):
        self.paused = not self.paused
        print(f"{'⏸ PAUSED' if self.paused else '▶ RESUMED'}")

    # ------------------------------------------------------------------
    # Per-tick work
    # ------------------------------------------------------------------

    def _check_config(self):
        """Hot-reload config.json and honour the app_control flags."""
        try:
            current_mtime = self.config.mtime()
            if current_mtime != self.last_config_mtime:
                print("\n🔄 Config change detected, reloading...")
                self.last_config_mtime = current_mtime
                self.config.reload()

                # Re-initialize components with new config
                self.motion = MotionGrid.from_config(self.config)
                self.classifier = GestureClassifier.from_config(self.config)
                self.attractors = AttractorBuilder(self.config)
                self.attractors.rebuild(self.ctx)
                self.particles.configure(self.config)
                self.show_debug = self.config.get('performance', 'show_debug_info', default=False)
                print("✓ Components reloaded with new configuration\n")

            config_pause = self.config.get('app_control', 'pause', default=False)
            config_exit = self.config.get('app_control', 'exit', default=False)

            if config_pause != self.paused:
                self.paused = config_pause
                print(f"{'⏸ PAUSED (via config)' if self.paused else '▶ RESUMED (via config)'}")

            if config_exit:
                print("\n🛑 Exit signal received via config")
                self.exit_requested = True
                self.stop()

        except OSError as e:
            print(f"⚠ Error checking config update: {e}")

    def _read_frame(self) -> Optional[np.ndarray]:
        ok, frame = self.cap.read()
        if not ok or frame is None:
            return None
        if self.config.get('display', 'flip_horizontal', default=True):
            frame = cv2.flip(frame, 1)
        return frame

    def _update_gestures(self, frame: Optional[np.ndarray]):
        hands = self.requester.poll()
        if hands is not None:
            previous = self.ctx.gesture.state
            changed = self.classifier.update(hands, self.ctx)
            if changed and self.show_debug:
                print(f"[gesture] {previous.value} -> {self.ctx.gesture.state.value} "
                      f"({self.classifier.last_reason})")

        sample_interval = max(1, int(self.config.get('gestures', 'sample_interval', default=3)))
        if frame is not None and self.ctx.tick % sample_interval == 0:
            self.requester.submit(frame)

    def _step(self) -> np.ndarray:
        self.ctx.tick += 1
        self.frame_count += 1

        fps_update_interval = max(1, int(self.config.get('display', 'fps_update_interval', default=30)))
        if self.frame_count % fps_update_interval == 0:
            now = time.time()
            self.fps = float(fps_update_interval) / max(now - self.fps_time, 1e-6)
            self.fps_time = now
            self._check_config()
            if not self.running:
                return self.particles.frame()

        if self.paused:
            self.particles.fade()
            return self.particles.frame()

        frame = self._read_frame()
        cells = self.motion.compute_motion(frame, self.ctx)
        self.last_cells = cells
        self.status_text = STATUS_MOTION if cells else STATUS_IDLE

        if self.requester is not None:
            self._update_gestures(frame)

        targets = self.attractors.apply_gesture_shape(self.ctx.gesture.state, cells, self.ctx)
        self.particles.spawn(targets)
        self.particles.update(targets, self.ctx)
        return self.particles.render()

    def tick(self) -> Optional[np.ndarray]:
        """
        Run one simulation tick.

        Returns:
            The rendered BGR canvas, or None when the application is stopped.
        """
        if not self.running:
            return None
        try:
            return self._step()
        except Exception as e:
            self.tick_failures += 1
            print(f"⚠ Tick {self.ctx.tick} failed: {e}")
            return self.particles.frame()

    @property
    def gesture_text(self) -> str:
        status = self.ctx.gesture
        return f"Gesture: {status.state.value} ({status.confidence:.2f})"

    @property
    def info_text(self) -> str:
        """One-line summary for the status label."""
        parts = [self.status_text]
        if self.enable_gestures:
            parts.append(self.gesture_text)
        parts.append(f"Particles: {self.particles.count}")
        if self.show_fps:
            parts.append(f"FPS: {self.fps:.1f}")
        if self.paused:
            parts.append("PAUSED")
        return "  |  ".join(parts)

    def run(self, max_ticks: Optional[int] = None):
        """Headless loop: tick on a fixed interval until stopped."""
        interval = self.config.get('display', 'tick_interval_ms', default=16) / 1000.0
        self.start()
        ticks = 0
        try:
            while self.running:
                self.tick()
                ticks += 1
                if max_ticks is not None and ticks >= max_ticks:
                    break
                if self.show_debug and ticks % 60 == 0:
                    print(self.info_text)
                time.sleep(interval)
        finally:
            self.cleanup()
        return ticks

    def print_controls(self):
        """Print control instructions."""
        print("\n" + "=" * 60)
        print("KEYBOARD CONTROLS")
        print("=" * 60)
        print("  S - Start/Stop camera")
        print("  P - Pause/Resume simulation")
        print("  D - Toggle debug output")
        print("  F - Toggle FPS display")
        print("  Q / Esc - Quit application")
        print("\n" + "=" * 60)
        print("GESTURES")
        print("=" * 60)
        for state, text in (
            (GestureState.POINT, "☝ Index finger - Converge on the center"),
            (GestureState.OPEN, "✋ Open hand - Follow motion, extra jitter"),
            (GestureState.FIST, "✊ Fist - Settle on square corners"),
            (GestureState.SQUARE, "🖐 Five fingers - Square outline"),
            (GestureState.TRIANGLE, "🤲 Two hands, index + thumb - Swirling triangle"),
            (GestureState.THUMBS, "👍 Thumbs up - Word silhouette"),
            (GestureState.HEART, "✌ Index + middle - Heart"),
        ):
            print(f"  {state.value:<9} {text}")
        print("=" * 60 + "\n")


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="SWARM - Motion and gesture driven particle swarm"
    )
    parser.add_argument(
        '--camera', type=int, default=None,
        help='Camera device index (default: camera.index from config)'
    )
    parser.add_argument(
        '--config', type=str, default=None,
        help='Path to config.json (default: swarm/config/config.json)'
    )
    parser.add_argument(
        '--headless', action='store_true',
        help='Run without a window'
    )
    parser.add_argument(
        '--max-ticks', type=int, default=None,
        help='Stop after this many ticks (headless only)'
    )
    parser.add_argument(
        '--no-gestures', action='store_true',
        help='Disable hand tracking, follow motion only'
    )

    args = parser.parse_args(argv)

    # Load custom config if specified
    if args.config:
        from swarm.config.config_manager import Config
        Config(args.config)

    camera_idx = args.camera if args.camera is not None else default_config.get('camera', 'index', default=0)

    try:
        app = SwarmApplication(
            camera_idx=camera_idx,
            enable_gestures=not args.no_gestures,
        )
        app.print_controls()

        if args.headless:
            print("🖥️ Running in headless mode (no window)")
            app.run(max_ticks=args.max_ticks)
        else:
            from swarm.gui.viewer import run_gui
            run_gui(app, default_config)

    except KeyboardInterrupt:
        print("\n⚠ Interrupted by user")
    except Exception as e:
        print(f"\n❌ Error: {e}")
        import traceback
        traceback.print_exc()
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
