"""
Hand landmark detection for SWARM.

MediaPipeHandDetector wraps the MediaPipe Tasks HandLandmarker and turns a BGR
frame into a list of (21, 2) normalized landmark arrays.

LandmarkRequester runs a detector on a single worker thread with at most one
request in flight. A request made while the worker is busy is dropped, not
queued; the next sampling tick simply tries again.
"""

import queue
import threading
import urllib.request
from pathlib import Path
from typing import Callable, List, Optional

import cv2
import numpy as np

from swarm.utils.math_utils import landmarks_to_array


# Model URL and local path
HAND_LANDMARKER_MODEL_URL = 'https://storage.googleapis.com/mediapipe-models/hand_landmarker/hand_landmarker/float16/1/hand_landmarker.task'
HAND_LANDMARKER_MODEL_PATH = Path(__file__).parent.parent / 'models' / 'hand_landmarker.task'


def ensure_model_downloaded(model_path: Path = HAND_LANDMARKER_MODEL_PATH) -> Optional[str]:
    """Download the hand landmarker model if not present."""
    model_path.parent.mkdir(parents=True, exist_ok=True)

    if not model_path.exists():
        print("📥 Downloading hand landmarker model...")
        try:
            urllib.request.urlretrieve(HAND_LANDMARKER_MODEL_URL, str(model_path))
            print(f"✓ Model downloaded to {model_path}")
        except OSError as e:
            print(f"⚠ Failed to download model: {e}")
            return None

    return str(model_path)


class MediaPipeHandDetector:
    """Callable landmark detector backed by the MediaPipe Tasks API."""

    def __init__(self, max_hands: int = 2, detection_conf: float = 0.6,
                 tracking_conf: float = 0.5, use_gpu: bool = True):
        # Imported here so the simulation and its tests never need MediaPipe
        import mediapipe as mp
        from mediapipe.tasks.python import vision as mp_vision
        from mediapipe.tasks.python.core.base_options import BaseOptions

        self._mp = mp
        self.use_gpu = False

        model_path = ensure_model_downloaded()
        if model_path is None:
            raise RuntimeError("❌ Hand landmarker model unavailable")

        delegates = [BaseOptions.Delegate.GPU, BaseOptions.Delegate.CPU] if use_gpu else [BaseOptions.Delegate.CPU]
        self.landmarker = None
        last_error = None
        for delegate in delegates:
            try:
                options = mp_vision.HandLandmarkerOptions(
                    base_options=BaseOptions(model_asset_path=model_path, delegate=delegate),
                    running_mode=mp_vision.RunningMode.IMAGE,
                    num_hands=max_hands,
                    min_hand_detection_confidence=detection_conf,
                    min_tracking_confidence=tracking_conf,
                )
                self.landmarker = mp_vision.HandLandmarker.create_from_options(options)
                self.use_gpu = delegate == BaseOptions.Delegate.GPU
                break
            except Exception as e:  # delegate support varies per platform
                last_error = e
                if delegate == BaseOptions.Delegate.GPU:
                    print(f"⚠ GPU initialization failed: {e}")
                    print("  Falling back to CPU...")

        if self.landmarker is None:
            raise RuntimeError(f"❌ Could not create hand landmarker: {last_error}")

        mode_str = "GPU" if self.use_gpu else "CPU"
        print(f"✓ MediaPipe HandLandmarker initialized with {mode_str} (max_hands={max_hands})")

    @classmethod
    def from_config(cls, config) -> 'MediaPipeHandDetector':
        return cls(
            max_hands=config.get('performance', 'max_hands', default=2),
            detection_conf=config.get('performance', 'min_detection_confidence', default=0.6),
            tracking_conf=config.get('performance', 'min_tracking_confidence', default=0.5),
            use_gpu=config.get('performance', 'use_gpu', default=True),
        )

    def __call__(self, frame_bgr: np.ndarray) -> List[np.ndarray]:
        frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
        mp_image = self._mp.Image(image_format=self._mp.ImageFormat.SRGB, data=frame_rgb)
        results = self.landmarker.detect(mp_image)
        if not results.hand_landmarks:
            return []
        return [landmarks_to_array(hand) for hand in results.hand_landmarks]

    def close(self):
        if self.landmarker is not None:
            self.landmarker.close()
            self.landmarker = None


class LandmarkRequester:
    """
    Request/response wrapper around a landmark detector.

    `submit()` hands a frame to the worker thread unless a request is already
    in flight. `poll()` returns the most recent finished result (or None) and
    is meant to be called from the tick thread, which keeps gesture state
    single-writer.
    """

    def __init__(self, detect_fn: Callable[[np.ndarray], List[np.ndarray]]):
        self.detect_fn = detect_fn
        self.generation = 0
        self.completed_generation = 0
        self.dropped = 0
        self.failures = 0

        # Set while no request is in flight. Cleared by submit(), set by the worker.
        self._idle = threading.Event()
        self._idle.set()
        self._requests: "queue.Queue" = queue.Queue(maxsize=1)
        self._results: "queue.Queue" = queue.Queue()
        self._closed = False
        self._worker = threading.Thread(target=self._run, name="landmark-worker", daemon=True)
        self._worker.start()

    @property
    def busy(self) -> bool:
        return not self._idle.is_set()

    def submit(self, frame: np.ndarray) -> bool:
        """
        Request detection on `frame`.

        Returns:
            True if the request was accepted, False if dropped because the
            previous one is still running (or the requester is closed).
        """
        if self._closed or frame is None:
            return False
        if self.busy:
            self.dropped += 1
            return False

        self._idle.clear()
        self.generation += 1
        # Worker owns the frame from here on
        self._requests.put_nowait((self.generation, frame.copy()))
        return True

    def poll(self):
        """Most recent finished result as a list of hands, or None if nothing arrived."""
        latest = None
        try:
            while True:
                generation, hands = self._results.get_nowait()
                if generation >= self.completed_generation:
                    self.completed_generation = generation
                    latest = hands
        except queue.Empty:
            pass
        return latest

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no request is in flight. Used by headless runs and tests."""
        return self._idle.wait(timeout)

    def _run(self):
        while True:
            item = self._requests.get()
            if item is None:
                break
            generation, frame = item
            try:
                hands = self.detect_fn(frame)
                self._results.put((generation, list(hands or [])))
            except Exception as e:  # detector failures must never reach the tick loop
                self.failures += 1
                print(f"⚠ Landmark detection failed: {e}")
            finally:
                self._idle.set()

    def close(self, timeout: float = 1.0, close_detector: bool = True):
        """Stop the worker thread; optionally close the detector as well."""
        if self._closed:
            return
        self._closed = True
        try:
            self._requests.put(None, timeout=timeout)
        except queue.Full:
            print("⚠ Landmark worker did not accept shutdown request")
            return
        self._worker.join(timeout)
        if not close_detector or self._worker.is_alive():
            return
        close_fn = getattr(self.detect_fn, 'close', None)
        if callable(close_fn):
            close_fn()


__all__ = [
    'ensure_model_downloaded',
    'MediaPipeHandDetector',
    'LandmarkRequester',
]
