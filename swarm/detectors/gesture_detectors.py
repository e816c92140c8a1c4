import numpy as np
import time
from typing import Dict, List, Optional, Sequence
from dataclasses import dataclass, field

from swarm.simulation.state import GestureState, GestureStatus
from swarm.utils.math_utils import landmarks_to_array


# Data Structures

@dataclass
class HandPose:
    """
    Per-frame finger state for a single hand.
    Landmarks are in normalized image coordinates (0..1, y grows downward).
    """
    landmarks_norm: np.ndarray  # shape (21, 2)

    # {'thumb': bool, 'index': bool, 'middle': bool, 'ring': bool, 'pinky': bool}
    fingers_extended: Dict[str, bool] = field(default_factory=dict)

    @property
    def extended_count(self) -> int:
        return sum(1 for v in self.fingers_extended.values() if v)

    def only(self, *fingers: str) -> bool:
        """True when exactly the named fingers are extended."""
        wanted = set(fingers)
        return all(self.fingers_extended.get(f, False) == (f in wanted) for f in FINGERS)


# MediaPipe Hand Landmark indices (for reference)
LANDMARK_NAMES = {
    'WRIST': 0,
    'THUMB_CMC': 1, 'THUMB_MCP': 2, 'THUMB_IP': 3, 'THUMB_TIP': 4,
    'INDEX_MCP': 5, 'INDEX_PIP': 6, 'INDEX_DIP': 7, 'INDEX_TIP': 8,
    'MIDDLE_MCP': 9, 'MIDDLE_PIP': 10, 'MIDDLE_DIP': 11, 'MIDDLE_TIP': 12,
    'RING_MCP': 13, 'RING_PIP': 14, 'RING_DIP': 15, 'RING_TIP': 16,
    'PINKY_MCP': 17, 'PINKY_PIP': 18, 'PINKY_DIP': 19, 'PINKY_TIP': 20,
}

FINGERS = ('thumb', 'index', 'middle', 'ring', 'pinky')


def is_finger_extended(landmarks_norm: np.ndarray, finger_name: str, mirrored: bool = True) -> bool:
    """
    Single-frame extension test.

    The thumb is compared horizontally against its IP joint. With a mirrored
    front-facing feed an extended thumb tip sits left of the IP joint; set
    `mirrored=False` for a raw feed. The other fingers are extended when the
    tip is higher on screen than the PIP joint.
    """
    tip_idx_map = {
        'thumb': LANDMARK_NAMES['THUMB_TIP'],
        'index': LANDMARK_NAMES['INDEX_TIP'],
        'middle': LANDMARK_NAMES['MIDDLE_TIP'],
        'ring': LANDMARK_NAMES['RING_TIP'],
        'pinky': LANDMARK_NAMES['PINKY_TIP'],
    }

    pip_idx_map = {
        # thumb has no PIP, the IP joint plays that role
        'thumb': LANDMARK_NAMES['THUMB_IP'],
        'index': LANDMARK_NAMES['INDEX_PIP'],
        'middle': LANDMARK_NAMES['MIDDLE_PIP'],
        'ring': LANDMARK_NAMES['RING_PIP'],
        'pinky': LANDMARK_NAMES['PINKY_PIP'],
    }
    if finger_name not in tip_idx_map:
        return False

    tip_pt = landmarks_norm[tip_idx_map[finger_name]]
    pip_pt = landmarks_norm[pip_idx_map[finger_name]]

    if finger_name == 'thumb':
        if mirrored:
            return bool(tip_pt[0] < pip_pt[0])
        return bool(tip_pt[0] > pip_pt[0])

    return bool(tip_pt[1] < pip_pt[1])


def compute_hand_pose(landmarks, mirrored: bool = True) -> HandPose:
    """Build a HandPose from a (21, 2) array or an iterable of landmarks."""
    if isinstance(landmarks, np.ndarray):
        norm = np.asarray(landmarks, dtype=float)[:, :2]
        if norm.shape != (21, 2):
            raise ValueError(f"expected 21 landmarks of (x, y), got shape {landmarks.shape}")
    else:
        norm = landmarks_to_array(landmarks)

    fingers = {name: is_finger_extended(norm, name, mirrored) for name in FINGERS}
    return HandPose(landmarks_norm=norm, fingers_extended=fingers)


def is_thumbs_up(pose: HandPose, margin: float = 0.05) -> bool:
    """Thumb alone extended and its tip clearly above the wrist."""
    if not pose.only('thumb'):
        return False
    thumb_tip_y = pose.landmarks_norm[LANDMARK_NAMES['THUMB_TIP']][1]
    wrist_y = pose.landmarks_norm[LANDMARK_NAMES['WRIST']][1]
    return bool(thumb_tip_y <= wrist_y - margin)


def is_heart(pose: HandPose) -> bool:
    return pose.only('index', 'middle')


def is_triangle_hand(pose: HandPose) -> bool:
    return pose.only('index', 'thumb')


def is_square(pose: HandPose) -> bool:
    return pose.extended_count == len(FINGERS)


def classify_single_hand(pose: HandPose) -> GestureState:
    """Fallback classifier used when no shape gesture matched."""
    count = pose.extended_count
    if pose.only('index'):
        return GestureState.POINT
    if count >= 4:
        return GestureState.OPEN
    if count <= 1:
        return GestureState.FIST
    return GestureState.SCATTER


def classify_hands(poses: Sequence[HandPose], thumbs_up_margin: float = 0.05) -> Optional[GestureState]:
    """
    Classify all detected hands into one gesture.

    PRIORITY ORDER (first match wins):
    1. Thumbs   - any hand
    2. Heart    - any hand
    3. Triangle - at least two hands, each index + thumb
    4. Square   - any hand
    5. Single-hand fallback on the first hand

    Returns None when there are no hands.
    """
    if not poses:
        return None

    if any(is_thumbs_up(p, thumbs_up_margin) for p in poses):
        return GestureState.THUMBS

    if any(is_heart(p) for p in poses):
        return GestureState.HEART

    if len(poses) >= 2 and all(is_triangle_hand(p) for p in poses):
        return GestureState.TRIANGLE

    if any(is_square(p) for p in poses):
        return GestureState.SQUARE

    return classify_single_hand(poses[0])


class GestureClassifier:
    """
    Debounces per-frame classifications into a stable GestureState.

    Confidence ramps up while the same gesture keeps arriving and decays when
    a different gesture (or no hand) is seen. The state only changes once
    confidence has fallen below the switch threshold, so single noisy frames
    never move the attractor geometry.
    """

    def __init__(
        self,
        confidence_ramp_up: float = 0.08,
        confidence_decay: float = 0.1,
        idle_decay: float = 0.05,
        switch_threshold: float = 0.2,
        thumbs_up_margin: float = 0.05,
        mirrored: bool = True,
    ):
        self.confidence_ramp_up = float(confidence_ramp_up)
        self.confidence_decay = float(confidence_decay)
        self.idle_decay = float(idle_decay)
        self.switch_threshold = float(switch_threshold)
        self.thumbs_up_margin = float(thumbs_up_margin)
        self.mirrored = bool(mirrored)

        self.last_poses: List[HandPose] = []
        self.last_reason: Optional[str] = None

    @classmethod
    def from_config(cls, config) -> 'GestureClassifier':
        return cls(
            confidence_ramp_up=config.get('gestures', 'confidence_ramp_up', default=0.08),
            confidence_decay=config.get('gestures', 'confidence_decay', default=0.1),
            idle_decay=config.get('gestures', 'idle_decay', default=0.05),
            switch_threshold=config.get('gestures', 'switch_threshold', default=0.2),
            thumbs_up_margin=config.get('gestures', 'thumbs_up_margin', default=0.05),
            mirrored=config.get('gestures', 'mirrored_feed', default=True),
        )

    def classify(self, hands) -> Optional[GestureState]:
        """Classify raw landmark sets without touching any state."""
        poses = [compute_hand_pose(h, self.mirrored) for h in hands]
        return classify_hands(poses, self.thumbs_up_margin)

    def update(self, hands, ctx) -> bool:
        """
        Feed one landmark detection result.

        Args:
            hands: list of (21, 2) landmark arrays (0..2 hands)
            ctx: SimulationContext whose gesture status is updated

        Returns:
            True if the gesture state changed.
        """
        status: GestureStatus = ctx.gesture
        self.last_poses = [compute_hand_pose(h, self.mirrored) for h in hands]
        detected = classify_hands(self.last_poses, self.thumbs_up_margin)

        if detected is None:
            status.confidence = max(0.0, status.confidence - self.idle_decay)
            if status.confidence < self.switch_threshold and status.state != GestureState.SCATTER:
                self._switch(status, GestureState.SCATTER)
                self.last_reason = 'no_hands_reset'
                return True
            self.last_reason = 'no_hands'
            return False

        if detected == status.state:
            status.confidence = min(1.0, status.confidence + self.confidence_ramp_up)
            self.last_reason = 'gesture_sustained'
            return False

        status.confidence = max(0.0, status.confidence - self.confidence_decay)
        if status.confidence < self.switch_threshold:
            self._switch(status, detected)
            self.last_reason = 'gesture_switched'
            return True

        self.last_reason = 'gesture_contested'
        return False

    def _switch(self, status: GestureStatus, new_state: GestureState):
        status.state = new_state
        status.last_change = time.time()


__all__ = [
    'HandPose',
    'LANDMARK_NAMES',
    'FINGERS',
    'is_finger_extended',
    'compute_hand_pose',
    'is_thumbs_up',
    'is_heart',
    'is_triangle_hand',
    'is_square',
    'classify_single_hand',
    'classify_hands',
    'GestureClassifier',
]
