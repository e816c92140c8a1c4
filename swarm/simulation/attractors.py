"""
Attractor shapes for SWARM

Turns the debounced gesture into the list of target points the particles
steer toward. Silhouettes (a rendered word and the heart curve) are sampled
into point clouds once per viewport size; geometric shapes are closed-form
and computed on every call.
"""

import math
import cv2
import numpy as np
from typing import Callable, Dict, List, Optional, Sequence

from swarm.detectors.motion_grid import MotionCell
from swarm.simulation.state import GestureState


class AttractorBuilder:
    """
    Builds attractor point sets scaled to the current viewport.
    """

    def __init__(self, config=None):
        """Initialize attractor shapes from config (or defaults)."""
        if config:
            self.text = str(config.get('attractors', 'text', default='HELLO'))
            self.text_fit = config.get('attractors', 'text_fit', default=0.6)
            self.text_stride = int(config.get('attractors', 'text_stride', default=6))
            self.text_alpha_threshold = config.get('attractors', 'text_alpha_threshold', default=32)
            self.text_strength = config.get('attractors', 'text_strength', default=1050)
            self.heart_scale = config.get('attractors', 'heart_scale', default=0.32)
            self.heart_step = config.get('attractors', 'heart_step', default=0.06)
            self.heart_lift = config.get('attractors', 'heart_lift', default=0.05)
            self.heart_strength = config.get('attractors', 'heart_strength', default=1050)
            self.center_strength = config.get('attractors', 'center_strength', default=900)
            self.corner_size = config.get('attractors', 'corner_size', default=0.5)
            self.corner_strength = config.get('attractors', 'corner_strength', default=800)
            self.square_strength = config.get('attractors', 'square_strength', default=750)
            self.triangle_radius = config.get('attractors', 'triangle_radius', default=0.3)
            self.triangle_strength = config.get('attractors', 'triangle_strength', default=850)
            self.triangle_center_strength = config.get('attractors', 'triangle_center_strength', default=200)
            self.motion_passthrough = int(config.get('attractors', 'motion_passthrough', default=8))
        else:
            self.text = 'HELLO'
            self.text_fit = 0.6
            self.text_stride = 6
            self.text_alpha_threshold = 32
            self.text_strength = 1050
            self.heart_scale = 0.32
            self.heart_step = 0.06
            self.heart_lift = 0.05
            self.heart_strength = 1050
            self.center_strength = 900
            self.corner_size = 0.5
            self.corner_strength = 800
            self.square_strength = 750
            self.triangle_radius = 0.3
            self.triangle_strength = 850
            self.triangle_center_strength = 200
            self.motion_passthrough = 8

        # Cached silhouettes, rebuilt on viewport change
        self.text_targets = np.empty((0, 2), dtype=float)
        self.heart_targets = np.empty((0, 2), dtype=float)
        self._built_for = None
        self._ctx = None

        # Explicit gesture -> target builder table
        self._shape_table: Dict[GestureState, Optional[Callable[[], List[MotionCell]]]] = {
            GestureState.SCATTER: None,
            GestureState.OPEN: None,
            GestureState.POINT: self._center_cells,
            GestureState.FIST: self._corner_cells,
            GestureState.SQUARE: self._square_cells,
            GestureState.TRIANGLE: self._triangle_cells,
            GestureState.THUMBS: self._text_cells,
            GestureState.HEART: self._heart_cells,
        }

    # ------------------------------------------------------------------
    # Silhouettes (cached per viewport size)
    # ------------------------------------------------------------------

    def rebuild(self, ctx):
        """Recompute cached silhouettes for the context's viewport size."""
        self._ctx = ctx
        self.text_targets = self.build_text_targets(ctx)
        self.heart_targets = self.build_heart_targets(ctx)
        self._built_for = (ctx.width, ctx.height)

    def ensure_built(self, ctx):
        self._ctx = ctx
        if self._built_for != (ctx.width, ctx.height):
            self.rebuild(ctx)

    def build_text_targets(self, ctx) -> np.ndarray:
        """
        Rasterize the configured word and sample it into screen points.

        The word is drawn large onto an offscreen single-channel bitmap, pixels
        with coverage above the threshold are sampled on a stride grid, and
        the cloud is scaled uniformly to a fraction of the smaller viewport
        side and centered.
        """
        font = cv2.FONT_HERSHEY_DUPLEX
        font_scale = 6.0
        thickness = 18
        (text_w, text_h), baseline = cv2.getTextSize(self.text, font, font_scale, thickness)
        pad = thickness
        bitmap = np.zeros((text_h + baseline + 2 * pad, text_w + 2 * pad), dtype=np.uint8)
        cv2.putText(bitmap, self.text, (pad, pad + text_h), font, font_scale, 255, thickness, cv2.LINE_AA)

        stride = max(1, self.text_stride)
        sampled = bitmap[::stride, ::stride]
        ys, xs = np.nonzero(sampled > self.text_alpha_threshold)
        if len(xs) == 0:
            return np.array([ctx.center], dtype=float)

        points = np.column_stack([xs * stride, ys * stride]).astype(float)

        mins = points.min(axis=0)
        maxs = points.max(axis=0)
        extent = max(float((maxs - mins).max()), 1.0)
        scale = self.text_fit * min(ctx.width, ctx.height) / extent

        mid = (mins + maxs) * 0.5
        cx, cy = ctx.center
        points = (points - mid) * scale + np.array([cx, cy])
        return points

    def build_heart_targets(self, ctx) -> np.ndarray:
        """
        Sample the implicit heart curve (x^2 + y^2 - 1)^3 - x^2 y^3 <= 0 on a
        grid over [-1, 1]^2 and map it to screen space.
        """
        step = max(float(self.heart_step), 1e-3)
        n = int(1.0 / step + 1e-9)
        axis = np.arange(-n, n + 1) * step
        gx, gy = np.meshgrid(axis, axis)
        inside = (gx ** 2 + gy ** 2 - 1.0) ** 3 - (gx ** 2) * (gy ** 3) <= 0.0

        xs = gx[inside]
        ys = gy[inside]
        if len(xs) == 0:
            return np.array([ctx.center], dtype=float)

        scale = self.heart_scale * min(ctx.width, ctx.height)
        cx = ctx.width * 0.5
        cy = ctx.height * (0.5 - self.heart_lift)
        # Screen y grows downward
        return np.column_stack([cx + xs * scale, cy - ys * scale])

    # ------------------------------------------------------------------
    # Geometric shapes (closed form)
    # ------------------------------------------------------------------

    def center_targets(self, ctx) -> np.ndarray:
        return np.array([ctx.center], dtype=float)

    def corner_targets(self, ctx) -> np.ndarray:
        """Four corners of a square centered in the viewport."""
        cx, cy = ctx.center
        half = self.corner_size * min(ctx.width, ctx.height) * 0.5
        return np.array([
            (cx - half, cy - half),
            (cx + half, cy - half),
            (cx + half, cy + half),
            (cx - half, cy + half),
        ], dtype=float)

    def square_targets(self, ctx) -> np.ndarray:
        """Corners followed by edge midpoints of the centered square."""
        corners = self.corner_targets(ctx)
        midpoints = (corners + np.roll(corners, -1, axis=0)) * 0.5
        return np.vstack([corners, midpoints])

    def triangle_targets(self, ctx) -> np.ndarray:
        """Three vertices on a circle around the center (apex up) plus the center."""
        cx, cy = ctx.center
        radius = self.triangle_radius * min(ctx.width, ctx.height)
        angles = -math.pi / 2 + np.arange(3) * (2 * math.pi / 3)
        vertices = np.column_stack([cx + radius * np.cos(angles), cy + radius * np.sin(angles)])
        return np.vstack([vertices, [[cx, cy]]])

    # ------------------------------------------------------------------
    # Gesture shaping
    # ------------------------------------------------------------------

    @staticmethod
    def _as_cells(points: np.ndarray, strength: float) -> List[MotionCell]:
        return [MotionCell(x=float(x), y=float(y), strength=float(strength)) for x, y in points]

    def _center_cells(self) -> List[MotionCell]:
        return self._as_cells(self.center_targets(self._ctx), self.center_strength)

    def _corner_cells(self) -> List[MotionCell]:
        return self._as_cells(self.corner_targets(self._ctx), self.corner_strength)

    def _square_cells(self) -> List[MotionCell]:
        return self._as_cells(self.square_targets(self._ctx), self.square_strength)

    def _triangle_cells(self) -> List[MotionCell]:
        points = self.triangle_targets(self._ctx)
        cells = self._as_cells(points[:3], self.triangle_strength)
        cells.extend(self._as_cells(points[3:], self.triangle_center_strength))
        return cells

    def _text_cells(self) -> List[MotionCell]:
        return self._as_cells(self.text_targets, self.text_strength)

    def _heart_cells(self) -> List[MotionCell]:
        return self._as_cells(self.heart_targets, self.heart_strength)

    def apply_gesture_shape(self, state: GestureState, motion_cells: Sequence[MotionCell], ctx) -> List[MotionCell]:
        """
        Shape this tick's target list by gesture state.

        Scatter and open keep the raw motion cells. Every other state puts its
        shape targets first, followed by the strongest few motion cells.
        """
        self.ensure_built(ctx)
        builder = self._shape_table.get(GestureState(state))
        if builder is None:
            return list(motion_cells)

        shaped = builder()
        shaped.extend(motion_cells[:self.motion_passthrough])
        return shaped


__all__ = ['AttractorBuilder']
