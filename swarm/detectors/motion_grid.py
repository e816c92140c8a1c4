"""
Frame-differencing motion grid.

Every incoming frame is resampled to a small fixed analysis frame, split into
a coarse grid, and each cell gets the average RGB change against the previous
frame. Cells above the threshold become motion cells in screen coordinates.
"""

import cv2
import numpy as np
from dataclasses import dataclass
from typing import List, Optional


@dataclass
class MotionCell:
    """A screen-space point with a strength. Also used for attractor targets."""
    x: float
    y: float
    strength: float


class MotionGrid:
    """
    Block-averaged frame differencing on a fixed analysis resolution.
    Owns the previous-frame buffer.
    """

    def __init__(
        self,
        analysis_width: int = 180,
        analysis_height: int = 100,
        grid_cols: int = 24,
        grid_rows: int = 14,
        sample_step: int = 2,
        threshold: float = 26.0,
    ):
        self.analysis_width = int(analysis_width)
        self.analysis_height = int(analysis_height)
        self.grid_cols = int(grid_cols)
        self.grid_rows = int(grid_rows)
        self.sample_step = max(1, int(sample_step))
        self.threshold = float(threshold)

        self.cell_w = self.analysis_width // self.grid_cols
        self.cell_h = self.analysis_height // self.grid_rows
        if self.cell_w < 1 or self.cell_h < 1:
            raise ValueError("grid is finer than the analysis frame")

        # Sample coordinates inside the analysis frame, grouped per cell
        offs_x = np.arange(0, self.cell_w, self.sample_step)
        offs_y = np.arange(0, self.cell_h, self.sample_step)
        self._samples_per_row = len(offs_x)
        self._samples_per_col = len(offs_y)
        self._sample_xs = (np.arange(self.grid_cols)[:, None] * self.cell_w + offs_x[None, :]).ravel()
        self._sample_ys = (np.arange(self.grid_rows)[:, None] * self.cell_h + offs_y[None, :]).ravel()

        # Cell centers in analysis coordinates
        self._center_xs = np.arange(self.grid_cols) * self.cell_w + self.cell_w * 0.5
        self._center_ys = np.arange(self.grid_rows) * self.cell_h + self.cell_h * 0.5

        self._prev: Optional[np.ndarray] = None

    @classmethod
    def from_config(cls, config) -> 'MotionGrid':
        return cls(
            analysis_width=config.get('motion', 'analysis_width', default=180),
            analysis_height=config.get('motion', 'analysis_height', default=100),
            grid_cols=config.get('motion', 'grid_cols', default=24),
            grid_rows=config.get('motion', 'grid_rows', default=14),
            sample_step=config.get('motion', 'sample_step', default=2),
            threshold=config.get('motion', 'threshold', default=26),
        )

    @property
    def primed(self) -> bool:
        return self._prev is not None

    def reset(self):
        """Drop the previous frame; the next frame only seeds the buffer."""
        self._prev = None

    def _resample(self, frame: np.ndarray) -> np.ndarray:
        if frame.ndim == 2:
            frame = cv2.cvtColor(frame, cv2.COLOR_GRAY2BGR)
        elif frame.shape[2] == 4:
            frame = frame[:, :, :3]
        small = cv2.resize(frame, (self.analysis_width, self.analysis_height), interpolation=cv2.INTER_AREA)
        return np.ascontiguousarray(small, dtype=np.uint8)

    def compute_motion(self, frame: Optional[np.ndarray], ctx) -> List[MotionCell]:
        """
        Compare `frame` against the previous one and return motion cells.

        Args:
            frame: BGR/BGRA image of any size, or None when the source is not ready
            ctx: SimulationContext providing the viewport size

        Returns:
            Motion cells sorted by strength, strongest first. Empty on the
            first frame after a reset and for frames that are not ready.
        """
        if frame is None or frame.size == 0 or frame.shape[0] == 0 or frame.shape[1] == 0:
            return []

        current = self._resample(frame)

        if self._prev is None:
            self._prev = current.copy()
            return []

        # Whole frame is read before the buffer is overwritten
        delta = np.abs(current.astype(np.int16) - self._prev.astype(np.int16)).sum(axis=2)
        sampled = delta[np.ix_(self._sample_ys, self._sample_xs)]
        per_cell = sampled.reshape(
            self.grid_rows, self._samples_per_col,
            self.grid_cols, self._samples_per_row,
        ).mean(axis=(1, 3))

        np.copyto(self._prev, current)

        rows, cols = np.nonzero(per_cell > self.threshold)
        if len(rows) == 0:
            return []

        strengths = per_cell[rows, cols]
        order = np.argsort(-strengths, kind='stable')

        scale_x = ctx.width / self.analysis_width
        scale_y = ctx.height / self.analysis_height

        return [
            MotionCell(
                x=float(self._center_xs[cols[i]] * scale_x),
                y=float(self._center_ys[rows[i]] * scale_y),
                strength=float(strengths[i]),
            )
            for i in order
        ]


__all__ = ['MotionCell', 'MotionGrid']
