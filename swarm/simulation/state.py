"""Shared simulation state for SWARM."""
from __future__ import annotations

import enum
import time
from dataclasses import dataclass, field


class GestureState(str, enum.Enum):
    """
    Debounced hand pose driving the attractor geometry:

    SCATTER   - Default, particles follow raw motion
    POINT     - Index finger only, particles converge on the center
    OPEN      - Open hand, motion targets with amplified jitter
    FIST      - Closed hand, particles settle on square corners
    TRIANGLE  - Two hands forming a triangle, swirling triangle
    SQUARE    - All five fingers, square outline
    THUMBS    - Thumbs up, word silhouette
    HEART     - Index + middle, heart silhouette
    """
    SCATTER = "scatter"
    POINT = "point"
    OPEN = "open"
    FIST = "fist"
    TRIANGLE = "triangle"
    SQUARE = "square"
    THUMBS = "thumbs"
    HEART = "heart"


@dataclass
class GestureStatus:
    """Current gesture with its confidence. Written only by the gesture classifier."""

    state: GestureState = GestureState.SCATTER
    confidence: float = 0.0
    last_change: float = field(default_factory=time.time)


@dataclass
class SimulationContext:
    """
    Per-session state passed to every component call.

    The orchestrator owns the viewport and tick fields; the gesture
    classifier owns `gesture`.
    """

    width: int
    height: int
    tick: int = 0
    gesture: GestureStatus = field(default_factory=GestureStatus)

    @property
    def center(self):
        return (self.width * 0.5, self.height * 0.5)


__all__ = ["GestureState", "GestureStatus", "SimulationContext"]
