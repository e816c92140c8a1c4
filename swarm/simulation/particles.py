"""
Particle field for SWARM.

State (one row per live particle, oldest first):
- pos: Nx2 screen coordinates
- vel: Nx2 screen units / tick
- life: remaining ticks
- size, hue: fixed at spawn

Per tick:
- steer toward one target chosen per particle
- random jitter (stronger with an open hand)
- tangential swirl around the center in the triangle state
- damping depending on gesture state
- integrate, age, wrap around the edges, retire dead particles
"""

import math
import cv2
import numpy as np
from dataclasses import dataclass
from typing import List, Optional, Sequence

from swarm.detectors.motion_grid import MotionCell
from swarm.simulation.state import GestureState
from swarm.utils.math_utils import hsl_to_bgr, rgb_to_bgr


@dataclass
class Particle:
    """Read-only snapshot of one particle."""
    x: float
    y: float
    vx: float
    vy: float
    life: float
    size: float
    hue: float


class ParticleField:
    """
    Owns all live particles. Spawns them at the shaped targets, advances physics
    toward the shaped targets, and renders them with fading trails.
    """

    MAX_LIFE = 200.0
    # Fractional bits for circle centers and radii
    DRAW_SHIFT = 4

    def __init__(self, width: int, height: int, config=None, seed: Optional[int] = None):
        if seed is None and config:
            seed = config.get('particles', 'seed', default=None)
        self.rng = np.random.default_rng(seed)
        self.configure(config)

        self.pos = np.empty((0, 2), dtype=np.float64)
        self.vel = np.empty((0, 2), dtype=np.float64)
        self.life = np.empty(0, dtype=np.float64)
        self.size = np.empty(0, dtype=np.float64)
        self.hue = np.empty(0, dtype=np.float64)

        self.width = int(width)
        self.height = int(height)
        self.canvas = np.empty((self.height, self.width, 3), dtype=np.float32)
        self.canvas[:] = self.background_bgr

    def configure(self, config=None):
        """Load tunables from config (or defaults). Live particles are kept."""
        if config:
            self.max_particles = int(config.get('particles', 'max_particles', default=1200))
            self.spawn_top_k = int(config.get('particles', 'spawn_top_k', default=32))
            self.max_spawn_per_cell = int(config.get('particles', 'max_spawn_per_cell', default=6))
            self.spawn_strength_divisor = config.get('particles', 'spawn_strength_divisor', default=90)
            self.pull = config.get('particles', 'pull', default=0.08)
            self.pull_strength_divisor = config.get('particles', 'pull_strength_divisor', default=480)
            self.max_pull = config.get('particles', 'max_pull', default=1.4)
            self.jitter = config.get('particles', 'jitter', default=0.08)
            self.open_jitter = config.get('particles', 'open_jitter', default=0.18)
            self.swirl = config.get('particles', 'swirl', default=0.08)
            self.damping = config.get('particles', 'damping', default=0.985)
            self.point_damping = config.get('particles', 'point_damping', default=0.99)
            self.fist_damping = config.get('particles', 'fist_damping', default=0.96)
            self.wrap_margin = config.get('particles', 'wrap_margin', default=10)
            self.fade_alpha = config.get('particles', 'fade_alpha', default=0.24)
            background = config.get('particles', 'background', default=[3, 7, 15])
        else:
            self.max_particles = 1200
            self.spawn_top_k = 32
            self.max_spawn_per_cell = 6
            self.spawn_strength_divisor = 90
            self.pull = 0.08
            self.pull_strength_divisor = 480
            self.max_pull = 1.4
            self.jitter = 0.08
            self.open_jitter = 0.18
            self.swirl = 0.08
            self.damping = 0.985
            self.point_damping = 0.99
            self.fist_damping = 0.96
            self.wrap_margin = 10
            self.fade_alpha = 0.24
            background = [3, 7, 15]

        self.background_bgr = np.array(rgb_to_bgr(background), dtype=np.float32)
        if hasattr(self, 'life'):
            self._enforce_cap()

    def __len__(self) -> int:
        return len(self.life)

    @property
    def count(self) -> int:
        return len(self.life)

    def particles(self) -> List[Particle]:
        """Snapshot of live particles, oldest first."""
        return [
            Particle(float(p[0]), float(p[1]), float(v[0]), float(v[1]), float(life), float(size), float(hue))
            for p, v, life, size, hue in zip(self.pos, self.vel, self.life, self.size, self.hue)
        ]

    def resize(self, width: int, height: int):
        """Reallocate the canvas for a new viewport size. Particles are kept."""
        self.width = int(width)
        self.height = int(height)
        self.canvas = np.empty((self.height, self.width, 3), dtype=np.float32)
        self.canvas[:] = self.background_bgr

    def clear(self):
        self._keep(np.zeros(len(self.life), dtype=bool))

    def _keep(self, mask_or_slice):
        self.pos = self.pos[mask_or_slice]
        self.vel = self.vel[mask_or_slice]
        self.life = self.life[mask_or_slice]
        self.size = self.size[mask_or_slice]
        self.hue = self.hue[mask_or_slice]

    # ------------------------------------------------------------------
    # Spawning
    # ------------------------------------------------------------------

    def add(self, x: float, y: float, vx: float, vy: float, life: float,
            size: float = 2.0, hue: float = 240.0):
        """Append one particle with explicit state, then enforce the cap."""
        self.pos = np.vstack([self.pos, [[x, y]]])
        self.vel = np.vstack([self.vel, [[vx, vy]]])
        self.life = np.append(self.life, life)
        self.size = np.append(self.size, size)
        self.hue = np.append(self.hue, hue)
        self._enforce_cap()

    def spawn(self, cells: Sequence[MotionCell]) -> int:
        """
        Spawn particles around the strongest target points.

        Each of the top cells gets min(6, ceil(strength / 90)) particles,
        jittered around the cell with an impulse that grows with strength.

        Returns:
            Number of particles created (before any eviction).
        """
        strongest = sorted(cells, key=lambda c: c.strength, reverse=True)[:self.spawn_top_k]
        seeds_x, seeds_y, impulses = [], [], []
        for cell in strongest:
            n = min(self.max_spawn_per_cell, int(math.ceil(cell.strength / self.spawn_strength_divisor)))
            for _ in range(max(n, 0)):
                seeds_x.append(cell.x)
                seeds_y.append(cell.y)
                impulses.append(cell.strength)

        n_new = len(impulses)
        if n_new == 0:
            return 0

        rng = self.rng
        impulse = np.asarray(impulses, dtype=np.float64)
        x = np.asarray(seeds_x) + (rng.random(n_new) - 0.5) * 14.0
        y = np.asarray(seeds_y) + (rng.random(n_new) - 0.5) * 14.0
        angle = rng.random(n_new) * 2.0 * math.pi
        speed = (0.4 + rng.random(n_new) * 0.8) * (1.0 + impulse * 0.02)

        self.pos = np.vstack([self.pos, np.column_stack([x, y])])
        self.vel = np.vstack([self.vel, np.column_stack([np.cos(angle) * speed, np.sin(angle) * speed])])
        self.life = np.concatenate([self.life, 90.0 + rng.random(n_new) * 110.0])
        self.size = np.concatenate([self.size, 1.2 + rng.random(n_new) * 1.6])
        self.hue = np.concatenate([self.hue, 180.0 + rng.random(n_new) * 120.0])

        self._enforce_cap()
        return n_new

    def _enforce_cap(self):
        overflow = len(self.life) - self.max_particles
        if overflow > 0:
            # Oldest particles sit at the front
            self._keep(slice(overflow, None))

    # ------------------------------------------------------------------
    # Physics
    # ------------------------------------------------------------------

    def _damping_for(self, state: GestureState) -> float:
        if state == GestureState.POINT:
            return self.point_damping
        if state == GestureState.FIST:
            return self.fist_damping
        return self.damping

    def update(self, targets: Sequence[MotionCell], ctx):
        """
        Advance every particle one tick and retire the dead ones.

        Args:
            targets: shaped attractor list for this tick (may be empty)
            ctx: SimulationContext (viewport, tick index, gesture state)
        """
        n = len(self.life)
        if n == 0:
            return

        rng = self.rng
        state = ctx.gesture.state
        w, h = float(ctx.width), float(ctx.height)

        # 1. Steer toward one target per particle
        if len(targets):
            tx = np.fromiter((t.x for t in targets), dtype=np.float64, count=len(targets))
            ty = np.fromiter((t.y for t in targets), dtype=np.float64, count=len(targets))
            ts = np.fromiter((t.strength for t in targets), dtype=np.float64, count=len(targets))

            idx = (ctx.tick + rng.integers(0, len(targets), size=n)) % len(targets)
            dx = tx[idx] - self.pos[:, 0]
            dy = ty[idx] - self.pos[:, 1]
            dist = np.hypot(dx, dy) + 1e-4
            pull = np.minimum(ts[idx] / self.pull_strength_divisor, self.max_pull)
            self.vel[:, 0] += (dx / dist) * self.pull * pull
            self.vel[:, 1] += (dy / dist) * self.pull * pull

        # 2. Organic drift
        jitter = self.open_jitter if state == GestureState.OPEN else self.jitter
        self.vel += (rng.random((n, 2)) - 0.5) * jitter

        # 3. Swirl around the center
        if state == GestureState.TRIANGLE:
            rx = self.pos[:, 0] - w * 0.5
            ry = self.pos[:, 1] - h * 0.5
            r = np.hypot(rx, ry) + 1e-4
            self.vel[:, 0] += (-ry / r) * self.swirl
            self.vel[:, 1] += (rx / r) * self.swirl

        # 4. Damping
        self.vel *= self._damping_for(state)

        # 5. Integrate and age
        self.pos += self.vel
        self.life -= 1.0

        # 6. Wrap around edges
        m = self.wrap_margin
        x = self.pos[:, 0]
        y = self.pos[:, 1]
        left, right = x < -m, x > w + m
        top, bottom = y < -m, y > h + m
        x[left] = w + m
        x[right] = -m
        y[top] = h + m
        y[bottom] = -m

        # 7. Retire
        alive = self.life > 0
        if not alive.all():
            self._keep(alive)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def fade(self):
        """Blend the dark background over the last frame to leave trails."""
        if self.fade_alpha <= 0:
            return
        self.canvas *= (1.0 - self.fade_alpha)
        self.canvas += self.background_bgr * self.fade_alpha

    def frame(self) -> np.ndarray:
        """The accumulated canvas as a displayable BGR uint8 image."""
        return np.clip(np.rint(self.canvas), 0, 255).astype(np.uint8)

    def render(self) -> np.ndarray:
        """
        Composite a new frame: fade the previous one, then draw each particle
        as a filled circle whose opacity follows its remaining life.

        The canvas itself stays float32 so repeated fades converge on the
        background instead of stalling on rounding.

        Returns:
            The BGR frame (height x width x 3, uint8).
        """
        self.fade()
        if len(self.life) == 0:
            return self.frame()

        # Premultiplied color layer plus coverage mask, blended once
        layer = np.zeros(self.canvas.shape, dtype=np.float32)
        coverage = np.zeros(self.canvas.shape[:2], dtype=np.float32)
        alphas = np.clip(self.life / self.MAX_LIFE, 0.0, 1.0)
        scale = 1 << self.DRAW_SHIFT

        for (px, py), size, hue, alpha in zip(self.pos, self.size, self.hue, alphas):
            if alpha <= 0:
                continue
            center = (int(round(px * scale)), int(round(py * scale)))
            radius = max(scale, int(round(size * scale)))
            b, g, r = hsl_to_bgr(hue)
            cv2.circle(layer, center, radius, (b * alpha, g * alpha, r * alpha), -1,
                       cv2.LINE_AA, self.DRAW_SHIFT)
            cv2.circle(coverage, center, radius, float(alpha), -1, cv2.LINE_AA, self.DRAW_SHIFT)

        self.canvas *= (1.0 - coverage[..., None])
        self.canvas += layer
        np.clip(self.canvas, 0, 255, out=self.canvas)
        return self.frame()


__all__ = ['Particle', 'ParticleField']
