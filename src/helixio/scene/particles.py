"""
Ambient floating particle field.

A shell of slow-drifting points around the scene. The mid band pushes
particles gently outward; soft boundaries pull strays back in and keep
the core clear. Initial placement is drawn once from a seeded generator,
after which every frame is a deterministic update.
"""

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from helixio.errors import ConfigurationError


@dataclass
class ParticleConfig:
    """Particle count, bounds and audio push."""

    count: int = 100
    radius: float = 8.0
    band_range: tuple[int, int] = (20, 80)
    smoothing: float = 0.05
    neutral: float = 0.1

    drift: float = 0.002  # max |velocity| component per frame
    push_gain: float = 0.01  # outward push per unit intensity
    pull_back: float = 0.01
    core_radius: float = 2.0
    core_push: float = 0.005
    spin_rate: float = 0.02
    wobble: float = 0.1

    seed: Optional[int] = None

    def __post_init__(self):
        if self.count < 0:
            raise ConfigurationError("particle count must be >= 0")
        if self.radius <= 0:
            raise ConfigurationError("particle radius must be positive")
        self.band_range = tuple(self.band_range)


class ParticleField:
    """Positions and drift state for every particle, updated in place."""

    def __init__(self, config: ParticleConfig | None = None, seed: Optional[int] = None):
        self.cfg = config or ParticleConfig()
        cfg = self.cfg
        self.rng = np.random.default_rng(cfg.seed if seed is None else seed)
        n = cfg.count

        # Uniform directions on a shell between 0.5 and 1.0 of the radius
        theta = self.rng.uniform(0.0, math.tau, n)
        phi = np.arccos(2.0 * self.rng.uniform(0.0, 1.0, n) - 1.0)
        r = cfg.radius * (0.5 + self.rng.uniform(0.0, 1.0, n) * 0.5)

        self.positions = np.empty((n, 3), dtype=np.float64)
        self.positions[:, 0] = r * np.sin(phi) * np.cos(theta)
        self.positions[:, 1] = r * np.sin(phi) * np.sin(theta)
        self.positions[:, 2] = r * np.cos(phi)

        self.velocities = (self.rng.uniform(0.0, 1.0, (n, 3)) - 0.5) * cfg.drift
        self.phases = self.rng.uniform(0.0, math.tau, n)

        self._dist = np.zeros(n, dtype=np.float64)
        self._dirs = np.zeros((n, 3), dtype=np.float64)
        self._force = np.zeros(n, dtype=np.float64)

        self.rotation = np.zeros(3, dtype=np.float64)  # Euler x, y, z of the field
        self.intensity = 0.0

    def __len__(self) -> int:
        return self.cfg.count

    def update(self, intensity: float, time: float):
        """
        Drift every particle one frame and apply the audio push.

        Args:
            intensity: Smoothed band energy driving the outward push.
            time: Scene time in seconds.
        """
        cfg = self.cfg
        pos = self.positions
        ph = self.phases
        self.intensity = intensity

        pos += self.velocities
        pos[:, 0] += np.sin(time * 0.3 + ph) * 0.003
        pos[:, 1] += np.cos(time * 0.2 + ph) * 0.002
        pos[:, 2] += np.sin(time * 0.25 + ph * 0.5) * 0.002

        self._dist[:] = np.linalg.norm(pos, axis=1)
        # A particle sitting exactly on the origin has no direction to move in
        np.divide(pos, self._dist[:, None], out=self._dirs, where=self._dist[:, None] > 1e-9)
        self._dirs[self._dist <= 1e-9] = 0.0

        self._force[:] = 0.0
        # Outward only, never pulls toward the centre
        self._force[self._dist > 0.1] += max(0.0, intensity) * cfg.push_gain
        self._force[self._dist > cfg.radius * 1.2] -= cfg.pull_back
        self._force[self._dist < cfg.core_radius] += cfg.core_push
        pos += self._dirs * self._force[:, None]

        self.rotation[0] = math.sin(time * 0.1) * cfg.wobble
        self.rotation[1] = time * cfg.spin_rate
