"""
Audio-reactive double helix.

Two strands of glowing nodes wind around the y axis. Each node listens
to one frequency band chosen by its normalized height along the helix,
so bass swells the bottom and treble the top:

  - node radius    → base_radius * (1 + energy * radius_gain)
  - node scale     → node_size * (1 + energy * scale_gain)
  - node intensity → band energy (shader uniform)
  - connectors     → rungs every few nodes, opacity follows energy
"""

import math
from dataclasses import dataclass, field
from typing import Mapping

import numpy as np

from helixio.core.motion import DEFAULT_POSITION_BANDS, BandLookup, energy_scale
from helixio.errors import ConfigurationError


@dataclass
class HelixConfig:
    """Shape and reactivity of the helix."""

    node_count: int = 35  # nodes per strand
    base_radius: float = 1.1
    height: float = 9.0
    turns: float = 2.5
    node_size: float = 0.1

    radius_gain: float = 0.7
    scale_gain: float = 0.4

    connector_every: int = 4
    connector_opacity: float = 0.2
    connector_opacity_gain: float = 0.4

    position_bands: tuple = field(default_factory=lambda: DEFAULT_POSITION_BANDS)

    def __post_init__(self):
        if self.node_count < 2:
            raise ConfigurationError("helix node_count must be >= 2")
        if self.base_radius <= 0 or self.node_size <= 0:
            raise ConfigurationError("helix base_radius and node_size must be positive")
        if self.connector_every < 1:
            raise ConfigurationError("helix connector_every must be >= 1")
        self.position_bands = tuple((float(b), str(n)) for b, n in self.position_bands)


class HelixAnimator:
    """
    Per-frame pose state for both helix strands and their connectors.

    Node records are stored as arrays indexed by node id, with strand 2
    at rows [n, 2n). The static layout (t, angle, y) is computed once.
    """

    def __init__(self, config: HelixConfig | None = None):
        self.cfg = config or HelixConfig()
        cfg = self.cfg
        n = cfg.node_count

        self.lookup = BandLookup(cfg.position_bands)

        self.t = np.linspace(0.0, 1.0, n)
        self.angles = self.t * math.tau * cfg.turns
        self.heights = (self.t - 0.5) * cfg.height
        self.node_bands = tuple(self.lookup.lookup(float(t)) for t in self.t)

        self.connector_nodes = np.arange(0, n, cfg.connector_every)

        # Static trig for both strands; strand 2 sits half a turn around
        self._cos = np.concatenate([np.cos(self.angles), np.cos(self.angles + math.pi)])
        self._sin = np.concatenate([np.sin(self.angles), np.sin(self.angles + math.pi)])

        self.positions = np.zeros((2 * n, 3), dtype=np.float64)
        self.positions[:, 1] = np.concatenate([self.heights, self.heights])
        self.scales = np.full(2 * n, cfg.node_size, dtype=np.float64)
        self.intensities = np.zeros(2 * n, dtype=np.float64)
        self.radii = np.full(n, cfg.base_radius, dtype=np.float64)

        n_conn = len(self.connector_nodes)
        self.connector_segments = np.zeros((n_conn, 2, 3), dtype=np.float64)
        self.connector_opacity = np.full(n_conn, cfg.connector_opacity, dtype=np.float64)

        self._energy = np.zeros(n, dtype=np.float64)
        self.rotation = 0.0
        self.time = 0.0

    @property
    def node_count(self) -> int:
        return self.cfg.node_count

    def update(self, signals: Mapping[str, float], rotation: float, time: float):
        """
        Recompute node and connector poses from smoothed band signals.

        Args:
            signals: Smoothed energies keyed by band name.
            rotation: Group rotation about the y axis (radians).
            time: Scene time in seconds, forwarded as a shader uniform.
        """
        cfg = self.cfg
        n = cfg.node_count
        self.rotation = rotation
        self.time = time

        for i, band in enumerate(self.node_bands):
            self._energy[i] = signals[band]

        self.radii[:] = energy_scale(cfg.base_radius, self._energy, cfg.radius_gain)

        self.positions[:n, 0] = self._cos[:n] * self.radii
        self.positions[:n, 2] = self._sin[:n] * self.radii
        self.positions[n:, 0] = self._cos[n:] * self.radii
        self.positions[n:, 2] = self._sin[n:] * self.radii

        self.scales[:n] = energy_scale(cfg.node_size, self._energy, cfg.scale_gain)
        self.scales[n:] = self.scales[:n]

        self.intensities[:n] = self._energy
        self.intensities[n:] = self._energy

        idx = self.connector_nodes
        self.connector_segments[:, 0] = self.positions[idx]
        self.connector_segments[:, 1] = self.positions[idx + n]
        np.multiply(self._energy[idx], cfg.connector_opacity_gain, out=self.connector_opacity)
        self.connector_opacity += cfg.connector_opacity
