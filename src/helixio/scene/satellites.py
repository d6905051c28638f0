"""
Orbiting satellites with ribbon trails.

Each satellite circles the helix on its own tilted orbit and listens to
one band of a separate, absolute-bin band layout (bass / mid / high).
Its position history feeds a `TrailBuilder` that produces a tapering
ribbon every frame.
"""

import math
from dataclasses import MISSING, dataclass, field, fields
from typing import Mapping

import numpy as np
from scipy.spatial.transform import Rotation

from helixio.core.motion import energy_scale
from helixio.core.trail import RibbonGeometry, TrailBuilder, TrailHistory
from helixio.errors import ConfigurationError


@dataclass
class SatelliteSpec:
    """Static orbit and look of one satellite."""

    orbit_radius: float
    orbit_speed: float  # radians per second, sign sets direction
    tilt: tuple[float, float, float]  # intrinsic XYZ Euler angles (radians)
    size: float
    band: str
    phase: float = 0.0


def _default_satellites() -> list[SatelliteSpec]:
    return [
        SatelliteSpec(3.8, 0.22, (0.35, 0.0, 0.15), 0.14, "bass", 0.0),
        SatelliteSpec(4.5, -0.18, (-0.4, 0.25, 0.0), 0.11, "mid", math.pi * 0.5),
        SatelliteSpec(5.0, 0.15, (0.25, -0.35, 0.2), 0.09, "high", math.pi),
        SatelliteSpec(3.2, -0.25, (-0.2, 0.4, -0.15), 0.1, "bass", math.pi * 1.5),
    ]


def _spec_from_dict(data) -> SatelliteSpec:
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"satellite entries must be objects, got {type(data).__name__}")
    known = {f.name for f in fields(SatelliteSpec)}
    unknown = set(data) - known
    if unknown:
        raise ConfigurationError(f"unknown SatelliteSpec keys: {sorted(unknown)}")
    missing = {f.name for f in fields(SatelliteSpec) if f.default is MISSING} - set(data)
    if missing:
        raise ConfigurationError(f"satellite entry is missing {sorted(missing)}")
    return SatelliteSpec(**data)


@dataclass
class SatelliteConfig:
    """Satellite swarm layout, band slicing and trail settings."""

    satellites: list[SatelliteSpec] = field(default_factory=_default_satellites)

    # Absolute bin ranges for a 256-bin spectrum
    band_ranges: dict[str, tuple[int, int]] = field(
        default_factory=lambda: {"bass": (0, 25), "mid": (25, 90), "high": (90, 180)}
    )
    smoothing: dict[str, float] = field(
        default_factory=lambda: {"bass": 0.08, "mid": 0.06, "high": 0.05}
    )
    neutral: float = 0.2

    radius_gain: float = 0.3  # added to orbit radius per unit energy
    scale_gain: float = 0.4

    trail_length: int = 80
    ribbon_points: int = 60
    trail_width: float = 0.06
    bass_width_bonus: float = 0.02
    tail_ratio: float = 0.1

    def __post_init__(self):
        self.satellites = [s if isinstance(s, SatelliteSpec) else _spec_from_dict(s) for s in self.satellites]
        self.band_ranges = {k: tuple(v) for k, v in self.band_ranges.items()}
        for sat in self.satellites:
            if sat.band not in self.band_ranges:
                raise ConfigurationError(
                    f"satellite band '{sat.band}' not in band_ranges {sorted(self.band_ranges)}"
                )
            if len(sat.tilt) != 3:
                raise ConfigurationError("satellite tilt must have three Euler angles")
        if set(self.smoothing) != set(self.band_ranges):
            raise ConfigurationError("satellite smoothing must list exactly the configured bands")
        if self.trail_length < 1:
            raise ConfigurationError("satellite trail_length must be >= 1")

    def width_for(self, sat: SatelliteSpec) -> float:
        return self.trail_width + (self.bass_width_bonus if sat.band == "bass" else 0.0)


class SatelliteSwarm:
    """
    Per-frame poses, trail histories and ribbons for every satellite.

    Satellite i owns row i of the pose arrays, `histories[i]` and
    `builders[i]`.
    """

    def __init__(self, config: SatelliteConfig | None = None):
        self.cfg = config or SatelliteConfig()
        sats = self.cfg.satellites
        n = len(sats)

        # Orbit tilt as a fixed matrix per satellite
        self._tilts = np.stack(
            [Rotation.from_euler("XYZ", s.tilt).as_matrix() for s in sats]
        ) if n else np.zeros((0, 3, 3))
        self._radius = np.array([s.orbit_radius for s in sats], dtype=np.float64)
        self._speed = np.array([s.orbit_speed for s in sats], dtype=np.float64)
        self._phase = np.array([s.phase for s in sats], dtype=np.float64)
        self._size = np.array([s.size for s in sats], dtype=np.float64)

        self.positions = np.zeros((n, 3), dtype=np.float64)
        self.scales = self._size.copy()
        self.intensities = np.zeros(n, dtype=np.float64)

        self._flat = np.zeros((n, 3), dtype=np.float64)

        self.histories = [TrailHistory(self.cfg.trail_length) for _ in sats]
        self.builders = [
            TrailBuilder(self.cfg.ribbon_points, self.cfg.width_for(s), self.cfg.tail_ratio)
            for s in sats
        ]
        self.time = 0.0

    def __len__(self) -> int:
        return len(self.cfg.satellites)

    @property
    def ribbons(self) -> list[RibbonGeometry]:
        return [b.geometry for b in self.builders]

    def update(self, signals: Mapping[str, float], time: float):
        """
        Advance every satellite along its orbit and rebuild its ribbon.

        Args:
            signals: Smoothed energies keyed by satellite band name.
            time: Scene time in seconds; orbit angle is time * speed + phase.
        """
        cfg = self.cfg
        self.time = time

        for i, sat in enumerate(cfg.satellites):
            self.intensities[i] = signals[sat.band]

        angle = time * self._speed + self._phase
        radius = self._radius + self.intensities * cfg.radius_gain
        self._flat[:, 0] = np.cos(angle) * radius
        self._flat[:, 2] = np.sin(angle) * radius
        np.einsum("nij,nj->ni", self._tilts, self._flat, out=self.positions)

        self.scales[:] = energy_scale(self._size, self.intensities, cfg.scale_gain)

        for i, (history, builder) in enumerate(zip(self.histories, self.builders)):
            history.push(self.positions[i])
            builder.build(history, self.intensities[i])
