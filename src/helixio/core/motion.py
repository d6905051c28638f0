"""
Mapping helpers from smoothed energies and tempo to motion parameters.
"""

from dataclasses import dataclass
from typing import Mapping, Sequence

from helixio.core.smoother import lerp
from helixio.errors import ConfigurationError

# (upper bound of normalized position, band name), scanned in order
DEFAULT_POSITION_BANDS: tuple[tuple[float, str], ...] = (
    (0.2, "bass"),
    (0.4, "lowMid"),
    (0.6, "mid"),
    (0.8, "highMid"),
    (1.0, "high"),
)


def energy_scale(base: float, energy: float, gain: float) -> float:
    """Scale `base` up by `energy * gain`. Works elementwise on arrays."""
    return base * (1.0 + energy * gain)


class BandLookup:
    """
    Piecewise position -> band table for elongated structures.

    Positions map to the first entry whose upper bound is strictly greater;
    anything at or past the last bound maps to the last band. There is no
    interpolation, so band boundaries stay visible along the structure.
    """

    def __init__(self, table: Sequence[tuple[float, str]] = DEFAULT_POSITION_BANDS):
        if not table:
            raise ConfigurationError("band lookup table is empty")
        bounds = [float(b) for b, _ in table]
        if any(b2 <= b1 for b1, b2 in zip(bounds, bounds[1:])):
            raise ConfigurationError(f"band lookup bounds must increase strictly, got {bounds}")
        self.bounds = tuple(bounds)
        self.bands = tuple(name for _, name in table)

    def lookup(self, t: float) -> str:
        for bound, name in zip(self.bounds, self.bands):
            if t < bound:
                return name
        return self.bands[-1]

    def value(self, t: float, signals: Mapping[str, float]) -> float:
        return signals[self.lookup(t)]


@dataclass
class RotationConfig:
    """Tempo-to-rotation mapping."""

    bpm_divisor: float = 180.0
    min_speed: float = 0.15
    max_speed: float = 0.6
    smoothing: float = 0.02
    initial_speed: float = 0.3

    def __post_init__(self):
        if self.bpm_divisor <= 0:
            raise ConfigurationError("rotation bpm_divisor must be positive")
        if not 0.0 <= self.min_speed <= self.max_speed:
            raise ConfigurationError("rotation speed range must satisfy 0 <= min <= max")
        if not 0.0 < self.smoothing <= 1.0:
            raise ConfigurationError("rotation smoothing must be in (0, 1]")


class RotationGovernor:
    """
    Turns the running BPM estimate into a smoothly varying rotation.

    The target speed is clamped here, so a wild estimate (e.g. from the
    seed before the first real beat) can never spin the scene out.
    """

    def __init__(self, config: RotationConfig | None = None):
        self.cfg = config or RotationConfig()
        self.speed = float(self.cfg.initial_speed)
        self.angle = 0.0

    def target_speed(self, bpm: float) -> float:
        cfg = self.cfg
        return max(cfg.min_speed, min(cfg.max_speed, bpm / cfg.bpm_divisor))

    def update(self, bpm: float, dt: float) -> float:
        """Ease speed toward the tempo target, accumulate the angle, return it."""
        self.speed = lerp(self.speed, self.target_speed(bpm), self.cfg.smoothing)
        self.angle += dt * self.speed
        return self.angle
