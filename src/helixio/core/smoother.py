"""
Exponential smoothing of per-frame audio signals.

Each tracked signal moves toward its raw value by a fixed fraction `k`
per frame, so lower frequencies can be allowed to react faster while the
high end is damped harder to avoid flicker.
"""

from dataclasses import dataclass
from typing import Mapping, Sequence

import numpy as np

from helixio.errors import ConfigurationError


def lerp(current: float, target: float, factor: float) -> float:
    return current + (target - current) * factor


@dataclass(frozen=True)
class SignalSpec:
    """Smoothing parameters for one named signal."""

    name: str
    k: float  # fraction of the gap closed per frame, (0, 1]
    neutral: float = 0.3  # start value and no-audio resting value

    def __post_init__(self):
        if not 0.0 < self.k <= 1.0:
            raise ConfigurationError(f"smoothing k for '{self.name}' must be in (0, 1], got {self.k}")
        if not 0.0 < self.neutral <= 1.0:
            raise ConfigurationError(
                f"neutral value for '{self.name}' must be in (0, 1], got {self.neutral}"
            )


# Lower bands move faster, higher bands are damped more
HELIX_SIGNALS: tuple[SignalSpec, ...] = (
    SignalSpec("bass", 0.08, 0.3),
    SignalSpec("lowMid", 0.06, 0.3),
    SignalSpec("mid", 0.05, 0.3),
    SignalSpec("highMid", 0.04, 0.3),
    SignalSpec("high", 0.03, 0.3),
)


class Smoother:
    """
    Bank of exponential low-pass filters, one per named signal.

    Values are held in a single array updated in place by `step()`.
    """

    def __init__(self, specs: Sequence[SignalSpec]):
        if not specs:
            raise ConfigurationError("Smoother needs at least one signal")
        names = [s.name for s in specs]
        if len(set(names)) != len(names):
            raise ConfigurationError(f"duplicate signal names in {names}")

        self.specs = tuple(specs)
        self.names = tuple(names)
        self._index = {name: i for i, name in enumerate(names)}
        self.k = np.array([s.k for s in specs], dtype=np.float64)
        self.neutral = np.array([s.neutral for s in specs], dtype=np.float64)
        self.values = self.neutral.copy()
        self._raw = np.zeros_like(self.values)

    def __len__(self) -> int:
        return len(self.names)

    def __getitem__(self, name: str) -> float:
        return float(self.values[self._index[name]])

    def __contains__(self, name: str) -> bool:
        return name in self._index

    def reset(self):
        """Return every signal to its neutral value."""
        self.values[:] = self.neutral

    def step(self, raw: np.ndarray | Sequence[float] | Mapping[str, float]) -> np.ndarray:
        """
        Advance every filter by one frame.

        Args:
            raw: New raw values, either ordered like `names` or keyed by name.
                Names missing from a mapping are treated as their neutral value.

        Returns:
            The updated values array (shared, updated in place).
        """
        if isinstance(raw, Mapping):
            for i, name in enumerate(self.names):
                self._raw[i] = raw.get(name, self.neutral[i])
        else:
            self._raw[:] = raw

        # v += (raw - v) * k
        np.subtract(self._raw, self.values, out=self._raw)
        np.multiply(self._raw, self.k, out=self._raw)
        np.add(self.values, self._raw, out=self.values)
        return self.values

    @property
    def overall(self) -> float:
        """Unweighted mean of the tracked signals (derived, never smoothed itself)."""
        return float(self.values.mean())

    def as_dict(self) -> dict[str, float]:
        return {name: float(v) for name, v in zip(self.names, self.values)}
