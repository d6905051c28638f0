"""
Frequency band extraction.

Slices a byte spectrum snapshot (0-255 per bin, as produced by an analyser
node) into named bands and reduces each band to its mean normalized
magnitude in [0.0, 1.0].
"""

import logging
import math
from dataclasses import dataclass
from typing import Mapping, Sequence

import numpy as np

from helixio.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Proportional partition used by the helix (fractions of the bin count)
DEFAULT_FRACTIONS: dict[str, tuple[float, float]] = {
    "bass": (0.0, 0.10),
    "lowMid": (0.10, 0.25),
    "mid": (0.25, 0.50),
    "highMid": (0.50, 0.75),
    "high": (0.75, 1.0),
}


@dataclass(frozen=True)
class BandRange:
    """Half-open range of spectrum bins [start, stop) belonging to one band."""

    name: str
    start: int
    stop: int

    @property
    def size(self) -> int:
        return max(0, self.stop - self.start)


class BandLayout:
    """
    Ordered, validated set of band ranges for a fixed spectrum size.

    Build one with `proportional()` (fractions of N) or `absolute()`
    (explicit bin indices). Layouts are checked once here so that the
    per-frame extraction path never has to.
    """

    def __init__(
        self,
        n_bins: int,
        ranges: Sequence[BandRange],
        fallback: float | Mapping[str, float] = 0.3,
    ):
        if n_bins < 1:
            raise ConfigurationError(f"n_bins must be >= 1, got {n_bins}")
        if not ranges:
            raise ConfigurationError("a band layout needs at least one band")

        names = [r.name for r in ranges]
        if len(set(names)) != len(names):
            raise ConfigurationError(f"duplicate band names in {names}")

        prev_stop = 0
        for r in ranges:
            if r.start < 0 or r.stop > n_bins:
                raise ConfigurationError(
                    f"band '{r.name}' [{r.start}, {r.stop}) outside 0..{n_bins}"
                )
            if r.start > r.stop:
                raise ConfigurationError(f"band '{r.name}' has start > stop")
            if r.start < prev_stop:
                raise ConfigurationError(
                    f"band '{r.name}' overlaps or precedes the previous band"
                )
            prev_stop = r.stop

        self.n_bins = n_bins
        self.ranges = tuple(ranges)
        self.names = tuple(names)

        if isinstance(fallback, Mapping):
            missing = set(self.names) - set(fallback)
            if missing:
                raise ConfigurationError(f"no fallback given for bands {sorted(missing)}")
            values = [float(fallback[n]) for n in self.names]
        else:
            values = [float(fallback)] * len(self.names)
        if any(not 0.0 <= v <= 1.0 for v in values):
            raise ConfigurationError(f"fallback energies must be in [0, 1], got {values}")
        self.fallback = np.array(values, dtype=np.float64)

        for r in self.ranges:
            if r.size == 0:
                logger.warning(
                    "Band '%s' resolves to zero bins for n_bins=%d; it will read as 0",
                    r.name,
                    n_bins,
                )

    def __len__(self) -> int:
        return len(self.ranges)

    def __repr__(self) -> str:
        spans = ", ".join(f"{r.name}[{r.start}:{r.stop}]" for r in self.ranges)
        return f"BandLayout(n_bins={self.n_bins}, {spans})"

    @classmethod
    def proportional(
        cls,
        n_bins: int,
        fractions: Mapping[str, tuple[float, float]] | None = None,
        fallback: float | Mapping[str, float] = 0.3,
    ) -> "BandLayout":
        """
        Build a layout from contiguous fractions of the spectrum.

        Args:
            n_bins: Number of bins in each snapshot.
            fractions: Ordered mapping name -> (lo, hi). Must start at 0.0,
                end at 1.0, and each band must begin where the previous ended.
            fallback: Energy reported when no snapshot is available.

        Returns:
            BandLayout whose bin edges are floor(n_bins * fraction).
        """
        fractions = DEFAULT_FRACTIONS if fractions is None else fractions
        if not fractions:
            raise ConfigurationError("a band layout needs at least one band")

        items = list(fractions.items())
        expected_lo = 0.0
        for name, (lo, hi) in items:
            if not (0.0 <= lo <= 1.0 and 0.0 <= hi <= 1.0):
                raise ConfigurationError(f"band '{name}' fractions must lie in [0, 1]")
            if not math.isclose(lo, expected_lo):
                raise ConfigurationError(
                    f"band '{name}' starts at {lo}, expected {expected_lo} (bands must be contiguous)"
                )
            if hi <= lo:
                raise ConfigurationError(f"band '{name}' is empty or reversed ({lo}, {hi})")
            expected_lo = hi
        if not math.isclose(expected_lo, 1.0):
            raise ConfigurationError(f"bands must cover the whole spectrum, last ends at {expected_lo}")

        ranges = []
        for idx, (name, (lo, hi)) in enumerate(items):
            start = int(math.floor(n_bins * lo))
            # Last band always reaches the end, like slice(start) with no stop
            stop = n_bins if idx == len(items) - 1 else int(math.floor(n_bins * hi))
            ranges.append(BandRange(name, start, stop))
        return cls(n_bins, ranges, fallback)

    @classmethod
    def absolute(
        cls,
        n_bins: int,
        ranges: Mapping[str, tuple[int, int]],
        fallback: float | Mapping[str, float] = 0.2,
    ) -> "BandLayout":
        """
        Build a layout from explicit bin ranges.

        Ranges need not cover the whole spectrum, but each must be non-empty,
        inside 0..n_bins and listed in ascending, non-overlapping order.
        """
        built = []
        for name, (start, stop) in ranges.items():
            if stop <= start:
                raise ConfigurationError(f"band '{name}' range [{start}, {stop}) is empty")
            built.append(BandRange(name, int(start), int(stop)))
        return cls(n_bins, built, fallback)


class BandExtractor:
    """
    Reduces spectrum snapshots to per-band energies.

    The output buffer is allocated once; `extract()` overwrites and returns
    it every call, so copy the result if it must outlive the next frame.
    """

    def __init__(self, layout: BandLayout):
        self.layout = layout
        self._starts = np.array([r.start for r in layout.ranges], dtype=np.intp)
        self._stops = np.array([r.stop for r in layout.ranges], dtype=np.intp)
        sizes = (self._stops - self._starts).astype(np.float64)
        self._has_bins = sizes > 0
        # Avoid a zero divisor; empty bands are masked to 0 afterwards
        self._divisor = np.where(self._has_bins, sizes * 255.0, 1.0)

        self._csum = np.zeros(layout.n_bins + 1, dtype=np.float64)
        self.energies = np.zeros(len(layout), dtype=np.float64)
        self._warned_length = False
        # False when the last extract() fell back instead of reading the snapshot
        self.used_snapshot = False

    @property
    def names(self) -> tuple[str, ...]:
        return self.layout.names

    def extract(self, snapshot: Sequence[int] | np.ndarray | bytes | None) -> np.ndarray:
        """
        Compute band energies for one snapshot.

        Args:
            snapshot: N byte magnitudes (array, sequence or bytes-like), or
                None when audio is not ready.

        Returns:
            Array of energies in [0, 1], ordered as `names`.
        """
        self.used_snapshot = False
        if snapshot is None:
            self.energies[:] = self.layout.fallback
            return self.energies

        if isinstance(snapshot, (bytes, bytearray, memoryview)):
            data = np.frombuffer(snapshot, dtype=np.uint8)
        else:
            data = np.asarray(snapshot)
        if data.ndim != 1 or data.shape[0] != self.layout.n_bins:
            if not self._warned_length:
                logger.warning(
                    "Spectrum snapshot has shape %s, expected (%d,); using fallback energies",
                    data.shape,
                    self.layout.n_bins,
                )
                self._warned_length = True
            self.energies[:] = self.layout.fallback
            return self.energies

        self.used_snapshot = True
        np.cumsum(data, dtype=np.float64, out=self._csum[1:])
        np.subtract(self._csum[self._stops], self._csum[self._starts], out=self.energies)
        np.divide(self.energies, self._divisor, out=self.energies)
        self.energies[~self._has_bins] = 0.0
        np.clip(self.energies, 0.0, 1.0, out=self.energies)
        return self.energies

    def extract_dict(self, snapshot: Sequence[int] | np.ndarray | None) -> dict[str, float]:
        """Return a detached {band: energy} mapping for one snapshot."""
        values = self.extract(snapshot)
        return {name: float(v) for name, v in zip(self.names, values)}
