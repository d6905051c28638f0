"""
Beat and tempo detection from raw bass energy.

A cheap heuristic rather than musical beat tracking: a beat is a bass
spike well above its own recent average, above an absolute floor, and
outside a refractory window after the previous beat. Intervals between
beats in a plausible tempo range are blended into a running estimate.
"""

import logging
from dataclasses import dataclass

import numpy as np

from helixio.errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class BeatConfig:
    """Thresholds for the bass spike detector."""

    history_size: int = 30  # frames of bass energy kept for the rolling average
    spike_ratio: float = 1.3  # bass must exceed average * ratio
    energy_floor: float = 0.4  # and exceed this absolute level
    refractory_ms: float = 200.0
    min_interval_ms: float = 200.0  # intervals outside this range are not blended
    max_interval_ms: float = 2000.0
    blend: float = 0.3  # weight of a new interval in the running estimate
    initial_interval_ms: float = 500.0  # 120 BPM seed

    def __post_init__(self):
        if self.history_size < 1:
            raise ConfigurationError("beat history_size must be >= 1")
        if self.spike_ratio <= 0:
            raise ConfigurationError("beat spike_ratio must be positive")
        if not 0.0 < self.blend <= 1.0:
            raise ConfigurationError("beat blend must be in (0, 1]")
        if not 0.0 < self.min_interval_ms < self.max_interval_ms:
            raise ConfigurationError("beat interval range must satisfy 0 < min < max")
        if self.initial_interval_ms <= 0:
            raise ConfigurationError("beat initial_interval_ms must be positive")
        if self.refractory_ms < 0:
            raise ConfigurationError("beat refractory_ms must be >= 0")


@dataclass
class BeatState:
    """Mutable detector state. Persists for the whole session."""

    last_beat_ms: float
    interval_ms: float
    history: np.ndarray  # ring buffer, only the first `count` slots are valid
    count: int = 0
    head: int = 0  # next slot to write
    beat_count: int = 0


class BeatTracker:
    """
    Rolling-average bass spike detector with a smoothed inter-beat interval.

    Feed it the raw (unsmoothed) bass energy once per frame together with
    the frame's event time in milliseconds.
    """

    def __init__(self, config: BeatConfig | None = None):
        self.cfg = config or BeatConfig()
        self.state = BeatState(
            last_beat_ms=0.0,
            interval_ms=float(self.cfg.initial_interval_ms),
            history=np.zeros(self.cfg.history_size, dtype=np.float64),
        )

    @property
    def bpm(self) -> float:
        return 60000.0 / self.state.interval_ms

    @property
    def average_energy(self) -> float:
        st = self.state
        if st.count == 0:
            return 0.0
        return float(st.history[: st.count].mean())

    def _push(self, energy: float):
        st = self.state
        st.history[st.head] = energy
        st.head = (st.head + 1) % st.history.shape[0]
        st.count = min(st.count + 1, st.history.shape[0])

    def update(self, bass: float, now_ms: float) -> bool:
        """
        Observe one frame of raw bass energy.

        Args:
            bass: Raw bass band energy in [0, 1].
            now_ms: Event time of this frame in milliseconds.

        Returns:
            True if a beat was detected on this frame.
        """
        cfg = self.cfg
        st = self.state

        self._push(bass)
        avg = self.average_energy

        since_last = now_ms - st.last_beat_ms
        detected = (
            bass > avg * cfg.spike_ratio
            and bass > cfg.energy_floor
            and since_last > cfg.refractory_ms
        )

        if detected:
            interval = since_last
            if cfg.min_interval_ms < interval < cfg.max_interval_ms:
                st.interval_ms = st.interval_ms * (1.0 - cfg.blend) + interval * cfg.blend
            # Reset even when the interval was rejected, so a stray beat
            # still consumes the refractory window
            st.last_beat_ms = now_ms
            st.beat_count += 1
            logger.debug(
                "Beat at %.1f ms (interval %.1f ms, estimate %.1f BPM)",
                now_ms,
                interval,
                self.bpm,
            )

        return detected
