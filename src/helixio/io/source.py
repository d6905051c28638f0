"""
Spectrum sources.

The engine reads one byte spectrum per frame through `get_spectrum()`.
Live capture is out of scope; this module provides a constant source for
idle/silent runs and an offline emulation of a browser analyser node
(`getByteFrequencyData`) over a decoded audio file.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, Union

import librosa
import numpy as np
from scipy import signal as scipy_signal

from helixio.errors import ConfigurationError

logger = logging.getLogger(__name__)


class SpectrumSource(Protocol):
    """Anything that can hand the engine a byte spectrum snapshot."""

    def get_spectrum(self) -> Optional[np.ndarray]:
        ...


class StaticSource:
    """Returns the same snapshot (or None) on every call."""

    def __init__(self, snapshot=None):
        self.snapshot = None if snapshot is None else np.asarray(snapshot, dtype=np.uint8)

    def get_spectrum(self) -> Optional[np.ndarray]:
        return self.snapshot


@dataclass
class AnalyserConfig:
    """Analyser node emulation parameters (browser defaults)."""

    fft_size: int = 512  # gives fft_size / 2 = 256 bins
    min_db: float = -100.0
    max_db: float = -30.0
    smoothing_time_constant: float = 0.8
    sample_rate: int = 44100

    def __post_init__(self):
        if self.fft_size < 32 or self.fft_size & (self.fft_size - 1):
            raise ConfigurationError(f"fft_size must be a power of two >= 32, got {self.fft_size}")
        if self.max_db <= self.min_db:
            raise ConfigurationError("analyser max_db must be greater than min_db")
        if not 0.0 <= self.smoothing_time_constant < 1.0:
            raise ConfigurationError("analyser smoothing_time_constant must be in [0, 1)")

    @property
    def n_bins(self) -> int:
        return self.fft_size // 2


class AnalyserEmulator:
    """
    Replays an audio signal as per-frame byte spectra.

    Each call advances one video frame: the window ends at the frame's
    playback position, is Blackman-weighted, transformed, smoothed over
    time and mapped from [min_db, max_db] onto 0..255. Once playback
    passes the end of the signal it returns None.
    """

    def __init__(self, y: np.ndarray, sr: int, fps: int = 60, config: AnalyserConfig | None = None):
        self.cfg = config or AnalyserConfig()
        self.y = np.asarray(y, dtype=np.float64)
        self.sr = int(sr)
        self.fps = fps
        self.frame = 0

        n = self.cfg.fft_size
        self._window = scipy_signal.get_window("blackman", n)
        self._frame_buf = np.zeros(n, dtype=np.float64)
        self._smoothed = np.zeros(self.cfg.n_bins, dtype=np.float64)
        self.spectrum = np.zeros(self.cfg.n_bins, dtype=np.uint8)

    @classmethod
    def from_file(
        cls,
        path: Union[str, Path],
        fps: int = 60,
        config: AnalyserConfig | None = None,
    ) -> "AnalyserEmulator":
        """Load and mono-mix an audio file at the analyser's sample rate."""
        config = config or AnalyserConfig()
        logger.info("Loading audio: %s", path)
        y, sr = librosa.load(path, sr=config.sample_rate, mono=True)
        return cls(y, sr, fps=fps, config=config)

    @property
    def duration(self) -> float:
        return len(self.y) / self.sr

    @property
    def n_frames(self) -> int:
        return int(self.duration * self.fps)

    def get_spectrum(self) -> Optional[np.ndarray]:
        if self.frame >= self.n_frames:
            return None

        n = self.cfg.fft_size
        end = min(len(self.y), int(round((self.frame + 1) * self.sr / self.fps)))
        start = end - n
        self._frame_buf[:] = 0.0
        # Zero-pad the front until a full window of audio exists
        if start < 0:
            if end > 0:
                self._frame_buf[-end:] = self.y[:end]
        else:
            self._frame_buf[:] = self.y[start:end]
        self.frame += 1

        magnitudes = np.abs(np.fft.rfft(self._frame_buf * self._window))[: self.cfg.n_bins] / n

        tau = self.cfg.smoothing_time_constant
        self._smoothed *= tau
        self._smoothed += (1.0 - tau) * magnitudes

        with np.errstate(divide="ignore"):
            db = 20.0 * np.log10(self._smoothed)
        scaled = (db - self.cfg.min_db) * (255.0 / (self.cfg.max_db - self.cfg.min_db))
        np.clip(np.floor(scaled), 0, 255, out=scaled)
        self.spectrum[:] = scaled
        return self.spectrum
