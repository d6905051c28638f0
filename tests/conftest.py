"""Pytest configuration and shared fixtures."""

import numpy as np
import pytest
import soundfile as sf

N_BINS = 256
TEST_SR = 22050


@pytest.fixture
def n_bins() -> int:
    """Default analyser bin count (fftSize 512)."""
    return N_BINS


@pytest.fixture
def silent_spectrum() -> np.ndarray:
    """All-zero byte spectrum."""
    return np.zeros(N_BINS, dtype=np.uint8)


@pytest.fixture
def full_spectrum() -> np.ndarray:
    """Every bin at full scale."""
    return np.full(N_BINS, 255, dtype=np.uint8)


@pytest.fixture
def ramp_spectrum() -> np.ndarray:
    """Bin i holds i (mod 256), so band means are easy to compute by hand."""
    return (np.arange(N_BINS) % 256).astype(np.uint8)


@pytest.fixture
def bass_spectrum() -> np.ndarray:
    """Strong low end only."""
    spec = np.zeros(N_BINS, dtype=np.uint8)
    spec[:25] = 255
    return spec


@pytest.fixture
def sine_wav(tmp_path):
    """
    Write a 1 second 110Hz sine with 4 bass pulses to a WAV file.

    Returns:
        Path to the file.
    """
    duration = 1.0
    t = np.linspace(0, duration, int(TEST_SR * duration), endpoint=False)
    envelope = 0.2 + 0.8 * (np.sin(2 * np.pi * 4 * t) > 0.9)
    y = (0.5 * envelope * np.sin(2 * np.pi * 110 * t)).astype(np.float32)
    path = tmp_path / "pulse.wav"
    sf.write(path, y, TEST_SR)
    return path
