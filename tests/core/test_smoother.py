"""Tests for exponential signal smoothing."""

import numpy as np
import pytest

from helixio.core.smoother import HELIX_SIGNALS, SignalSpec, Smoother, lerp
from helixio.errors import ConfigurationError


def test_lerp():
    assert lerp(0.0, 1.0, 0.25) == pytest.approx(0.25)
    assert lerp(2.0, 2.0, 0.5) == 2.0


class TestSignalSpec:
    def test_rejects_zero_k(self):
        with pytest.raises(ConfigurationError):
            SignalSpec("bass", 0.0)

    def test_rejects_k_above_one(self):
        with pytest.raises(ConfigurationError):
            SignalSpec("bass", 1.5)

    def test_rejects_zero_neutral(self):
        """Objects must never collapse to invisible before audio arrives."""
        with pytest.raises(ConfigurationError):
            SignalSpec("bass", 0.1, neutral=0.0)


class TestSmoother:
    """Per-signal low-pass filtering."""

    def test_starts_at_neutral(self):
        smoother = Smoother(HELIX_SIGNALS)
        assert all(v == pytest.approx(0.3) for v in smoother.as_dict().values())
        assert smoother.overall == pytest.approx(0.3)

    def test_single_step_matches_formula(self):
        smoother = Smoother(HELIX_SIGNALS)
        smoother.step(np.ones(5))

        expected = [0.3 + 0.7 * s.k for s in HELIX_SIGNALS]
        assert np.allclose(smoother.values, expected)

    def test_converges_to_constant_input(self):
        """Repeated steps with constant raw input approach it geometrically."""
        smoother = Smoother(HELIX_SIGNALS)
        for _ in range(600):
            smoother.step(np.full(5, 0.8))
        assert np.allclose(smoother.values, 0.8, atol=1e-3)

    def test_monotone_approach_without_overshoot(self):
        smoother = Smoother([SignalSpec("bass", 0.08)])
        prev = smoother["bass"]
        for _ in range(100):
            smoother.step([1.0])
            cur = smoother["bass"]
            assert prev < cur <= 1.0
            prev = cur

    def test_lower_bands_react_faster(self):
        smoother = Smoother(HELIX_SIGNALS)
        for _ in range(10):
            smoother.step(np.ones(5))
        values = smoother.values
        assert np.all(np.diff(values) < 0)

    def test_mapping_input_missing_names_hold_neutral(self):
        smoother = Smoother(HELIX_SIGNALS)
        for _ in range(50):
            smoother.step({"bass": 1.0})
        assert smoother["bass"] > 0.9
        assert smoother["high"] == pytest.approx(0.3)

    def test_overall_is_mean(self):
        smoother = Smoother(HELIX_SIGNALS)
        smoother.step([1.0, 0.0, 0.5, 0.2, 0.9])
        assert smoother.overall == pytest.approx(smoother.values.mean())

    def test_reset(self):
        smoother = Smoother(HELIX_SIGNALS)
        smoother.step(np.zeros(5))
        smoother.reset()
        assert np.allclose(smoother.values, 0.3)

    def test_duplicate_names_rejected(self):
        with pytest.raises(ConfigurationError):
            Smoother([SignalSpec("a", 0.1), SignalSpec("a", 0.2)])

    def test_empty_rejected(self):
        with pytest.raises(ConfigurationError):
            Smoother([])

    def test_contains_and_len(self):
        smoother = Smoother(HELIX_SIGNALS)
        assert "mid" in smoother
        assert "sub" not in smoother
        assert len(smoother) == 5
