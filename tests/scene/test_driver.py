"""Tests for the per-frame motion driver."""

import numpy as np
import pytest

from helixio.config import EngineConfig
from helixio.core.beat import BeatConfig
from helixio.io.source import StaticSource
from helixio.scene.driver import PARTICLE_BAND, FrameState, MotionDriver


class TestMotionDriver:
    """End-to-end frame flow from spectrum to poses."""

    def test_advance_returns_frame_state(self, silent_spectrum):
        driver = MotionDriver()
        state = driver.advance(silent_spectrum)

        assert isinstance(state, FrameState)
        assert state.frame_index == 0
        assert state.time == pytest.approx(1 / 60)
        assert set(state.smoothed) == {"bass", "lowMid", "mid", "highMid", "high"}
        assert set(state.satellite_signals) == {"bass", "mid", "high"}

    def test_signals_start_neutral_without_audio(self):
        """No snapshot: every helix signal rests at 0.3, not 0."""
        driver = MotionDriver()
        for _ in range(120):
            state = driver.advance(None)

        assert not state.audio_available
        assert all(v == pytest.approx(0.3) for v in state.smoothed.values())
        assert all(v == pytest.approx(0.2) for v in state.satellite_signals.values())
        assert state.particle_intensity == pytest.approx(0.1)
        assert not state.is_beat

    def test_silence_decays_signals(self, silent_spectrum):
        driver = MotionDriver()
        for _ in range(300):
            state = driver.advance(silent_spectrum)

        assert state.smoothed["bass"] < 0.01
        assert state.smoothed["high"] < 0.05
        assert state.overall == pytest.approx(np.mean(list(state.smoothed.values())))

    def test_no_beats_on_silence(self, silent_spectrum):
        driver = MotionDriver()
        for _ in range(300):
            state = driver.advance(silent_spectrum)
        assert state.beat_count == 0
        assert state.bpm == pytest.approx(120.0)

    def test_pulsed_bass_is_tracked(self, silent_spectrum, bass_spectrum):
        """A bass hit every 30 frames at 60fps drives the estimate toward 120 BPM."""
        driver = MotionDriver(EngineConfig(beat=BeatConfig(initial_interval_ms=1000.0)))
        beats = 0
        for i in range(30 * 16):
            spectrum = bass_spectrum if i % 30 == 29 else silent_spectrum
            beats += driver.advance(spectrum).is_beat

        assert beats >= 12
        assert driver.bpm == pytest.approx(120.0, abs=2.0)

    def test_beat_uses_raw_not_smoothed_bass(self, silent_spectrum, bass_spectrum):
        """A single-frame spike registers even though the smoothed bass barely moves."""
        driver = MotionDriver()
        for _ in range(40):
            driver.advance(silent_spectrum)
        state = driver.advance(bass_spectrum)

        assert state.is_beat
        assert state.raw["bass"] == pytest.approx(1.0)
        assert state.smoothed["bass"] < 0.2

    def test_rotation_speed_within_clamp(self, full_spectrum):
        driver = MotionDriver()
        source = StaticSource(full_spectrum)
        for state in driver.run(source, 200):
            assert 0.15 <= state.rotation_speed <= 0.6
        assert state.rotation > 0.0

    def test_helix_radius_follows_smoothed_bass(self, full_spectrum):
        driver = MotionDriver()
        for _ in range(200):
            state = driver.advance(full_spectrum)
        assert driver.helix.radii[0] == pytest.approx(1.1 * (1 + state.smoothed["bass"] * 0.7))

    def test_satellite_ribbons_built(self, silent_spectrum):
        driver = MotionDriver()
        for _ in range(10):
            driver.advance(silent_spectrum)
        assert all(r.visible for r in driver.satellites.ribbons)
        assert all(len(h) == 10 for h in driver.satellites.histories)

    def test_custom_dt(self, silent_spectrum):
        driver = MotionDriver()
        driver.advance(silent_spectrum, dt=0.5)
        state = driver.advance(silent_spectrum, dt=0.5)
        assert state.time == pytest.approx(1.0)
        assert state.frame_index == 1

    def test_run_reports_progress(self, silent_spectrum):
        driver = MotionDriver()
        calls = []
        states = list(driver.run(StaticSource(silent_spectrum), 5, progress_callback=lambda c, t: calls.append((c, t))))

        assert len(states) == 5
        assert calls[-1] == (5, 5)

    def test_malformed_snapshot_falls_back(self):
        driver = MotionDriver()
        state = driver.advance(np.zeros(100, dtype=np.uint8))
        assert state.raw["bass"] == pytest.approx(0.3)

    def test_seed_makes_particles_reproducible(self, silent_spectrum):
        a = MotionDriver(EngineConfig(seed=5))
        b = MotionDriver(EngineConfig(seed=5))
        for _ in range(10):
            a.advance(silent_spectrum)
            b.advance(silent_spectrum)
        assert np.array_equal(a.particles.positions, b.particles.positions)

    def test_bytes_snapshot_is_audio(self):
        driver = MotionDriver()
        state = driver.advance(bytes([255] * 256))

        assert state.audio_available
        assert state.raw["bass"] == pytest.approx(1.0)

    def test_fallback_frame_is_not_audio(self):
        state = MotionDriver().advance(np.zeros(100, dtype=np.uint8))
        assert not state.audio_available

    def test_absent_audio_skips_beat_tracking(self, silent_spectrum, bass_spectrum):
        """Idle fallback energies never enter the bass history."""
        driver = MotionDriver()
        for _ in range(60):
            driver.advance(None)
        assert driver.beat_tracker.state.count == 0

        for _ in range(40):
            driver.advance(silent_spectrum)
        state = driver.advance(bass_spectrum)
        assert state.is_beat
        assert driver.beat_tracker.average_energy == pytest.approx(1.0 / 30.0)

    def test_silence_keeps_ribbons_at_floor(self, silent_spectrum):
        """Five seconds of silence: ribbon and particle intensity only fall."""
        driver = MotionDriver()
        prev_ribbons = [r.intensity for r in driver.satellites.ribbons]
        prev_particles = driver.particle_smoother[PARTICLE_BAND]
        for frame in range(300):
            state = driver.advance(silent_spectrum)
            ribbons = [r.intensity for r in driver.satellites.ribbons]
            if frame > 0:
                assert all(cur <= prev for cur, prev in zip(ribbons, prev_ribbons))
            assert state.particle_intensity <= prev_particles
            prev_ribbons = ribbons
            prev_particles = state.particle_intensity

        assert max(prev_ribbons) < 0.01
        assert prev_particles < 0.01
        assert state.beat_count == 0
