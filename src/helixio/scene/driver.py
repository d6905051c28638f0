"""
Per-frame motion driver.

Owns every piece of mutable animation state (band extractors, smoothers,
beat tracker, rotation governor, object animators) and advances all of it
from a single entry point, `advance()`, called once per render tick.

Frame flow:
  spectrum → band energies (per object kind) → smoothed signals
           → raw bass → BeatTracker → BPM → rotation speed
           → helix / satellites (+ ribbons) / particles
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, Optional

from helixio.config import EngineConfig
from helixio.core.bands import BandExtractor, BandLayout
from helixio.core.beat import BeatTracker
from helixio.core.motion import RotationGovernor
from helixio.core.smoother import SignalSpec, Smoother
from helixio.io.source import SpectrumSource
from helixio.scene.helix import HelixAnimator
from helixio.scene.particles import ParticleField
from helixio.scene.satellites import SatelliteSwarm

logger = logging.getLogger(__name__)

PARTICLE_BAND = "particles"


@dataclass
class FrameState:
    """Snapshot of one frame's scalar state for the rendering side."""

    frame_index: int
    time: float
    raw: Dict[str, float]
    smoothed: Dict[str, float]
    overall: float
    satellite_signals: Dict[str, float]
    particle_intensity: float
    bpm: float
    is_beat: bool
    beat_count: int
    rotation_speed: float
    rotation: float
    audio_available: bool


class MotionDriver:
    """
    Frame-synchronous animation engine.

    Pose arrays on `helix`, `satellites` and `particles` are updated in
    place every frame; `FrameState` carries the scalar signals alongside.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.cfg = config or EngineConfig()
        cfg = self.cfg

        # Helix: proportional five-band layout
        helix_neutral = cfg.neutral_for(cfg.band_fractions)
        self.helix_extractor = BandExtractor(
            BandLayout.proportional(cfg.n_bins, cfg.band_fractions, fallback=helix_neutral)
        )
        self.helix_smoother = Smoother(
            [SignalSpec(n, cfg.helix_smoothing[n], helix_neutral[n]) for n in self.helix_extractor.names]
        )

        # Satellites: absolute bins
        sat_cfg = cfg.satellites
        self.satellite_extractor = BandExtractor(
            BandLayout.absolute(cfg.n_bins, sat_cfg.band_ranges, fallback=sat_cfg.neutral)
        )
        self.satellite_smoother = Smoother(
            [SignalSpec(n, sat_cfg.smoothing[n], sat_cfg.neutral) for n in self.satellite_extractor.names]
        )

        # Particles: a single absolute band
        p_cfg = cfg.particles
        self.particle_extractor = BandExtractor(
            BandLayout.absolute(cfg.n_bins, {PARTICLE_BAND: p_cfg.band_range}, fallback=p_cfg.neutral)
        )
        self.particle_smoother = Smoother([SignalSpec(PARTICLE_BAND, p_cfg.smoothing, p_cfg.neutral)])

        self._bass_index = self.helix_extractor.names.index(cfg.beat_band)
        self.beat_tracker = BeatTracker(cfg.beat)
        self.rotation = RotationGovernor(cfg.rotation)

        self.helix = HelixAnimator(cfg.helix)
        self.satellites = SatelliteSwarm(cfg.satellites)
        self.particles = ParticleField(cfg.particles, seed=cfg.seed)

        self.time = 0.0
        self.frame_index = 0
        logger.debug(
            "MotionDriver ready: %s | %s | %s",
            self.helix_extractor.layout,
            self.satellite_extractor.layout,
            self.particle_extractor.layout,
        )

    @property
    def bpm(self) -> float:
        return self.beat_tracker.bpm

    def advance(self, spectrum, dt: Optional[float] = None) -> FrameState:
        """
        Advance the whole scene by one frame.

        Args:
            spectrum: Current byte spectrum snapshot, or None if audio is
                not ready. Never raises on bad input; falls back to neutral
                energies instead.
            dt: Frame duration in seconds (default 1 / fps).

        Returns:
            FrameState for this frame.
        """
        if dt is None:
            dt = 1.0 / self.cfg.fps
        self.time += dt
        now_ms = self.time * 1000.0

        raw = self.helix_extractor.extract(spectrum)
        self.helix_smoother.step(raw)
        audio_available = self.helix_extractor.used_snapshot
        # Fallback energies are not audio; keep them out of the beat history
        is_beat = False
        if audio_available:
            is_beat = self.beat_tracker.update(float(raw[self._bass_index]), now_ms)

        sat_raw = self.satellite_extractor.extract(spectrum)
        self.satellite_smoother.step(sat_raw)
        p_raw = self.particle_extractor.extract(spectrum)
        self.particle_smoother.step(p_raw)

        rotation = self.rotation.update(self.beat_tracker.bpm, dt)

        signals = self.helix_smoother.as_dict()
        sat_signals = self.satellite_smoother.as_dict()
        particle_intensity = self.particle_smoother[PARTICLE_BAND]

        self.helix.update(signals, rotation, self.time)
        self.satellites.update(sat_signals, self.time)
        self.particles.update(particle_intensity, self.time)

        state = FrameState(
            frame_index=self.frame_index,
            time=self.time,
            raw={n: float(v) for n, v in zip(self.helix_extractor.names, raw)},
            smoothed=signals,
            overall=self.helix_smoother.overall,
            satellite_signals=sat_signals,
            particle_intensity=particle_intensity,
            bpm=self.beat_tracker.bpm,
            is_beat=is_beat,
            beat_count=self.beat_tracker.state.beat_count,
            rotation_speed=self.rotation.speed,
            rotation=rotation,
            audio_available=audio_available,
        )
        self.frame_index += 1
        return state

    def run(
        self,
        source: SpectrumSource,
        n_frames: int,
        dt: Optional[float] = None,
        progress_callback: callable = None,
    ) -> Iterator[FrameState]:
        """
        Drive the scene from a spectrum source, one snapshot per frame.

        Args:
            source: Anything with `get_spectrum()`.
            n_frames: Number of frames to simulate.
            dt: Frame duration (default 1 / fps).
            progress_callback: Optional callback(current, total).

        Yields:
            FrameState per frame.
        """
        for i in range(n_frames):
            yield self.advance(source.get_spectrum(), dt)
            if progress_callback:
                progress_callback(i + 1, n_frames)
