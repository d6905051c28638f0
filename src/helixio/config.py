"""
Engine configuration.

One dataclass tree covers the whole scene. Every section validates
itself on construction, so a bad layout or constant fails before the
first frame rather than mid-session.
"""

import json
import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from helixio.core.bands import DEFAULT_FRACTIONS
from helixio.core.beat import BeatConfig
from helixio.core.motion import RotationConfig
from helixio.errors import ConfigurationError
from helixio.io.source import AnalyserConfig
from helixio.scene.helix import HelixConfig
from helixio.scene.particles import ParticleConfig
from helixio.scene.satellites import SatelliteConfig

logger = logging.getLogger(__name__)


def _default_helix_smoothing() -> dict[str, float]:
    return {"bass": 0.08, "lowMid": 0.06, "mid": 0.05, "highMid": 0.04, "high": 0.03}


@dataclass
class EngineConfig:
    """Top-level configuration for `MotionDriver`."""

    fps: int = 60
    n_bins: int = 256
    seed: Optional[int] = None

    # Helix bands: fractions of the spectrum, per-band smoothing and neutral level
    band_fractions: dict[str, tuple[float, float]] = field(
        default_factory=lambda: dict(DEFAULT_FRACTIONS)
    )
    helix_smoothing: dict[str, float] = field(default_factory=_default_helix_smoothing)
    helix_neutral: Union[float, dict[str, float]] = 0.3
    beat_band: str = "bass"

    helix: HelixConfig = field(default_factory=HelixConfig)
    satellites: SatelliteConfig = field(default_factory=SatelliteConfig)
    particles: ParticleConfig = field(default_factory=ParticleConfig)
    beat: BeatConfig = field(default_factory=BeatConfig)
    rotation: RotationConfig = field(default_factory=RotationConfig)
    analyser: AnalyserConfig = field(default_factory=AnalyserConfig)

    def __post_init__(self):
        if self.fps <= 0:
            raise ConfigurationError(f"fps must be positive, got {self.fps}")
        if self.n_bins < 1:
            raise ConfigurationError(f"n_bins must be >= 1, got {self.n_bins}")
        self.band_fractions = {k: tuple(v) for k, v in self.band_fractions.items()}

        bands = set(self.band_fractions)
        if set(self.helix_smoothing) != bands:
            raise ConfigurationError(
                f"helix_smoothing keys {sorted(self.helix_smoothing)} must match bands {sorted(bands)}"
            )
        if isinstance(self.helix_neutral, Mapping) and set(self.helix_neutral) != bands:
            raise ConfigurationError("helix_neutral keys must match the helix bands")
        if self.beat_band not in bands:
            raise ConfigurationError(f"beat_band '{self.beat_band}' is not a helix band")
        unknown = {name for _, name in self.helix.position_bands} - bands
        if unknown:
            raise ConfigurationError(f"helix position_bands refer to unknown bands {sorted(unknown)}")

    def neutral_for(self, bands) -> dict[str, float]:
        """Neutral (no-audio) level per helix band."""
        if isinstance(self.helix_neutral, Mapping):
            return {name: float(self.helix_neutral[name]) for name in bands}
        return {name: float(self.helix_neutral) for name in bands}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EngineConfig":
        """
        Build a config from plain (JSON-decoded) data.

        Missing keys take their defaults; unknown keys are rejected so a
        typo cannot silently fall back to a default.
        """
        sections = {
            "helix": HelixConfig,
            "satellites": SatelliteConfig,
            "particles": ParticleConfig,
            "beat": BeatConfig,
            "rotation": RotationConfig,
            "analyser": AnalyserConfig,
        }
        kwargs = {}
        for key, value in _checked(cls, data).items():
            if key in sections:
                kwargs[key] = sections[key](**_checked(sections[key], value))
            else:
                kwargs[key] = value
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _checked(section: type, data: Mapping[str, Any]) -> dict[str, Any]:
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"{section.__name__} section must be an object, got {type(data).__name__}")
    known = {f.name for f in fields(section)}
    unknown = set(data) - known
    if unknown:
        raise ConfigurationError(f"unknown {section.__name__} keys: {sorted(unknown)}")
    return dict(data)


def load_config(path: Union[str, Path]) -> EngineConfig:
    """
    Load an `EngineConfig` from a JSON file.

    Raises:
        ConfigurationError: If the file is not valid JSON or holds invalid values.
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"invalid JSON in {path}: {e}") from e

    config = EngineConfig.from_dict(data)
    logger.debug("Loaded config from %s", path)
    return config
