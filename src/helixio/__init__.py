"""
helixio - audio-reactive 3D visualizer engine.

Turns per-frame byte spectra into smoothed band energies, a running BPM
estimate, helix / satellite / particle poses and ribbon trail geometry.
"""

__version__ = "0.1.0"

from helixio.config import EngineConfig, load_config
from helixio.errors import ConfigurationError
from helixio.scene.driver import FrameState, MotionDriver
