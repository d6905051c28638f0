"""
Animated scene objects driven by the core signals.

`MotionDriver` lives in `helixio.scene.driver`.
"""

from helixio.scene.helix import HelixAnimator, HelixConfig
from helixio.scene.particles import ParticleConfig, ParticleField
from helixio.scene.satellites import SatelliteConfig, SatelliteSpec, SatelliteSwarm
