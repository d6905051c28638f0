"""
Frame-synchronous signal processing and geometry core.
"""

from helixio.core.bands import BandExtractor, BandLayout, BandRange
from helixio.core.beat import BeatState, BeatTracker
from helixio.core.motion import BandLookup, RotationGovernor, energy_scale
from helixio.core.smoother import SignalSpec, Smoother, lerp
from helixio.core.trail import RibbonGeometry, TrailBuilder, TrailHistory
