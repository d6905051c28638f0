"""
Spectrum sources and manifest export.
"""

from helixio.io.exporter import FrameExporter
from helixio.io.source import AnalyserConfig, AnalyserEmulator, SpectrumSource, StaticSource
