"""Tests for the frame manifest exporter."""

import json

import numpy as np
import pytest

from helixio.io.exporter import FrameExporter
from helixio.io.source import StaticSource
from helixio.scene.driver import MotionDriver


@pytest.fixture
def run_records(bass_spectrum):
    """Ten frames of records plus the driver that produced them."""
    driver = MotionDriver()
    exporter = FrameExporter(include_geometry=True)
    records = [exporter.frame_record(s, driver) for s in driver.run(StaticSource(bass_spectrum), 10)]
    return records, driver


class TestFrameExporter:
    """Manifest building and serialization."""

    def test_frame_record_fields(self, run_records):
        records, _ = run_records
        rec = records[0]

        for key in ("frame_index", "time", "raw", "smoothed", "overall", "bpm", "is_beat", "rotation"):
            assert key in rec
        assert rec["audio_available"] is True

    def test_records_are_detached(self, run_records):
        """Later frames must not overwrite earlier records."""
        records, _ = run_records
        assert records[0]["smoothed"]["bass"] != records[-1]["smoothed"]["bass"]
        assert records[0]["geometry"]["satellite_positions"] != records[-1]["geometry"]["satellite_positions"]

    def test_geometry_shapes(self, run_records):
        records, _ = run_records
        geo = records[-1]["geometry"]

        assert np.array(geo["helix_positions"]).shape == (70, 3)
        assert len(geo["ribbons"]) == 4
        assert np.array(geo["ribbons"][0]["positions"]).shape == (120, 3)

    def test_no_geometry_by_default(self, silent_spectrum):
        driver = MotionDriver()
        rec = FrameExporter().frame_record(driver.advance(silent_spectrum), driver)
        assert "geometry" not in rec

    def test_precision(self, silent_spectrum):
        driver = MotionDriver()
        rec = FrameExporter(precision=2).frame_record(driver.advance(silent_spectrum))
        assert rec["time"] == 0.02

    def test_manifest_metadata(self, run_records):
        records, driver = run_records
        manifest = FrameExporter().build_manifest(records, fps=60)

        assert manifest["metadata"]["n_frames"] == 10
        assert manifest["metadata"]["fps"] == 60
        assert manifest["metadata"]["bpm"] == pytest.approx(driver.bpm, abs=1e-3)
        assert "static" not in manifest

    def test_empty_manifest(self):
        manifest = FrameExporter().build_manifest([], fps=60)
        assert manifest["metadata"]["n_frames"] == 0
        assert manifest["frames"] == []

    def test_export_json(self, run_records, tmp_path):
        records, _ = run_records
        path = FrameExporter().export_json(records, 60, tmp_path / "out.json", static={"k": [1, 2]})

        with open(path) as f:
            data = json.load(f)
        assert len(data["frames"]) == 10
        assert data["static"] == {"k": [1, 2]}

    def test_export_numpy(self, run_records, tmp_path):
        records, _ = run_records
        path = FrameExporter().export_numpy(records, 60, tmp_path / "out")

        assert path.suffix == ".npz"
        with np.load(path) as data:
            assert data["smoothed"].shape == (10, 5)
            assert data["satellites"].shape == (10, 3)
            assert list(data["band_names"]) == ["bass", "lowMid", "mid", "highMid", "high"]
            assert int(data["fps"]) == 60
