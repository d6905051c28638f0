"""
Frame manifest serialization.

Writes the engine's per-frame state to JSON (human-readable, one dict per
frame) or to a compressed NumPy archive for fast reloading by a renderer.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence, Union

import numpy as np


@dataclass
class ManifestMetadata:
    """Metadata header for a frame manifest."""

    fps: int
    n_frames: int
    duration: float
    bpm: float
    beat_count: int
    schema_version: str = "1.0"


class FrameExporter:
    """
    Exports a sequence of frame records to a manifest file.

    Records are built with `frame_record()` while the engine runs, since
    pose arrays are overwritten on the next frame.
    """

    def __init__(self, precision: int = 4, include_geometry: bool = False):
        """
        Initialize the exporter.

        Args:
            precision: Decimal places for floating point values.
            include_geometry: Also record helix nodes, satellite poses and
                ribbon vertices per frame (large).
        """
        self.precision = precision
        self.include_geometry = include_geometry

    def _round(self, value: float) -> float:
        return round(float(value), self.precision)

    def _round_dict(self, values: dict[str, float]) -> dict[str, float]:
        return {k: self._round(v) for k, v in values.items()}

    def _round_array(self, arr: np.ndarray) -> list:
        return np.round(arr, self.precision).tolist()

    def frame_record(self, state, driver=None) -> dict[str, Any]:
        """
        Build a detached dictionary for one frame.

        Args:
            state: FrameState returned by `MotionDriver.advance()`.
            driver: The driver, required when geometry is included.

        Returns:
            Dictionary with all frame data.
        """
        record: dict[str, Any] = {
            "frame_index": state.frame_index,
            "time": self._round(state.time),
            "audio_available": bool(state.audio_available),
            "raw": self._round_dict(state.raw),
            "smoothed": self._round_dict(state.smoothed),
            "overall": self._round(state.overall),
            "satellites": self._round_dict(state.satellite_signals),
            "particle_intensity": self._round(state.particle_intensity),
            "bpm": self._round(state.bpm),
            "is_beat": bool(state.is_beat),
            "beat_count": int(state.beat_count),
            "rotation_speed": self._round(state.rotation_speed),
            "rotation": self._round(state.rotation),
        }

        if self.include_geometry and driver is not None:
            helix = driver.helix
            swarm = driver.satellites
            record["geometry"] = {
                "helix_positions": self._round_array(helix.positions),
                "helix_scales": self._round_array(helix.scales),
                "connector_opacity": self._round_array(helix.connector_opacity),
                "satellite_positions": self._round_array(swarm.positions),
                "satellite_scales": self._round_array(swarm.scales),
                "ribbons": [
                    {
                        "visible": ribbon.visible,
                        "intensity": self._round(ribbon.intensity),
                        "positions": self._round_array(ribbon.positions),
                    }
                    for ribbon in swarm.ribbons
                ],
                "particle_rotation": self._round_array(driver.particles.rotation),
            }
        return record

    def build_manifest(
        self,
        records: Sequence[dict[str, Any]],
        fps: int,
        static: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Build the complete manifest dictionary.

        Args:
            records: Frame records from `frame_record()`.
            fps: Frames per second of the run.
            static: Optional data that never changes per frame (e.g. ribbon
                triangle indices).

        Returns:
            Complete manifest dictionary ready for serialization.
        """
        last = records[-1] if records else {}
        metadata = ManifestMetadata(
            fps=fps,
            n_frames=len(records),
            duration=self._round(len(records) / fps),
            bpm=last.get("bpm", 0.0),
            beat_count=last.get("beat_count", 0),
        )
        manifest = {
            "metadata": {
                "fps": metadata.fps,
                "n_frames": metadata.n_frames,
                "duration": metadata.duration,
                "bpm": metadata.bpm,
                "beat_count": metadata.beat_count,
                "schema_version": metadata.schema_version,
            },
            "frames": list(records),
        }
        if static:
            manifest["static"] = static
        return manifest

    def export_json(
        self,
        records: Sequence[dict[str, Any]],
        fps: int,
        output_path: Union[str, Path],
        static: dict[str, Any] | None = None,
    ) -> Path:
        """
        Write the manifest as JSON.

        Returns:
            Path to written file.
        """
        output_path = Path(output_path)
        manifest = self.build_manifest(records, fps, static)
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(manifest, f, indent=2)
        return output_path

    def export_numpy(
        self,
        records: Sequence[dict[str, Any]],
        fps: int,
        output_path: Union[str, Path],
    ) -> Path:
        """
        Export per-frame scalar signals as a NumPy .npz archive.

        Band signals are stacked as (n_frames, n_bands) arrays with the band
        names stored alongside.

        Returns:
            Path to written file.
        """
        output_path = Path(output_path)
        if output_path.suffix != ".npz":
            output_path = output_path.with_suffix(".npz")
        bands = list(records[0]["smoothed"]) if records else []
        sat_bands = list(records[0]["satellites"]) if records else []

        np.savez_compressed(
            output_path,
            fps=np.array(fps),
            time=np.array([r["time"] for r in records], dtype=np.float64),
            band_names=np.array(bands),
            raw=np.array([[r["raw"][b] for b in bands] for r in records], dtype=np.float64),
            smoothed=np.array([[r["smoothed"][b] for b in bands] for r in records], dtype=np.float64),
            overall=np.array([r["overall"] for r in records], dtype=np.float64),
            satellite_band_names=np.array(sat_bands),
            satellites=np.array(
                [[r["satellites"][b] for b in sat_bands] for r in records], dtype=np.float64
            ),
            particle_intensity=np.array([r["particle_intensity"] for r in records], dtype=np.float64),
            bpm=np.array([r["bpm"] for r in records], dtype=np.float64),
            is_beat=np.array([r["is_beat"] for r in records], dtype=bool),
            rotation=np.array([r["rotation"] for r in records], dtype=np.float64),
        )
        return output_path
