"""Tests for the helix animator."""

import math

import numpy as np
import pytest

from helixio.errors import ConfigurationError
from helixio.scene.helix import HelixAnimator, HelixConfig

BANDS = ("bass", "lowMid", "mid", "highMid", "high")


def uniform(value):
    return {b: value for b in BANDS}


class TestHelixAnimator:
    """Node and connector poses."""

    def test_layout_shapes(self):
        helix = HelixAnimator()
        assert helix.positions.shape == (70, 3)
        assert helix.scales.shape == (70,)
        assert helix.connector_segments.shape == (9, 2, 3)

    def test_bottom_listens_to_bass_top_to_high(self):
        helix = HelixAnimator()
        assert helix.node_bands[0] == "bass"
        assert helix.node_bands[-1] == "high"

    def test_heights_span_total_height(self):
        helix = HelixAnimator()
        assert helix.heights[0] == pytest.approx(-4.5)
        assert helix.heights[-1] == pytest.approx(4.5)

    def test_radius_follows_energy(self):
        helix = HelixAnimator()
        helix.update(uniform(1.0), 0.0, 0.0)

        radial = np.hypot(helix.positions[:, 0], helix.positions[:, 2])
        assert np.allclose(radial, 1.1 * 1.7)

    def test_zero_energy_rests_at_base_radius(self):
        helix = HelixAnimator()
        helix.update(uniform(0.0), 0.0, 0.0)

        radial = np.hypot(helix.positions[:, 0], helix.positions[:, 2])
        assert np.allclose(radial, 1.1)
        assert np.allclose(helix.scales, 0.1)

    def test_strands_are_opposite(self):
        """Strand 2 sits half a turn from strand 1 at the same height."""
        helix = HelixAnimator()
        helix.update(uniform(0.5), 0.0, 0.0)
        n = helix.node_count

        assert np.allclose(helix.positions[n:, [0, 2]], -helix.positions[:n, [0, 2]])
        assert np.allclose(helix.positions[n:, 1], helix.positions[:n, 1])

    def test_bass_only_swells_the_bottom(self):
        helix = HelixAnimator()
        signals = uniform(0.0)
        signals["bass"] = 1.0
        helix.update(signals, 0.0, 0.0)

        assert helix.radii[0] == pytest.approx(1.1 * 1.7)
        assert helix.radii[-1] == pytest.approx(1.1)
        assert helix.intensities[0] == 1.0

    def test_connector_opacity(self):
        helix = HelixAnimator()
        helix.update(uniform(1.0), 0.0, 0.0)
        assert np.allclose(helix.connector_opacity, 0.6)

    def test_connectors_join_strands(self):
        helix = HelixAnimator()
        helix.update(uniform(0.3), 0.0, 0.0)
        n = helix.node_count
        first = helix.connector_nodes[1]
        assert np.allclose(helix.connector_segments[1, 0], helix.positions[first])
        assert np.allclose(helix.connector_segments[1, 1], helix.positions[first + n])

    def test_rotation_and_time_recorded(self):
        helix = HelixAnimator()
        helix.update(uniform(0.3), 1.25, 2.0)
        assert helix.rotation == 1.25
        assert helix.time == 2.0

    def test_last_node_completes_all_turns(self):
        helix = HelixAnimator()
        assert helix.angles[-1] == pytest.approx(math.tau * 2.5)

    def test_invalid_config(self):
        with pytest.raises(ConfigurationError):
            HelixConfig(node_count=1)
