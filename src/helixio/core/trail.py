"""
Ribbon trail geometry.

A trailed object pushes its position into a bounded history every frame.
`TrailBuilder` turns that history into a tapering triangle-strip ribbon
with a fixed vertex count: slots past the end of the real history clamp
to the oldest point, so a young trail collapses onto itself instead of
reading garbage.

Vertex layout (M = n_points):
    positions[2i]     left edge at slot i
    positions[2i + 1] right edge at slot i
    uvs               (t, 0) left, (t, 1) right, t = i / (M - 1)
"""

from dataclasses import dataclass

import numpy as np

from helixio.errors import ConfigurationError

UP = np.array([0.0, 1.0, 0.0])
X_AXIS = np.array([1.0, 0.0, 0.0])

_EPS = 1e-9


class TrailHistory:
    """
    Fixed-capacity ring buffer of 3D positions, read newest-first.

    Index 0 is the most recent push; the oldest point is evicted once the
    buffer is full.
    """

    def __init__(self, capacity: int = 80):
        if capacity < 1:
            raise ConfigurationError(f"trail capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self._points = np.zeros((capacity, 3), dtype=np.float64)
        self._head = -1  # slot holding the newest point
        self._count = 0

    def __len__(self) -> int:
        return self._count

    def push(self, position) -> None:
        self._head = (self._head + 1) % self.capacity
        self._points[self._head] = position
        self._count = min(self._count + 1, self.capacity)

    def clear(self) -> None:
        self._head = -1
        self._count = 0

    def slots(self, ages: np.ndarray) -> np.ndarray:
        """Map newest-first ages (0 = newest) to ring buffer rows."""
        return (self._head - ages) % self.capacity

    def __getitem__(self, age: int) -> np.ndarray:
        if not 0 <= age < self._count:
            raise IndexError(f"trail index {age} out of range for length {self._count}")
        return self._points[(self._head - age) % self.capacity]

    def to_array(self) -> np.ndarray:
        """Copy of the history, newest first, shape (len, 3)."""
        return self._points[self.slots(np.arange(self._count))].copy()

    @property
    def points(self) -> np.ndarray:
        """Raw ring storage; use `slots()` to index it in age order."""
        return self._points


@dataclass
class RibbonGeometry:
    """Per-frame ribbon output plus its static connectivity."""

    positions: np.ndarray  # (2M, 3)
    uvs: np.ndarray  # (2M, 2)
    progress: np.ndarray  # (2M,) 0 = head, 1 = tail
    centers: np.ndarray  # (M, 3) spine points after index clamping
    indices: np.ndarray  # (2(M-1), 3) triangle list, never changes
    intensity: float = 0.0
    visible: bool = False

    @property
    def n_points(self) -> int:
        return self.centers.shape[0]


def strip_indices(n_points: int) -> np.ndarray:
    """Two triangles per quad between consecutive left/right vertex pairs."""
    tris = []
    for i in range(n_points - 1):
        i2 = i * 2
        tris.append((i2, i2 + 1, i2 + 2))
        tris.append((i2 + 1, i2 + 3, i2 + 2))
    return np.array(tris, dtype=np.uint32).reshape(-1, 3)


class TrailBuilder:
    """
    Rebuilds a ribbon from a `TrailHistory` every frame.

    All output and scratch arrays are allocated here; `build()` overwrites
    them in full each call.
    """

    def __init__(self, n_points: int = 60, width: float = 0.08, tail_ratio: float = 0.1):
        if n_points < 2:
            raise ConfigurationError(f"ribbon needs at least 2 points, got {n_points}")
        if width <= 0:
            raise ConfigurationError(f"ribbon width must be positive, got {width}")
        if not 0.0 < tail_ratio <= 1.0:
            raise ConfigurationError(f"ribbon tail_ratio must be in (0, 1], got {tail_ratio}")

        self.n_points = n_points
        self.width = width
        self.tail_ratio = tail_ratio

        m = n_points
        self._ages = np.arange(m)
        t = self._ages / (m - 1)
        # Never tapers to exactly zero, avoiding degenerate triangles
        self.half_widths = self.half_width_at(t)

        progress = np.repeat(t, 2)
        uvs = np.zeros((2 * m, 2), dtype=np.float64)
        uvs[:, 0] = progress
        uvs[1::2, 1] = 1.0

        self.geometry = RibbonGeometry(
            positions=np.zeros((2 * m, 3), dtype=np.float64),
            uvs=uvs,
            progress=progress,
            centers=np.zeros((m, 3), dtype=np.float64),
            indices=strip_indices(m),
        )

        self._src = np.zeros(m, dtype=np.intp)
        self._prev = np.zeros(m, dtype=np.intp)
        self._next = np.zeros(m, dtype=np.intp)
        self._tangents = np.zeros((m, 3), dtype=np.float64)
        self._perp = np.zeros((m, 3), dtype=np.float64)
        self._lengths = np.zeros(m, dtype=np.float64)

    def half_width_at(self, t: float) -> float:
        return self.width * (1.0 - t * (1.0 - self.tail_ratio))

    def build(self, history: TrailHistory, intensity: float = 0.0) -> RibbonGeometry:
        """
        Recompute the ribbon for the current history.

        Args:
            history: Newest-first positions of the trailed object.
            intensity: Owning object's current band energy, clipped to [0, 1].

        Returns:
            The builder's `RibbonGeometry` (same object every call).
        """
        geo = self.geometry
        geo.intensity = float(min(1.0, max(0.0, intensity)))
        n = len(history)
        geo.visible = n >= 2

        if n == 0:
            geo.centers[:] = 0.0
            geo.positions[:] = 0.0
            return geo

        last = n - 1
        np.minimum(self._ages, last, out=self._src)
        np.clip(self._src - 1, 0, last, out=self._prev)
        np.clip(self._src + 1, 0, last, out=self._next)

        pts = history.points
        geo.centers[:] = pts[history.slots(self._src)]

        # Central difference inside the history, one-sided at either end
        np.subtract(pts[history.slots(self._next)], pts[history.slots(self._prev)], out=self._tangents)
        self._normalize(self._tangents, fallback=UP)

        self._perp[:] = np.cross(self._tangents, UP)
        self._lengths[:] = np.linalg.norm(self._perp, axis=1)
        parallel = self._lengths < 1e-6
        if parallel.any():
            self._perp[parallel] = np.cross(self._tangents[parallel], X_AXIS)
        self._normalize(self._perp, fallback=np.array([0.0, 0.0, 1.0]))

        self._perp *= self.half_widths[:, None]
        np.subtract(geo.centers, self._perp, out=geo.positions[0::2])
        np.add(geo.centers, self._perp, out=geo.positions[1::2])
        return geo

    def _normalize(self, vectors: np.ndarray, fallback: np.ndarray) -> None:
        self._lengths[:] = np.linalg.norm(vectors, axis=1)
        degenerate = self._lengths < _EPS
        self._lengths[degenerate] = 1.0
        vectors /= self._lengths[:, None]
        vectors[degenerate] = fallback
