"""Cubic Bézier arcs lifted between an origin and a destination."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

import numpy as np

from wanderlust.ingest.domain_types import Destination, Node

ArrayLike = Union[float, np.ndarray]

FALLBACK_DIRECTION = np.array([1.0, 0.0, 0.0])
ARC_LENGTH_DIVISIONS = 200


@dataclass(frozen=True)
class ArcProfile:
    """Constants shaping an arc.

    ``arc = max(minimum_arc, arc_base + height * arc_height_gain + span * arc_span_gain)``
    sets the lead control height; taller destinations and longer hops arc
    higher. The trail control sits at
    ``max(end_z * trail_end_gain + trail_end_offset, arc * trail_arc_ratio)``.
    """

    start_z: float
    end_z_base: float
    end_z_height_gain: float
    minimum_arc: float
    arc_base: float
    arc_height_gain: float
    arc_span_gain: float
    lead_fraction: float
    trail_fraction: float
    trail_end_gain: float
    trail_end_offset: float
    trail_arc_ratio: float


RIBBON_ARC = ArcProfile(
    start_z=0.0,
    end_z_base=0.0,
    end_z_height_gain=1.0,
    minimum_arc=5.0,
    arc_base=0.0,
    arc_height_gain=0.8,
    arc_span_gain=0.25,
    lead_fraction=0.2,
    trail_fraction=0.78,
    trail_end_gain=1.15,
    trail_end_offset=0.0,
    trail_arc_ratio=0.6,
)

PARTICLE_ARC = ArcProfile(
    start_z=0.15,
    end_z_base=0.9,
    end_z_height_gain=0.28,
    minimum_arc=1.2,
    arc_base=1.8,
    arc_height_gain=0.15,
    arc_span_gain=0.11,
    lead_fraction=0.24,
    trail_fraction=0.75,
    trail_end_gain=1.0,
    trail_end_offset=0.7,
    trail_arc_ratio=0.62,
)


def _normalize_rows(vectors: np.ndarray, fallback: np.ndarray, eps: float = 1e-6) -> np.ndarray:
    lengths = np.linalg.norm(vectors, axis=-1, keepdims=True)
    degenerate = lengths[..., 0] < eps
    safe = np.where(lengths < eps, 1.0, lengths)
    unit = vectors / safe
    unit[degenerate] = fallback
    return unit


@dataclass(frozen=True)
class CubicBezier:
    p0: np.ndarray
    p1: np.ndarray
    p2: np.ndarray
    p3: np.ndarray

    @property
    def control_points(self) -> np.ndarray:
        return np.stack([self.p0, self.p1, self.p2, self.p3])

    def point(self, t: ArrayLike) -> np.ndarray:
        t = np.asarray(t, dtype=float)[..., None]
        s = 1.0 - t
        return (
            s ** 3 * self.p0
            + 3.0 * s ** 2 * t * self.p1
            + 3.0 * s * t ** 2 * self.p2
            + t ** 3 * self.p3
        )

    def derivative(self, t: ArrayLike) -> np.ndarray:
        t = np.asarray(t, dtype=float)[..., None]
        s = 1.0 - t
        return (
            3.0 * s ** 2 * (self.p1 - self.p0)
            + 6.0 * s * t * (self.p2 - self.p1)
            + 3.0 * t ** 2 * (self.p3 - self.p2)
        )

    def arc_lengths(self, divisions: int = ARC_LENGTH_DIVISIONS) -> np.ndarray:
        """Cumulative chord lengths at ``divisions + 1`` uniform parameter steps."""
        points = self.point(np.linspace(0.0, 1.0, divisions + 1))
        steps = np.linalg.norm(np.diff(points, axis=0), axis=1)
        return np.concatenate([[0.0], np.cumsum(steps)])

    def length(self) -> float:
        return float(self.arc_lengths()[-1])

    def u_to_t(self, u: ArrayLike, divisions: int = ARC_LENGTH_DIVISIONS) -> np.ndarray:
        """Map arc-length fractions ``u`` to curve parameters ``t``."""
        u = np.clip(np.asarray(u, dtype=float), 0.0, 1.0)
        lengths = self.arc_lengths(divisions)
        total = lengths[-1]
        if total <= 0.0:
            return u
        params = np.linspace(0.0, 1.0, divisions + 1)
        return np.interp(u * total, lengths, params)

    def points_at(self, u: ArrayLike) -> np.ndarray:
        """Points spaced evenly along the curve's length."""
        return self.point(self.u_to_t(u))

    def tangents_at(self, u: ArrayLike) -> np.ndarray:
        """Unit tangents at arc-length fractions; zero tangents become ``(1, 0, 0)``."""
        derivative = np.atleast_2d(self.derivative(self.u_to_t(u)))
        return _normalize_rows(derivative, FALLBACK_DIRECTION)


def build_arc(origin: Node, destination: Destination, profile: ArcProfile = RIBBON_ARC) -> CubicBezier:
    """Arc from ``origin`` on the ground to ``destination`` lifted by its height."""
    start = np.array([origin.x, origin.y, profile.start_z], dtype=float)
    end_z = profile.end_z_base + destination.height * profile.end_z_height_gain
    end = np.array([destination.x, destination.y, end_z], dtype=float)

    travel = np.array([end[0] - start[0], end[1] - start[1], 0.0])
    distance = float(np.linalg.norm(travel))
    direction = travel / distance if distance > 0.0 else FALLBACK_DIRECTION.copy()

    arc_height = max(
        profile.minimum_arc,
        profile.arc_base
        + destination.height * profile.arc_height_gain
        + distance * profile.arc_span_gain,
    )
    lead = start + direction * distance * profile.lead_fraction
    lead[2] = arc_height
    trail = start + direction * distance * profile.trail_fraction
    trail[2] = max(
        end_z * profile.trail_end_gain + profile.trail_end_offset,
        arc_height * profile.trail_arc_ratio,
    )
    return CubicBezier(p0=start, p1=lead, p2=trail, p3=end)
