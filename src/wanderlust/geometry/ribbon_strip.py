"""Triangle-strip ribbons sampled along flow arcs."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List

import numpy as np

from wanderlust.ingest.band_weights import clamp01
from wanderlust.ingest.domain_types import Destination, FlowRecord, Node

from .bezier_arc import RIBBON_ARC, ArcProfile, build_arc

logger = logging.getLogger(__name__)

MIN_SAMPLES = 24
MAX_SAMPLES = 40
UP = np.array([0.0, 0.0, 1.0])
FALLBACK_SIDE = np.array([0.0, 1.0, 0.0])


@dataclass(frozen=True)
class RibbonOptions:
    samples: int = 30
    min_width: float = 0.3
    max_width: float = 2.8

    @property
    def clamped_samples(self) -> int:
        return max(MIN_SAMPLES, min(MAX_SAMPLES, int(self.samples)))

    def width_for(self, weight: float) -> float:
        return self.min_width + (self.max_width - self.min_width) * clamp01(weight)


@dataclass
class RibbonStrip:
    """Vertex buffers of one ribbon; two vertices per curve sample.

    ``centers`` are the on-curve points, ``positions`` the side-offset
    vertices. Per-vertex attributes share the vertex order
    ``(sample 0 left, sample 0 right, sample 1 left, ...)``.
    """

    flow_key: str
    centers: np.ndarray
    positions: np.ndarray
    tangents: np.ndarray
    sides: np.ndarray
    u: np.ndarray
    v: np.ndarray
    widths: np.ndarray
    cuts: np.ndarray
    indices: np.ndarray

    @property
    def vertex_count(self) -> int:
        return int(self.positions.shape[0])

    @property
    def triangle_count(self) -> int:
        return int(self.indices.size // 3)


def _side_vectors(tangents: np.ndarray) -> np.ndarray:
    """Horizontal unit vectors perpendicular to each tangent."""
    sides = np.cross(UP, tangents)
    lengths = np.linalg.norm(sides, axis=1, keepdims=True)
    degenerate = lengths[:, 0] < 1e-6
    sides = sides / np.where(lengths < 1e-6, 1.0, lengths)
    sides[degenerate] = FALLBACK_SIDE
    return sides


def strip_indices(samples: int) -> np.ndarray:
    """Two triangles per consecutive sample pair."""
    base = np.arange(samples - 1, dtype=np.int64) * 2
    quads = np.stack([base, base + 2, base + 1, base + 2, base + 3, base + 1], axis=1)
    return quads.reshape(-1)


def build_flow_ribbon(
    flow: FlowRecord,
    origin: Node,
    destination: Destination,
    options: RibbonOptions | None = None,
    profile: ArcProfile = RIBBON_ARC,
) -> RibbonStrip:
    options = options or RibbonOptions()
    samples = options.clamped_samples
    width = options.width_for(flow.w)
    curve = build_arc(origin, destination, profile)

    u_samples = np.linspace(0.0, 1.0, samples)
    centers = curve.points_at(u_samples)
    tangents = curve.tangents_at(u_samples)
    offsets = _side_vectors(tangents) * (width / 2.0)

    side_signs = np.array([-1.0, 1.0])
    positions = (centers[:, None, :] + side_signs[None, :, None] * offsets[:, None, :]).reshape(-1, 3)
    vertex_count = samples * 2
    return RibbonStrip(
        flow_key=flow.key,
        centers=np.repeat(centers, 2, axis=0),
        positions=positions,
        tangents=np.repeat(tangents, 2, axis=0),
        sides=np.tile(side_signs, samples),
        u=np.repeat(u_samples, 2),
        v=np.tile(np.array([0.0, 1.0]), samples),
        widths=np.full(vertex_count, width),
        cuts=np.tile(np.asarray(flow.cuts, dtype=float), (vertex_count, 1)),
        indices=strip_indices(samples),
    )


def build_flow_ribbons(
    flows: Iterable[FlowRecord],
    nodes_by_id: Dict[str, Node],
    destinations_by_id: Dict[str, Destination],
    options: RibbonOptions | None = None,
) -> List[RibbonStrip]:
    """Ribbons for every flow whose endpoints are known; others are skipped."""
    ribbons: List[RibbonStrip] = []
    skipped = 0
    for flow in flows:
        origin = nodes_by_id.get(flow.o)
        destination = destinations_by_id.get(flow.d)
        if origin is None or destination is None:
            skipped += 1
            continue
        ribbons.append(build_flow_ribbon(flow, origin, destination, options))
    if skipped:
        logger.debug("Skipped %d flows with unknown endpoints while building ribbons.", skipped)
    return ribbons
