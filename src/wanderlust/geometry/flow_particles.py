"""Per-instance particle parameters travelling along flow arcs.

Only the four control points and timing/offset parameters are produced; the
curve itself is evaluated by the renderer at playback time.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Iterable, List

import numpy as np

from wanderlust.ingest.domain_types import Destination, FlowRecord, Node

from .bezier_arc import PARTICLE_ARC, build_arc
from .hashing import hash_unit

DISTANCE_NORMALIZER = 160.0
MAX_WEIGHTED_PARTICLES = 12
MAX_DISTANCE_PARTICLES = 9


@dataclass
class FlowParticleSet:
    starts: np.ndarray
    c1s: np.ndarray
    c2s: np.ndarray
    ends: np.ndarray
    phases: np.ndarray
    speeds: np.ndarray
    offsets: np.ndarray
    sizes: np.ndarray
    intensities: np.ndarray

    def __len__(self) -> int:
        return int(self.phases.shape[0])

    @classmethod
    def empty(cls) -> "FlowParticleSet":
        return cls(
            starts=np.zeros((0, 3)),
            c1s=np.zeros((0, 3)),
            c2s=np.zeros((0, 3)),
            ends=np.zeros((0, 3)),
            phases=np.zeros(0),
            speeds=np.zeros(0),
            offsets=np.zeros(0),
            sizes=np.zeros(0),
            intensities=np.zeros(0),
        )


def particle_count(weight: float, normalized_distance: float, distance_boost: bool) -> int:
    if distance_boost:
        return max(1, min(MAX_DISTANCE_PARTICLES, math.floor(1 + normalized_distance * 6)))
    return max(1, min(MAX_WEIGHTED_PARTICLES, math.floor(1 + weight * 9)))


def build_flow_particles(
    flows: Iterable[FlowRecord],
    nodes_by_id: Dict[str, Node],
    destinations_by_id: Dict[str, Destination],
    *,
    distance_boost: bool = False,
) -> FlowParticleSet:
    """Seed particles for every flow with known endpoints.

    Counts grow with ``w`` (or with hop length when ``distance_boost`` is
    set). Phase, speed and lateral offset come from :func:`hash_unit` over a
    running seed index, so identical flow lists yield identical layouts.
    """
    controls: List[np.ndarray] = []
    phases: List[float] = []
    speeds: List[float] = []
    offsets: List[float] = []
    sizes: List[float] = []
    intensities: List[float] = []

    seed_index = 1
    for flow in flows:
        origin = nodes_by_id.get(flow.o)
        destination = destinations_by_id.get(flow.d)
        if origin is None or destination is None:
            continue
        curve = build_arc(origin, destination, PARTICLE_ARC)
        distance = math.hypot(destination.x - origin.x, destination.y - origin.y)
        normalized_distance = min(1.0, distance / DISTANCE_NORMALIZER)
        spread = 0.15 + (normalized_distance * 1.2 if distance_boost else flow.w * 1.55)

        for _ in range(particle_count(flow.w, normalized_distance, distance_boost)):
            r1 = hash_unit(seed_index * 1.13)
            r2 = hash_unit(seed_index * 2.87)
            r3 = hash_unit(seed_index * 4.31)
            controls.append(curve.control_points)
            phases.append(r1)
            offsets.append((r3 - 0.5) * spread)
            if distance_boost:
                speeds.append(0.04 + normalized_distance * 0.08 + r2 * 0.05)
                sizes.append(1.2 + normalized_distance * 1.1 + r1 * 0.45)
                intensities.append(0.12 + normalized_distance * 0.4)
            else:
                speeds.append(0.07 + flow.w * 0.2 + r2 * 0.05)
                sizes.append(2.3 + flow.w * 2.8 + r1 * 0.9)
                intensities.append(0.2 + flow.w * 0.8)
            seed_index += 1

    if not controls:
        return FlowParticleSet.empty()
    stacked = np.stack(controls)
    return FlowParticleSet(
        starts=stacked[:, 0, :],
        c1s=stacked[:, 1, :],
        c2s=stacked[:, 2, :],
        ends=stacked[:, 3, :],
        phases=np.asarray(phases),
        speeds=np.asarray(speeds),
        offsets=np.asarray(offsets),
        sizes=np.asarray(sizes),
        intensities=np.asarray(intensities),
    )
