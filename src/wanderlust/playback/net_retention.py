"""Grid-snapped net retention (inbound minus outbound) rendered as particle peaks.

Inputs
------
Each call receives the active flow list, the grid spacing and an explicit
:class:`RetentionState` owned by the caller. The raw pass is recomputed from
scratch every call; only the exponential smoothing carried in the state links
successive calls, so a dropped tick never leaves the state half-updated.

Outputs
-------
A :class:`RetentionField` with the positive (net inflow) cells and the particle
buffers that stack a soft column over each of them:

* ``positions`` – ``(N, 3)`` jittered particle positions
* ``strengths`` – normalized cell magnitude per particle
* ``activities`` – per-layer fade, 1 at the base tapering to 0 at the top
* ``seeds`` – per-particle random in ``[0, 1)``
* ``drifts`` – ``(N, 2)`` orbit-drift offsets
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Hashable, Iterable, List, Optional, Tuple

import numpy as np

from wanderlust.geometry.hashing import retention_hash
from wanderlust.ingest.band_weights import clamp01
from wanderlust.ingest.domain_types import Destination, FlowRecord, Node

from .playback_config import RetentionSettings

logger = logging.getLogger(__name__)

CellKey = Tuple[float, float]


def snap(value: float, spacing: float) -> float:
    """Nearest multiple of ``spacing``."""
    return math.floor(value / spacing + 0.5) * spacing


def cell_key(x: float, y: float) -> CellKey:
    return (round(x, 4) + 0.0, round(y, 4) + 0.0)


@dataclass
class RetentionState:
    """Smoothed cell values carried across aggregation calls.

    The state belongs to whoever drives the per-frame loop. It is reset when
    the grid spacing or the dataset it was built for changes.
    """

    smoothed_net: Dict[CellKey, float] = field(default_factory=dict)
    smoothed_max: float = 1.0
    grid_spacing: Optional[float] = None
    dataset_token: Optional[Hashable] = None

    def reset(self) -> None:
        self.smoothed_net.clear()
        self.smoothed_max = 1.0

    def bind(self, grid_spacing: float, dataset_token: Hashable = None) -> bool:
        """Attach to a spacing/dataset pair; return True if the state was reset."""
        changed = (
            self.grid_spacing is not None
            and (self.grid_spacing != grid_spacing or self.dataset_token != dataset_token)
        )
        if changed:
            self.reset()
        self.grid_spacing = grid_spacing
        self.dataset_token = dataset_token
        return changed


@dataclass(frozen=True)
class RetentionCell:
    x: float
    y: float
    net: float
    normalized: float


@dataclass
class RetentionField:
    cells: List[RetentionCell]
    positions: np.ndarray
    strengths: np.ndarray
    activities: np.ndarray
    seeds: np.ndarray
    drifts: np.ndarray

    @property
    def particle_count(self) -> int:
        return int(self.strengths.shape[0])


def accumulate_raw_net(
    flows: Iterable[FlowRecord],
    nodes_by_id: Dict[str, Node],
    destinations_by_id: Dict[str, Destination],
    grid_spacing: float,
) -> Dict[CellKey, float]:
    """Signed per-cell net flow; every flow adds its total once and removes it once."""
    raw: Dict[CellKey, float] = {}
    for flow in flows:
        origin = nodes_by_id.get(flow.o)
        destination = destinations_by_id.get(flow.d)
        if origin is None or destination is None:
            continue
        origin_cell = cell_key(snap(origin.x, grid_spacing), snap(origin.y, grid_spacing))
        raw[origin_cell] = raw.get(origin_cell, 0.0) - flow.total
        destination_cell = cell_key(
            snap(destination.x, grid_spacing), snap(destination.y, grid_spacing)
        )
        raw[destination_cell] = raw.get(destination_cell, 0.0) + flow.total
    return raw


def smooth_cells(
    raw: Dict[CellKey, float],
    state: RetentionState,
    settings: RetentionSettings,
) -> Dict[CellKey, float]:
    """Move every smoothed cell a fraction ``alpha`` toward its raw target.

    Cells absent from ``raw`` decay toward zero and are evicted once their
    magnitude drops under ``eviction_threshold``.
    """
    smoothed = state.smoothed_net
    keys = list(raw)
    keys.extend(key for key in smoothed if key not in raw)
    for key in keys:
        target = raw.get(key, 0.0)
        previous = smoothed.get(key, 0.0)
        value = previous + (target - previous) * settings.smoothing_alpha
        if target == 0.0 and abs(value) < settings.eviction_threshold:
            smoothed.pop(key, None)
        else:
            smoothed[key] = value
    return smoothed


class GridNetRetentionAggregator:
    """Builds net-inflow particle peaks from a flow snapshot and explicit state."""

    def __init__(
        self,
        nodes_by_id: Dict[str, Node],
        destinations_by_id: Dict[str, Destination],
        settings: RetentionSettings | None = None,
    ) -> None:
        self.nodes_by_id = nodes_by_id
        self.destinations_by_id = destinations_by_id
        self.settings = settings or RetentionSettings()

    def aggregate(
        self,
        flows: Iterable[FlowRecord],
        grid_spacing: float,
        state: RetentionState,
    ) -> RetentionField:
        if grid_spacing <= 0:
            raise ValueError("grid_spacing must be positive")
        settings = self.settings
        raw = accumulate_raw_net(flows, self.nodes_by_id, self.destinations_by_id, grid_spacing)
        smoothed = smooth_cells(raw, state, settings)

        positive = [
            (key, net) for key, net in smoothed.items() if net > settings.min_positive_net
        ]
        positive.sort(key=lambda item: -item[1])

        max_target = positive[0][1] if positive else 1.0
        state.smoothed_max += (max_target - state.smoothed_max) * settings.max_smoothing_alpha
        reference = max(1.0, state.smoothed_max)

        field_ = self._seed_particles(positive, reference, grid_spacing)
        logger.debug(
            "Net retention: %d raw cells, %d smoothed, %d positive, %d particles",
            len(raw),
            len(smoothed),
            len(positive),
            field_.particle_count,
        )
        return field_

    def _seed_particles(
        self,
        positive: List[Tuple[CellKey, float]],
        reference: float,
        grid_spacing: float,
    ) -> RetentionField:
        settings = self.settings
        cells: List[RetentionCell] = []
        positions: List[Tuple[float, float, float]] = []
        strengths: List[float] = []
        activities: List[float] = []
        seeds: List[float] = []
        drifts: List[Tuple[float, float]] = []

        seed_index = 1
        for (x, y), net in positive:
            if len(strengths) >= settings.max_particles:
                break
            normalized = clamp01(math.sqrt(net / reference))
            cells.append(RetentionCell(x=x, y=y, net=net, normalized=normalized))
            stack_height = settings.stack_base + normalized * settings.stack_gain
            layer_count = min(settings.max_layers, math.ceil(stack_height + settings.layer_headroom))

            for layer in range(layer_count):
                if len(strengths) >= settings.max_particles:
                    break
                activity = clamp01(stack_height - layer)
                if activity <= settings.min_activity:
                    continue
                r1 = retention_hash(seed_index * 0.73)
                r2 = retention_hash(seed_index * 1.91)
                r3 = retention_hash(seed_index * 3.37)
                r4 = retention_hash(seed_index * 4.71)

                core_jitter = grid_spacing * (0.08 + 0.12 * (1.0 - normalized))
                z = 0.18 + layer * (0.22 + normalized * 0.3) + r3 * 0.06
                positions.append(
                    (x + (r1 - 0.5) * core_jitter, y + (r2 - 0.5) * core_jitter, z)
                )
                gather_radius = grid_spacing * (
                    0.45 + (1.0 - activity) * 1.8 + normalized * 0.5 + layer * 0.008
                )
                theta = r4 * math.pi * 2.0
                drifts.append((math.cos(theta) * gather_radius, math.sin(theta) * gather_radius))
                strengths.append(normalized)
                activities.append(activity)
                seeds.append(r3)
                seed_index += 1

        return RetentionField(
            cells=cells,
            positions=np.asarray(positions, dtype=float).reshape(-1, 3),
            strengths=np.asarray(strengths, dtype=float),
            activities=np.asarray(activities, dtype=float),
            seeds=np.asarray(seeds, dtype=float),
            drifts=np.asarray(drifts, dtype=float).reshape(-1, 2),
        )
