"""Long-lived playback context producing one geometry snapshot per tick.

:class:`FlowmapSession` ties the dataset to the per-frame components:

1. choose the base flows (the aggregated table, or an interpolated hourly set
   when an hour position is given),
2. filter them by threshold and cap the visible count,
3. build ribbons and travelling particles for the visible flows,
4. aggregate grid net retention, threading the session-owned
   :class:`RetentionState` across ticks.

Every tick runs synchronously. Swapping the dataset or changing the grid
spacing resets the retention smoothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from wanderlust.geometry.flow_particles import FlowParticleSet, build_flow_particles
from wanderlust.geometry.ribbon_strip import RibbonStrip, build_flow_ribbons
from wanderlust.ingest.domain_types import FlowRecord, ODDataset

from .flow_selection import (
    VisibleFlows,
    day_mix,
    default_threshold,
    format_hour_label,
    select_visible_flows,
)
from .hourly_interpolator import HourlyInterpolator
from .net_retention import GridNetRetentionAggregator, RetentionField, RetentionState
from .playback_config import PlaybackConfig

logger = logging.getLogger(__name__)


@dataclass
class FrameSnapshot:
    """Everything a renderer needs for one frame."""

    flows: List[FlowRecord]
    visible: VisibleFlows
    threshold: float
    ribbons: List[RibbonStrip]
    particles: FlowParticleSet
    retention: RetentionField
    hour_position: Optional[float]
    hour_label: Optional[str]
    day_mix: float


class FlowmapSession:
    def __init__(self, dataset: ODDataset, config: PlaybackConfig | None = None) -> None:
        self.config = config or PlaybackConfig()
        self.retention_state = RetentionState()
        self._generation = 0
        self._load(dataset)

    # ------------------------------------------------------------------ dataset
    def _load(self, dataset: ODDataset) -> None:
        self.dataset = dataset
        self._nodes_by_id = dataset.nodes_by_id()
        self._destinations_by_id = dataset.destinations_by_id()
        self._interpolator = HourlyInterpolator(dataset.hourly) if dataset.hourly else None
        self._aggregator = GridNetRetentionAggregator(
            self._nodes_by_id, self._destinations_by_id, self.config.retention
        )
        self.default_threshold = default_threshold(dataset.flows, self.config.threshold_quantile)

    def swap_dataset(self, dataset: ODDataset) -> None:
        """Replace the dataset and discard smoothing built for the previous one."""
        self._generation += 1
        self._load(dataset)
        self.retention_state.reset()
        logger.info("Dataset swapped (generation %d); retention state reset.", self._generation)

    @property
    def hourly_available(self) -> bool:
        return self._interpolator is not None

    # --------------------------------------------------------------------- tick
    def base_flows(self, hour_position: Optional[float] = None) -> List[FlowRecord]:
        if hour_position is None:
            return list(self.dataset.flows)
        if self._interpolator is None:
            logger.warning("Hourly frames unavailable; falling back to aggregated flows.")
            return list(self.dataset.flows)
        return self._interpolator.interpolate(hour_position)

    def tick(
        self,
        hour_position: Optional[float] = None,
        grid_spacing: Optional[float] = None,
        threshold: Optional[float] = None,
    ) -> FrameSnapshot:
        spacing = grid_spacing if grid_spacing is not None else self.config.grid_spacing
        if spacing <= 0:
            raise ValueError("grid_spacing must be positive")
        if self.retention_state.bind(spacing, self._generation):
            logger.debug("Grid spacing changed to %s; retention state reset.", spacing)

        flows = self.base_flows(hour_position)
        max_total = max((flow.total for flow in flows), default=0.0)
        active_threshold = min(
            threshold if threshold is not None else self.default_threshold, max_total
        )
        visible = select_visible_flows(flows, active_threshold, self.config.max_rendered_flows)

        ribbons = build_flow_ribbons(
            visible.flows, self._nodes_by_id, self._destinations_by_id, self.config.ribbon
        )
        particles = build_flow_particles(
            visible.flows,
            self._nodes_by_id,
            self._destinations_by_id,
            distance_boost=self.config.particle_distance_boost,
        )
        retention = self._aggregator.aggregate(visible.flows, spacing, self.retention_state)

        snapshot = FrameSnapshot(
            flows=flows,
            visible=visible,
            threshold=active_threshold,
            ribbons=ribbons,
            particles=particles,
            retention=retention,
            hour_position=hour_position,
            hour_label=format_hour_label(hour_position) if hour_position is not None else None,
            day_mix=day_mix(hour_position) if hour_position is not None else 1.0,
        )
        logger.debug(
            "Tick %s: %d/%d flows visible, %d ribbons, %d particles, %d peak particles",
            snapshot.hour_label or "aggregated",
            len(visible.flows),
            len(flows),
            len(ribbons),
            len(particles),
            retention.particle_count,
        )
        return snapshot
