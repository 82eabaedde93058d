"""Visible-flow filtering and hour-of-day helpers for playback."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Sequence

from wanderlust.ingest.band_weights import clamp01, sort_by_total
from wanderlust.ingest.domain_types import HOURS_PER_DAY, FlowRecord

from .hourly_interpolator import wrap_hour

DEFAULT_MAX_RENDERED_FLOWS = 1800


@dataclass
class VisibleFlows:
    flows: List[FlowRecord]
    candidate_count: int
    capped: bool


def default_threshold(flows: Sequence[FlowRecord], quantile: float = 0.9) -> float:
    """Total at the given quantile of the ascending totals (0 for no flows)."""
    if not flows:
        return 0.0
    totals = sorted(flow.total for flow in flows)
    index = min(len(totals) - 1, int(math.floor(len(totals) * quantile)))
    return totals[index]


def select_visible_flows(
    flows: Sequence[FlowRecord],
    threshold: float,
    max_rendered: int = DEFAULT_MAX_RENDERED_FLOWS,
) -> VisibleFlows:
    """Flows at or above ``threshold``, largest first, capped at ``max_rendered``."""
    kept = sort_by_total(flow for flow in flows if flow.total >= threshold)
    return VisibleFlows(
        flows=kept[:max_rendered],
        candidate_count=len(kept),
        capped=len(kept) > max_rendered,
    )


def format_hour_label(hour_position: float) -> str:
    """``HH:MM`` label of a continuous hour position."""
    total_minutes = int(math.floor(wrap_hour(hour_position) * 60 + 0.5))
    hour = (total_minutes // 60) % HOURS_PER_DAY
    minute = total_minutes % 60
    return f"{hour:02d}:{minute:02d}"


def day_mix(hour_position: float) -> float:
    """Daylight factor: 1 at noon, 0 at midnight, with a slightly widened day."""
    phase = ((wrap_hour(hour_position) - 12.0) / 12.0) * math.pi
    return clamp01((math.cos(phase) + 1.0) * 0.5) ** 0.78


@dataclass
class PlaybackClock:
    """Advances the hour cursor in real time, wrapping at midnight."""

    hours_per_second: float = 0.2

    def advance(self, hour_position: float, delta_seconds: float) -> float:
        next_position = hour_position + delta_seconds * self.hours_per_second
        return wrap_hour(next_position)
