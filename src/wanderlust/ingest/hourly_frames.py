"""Per-hour flow frames with hour-local weights."""

from __future__ import annotations

import logging
from typing import Iterable, List

from .band_weights import (
    assign_sqrt_weights,
    bins_for_single_hour,
    cuts_from_bins,
    round_cuts,
    round_to,
    sort_by_total,
)
from .domain_types import HOURS_PER_DAY, FlowRecord, HourlyFrame
from .temporal_aggregator import FlowAccumulator

logger = logging.getLogger(__name__)


def build_hourly_frame(accumulators: Iterable[FlowAccumulator], hour: int) -> HourlyFrame:
    """Flows active at ``hour``, re-derived from that hour's volume alone.

    ``w`` is normalized against the hour's own min/max, so a flow dominant over
    the whole day can be unremarkable here and vice versa.
    """
    flows: List[FlowRecord] = []
    for accumulator in accumulators:
        value = accumulator.hourly[hour]
        if value <= 0:
            continue
        bins = bins_for_single_hour(hour, value)
        flows.append(
            FlowRecord(
                o=accumulator.o,
                d=accumulator.d,
                total=round_to(value, 4),
                bins=tuple(round_to(item, 4) for item in bins),  # type: ignore[arg-type]
                cuts=round_cuts(cuts_from_bins(bins)),
            )
        )
    assign_sqrt_weights(flows, digits=6)
    return HourlyFrame(hour=hour, flows=sort_by_total(flows))


def build_hourly_frames(accumulators: Iterable[FlowAccumulator]) -> List[HourlyFrame]:
    """One frame per hour of the day; empty hours produce empty frames."""
    accumulators = list(accumulators)
    frames = [build_hourly_frame(accumulators, hour) for hour in range(HOURS_PER_DAY)]
    empty_hours = [frame.hour for frame in frames if not frame.flows]
    if empty_hours:
        logger.debug("Hours without any flows: %s", empty_hours)
    return frames
