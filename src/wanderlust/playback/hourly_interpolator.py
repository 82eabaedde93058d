"""Blend adjacent hourly frames at a continuous hour-of-day position."""

from __future__ import annotations

import math
from dataclasses import replace
from typing import Dict, Iterable, List

from wanderlust.ingest.band_weights import (
    assign_sqrt_weights,
    cuts_from_bins,
    round_cuts,
    sort_by_total,
)
from wanderlust.ingest.domain_types import (
    FLOW_KEY_SEPARATOR,
    HOURS_PER_DAY,
    FlowRecord,
    HourlyFrame,
)

MIN_INTERPOLATED_TOTAL = 1e-4
_ZERO_BINS = (0.0, 0.0, 0.0, 0.0)


def wrap_hour(hour_position: float) -> float:
    """Wrap any real hour position into ``[0, 24)``."""
    wrapped = math.fmod(hour_position, HOURS_PER_DAY)
    if wrapped < 0:
        wrapped += HOURS_PER_DAY
    # fmod of a tiny negative can round up to exactly 24.
    return 0.0 if wrapped >= HOURS_PER_DAY else wrapped


class HourlyInterpolator:
    """Linear time-domain interpolation between discrete hourly frames.

    Flows present in only one of the two adjacent frames fade in or out
    against zero. Cuts are recomputed from the interpolated bins rather than
    blended themselves, and ``w`` is renormalized within the merged set.
    """

    def __init__(self, frames: Iterable[HourlyFrame]) -> None:
        self._frames: Dict[int, Dict[str, FlowRecord]] = {}
        for frame in frames:
            self._frames[int(frame.hour)] = {flow.key: flow for flow in frame.flows}

    @property
    def hours(self) -> List[int]:
        return sorted(self._frames)

    def interpolate(self, hour_position: float) -> List[FlowRecord]:
        wrapped = wrap_hour(hour_position)
        lower_hour = int(math.floor(wrapped))
        upper_hour = (lower_hour + 1) % HOURS_PER_DAY
        blend = wrapped - lower_hour

        lower = self._frames.get(lower_hour, {})
        upper = self._frames.get(upper_hour, {})
        if blend == 0.0:
            return [replace(flow) for flow in lower.values()]

        keys = list(lower)
        keys.extend(key for key in upper if key not in lower)

        merged: List[FlowRecord] = []
        for key in keys:
            source = lower.get(key)
            target = upper.get(key)
            from_bins = source.bins if source is not None else _ZERO_BINS
            to_bins = target.bins if target is not None else _ZERO_BINS
            bins = tuple(a * (1.0 - blend) + b * blend for a, b in zip(from_bins, to_bins))
            from_total = source.total if source is not None else 0.0
            to_total = target.total if target is not None else 0.0
            total = from_total * (1.0 - blend) + to_total * blend
            if total <= MIN_INTERPOLATED_TOTAL:
                continue
            origin_id, destination_id = key.split(FLOW_KEY_SEPARATOR, 1)
            merged.append(
                FlowRecord(
                    o=origin_id,
                    d=destination_id,
                    total=total,
                    bins=bins,  # type: ignore[arg-type]
                    cuts=round_cuts(cuts_from_bins(bins)),
                )
            )
        return assign_sqrt_weights(sort_by_total(merged), digits=6)
