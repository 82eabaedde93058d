"""Per-flow hourly accumulation and the derived global flow table."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from .band_weights import (
    assign_sqrt_weights,
    bins_from_hourly,
    cuts_from_bins,
    round_cuts,
    round_to,
    sort_by_total,
)
from .domain_types import HOURS_PER_DAY, FlowRecord, flow_key


@dataclass
class FlowAccumulator:
    """Running totals for one (origin, destination) pair."""

    o: str
    d: str
    total: float = 0.0
    hourly: List[float] = field(default_factory=lambda: [0.0] * HOURS_PER_DAY)

    def add(self, quantity: float, hour: int) -> None:
        if hour < 0 or hour >= HOURS_PER_DAY:
            raise ValueError(f"hour must lie in [0, {HOURS_PER_DAY}), got {hour}")
        self.total += quantity
        self.hourly[hour] += quantity


class TemporalAggregator:
    """Accumulates trip quantities into flows keyed by origin/destination ids."""

    def __init__(self) -> None:
        self._flows: Dict[str, FlowAccumulator] = {}

    def add(self, origin_id: str, destination_id: str, quantity: float, hour: int) -> FlowAccumulator:
        key = flow_key(origin_id, destination_id)
        accumulator = self._flows.get(key)
        if accumulator is None:
            accumulator = FlowAccumulator(o=origin_id, d=destination_id)
            self._flows[key] = accumulator
        accumulator.add(quantity, hour)
        return accumulator

    def __len__(self) -> int:
        return len(self._flows)

    @property
    def accumulators(self) -> List[FlowAccumulator]:
        """Accumulators in first-seen order."""
        return list(self._flows.values())

    def finalize(self) -> List[FlowRecord]:
        """Derive bins, cuts and weights; flows are returned by descending total."""
        flows: List[FlowRecord] = []
        for accumulator in self._flows.values():
            bins = bins_from_hourly(accumulator.hourly)
            flows.append(
                FlowRecord(
                    o=accumulator.o,
                    d=accumulator.d,
                    total=round_to(accumulator.total, 4),
                    bins=tuple(round_to(value, 4) for value in bins),  # type: ignore[arg-type]
                    cuts=round_cuts(cuts_from_bins(bins)),
                )
            )
        assign_sqrt_weights(flows, digits=6)
        return sort_by_total(flows)
