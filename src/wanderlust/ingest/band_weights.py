"""Quadrant bins, band cuts and square-root visual weights."""

from __future__ import annotations

import math
from typing import Iterable, List, Sequence

from .domain_types import Bins, Cuts, FlowRecord, HOURS_PER_DAY

QUADRANT_HOURS = 6
MAX_CUT = 0.99
DEFAULT_CUTS: Cuts = (0.25, 0.5, 0.75)
BIN_SUM_RELATIVE_TOLERANCE = 1e-6


def clamp01(value: float) -> float:
    return min(1.0, max(0.0, value))


def round_to(value: float, digits: int) -> float:
    """Round half up (toward +inf, so -2.5 becomes -2) to ``digits`` decimals."""
    factor = 10.0 ** digits
    return math.floor(value * factor + 0.5) / factor


def quadrant_of_hour(hour: int) -> int:
    return int(hour) // QUADRANT_HOURS


def bins_from_hourly(hourly: Sequence[float]) -> Bins:
    """Sum a 24-hour histogram into the [0-6), [6-12), [12-18), [18-24) bins."""
    if len(hourly) != HOURS_PER_DAY:
        raise ValueError(f"Hourly histogram must have {HOURS_PER_DAY} entries, got {len(hourly)}")
    sums = [0.0, 0.0, 0.0, 0.0]
    for hour, value in enumerate(hourly):
        sums[quadrant_of_hour(hour)] += float(value)
    return (sums[0], sums[1], sums[2], sums[3])


def bins_for_single_hour(hour: int, value: float) -> Bins:
    """Bins holding ``value`` in the quadrant that contains ``hour``."""
    sums = [0.0, 0.0, 0.0, 0.0]
    sums[quadrant_of_hour(hour)] = float(value)
    return (sums[0], sums[1], sums[2], sums[3])


def cuts_from_bins(bins: Sequence[float]) -> Cuts:
    """Cumulative band boundaries of the four bins, each within [0, 0.99]."""
    total = sum(bins)
    if total <= 0:
        return DEFAULT_CUTS
    c1 = bins[0] / total
    c2 = (bins[0] + bins[1]) / total
    c3 = (bins[0] + bins[1] + bins[2]) / total
    return (
        min(clamp01(c1), MAX_CUT),
        min(clamp01(c2), MAX_CUT),
        min(clamp01(c3), MAX_CUT),
    )


def round_cuts(cuts: Cuts) -> Cuts:
    return (round_to(cuts[0], 6), round_to(cuts[1], 6), round_to(cuts[2], 6))


def sqrt_normalize(value: float, min_value: float, max_value: float) -> float:
    """Square-root normalization of ``value`` into [0, 1].

    A degenerate range (``max_value <= min_value``) maps every value to 1 so a
    set of equal totals is drawn at full weight rather than vanishing.
    """
    if max_value <= min_value:
        return 1.0
    s_min = math.sqrt(min_value)
    s_max = math.sqrt(max_value)
    return clamp01((math.sqrt(max(value, 0.0)) - s_min) / (s_max - s_min))


def assign_sqrt_weights(flows: Iterable[FlowRecord], *, digits: int | None = None) -> List[FlowRecord]:
    """Renormalize ``w`` of every flow against the set's own min/max total."""
    flows = list(flows)
    if not flows:
        return flows
    totals = [flow.total for flow in flows]
    min_total = min(totals)
    max_total = max(totals)
    for flow in flows:
        weight = sqrt_normalize(flow.total, min_total, max_total)
        flow.w = round_to(weight, digits) if digits is not None else weight
    return flows


def sort_by_total(flows: Iterable[FlowRecord]) -> List[FlowRecord]:
    """Descending by total; equal totals keep their incoming order."""
    return sorted(flows, key=lambda flow: -flow.total)


def bins_match_total(bins: Sequence[float], total: float) -> bool:
    """Return True when the bins add up to ``total`` within relative tolerance."""
    tolerance = BIN_SUM_RELATIVE_TOLERANCE * max(1.0, abs(total))
    return abs(sum(bins) - total) <= tolerance
