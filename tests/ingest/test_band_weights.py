from __future__ import annotations

import pytest

from wanderlust.ingest.band_weights import (
    DEFAULT_CUTS,
    MAX_CUT,
    assign_sqrt_weights,
    bins_for_single_hour,
    bins_from_hourly,
    bins_match_total,
    cuts_from_bins,
    round_to,
    sort_by_total,
    sqrt_normalize,
)
from wanderlust.ingest.domain_types import FlowRecord


def _flow(o: str, d: str, total: float) -> FlowRecord:
    return FlowRecord(o=o, d=d, total=total, bins=(total, 0.0, 0.0, 0.0), cuts=DEFAULT_CUTS)


def test_bins_from_hourly_sums_quadrants():
    hourly = [0.0] * 24
    hourly[0] = 1.0
    hourly[5] = 2.0
    hourly[6] = 3.0
    hourly[17] = 4.0
    hourly[23] = 5.0
    assert bins_from_hourly(hourly) == (3.0, 3.0, 4.0, 5.0)


def test_bins_from_hourly_rejects_wrong_length():
    with pytest.raises(ValueError):
        bins_from_hourly([1.0] * 23)


def test_bins_for_single_hour_uses_its_quadrant():
    assert bins_for_single_hour(13, 7.0) == (0.0, 0.0, 7.0, 0.0)
    assert bins_for_single_hour(5, 2.0) == (2.0, 0.0, 0.0, 0.0)


def test_cuts_are_cumulative_fractions():
    cuts = cuts_from_bins((1.0, 1.0, 1.0, 1.0))
    assert cuts == pytest.approx((0.25, 0.5, 0.75))


def test_cuts_are_clamped_below_one():
    assert cuts_from_bins((4.0, 0.0, 0.0, 0.0)) == (MAX_CUT, MAX_CUT, MAX_CUT)
    cuts = cuts_from_bins((0.0, 0.0, 3.0, 1.0))
    assert cuts == pytest.approx((0.0, 0.0, 0.75))


def test_cuts_default_for_empty_bins():
    assert cuts_from_bins((0.0, 0.0, 0.0, 0.0)) == DEFAULT_CUTS


@pytest.mark.parametrize(
    "bins",
    [(10.0, 0.0, 0.0, 5.0), (0.0, 2.0, 2.0, 0.0), (9.0, 0.5, 0.25, 0.25), (0.0, 0.0, 0.0, 1.0)],
)
def test_cuts_are_monotone_and_bounded(bins):
    c1, c2, c3 = cuts_from_bins(bins)
    assert 0.0 <= c1 <= c2 <= c3 <= MAX_CUT


def test_round_to_rounds_half_up():
    assert round_to(0.125, 2) == pytest.approx(0.13)
    assert round_to(2.5, 0) == 3.0
    assert round_to(-2.5, 0) == -2.0
    assert round_to(1 / 3, 6) == pytest.approx(0.333333)


def test_sqrt_normalize_degenerate_range_is_full_weight():
    assert sqrt_normalize(5.0, 5.0, 5.0) == 1.0


def test_sqrt_normalize_endpoints_and_midpoint():
    assert sqrt_normalize(1.0, 1.0, 9.0) == pytest.approx(0.0)
    assert sqrt_normalize(9.0, 1.0, 9.0) == pytest.approx(1.0)
    assert sqrt_normalize(4.0, 1.0, 9.0) == pytest.approx(0.5)


def test_assign_sqrt_weights_equal_totals():
    flows = assign_sqrt_weights([_flow("n0", "d0", 3.0), _flow("n1", "d0", 3.0)])
    assert [flow.w for flow in flows] == [1.0, 1.0]


def test_assign_sqrt_weights_rounds_when_requested():
    flows = assign_sqrt_weights(
        [_flow("n0", "d0", 1.0), _flow("n1", "d0", 2.0), _flow("n2", "d0", 9.0)], digits=6
    )
    assert flows[0].w == 0.0
    assert flows[1].w == round_to((2 ** 0.5 - 1.0) / 2.0, 6)
    assert flows[2].w == 1.0


def test_sort_by_total_is_stable_for_ties():
    flows = [_flow("a", "d0", 1.0), _flow("b", "d0", 5.0), _flow("c", "d0", 1.0)]
    assert [flow.o for flow in sort_by_total(flows)] == ["b", "a", "c"]


def test_bins_match_total_tolerance():
    assert bins_match_total((0.1, 0.2, 0.3, 0.4), 1.0)
    assert not bins_match_total((0.1, 0.2, 0.3, 0.4), 1.01)
