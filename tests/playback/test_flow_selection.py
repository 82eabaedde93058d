from __future__ import annotations

import pytest

from wanderlust.ingest.band_weights import DEFAULT_CUTS
from wanderlust.ingest.domain_types import FlowRecord
from wanderlust.playback.flow_selection import (
    PlaybackClock,
    day_mix,
    default_threshold,
    format_hour_label,
    select_visible_flows,
)


def _flows(*totals: float) -> list[FlowRecord]:
    return [
        FlowRecord(o=f"n{index}", d="d0", total=total, bins=(total, 0.0, 0.0, 0.0), cuts=DEFAULT_CUTS)
        for index, total in enumerate(totals)
    ]


def test_default_threshold_picks_the_quantile():
    flows = _flows(*[float(value) for value in range(1, 11)])
    assert default_threshold(flows, 0.9) == 10.0
    assert default_threshold(flows, 0.5) == 6.0
    assert default_threshold(flows, 0.0) == 1.0
    assert default_threshold([], 0.9) == 0.0


def test_select_visible_flows_filters_sorts_and_caps():
    flows = _flows(1.0, 5.0, 3.0, 8.0, 3.0)
    visible = select_visible_flows(flows, threshold=3.0, max_rendered=3)
    assert [flow.total for flow in visible.flows] == [8.0, 5.0, 3.0]
    assert visible.flows[-1].o == "n2"
    assert visible.candidate_count == 4
    assert visible.capped is True


def test_select_visible_flows_without_cap():
    visible = select_visible_flows(_flows(2.0, 1.0), threshold=0.0)
    assert visible.candidate_count == 2
    assert visible.capped is False


@pytest.mark.parametrize(
    "position, label",
    [(0.0, "00:00"), (7.5, "07:30"), (13.25, "13:15"), (23.999, "00:00"), (-0.5, "23:30"), (26.0, "02:00")],
)
def test_format_hour_label(position, label):
    assert format_hour_label(position) == label


def test_day_mix_extremes():
    assert day_mix(12.0) == pytest.approx(1.0)
    assert day_mix(0.0) == pytest.approx(0.0)
    assert day_mix(24.0) == pytest.approx(0.0)
    assert 0.0 < day_mix(6.0) < 1.0
    assert day_mix(6.0) == pytest.approx(0.5 ** 0.78)
    assert day_mix(9.0) == pytest.approx(day_mix(15.0))


def test_playback_clock_wraps():
    clock = PlaybackClock(hours_per_second=0.2)
    assert clock.advance(1.0, 5.0) == pytest.approx(2.0)
    assert clock.advance(23.9, 1.0) == pytest.approx(0.1)
