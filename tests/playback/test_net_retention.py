from __future__ import annotations

import numpy as np
import pytest

from wanderlust.ingest.band_weights import DEFAULT_CUTS
from wanderlust.ingest.domain_types import Destination, FlowRecord, Node
from wanderlust.playback.net_retention import (
    GridNetRetentionAggregator,
    RetentionState,
    accumulate_raw_net,
    snap,
)
from wanderlust.playback.playback_config import RetentionSettings


def _make_graph():
    nodes = {
        "n0": Node(id="n0", x=0.0, y=0.0),
        "n1": Node(id="n1", x=10.4, y=0.2),
    }
    destinations = {
        "d0": Destination(id="d0", x=9.0, y=0.0, inbound=10.0, height=30.0),
        "d1": Destination(id="d1", x=-6.2, y=3.1, inbound=4.0, height=12.0),
    }
    return nodes, destinations


def _flow(o: str, d: str, total: float) -> FlowRecord:
    return FlowRecord(o=o, d=d, total=total, bins=(total, 0.0, 0.0, 0.0), cuts=DEFAULT_CUTS, w=1.0)


def test_snap_rounds_half_up():
    assert snap(4.5, 3.0) == 6.0
    assert snap(4.4, 3.0) == 3.0
    assert snap(-1.5, 3.0) == 0.0
    assert snap(-1.6, 3.0) == -3.0


def test_raw_net_is_conserved():
    nodes, destinations = _make_graph()
    flows = [_flow("n0", "d0", 10.0), _flow("n1", "d1", 4.0), _flow("n1", "d0", 2.5)]
    raw = accumulate_raw_net(flows, nodes, destinations, 3.0)
    assert sum(raw.values()) == pytest.approx(0.0)
    assert raw[(0.0, 0.0)] == pytest.approx(-10.0)
    # n1 (10.4, 0.2) and d0 (9.0, 0.0) share the (9, 0) cell.
    assert raw[(9.0, 0.0)] == pytest.approx(10.0 - 4.0)


def test_unknown_endpoints_are_ignored():
    nodes, destinations = _make_graph()
    raw = accumulate_raw_net([_flow("n9", "d0", 5.0), _flow("n0", "d9", 5.0)], nodes, destinations, 3.0)
    assert raw == {}


def test_smoothing_converges_to_constant_input():
    nodes, destinations = _make_graph()
    aggregator = GridNetRetentionAggregator(nodes, destinations)
    state = RetentionState()
    flows = [_flow("n0", "d0", 10.0)]
    for _ in range(120):
        field = aggregator.aggregate(flows, 3.0, state)
    assert state.smoothed_net[(9.0, 0.0)] == pytest.approx(10.0, rel=1e-6)
    assert state.smoothed_net[(0.0, 0.0)] == pytest.approx(-10.0, rel=1e-6)
    assert state.smoothed_max == pytest.approx(10.0, rel=1e-4)
    (cell,) = field.cells
    assert (cell.x, cell.y) == (9.0, 0.0)
    assert cell.normalized == pytest.approx(1.0, rel=1e-4)


def test_first_call_moves_by_alpha():
    nodes, destinations = _make_graph()
    aggregator = GridNetRetentionAggregator(nodes, destinations)
    state = RetentionState()
    aggregator.aggregate([_flow("n0", "d0", 10.0)], 3.0, state)
    assert state.smoothed_net[(9.0, 0.0)] == pytest.approx(1.7)
    assert state.smoothed_max == pytest.approx(1.0 + (1.7 - 1.0) * 0.12)


def test_first_call_stacks_layers_by_activity():
    nodes, destinations = _make_graph()
    field = GridNetRetentionAggregator(nodes, destinations).aggregate(
        [_flow("n0", "d0", 10.0)], 3.0, RetentionState()
    )
    # normalized clamps to 1: stack height 37.5, layers 0..37 active.
    assert field.particle_count == 38
    assert field.positions.shape == (38, 3)
    assert field.drifts.shape == (38, 2)
    assert field.activities[0] == 1.0
    assert field.activities[-1] == pytest.approx(0.5)
    assert np.all(np.diff(field.positions[:, 2]) > 0.0)
    assert np.all((field.seeds >= 0.0) & (field.seeds < 1.0))


def test_small_net_stays_below_positive_threshold():
    nodes, destinations = _make_graph()
    field = GridNetRetentionAggregator(nodes, destinations).aggregate(
        [_flow("n0", "d0", 0.5)], 3.0, RetentionState()
    )
    assert field.cells == []
    assert field.particle_count == 0
    assert field.positions.shape == (0, 3)


def test_vanished_cells_decay_and_are_evicted():
    nodes, destinations = _make_graph()
    aggregator = GridNetRetentionAggregator(nodes, destinations)
    state = RetentionState()
    for _ in range(60):
        aggregator.aggregate([_flow("n0", "d0", 10.0)], 3.0, state)
    field = aggregator.aggregate([], 3.0, state)
    assert state.smoothed_net[(9.0, 0.0)] == pytest.approx(10.0 * 0.83, rel=1e-3)
    assert field.particle_count > 0
    for _ in range(60):
        aggregator.aggregate([], 3.0, state)
    assert state.smoothed_net == {}


def test_particle_cap():
    nodes, destinations = _make_graph()
    settings = RetentionSettings(max_particles=5)
    aggregator = GridNetRetentionAggregator(nodes, destinations, settings)
    field = aggregator.aggregate(
        [_flow("n0", "d0", 10.0), _flow("n0", "d1", 8.0)], 3.0, RetentionState()
    )
    assert field.particle_count == 5


def test_layout_is_deterministic():
    nodes, destinations = _make_graph()
    flows = [_flow("n0", "d0", 10.0), _flow("n0", "d1", 4.0)]
    first = GridNetRetentionAggregator(nodes, destinations).aggregate(flows, 2.0, RetentionState())
    second = GridNetRetentionAggregator(nodes, destinations).aggregate(flows, 2.0, RetentionState())
    np.testing.assert_array_equal(first.positions, second.positions)
    np.testing.assert_array_equal(first.drifts, second.drifts)


def test_bind_resets_on_spacing_or_dataset_change():
    state = RetentionState()
    assert state.bind(3.0, 0) is False
    state.smoothed_net[(0.0, 0.0)] = 4.0
    state.smoothed_max = 7.0
    assert state.bind(3.0, 0) is False
    assert state.smoothed_net == {(0.0, 0.0): 4.0}
    assert state.bind(2.0, 0) is True
    assert state.smoothed_net == {}
    assert state.smoothed_max == 1.0
    state.smoothed_net[(0.0, 0.0)] = 1.0
    assert state.bind(2.0, 1) is True
    assert state.smoothed_net == {}


def test_non_positive_spacing_is_rejected():
    nodes, destinations = _make_graph()
    with pytest.raises(ValueError):
        GridNetRetentionAggregator(nodes, destinations).aggregate([], 0.0, RetentionState())
