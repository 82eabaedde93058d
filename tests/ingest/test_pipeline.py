from __future__ import annotations

import json
import textwrap

import pytest

from wanderlust.ingest.dataset_writer import (
    DESTINATIONS_FILE,
    FLOWS_FILE,
    HOURLY_FILE,
    META_FILE,
    NODES_FILE,
    serialize_dataset,
)
from wanderlust.ingest.domain_types import DatasetError, RawTripRecord
from wanderlust.ingest.ingest_config import IngestConfig
from wanderlust.ingest.pipeline import build_dataset, prepare_dataset
from wanderlust.ingest.prepare_data_cli import main as prepare_main

TWO_ROW_CSV = "起点_1,起点_12,终点_1,终点_12,数量,小时\n114.0,22.5,114.1,22.6,10,2\n114.0,22.5,114.1,22.6,5,20\n"


def _write_csv(tmp_path, text: str = TWO_ROW_CSV):
    path = tmp_path / "szflow.csv"
    path.write_text(text, encoding="utf-8")
    return path


def _load(path):
    return json.loads(path.read_text(encoding="utf-8"))


def test_two_row_scenario(tmp_path):
    output_dir = tmp_path / "out"
    prepare_dataset(_write_csv(tmp_path), output_dir)

    meta = _load(output_dir / META_FILE)
    nodes = _load(output_dir / NODES_FILE)
    destinations = _load(output_dir / DESTINATIONS_FILE)
    flows = _load(output_dir / FLOWS_FILE)
    hourly = _load(output_dir / HOURLY_FILE)

    assert meta["source"] == "szflow.csv"
    assert meta["createdAt"].endswith("Z")
    assert (meta["nodeCount"], meta["destinationCount"], meta["flowCount"]) == (1, 1, 1)
    assert meta["scale"] == pytest.approx(2200.0)
    assert meta["center"] == [pytest.approx(114.05), pytest.approx(22.55)]
    assert set(meta["bounds"]) == {"minX", "maxX", "minY", "maxY"}

    assert nodes == [{"id": "n0", "x": pytest.approx(-110.0), "y": pytest.approx(-110.0)}]
    (destination,) = destinations
    assert destination["id"] == "d0"
    assert destination["inbound"] == 15.0
    assert destination["height"] == 30.0

    (flow,) = flows
    assert flow == {
        "o": "n0",
        "d": "d0",
        "total": 15.0,
        "bins": [10.0, 0.0, 0.0, 5.0],
        "cuts": [0.666667, 0.666667, 0.666667],
        "w": 1.0,
    }

    assert hourly["hours"] == list(range(24))
    assert len(hourly["frames"]) == 24
    assert [len(frame["flows"]) for frame in hourly["frames"]].count(1) == 2
    assert hourly["frames"][2]["flows"][0]["total"] == 10.0
    assert hourly["frames"][20]["flows"][0]["bins"] == [0.0, 0.0, 0.0, 5.0]
    assert hourly["frames"][3]["flows"] == []


def test_two_row_scenario_with_afternoon_hour(tmp_path):
    text = TWO_ROW_CSV.replace(",10,2\n", ",10,3\n").replace(",5,20\n", ",5,15\n")
    output_dir = tmp_path / "out"
    prepare_dataset(_write_csv(tmp_path, text), output_dir)

    (flow,) = _load(output_dir / FLOWS_FILE)
    assert flow["total"] == 15.0
    assert flow["bins"] == [10.0, 0.0, 5.0, 0.0]
    assert flow["cuts"] == [0.666667, 0.666667, 0.99]

    frames = _load(output_dir / HOURLY_FILE)["frames"]
    assert frames[3]["flows"][0]["bins"] == [10.0, 0.0, 0.0, 0.0]
    assert frames[15]["flows"][0]["bins"] == [0.0, 0.0, 5.0, 0.0]


def test_rerun_is_byte_identical_except_timestamp(tmp_path):
    source = _write_csv(tmp_path)
    first_dir = tmp_path / "first"
    second_dir = tmp_path / "second"
    prepare_dataset(source, first_dir)
    prepare_dataset(source, second_dir)
    for name in (NODES_FILE, DESTINATIONS_FILE, FLOWS_FILE, HOURLY_FILE):
        assert (first_dir / name).read_bytes() == (second_dir / name).read_bytes()
    first_meta = _load(first_dir / META_FILE)
    second_meta = _load(second_dir / META_FILE)
    first_meta.pop("createdAt")
    second_meta.pop("createdAt")
    assert first_meta == second_meta


def test_missing_column_writes_nothing(tmp_path):
    source = _write_csv(tmp_path, "origin_lon,origin_lat,destination_lon,destination_lat,hour\n1,2,3,4,5\n")
    output_dir = tmp_path / "out"
    with pytest.raises(DatasetError):
        prepare_dataset(source, output_dir)
    assert not output_dir.exists()


def test_all_rows_invalid_gives_empty_dataset(tmp_path):
    source = _write_csv(tmp_path, "origin_lon,origin_lat,destination_lon,destination_lat,count,hour\nx,y,z,w,1,1\n")
    dataset = prepare_dataset(source, tmp_path / "out")
    assert dataset.flows == []
    assert dataset.meta.flow_count == 0
    assert _load(tmp_path / "out" / FLOWS_FILE) == []


def test_build_dataset_merges_destinations_and_sums_inbound():
    records = [
        RawTripRecord(114.0, 22.5, 114.1, 22.6, 3.0, 1),
        RawTripRecord(114.2, 22.4, 114.1, 22.6, 6.0, 13),
        RawTripRecord(114.2, 22.4, 114.3, 22.7, 1.0, 13),
    ]
    dataset = build_dataset(records, source="memory", created_at="2024-01-01T00:00:00.000Z")
    assert [node.id for node in dataset.nodes] == ["n0", "n1"]
    assert [destination.inbound for destination in dataset.destinations] == [9.0, 1.0]
    assert [flow.key for flow in dataset.flows] == ["n1|d0", "n0|d0", "n1|d1"]
    for frame in dataset.hourly:
        for flow in frame.flows:
            assert sum(flow.bins) == pytest.approx(flow.total)
    documents = serialize_dataset(dataset)
    assert json.loads(documents[META_FILE])["createdAt"] == "2024-01-01T00:00:00.000Z"


def test_serialize_omits_hourly_when_absent():
    dataset = build_dataset([RawTripRecord(114.0, 22.5, 114.1, 22.6, 1.0, 0)], source="memory")
    dataset.hourly = None
    assert HOURLY_FILE not in serialize_dataset(dataset)


def test_ingest_config_yaml_roundtrip(tmp_path):
    config_path = tmp_path / "ingest.yaml"
    config_path.write_text(
        textwrap.dedent(
            """
            ingest:
              delimiter: ";"
              extent: 100
              columns:
                quantity: [trips, count]
                hour: hr
            """
        ).strip(),
        encoding="utf-8",
    )
    config = IngestConfig.from_yaml(config_path)
    assert config.delimiter == ";"
    assert config.extent == 100.0
    assert config.aliases.aliases_for("quantity") == ("trips", "count")
    assert config.aliases.aliases_for("hour") == ("hr",)
    assert config.aliases.aliases_for("origin_lon")[0] == "起点_1"

    saved = tmp_path / "saved.yaml"
    config.to_yaml(saved)
    assert IngestConfig.from_yaml(saved) == config


def test_ingest_config_rejects_unknown_column():
    with pytest.raises(ValueError, match="Unknown logical column"):
        IngestConfig.from_mapping({"columns": {"speed": ["v"]}})


def test_cli_writes_artifacts(tmp_path):
    source = _write_csv(tmp_path)
    output_dir = tmp_path / "public" / "data"
    prepare_main([str(source), str(output_dir), "--log-level", "WARNING"])
    for name in (META_FILE, NODES_FILE, DESTINATIONS_FILE, FLOWS_FILE, HOURLY_FILE):
        assert (output_dir / name).exists()


def test_cli_exits_on_empty_input(tmp_path):
    source = _write_csv(tmp_path, "")
    with pytest.raises(SystemExit) as excinfo:
        prepare_main([str(source), str(tmp_path / "out")])
    assert "empty" in str(excinfo.value)
    assert not (tmp_path / "out").exists()
