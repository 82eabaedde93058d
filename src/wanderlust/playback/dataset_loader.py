"""Read the persisted flow dataset back into memory."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional

from wanderlust.ingest.dataset_writer import (
    DESTINATIONS_FILE,
    FLOWS_FILE,
    HOURLY_FILE,
    META_FILE,
    NODES_FILE,
)
from wanderlust.ingest.domain_types import (
    Bounds,
    DatasetError,
    DatasetMeta,
    Destination,
    FlowRecord,
    HourlyFrame,
    Node,
    ODDataset,
)

logger = logging.getLogger(__name__)


def _read_json(path: Path) -> object:
    try:
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)
    except OSError as exc:
        raise DatasetError(f"Failed to load {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise DatasetError(f"Failed to parse {path}: {exc.msg} (line {exc.lineno})") from exc


def _parse_meta(payload: object, path: Path) -> DatasetMeta:
    try:
        bounds = payload["bounds"]  # type: ignore[index]
        center = payload["center"]  # type: ignore[index]
        return DatasetMeta(
            source=str(payload["source"]),  # type: ignore[index]
            created_at=str(payload["createdAt"]),  # type: ignore[index]
            bounds=Bounds(
                min_x=float(bounds["minX"]),
                max_x=float(bounds["maxX"]),
                min_y=float(bounds["minY"]),
                max_y=float(bounds["maxY"]),
            ),
            center=(float(center[0]), float(center[1])),
            scale=float(payload["scale"]),  # type: ignore[index]
            node_count=int(payload["nodeCount"]),  # type: ignore[index]
            destination_count=int(payload["destinationCount"]),  # type: ignore[index]
            flow_count=int(payload["flowCount"]),  # type: ignore[index]
        )
    except (KeyError, IndexError, TypeError, ValueError) as exc:
        raise DatasetError(f"Malformed dataset metadata in {path}: {exc}") from exc


def _parse_list(payload: object, path: Path, label: str) -> list:
    if not isinstance(payload, list):
        raise DatasetError(f"Expected a JSON array of {label} in {path}")
    return payload


def _parse_hourly(path: Path) -> Optional[List[HourlyFrame]]:
    if not path.exists():
        logger.warning("Hourly frames not found at %s; hourly playback disabled.", path)
        return None
    payload = _read_json(path)
    try:
        frames = [
            HourlyFrame(
                hour=int(frame["hour"]),
                flows=[FlowRecord.from_mapping(item) for item in frame["flows"]],
            )
            for frame in payload["frames"]  # type: ignore[index]
        ]
    except (KeyError, TypeError, ValueError) as exc:
        raise DatasetError(f"Malformed hourly frames in {path}: {exc}") from exc
    return frames


def load_dataset(data_dir: str | Path) -> ODDataset:
    """Load the dataset artifacts; ``flows-hourly.json`` is optional."""
    root = Path(data_dir)
    meta = _parse_meta(_read_json(root / META_FILE), root / META_FILE)
    try:
        nodes = [
            Node(id=str(item["id"]), x=float(item["x"]), y=float(item["y"]))
            for item in _parse_list(_read_json(root / NODES_FILE), root / NODES_FILE, "nodes")
        ]
        destinations = [
            Destination(
                id=str(item["id"]),
                x=float(item["x"]),
                y=float(item["y"]),
                inbound=float(item["inbound"]),
                height=float(item["height"]),
            )
            for item in _parse_list(
                _read_json(root / DESTINATIONS_FILE), root / DESTINATIONS_FILE, "destinations"
            )
        ]
        flows = [
            FlowRecord.from_mapping(item)
            for item in _parse_list(_read_json(root / FLOWS_FILE), root / FLOWS_FILE, "flows")
        ]
    except DatasetError:
        raise
    except (KeyError, TypeError, ValueError) as exc:
        raise DatasetError(f"Malformed dataset artifact under {root}: {exc}") from exc
    hourly = _parse_hourly(root / HOURLY_FILE)
    logger.info(
        "Loaded dataset from %s: %d nodes, %d destinations, %d flows.",
        root,
        len(nodes),
        len(destinations),
        len(flows),
    )
    return ODDataset(meta=meta, nodes=nodes, destinations=destinations, flows=flows, hourly=hourly)
