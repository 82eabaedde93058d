"""JSON artifact writer for the prepared flow dataset."""

from __future__ import annotations

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, List

from .domain_types import HOURS_PER_DAY, ODDataset

logger = logging.getLogger(__name__)

META_FILE = "meta.json"
NODES_FILE = "nodes.json"
DESTINATIONS_FILE = "destinations.json"
FLOWS_FILE = "flows.json"
HOURLY_FILE = "flows-hourly.json"


def serialize_dataset(dataset: ODDataset) -> Dict[str, str]:
    """Render every artifact to text, keyed by file name."""
    payloads: Dict[str, object] = {
        META_FILE: dataset.meta.to_json_dict(),
        NODES_FILE: [node.to_json_dict() for node in dataset.nodes],
        DESTINATIONS_FILE: [destination.to_json_dict() for destination in dataset.destinations],
        FLOWS_FILE: [flow.to_json_dict() for flow in dataset.flows],
    }
    if dataset.hourly is not None:
        payloads[HOURLY_FILE] = {
            "hours": list(range(HOURS_PER_DAY)),
            "frames": [frame.to_json_dict() for frame in dataset.hourly],
        }
    return {
        name: json.dumps(payload, indent=2, ensure_ascii=False)
        for name, payload in payloads.items()
    }


def write_dataset(dataset: ODDataset, output_dir: str | Path) -> List[Path]:
    """Write the dataset artifacts into ``output_dir``.

    Everything is serialized before the first file is touched; the independent
    files are then written concurrently.
    """
    documents = serialize_dataset(dataset)
    target_dir = Path(output_dir)
    target_dir.mkdir(parents=True, exist_ok=True)

    def _write(item: tuple) -> Path:
        name, text = item
        path = target_dir / name
        path.write_text(text, encoding="utf-8")
        return path

    with ThreadPoolExecutor(max_workers=len(documents)) as pool:
        written = list(pool.map(_write, sorted(documents.items())))
    logger.info(
        "Wrote %d aggregated flows and %d hourly frames to %s",
        len(dataset.flows),
        len(dataset.hourly or []),
        target_dir,
    )
    return written
