"""End-to-end preparation of the OD flow dataset.

The pipeline is a single sequential pass::

    CsvIngestor -> SpatialNormalizer -> TemporalAggregator -> hourly frames

Every fatal precondition (unreadable input, missing column, empty file) is
checked before anything is written, so a failed run leaves no partial output.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List

from .band_weights import round_to
from .csv_ingestor import CsvIngestor
from .dataset_writer import write_dataset
from .domain_types import DatasetMeta, ODDataset, RawTripRecord
from .hourly_frames import build_hourly_frames
from .ingest_config import IngestConfig
from .spatial_normalizer import SpatialNormalizer, projected_bounds
from .temporal_aggregator import TemporalAggregator

logger = logging.getLogger(__name__)


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_dataset(
    records: Iterable[RawTripRecord],
    *,
    source: str,
    config: IngestConfig | None = None,
    created_at: str | None = None,
) -> ODDataset:
    """Aggregate trip records into nodes, destinations, flows and hourly frames."""
    config = config or IngestConfig()
    normalizer = SpatialNormalizer(
        extent=config.extent,
        precision=config.coordinate_precision,
        span_epsilon=config.span_epsilon,
    )
    aggregator = TemporalAggregator()

    for record in records:
        origin_id = normalizer.register_origin(record.origin_lon, record.origin_lat)
        destination_id = normalizer.register_destination(
            record.destination_lon, record.destination_lat, record.quantity
        )
        aggregator.add(origin_id, destination_id, record.quantity, record.hour)

    projection = normalizer.projection()
    nodes = normalizer.build_nodes(projection)
    destinations = normalizer.build_destinations(
        projection, height_base=config.height_base, height_range=config.height_range
    )
    flows = aggregator.finalize()
    frames = build_hourly_frames(aggregator.accumulators)

    if not flows:
        logger.warning("No valid trip records found in %s; writing an empty dataset.", source)

    meta = DatasetMeta(
        source=source,
        created_at=created_at or _utc_timestamp(),
        bounds=projected_bounds(nodes, destinations),
        center=(round_to(projection.center_lon, 8), round_to(projection.center_lat, 8)),
        scale=round_to(projection.scale, 8),
        node_count=len(nodes),
        destination_count=len(destinations),
        flow_count=len(flows),
    )
    logger.info(
        "Aggregated %d nodes, %d destinations, %d flows.",
        len(nodes),
        len(destinations),
        len(flows),
    )
    return ODDataset(meta=meta, nodes=nodes, destinations=destinations, flows=flows, hourly=frames)


def load_records(input_path: str | Path, config: IngestConfig | None = None) -> List[RawTripRecord]:
    config = config or IngestConfig()
    ingestor = CsvIngestor(config.aliases, delimiter=config.delimiter)
    return ingestor.read(input_path)


def prepare_dataset(
    input_path: str | Path,
    output_dir: str | Path,
    *,
    config: IngestConfig | None = None,
) -> ODDataset:
    """Read ``input_path``, aggregate it and write the artifacts to ``output_dir``.

    Raises
    ------
    DatasetError
        If the input cannot be read, is empty, or lacks a required column.
    """
    config = config or IngestConfig()
    records = load_records(input_path, config)
    dataset = build_dataset(records, source=Path(input_path).name, config=config)
    write_dataset(dataset, output_dir)
    return dataset
