"""Ingestion of OD trip tables into the persisted flow dataset."""

from .band_weights import assign_sqrt_weights, bins_from_hourly, cuts_from_bins, sqrt_normalize
from .csv_ingestor import CsvIngestor, resolve_columns
from .dataset_writer import serialize_dataset, write_dataset
from .domain_types import (
    DatasetError,
    DatasetMeta,
    Destination,
    FlowRecord,
    HourlyFrame,
    Node,
    ODDataset,
    RawTripRecord,
)
from .hourly_frames import build_hourly_frames
from .ingest_config import ColumnAliases, IngestConfig
from .pipeline import build_dataset, prepare_dataset
from .spatial_normalizer import Projection, SpatialNormalizer
from .temporal_aggregator import FlowAccumulator, TemporalAggregator

__all__ = [
    "ColumnAliases",
    "CsvIngestor",
    "DatasetError",
    "DatasetMeta",
    "Destination",
    "FlowAccumulator",
    "FlowRecord",
    "HourlyFrame",
    "IngestConfig",
    "Node",
    "ODDataset",
    "Projection",
    "RawTripRecord",
    "SpatialNormalizer",
    "TemporalAggregator",
    "assign_sqrt_weights",
    "bins_from_hourly",
    "build_dataset",
    "build_hourly_frames",
    "cuts_from_bins",
    "prepare_dataset",
    "resolve_columns",
    "serialize_dataset",
    "sqrt_normalize",
    "write_dataset",
]
