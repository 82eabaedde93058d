"""CLI entry point that turns an OD trip CSV into the flow dataset artifacts."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Iterable, Iterator, Sequence

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

from wanderlust.ingest.dataset_writer import write_dataset
from wanderlust.ingest.domain_types import DatasetError, RawTripRecord
from wanderlust.ingest.ingest_config import IngestConfig
from wanderlust.ingest.pipeline import build_dataset, load_records

DEFAULT_INPUT = "szflow.csv"
DEFAULT_OUTPUT = "public/data"

logger = logging.getLogger(__name__)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("input", nargs="?", default=DEFAULT_INPUT, help="OD trip CSV path.")
    parser.add_argument(
        "output_dir",
        nargs="?",
        default=DEFAULT_OUTPUT,
        help="Directory receiving meta/nodes/destinations/flows/flows-hourly JSON files.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Optional YAML file overriding column aliases, delimiter and projection extent.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Verbosity for the CLI logger.",
    )
    return parser.parse_args(argv)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(message)s",
    )


def _iter_with_progress(records: Sequence[RawTripRecord]) -> Iterator[RawTripRecord]:
    console = Console(stderr=True)
    progress = Progress(
        SpinnerColumn(),
        TextColumn("{task.description}"),
        BarColumn(bar_width=None),
        TaskProgressColumn(),
        TextColumn("{task.completed:,} rows", justify="right"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
        disable=not console.is_terminal,
    )
    with progress:
        task_id = progress.add_task("Aggregating trip records", total=len(records) or None)
        for record in records:
            yield record
            progress.advance(task_id)


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(list(argv) if argv is not None else None)
    configure_logging(args.log_level)

    config = IngestConfig.from_yaml(args.config) if args.config else IngestConfig()
    logger.info("Reading trip records from %s", args.input)
    try:
        records = load_records(args.input, config)
    except DatasetError as exc:
        raise SystemExit(str(exc)) from exc

    dataset = build_dataset(
        _iter_with_progress(records), source=Path(args.input).name, config=config
    )
    write_dataset(dataset, args.output_dir)
    logger.info(
        "Dataset summary: %d nodes, %d destinations, %d flows, scale %.6f",
        dataset.meta.node_count,
        dataset.meta.destination_count,
        dataset.meta.flow_count,
        dataset.meta.scale,
    )


if __name__ == "__main__":
    main()
