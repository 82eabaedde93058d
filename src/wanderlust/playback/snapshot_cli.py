"""Run a playback session headlessly and save the final frame's geometry buffers."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Dict, Iterable, Sequence

import numpy as np
from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

from wanderlust.ingest.domain_types import DatasetError
from wanderlust.playback.dataset_loader import load_dataset
from wanderlust.playback.flow_selection import PlaybackClock
from wanderlust.playback.flowmap_session import FlowmapSession, FrameSnapshot
from wanderlust.playback.playback_config import PlaybackConfig

DEFAULT_OUTPUT = "snapshot.npz"
TICK_SECONDS = 1.0 / 60.0

logger = logging.getLogger(__name__)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("data_dir", help="Directory holding the prepared dataset JSON files.")
    parser.add_argument(
        "--hour",
        type=float,
        default=None,
        help="Start hour position in [0, 24); omit to render the aggregated flows.",
    )
    parser.add_argument(
        "--grid-spacing",
        type=float,
        default=None,
        help="Net retention grid spacing in scene units (defaults to the config value).",
    )
    parser.add_argument(
        "--threshold",
        type=float,
        default=None,
        help="Minimum flow total to render (defaults to the 90th percentile).",
    )
    parser.add_argument(
        "--ticks",
        type=int,
        default=60,
        help="Number of frames to simulate before saving, so smoothing can settle.",
    )
    parser.add_argument("--output", default=DEFAULT_OUTPUT, help="Destination .npz path.")
    parser.add_argument("--config", default=None, help="Optional playback YAML configuration.")
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


def snapshot_arrays(snapshot: FrameSnapshot) -> Dict[str, np.ndarray]:
    """Flatten a frame snapshot into named arrays for ``np.savez_compressed``."""
    ribbons = snapshot.ribbons
    arrays: Dict[str, np.ndarray] = {
        "flow_keys": np.asarray([flow.key for flow in snapshot.visible.flows], dtype=str),
        "flow_totals": np.asarray([flow.total for flow in snapshot.visible.flows], dtype=float),
        "ribbon_positions": (
            np.concatenate([ribbon.positions for ribbon in ribbons])
            if ribbons
            else np.zeros((0, 3))
        ),
        "ribbon_vertex_counts": np.asarray([ribbon.vertex_count for ribbon in ribbons], dtype=int),
        "particle_starts": snapshot.particles.starts,
        "particle_ends": snapshot.particles.ends,
        "particle_phases": snapshot.particles.phases,
        "retention_positions": snapshot.retention.positions,
        "retention_strengths": snapshot.retention.strengths,
        "retention_activities": snapshot.retention.activities,
        "threshold": np.asarray(snapshot.threshold),
        "day_mix": np.asarray(snapshot.day_mix),
    }
    if snapshot.hour_position is not None:
        arrays["hour_position"] = np.asarray(snapshot.hour_position)
    return arrays


def run_ticks(
    session: FlowmapSession,
    *,
    ticks: int,
    hour: float | None,
    grid_spacing: float | None,
    threshold: float | None,
) -> FrameSnapshot:
    clock = PlaybackClock(session.config.hours_per_second)
    console = Console(stderr=True)
    progress = Progress(
        SpinnerColumn(),
        TextColumn("{task.description}"),
        BarColumn(bar_width=None),
        TaskProgressColumn(),
        TimeElapsedColumn(),
        console=console,
        transient=True,
        disable=not console.is_terminal,
    )
    snapshot: FrameSnapshot | None = None
    position = hour
    with progress:
        task_id = progress.add_task("Simulating frames", total=max(1, ticks))
        for _ in range(max(1, ticks)):
            snapshot = session.tick(position, grid_spacing=grid_spacing, threshold=threshold)
            if position is not None:
                position = clock.advance(position, TICK_SECONDS)
            progress.advance(task_id)
    assert snapshot is not None
    return snapshot


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(list(argv) if argv is not None else None)
    configure_logging(args.log_level)

    config = PlaybackConfig.from_yaml(args.config) if args.config else PlaybackConfig()
    try:
        dataset = load_dataset(args.data_dir)
    except DatasetError as exc:
        raise SystemExit(str(exc)) from exc

    session = FlowmapSession(dataset, config)
    if args.hour is not None and not session.hourly_available:
        logger.warning("No hourly frames in %s; rendering aggregated flows instead.", args.data_dir)

    try:
        snapshot = run_ticks(
            session,
            ticks=args.ticks,
            hour=args.hour,
            grid_spacing=args.grid_spacing,
            threshold=args.threshold,
        )
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc

    output_path = Path(args.output)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    np.savez_compressed(output_path, **snapshot_arrays(snapshot))
    logger.info(
        "Saved %s frame to %s: %d/%d flows visible, %d ribbons, %d flow particles, %d retention particles",
        snapshot.hour_label or "aggregated",
        output_path,
        len(snapshot.visible.flows),
        len(snapshot.flows),
        len(snapshot.ribbons),
        len(snapshot.particles),
        snapshot.retention.particle_count,
    )


if __name__ == "__main__":
    main()
