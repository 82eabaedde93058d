"""Per-frame playback: dataset loading, hourly blending, retention peaks."""

from .dataset_loader import load_dataset
from .flow_selection import (
    PlaybackClock,
    VisibleFlows,
    day_mix,
    default_threshold,
    format_hour_label,
    select_visible_flows,
)
from .flowmap_session import FlowmapSession, FrameSnapshot
from .hourly_interpolator import HourlyInterpolator, wrap_hour
from .net_retention import (
    GridNetRetentionAggregator,
    RetentionCell,
    RetentionField,
    RetentionState,
)
from .playback_config import PlaybackConfig, RetentionSettings

__all__ = [
    "FlowmapSession",
    "FrameSnapshot",
    "GridNetRetentionAggregator",
    "HourlyInterpolator",
    "PlaybackClock",
    "PlaybackConfig",
    "RetentionCell",
    "RetentionField",
    "RetentionSettings",
    "RetentionState",
    "VisibleFlows",
    "day_mix",
    "default_threshold",
    "format_hour_label",
    "load_dataset",
    "select_visible_flows",
    "wrap_hour",
]
