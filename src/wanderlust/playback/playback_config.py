from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Dict, Mapping

import yaml

from wanderlust.geometry.ribbon_strip import RibbonOptions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetentionSettings:
    """Constants of the grid net-retention peaks.

    ``smoothing_alpha`` is the per-call rate of the exponential filter over
    cell values; ``max_smoothing_alpha`` the rate of the running maximum.
    """

    smoothing_alpha: float = 0.17
    max_smoothing_alpha: float = 0.12
    eviction_threshold: float = 0.06
    min_positive_net: float = 0.12
    max_particles: int = 70_000
    max_layers: int = 42
    stack_base: float = 1.5
    stack_gain: float = 36.0
    layer_headroom: float = 1.5
    min_activity: float = 0.015

    def __post_init__(self) -> None:
        for label in ("smoothing_alpha", "max_smoothing_alpha"):
            value = getattr(self, label)
            if not 0.0 < value <= 1.0:
                raise ValueError(f"{label} must lie in (0, 1], got {value}")
        if self.max_particles < 0 or self.max_layers < 0:
            raise ValueError("max_particles and max_layers must be non-negative")

    @classmethod
    def from_mapping(cls, data: Mapping[str, object] | None) -> "RetentionSettings":
        if not data:
            return cls()
        if not isinstance(data, Mapping):
            raise TypeError("Retention settings block must be a mapping")
        defaults = asdict(cls())
        unknown = sorted(set(data) - set(defaults))
        if unknown:
            raise ValueError(f"Unknown retention settings: {', '.join(unknown)}")
        values = {key: type(defaults[key])(data.get(key, default)) for key, default in defaults.items()}
        return cls(**values)


@dataclass(frozen=True)
class PlaybackConfig:
    """Per-tick playback settings shared by the session and snapshot CLI."""

    retention: RetentionSettings = field(default_factory=RetentionSettings)
    ribbon: RibbonOptions = field(default_factory=RibbonOptions)
    grid_spacing: float = 3.0
    max_rendered_flows: int = 1800
    threshold_quantile: float = 0.9
    hours_per_second: float = 0.2
    particle_distance_boost: bool = False

    def __post_init__(self) -> None:
        if self.grid_spacing <= 0:
            raise ValueError("grid_spacing must be positive")
        if self.max_rendered_flows <= 0:
            raise ValueError("max_rendered_flows must be positive")
        if not 0.0 <= self.threshold_quantile <= 1.0:
            raise ValueError("threshold_quantile must lie in [0, 1]")

    @classmethod
    def from_mapping(cls, data: Mapping[str, object] | None) -> "PlaybackConfig":
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise TypeError("Playback configuration must be a mapping")
        defaults = cls()
        ribbon_block = data.get("ribbon") or {}
        if not isinstance(ribbon_block, Mapping):
            raise TypeError("Ribbon settings block must be a mapping")
        ribbon = RibbonOptions(
            samples=int(ribbon_block.get("samples", defaults.ribbon.samples)),
            min_width=float(ribbon_block.get("min_width", defaults.ribbon.min_width)),
            max_width=float(ribbon_block.get("max_width", defaults.ribbon.max_width)),
        )
        return cls(
            retention=RetentionSettings.from_mapping(data.get("retention")),  # type: ignore[arg-type]
            ribbon=ribbon,
            grid_spacing=float(data.get("grid_spacing", defaults.grid_spacing)),  # type: ignore[arg-type]
            max_rendered_flows=int(data.get("max_rendered_flows", defaults.max_rendered_flows)),  # type: ignore[arg-type]
            threshold_quantile=float(data.get("threshold_quantile", defaults.threshold_quantile)),  # type: ignore[arg-type]
            hours_per_second=float(data.get("hours_per_second", defaults.hours_per_second)),  # type: ignore[arg-type]
            particle_distance_boost=bool(
                data.get("particle_distance_boost", defaults.particle_distance_boost)
            ),
        )

    @classmethod
    def from_yaml(cls, path: str | Path) -> "PlaybackConfig":
        with Path(path).open("r", encoding="utf-8") as handle:
            payload = yaml.safe_load(handle) or {}
        if not isinstance(payload, Mapping):
            raise ValueError("Playback configuration YAML must contain a mapping at the top level")
        config = cls.from_mapping(payload.get("playback", payload))  # type: ignore[arg-type]
        logger.debug("Loaded playback configuration from %s", path)
        return config

    def to_mapping(self) -> Dict[str, object]:
        return {
            "retention": asdict(self.retention),
            "ribbon": asdict(self.ribbon),
            "grid_spacing": self.grid_spacing,
            "max_rendered_flows": self.max_rendered_flows,
            "threshold_quantile": self.threshold_quantile,
            "hours_per_second": self.hours_per_second,
            "particle_distance_boost": self.particle_distance_boost,
        }

    def to_yaml(self, path: str | Path) -> None:
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with output_path.open("w", encoding="utf-8") as handle:
            yaml.safe_dump({"playback": self.to_mapping()}, handle, sort_keys=False)
