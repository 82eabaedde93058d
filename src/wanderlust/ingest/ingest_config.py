from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Tuple

import yaml

logger = logging.getLogger(__name__)

LOGICAL_COLUMNS: Tuple[str, ...] = (
    "origin_lon",
    "origin_lat",
    "destination_lon",
    "destination_lat",
    "quantity",
    "hour",
)

DEFAULT_ALIASES: Dict[str, Tuple[str, ...]] = {
    "origin_lon": ("起点_1", "origin_lon", "o_lon"),
    "origin_lat": ("起点_12", "origin_lat", "o_lat"),
    "destination_lon": ("终点_1", "destination_lon", "d_lon"),
    "destination_lat": ("终点_12", "destination_lat", "d_lat"),
    "quantity": ("数量", "count", "total", "value"),
    "hour": ("小时", "hour"),
}


def _coerce_alias_list(value: object, column: str) -> Tuple[str, ...]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)) or not value:
        raise ValueError(f"Aliases for column '{column}' must be a non-empty list of strings")
    aliases = tuple(str(item).strip() for item in value if str(item).strip())
    if not aliases:
        raise ValueError(f"Aliases for column '{column}' must contain at least one name")
    return aliases


@dataclass(frozen=True)
class ColumnAliases:
    """Accepted header names for every logical CSV column, in priority order."""

    by_column: Dict[str, Tuple[str, ...]] = field(default_factory=lambda: dict(DEFAULT_ALIASES))

    def __post_init__(self) -> None:
        missing = [column for column in LOGICAL_COLUMNS if column not in self.by_column]
        if missing:
            raise ValueError(f"Column aliases missing logical columns: {', '.join(missing)}")

    def aliases_for(self, column: str) -> Tuple[str, ...]:
        return self.by_column[column]

    @classmethod
    def from_mapping(cls, data: Mapping[str, object] | None) -> "ColumnAliases":
        """Override the default aliases column by column."""
        merged: Dict[str, Tuple[str, ...]] = dict(DEFAULT_ALIASES)
        if not data:
            return cls(by_column=merged)
        if not isinstance(data, Mapping):
            raise TypeError("Column alias block must be a mapping")
        for column, value in data.items():
            if column not in LOGICAL_COLUMNS:
                raise ValueError(
                    f"Unknown logical column '{column}'; expected one of {', '.join(LOGICAL_COLUMNS)}"
                )
            merged[column] = _coerce_alias_list(value, column)
        return cls(by_column=merged)

    def to_mapping(self) -> Dict[str, list]:
        return {column: list(self.by_column[column]) for column in LOGICAL_COLUMNS}


@dataclass(frozen=True)
class IngestConfig:
    """Settings for turning a trip CSV into the persisted flow dataset."""

    aliases: ColumnAliases = field(default_factory=ColumnAliases)
    delimiter: str = ","
    extent: float = 220.0
    span_epsilon: float = 1e-9
    coordinate_precision: int = 6
    height_base: float = 2.0
    height_range: float = 28.0

    def __post_init__(self) -> None:
        if len(self.delimiter) != 1:
            raise ValueError("delimiter must be a single character")
        if self.extent <= 0:
            raise ValueError("extent must be positive")
        if self.span_epsilon <= 0:
            raise ValueError("span_epsilon must be positive")
        if self.coordinate_precision < 0:
            raise ValueError("coordinate_precision must be non-negative")

    @classmethod
    def from_mapping(cls, data: Mapping[str, object] | None) -> "IngestConfig":
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise TypeError("Ingest configuration must be a mapping")
        defaults = cls()
        return cls(
            aliases=ColumnAliases.from_mapping(data.get("columns")),  # type: ignore[arg-type]
            delimiter=str(data.get("delimiter", defaults.delimiter)),
            extent=float(data.get("extent", defaults.extent)),  # type: ignore[arg-type]
            span_epsilon=float(data.get("span_epsilon", defaults.span_epsilon)),  # type: ignore[arg-type]
            coordinate_precision=int(
                data.get("coordinate_precision", defaults.coordinate_precision)  # type: ignore[arg-type]
            ),
            height_base=float(data.get("height_base", defaults.height_base)),  # type: ignore[arg-type]
            height_range=float(data.get("height_range", defaults.height_range)),  # type: ignore[arg-type]
        )

    @classmethod
    def from_yaml(cls, path: str | Path) -> "IngestConfig":
        with Path(path).open("r", encoding="utf-8") as handle:
            payload = yaml.safe_load(handle) or {}
        if not isinstance(payload, Mapping):
            raise ValueError("Ingest configuration YAML must contain a mapping at the top level")
        config = cls.from_mapping(payload.get("ingest", payload))  # type: ignore[arg-type]
        logger.debug("Loaded ingest configuration from %s", path)
        return config

    def to_mapping(self) -> Dict[str, object]:
        return {
            "columns": self.aliases.to_mapping(),
            "delimiter": self.delimiter,
            "extent": self.extent,
            "span_epsilon": self.span_epsilon,
            "coordinate_precision": self.coordinate_precision,
            "height_base": self.height_base,
            "height_range": self.height_range,
        }

    def to_yaml(self, path: str | Path) -> None:
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with output_path.open("w", encoding="utf-8") as handle:
            yaml.safe_dump({"ingest": self.to_mapping()}, handle, allow_unicode=True, sort_keys=False)
