"""Core dataclasses shared across the ingest and playback packages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

HOURS_PER_DAY = 24
FLOW_KEY_SEPARATOR = "|"

Bins = Tuple[float, float, float, float]
Cuts = Tuple[float, float, float]


class DatasetError(ValueError):
    """Raised when an OD dataset cannot be built, written or loaded."""


def flow_key(origin_id: str, destination_id: str) -> str:
    return f"{origin_id}{FLOW_KEY_SEPARATOR}{destination_id}"


@dataclass(frozen=True)
class RawTripRecord:
    """Single accepted CSV row: one OD movement volume at an hour of day."""

    origin_lon: float
    origin_lat: float
    destination_lon: float
    destination_lat: float
    quantity: float
    hour: int


@dataclass(frozen=True)
class Node:
    """Projected origin location."""

    id: str
    x: float
    y: float

    def to_json_dict(self) -> Dict[str, object]:
        return {"id": self.id, "x": self.x, "y": self.y}


@dataclass(frozen=True)
class Destination:
    """Projected destination location with its accumulated inbound volume."""

    id: str
    x: float
    y: float
    inbound: float
    height: float

    def to_json_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "x": self.x,
            "y": self.y,
            "inbound": self.inbound,
            "height": self.height,
        }


@dataclass
class FlowRecord:
    """Aggregated OD flow with its quadrant bins, band cuts and visual weight."""

    o: str
    d: str
    total: float
    bins: Bins
    cuts: Cuts
    w: float = 0.0

    @property
    def key(self) -> str:
        return flow_key(self.o, self.d)

    def to_json_dict(self) -> Dict[str, object]:
        return {
            "o": self.o,
            "d": self.d,
            "total": self.total,
            "bins": list(self.bins),
            "cuts": list(self.cuts),
            "w": self.w,
        }

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> "FlowRecord":
        """Build a flow from a persisted JSON object."""
        if not isinstance(data, Mapping):
            raise TypeError("Flow entry must be a mapping")
        bins = _float_tuple(data.get("bins"), 4, "bins")
        cuts = _float_tuple(data.get("cuts"), 3, "cuts")
        return cls(
            o=str(data["o"]),
            d=str(data["d"]),
            total=float(data["total"]),  # type: ignore[arg-type]
            bins=bins,  # type: ignore[arg-type]
            cuts=cuts,  # type: ignore[arg-type]
            w=float(data.get("w", 0.0)),  # type: ignore[arg-type]
        )


@dataclass
class HourlyFrame:
    """Flows active during one hour of the day."""

    hour: int
    flows: List[FlowRecord] = field(default_factory=list)

    def to_json_dict(self) -> Dict[str, object]:
        return {"hour": self.hour, "flows": [flow.to_json_dict() for flow in self.flows]}


@dataclass(frozen=True)
class Bounds:
    min_x: float
    max_x: float
    min_y: float
    max_y: float

    def to_json_dict(self) -> Dict[str, float]:
        return {"minX": self.min_x, "maxX": self.max_x, "minY": self.min_y, "maxY": self.max_y}


@dataclass(frozen=True)
class DatasetMeta:
    """Summary written to ``meta.json``."""

    source: str
    created_at: str
    bounds: Bounds
    center: Tuple[float, float]
    scale: float
    node_count: int
    destination_count: int
    flow_count: int

    def to_json_dict(self) -> Dict[str, object]:
        return {
            "source": self.source,
            "createdAt": self.created_at,
            "bounds": self.bounds.to_json_dict(),
            "center": list(self.center),
            "scale": self.scale,
            "nodeCount": self.node_count,
            "destinationCount": self.destination_count,
            "flowCount": self.flow_count,
        }


@dataclass
class ODDataset:
    """In-memory form of the persisted dataset."""

    meta: DatasetMeta
    nodes: List[Node]
    destinations: List[Destination]
    flows: List[FlowRecord]
    hourly: Optional[List[HourlyFrame]] = None

    def nodes_by_id(self) -> Dict[str, Node]:
        return {node.id: node for node in self.nodes}

    def destinations_by_id(self) -> Dict[str, Destination]:
        return {destination.id: destination for destination in self.destinations}


def _float_tuple(values: object, length: int, label: str) -> Tuple[float, ...]:
    if not isinstance(values, Sequence) or isinstance(values, str) or len(values) != length:
        raise ValueError(f"Flow field '{label}' must be a list of {length} numbers")
    return tuple(float(value) for value in values)
