"""Coordinate deduplication and the shared planar projection."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from .band_weights import round_to, sqrt_normalize
from .domain_types import Bounds, Destination, Node


@dataclass(frozen=True)
class Projection:
    """Uniform-scale projection of lon/lat into the local plane."""

    center_lon: float
    center_lat: float
    scale: float

    def project(self, lon: float, lat: float) -> Tuple[float, float]:
        return (lon - self.center_lon) * self.scale, (lat - self.center_lat) * self.scale


@dataclass
class _Location:
    id: str
    lon: float
    lat: float
    inbound: float = 0.0


class SpatialNormalizer:
    """Assigns stable ids to distinct coordinates and projects them.

    Two coordinates that agree after rounding to ``precision`` decimals share
    one identity; at the default of 6 decimals this merges points roughly
    0.1 m apart.
    """

    def __init__(self, *, extent: float = 220.0, precision: int = 6, span_epsilon: float = 1e-9) -> None:
        self.extent = float(extent)
        self.precision = int(precision)
        self.span_epsilon = float(span_epsilon)
        self._origins: Dict[str, _Location] = {}
        self._destinations: Dict[str, _Location] = {}
        self._min_lon = math.inf
        self._max_lon = -math.inf
        self._min_lat = math.inf
        self._max_lat = -math.inf

    # ------------------------------------------------------------------ identity
    def coordinate_key(self, lon: float, lat: float) -> str:
        return f"{lon:.{self.precision}f},{lat:.{self.precision}f}"

    def register_origin(self, lon: float, lat: float) -> str:
        self._extend_bounds(lon, lat)
        return self._lookup(self._origins, "n", lon, lat).id

    def register_destination(self, lon: float, lat: float, quantity: float) -> str:
        self._extend_bounds(lon, lat)
        location = self._lookup(self._destinations, "d", lon, lat)
        location.inbound += quantity
        return location.id

    def _lookup(self, registry: Dict[str, _Location], prefix: str, lon: float, lat: float) -> _Location:
        key = self.coordinate_key(lon, lat)
        location = registry.get(key)
        if location is None:
            location = _Location(id=f"{prefix}{len(registry)}", lon=lon, lat=lat)
            registry[key] = location
        return location

    def _extend_bounds(self, lon: float, lat: float) -> None:
        self._min_lon = min(self._min_lon, lon)
        self._max_lon = max(self._max_lon, lon)
        self._min_lat = min(self._min_lat, lat)
        self._max_lat = max(self._max_lat, lat)

    # ---------------------------------------------------------------- projection
    @property
    def is_empty(self) -> bool:
        return not self._origins and not self._destinations

    def projection(self) -> Projection:
        """Centre of the bounding box and one scale shared by both axes."""
        if self.is_empty:
            return Projection(center_lon=0.0, center_lat=0.0, scale=self.extent / self.span_epsilon)
        center_lon = (self._min_lon + self._max_lon) / 2.0
        center_lat = (self._min_lat + self._max_lat) / 2.0
        span = max(self._max_lon - self._min_lon, self._max_lat - self._min_lat, self.span_epsilon)
        return Projection(center_lon=center_lon, center_lat=center_lat, scale=self.extent / span)

    def build_nodes(self, projection: Projection | None = None) -> List[Node]:
        projection = projection or self.projection()
        nodes: List[Node] = []
        for location in self._origins.values():
            x, y = projection.project(location.lon, location.lat)
            nodes.append(Node(id=location.id, x=round_to(x, 4), y=round_to(y, 4)))
        return nodes

    def build_destinations(
        self,
        projection: Projection | None = None,
        *,
        height_base: float = 2.0,
        height_range: float = 28.0,
    ) -> List[Destination]:
        """Project destinations; height grows with the square root of inbound volume."""
        projection = projection or self.projection()
        locations = list(self._destinations.values())
        if not locations:
            return []
        inbound_values = [location.inbound for location in locations]
        min_inbound = min(inbound_values)
        max_inbound = max(inbound_values)
        destinations: List[Destination] = []
        for location in locations:
            x, y = projection.project(location.lon, location.lat)
            height = height_base + height_range * sqrt_normalize(location.inbound, min_inbound, max_inbound)
            destinations.append(
                Destination(
                    id=location.id,
                    x=round_to(x, 4),
                    y=round_to(y, 4),
                    inbound=round_to(location.inbound, 4),
                    height=round_to(height, 4),
                )
            )
        return destinations


def projected_bounds(nodes: Sequence[Node], destinations: Sequence[Destination]) -> Bounds:
    """Extent of all projected points; an empty dataset yields zero bounds."""
    xs = [node.x for node in nodes] + [destination.x for destination in destinations]
    ys = [node.y for node in nodes] + [destination.y for destination in destinations]
    if not xs:
        return Bounds(min_x=0.0, max_x=0.0, min_y=0.0, max_y=0.0)
    return Bounds(min_x=min(xs), max_x=max(xs), min_y=min(ys), max_y=max(ys))
