"""Stateless pseudo-random numbers derived from a seed index."""

from __future__ import annotations

import math

FLOW_PARTICLE_MULTIPLIER = 12.9898
FLOW_PARTICLE_AMPLITUDE = 43758.5453
RETENTION_MULTIPLIER = 17.123
RETENTION_AMPLITUDE = 14758.389


def hash_unit(
    value: float,
    multiplier: float = FLOW_PARTICLE_MULTIPLIER,
    amplitude: float = FLOW_PARTICLE_AMPLITUDE,
) -> float:
    """Map ``value`` to ``[0, 1)`` via the fractional part of a scaled sine.

    Identical inputs always give identical outputs, so layouts seeded from a
    running index are reproducible across runs.
    """
    x = math.sin(value * multiplier) * amplitude
    return x - math.floor(x)


def retention_hash(value: float) -> float:
    return hash_unit(value, RETENTION_MULTIPLIER, RETENTION_AMPLITUDE)
