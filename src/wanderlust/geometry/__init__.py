"""Procedural curve, ribbon and particle geometry for flow arcs."""

from .bezier_arc import PARTICLE_ARC, RIBBON_ARC, ArcProfile, CubicBezier, build_arc
from .flow_particles import FlowParticleSet, build_flow_particles
from .hashing import hash_unit, retention_hash
from .ribbon_strip import RibbonOptions, RibbonStrip, build_flow_ribbon, build_flow_ribbons

__all__ = [
    "ArcProfile",
    "CubicBezier",
    "FlowParticleSet",
    "PARTICLE_ARC",
    "RIBBON_ARC",
    "RibbonOptions",
    "RibbonStrip",
    "build_arc",
    "build_flow_particles",
    "build_flow_ribbon",
    "build_flow_ribbons",
    "hash_unit",
    "retention_hash",
]
