"""Map annotation state engine -- features, drawing, episode gating, GeoJSON.

The FeatureStore reducer owns every mutation, the DrawingStateMachine turns
map clicks into geometries, and the episode gate produces advisory
warnings. GeoJSON import/export sits at the boundary.
"""

from engine.annotations.drawing import DrawingState, DrawingStateMachine
from engine.annotations.episode import GateWarning, GateWarningKind, check_gate, compare_episodes
from engine.annotations.models import (
    LAYER_CONFIG,
    DrawingMode,
    Feature,
    FeatureCollection,
    Geometry,
    Layer,
)
from engine.annotations.store import AppState, FeatureStore, apply, create_feature

__all__ = [
    "AppState",
    "DrawingMode",
    "DrawingState",
    "DrawingStateMachine",
    "Feature",
    "FeatureCollection",
    "FeatureStore",
    "GateWarning",
    "GateWarningKind",
    "Geometry",
    "LAYER_CONFIG",
    "Layer",
    "apply",
    "check_gate",
    "compare_episodes",
    "create_feature",
]
