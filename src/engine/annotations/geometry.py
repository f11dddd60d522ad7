"""Geometry assembly: ordered vertex lists to typed GeoJSON geometries.

Pure functions with no knowledge of drawing or UI state. Vertices are
[lng, lat] pairs; no projection or bounds checking is done.
"""

from __future__ import annotations

from typing import Any, Sequence

from engine.annotations.models import (
    LAYER_CONFIG,
    DrawingMode,
    Geometry,
    Layer,
)

Position = tuple[float, float]

# Minimum vertices each mode needs before it can complete
MIN_VERTICES: dict[DrawingMode, int] = {
    DrawingMode.POINT: 1,
    DrawingMode.LINE: 2,
    DrawingMode.POLYGON: 3,
}


def to_position(vertex: Sequence[float]) -> Position:
    """Normalise a [lng, lat] pair into a float tuple."""
    if len(vertex) != 2:
        raise ValueError(f"Expected [lng, lat], got {list(vertex)!r}")
    return (float(vertex[0]), float(vertex[1]))


def make_point(vertex: Sequence[float]) -> Geometry:
    return Geometry("Point", to_position(vertex))


def make_line(vertices: Sequence[Sequence[float]]) -> Geometry:
    """Build a LineString from two or more vertices."""
    if len(vertices) < MIN_VERTICES[DrawingMode.LINE]:
        raise ValueError(f"LineString needs at least 2 vertices, got {len(vertices)}")
    return Geometry("LineString", tuple(to_position(v) for v in vertices))


def close_ring(vertices: Sequence[Sequence[float]]) -> tuple[Position, ...]:
    """Return the ring with a copy of its first vertex appended.

    The copy is always appended, so ``n`` clicked vertices give ``n + 1``
    positions even when the last click repeats the first.
    """
    ring = tuple(to_position(v) for v in vertices)
    if ring:
        ring = ring + (ring[0],)
    return ring


def make_polygon(vertices: Sequence[Sequence[float]]) -> Geometry:
    """Build a single-ring Polygon from three or more open vertices."""
    if len(vertices) < MIN_VERTICES[DrawingMode.POLYGON]:
        raise ValueError(f"Polygon needs at least 3 vertices, got {len(vertices)}")
    return Geometry("Polygon", (close_ring(vertices),))


def can_complete(mode: DrawingMode, vertex_count: int) -> bool:
    """True if ``vertex_count`` vertices are enough to finish ``mode``."""
    required = MIN_VERTICES.get(DrawingMode(mode))
    return required is not None and vertex_count >= required


def assemble(mode: DrawingMode, vertices: Sequence[Sequence[float]]) -> Geometry | None:
    """Assemble the geometry for a drawing mode.

    Returns None when the vertex count does not satisfy the mode (or the
    mode is NONE). Point mode uses the first vertex only.
    """
    mode = DrawingMode(mode)
    if not can_complete(mode, len(vertices)):
        return None
    if mode == DrawingMode.POINT:
        return make_point(vertices[0])
    if mode == DrawingMode.LINE:
        return make_line(vertices)
    return make_polygon(vertices)


def drawing_mode_for_layer(layer: Layer | str) -> DrawingMode:
    return LAYER_CONFIG[Layer(layer)].drawing_mode


def geometry_matches_layer(geometry: Geometry, layer: Layer | str) -> bool:
    """Check the layer's geometry-kind invariant.

    geography/institutions take Point, flows LineString, borders Polygon
    or MultiPolygon.
    """
    return geometry.type in LAYER_CONFIG[Layer(layer)].accepts


# A closed linear ring: at least three distinct corners plus the closing copy
MIN_RING_POSITIONS = MIN_VERTICES[DrawingMode.POLYGON] + 1


def _is_position(value: Any) -> bool:
    return (
        isinstance(value, (list, tuple))
        and len(value) == 2
        and all(isinstance(c, (int, float)) and not isinstance(c, bool) for c in value)
    )


def _check_positions(value: Any, minimum: int, what: str) -> None:
    if not isinstance(value, (list, tuple)) or not all(_is_position(p) for p in value):
        raise ValueError(f"{what} must be a list of [lng, lat] positions")
    if len(value) < minimum:
        raise ValueError(f"{what} needs at least {minimum} positions, got {len(value)}")


def _check_rings(rings: Any) -> None:
    if not isinstance(rings, (list, tuple)) or not rings:
        raise ValueError("Polygon needs at least one linear ring")
    for ring in rings:
        _check_positions(ring, MIN_RING_POSITIONS, "Polygon ring")
        if tuple(ring[0]) != tuple(ring[-1]):
            raise ValueError("Polygon ring must be closed (first position == last)")


def validate_geometry(geometry: Geometry) -> None:
    """Check the coordinate shape of ``geometry`` against its type.

    Point is one [lng, lat] pair, LineString two or more, Polygon closed
    rings of four or more positions, MultiPolygon a list of Polygons.

    Raises:
        ValueError: The coordinates do not fit the geometry type.
    """
    coords = geometry.coordinates
    if geometry.type == "Point":
        if not _is_position(coords):
            raise ValueError("Point coordinates must be a single [lng, lat] pair")
    elif geometry.type == "LineString":
        _check_positions(coords, MIN_VERTICES[DrawingMode.LINE], "LineString")
    elif geometry.type == "Polygon":
        _check_rings(coords)
    elif geometry.type == "MultiPolygon":
        if not isinstance(coords, (list, tuple)) or not coords:
            raise ValueError("MultiPolygon needs at least one polygon")
        for polygon in coords:
            _check_rings(polygon)
    else:
        raise ValueError(f"Unsupported geometry type {geometry.type!r}")
