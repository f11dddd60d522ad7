"""Feature, Geometry and FeatureCollection dataclasses for map annotations.

All coordinates are stored in GeoJSON convention: [lng, lat]. Coordinate
arrays are held as nested tuples so a snapshot can be shared between
states without copying.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator


class Layer(str, Enum):
    """Annotation categories. Each one is bound to exactly one geometry kind."""
    GEOGRAPHY = "geography"
    INSTITUTIONS = "institutions"
    FLOWS = "flows"
    BORDERS = "borders"


class DrawingMode(str, Enum):
    """What the drawing state machine is currently collecting."""
    NONE = "none"
    POINT = "point"
    LINE = "line"
    POLYGON = "polygon"


GEOMETRY_TYPES = ("Point", "LineString", "Polygon", "MultiPolygon")


@dataclass(frozen=True)
class LayerStyle:
    """Rendering and drawing configuration for one layer."""

    color: str
    geometry_type: str
    drawing_mode: DrawingMode
    accepts: tuple[str, ...]


LAYER_CONFIG: dict[Layer, LayerStyle] = {
    Layer.GEOGRAPHY: LayerStyle("#4A90A4", "Point", DrawingMode.POINT, ("Point",)),
    Layer.INSTITUTIONS: LayerStyle("#5B8C5A", "Point", DrawingMode.POINT, ("Point",)),
    Layer.FLOWS: LayerStyle("#D4A574", "LineString", DrawingMode.LINE, ("LineString",)),
    Layer.BORDERS: LayerStyle(
        "#8B7B8B", "Polygon", DrawingMode.POLYGON, ("Polygon", "MultiPolygon"),
    ),
}

# Keys written into GeoJSON "properties"; anything else is carried in Feature.extra
_KNOWN_PROPERTIES = ("id", "layer", "title", "firstSeen", "notes", "createdAt", "createdBy")


def freeze_coordinates(value: Any) -> Any:
    """Recursively turn nested lists into nested tuples."""
    if isinstance(value, (list, tuple)):
        return tuple(freeze_coordinates(v) for v in value)
    return value


def thaw_coordinates(value: Any) -> Any:
    """Recursively turn nested tuples back into JSON-friendly lists."""
    if isinstance(value, (list, tuple)):
        return [thaw_coordinates(v) for v in value]
    return value


@dataclass(frozen=True)
class Geometry:
    """A GeoJSON geometry.

    Attributes:
        type: One of "Point", "LineString", "Polygon", "MultiPolygon".
        coordinates: GeoJSON-style coordinate arrays as nested tuples.
            Point: (lng, lat)
            LineString: ((lng, lat), (lng, lat), ...)
            Polygon: (((lng, lat), ...),)  (tuple of closed rings)
            MultiPolygon: tuple of Polygon ring-sets
    """

    type: str
    coordinates: tuple

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "coordinates": thaw_coordinates(self.coordinates),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Geometry":
        return cls(
            type=data["type"],
            coordinates=freeze_coordinates(data["coordinates"]),
        )


@dataclass(frozen=True)
class Feature:
    """A single annotated feature on the map.

    Attributes:
        feature_id: Opaque unique identifier, fixed at creation.
        layer: Which annotation layer the feature belongs to.
        geometry: The feature's geometry; its type matches the layer's kind.
        title: Non-empty display title.
        created_at: ISO8601 creation timestamp.
        first_seen: Optional episode code (SxxExx) of first appearance.
        notes: Optional free-form notes.
        created_by: Optional author.
        extra: Unrecognised properties kept so imports survive a round-trip.
    """

    feature_id: str
    layer: Layer
    geometry: Geometry
    title: str
    created_at: str = ""
    first_seen: str | None = None
    notes: str | None = None
    created_by: str | None = None
    extra: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        properties = dict(self.extra)
        properties["id"] = self.feature_id
        properties["layer"] = self.layer.value
        properties["title"] = self.title
        if self.created_at:
            properties["createdAt"] = self.created_at
        if self.first_seen:
            properties["firstSeen"] = self.first_seen
        if self.notes:
            properties["notes"] = self.notes
        if self.created_by:
            properties["createdBy"] = self.created_by
        return {
            "type": "Feature",
            "geometry": self.geometry.to_dict(),
            "properties": properties,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Feature":
        props = data["properties"]
        return cls(
            feature_id=props["id"],
            layer=Layer(props["layer"]),
            geometry=Geometry.from_dict(data["geometry"]),
            title=props["title"],
            created_at=props.get("createdAt") or "",
            first_seen=props.get("firstSeen") or None,
            notes=props.get("notes") or None,
            created_by=props.get("createdBy") or None,
            extra={k: v for k, v in props.items() if k not in _KNOWN_PROPERTIES},
        )


@dataclass(frozen=True)
class FeatureCollection:
    """Ordered features; insertion order is display (z) order."""

    features: tuple[Feature, ...] = ()

    def __len__(self) -> int:
        return len(self.features)

    def __iter__(self) -> Iterator[Feature]:
        return iter(self.features)

    def get(self, feature_id: str) -> Feature | None:
        for feature in self.features:
            if feature.feature_id == feature_id:
                return feature
        return None

    def to_dict(self) -> dict:
        return {
            "type": "FeatureCollection",
            "features": [f.to_dict() for f in self.features],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FeatureCollection":
        return cls(features=tuple(Feature.from_dict(f) for f in data["features"]))
