"""Parse and validate annotation GeoJSON (RFC 7946 FeatureCollection).

The validation is a boundary check only: document shape, geometry type,
array-typed coordinates and the required ``id``/``layer``/``title``
properties. Coordinates are not inspected further.

Import is all-or-nothing: a document either parses into a complete
FeatureCollection or raises, never a partial result.
"""

from __future__ import annotations

import json
import os
from typing import Any

from engine.annotations.models import GEOMETRY_TYPES, FeatureCollection, Layer

ACCEPTED_EXTENSIONS = (".geojson", ".json")

_LAYER_VALUES = frozenset(layer.value for layer in Layer)


class GatewayError(ValueError):
    """A collection could not be read across the import boundary."""


class InvalidJSONError(GatewayError):
    def __init__(self, detail: str = "") -> None:
        super().__init__("Invalid JSON file")
        self.detail = detail


class InvalidSchemaError(GatewayError):
    def __init__(self) -> None:
        super().__init__("Invalid GeoJSON format. Must be a valid BOS FeatureCollection.")


def is_valid_layer(value: Any) -> bool:
    return isinstance(value, str) and value in _LAYER_VALUES


def validate_feature(raw: Any) -> bool:
    """True if ``raw`` looks like an annotation Feature dict."""
    if not isinstance(raw, dict) or raw.get("type") != "Feature":
        return False

    geometry = raw.get("geometry")
    if not isinstance(geometry, dict):
        return False
    if geometry.get("type") not in GEOMETRY_TYPES:
        return False
    if not isinstance(geometry.get("coordinates"), list):
        return False

    props = raw.get("properties")
    if not isinstance(props, dict):
        return False
    if not isinstance(props.get("id"), str):
        return False
    if not is_valid_layer(props.get("layer")):
        return False
    if not isinstance(props.get("title"), str):
        return False

    return True


def validate_collection(data: Any) -> bool:
    """True if ``data`` is a FeatureCollection whose features all validate."""
    if not isinstance(data, dict) or data.get("type") != "FeatureCollection":
        return False
    features = data.get("features")
    if not isinstance(features, list):
        return False
    return all(validate_feature(f) for f in features)


def parse_collection(content: str | bytes) -> FeatureCollection:
    """Deserialize and validate a GeoJSON document.

    Args:
        content: Raw GeoJSON text or UTF-8 bytes.

    Returns:
        The parsed FeatureCollection.

    Raises:
        InvalidJSONError: The content is not JSON.
        InvalidSchemaError: The JSON is not a valid annotation collection.
    """
    try:
        data = json.loads(content)
    except (json.JSONDecodeError, UnicodeDecodeError, TypeError, RecursionError) as e:
        raise InvalidJSONError(str(e)) from e

    if not validate_collection(data):
        raise InvalidSchemaError()

    # Nesting that json accepts can still be too deep to freeze
    try:
        return FeatureCollection.from_dict(data)
    except RecursionError as e:
        raise InvalidSchemaError() from e


def import_file(path: str | os.PathLike) -> FeatureCollection:
    """Read a ``.geojson``/``.json`` file and parse it.

    Raises:
        GatewayError: Unsupported extension, unreadable file, or any of the
            parse_collection errors.
    """
    ext = os.path.splitext(str(path))[1].lower()
    if ext not in ACCEPTED_EXTENSIONS:
        raise GatewayError(
            f"Unsupported file type '{ext}'. Expected one of {', '.join(ACCEPTED_EXTENSIONS)}"
        )
    try:
        with open(path, "rb") as f:
            content = f.read()
    except OSError as e:
        raise GatewayError(f"Failed to read file: {e}") from e
    return parse_collection(content)
