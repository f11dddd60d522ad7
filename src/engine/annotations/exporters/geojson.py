"""Annotation download: the working collection as a pretty-printed GeoJSON file.

The exported document is the same schema the import gateway and the
persisted store read back, so an export re-imports unchanged.
"""

from __future__ import annotations

import json

from engine.annotations.models import FeatureCollection

EXPORT_FILENAME = "bos.geojson"
MEDIA_TYPE = "application/geo+json"


def export_geojson(collection: FeatureCollection) -> dict:
    """Export a collection to a GeoJSON FeatureCollection dict."""
    return collection.to_dict()


def export_collection(collection: FeatureCollection) -> bytes:
    """Serialize a collection as pretty-printed UTF-8 GeoJSON."""
    return json.dumps(export_geojson(collection), indent=2, ensure_ascii=False).encode("utf-8")
