"""Tests for GeoJSON import -- validation contract, distinct failure reasons, files."""

import json

import pytest

from engine.annotations.models import FeatureCollection, Layer
from engine.annotations.parsers.geojson import (
    GatewayError,
    InvalidJSONError,
    InvalidSchemaError,
    import_file,
    parse_collection,
    validate_collection,
    validate_feature,
)


pytestmark = pytest.mark.unit


MINIMAL = {
    "type": "FeatureCollection",
    "features": [
        {
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [1, 2]},
            "properties": {"id": "x", "layer": "geography", "title": "T"},
        }
    ],
}


def _feature(**overrides):
    feature = json.loads(json.dumps(MINIMAL["features"][0]))
    feature.update(overrides)
    return feature


class TestValidation:
    """validate_collection / validate_feature boundary contract."""

    def test_minimal_collection_valid(self):
        assert validate_collection(MINIMAL) is True

    def test_missing_layer_invalid(self):
        data = json.loads(json.dumps(MINIMAL))
        del data["features"][0]["properties"]["layer"]
        assert validate_collection(data) is False

    def test_empty_collection_valid(self):
        assert validate_collection({"type": "FeatureCollection", "features": []}) is True

    @pytest.mark.parametrize("data", [
        None,
        [],
        {"type": "Feature"},
        {"type": "FeatureCollection"},
        {"type": "FeatureCollection", "features": {}},
    ])
    def test_bad_collection_shapes(self, data):
        assert validate_collection(data) is False

    def test_unknown_layer_invalid(self):
        f = _feature()
        f["properties"]["layer"] = "roads"
        assert validate_feature(f) is False

    def test_geometry_type_checked(self):
        assert validate_feature(_feature(geometry={"type": "Circle", "coordinates": [1, 2]})) is False
        assert validate_feature(_feature(geometry={"type": "Point", "coordinates": "1,2"})) is False
        assert validate_feature(_feature(geometry=None)) is False

    def test_multipolygon_accepted(self):
        f = _feature(geometry={"type": "MultiPolygon", "coordinates": [[[[0, 0], [1, 0], [1, 1], [0, 0]]]]})
        f["properties"]["layer"] = "borders"
        assert validate_feature(f) is True

    def test_property_types_checked(self):
        f = _feature()
        f["properties"]["id"] = 7
        assert validate_feature(f) is False
        f = _feature()
        f["properties"]["title"] = None
        assert validate_feature(f) is False
        assert validate_feature(_feature(properties=None)) is False
        assert validate_feature(_feature(type="Thing")) is False

    def test_one_bad_feature_fails_all(self):
        data = json.loads(json.dumps(MINIMAL))
        data["features"].append({"type": "Feature"})
        assert validate_collection(data) is False


class TestParseCollection:

    def test_parse_minimal(self):
        collection = parse_collection(json.dumps(MINIMAL))
        assert len(collection) == 1
        feature = collection.features[0]
        assert feature.feature_id == "x"
        assert feature.layer == Layer.GEOGRAPHY
        assert feature.geometry.coordinates == (1, 2)

    def test_parse_bytes(self):
        assert len(parse_collection(json.dumps(MINIMAL).encode("utf-8"))) == 1

    def test_malformed_json(self):
        with pytest.raises(InvalidJSONError) as exc:
            parse_collection("{not json")
        assert str(exc.value) == "Invalid JSON file"

    def test_schema_failure(self):
        with pytest.raises(InvalidSchemaError) as exc:
            parse_collection('{"type": "FeatureCollection"}')
        assert "Invalid GeoJSON format" in str(exc.value)

    def test_errors_are_distinct(self):
        assert not issubclass(InvalidJSONError, InvalidSchemaError)
        assert issubclass(InvalidJSONError, GatewayError)
        assert issubclass(InvalidSchemaError, GatewayError)

    def test_deeply_nested_json_is_invalid_json(self):
        with pytest.raises(InvalidJSONError):
            parse_collection(b"[" * 200000)

    def test_deeply_nested_coordinates_rejected(self):
        depth = 100000
        doc = (
            '{"type": "FeatureCollection", "features": [{"type": "Feature", '
            '"geometry": {"type": "Point", "coordinates": '
            + "[" * depth + "]" * depth
            + '}, "properties": {"id": "a", "layer": "geography", "title": "x"}}]}'
        )
        with pytest.raises(GatewayError):
            parse_collection(doc)

    def test_recursion_while_building_is_schema_error(self, monkeypatch):
        def too_deep(data):
            raise RecursionError("maximum recursion depth exceeded")

        monkeypatch.setattr(FeatureCollection, "from_dict", too_deep)
        with pytest.raises(InvalidSchemaError):
            parse_collection('{"type": "FeatureCollection", "features": []}')

    def test_extra_properties_kept(self):
        data = json.loads(json.dumps(MINIMAL))
        data["features"][0]["properties"]["source"] = "episode script"
        feature = parse_collection(json.dumps(data)).features[0]
        assert feature.extra == {"source": "episode script"}


class TestImportFile:

    def test_import_geojson_file(self, tmp_path):
        path = tmp_path / "bos.geojson"
        path.write_text(json.dumps(MINIMAL))
        assert len(import_file(path)) == 1

    def test_import_json_extension(self, tmp_path):
        path = tmp_path / "export.JSON"
        path.write_text(json.dumps(MINIMAL))
        assert len(import_file(path)) == 1

    def test_rejects_other_extensions(self, tmp_path):
        path = tmp_path / "data.kml"
        path.write_text(json.dumps(MINIMAL))
        with pytest.raises(GatewayError, match="Unsupported file type"):
            import_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(GatewayError, match="Failed to read file"):
            import_file(tmp_path / "missing.geojson")
