"""Tests for geometry assembly -- points, lines, closed polygon rings, layer kinds."""

import pytest

from engine.annotations.geometry import (
    assemble,
    can_complete,
    close_ring,
    drawing_mode_for_layer,
    geometry_matches_layer,
    make_line,
    make_point,
    make_polygon,
    validate_geometry,
)
from engine.annotations.models import DrawingMode, Geometry, Layer


pytestmark = pytest.mark.unit


class TestAssemble:
    """Vertex lists to typed geometries."""

    def test_point(self):
        g = make_point([-76.6, 39.3])
        assert g.type == "Point"
        assert g.coordinates == (-76.6, 39.3)

    def test_point_rejects_wrong_arity(self):
        with pytest.raises(ValueError):
            make_point([1.0, 2.0, 3.0])

    def test_line(self):
        g = make_line([(0, 0), (1, 1), (2, 0)])
        assert g.type == "LineString"
        assert g.coordinates == ((0.0, 0.0), (1.0, 1.0), (2.0, 0.0))

    def test_line_needs_two_vertices(self):
        with pytest.raises(ValueError):
            make_line([(0, 0)])

    def test_polygon_closes_ring(self):
        g = make_polygon([(0, 0), (1, 0), (1, 1)])
        assert g.type == "Polygon"
        assert g.coordinates == (((0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 0.0)),)

    def test_polygon_needs_three_vertices(self):
        with pytest.raises(ValueError):
            make_polygon([(0, 0), (1, 0)])

    def test_close_ring_always_appends(self):
        ring = close_ring([(0, 0), (1, 0), (0, 0)])
        assert ring == ((0.0, 0.0), (1.0, 0.0), (0.0, 0.0), (0.0, 0.0))

    def test_assemble_returns_none_when_short(self):
        assert assemble(DrawingMode.LINE, [(0, 0)]) is None
        assert assemble(DrawingMode.POLYGON, [(0, 0), (1, 1)]) is None
        assert assemble(DrawingMode.NONE, [(0, 0)]) is None

    def test_assemble_by_mode(self):
        assert assemble(DrawingMode.POINT, [(1, 2)]).type == "Point"
        assert assemble("line", [(1, 2), (3, 4)]).type == "LineString"
        assert assemble(DrawingMode.POLYGON, [(0, 0), (1, 0), (1, 1)]).type == "Polygon"

    def test_can_complete(self):
        assert can_complete(DrawingMode.POINT, 1)
        assert not can_complete(DrawingMode.LINE, 1)
        assert can_complete(DrawingMode.POLYGON, 3)
        assert not can_complete(DrawingMode.NONE, 10)


class TestLayerKinds:
    """Each layer is bound to one geometry kind."""

    @pytest.mark.parametrize("layer,mode", [
        (Layer.GEOGRAPHY, DrawingMode.POINT),
        (Layer.INSTITUTIONS, DrawingMode.POINT),
        (Layer.FLOWS, DrawingMode.LINE),
        (Layer.BORDERS, DrawingMode.POLYGON),
    ])
    def test_drawing_mode_for_layer(self, layer, mode):
        assert drawing_mode_for_layer(layer) == mode

    def test_matches(self):
        point = Geometry("Point", (0.0, 0.0))
        assert geometry_matches_layer(point, Layer.GEOGRAPHY)
        assert geometry_matches_layer(point, "institutions")
        assert not geometry_matches_layer(point, Layer.FLOWS)

    def test_borders_accept_multipolygon(self):
        multi = Geometry("MultiPolygon", ((((0, 0), (1, 0), (1, 1), (0, 0)),),))
        assert geometry_matches_layer(multi, Layer.BORDERS)
        assert not geometry_matches_layer(multi, Layer.GEOGRAPHY)


class TestValidateGeometry:
    """Coordinate shape must fit the geometry type."""

    @pytest.mark.parametrize("geometry", [
        Geometry("Point", (1.0, 2.0)),
        Geometry("LineString", ((0, 0), (1, 1))),
        Geometry("Polygon", (((0, 0), (1, 0), (1, 1), (0, 0)),)),
        Geometry("MultiPolygon", ((((0, 0), (1, 0), (1, 1), (0, 0)),),)),
    ])
    def test_valid(self, geometry):
        validate_geometry(geometry)

    @pytest.mark.parametrize("geometry", [
        Geometry("Point", ()),
        Geometry("Point", ("a", 1.0)),
        Geometry("LineString", ((1, 2),)),
        Geometry("LineString", (1, 2)),
        Geometry("Polygon", (((0, 0), (1, 0), (1, 1), (2, 2)),)),
        Geometry("Polygon", (((0, 0), (1, 0), (0, 0)),)),
        Geometry("Polygon", ()),
        Geometry("MultiPolygon", ()),
    ])
    def test_invalid(self, geometry):
        with pytest.raises(ValueError):
            validate_geometry(geometry)

    def test_assembled_polygon_is_valid(self):
        validate_geometry(make_polygon([(0, 0), (1, 0), (0, 0)]))
