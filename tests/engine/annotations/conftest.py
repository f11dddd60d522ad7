"""Shared fixtures for annotation engine tests."""

from __future__ import annotations

import pytest

from engine.annotations.drawing import DrawingStateMachine
from engine.annotations.models import Feature, FeatureCollection, Geometry, Layer
from engine.annotations.store import FeatureStore, SetData


def make_feature(
    feature_id: str = "f1",
    layer: Layer = Layer.GEOGRAPHY,
    title: str = "Feature",
    geometry: Geometry | None = None,
    **kwargs,
) -> Feature:
    if geometry is None:
        geometry = {
            Layer.GEOGRAPHY: Geometry("Point", (-76.61, 39.29)),
            Layer.INSTITUTIONS: Geometry("Point", (-76.62, 39.30)),
            Layer.FLOWS: Geometry("LineString", ((-76.6, 39.2), (-76.7, 39.3))),
            Layer.BORDERS: Geometry(
                "Polygon", (((0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 0.0)),),
            ),
        }[layer]
    return Feature(
        feature_id=feature_id,
        layer=layer,
        geometry=geometry,
        title=title,
        created_at="2024-01-01T00:00:00+00:00",
        **kwargs,
    )


@pytest.fixture
def sample_collection() -> FeatureCollection:
    return FeatureCollection((
        make_feature("pit", Layer.GEOGRAPHY, "The Pit", first_seen="S01E01"),
        make_feature("hall", Layer.INSTITUTIONS, "City Hall"),
        make_feature("route", Layer.FLOWS, "Port route", notes="by truck"),
        make_feature("west", Layer.BORDERS, "Westside", created_by="mcnulty"),
    ))


@pytest.fixture
def store(sample_collection) -> FeatureStore:
    s = FeatureStore()
    s.dispatch(SetData(sample_collection))
    return s


@pytest.fixture
def drawing() -> DrawingStateMachine:
    return DrawingStateMachine()
